"""Title inference for extracted media.

Each media kind has an ordered tuple of strategies. A strategy is a pure
function of a :class:`TitleContext` that returns a candidate title or None;
:func:`resolve_title` walks the tuple and returns the first non-blank result.
Every tuple ends with a constant fallback, so a title is always produced.

Image cascade::

    title attr → alt (> 3 chars) → aria-label → <figcaption> of enclosing
    <figure> → heading in parent / preceding sibling → parent data-title /
    data-caption → cleaned filename → "Image"

Video cascade::

    title attr → aria-label → own data-title / data-caption → heading →
    parent data attrs → cleaned filename → platform name → "Video"

Iframe embeds swap the filename step for an embed-URL step (video id or
``?title=``) and fall back to "Embedded Video".
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable
from urllib.parse import parse_qs, unquote, urlparse

from bs4 import Tag

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]

_MEDIA_EXTENSION_RE = re.compile(
    r"\.(jpg|jpeg|png|gif|webp|bmp|svg|avif|mp4|webm|ogg|ogv|mov|m4v)$",
    re.IGNORECASE,
)
_CAMEL_CASE_RE = re.compile(r"([a-z])([A-Z])")

# host fragment -> human name, checked in order
PLATFORMS = (
    ("youtube.com", "YouTube"),
    ("youtu.be", "YouTube"),
    ("vimeo.com", "Vimeo"),
    ("dailymotion.com", "Dailymotion"),
)


@dataclass(frozen=True)
class TitleContext:
    element: Tag  # element whose attributes/surroundings are inspected
    url: str  # absolute media URL


TitleStrategy = Callable[[TitleContext], "str | None"]


def _clean(value) -> str | None:
    """Trim surrounding whitespace; blank becomes None."""
    if value is None:
        return None
    if isinstance(value, list):  # multi-valued attributes
        value = " ".join(value)
    return str(value).strip() or None


def _text(tag: Tag | None) -> str | None:
    if tag is None:
        return None
    return _clean(tag.get_text(" ", strip=True))


def _data_title(tag: Tag | None) -> str | None:
    if tag is None:
        return None
    return _clean(tag.get("data-title")) or _clean(tag.get("data-caption"))


def platform_for(url: str) -> str | None:
    """Name of the video platform hosting ``url`` (None if unknown)."""
    try:
        host = (urlparse(url).hostname or "").lower()
    except ValueError:
        return None
    for fragment, name in PLATFORMS:
        if fragment in host:
            return name
    return None


def clean_filename(url: str) -> str | None:
    """Turn ``/img/my-vacation_photoFinal.jpg`` into ``My Vacation Photo Final``.

    Returns None when the result is too short or purely numeric.
    """
    try:
        path = urlparse(url).path
    except ValueError:
        return None
    filename = unquote(path.rsplit("/", 1)[-1])
    stem = _MEDIA_EXTENSION_RE.sub("", filename)
    stem = re.sub(r"[-_]", " ", stem)
    stem = _CAMEL_CASE_RE.sub(r"\1 \2", stem)
    words = [w[0].upper() + w[1:].lower() for w in stem.split(" ") if w]
    cleaned = " ".join(words)
    if len(cleaned) > 2 and not cleaned.replace(" ", "").isdigit():
        return cleaned
    return None


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


def title_attribute(ctx: TitleContext) -> str | None:
    return _clean(ctx.element.get("title"))


def meaningful_alt(ctx: TitleContext) -> str | None:
    # Length is measured on the raw attribute, before trimming
    raw = ctx.element.get("alt")
    if isinstance(raw, str) and len(raw) > 3:
        return _clean(raw)
    return None


def aria_label(ctx: TitleContext) -> str | None:
    return _clean(ctx.element.get("aria-label"))


def figure_caption(ctx: TitleContext) -> str | None:
    figure = ctx.element.find_parent("figure")
    if figure is None:
        return None
    return _text(figure.find("figcaption"))


def nearby_heading(ctx: TitleContext) -> str | None:
    """First heading inside the parent, else the nearest preceding sibling heading."""
    parent = ctx.element.parent
    if parent is not None:
        heading = _text(parent.find(HEADING_TAGS))
        if heading:
            return heading
    return _text(ctx.element.find_previous_sibling(HEADING_TAGS))


def own_data_title(ctx: TitleContext) -> str | None:
    return _data_title(ctx.element)


def parent_data_title(ctx: TitleContext) -> str | None:
    return _data_title(ctx.element.parent)


def filename_title(ctx: TitleContext) -> str | None:
    return clean_filename(ctx.url)


def platform_name(ctx: TitleContext) -> str | None:
    platform = platform_for(ctx.url)
    return f"{platform} Video" if platform else None


def embed_url_title(ctx: TitleContext) -> str | None:
    """Synthesize ``"<Platform> Video (<id>)"`` from an embed URL, else ``?title=``."""
    try:
        parsed = urlparse(ctx.url)
    except ValueError:
        return None
    host = (parsed.hostname or "").lower()
    path = parsed.path
    segments = [s for s in path.split("/") if s]
    video_id = segments[-1] if segments else ""

    if ("youtube.com" in host and "/embed/" in path) or "youtu.be" in host:
        if len(video_id) > 5:
            return f"YouTube Video ({video_id})"
    if "vimeo.com" in host and "/video/" in path and video_id.isdigit():
        return f"Vimeo Video ({video_id})"
    if "dailymotion.com" in host and "/embed/video/" in path and video_id:
        return f"Dailymotion Video ({video_id})"

    values = parse_qs(parsed.query).get("title") or []
    for value in values:
        title = _clean(value)
        if title:
            return title
    return None


def constant(text: str) -> TitleStrategy:
    def _fallback(ctx: TitleContext) -> str:
        return text

    _fallback.__name__ = f"constant_{text.lower().replace(' ', '_')}"
    return _fallback


IMAGE_TITLE_STRATEGIES: tuple[TitleStrategy, ...] = (
    title_attribute,
    meaningful_alt,
    aria_label,
    figure_caption,
    nearby_heading,
    parent_data_title,
    filename_title,
    constant("Image"),
)

VIDEO_TITLE_STRATEGIES: tuple[TitleStrategy, ...] = (
    title_attribute,
    aria_label,
    own_data_title,
    nearby_heading,
    parent_data_title,
    filename_title,
    platform_name,
    constant("Video"),
)

EMBED_TITLE_STRATEGIES: tuple[TitleStrategy, ...] = (
    title_attribute,
    aria_label,
    own_data_title,
    nearby_heading,
    parent_data_title,
    embed_url_title,
    platform_name,
    constant("Embedded Video"),
)


def resolve_title(strategies: tuple[TitleStrategy, ...], element: Tag, url: str) -> str:
    """Return the first non-blank title produced by ``strategies``."""
    ctx = TitleContext(element=element, url=url)
    for strategy in strategies:
        title = strategy(ctx)
        if title and title.strip():
            return title.strip()
    # Cascades end in a constant; only reachable with a custom tuple
    return "Untitled"
