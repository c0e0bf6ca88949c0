"""HTML → media extraction.

:func:`extract_media` is a pure function of ``(html, base_url)``: no I/O, no
shared state, and it never raises. Malformed markup is handled by lxml's
recovering parser and anything unexpected collapses to fewer (or zero)
candidates.
"""

from __future__ import annotations

import logging
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Tag

from mediaharvest.schemas.media import CandidateMedia, MediaType
from mediaharvest.services.titles import (
    EMBED_TITLE_STRATEGIES,
    IMAGE_TITLE_STRATEGIES,
    VIDEO_TITLE_STRATEGIES,
    resolve_title,
)

logger = logging.getLogger(__name__)

EMBED_HOSTS = ("youtube.com", "vimeo.com", "dailymotion.com")


def is_valid_media_url(src: str | None) -> bool:
    """Reject empty sources, inline data URIs and SVG icons."""
    if not src or not src.strip():
        return False
    lowered = src.strip().lower()
    return not (lowered.startswith("data:") or lowered.endswith(".svg"))


def normalize_url(src: str, base_url: str) -> str:
    """Resolve ``src`` against the page URL.

    - ``http(s)://…`` is returned unchanged
    - ``//cdn/x`` becomes ``https://cdn/x``
    - ``/x`` keeps the scheme and host of ``base_url``
    - anything else is resolved relative to ``base_url``

    Best effort: if ``base_url`` can't be parsed, ``src`` comes back as-is.
    """
    if src.startswith(("http://", "https://")):
        return src
    if src.startswith("//"):
        return f"https:{src}"
    try:
        base = urlparse(base_url)
        if not base.scheme or not base.netloc:
            return src
        if src.startswith("/"):
            host = base.netloc.rpartition("@")[2]
            return f"{base.scheme}://{host}{src}"
        return urljoin(base_url, src)
    except ValueError:
        return src


def is_embed_url(url: str) -> bool:
    try:
        host = (urlparse(url).hostname or "").lower()
    except ValueError:
        return False
    return any(embed_host in host for embed_host in EMBED_HOSTS)


def _src(element: Tag) -> str:
    src = element.get("src")
    if isinstance(src, list):
        src = " ".join(src)
    return (src or "").strip()


def _image(img: Tag, base_url: str) -> CandidateMedia | None:
    src = _src(img)
    if not is_valid_media_url(src):
        return None
    url = normalize_url(src, base_url)
    return CandidateMedia(
        url=url,
        type=MediaType.IMAGE,
        alt=img.get("alt") or "",
        title=resolve_title(IMAGE_TITLE_STRATEGIES, img, url),
    )


def _video(element: Tag, base_url: str) -> CandidateMedia | None:
    src = _src(element)
    if not is_valid_media_url(src):
        return None
    url = normalize_url(src, base_url)
    # <source> takes its title context from the enclosing <video>
    video = element if element.name == "video" else element.find_parent("video")
    return CandidateMedia(
        url=url,
        type=MediaType.VIDEO,
        title=resolve_title(VIDEO_TITLE_STRATEGIES, video or element, url),
    )


def _embed(iframe: Tag, base_url: str) -> CandidateMedia | None:
    src = _src(iframe)
    if not is_valid_media_url(src):
        return None
    url = normalize_url(src, base_url)
    if not is_embed_url(url):
        return None
    return CandidateMedia(
        url=url,
        type=MediaType.VIDEO,
        title=resolve_title(EMBED_TITLE_STRATEGIES, iframe, url),
    )


def extract_media(html: str, base_url: str) -> list[CandidateMedia]:
    """Extract every image, video and video embed referenced by ``html``.

    Candidates come back in document order per kind (images, then videos,
    then embeds) and are not deduplicated; the store does that on insert.
    """
    if not html:
        return []
    try:
        soup = BeautifulSoup(html, "lxml")
    except Exception as e:
        logger.warning(f"Could not parse HTML from {base_url}: {e}")
        return []

    media: list[CandidateMedia] = []
    # Document order: a <video> comes before its own <source> children
    for selector, build in (
        ("img", _image),
        ("video, video source", _video),
        ("iframe", _embed),
    ):
        for element in soup.select(selector):
            # One bad element skips only itself
            try:
                candidate = build(element, base_url)
            except Exception as e:
                logger.warning(f"Skipping <{element.name}> on {base_url}: {e}")
                continue
            if candidate is not None:
                media.append(candidate)
    return media
