"""Tests for the media title cascades."""

import pytest
from bs4 import BeautifulSoup

from mediaharvest.services.titles import (
    EMBED_TITLE_STRATEGIES,
    IMAGE_TITLE_STRATEGIES,
    VIDEO_TITLE_STRATEGIES,
    clean_filename,
    embed_url_title,
    platform_for,
    resolve_title,
    TitleContext,
)


def _first(html: str, tag: str):
    return BeautifulSoup(html, "lxml").find(tag)


def image_title(html: str, url: str = "https://ex.com/img/1234.jpg") -> str:
    return resolve_title(IMAGE_TITLE_STRATEGIES, _first(html, "img"), url)


def video_title(html: str, url: str = "https://ex.com/v/1234.mp4") -> str:
    return resolve_title(VIDEO_TITLE_STRATEGIES, _first(html, "video"), url)


class TestImageCascade:
    def test_title_attribute_wins(self):
        assert image_title('<img title="  Sunset  " alt="a long alt text">') == "Sunset"

    def test_alt_needs_more_than_three_chars(self):
        assert image_title('<img alt="Red fox">') == "Red fox"
        assert image_title('<img alt="fox" aria-label="Fox label">') == "Fox label"

    def test_whitespace_only_attributes_are_ignored(self):
        assert image_title('<img title="   " alt="  " aria-label="Label">') == "Label"

    def test_alt_length_includes_surrounding_whitespace(self):
        assert image_title('<img alt=" fox ">') == "fox"
        assert image_title('<img alt="  My   Cat  ">') == "My   Cat"

    def test_figcaption(self):
        html = "<figure><div><img></div><figcaption>  Beach   at dusk </figcaption></figure>"
        assert image_title(html) == "Beach   at dusk"

    def test_heading_in_parent(self):
        html = "<section><h2>Our Team</h2><p>intro</p><img></section>"
        assert image_title(html) == "Our Team"

    def test_heading_outside_parent_is_not_used(self):
        html = "<div><h3>Before</h3><span><img></span></div>"
        assert image_title(html, "https://ex.com/a/team-photo.jpg") == "Team Photo"

    def test_parent_data_title(self):
        html = '<div data-caption="From parent"><img></div>'
        assert image_title(html) == "From parent"

    def test_filename(self):
        assert image_title("<p><img></p>", "https://ex.com/a/my-vacation_photoFinal.jpg") == (
            "My Vacation Photo Final"
        )

    def test_default(self):
        assert image_title("<p><img></p>", "https://ex.com/a/12_34.png") == "Image"


class TestVideoCascade:
    def test_title_then_aria(self):
        assert video_title('<video title="Clip" aria-label="Label"></video>') == "Clip"
        assert video_title('<video aria-label="Label"></video>') == "Label"

    def test_own_data_title(self):
        assert video_title('<video data-title="Own"></video>') == "Own"

    def test_parent_data_caption(self):
        assert video_title('<div data-caption="Parent"><video></video></div>') == "Parent"

    def test_filename_before_platform(self):
        assert video_title("<p><video></video></p>", "https://youtube.com/v/launch-day.mp4") == (
            "Launch Day"
        )

    def test_platform_name(self):
        assert video_title("<p><video></video></p>", "https://vimeo.com/1234") == "Vimeo Video"

    def test_default(self):
        assert video_title("<p><video></video></p>") == "Video"


class TestEmbedCascade:
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://www.youtube.com/embed/dQw4w9WgXcQ", "YouTube Video (dQw4w9WgXcQ)"),
            ("https://youtu.be/dQw4w9WgXcQ", "YouTube Video (dQw4w9WgXcQ)"),
            ("https://player.vimeo.com/video/76979871", "Vimeo Video (76979871)"),
            ("https://www.dailymotion.com/embed/video/x7tgad0", "Dailymotion Video (x7tgad0)"),
            ("https://www.youtube.com/embed/abc", None),
            ("https://www.youtube.com/embed/abc?title=My+Playlist", "My Playlist"),
            ("https://player.vimeo.com/video/abc?title=Named%20Clip", "Named Clip"),
        ],
    )
    def test_embed_url_title(self, url, expected):
        ctx = TitleContext(element=_first("<iframe></iframe>", "iframe"), url=url)
        assert embed_url_title(ctx) == expected

    def test_short_youtube_id_falls_back_to_platform(self):
        iframe = _first("<p><iframe></iframe></p>", "iframe")
        assert resolve_title(EMBED_TITLE_STRATEGIES, iframe, "https://youtube.com/embed/abc") == (
            "YouTube Video"
        )

    def test_title_attribute_beats_embed_id(self):
        iframe = _first('<iframe title="Keynote"></iframe>', "iframe")
        url = "https://youtube.com/embed/abc12345"
        assert resolve_title(EMBED_TITLE_STRATEGIES, iframe, url) == "Keynote"


class TestHelpers:
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://ex.com/img/my-vacation_photo.jpeg", "My Vacation Photo"),
            ("https://ex.com/img/camelCaseName.WEBP", "Camel Case Name"),
            ("https://ex.com/v/intro.mov", "Intro"),
            ("https://ex.com/img/12345.jpg", None),
            ("https://ex.com/img/1_2-3.png", None),
            ("https://ex.com/img/ab.gif", None),
            ("https://ex.com/", None),
        ],
    )
    def test_clean_filename(self, url, expected):
        assert clean_filename(url) == expected

    def test_platform_for(self):
        assert platform_for("https://www.youtube.com/watch?v=1") == "YouTube"
        assert platform_for("https://youtu.be/1") == "YouTube"
        assert platform_for("https://vimeo.com/1") == "Vimeo"
        assert platform_for("https://www.dailymotion.com/video/x1") == "Dailymotion"
        assert platform_for("https://ex.com/1") is None
        assert platform_for("http://[bad/clip.mp4") is None
