"""Tests for media URL normalization."""

import pytest

from mediaharvest.services.extractor import normalize_url

BASE = "https://ex.com/blog/post"


@pytest.mark.parametrize(
    "src,expected",
    [
        ("https://cdn.ex.com/a.jpg", "https://cdn.ex.com/a.jpg"),
        ("http://cdn.ex.com/a.jpg", "http://cdn.ex.com/a.jpg"),
        ("//cdn.ex.com/a.jpg", "https://cdn.ex.com/a.jpg"),
        ("/img/a.jpg", "https://ex.com/img/a.jpg"),
        ("a.jpg", "https://ex.com/blog/a.jpg"),
        ("../a.jpg", "https://ex.com/a.jpg"),
        ("?size=2", "https://ex.com/blog/post?size=2"),
    ],
)
def test_normalize_url(src, expected):
    assert normalize_url(src, BASE) == expected


def test_root_relative_keeps_base_scheme_and_port():
    assert normalize_url("/a.png", "http://ex.com:8080/x/y") == "http://ex.com:8080/a.png"


def test_root_relative_drops_credentials():
    assert normalize_url("/a.png", "https://user:pw@ex.com/x") == "https://ex.com/a.png"


@pytest.mark.parametrize("base", ["", "not a url", "/relative/only", "http://[::1"])
def test_unparseable_base_returns_src(base):
    assert normalize_url("img/a.jpg", base) == "img/a.jpg"


@pytest.mark.parametrize("src", ["/a.jpg", "//cdn.ex.com/a.jpg", "a.jpg", "https://ex.com/a.jpg"])
def test_idempotent(src):
    once = normalize_url(src, BASE)
    assert normalize_url(once, BASE) == once
