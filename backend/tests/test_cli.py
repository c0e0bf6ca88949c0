"""Tests for the command-line interface."""

import argparse
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from conftest import FakeQueue, image
from mediaharvest import cli


def test_no_command_prints_help():
    with pytest.raises(SystemExit) as exc_info:
        cli.main([])
    assert exc_info.value.code == 1


def test_read_urls_from_args_and_file(tmp_path):
    url_file = tmp_path / "urls.txt"
    url_file.write_text("# pages\nex.com/a\n\nhttps://ex.com/b\n")
    args = argparse.Namespace(urls=["https://ex.com/c"], file=str(url_file))
    assert cli._read_urls(args) == ["https://ex.com/c", "https://ex.com/a", "https://ex.com/b"]


def test_read_urls_rejects_empty_input():
    with pytest.raises(SystemExit) as exc_info:
        cli._read_urls(argparse.Namespace(urls=[], file=None))
    assert exc_info.value.code == 2


def test_extract_prints_media(capsys):
    fetcher = MagicMock()
    fetcher.scrape = AsyncMock(return_value=[image("https://ex.com/a.jpg", title="A")])
    fetcher.aclose = AsyncMock()
    with patch("mediaharvest.services.fetcher.Fetcher.from_settings", return_value=fetcher):
        cli.main(["extract", "https://ex.com/"])

    printed = json.loads(capsys.readouterr().out)
    assert printed == [{"url": "https://ex.com/a.jpg", "type": "image", "alt": "", "title": "A"}]
    fetcher.aclose.assert_awaited_once()


def test_extract_unreachable_page_exits_nonzero():
    fetcher = MagicMock()
    fetcher.scrape = AsyncMock(return_value=None)
    fetcher.aclose = AsyncMock()
    with patch("mediaharvest.services.fetcher.Fetcher.from_settings", return_value=fetcher):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["extract", "https://ex.com/"])
    assert exc_info.value.code == 1


def test_submit_uses_celery_queue(capsys):
    queue = FakeQueue()
    with patch("mediaharvest.services.job_queue.CeleryJobQueue", return_value=queue):
        cli.main(["submit", "https://a.com", "https://a.com"])

    assert queue.submitted == ["https://a.com", "https://a.com"]
    assert json.loads(capsys.readouterr().out)["job_count"] == 2
