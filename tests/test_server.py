from __future__ import annotations

import pytest

from homesite.server import parse_args, resolve_request_path


@pytest.fixture
def site(tmp_path):
    (tmp_path / "updates").mkdir()
    (tmp_path / "index.html").write_text("home", encoding="utf-8")
    (tmp_path / "updates" / "index.html").write_text("posts", encoding="utf-8")
    (tmp_path / "updates" / "first.html").write_text("first", encoding="utf-8")
    (tmp_path / "about-this-site.html").write_text("about", encoding="utf-8")
    (tmp_path / "styles.css").write_text("body{}", encoding="utf-8")
    return tmp_path


@pytest.mark.parametrize(
    "url, rel",
    [
        ("/", "index.html"),
        ("/updates", "updates/index.html"),
        ("/updates/", "updates/index.html"),
        ("/updates/first", "updates/first.html"),
        ("/about-this-site?ref=nav", "about-this-site.html"),
        ("/styles.css", "styles.css"),
    ],
)
def test_resolves_pretty_urls(site, url, rel):
    assert resolve_request_path(site, url) == site / rel


@pytest.mark.parametrize("url", ["/missing", "/missing.css", "/updates/nope/", "/../secret"])
def test_misses_are_none(site, url):
    assert resolve_request_path(site, url) is None


def test_defaults():
    args = parse_args([])
    assert args.output == "dist"
    assert args.port == 3000
