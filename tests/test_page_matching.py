from __future__ import annotations

import logging

import pytest

from mcp_servers.lens.errors import PageNotFoundError
from mcp_servers.lens.models import PageTarget
from mcp_servers.lens.page_matching import is_blank_or_internal, locate_page, normalize_url, urls_match


def test_loopback_aliases_match() -> None:
    assert urls_match("http://127.0.0.1:3000/", "http://localhost:3000/")
    assert urls_match("http://[::1]:3000/app", "http://localhost:3000/app")
    assert urls_match("http://localhost:3000", "http://localhost:3000/")


def test_query_and_fragment_are_ignored() -> None:
    assert urls_match("http://localhost:3000/a?x=1#top", "http://localhost:3000/a")


def test_different_paths_or_ports_do_not_match() -> None:
    assert not urls_match("http://localhost:3000/a", "http://localhost:3000/b")
    assert not urls_match("http://localhost:3000/", "http://localhost:3001/")


def test_default_ports_are_filled_in() -> None:
    assert normalize_url("https://example.com/x") == ("example.com", 443, "/x")
    assert normalize_url("about:blank") is None
    assert normalize_url("http://localhost:99999/") is None


def test_blank_and_internal_pages() -> None:
    assert is_blank_or_internal("about:blank")
    assert is_blank_or_internal("")
    assert is_blank_or_internal("devtools://devtools/bundled/inspector.html")
    assert is_blank_or_internal("chrome-extension://abc/popup.html")
    assert not is_blank_or_internal("http://localhost:5173/")


def test_locate_prefers_exact_match() -> None:
    pages = [
        PageTarget(id="a", url="http://localhost:3000/a"),
        PageTarget(id="b", url="http://localhost:3000/b"),
    ]
    assert locate_page(pages, "http://127.0.0.1:3000/b").id == "b"


def test_locate_skips_non_page_targets() -> None:
    pages = [
        PageTarget(id="sw", url="http://localhost:3000/b", type="service_worker"),
        PageTarget(id="p", url="http://localhost:3000/other"),
    ]
    assert locate_page(pages, "http://localhost:3000/b").id == "p"


def test_locate_falls_back_to_first_real_page(caplog: pytest.LogCaptureFixture) -> None:
    pages = [
        PageTarget(id="blank", url="about:blank"),
        PageTarget(id="tools", url="devtools://devtools/inspector.html"),
        PageTarget(id="app", url="http://localhost:5173/"),
    ]
    with caplog.at_level(logging.WARNING, logger="mcp.lens.session"):
        assert locate_page(pages, "http://localhost:3000/").id == "app"
    assert "page_match_fallback" in caplog.text


def test_locate_without_target_takes_first_real_page() -> None:
    pages = [PageTarget(id="blank", url="about:blank"), PageTarget(id="app", url="http://localhost:5173/")]
    assert locate_page(pages, None).id == "app"


def test_locate_raises_when_only_blank_pages() -> None:
    with pytest.raises(PageNotFoundError) as exc:
        locate_page([PageTarget(id="blank", url="about:blank")], "http://localhost:3000/")
    assert str(exc.value) == "Could not find matching page for http://localhost:3000/"
