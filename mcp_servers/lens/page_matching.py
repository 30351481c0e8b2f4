"""Locate the page that corresponds to the owning view's URL."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from urllib.parse import urlsplit

from .errors import PageNotFoundError
from .models import PageTarget

logger = logging.getLogger("mcp.lens.session")

_LOOPBACK = {"127.0.0.1", "localhost", "::1"}
_DEFAULT_PORTS = {"http": 80, "https": 443, "ws": 80, "wss": 443}
_INTERNAL_PREFIXES = ("devtools://", "chrome://", "chrome-devtools://", "chrome-extension://", "edge://")
_BLANK_URLS = {"", "about:blank", "about:srcdoc"}


def normalize_url(url: str) -> tuple[str, int | None, str] | None:
    """Return (host, port, path) with loopback aliases collapsed; None for non-network URLs."""
    try:
        parts = urlsplit((url or "").strip())
        port = parts.port
    except ValueError:
        return None
    if not parts.hostname:
        return None
    host = parts.hostname.lower()
    if host in _LOOPBACK:
        host = "localhost"
    if port is None:
        port = _DEFAULT_PORTS.get(parts.scheme.lower())
    return host, port, parts.path or "/"


def urls_match(a: str, b: str) -> bool:
    if a == b:
        return True
    left = normalize_url(a)
    right = normalize_url(b)
    return left is not None and left == right


def is_blank_or_internal(url: str) -> bool:
    value = (url or "").strip().lower()
    return value in _BLANK_URLS or value.startswith(_INTERNAL_PREFIXES)


def locate_page(candidates: Iterable[PageTarget], target_url: str | None) -> PageTarget:
    """Pick the matching page, else the first real page, else raise.

    Never opens a new page.
    """
    pages = [p for p in candidates if p.type == "page"]
    if target_url:
        for page in pages:
            if urls_match(page.url, target_url):
                return page
    for page in pages:
        if not is_blank_or_internal(page.url):
            if target_url:
                logger.warning("page_match_fallback target=%s attached=%s", target_url, page.url)
            return page
    raise PageNotFoundError(target_url)
