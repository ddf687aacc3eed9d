"""
URL helpers for page sessions.
"""

from __future__ import annotations

from urllib import parse


def is_http_url(url: str | None) -> bool:
    """Return True for absolute ``http://`` or ``https://`` URLs."""
    if not url:
        return False
    try:
        parsed = parse.urlparse(url.strip())
    except ValueError:
        return False
    return parsed.scheme.lower() in ("http", "https") and bool(parsed.netloc)


def get_origin(url: str | None) -> str | None:
    """Return ``scheme://host[:port]`` for an http(s) URL, else ``None``."""
    if not is_http_url(url):
        return None
    parsed = parse.urlparse(url.strip())  # type: ignore[union-attr]
    return f"{parsed.scheme.lower()}://{parsed.netloc}"


def extract_domain(url: str) -> str:
    """Extract the hostname from a URL string."""
    try:
        parsed = parse.urlparse(url)
        return parsed.hostname or "unknown"
    except ValueError:
        return "unknown"
