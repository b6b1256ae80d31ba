"""URL helpers shared by the request serializer and token exchanger."""

from __future__ import annotations

from urllib.parse import quote, urlparse

# Characters left unescaped by a browser's encodeURIComponent
_URI_COMPONENT_SAFE = "-_.!~*'()"


def encode_uri_component(value: str) -> str:
    """Percent-encode a value for use as a single query string component."""
    return quote(value, safe=_URI_COMPONENT_SAFE)


def join_url(base_url: str, url: str) -> str:
    """Join a base URL and a path, collapsing the slashes between them.

    Absolute URLs are returned unchanged.
    """
    if urlparse(url).scheme:
        return url
    return f"{base_url.rstrip('/')}/{url.lstrip('/')}"
