"""
echotap URL Utilities

Shared URL splitting used by the mock server and the CLI.
"""

from urllib.parse import urlparse, urlunparse
from typing import Tuple


class URLParts:
    """Split URLs the way stub matching and transformers address them."""

    @staticmethod
    def relative_url(url: str) -> str:
        """
        Path plus query string of a URL.

        Example:
            >>> URLParts.relative_url('http://localhost:8080/test?foo=bar#top')
            '/test?foo=bar'
        """
        parsed = urlparse(url)
        path = parsed.path or '/'
        return f"{path}?{parsed.query}" if parsed.query else path

    @staticmethod
    def path_only(url: str) -> str:
        """Path of a relative or absolute URL, without query string."""
        return urlparse(url).path or '/'

    @staticmethod
    def absolute_url(url: str, base_url: str = 'http://localhost') -> str:
        """Absolute form of ``url``; relative URLs are joined to ``base_url``."""
        parsed = urlparse(url)
        if parsed.scheme and parsed.netloc:
            return url

        base = urlparse(base_url)
        relative = urlparse(URLParts.relative_url(url) if url else '/')
        return urlunparse((base.scheme, base.netloc, relative.path, '', relative.query, ''))

    @staticmethod
    def split(url: str, base_url: str = 'http://localhost') -> Tuple[str, str]:
        """Return ``(relative_url, absolute_url)``."""
        return URLParts.relative_url(url), URLParts.absolute_url(url, base_url)
