"""Fetchers 包 - 上游页面抓取。

推荐用法::

    from mediascrape.fetchers import HeaderProfile, RequestsFetcher

    fetcher = RequestsFetcher(timeout=15)
    outcome = fetcher.fetch("https://example.com", HeaderProfile(referer="https://example.com/"))
"""

from __future__ import annotations

from .base import BaseFetcher
from .html_headers import DEFAULT_HEADERS, HeaderProfile
from .requests_fetcher import RequestsFetcher
from .structs import SourceDocument, TransportError

__all__ = [
    "BaseFetcher",
    "DEFAULT_HEADERS",
    "HeaderProfile",
    "RequestsFetcher",
    "SourceDocument",
    "TransportError",
]
