"""Fetcher 基类。"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from .html_headers import HeaderProfile
from .structs import SourceDocument, TransportError

logger = logging.getLogger(__name__)


class BaseFetcher(ABC):
    """Fetcher 抽象基类。

    所有具体的 Fetcher 实现都应继承此类并实现 fetch 方法。
    fetch 不向外抛出传输异常，也不自行重试。
    """

    def __init__(self, timeout: float = 15, verify_ssl: bool = True) -> None:
        """初始化 Fetcher。

        Args:
            timeout: 请求超时时间（秒）
            verify_ssl: 是否验证 SSL 证书
        """
        if timeout <= 0:
            raise ValueError("timeout 必须 > 0")
        self.timeout = timeout
        self.verify_ssl = verify_ssl

    @abstractmethod
    def fetch(self, url: str, profile: HeaderProfile) -> SourceDocument | TransportError:
        """抓取单个 URL。

        Args:
            url: 要抓取的 URL
            profile: 目标站点的请求头配置

        Returns:
            成功时返回 SourceDocument，失败时返回 TransportError
        """
        ...
