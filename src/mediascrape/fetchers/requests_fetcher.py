"""基于 requests 的抓取器。"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import requests

from .base import BaseFetcher
from .html_headers import HeaderProfile
from .structs import SourceDocument, TransportError

logger = logging.getLogger(__name__)

if TYPE_CHECKING:  # pragma: no cover - 类型辅助
    from requests import Response


class RequestsFetcher(BaseFetcher):
    """使用 requests 获取上游页面，把所有传输异常转换为 TransportError。"""

    def fetch(self, url: str, profile: HeaderProfile) -> SourceDocument | TransportError:
        logger.info("使用 RequestsFetcher 抓取: %s (timeout=%s, verify_ssl=%s)", url, self.timeout, self.verify_ssl)

        try:
            resp: Response = requests.get(
                url,
                timeout=self.timeout,
                verify=self.verify_ssl,
                headers=profile.to_headers(),
            )
        except requests.Timeout as exc:
            logger.warning("请求超时: %s (%s)", url, exc)
            return TransportError(url=url, timed_out=True, reason=str(exc))
        except requests.RequestException as exc:
            logger.warning("请求失败: %s (%s)", url, exc)
            return TransportError(url=url, reason=str(exc))

        if not 200 <= resp.status_code < 300:
            logger.warning("上游返回非 2xx 状态: %s -> %d", url, resp.status_code)
            return TransportError(url=url, status=resp.status_code, reason=resp.reason or "")

        logger.info(
            "抓取完成, 状态码: %d, 最终 URL: %s, 内容长度: %d",
            resp.status_code,
            resp.url,
            len(resp.text),
        )
        return SourceDocument(url=url, final_url=resp.url or url, status=resp.status_code, body=resp.text)
