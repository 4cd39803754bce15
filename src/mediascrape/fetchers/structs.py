"""抓取层数据结构定义。"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SourceDocument(BaseModel):
    """一次成功抓取得到的原始页面。

    只在提取阶段存在，提取完成即丢弃，不做持久化。

    Attributes:
        url: 原始请求 URL
        final_url: 最终 URL（可能经过重定向）
        status: HTTP 状态码
        body: 响应正文（HTML 或 JSON 文本）
        fetched_at: 抓取时间 (UTC)
    """

    model_config = ConfigDict(frozen=True)

    url: str
    final_url: str
    status: int
    body: str
    fetched_at: datetime = Field(default_factory=_utcnow)


class TransportError(BaseModel):
    """传输层失败：超时、连接失败或非 2xx 响应。

    Fetcher 以返回值而非异常的形式交出该对象，重试策略由调用方决定。
    """

    model_config = ConfigDict(frozen=True)

    url: str
    status: int | None = None
    timed_out: bool = False
    reason: str = ""

    @property
    def retryable(self) -> bool:
        """超时、连接失败、429 与 5xx 视为可重试。"""
        if self.timed_out or self.status is None:
            return True
        return self.status == 429 or self.status >= 500

    def __str__(self) -> str:
        if self.timed_out:
            return f"请求超时: {self.url}"
        if self.status is None:
            return f"连接失败: {self.url} ({self.reason})"
        if self.reason:
            return f"HTTP {self.status} {self.reason}: {self.url}"
        return f"HTTP {self.status}: {self.url}"
