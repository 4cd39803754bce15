"""请求头配置。

每个上游站点使用独立的伪装请求头（User-Agent / Referer / Accept-Language），
用错配置只会导致上游拒绝请求，Fetcher 本身不做任何站点特判。
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/114.0.0.0 Safari/537.36"
)

DEFAULT_HEADERS: dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "User-Agent": DEFAULT_USER_AGENT,
}

# 配置文件中允许覆盖的字段
PROFILE_KEYS = frozenset({"user_agent", "referer", "accept_language", "extra"})


@dataclass(frozen=True)
class HeaderProfile:
    """单个上游站点的请求头配置。"""

    user_agent: str = DEFAULT_USER_AGENT
    referer: str | None = None
    accept_language: str = "en-US,en;q=0.9"
    extra: Mapping[str, str] = field(default_factory=dict)

    def override(self, overrides: Mapping[str, object]) -> HeaderProfile:
        """用配置文件中的值覆盖默认请求头，返回新的 HeaderProfile。"""
        if not overrides:
            return self

        unknown = set(overrides) - PROFILE_KEYS
        if unknown:
            raise ValueError(f"未知的请求头配置项: {', '.join(sorted(unknown))}")

        raw_extra = overrides.get("extra") or {}
        if not isinstance(raw_extra, Mapping):
            raise ValueError("headers.extra 必须为键值映射")
        extra = dict(self.extra)
        extra.update({str(k): str(v) for k, v in raw_extra.items()})

        changes = {key: str(value) for key, value in overrides.items() if key != "extra" and value is not None}
        return replace(self, extra=extra, **changes)

    def to_headers(self) -> dict[str, str]:
        headers = dict(DEFAULT_HEADERS)
        headers["User-Agent"] = self.user_agent
        headers["Accept-Language"] = self.accept_language
        if self.referer:
            headers["Referer"] = self.referer
        headers.update(self.extra)
        return headers
