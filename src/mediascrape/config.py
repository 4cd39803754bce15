from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .fetchers.html_headers import PROFILE_KEYS

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class HttpConfig:
    # 单次请求超时（秒），所有上游请求都必须有超时
    timeout: float = 15
    # 控制抓取网页时是否校验证书；正常情况下应保持为 True
    verify_ssl: bool = True
    # 重试前等待的基础时间（秒），只对可重试的传输错误重试一次
    retry_backoff: float = 0.5
    # 执行阻塞请求的线程数
    max_workers: int = 8


@dataclass
class CacheConfig:
    # 易变数据（最新列表、直播流）的有效期上限
    volatile_ttl: int = 7200
    # 近似静态数据（详情、频道目录）的有效期上限
    catalog_ttl: int = 43200


@dataclass
class SourceConfig:
    name: str
    base_url: str
    # 覆盖站点默认请求头: user_agent / referer / accept_language / extra
    headers: dict[str, Any] = field(default_factory=dict)


@dataclass
class AppConfig:
    sources: dict[str, SourceConfig]
    http: HttpConfig = field(default_factory=HttpConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    log_level: str = "INFO"


def _require(mapping: dict[str, Any], key: str) -> Any:
    if key not in mapping or mapping[key] in ("", None):
        raise ValueError(f"配置缺少必填字段: {key}")
    return mapping[key]


def _build_source_config(name: str, source_raw: dict[str, Any] | None) -> SourceConfig:
    if not isinstance(source_raw, dict):
        raise ValueError(f"sources.{name} 必须为映射")

    base_url = str(_require(source_raw, "base_url")).rstrip("/")
    if not base_url.startswith(("http://", "https://")):
        raise ValueError(f"sources.{name}.base_url 必须以 http:// 或 https:// 开头")

    headers = source_raw.get("headers") or {}
    if not isinstance(headers, dict):
        raise ValueError(f"sources.{name}.headers 必须为映射")
    unknown = set(headers) - PROFILE_KEYS
    if unknown:
        raise ValueError(f"sources.{name}.headers 包含未知字段: {', '.join(sorted(unknown))}")

    return SourceConfig(name=name, base_url=base_url, headers=dict(headers))


def load_config(path: str | Path) -> AppConfig:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"配置文件不存在: {path}")

    with path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    sources_raw = raw.get("sources") or {}
    http_raw = raw.get("http", {}) or {}
    cache_raw = raw.get("cache", {}) or {}

    if not isinstance(sources_raw, dict) or not sources_raw:
        raise ValueError("配置缺少必填字段: sources")

    sources = {name: _build_source_config(name, source_raw) for name, source_raw in sources_raw.items()}

    timeout = float(http_raw.get("timeout", 15))
    if timeout <= 0:
        raise ValueError("http.timeout 必须 > 0")
    max_workers = int(http_raw.get("max_workers", 8))
    if max_workers < 1:
        raise ValueError("http.max_workers 必须 >= 1")

    http = HttpConfig(
        timeout=timeout,
        verify_ssl=http_raw.get("verify_ssl", True),
        retry_backoff=float(http_raw.get("retry_backoff", 0.5)),
        max_workers=max_workers,
    )

    cache = CacheConfig(
        volatile_ttl=int(cache_raw.get("volatile_ttl", 7200)),
        catalog_ttl=int(cache_raw.get("catalog_ttl", 43200)),
    )
    if cache.volatile_ttl <= 0 or cache.catalog_ttl <= 0:
        raise ValueError("cache.*_ttl 必须 > 0")

    log_level = str(raw.get("log_level") or "INFO").upper()
    if log_level not in _LOG_LEVELS:
        raise ValueError(f"log_level 必须为 {', '.join(sorted(_LOG_LEVELS))} 之一")

    return AppConfig(sources=sources, http=http, cache=cache, log_level=log_level)
