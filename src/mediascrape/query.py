"""查询构建：把结构化的 SearchQuery 转换为上游站点的查询串方言。"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Collection, Mapping
from dataclasses import dataclass, field, replace
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from .errors import RequestError
from .structs import SearchQuery

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueryDialect:
    """单个上游端点的查询串方言。

    Attributes:
        params: SearchQuery 字段名 -> 上游参数名，按此顺序序列化
        page_param: 页码参数名（page_path 为空时使用）
        page_path: 页码路径模板，如 ``"page/{page}/"``；设置后页码放在路径中
        defaults: 请求未提供某字段时使用的默认值（字段名 -> 值）
    """

    params: Mapping[str, str] = field(default_factory=dict)
    page_param: str | None = "page"
    page_path: str | None = None
    defaults: Mapping[str, str] = field(default_factory=dict)

    def with_defaults(self, defaults: Mapping[str, str]) -> QueryDialect:
        merged = dict(self.defaults)
        merged.update(defaults)
        return replace(self, defaults=merged)


def join_endpoint(base_url: str, path: str) -> str:
    """拼接站点根地址和相对路径，路径为空时返回根地址（带结尾 "/"）。"""
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def _unsupported_fields(query: SearchQuery, dialect: QueryDialect, path_fields: Collection[str] = ()) -> list[str]:
    """返回请求中提供了、但方言无法表达的过滤字段。"""
    return [
        name
        for name in type(query).model_fields
        if name != "page"
        and name not in dialect.params
        and name not in path_fields
        and getattr(query, name) is not None
    ]


def build_query(
    base_endpoint: str,
    query: SearchQuery,
    dialect: QueryDialect,
    *,
    path_fields: Collection[str] = (),
) -> str:
    """构建上游 URL。

    只序列化实际提供的过滤项：值为 None 的字段不出现在查询串中，
    空字符串会以空值形式出现，两者不会混淆。页码不做修正，调用方负责校验。

    Args:
        base_endpoint: 端点地址
        query: 结构化查询
        dialect: 上游查询串方言
        path_fields: 已经体现在端点路径中的字段

    Returns:
        完整 URL

    Raises:
        RequestError: 请求中有方言无法表达的过滤项
    """
    unsupported = _unsupported_fields(query, dialect, path_fields)
    if unsupported:
        raise RequestError(f"该端点不支持的过滤参数: {', '.join(unsupported)}")

    pairs: list[tuple[str, str]] = []
    for field_name, param in dialect.params.items():
        value = getattr(query, field_name)
        if value is None:
            value = dialect.defaults.get(field_name)
        if value is None:
            continue
        if isinstance(value, tuple):
            pairs.extend((param, str(item)) for item in value)
        else:
            pairs.append((param, str(value)))

    endpoint = base_endpoint
    if dialect.page_path:
        endpoint = join_endpoint(base_endpoint, dialect.page_path.format(page=query.page))
    elif dialect.page_param:
        pairs.append((dialect.page_param, str(query.page)))

    query_string = urlencode(pairs)
    url = f"{endpoint}?{query_string}" if query_string else endpoint
    logger.debug("构建上游 URL: %s", url)
    return url


def normalize_url(url: str) -> str:
    """规范化 URL：scheme/host 小写，查询参数排序，去掉 fragment。"""
    parts = urlsplit(url)
    pairs = sorted(parse_qsl(parts.query, keep_blank_values=True))
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), parts.path or "/", urlencode(pairs), ""))


def cache_key(url: str, namespace: str = "") -> str:
    """由解析后的上游 URL 计算缓存键，与查询参数的插入顺序无关。"""
    canonical = normalize_url(url)
    if namespace:
        canonical = f"{namespace}:{canonical}"
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
