from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from mediascrape.cache import CATALOG, VOLATILE, CacheDirective
from mediascrape.errors import RequestError, UnknownSourceError
from mediascrape.extractors.profiles import PageKind
from mediascrape.fetchers.html_headers import HeaderProfile
from mediascrape.query import QueryDialect
from mediascrape.structs import FilterGroup, SearchQuery

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Feed:
    """一个可分页的列表端点（分类页、筛选页、搜索页）。

    Attributes:
        name: 对外名称，如 "latest"
        path: 相对站点根地址的路径
        dialect: 查询串方言
        kind: 使用哪种页面的提取配置
        directive: 缓存约定
        type_paths: media_type -> 替代路径（如电影分类）
        defaults: 每次请求时计算的默认过滤值（如当前年份）
    """

    name: str
    path: str
    dialect: QueryDialect = field(default_factory=QueryDialect)
    kind: PageKind = PageKind.LISTING
    directive: CacheDirective = field(default_factory=lambda: CacheDirective(max_age=900))
    type_paths: Mapping[str, str] = field(default_factory=dict)
    defaults: Callable[[], Mapping[str, str]] | None = None

    def path_for(self, query: SearchQuery) -> str:
        if query.media_type and query.media_type in self.type_paths:
            return self.type_paths[query.media_type]
        return self.path

    def path_fields(self, query: SearchQuery) -> tuple[str, ...]:
        """已由 path_for 体现在路径中的字段。"""
        if query.media_type and query.media_type in self.type_paths:
            return ("media_type",)
        return ()

    def dialect_for(self) -> QueryDialect:
        if self.defaults is None:
            return self.dialect
        return self.dialect.with_defaults(self.defaults())


@dataclass(frozen=True)
class ChapterEndpoints:
    """章节类站点的 AJAX 端点模板。"""

    ids_path: str = "ajax/read/{code}/chapter/{language}"
    meta_path: str = "ajax/manga/{code}/chapter/{language}"
    read_path: str = "ajax/read/chapter/{chapter_id}"
    default_language: str = "en"
    # 作品 id -> 端点中使用的短编码
    code_for: Callable[[str], str] = str
    # 章节元数据中的标题 -> 翻译组
    scanlator_for: Callable[[str | None], str | None] | None = None
    directive: CacheDirective = field(default_factory=lambda: CacheDirective(max_age=3600))


@dataclass(frozen=True)
class JsonFeed:
    """直接返回 JSON 数组的端点。"""

    path: str
    directive: CacheDirective = field(default_factory=lambda: CacheDirective(max_age=7200, tier=VOLATILE))


@dataclass(frozen=True)
class SourceDefinition:
    """单个上游站点的静态定义：请求头、端点与缓存约定。

    站点根地址来自配置文件，这里只描述相对路径。
    """

    name: str
    headers: HeaderProfile = field(default_factory=HeaderProfile)
    feeds: Mapping[str, Feed] = field(default_factory=dict)
    default_feed: str | None = None
    search: Feed | None = None
    detail_path: str | None = None
    detail_directive: CacheDirective = field(default_factory=lambda: CacheDirective(max_age=43200, tier=CATALOG))
    home_path: str | None = None
    home_directive: CacheDirective = field(default_factory=lambda: CacheDirective(max_age=900))
    chapters: ChapterEndpoints | None = None
    filters: Callable[[], list[FilterGroup]] | None = None
    json_feeds: Mapping[str, JsonFeed] = field(default_factory=dict)
    channels_path: str | None = None
    embed_path: str | None = None
    channels_directive: CacheDirective = field(default_factory=lambda: CacheDirective(max_age=3600, tier=CATALOG))

    def feed(self, name: str | None) -> Feed:
        """按名称取列表端点，None 时使用默认端点。

        Raises:
            RequestError: 站点没有该端点
        """
        feed_name = name or self.default_feed
        if feed_name is None or feed_name not in self.feeds:
            available = ", ".join(sorted(self.feeds)) or "无"
            raise RequestError(f"站点 {self.name} 没有列表端点 {feed_name!r} (可用: {available})")
        return self.feeds[feed_name]


# 全局站点表
_SOURCES: dict[str, SourceDefinition] = {}


def register_source(definition: SourceDefinition) -> SourceDefinition:
    if definition.name in _SOURCES:
        raise ValueError(f"重复注册站点: {definition.name}")
    if definition.default_feed is not None and definition.default_feed not in definition.feeds:
        raise ValueError(f"站点 {definition.name} 的默认端点 {definition.default_feed} 未定义")
    _SOURCES[definition.name] = definition
    logger.debug("已注册站点: %s (feeds=%s)", definition.name, ", ".join(definition.feeds))
    return definition


def get_source(name: str) -> SourceDefinition:
    try:
        return _SOURCES[name]
    except KeyError:
        raise UnknownSourceError(f"未知的站点: {name}") from None


def available_sources() -> list[str]:
    return sorted(_SOURCES)
