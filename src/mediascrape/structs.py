"""归一化输出的数据结构定义。

字段在 Python 侧使用 snake_case，序列化时（``by_alias=True``）保留对外 JSON 约定的键名。
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import RequestError

logger = logging.getLogger(__name__)


class ListingItem(BaseModel):
    """列表页（首页/分类/搜索）中的单个条目。

    Attributes:
        title: 标题
        canonical_id: 剧集级 id，用于去重和详情页查询
        raw_id: 原始路径 id，指向某一集/某一章的快照
        image_url: 封面图
        episode_marker: 集数标记（如 "EP 12"）
        time_marker: 更新时间标记
        rating_value: 评分或分级
        media_type: 类型（manga / manhwa 等）
        synopsis: 简介（仅搜索结果页）
        release_year: 年份（仅搜索结果页）
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    title: str
    canonical_id: str = Field(alias="id")
    raw_id: str = Field(alias="original_id")
    image_url: str | None = Field(default=None, alias="image")
    episode_marker: str | None = Field(default=None, alias="episode")
    time_marker: str | None = Field(default=None, alias="time")
    rating_value: str | None = Field(default=None, alias="rating")
    media_type: str | None = Field(default=None, alias="type")
    synopsis: str | None = None
    release_year: str | None = Field(default=None, alias="releaseYear")


class EpisodeRef(BaseModel):
    """详情页中的单集/单章引用。按 (title, episode_id) 去重。"""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    title: str
    episode_id: str
    time_marker: str | None = Field(default=None, alias="time")
    episode_number: int | None = Field(default=None, alias="episodeNo")
    url: str | None = None
    scanlator: str | None = None


class LanguageOption(BaseModel):
    """章节可用语言及章节数。"""

    code: str
    title: str
    count: int


class DetailRecord(BaseModel):
    """单部作品的详情。每次重新提取整体生成，不做局部修补。"""

    model_config = ConfigDict(populate_by_name=True)

    title: str | None = None
    alternate_title: str | None = Field(default=None, alias="other_name")
    thumbnail_url: str | None = Field(default=None, alias="thumbnail")
    synopsis: str | None = None
    country_or_language: str | None = Field(default=None, alias="country")
    status: str | None = None
    release_year: str | None = None
    genres: list[str] = Field(default_factory=list)
    cast: list[str] = Field(default_factory=list, alias="starring")
    trailer_url: str | None = Field(default=None, alias="trailer")
    total_episode: str | None = None
    duration: str | None = None
    content_rating: str | None = Field(default=None, alias="rating")
    airs: str | None = None
    episodes: list[EpisodeRef] = Field(default_factory=list)
    languages: list[LanguageOption] = Field(default_factory=list)
    recommendations: list[ListingItem] = Field(default_factory=list)


class PaginationState(BaseModel):
    """分页状态。max_page 解析失败时为 1，永远不会是 0 或负数。"""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    has_next: bool = Field(default=False, alias="hasNextPage")
    has_prev: bool = Field(default=False, alias="hasPrevPage")
    max_page: int = Field(default=1, ge=1, alias="maxPage")


class ListingPage(BaseModel):
    """列表页提取结果。"""

    items: list[ListingItem] = Field(default_factory=list)
    pagination: PaginationState = Field(default_factory=PaginationState)


class ChannelEntry(BaseModel):
    """频道网格中的单个频道。"""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str
    channel: str
    embed_url: str = Field(alias="embed")


class PageImage(BaseModel):
    """章节图片地址，附带加载时需要的请求头。"""

    url: str
    headers: dict[str, str] = Field(default_factory=dict)


class FilterOption(BaseModel):
    name: str
    value: str


class FilterGroup(BaseModel):
    """静态过滤项分组（类型、题材、状态等）。"""

    key: str
    name: str
    multiple: bool = False
    options: list[FilterOption] = Field(default_factory=list)


class LiveTvPayload(BaseModel):
    """直播频道聚合结果。频道/分类/国家原样透传上游 JSON 对象。"""

    channels: list[dict[str, Any]] = Field(default_factory=list)
    streams: list[dict[str, Any]] = Field(default_factory=list)
    categories: list[dict[str, Any]] = Field(default_factory=list)
    countries: list[dict[str, Any]] = Field(default_factory=list)


# 过滤参数别名 -> SearchQuery 字段
_FILTER_ALIASES: dict[str, str] = {
    "q": "free_text",
    "query": "free_text",
    "keyword": "free_text",
    "free_text": "free_text",
    "country": "country",
    "genre": "genres",
    "genres": "genres",
    "release_year": "release_year",
    "release-year": "release_year",
    "year": "release_year",
    "sort": "sort",
    "type": "media_type",
    "media_type": "media_type",
    "status": "status",
    "language": "language",
    "lang": "language",
    "min_chapters": "min_chapters",
    "minchap": "min_chapters",
}


class SearchQuery(BaseModel):
    """结构化的搜索/过滤请求。构建后不可变，确定性地映射到一个上游 URL。

    ``None`` 表示未提供该过滤项；空字符串是一个合法的、显式给出的值，两者不会混淆。
    """

    model_config = ConfigDict(frozen=True)

    free_text: str | None = None
    country: str | None = None
    genres: tuple[str, ...] | None = None
    release_year: str | None = None
    sort: str | None = None
    media_type: str | None = None
    status: str | None = None
    language: str | None = None
    min_chapters: str | None = None
    page: int = Field(default=1, ge=1)

    @field_validator("free_text")
    @classmethod
    def _collapse_whitespace(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return " ".join(value.split())

    @field_validator("genres", mode="before")
    @classmethod
    def _coerce_genres(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, str):
            return (value,)
        return tuple(str(v) for v in value if v is not None)

    @field_validator("release_year", "min_chapters", mode="before")
    @classmethod
    def _coerce_number_text(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    @classmethod
    def from_filters(
        cls,
        filters: Mapping[str, Any] | None,
        *,
        page: int = 1,
        free_text: str | None = None,
    ) -> SearchQuery:
        """从调用方传入的过滤参数字典构建 SearchQuery。

        Raises:
            RequestError: 出现未知的过滤参数时
        """
        values: dict[str, Any] = {}
        for key, value in (filters or {}).items():
            field_name = _FILTER_ALIASES.get(key)
            if field_name is None:
                raise RequestError(f"未知的过滤参数: {key}")
            if value is None:
                continue
            values[field_name] = value

        if free_text is not None:
            values["free_text"] = free_text

        return cls(page=page, **values)
