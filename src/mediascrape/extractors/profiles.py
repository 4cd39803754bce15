"""提取配置表（ExtractorProfile）与注册中心。

每个 (站点, 页面类型) 对应一个 ExtractorProfile，把字段名映射到有序的提取策略。
上游标记变化只需要修改数据表，不需要修改提取代码。
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from bs4.element import Tag

from mediascrape.structs import PaginationState

from .pagination import PagerRule, resolve_pagination
from .rules import FieldRule, ListRule, extract_fields, extract_items

logger = logging.getLogger(__name__)


class PageKind(str, Enum):
    LISTING = "listing"
    SEARCH = "search"
    DETAIL = "detail"
    HOME = "home"
    CHAPTER_IDS = "chapter_ids"
    CHAPTER_META = "chapter_meta"
    CHANNELS = "channels"


@dataclass(frozen=True)
class ExtractorProfile:
    """单个站点、单种页面的提取配置。

    Attributes:
        source: 站点 id
        kind: 页面类型
        fields: 文档级字段规则（详情页）
        lists: 列表规则，键为输出中的列表名
        pager: 分页规则，None 表示该页面不分页
        required_fields: 文档级必填字段，缺失时视为上游结构变化
        empty_marker: "确实没有结果" 的标记选择器；列表为空且标记存在时不视为结构变化
    """

    source: str
    kind: PageKind
    fields: Mapping[str, FieldRule] = field(default_factory=dict)
    lists: Mapping[str, ListRule] = field(default_factory=dict)
    pager: PagerRule | None = None
    required_fields: tuple[str, ...] = ()
    empty_marker: str | None = None


@dataclass
class Extraction:
    """应用 ExtractorProfile 后的原始结果。"""

    fields: dict[str, Any]
    lists: dict[str, list[dict[str, Any]]]
    pagination: PaginationState | None
    gaps: list[str]

    @property
    def degraded(self) -> bool:
        return bool(self.gaps)


# 全局配置表
_PROFILES: dict[tuple[str, PageKind], ExtractorProfile] = {}


def register_profile(profile: ExtractorProfile) -> ExtractorProfile:
    key = (profile.source, profile.kind)
    if key in _PROFILES:
        raise ValueError(f"重复注册提取配置: {profile.source}/{profile.kind.value}")
    _PROFILES[key] = profile
    logger.debug("已注册提取配置: %s/%s", profile.source, profile.kind.value)
    return profile


def get_profile(source: str, kind: PageKind) -> ExtractorProfile:
    try:
        return _PROFILES[(source, kind)]
    except KeyError:
        raise LookupError(f"站点 {source} 未定义 {kind.value} 页面的提取配置") from None


def apply_profile(document: Tag, profile: ExtractorProfile) -> Extraction:
    """对文档应用提取配置。

    缺失字段为 None，不抛出异常；疑似上游结构变化的情况记录在 ``gaps`` 中，
    由调用方决定如何降级。
    """
    fields = extract_fields(document, profile.fields)
    lists = {name: extract_items(document, rule) for name, rule in profile.lists.items()}
    pagination = resolve_pagination(document, profile.pager) if profile.pager else None

    gaps = [name for name in profile.required_fields if fields.get(name) in (None, "", [])]

    genuinely_empty = bool(profile.empty_marker and document.select_one(profile.empty_marker))
    if not genuinely_empty:
        gaps.extend(name for name, rule in profile.lists.items() if rule.expect_items and not lists[name])

    return Extraction(fields=fields, lists=lists, pagination=pagination, gaps=gaps)
