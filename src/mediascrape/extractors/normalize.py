"""把提取得到的原始字段字典转换为归一化的数据结构。"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from mediascrape.html_processor import absolute_url
from mediascrape.structs import DetailRecord, EpisodeRef, LanguageOption, ListingItem

from .canonical import canonicalize
from .parsing import parse_episode_number

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]


def build_listing_item(row: Row, base_url: str) -> ListingItem | None:
    """单行 -> ListingItem；缺少标题或原始 id 时返回 None。"""
    title = row.get("title")
    raw_id = row.get("raw_id")
    if not title or not raw_id:
        return None

    return ListingItem(
        title=title,
        canonical_id=canonicalize(raw_id),
        raw_id=raw_id,
        image_url=absolute_url(base_url, row.get("image_url")),
        episode_marker=row.get("episode_marker"),
        time_marker=row.get("time_marker"),
        rating_value=row.get("rating_value"),
        media_type=row.get("media_type"),
        synopsis=row.get("synopsis"),
        release_year=row.get("release_year"),
    )


def build_listing_items(rows: Iterable[Row], base_url: str) -> list[ListingItem]:
    items = (build_listing_item(row, base_url) for row in rows)
    return [item for item in items if item is not None]


def dedupe_by_canonical_id(items: Iterable[ListingItem]) -> list[ListingItem]:
    """按 canonical_id 去重，保留第一次出现的条目。"""
    seen: set[str] = set()
    unique: list[ListingItem] = []
    for item in items:
        if item.canonical_id in seen:
            continue
        seen.add(item.canonical_id)
        unique.append(item)
    return unique


def build_episode_refs(rows: Iterable[Row]) -> list[EpisodeRef]:
    """构建剧集列表，按 (title, episode_id) 静默去重。

    不规范的上游标记中同一个链接可能出现多次，重复项直接合并。
    """
    seen: set[tuple[str, str]] = set()
    episodes: list[EpisodeRef] = []
    duplicates = 0
    for row in rows:
        episode_id = row.get("episode_id")
        if not episode_id:
            continue
        title = row.get("title") or ""
        key = (title, episode_id)
        if key in seen:
            duplicates += 1
            continue
        seen.add(key)
        episodes.append(
            EpisodeRef(
                title=title,
                episode_id=episode_id,
                time_marker=row.get("time_marker"),
                episode_number=row.get("episode_number") or parse_episode_number(episode_id),
                url=row.get("url"),
                scanlator=row.get("scanlator"),
            )
        )

    if duplicates:
        logger.debug("合并了 %d 个重复剧集链接", duplicates)
    return episodes


def build_languages(rows: Iterable[Row]) -> list[LanguageOption]:
    return [LanguageOption(code=row["code"], title=row["title"], count=row["count"]) for row in rows]


def build_detail(
    fields: Row,
    *,
    base_url: str,
    episodes: list[EpisodeRef] | None = None,
    languages: list[LanguageOption] | None = None,
    recommendations: list[ListingItem] | None = None,
) -> DetailRecord:
    """根据文档级字段构建 DetailRecord，每次整体生成。"""
    return DetailRecord(
        title=fields.get("title"),
        alternate_title=fields.get("alternate_title"),
        thumbnail_url=absolute_url(base_url, fields.get("thumbnail_url")),
        synopsis=fields.get("synopsis"),
        country_or_language=fields.get("country_or_language"),
        status=fields.get("status"),
        release_year=fields.get("release_year"),
        genres=list(fields.get("genres") or []),
        cast=list(fields.get("cast") or []),
        trailer_url=fields.get("trailer_url"),
        total_episode=fields.get("total_episode"),
        duration=fields.get("duration"),
        content_rating=fields.get("content_rating"),
        airs=fields.get("airs"),
        episodes=episodes or [],
        languages=languages or [],
        recommendations=recommendations or [],
    )
