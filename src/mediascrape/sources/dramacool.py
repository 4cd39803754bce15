"""dramacool: WordPress 主题的亚洲剧集站点。

列表条目的链接通常指向某一集（``drama-x-episode-12``），规范化后得到剧集 id。
"""

from __future__ import annotations

from datetime import datetime, timezone

from mediascrape.cache import CATALOG, VOLATILE, CacheDirective
from mediascrape.extractors.canonical import raw_id_from_href
from mediascrape.extractors.pagination import WORDPRESS_PAGER
from mediascrape.extractors.parsing import (
    parse_airs,
    parse_content_rating,
    parse_duration,
    parse_episode_count,
    strip_label,
)
from mediascrape.extractors.profiles import ExtractorProfile, PageKind, register_profile
from mediascrape.extractors.rules import ListRule, attr_of, lines_of, text_of, texts_of
from mediascrape.fetchers.html_headers import HeaderProfile
from mediascrape.query import QueryDialect

from .registry import Feed, SourceDefinition, register_source

NAME = "dramacool"

# 懒加载图片优先
_IMAGE = (attr_of("img", "data-original"), attr_of("img", "data-src"), attr_of("img", "src"))
_RAW_ID = (attr_of("a", "href", parse=raw_id_from_href),)

_BOX_ITEM = {
    "title": (text_of("h3"),),
    "raw_id": _RAW_ID,
    "image_url": _IMAGE,
    "episode_marker": (text_of(".ep"),),
    "time_marker": (text_of(".time"),),
}

# 节点本身就是 <a>
_ANCHOR_ITEM = {
    "title": (text_of(),),
    "raw_id": (attr_of(None, "href", parse=raw_id_from_href),),
}

_REQUIRED = ("title", "raw_id")
_EMPTY_MARKER = ".no-results, .not-found"

register_profile(
    ExtractorProfile(
        source=NAME,
        kind=PageKind.LISTING,
        lists={"items": ListRule("#primary .box li", _BOX_ITEM, required=_REQUIRED)},
        pager=WORDPRESS_PAGER,
        empty_marker=_EMPTY_MARKER,
    )
)

register_profile(
    ExtractorProfile(
        source=NAME,
        kind=PageKind.SEARCH,
        lists={
            "items": ListRule(
                "#main.site-main.wrapper .list-thumb li",
                {
                    "title": (text_of("h2 a"),),
                    "raw_id": (attr_of("h2 a", "href", parse=raw_id_from_href),),
                    "image_url": _IMAGE,
                    "synopsis": (text_of("p:not(.post-info)"),),
                    "release_year": (text_of(".post-info strong:-soup-contains('Release Year:') + a"),),
                },
                required=_REQUIRED,
            )
        },
        pager=WORDPRESS_PAGER,
        empty_marker=_EMPTY_MARKER,
    )
)

_DETAILS = "#drama-details"
_SYNOPSIS_BLOCK = f"{_DETAILS} .synopsis"

register_profile(
    ExtractorProfile(
        source=NAME,
        kind=PageKind.DETAIL,
        fields={
            "title": (text_of(f"{_DETAILS} .entry-header h1"),),
            "thumbnail_url": (
                attr_of(f"{_DETAILS} .drama-thumbnail img", "src"),
                attr_of(f"{_DETAILS} .drama-thumbnail img", "data-src"),
            ),
            "synopsis": (text_of(f"{_SYNOPSIS_BLOCK} p.synopsis"),),
            "alternate_title": (text_of(f"{_SYNOPSIS_BLOCK} p.aka", parse=strip_label("Other name:")),),
            "total_episode": (lines_of(_SYNOPSIS_BLOCK, parse_episode_count),),
            "duration": (lines_of(_SYNOPSIS_BLOCK, parse_duration),),
            "content_rating": (lines_of(_SYNOPSIS_BLOCK, parse_content_rating),),
            "airs": (lines_of(_SYNOPSIS_BLOCK, parse_airs),),
            "country_or_language": (text_of(f"{_DETAILS} p.country a"),),
            "status": (text_of(f"{_DETAILS} p.status a"),),
            "release_year": (text_of(f"{_DETAILS} p.release-year a"),),
            "genres": (texts_of(f"{_DETAILS} p.genres a"),),
            "cast": (texts_of(f"{_DETAILS} p.starring a"),),
            "trailer_url": (attr_of(f"{_DETAILS} .trailer iframe", "src"),),
        },
        lists={
            "episodes": ListRule(
                "#episode-list .episode-list li",
                {
                    "title": (text_of("h3 a"),),
                    "episode_id": (attr_of("h3 a", "href", parse=raw_id_from_href),),
                    "time_marker": (text_of(".time"),),
                },
                required=("episode_id",),
                # 未开播的剧集没有剧集列表
                expect_items=False,
            )
        },
        required_fields=("title",),
    )
)

register_profile(
    ExtractorProfile(
        source=NAME,
        kind=PageKind.HOME,
        lists={
            "recently_added": ListRule("#drama .box li", _BOX_ITEM, required=_REQUIRED, expect_items=False),
            "recent_movie": ListRule("#movie .box li", _BOX_ITEM, required=_REQUIRED, expect_items=False),
            "recent_k_show": ListRule("#kshow .box li", _BOX_ITEM, required=_REQUIRED, expect_items=False),
            "ongoing": ListRule("#popular .short-list li h3 a", _ANCHOR_ITEM, required=_REQUIRED, expect_items=False),
            "upcoming": ListRule("#upcoming .short-list li h3 a", _ANCHOR_ITEM, required=_REQUIRED, expect_items=False),
            "popular": ListRule(
                ".popular-mob .widget-list li",
                {"title": (text_of("h3 a"),), "raw_id": (attr_of("h3 a", "href", parse=raw_id_from_href),)},
                required=_REQUIRED,
                expect_items=False,
            ),
        },
    )
)


def _current_year_korean() -> dict[str, str]:
    return {"sort": "popular", "country": "korean", "release_year": str(datetime.now(timezone.utc).year)}


_PAGE_IN_PATH = QueryDialect(page_param=None, page_path="page/{page}/")

_DISCOVER_DIALECT = QueryDialect(
    params={"country": "country", "genres": "genre", "release_year": "release-year"},
)

register_source(
    SourceDefinition(
        name=NAME,
        headers=HeaderProfile(referer="https://dramacool.sh/"),
        feeds={
            "latest": Feed(
                name="latest",
                path="category/latest-asian-drama-releases/",
                dialect=_PAGE_IN_PATH,
                directive=CacheDirective(max_age=900, tier=VOLATILE),
            ),
            "popular": Feed(
                name="popular",
                path="tag/most-popular-dramas/",
                dialect=_PAGE_IN_PATH,
                directive=CacheDirective(max_age=21600, tier=CATALOG),
            ),
            "discover": Feed(
                name="discover",
                path="category/asian-drama/",
                dialect=_DISCOVER_DIALECT,
                directive=CacheDirective(max_age=21600, tier=CATALOG),
                type_paths={"movie": "category/movies/", "drama": "category/asian-drama/"},
            ),
            "latest-kdrama": Feed(
                name="latest-kdrama",
                path="category/asian-drama/",
                dialect=QueryDialect(params={"sort": "sort", "country": "country", "release_year": "year"}),
                directive=CacheDirective(max_age=900, tier=VOLATILE),
                defaults=_current_year_korean,
            ),
        },
        default_feed="latest",
        search=Feed(
            name="search",
            path="",
            kind=PageKind.SEARCH,
            dialect=QueryDialect(params={"free_text": "s"}, page_param=None, page_path="page/{page}/"),
            directive=CacheDirective(max_age=900, tier=VOLATILE),
        ),
        detail_path="{id}/",
        detail_directive=CacheDirective(max_age=43200, tier=CATALOG),
        home_path="",
        home_directive=CacheDirective(max_age=900, tier=VOLATILE),
    )
)
