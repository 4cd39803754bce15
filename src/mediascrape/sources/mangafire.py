"""mangafire: 漫画站点。

详情页之外，章节列表来自两个 AJAX 端点，返回 ``{"result": ...}`` 形式的 JSON，
其中包着 HTML 片段：

- ``ajax/read/<code>/chapter/<lang>``  -> ``result.html``，每个 <a data-id> 是一章
- ``ajax/manga/<code>/chapter/<lang>`` -> ``result``，按相同顺序给出上传日期与标题

``<code>`` 是作品 id 最后一个 "." 之后的部分（``one-piece.dkw`` -> ``dkw``）。
"""

from __future__ import annotations

from datetime import datetime, timezone

from mediascrape.cache import VOLATILE, CacheDirective
from mediascrape.extractors.canonical import path_tail
from mediascrape.extractors.pagination import BOOTSTRAP_PAGER
from mediascrape.extractors.parsing import parse_chapter_count, parse_upload_date
from mediascrape.extractors.profiles import ExtractorProfile, PageKind, register_profile
from mediascrape.extractors.rules import ListRule, attr_of, text_of, texts_of
from mediascrape.fetchers.html_headers import HeaderProfile
from mediascrape.query import QueryDialect
from mediascrape.structs import FilterGroup, FilterOption

from .registry import ChapterEndpoints, Feed, SourceDefinition, register_source

NAME = "mangafire"

_MANGA_ID = path_tail("/manga/")

_UNIT = ListRule(
    "div.unit",
    {
        "title": (text_of("div.info > a"),),
        "raw_id": (attr_of("a", "href", parse=_MANGA_ID),),
        "image_url": (attr_of("img", "src"),),
        "media_type": (text_of(".type"),),
    },
    required=("title", "raw_id"),
)

register_profile(ExtractorProfile(source=NAME, kind=PageKind.LISTING, lists={"items": _UNIT}, pager=BOOTSTRAP_PAGER))

# 站点对无结果的搜索不输出专门的标记，空结果按正常结果处理
register_profile(
    ExtractorProfile(
        source=NAME,
        kind=PageKind.SEARCH,
        lists={"items": ListRule(_UNIT.item_selector, _UNIT.fields, required=_UNIT.required, expect_items=False)},
        pager=BOOTSTRAP_PAGER,
    )
)

_META = "aside.sidebar div.meta > div"

register_profile(
    ExtractorProfile(
        source=NAME,
        kind=PageKind.DETAIL,
        fields={
            "title": (text_of("div.info h1"),),
            "status": (text_of("div.info p"),),
            "thumbnail_url": (attr_of("div.poster img", "src"),),
            "synopsis": (text_of("div#synopsis"),),
            "cast": (texts_of(f"{_META}:nth-of-type(1) a"),),
            "genres": (texts_of(f"{_META}:nth-of-type(3) a"),),
        },
        lists={
            "languages": ListRule(
                "div.dropdown.responsive .dropdown-menu a.dropdown-item",
                {
                    "code": (attr_of(None, "data-code", parse=str.lower),),
                    "title": (attr_of(None, "data-title"),),
                    "count": (text_of(None, parse=parse_chapter_count),),
                },
                required=("code", "title", "count"),
                expect_items=False,
            ),
            "recommendations": ListRule(
                "section.side-manga .body a.unit",
                {
                    "title": (text_of("h6"),),
                    "raw_id": (attr_of(None, "href", parse=_MANGA_ID),),
                    "image_url": (attr_of("img", "src"),),
                    "episode_marker": (text_of(".info span"),),
                },
                required=("title", "raw_id"),
                expect_items=False,
            ),
        },
        required_fields=("title",),
    )
)

register_profile(
    ExtractorProfile(
        source=NAME,
        kind=PageKind.CHAPTER_IDS,
        lists={
            "chapters": ListRule(
                "a",
                {"title": (text_of(),), "episode_id": (attr_of(None, "data-id"),)},
                # 与元数据片段按下标对应，不在这里丢弃条目
                expect_items=False,
            )
        },
    )
)

register_profile(
    ExtractorProfile(
        source=NAME,
        kind=PageKind.CHAPTER_META,
        lists={
            "meta": ListRule(
                ".scroll-sm > *",
                {
                    "label": (attr_of("a", "title"),),
                    "time_marker": (text_of("span + span", parse=parse_upload_date),),
                },
                expect_items=False,
            )
        },
    )
)


def manga_code(manga_id: str) -> str:
    """``one-piece.dkw`` -> ``dkw``。"""
    return manga_id.rsplit(".", 1)[-1]


def scanlator_from_label(label: str | None) -> str:
    """章节标题形如 "<翻译组> - <章节名>"；没有分隔符时是单卷作品。"""
    parts = (label or "").split(" - ")
    return parts[0] if len(parts) > 1 else "Vol 1"


def _options(pairs: list[tuple[str, str]]) -> list[FilterOption]:
    return [FilterOption(name=name, value=value) for name, value in pairs]


_GENRES = [
    ("Action", "1"),
    ("Adventure", "78"),
    ("Avant Garde", "3"),
    ("Boys Love", "4"),
    ("Comedy", "5"),
    ("Demons", "77"),
    ("Drama", "6"),
    ("Ecchi", "7"),
    ("Fantasy", "79"),
    ("Girls Love", "9"),
    ("Gourmet", "10"),
    ("Harem", "11"),
    ("Horror", "530"),
    ("Isekai", "13"),
    ("Iyashikei", "531"),
    ("Josei", "15"),
    ("Kids", "532"),
    ("Magic", "539"),
    ("Mahou Shoujo", "533"),
    ("Martial Arts", "534"),
    ("Mecha", "19"),
    ("Military", "535"),
    ("Music", "21"),
    ("Mystery", "22"),
    ("Parody", "23"),
    ("Psychological", "536"),
    ("Reverse Harem", "25"),
    ("Romance", "26"),
    ("School", "73"),
    ("Sci-Fi", "28"),
    ("Seinen", "537"),
    ("Shoujo", "30"),
    ("Shounen", "31"),
    ("Slice of Life", "538"),
    ("Space", "33"),
    ("Sports", "34"),
    ("SuperPower", "75"),
    ("Supernatural", "76"),
    ("Suspense", "37"),
    ("Thriller", "38"),
    ("Vampire", "39"),
]


def filter_catalogue() -> list[FilterGroup]:
    """搜索可用的过滤项。年份列表随当前年份变化，每次调用重新生成。"""
    this_year = datetime.now(timezone.utc).year
    years = [(str(year), str(year)) for year in range(this_year, 1939, -1)]
    return [
        FilterGroup(
            key="type",
            name="Type",
            multiple=True,
            options=_options(
                [
                    ("Manga", "manga"),
                    ("One-Shot", "one_shot"),
                    ("Doujinshi", "doujinshi"),
                    ("Novel", "novel"),
                    ("Manhwa", "manhwa"),
                    ("Manhua", "manhua"),
                ]
            ),
        ),
        FilterGroup(key="genre", name="Genre", multiple=True, options=_options(_GENRES)),
        FilterGroup(
            key="status",
            name="Status",
            multiple=True,
            options=_options(
                [
                    ("Releasing", "releasing"),
                    ("Completed", "completed"),
                    ("Hiatus", "on_hiatus"),
                    ("Discontinued", "discontinued"),
                    ("Not Yet Published", "info"),
                ]
            ),
        ),
        FilterGroup(
            key="minchap",
            name="Length",
            options=_options([(f">= {n} chapters", str(n)) for n in (1, 3, 5, 10, 20, 30, 50)]),
        ),
        FilterGroup(
            key="sort",
            name="Sort",
            options=_options(
                [
                    ("Added", "recently_added"),
                    ("Updated", "recently_updated"),
                    ("Trending", "trending"),
                    ("Most Relevance", "most_relevance"),
                    ("Name", "title_az"),
                ]
            ),
        ),
        FilterGroup(key="year", name="Year", options=_options(years)),
    ]


_FILTER_PAGE = QueryDialect(
    params={"free_text": "keyword", "language": "language", "sort": "sort"},
)

_MANGA_DIRECTIVE = CacheDirective(max_age=3600, tier=VOLATILE)

register_source(
    SourceDefinition(
        name=NAME,
        headers=HeaderProfile(
            user_agent=(
                "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
                "Chrome/113.0.0.0 Safari/537.36"
            ),
            referer="https://mangafire.to",
            extra={
                "Sec-Fetch-Dest": "document",
                "Sec-Fetch-Mode": "navigate",
                "Sec-Fetch-Site": "same-origin",
                "Sec-Fetch-User": "?1",
                "Upgrade-Insecure-Requests": "1",
            },
        ),
        feeds={
            "popular": Feed(
                name="popular",
                path="filter",
                dialect=_FILTER_PAGE.with_defaults({"free_text": "", "language": "en", "sort": "trending"}),
                directive=_MANGA_DIRECTIVE,
            ),
            "latest": Feed(
                name="latest",
                path="filter",
                dialect=_FILTER_PAGE.with_defaults({"free_text": "", "language": "en", "sort": "recently_updated"}),
                directive=_MANGA_DIRECTIVE,
            ),
        },
        default_feed="popular",
        search=Feed(
            name="search",
            path="filter",
            kind=PageKind.SEARCH,
            dialect=QueryDialect(
                params={
                    "free_text": "keyword",
                    "media_type": "type[]",
                    "genres": "genre[]",
                    "status": "status[]",
                    "min_chapters": "minchap",
                    "sort": "sort",
                    "release_year": "year[]",
                    "language": "language",
                },
                defaults={"free_text": "", "language": "en"},
            ),
            directive=_MANGA_DIRECTIVE,
        ),
        detail_path="manga/{id}",
        detail_directive=_MANGA_DIRECTIVE,
        chapters=ChapterEndpoints(code_for=manga_code, scanlator_for=scanlator_from_label, directive=_MANGA_DIRECTIVE),
        filters=filter_catalogue,
    )
)
