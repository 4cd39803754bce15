"""查询构建与缓存键测试"""

from __future__ import annotations

from urllib.parse import parse_qs, urlsplit

import pytest
from pydantic import ValidationError

from mediascrape.errors import RequestError
from mediascrape.query import QueryDialect, build_query, cache_key, join_endpoint, normalize_url
from mediascrape.structs import SearchQuery

_DIALECT = QueryDialect(
    params={
        "free_text": "keyword",
        "genres": "genre[]",
        "release_year": "year",
        "language": "language",
    }
)

# ============================================================
# SearchQuery 测试
# ============================================================


class TestSearchQuery:
    """结构化查询"""

    def test_from_filters_aliases(self) -> None:
        query = SearchQuery.from_filters({"genre": ["1", "5"], "year": 2024, "lang": "en"}, page=3)

        assert query.genres == ("1", "5")
        assert query.release_year == "2024"
        assert query.language == "en"
        assert query.page == 3

    def test_single_genre_string(self) -> None:
        assert SearchQuery.from_filters({"genre": "romance"}).genres == ("romance",)

    def test_genre_omitted_vs_empty(self) -> None:
        assert SearchQuery().genres is None
        assert SearchQuery.from_filters({"genre": None}).genres is None
        assert SearchQuery.from_filters({"genre": ""}).genres == ("",)

    def test_unknown_filter(self) -> None:
        with pytest.raises(RequestError, match="color"):
            SearchQuery.from_filters({"color": "red"})

    def test_free_text_whitespace_collapsed(self) -> None:
        assert SearchQuery.from_filters(None, free_text="  moon   lovers ").free_text == "moon lovers"

    def test_invalid_page(self) -> None:
        with pytest.raises(ValidationError):
            SearchQuery(page=0)


# ============================================================
# build_query 测试
# ============================================================


class TestBuildQuery:
    """上游 URL 构建"""

    def test_round_trip(self) -> None:
        """解析生成的查询串能还原出每个提供的过滤项"""
        query = SearchQuery(free_text="moon lovers", genres=("1", "5"), release_year="2016", page=2)

        url = build_query("https://mangafire.to/filter", query, _DIALECT)
        params = parse_qs(urlsplit(url).query, keep_blank_values=True)

        assert params == {"keyword": ["moon lovers"], "genre[]": ["1", "5"], "year": ["2016"], "page": ["2"]}

    def test_omitted_vs_empty(self) -> None:
        """未提供的过滤项不出现；空字符串以空值出现"""
        omitted = build_query("https://x.example/filter", SearchQuery(), _DIALECT)
        empty = build_query("https://x.example/filter", SearchQuery(free_text=""), _DIALECT)

        assert "keyword" not in parse_qs(urlsplit(omitted).query, keep_blank_values=True)
        assert parse_qs(urlsplit(empty).query, keep_blank_values=True)["keyword"] == [""]

    def test_omitted_vs_empty_genre(self) -> None:
        """空题材与未提供题材生成不同的 URL"""
        omitted = build_query("https://x.example/filter", SearchQuery(), _DIALECT)
        empty = build_query("https://x.example/filter", SearchQuery.from_filters({"genre": ""}), _DIALECT)

        assert omitted != empty
        assert "genre[]" not in parse_qs(urlsplit(omitted).query, keep_blank_values=True)
        assert parse_qs(urlsplit(empty).query, keep_blank_values=True)["genre[]"] == [""]

    def test_empty_genre_not_replaced_by_default(self) -> None:
        dialect = _DIALECT.with_defaults({"genres": "1"})

        assert build_query("https://x.example/f", SearchQuery(), dialect) == "https://x.example/f?genre%5B%5D=1&page=1"
        assert build_query("https://x.example/f", SearchQuery(genres=""), dialect) == "https://x.example/f?genre%5B%5D=&page=1"

    def test_unsupported_filter_rejected(self) -> None:
        """方言无法表达的过滤项不会被静默丢弃"""
        dialect = QueryDialect(params={"free_text": "s"}, page_param=None, page_path="page/{page}/")
        query = SearchQuery(free_text="moon", country="korean", genres=("romance",), page=2)

        with pytest.raises(RequestError, match="country, genres"):
            build_query("https://dramacool.sh/", query, dialect)

    def test_path_fields_accepted(self) -> None:
        url = build_query("https://dramacool.sh/category/movies/", SearchQuery(media_type="movie"), _DIALECT, path_fields=("media_type",))

        assert url == "https://dramacool.sh/category/movies/?page=1"

    def test_defaults_fill_missing(self) -> None:
        dialect = _DIALECT.with_defaults({"language": "en", "free_text": ""})

        url = build_query("https://mangafire.to/filter", SearchQuery(language="fr"), dialect)

        assert url == "https://mangafire.to/filter?keyword=&language=fr&page=1"

    def test_page_in_path(self) -> None:
        dialect = QueryDialect(params={"free_text": "s"}, page_param=None, page_path="page/{page}/")

        url = build_query("https://dramacool.sh/", SearchQuery(free_text="moon", page=2), dialect)

        assert url == "https://dramacool.sh/page/2/?s=moon"

    def test_join_endpoint(self) -> None:
        assert join_endpoint("https://dramacool.sh", "") == "https://dramacool.sh/"
        assert join_endpoint("https://dramacool.sh/", "/drama-x/") == "https://dramacool.sh/drama-x/"


# ============================================================
# 缓存键测试
# ============================================================


class TestCacheKey:
    """缓存键与查询参数顺序无关"""

    def test_order_independent(self) -> None:
        a = cache_key("https://mangafire.to/filter?keyword=x&page=2")
        b = cache_key("https://mangafire.to/filter?page=2&keyword=x")
        assert a == b

    def test_host_case_and_fragment(self) -> None:
        assert normalize_url("HTTPS://Dramacool.SH/a/?b=1#top") == "https://dramacool.sh/a/?b=1"

    def test_namespace_separates(self) -> None:
        url = "https://dramacool.sh/drama-x/"
        assert cache_key(url, namespace="detail") != cache_key(url, namespace="listing")

    def test_different_values_differ(self) -> None:
        assert cache_key("https://x.example/?page=1") != cache_key("https://x.example/?page=2")
