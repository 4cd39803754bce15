"""抓取引擎：把缓存、查询构建、抓取、解析与字段提取串成对外的公开操作。

每个公开操作都返回 EngineResult：成功时带归一化数据，失败时带稳定的错误码，
任何内部异常都不会以异常的形式交给调用方。
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from itertools import chain
from typing import Any
from urllib.parse import quote

from bs4 import BeautifulSoup
from pydantic import BaseModel, ValidationError

from .cache import CATALOG, VOLATILE, CacheDirective, CacheLookup, RevalidatingCache
from .config import AppConfig
from .errors import RequestError, ShapeCheckError, UnknownSourceError, UpstreamError
from .extractors.normalize import (
    build_detail,
    build_episode_refs,
    build_languages,
    build_listing_items,
    dedupe_by_canonical_id,
)
from .extractors.parsing import parse_chapter_number
from .extractors.profiles import ExtractorProfile, PageKind, apply_profile, get_profile
from .fetchers import BaseFetcher, HeaderProfile, RequestsFetcher, SourceDocument
from .html_processor import parse_document
from .query import build_query, cache_key, join_endpoint
from .sources import ChapterEndpoints, Feed, SourceDefinition, available_sources, get_source
from .structs import (
    ChannelEntry,
    EpisodeRef,
    FilterGroup,
    ListingPage,
    LiveTvPayload,
    PageImage,
    PaginationState,
    SearchQuery,
)

logger = logging.getLogger(__name__)

# 只对可重试的传输错误重试一次
_MAX_RETRIES = 1

_STATIC_DIRECTIVE = CacheDirective(max_age=43200, tier=CATALOG)

_LIVE_TV_FEEDS = ("streams", "channels", "categories", "countries")
_LIVE_TV_REQUIRED = ("streams", "channels")


class ErrorCode(str, Enum):
    INVALID_REQUEST = "invalid_request"
    UNKNOWN_SOURCE = "unknown_source"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    UPSTREAM_INVALID = "upstream_invalid"
    INTERNAL_ERROR = "internal_error"


@dataclass(frozen=True)
class ErrorInfo:
    code: ErrorCode
    message: str


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, mode="json")
    if isinstance(value, Mapping):
        return {key: _dump(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_dump(item) for item in value]
    return value


@dataclass(frozen=True)
class EngineResult:
    """公开操作的统一返回值。

    Attributes:
        success: 是否成功
        data: 归一化数据（失败时为 None）
        error: 失败原因
        stale: 数据来自已过期的缓存条目（后台正在刷新）
        degraded: 数据可能不完整（疑似上游结构变化或部分请求失败）
        cache_control: 对外声明的缓存约定
    """

    success: bool
    data: Any = None
    error: ErrorInfo | None = None
    stale: bool = False
    degraded: bool = False
    cache_control: str = "no-store"

    @classmethod
    def ok(
        cls,
        data: Any,
        *,
        stale: bool = False,
        degraded: bool = False,
        directive: CacheDirective | None = None,
    ) -> EngineResult:
        # 不完整的结果不允许下游缓存
        cache_control = directive.cache_control if directive is not None and not degraded else "no-store"
        return cls(success=True, data=data, stale=stale, degraded=degraded, cache_control=cache_control)

    @classmethod
    def failure(cls, code: ErrorCode, message: str) -> EngineResult:
        return cls(success=False, error=ErrorInfo(code=code, message=message))

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"success": self.success}
        if self.success:
            result["data"] = _dump(self.data)
            result["stale"] = self.stale
            result["degraded"] = self.degraded
        elif self.error is not None:
            result["error"] = {"code": self.error.code.value, "message": self.error.message}
        result["cache_control"] = self.cache_control
        return result

    def to_json(self, *, indent: int | None = None) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=indent)


@dataclass(frozen=True)
class _Payload:
    """缓存中保存的提取结果。degraded 的结果只返回，不写入缓存。"""

    data: Any
    degraded: bool = False


def _is_cacheable(payload: _Payload) -> bool:
    return not payload.degraded


@dataclass(frozen=True)
class _BoundSource:
    """站点定义 + 配置文件中的根地址与请求头。"""

    definition: SourceDefinition
    base_url: str
    profile: HeaderProfile

    @property
    def name(self) -> str:
        return self.definition.name

    def url(self, path: str) -> str:
        return join_endpoint(self.base_url, path)


def _reraise_cancelled(results: Iterable[Any]) -> None:
    for result in results:
        if isinstance(result, BaseException) and not isinstance(result, Exception):
            raise result


class ScrapeEngine:
    """内容提取与归一化引擎。

    缓存由引擎实例持有；阻塞的 requests 调用在线程池中执行。
    使用完毕后调用 ``aclose()``（或使用 ``async with``）释放后台任务和线程池。
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        fetcher: BaseFetcher | None = None,
        cache: RevalidatingCache | None = None,
    ) -> None:
        """初始化引擎。

        Args:
            config: 应用配置
            fetcher: 自定义抓取器，默认使用 RequestsFetcher
            cache: 自定义缓存，默认按配置的缓存层创建

        Raises:
            ValueError: 配置中启用了未注册的站点，或站点请求头配置不合法
        """
        self._config = config
        self._tier_ttls = {VOLATILE: config.cache.volatile_ttl, CATALOG: config.cache.catalog_ttl}

        self._sources: dict[str, _BoundSource] = {}
        for name, source_config in config.sources.items():
            try:
                definition = get_source(name)
            except UnknownSourceError as exc:
                raise ValueError(f"配置启用了未注册的站点: {name} (可用: {', '.join(available_sources())})") from exc
            self._sources[name] = _BoundSource(
                definition=definition,
                base_url=source_config.base_url,
                profile=definition.headers.override(source_config.headers),
            )

        self._fetcher = fetcher or RequestsFetcher(timeout=config.http.timeout, verify_ssl=config.http.verify_ssl)
        self._cache = cache or RevalidatingCache(self._tier_ttls)
        self._executor = ThreadPoolExecutor(max_workers=config.http.max_workers, thread_name_prefix="mediascrape-fetch")
        self._closed = False

        logger.info("ScrapeEngine 已初始化, 站点: %s", ", ".join(self._sources))

    async def __aenter__(self) -> ScrapeEngine:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    @property
    def sources(self) -> list[str]:
        return list(self._sources)

    async def aclose(self) -> None:
        """取消后台刷新任务并关闭线程池。"""
        if self._closed:
            return
        self._closed = True
        await self._cache.aclose()
        self._executor.shutdown(wait=False, cancel_futures=True)
        logger.info("ScrapeEngine 已关闭")

    def refresh_tier(self, tier: str) -> int:
        """强制某一缓存层过期，其他缓存层不受影响。返回受影响的条目数。"""
        return self._cache.expire_tier(tier)

    # ============================================================
    # 公开操作
    # ============================================================

    async def listing(
        self,
        source_id: str,
        page: int = 1,
        filters: Mapping[str, Any] | None = None,
        feed: str | None = None,
    ) -> EngineResult:
        """列表页（分类/最新/热门等）。"""
        return await self._run("listing", lambda: self._listing(source_id, page, filters, feed))

    async def detail(self, source_id: str, canonical_id: str) -> EngineResult:
        """单部作品详情。"""
        return await self._run("detail", lambda: self._detail(source_id, canonical_id))

    async def search(
        self,
        source_id: str,
        query: str | None,
        page: int = 1,
        filters: Mapping[str, Any] | None = None,
    ) -> EngineResult:
        """关键字搜索，可附带过滤项。"""
        return await self._run("search", lambda: self._search(source_id, query, page, filters))

    async def home(self, source_id: str) -> EngineResult:
        """首页分区。"""
        return await self._run("home", lambda: self._home(source_id))

    async def listing_pages(
        self,
        source_id: str,
        pages: Sequence[int],
        filters: Mapping[str, Any] | None = None,
        feed: str | None = None,
    ) -> EngineResult:
        """并发抓取多个列表页并按 canonical id 合并。部分页失败时返回 degraded 结果。"""
        return await self._run("listing_pages", lambda: self._listing_pages(source_id, pages, filters, feed))

    async def chapters(self, source_id: str, manga_id: str, language: str | None = None) -> EngineResult:
        """按语言获取章节列表。"""
        return await self._run("chapters", lambda: self._chapters(source_id, manga_id, language))

    async def chapter_pages(self, source_id: str, chapter_url: str) -> EngineResult:
        """章节图片列表。"""
        return await self._run("chapter_pages", lambda: self._chapter_pages(source_id, chapter_url))

    async def filters(self, source_id: str) -> EngineResult:
        """站点支持的静态过滤项。"""
        return await self._run("filters", lambda: self._filters(source_id))

    async def live_tv(self, source_id: str = "iptv", force_catalog: bool = False) -> EngineResult:
        """直播频道聚合。force_catalog=True 时强制刷新目录层（频道/分类/国家），流数据不受影响。"""
        return await self._run("live_tv", lambda: self._live_tv(source_id, force_catalog))

    async def channels(self, source_id: str = "daddylive") -> EngineResult:
        """24/7 频道网格。"""
        return await self._run("channels", lambda: self._channels(source_id))

    # ============================================================
    # 边界：异常 -> 带错误码的失败结果
    # ============================================================

    async def _run(self, operation: str, call: Callable[[], Awaitable[EngineResult]]) -> EngineResult:
        if self._closed:
            return EngineResult.failure(ErrorCode.INTERNAL_ERROR, "引擎已关闭")

        try:
            return await call()
        except asyncio.CancelledError:
            raise
        except (RequestError, ValidationError) as exc:
            logger.info("%s 请求参数不合法: %s", operation, exc)
            return EngineResult.failure(ErrorCode.INVALID_REQUEST, str(exc))
        except UnknownSourceError as exc:
            logger.info("%s 请求了未知站点: %s", operation, exc)
            return EngineResult.failure(ErrorCode.UNKNOWN_SOURCE, str(exc))
        except UpstreamError as exc:
            logger.warning("%s 上游不可用: %s", operation, exc)
            return EngineResult.failure(ErrorCode.UPSTREAM_UNAVAILABLE, "上游暂时不可用")
        except ShapeCheckError as exc:
            logger.warning("%s 上游返回结构异常: %s", operation, exc)
            return EngineResult.failure(ErrorCode.UPSTREAM_INVALID, "上游返回的数据结构异常")
        except Exception:  # noqa: BLE001
            logger.exception("%s 执行失败", operation)
            return EngineResult.failure(ErrorCode.INTERNAL_ERROR, "内部错误")

    # ============================================================
    # 抓取
    # ============================================================

    def _source(self, source_id: str) -> _BoundSource:
        try:
            return self._sources[source_id]
        except KeyError:
            raise UnknownSourceError(f"未知或未启用的站点: {source_id}") from None

    def _ttl(self, directive: CacheDirective) -> float:
        # 配置中的缓存层有效期是上限
        return min(directive.max_age, self._tier_ttls[directive.tier])

    async def _fetch(self, source: _BoundSource, url: str) -> SourceDocument:
        """抓取单个 URL，对可重试的传输错误按退避重试一次。

        Raises:
            UpstreamError: 重试后仍失败
        """
        loop = asyncio.get_running_loop()
        attempt = 0
        while True:
            attempt += 1
            result = await loop.run_in_executor(self._executor, self._fetcher.fetch, url, source.profile)
            if isinstance(result, SourceDocument):
                return result

            if attempt > _MAX_RETRIES or not result.retryable:
                raise UpstreamError(result)

            delay = self._config.http.retry_backoff * attempt
            logger.warning("上游请求失败, %.1f 秒后重试 (%d/%d): %s", delay, attempt, _MAX_RETRIES, result)
            await asyncio.sleep(delay)

    async def _fetch_json(self, source: _BoundSource, url: str) -> Any:
        document = await self._fetch(source, url)
        try:
            return json.loads(document.body)
        except ValueError as exc:
            raise ShapeCheckError(f"响应不是合法的 JSON: {url}") from exc

    async def _cached(
        self,
        namespace: str,
        url: str,
        directive: CacheDirective,
        loader: Callable[[], Awaitable[_Payload]],
        *,
        force: bool = False,
    ) -> CacheLookup:
        return await self._cache.fetch(
            cache_key(url, namespace=namespace),
            loader,
            tier=directive.tier,
            ttl=self._ttl(directive),
            force=force,
            cacheable=_is_cacheable,
        )

    async def _load_page(
        self,
        namespace: str,
        source: _BoundSource,
        url: str,
        directive: CacheDirective,
        build: Callable[[BeautifulSoup], _Payload],
    ) -> EngineResult:
        async def loader() -> _Payload:
            document = await self._fetch(source, url)
            return build(parse_document(document.body))

        lookup = await self._cached(namespace, url, directive, loader)
        payload: _Payload = lookup.payload
        return EngineResult.ok(payload.data, stale=lookup.stale, degraded=payload.degraded, directive=directive)

    @staticmethod
    def _report_gaps(source: _BoundSource, profile: ExtractorProfile, url: str, gaps: list[str]) -> None:
        if gaps:
            logger.warning(
                "疑似上游结构变化: %s/%s 未提取到 %s (%s)",
                source.name,
                profile.kind.value,
                ", ".join(gaps),
                url,
            )

    # ============================================================
    # 列表 / 搜索
    # ============================================================

    @staticmethod
    def _query(
        filters: Mapping[str, Any] | None,
        page: int,
        free_text: str | None = None,
    ) -> SearchQuery:
        if isinstance(page, bool) or not isinstance(page, int) or page < 1:
            raise RequestError(f"页码必须为 >= 1 的整数: {page!r}")
        return SearchQuery.from_filters(filters, page=page, free_text=free_text)

    def _build_listing(
        self,
        source: _BoundSource,
        profile: ExtractorProfile,
        url: str,
        document: BeautifulSoup,
    ) -> _Payload:
        extraction = apply_profile(document, profile)
        self._report_gaps(source, profile, url, extraction.gaps)

        items = build_listing_items(extraction.lists.get("items", []), source.base_url)
        pagination = extraction.pagination or PaginationState()
        logger.info("%s 提取到 %d 个条目, maxPage=%d", url, len(items), pagination.max_page)
        return _Payload(ListingPage(items=items, pagination=pagination), degraded=extraction.degraded)

    async def _feed_page(self, source: _BoundSource, feed: Feed, query: SearchQuery) -> EngineResult:
        url = build_query(
            source.url(feed.path_for(query)),
            query,
            feed.dialect_for(),
            path_fields=feed.path_fields(query),
        )
        profile = get_profile(source.name, feed.kind)
        return await self._load_page(
            feed.kind.value,
            source,
            url,
            feed.directive,
            lambda document: self._build_listing(source, profile, url, document),
        )

    async def _listing(
        self,
        source_id: str,
        page: int,
        filters: Mapping[str, Any] | None,
        feed_name: str | None,
    ) -> EngineResult:
        source = self._source(source_id)
        feed = source.definition.feed(feed_name)
        return await self._feed_page(source, feed, self._query(filters, page))

    async def _search(
        self,
        source_id: str,
        query: str | None,
        page: int,
        filters: Mapping[str, Any] | None,
    ) -> EngineResult:
        source = self._source(source_id)
        feed = source.definition.search
        if feed is None:
            raise RequestError(f"站点 {source_id} 不支持搜索")

        free_text = " ".join((query or "").split())
        if not free_text and not filters:
            raise RequestError("搜索关键字不能为空")
        return await self._feed_page(source, feed, self._query(filters, page, free_text=free_text or None))

    async def _listing_pages(
        self,
        source_id: str,
        pages: Sequence[int],
        filters: Mapping[str, Any] | None,
        feed_name: str | None,
    ) -> EngineResult:
        source = self._source(source_id)
        feed = source.definition.feed(feed_name)
        if not pages:
            raise RequestError("至少需要一个页码")
        queries = [self._query(filters, page) for page in dict.fromkeys(pages)]

        results = await asyncio.gather(
            *(self._feed_page(source, feed, query) for query in queries),
            return_exceptions=True,
        )
        _reraise_cancelled(results)

        succeeded = [(query.page, result) for query, result in zip(queries, results) if isinstance(result, EngineResult)]
        failed = [result for result in results if isinstance(result, Exception)]
        if not succeeded:
            raise failed[0]
        if failed:
            logger.warning("%s 多页列表中 %d/%d 页失败, 返回部分结果", source_id, len(failed), len(queries))

        pages_data: list[tuple[int, ListingPage]] = sorted((page, result.data) for page, result in succeeded)
        items = dedupe_by_canonical_id(chain.from_iterable(page.items for _, page in pages_data))
        pagination = PaginationState(
            has_next=pages_data[-1][1].pagination.has_next,
            has_prev=pages_data[0][1].pagination.has_prev,
            max_page=max(page.pagination.max_page for _, page in pages_data),
        )
        return EngineResult.ok(
            ListingPage(items=items, pagination=pagination),
            stale=any(result.stale for _, result in succeeded),
            degraded=bool(failed) or any(result.degraded for _, result in succeeded),
            directive=feed.directive,
        )

    # ============================================================
    # 首页
    # ============================================================

    def _build_home(self, source: _BoundSource, url: str, document: BeautifulSoup) -> _Payload:
        profile = get_profile(source.name, PageKind.HOME)
        extraction = apply_profile(document, profile)
        sections = {name: build_listing_items(rows, source.base_url) for name, rows in extraction.lists.items()}

        # 单个分区为空是正常的，全部为空才视为上游结构变化
        degraded = not any(sections.values())
        self._report_gaps(source, profile, url, list(sections) if degraded else [])
        return _Payload(sections, degraded=degraded)

    async def _home(self, source_id: str) -> EngineResult:
        source = self._source(source_id)
        definition = source.definition
        if definition.home_path is None:
            raise RequestError(f"站点 {source_id} 没有首页分区")

        url = source.url(definition.home_path)
        return await self._load_page(
            "home",
            source,
            url,
            definition.home_directive,
            lambda document: self._build_home(source, url, document),
        )

    # ============================================================
    # 详情 / 章节
    # ============================================================

    @staticmethod
    def _validate_id(value: str | None, label: str) -> str:
        value = (value or "").strip()
        if not value or "/" in value:
            raise RequestError(f"{label} 不合法: {value!r}")
        return value

    def _build_detail(
        self,
        source: _BoundSource,
        url: str,
        document: BeautifulSoup,
        episodes: list[EpisodeRef] | None = None,
    ) -> _Payload:
        profile = get_profile(source.name, PageKind.DETAIL)
        extraction = apply_profile(document, profile)
        self._report_gaps(source, profile, url, extraction.gaps)

        if episodes is None:
            episodes = build_episode_refs(extraction.lists.get("episodes", []))
        record = build_detail(
            extraction.fields,
            base_url=source.base_url,
            episodes=episodes,
            languages=build_languages(extraction.lists.get("languages", [])),
            recommendations=build_listing_items(extraction.lists.get("recommendations", []), source.base_url),
        )
        return _Payload(record, degraded=extraction.degraded)

    async def _detail(self, source_id: str, canonical_id: str) -> EngineResult:
        source = self._source(source_id)
        definition = source.definition
        if definition.detail_path is None:
            raise RequestError(f"站点 {source_id} 没有详情页")

        canonical_id = self._validate_id(canonical_id, "id")
        url = source.url(definition.detail_path.format(id=quote(canonical_id)))

        if definition.chapters is None:
            return await self._load_page(
                "detail",
                source,
                url,
                definition.detail_directive,
                lambda document: self._build_detail(source, url, document),
            )

        endpoints = definition.chapters
        language = endpoints.default_language

        async def loader() -> _Payload:
            # 详情页与章节列表互不依赖，并发抓取
            page_result, chapters_result = await asyncio.gather(
                self._fetch(source, url),
                self._load_chapters(source, endpoints, canonical_id, language),
                return_exceptions=True,
            )
            _reraise_cancelled((page_result, chapters_result))
            if isinstance(page_result, Exception):
                raise page_result

            if isinstance(chapters_result, Exception):
                logger.warning("%s 章节列表获取失败, 返回不含章节的详情: %s", canonical_id, chapters_result)
                payload = self._build_detail(source, url, parse_document(page_result.body), episodes=[])
                return _Payload(payload.data, degraded=True)

            episodes, chapters_degraded = chapters_result
            payload = self._build_detail(source, url, parse_document(page_result.body), episodes=episodes)
            return _Payload(payload.data, degraded=payload.degraded or chapters_degraded)

        lookup = await self._cached("detail", url, definition.detail_directive, loader)
        payload: _Payload = lookup.payload
        return EngineResult.ok(
            payload.data,
            stale=lookup.stale,
            degraded=payload.degraded,
            directive=definition.detail_directive,
        )

    async def _load_chapters(
        self,
        source: _BoundSource,
        endpoints: ChapterEndpoints,
        manga_id: str,
        language: str,
    ) -> tuple[list[EpisodeRef], bool]:
        """抓取章节 id 片段与章节元数据片段并按下标合并。

        元数据片段失败时只缺少上传日期与翻译组，结果标记为 degraded。

        Raises:
            UpstreamError: 章节 id 片段不可用
            ShapeCheckError: 章节 id 片段结构异常
        """
        code = quote(endpoints.code_for(manga_id))
        lang = quote(language)

        ids_result, meta_result = await asyncio.gather(
            self._fetch_json(source, source.url(endpoints.ids_path.format(code=code, language=lang))),
            self._fetch_json(source, source.url(endpoints.meta_path.format(code=code, language=lang))),
            return_exceptions=True,
        )
        _reraise_cancelled((ids_result, meta_result))
        if isinstance(ids_result, Exception):
            raise ids_result

        ids_html = _chapter_ids_fragment(ids_result)
        id_rows = apply_profile(parse_document(ids_html), get_profile(source.name, PageKind.CHAPTER_IDS)).lists["chapters"]

        degraded = False
        meta_rows: list[dict[str, Any]] = []
        try:
            if isinstance(meta_result, Exception):
                raise meta_result
            meta_html = _chapter_meta_fragment(meta_result)
            meta_rows = apply_profile(parse_document(meta_html), get_profile(source.name, PageKind.CHAPTER_META)).lists[
                "meta"
            ]
        except (UpstreamError, ShapeCheckError) as exc:
            logger.warning("%s 章节元数据不可用, 缺少上传日期: %s", manga_id, exc)
            degraded = True

        rows = []
        for index, row in enumerate(id_rows):
            meta = meta_rows[index] if index < len(meta_rows) else None
            scanlator = None
            if meta is not None and endpoints.scanlator_for is not None:
                scanlator = endpoints.scanlator_for(meta.get("label"))
            chapter_id = row.get("episode_id")
            rows.append(
                {
                    "title": row.get("title"),
                    "episode_id": chapter_id,
                    "episode_number": parse_chapter_number(row.get("title")),
                    "time_marker": meta.get("time_marker") if meta else None,
                    "scanlator": scanlator,
                    "url": source.url(endpoints.read_path.format(chapter_id=quote(chapter_id))) if chapter_id else None,
                }
            )

        episodes = build_episode_refs(rows)
        logger.info("%s (%s) 获取到 %d 个章节", manga_id, language, len(episodes))
        return episodes, degraded

    async def _chapters(self, source_id: str, manga_id: str, language: str | None) -> EngineResult:
        source = self._source(source_id)
        endpoints = source.definition.chapters
        if endpoints is None:
            raise RequestError(f"站点 {source_id} 没有章节列表")

        manga_id = self._validate_id(manga_id, "manga_id")
        language = (language or endpoints.default_language).strip().lower()
        url = source.url(endpoints.ids_path.format(code=quote(endpoints.code_for(manga_id)), language=quote(language)))

        async def loader() -> _Payload:
            episodes, degraded = await self._load_chapters(source, endpoints, manga_id, language)
            return _Payload(episodes, degraded=degraded)

        lookup = await self._cached("chapters", url, endpoints.directive, loader)
        payload: _Payload = lookup.payload
        return EngineResult.ok(payload.data, stale=lookup.stale, degraded=payload.degraded, directive=endpoints.directive)

    async def _chapter_pages(self, source_id: str, chapter_url: str) -> EngineResult:
        source = self._source(source_id)
        endpoints = source.definition.chapters
        if endpoints is None:
            raise RequestError(f"站点 {source_id} 没有章节图片")

        chapter_url = (chapter_url or "").strip()
        if not chapter_url.startswith(source.base_url + "/"):
            raise RequestError(f"章节地址不属于站点 {source_id}: {chapter_url!r}")

        async def loader() -> _Payload:
            data = await self._fetch_json(source, chapter_url)
            images = _chapter_images(data)
            headers = {"Referer": source.base_url}
            return _Payload([PageImage(url=url, headers=headers) for url in images])

        lookup = await self._cached("chapter_pages", chapter_url, endpoints.directive, loader)
        return EngineResult.ok(lookup.payload.data, stale=lookup.stale, directive=endpoints.directive)

    async def _filters(self, source_id: str) -> EngineResult:
        source = self._source(source_id)
        catalogue = source.definition.filters
        if catalogue is None:
            raise RequestError(f"站点 {source_id} 没有过滤项")
        groups: list[FilterGroup] = catalogue()
        return EngineResult.ok(groups, directive=_STATIC_DIRECTIVE)

    # ============================================================
    # 直播 / 频道
    # ============================================================

    async def _json_feed(self, source: _BoundSource, name: str, *, force: bool) -> CacheLookup:
        feed = source.definition.json_feeds[name]
        url = source.url(feed.path)

        async def loader() -> _Payload:
            data = await self._fetch_json(source, url)
            if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
                raise ShapeCheckError(f"{name} 不是对象数组: {url}")
            logger.info("%s 获取到 %d 条记录", name, len(data))
            return _Payload(data)

        return await self._cached(f"json:{name}", url, feed.directive, loader, force=force)

    async def _live_tv(self, source_id: str, force_catalog: bool) -> EngineResult:
        source = self._source(source_id)
        feeds = source.definition.json_feeds
        missing = [name for name in _LIVE_TV_REQUIRED if name not in feeds]
        if missing:
            raise RequestError(f"站点 {source_id} 缺少直播数据端点: {', '.join(missing)}")

        names = [name for name in _LIVE_TV_FEEDS if name in feeds]
        results = await asyncio.gather(
            *(
                self._json_feed(source, name, force=force_catalog and feeds[name].directive.tier == CATALOG)
                for name in names
            ),
            return_exceptions=True,
        )
        _reraise_cancelled(results)
        lookups = dict(zip(names, results))

        for name in _LIVE_TV_REQUIRED:
            result = lookups[name]
            if isinstance(result, Exception):
                raise result

        degraded = False
        data: dict[str, list[dict[str, Any]]] = {}
        stale = False
        for name in names:
            result = lookups[name]
            if isinstance(result, Exception):
                logger.warning("%s 获取失败, 按空列表返回: %s", name, result)
                data[name] = []
                degraded = True
                continue
            data[name] = result.payload.data
            stale = stale or result.stale

        streams = [stream for stream in data["streams"] if str(stream.get("url") or "").strip()]
        # 频道 id 不是字符串的条目无法关联
        stream_by_channel = {
            stream["channel"]: stream for stream in streams if isinstance(stream.get("channel"), str) and stream["channel"]
        }
        channels = [
            {**channel, "stream": stream_by_channel[channel["id"]]}
            for channel in data["channels"]
            if not channel.get("closed") and isinstance(channel.get("id"), str) and channel["id"] in stream_by_channel
        ]
        logger.info("直播频道聚合完成: %d 个频道, %d 条流", len(channels), len(streams))

        payload = LiveTvPayload(
            channels=channels,
            streams=streams,
            categories=data.get("categories", []),
            countries=data.get("countries", []),
        )
        return EngineResult.ok(payload, stale=stale, degraded=degraded, directive=feeds["streams"].directive)

    def _build_channels(self, source: _BoundSource, embed_path: str, url: str, document: BeautifulSoup) -> _Payload:
        profile = get_profile(source.name, PageKind.CHANNELS)
        extraction = apply_profile(document, profile)
        self._report_gaps(source, profile, url, extraction.gaps)

        entries = [
            ChannelEntry(
                name=row["name"],
                channel=row["channel"],
                embed_url=source.url(embed_path.format(channel=quote(row["channel"]))),
            )
            for row in extraction.lists.get("channels", [])
        ]
        return _Payload(entries, degraded=extraction.degraded)

    async def _channels(self, source_id: str) -> EngineResult:
        source = self._source(source_id)
        definition = source.definition
        if definition.channels_path is None or definition.embed_path is None:
            raise RequestError(f"站点 {source_id} 没有频道网格")

        embed_path = definition.embed_path
        url = source.url(definition.channels_path)
        return await self._load_page(
            "channels",
            source,
            url,
            definition.channels_directive,
            lambda document: self._build_channels(source, embed_path, url, document),
        )


# ============================================================
# JSON 片段结构检查
# ============================================================


def _result_of(data: Any) -> Any:
    if not isinstance(data, dict) or "result" not in data:
        raise ShapeCheckError("JSON 片段缺少 result 字段")
    return data["result"]


def _chapter_ids_fragment(data: Any) -> str:
    result = _result_of(data)
    html = result.get("html") if isinstance(result, dict) else None
    if not isinstance(html, str):
        raise ShapeCheckError("章节 id 片段缺少 result.html")
    return html


def _chapter_meta_fragment(data: Any) -> str:
    result = _result_of(data)
    if not isinstance(result, str):
        raise ShapeCheckError("章节元数据片段的 result 不是字符串")
    return result


def _chapter_images(data: Any) -> list[str]:
    result = _result_of(data)
    images = result.get("images") if isinstance(result, dict) else None
    if not isinstance(images, list):
        raise ShapeCheckError("章节图片片段缺少 result.images")

    urls: list[str] = []
    for image in images:
        if not isinstance(image, list) or not image or not isinstance(image[0], str):
            raise ShapeCheckError("章节图片条目结构异常")
        urls.append(image[0])
    return urls
