"""带请求合并的 stale-while-revalidate 缓存。

设计约束：
- 读取永远不阻塞在进行中的刷新上：过期条目立即返回，同时在后台刷新。
- 同一个键同时最多只有一个刷新在进行，并发请求共享同一个结果。
- 刷新失败时保留旧条目继续提供服务，不做驱逐。
- 两个缓存层（volatile / catalog）各自独立过期，可以单独强制刷新。
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

VOLATILE = "volatile"
CATALOG = "catalog"

Loader = Callable[[], Awaitable[Any]]
Clock = Callable[[], float]


@dataclass(frozen=True)
class CacheDirective:
    """单个端点的新鲜度约定。

    Attributes:
        max_age: 缓存有效期（秒）
        tier: 所属缓存层
        stale_while_revalidate: 过期后允许继续返回旧值的窗口（秒），仅用于对外声明
    """

    max_age: int
    tier: str = VOLATILE
    stale_while_revalidate: int = 59

    @property
    def cache_control(self) -> str:
        return f"public, s-maxage={self.max_age}, stale-while-revalidate={self.stale_while_revalidate}"


@dataclass(frozen=True)
class CacheEntry:
    key: str
    payload: Any
    stored_at: float
    ttl: float
    tier: str

    def is_fresh(self, now: float) -> bool:
        return now - self.stored_at < self.ttl


@dataclass(frozen=True)
class CacheLookup:
    payload: Any
    stale: bool


@dataclass
class _Flight:
    task: asyncio.Task[Any]
    waiters: int = 0


class RevalidatingCache:
    """引擎实例持有的缓存存储，提供单飞（single-flight）刷新接口。"""

    def __init__(
        self,
        tiers: Mapping[str, float],
        *,
        clock: Clock = time.monotonic,
    ) -> None:
        if not tiers:
            raise ValueError("至少需要一个缓存层")
        for name, ttl in tiers.items():
            if ttl <= 0:
                raise ValueError(f"缓存层 {name} 的 ttl 必须 > 0")

        self._tiers = dict(tiers)
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._flights: dict[str, _Flight] = {}
        self._lock = asyncio.Lock()

    def get(self, key: str) -> CacheEntry | None:
        return self._entries.get(key)

    def put(self, key: str, payload: Any, tier: str, ttl: float | None = None) -> CacheEntry:
        """写入（替换）缓存条目。"""
        if tier not in self._tiers:
            raise KeyError(f"未知的缓存层: {tier}")
        entry = CacheEntry(
            key=key,
            payload=payload,
            stored_at=self._clock(),
            ttl=ttl if ttl is not None else self._tiers[tier],
            tier=tier,
        )
        self._entries[key] = entry
        return entry

    def expire_tier(self, tier: str) -> int:
        """把某一层的所有条目标记为过期，下次读取时触发后台刷新。返回受影响的条目数。"""
        if tier not in self._tiers:
            raise KeyError(f"未知的缓存层: {tier}")
        count = 0
        for key, entry in list(self._entries.items()):
            if entry.tier == tier:
                self._entries[key] = CacheEntry(
                    key=entry.key,
                    payload=entry.payload,
                    stored_at=entry.stored_at - entry.ttl,
                    ttl=entry.ttl,
                    tier=entry.tier,
                )
                count += 1
        logger.info("缓存层 %s 已标记过期, 条目数: %d", tier, count)
        return count

    def in_flight(self, key: str) -> bool:
        return key in self._flights

    async def fetch(
        self,
        key: str,
        loader: Loader,
        *,
        tier: str,
        ttl: float | None = None,
        force: bool = False,
        cacheable: Callable[[Any], bool] | None = None,
    ) -> CacheLookup:
        """读取缓存，必要时调用 loader 刷新。

        - 新鲜命中：直接返回。
        - 过期命中：立即返回旧值 (stale=True)，并调度一次后台刷新。
        - 未命中或 force=True：等待刷新结果；并发请求共享同一个刷新任务。
          force 刷新失败而存在旧条目时返回旧值。

        Args:
            key: 缓存键
            loader: 产生新值的协程函数
            tier: 缓存层
            ttl: 条目有效期，None 时使用缓存层默认值
            force: 忽略新鲜度，等待一次刷新
            cacheable: 判断结果是否写入缓存，返回 False 时只返回不存储

        Raises:
            loader 抛出的异常（未命中且没有旧值可用时）
        """
        entry = self._entries.get(key)

        if entry is not None and not force:
            if entry.is_fresh(self._clock()):
                return CacheLookup(payload=entry.payload, stale=False)
            logger.info("缓存过期, 返回旧值并后台刷新: %s", key[:12])
            await self._ensure_flight(key, loader, tier, ttl, cacheable)
            return CacheLookup(payload=entry.payload, stale=True)

        flight = await self._ensure_flight(key, loader, tier, ttl, cacheable)
        flight.waiters += 1
        try:
            payload = await asyncio.shield(flight.task)
        except asyncio.CancelledError:
            flight.waiters -= 1
            if flight.waiters <= 0 and not flight.task.done():
                # 最后一个等待者被取消时取消上游抓取
                logger.info("所有等待者已取消, 取消刷新: %s", key[:12])
                flight.task.cancel()
            raise
        except Exception:
            flight.waiters -= 1
            if entry is not None:
                logger.warning("强制刷新失败, 继续使用旧值: %s", key[:12])
                return CacheLookup(payload=entry.payload, stale=True)
            raise

        flight.waiters -= 1
        return CacheLookup(payload=payload, stale=False)

    async def aclose(self) -> None:
        """取消所有进行中的刷新任务。"""
        async with self._lock:
            tasks = [flight.task for flight in self._flights.values()]
            self._flights.clear()

        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _ensure_flight(
        self,
        key: str,
        loader: Loader,
        tier: str,
        ttl: float | None,
        cacheable: Callable[[Any], bool] | None,
    ) -> _Flight:
        async with self._lock:
            flight = self._flights.get(key)
            if flight is not None:
                return flight

            task = asyncio.create_task(self._refresh(key, loader, tier, ttl, cacheable), name=f"cache-refresh:{key[:12]}")
            task.add_done_callback(self._log_failure)
            flight = _Flight(task=task)
            self._flights[key] = flight
            return flight

    async def _refresh(
        self,
        key: str,
        loader: Loader,
        tier: str,
        ttl: float | None,
        cacheable: Callable[[Any], bool] | None,
    ) -> Any:
        try:
            payload = await loader()
            if cacheable is None or cacheable(payload):
                self.put(key, payload, tier, ttl)
            else:
                logger.info("结果不写入缓存: %s", key[:12])
            return payload
        finally:
            flight = self._flights.get(key)
            if flight is not None and flight.task is asyncio.current_task():
                del self._flights[key]

    @staticmethod
    def _log_failure(task: asyncio.Task[Any]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("缓存刷新失败 (%s): %s", task.get_name(), exc)
