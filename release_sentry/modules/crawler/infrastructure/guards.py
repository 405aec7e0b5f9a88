"""Crawl guard implementations."""

import asyncio
import threading
import uuid
from collections.abc import AsyncGenerator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager, suppress
from contextvars import ContextVar

from loguru import logger
from redis.exceptions import RedisError

from release_sentry.core.config import settings
from release_sentry.core.infrastructure.redis import (
    RedisClient,
    RedisUnavailableError,
    get_async_redis_client,
)
from release_sentry.core.infrastructure.redis.keys import RedisKeys
from release_sentry.modules.crawler.domain.guard import CrawlGuard


class InMemoryCrawlGuard(CrawlGuard):
    """Process-local guard.

    基于 threading.Lock 的非阻塞获取，可跨线程与跨事件循环使用。
    """

    def __init__(self):
        self._lock = threading.Lock()

    async def try_acquire(self) -> bool:
        return self._lock.acquire(blocking=False)

    async def release(self) -> None:
        try:
            self._lock.release()
        except RuntimeError:
            logger.warning("Crawl guard released while idle")

    async def is_busy(self) -> bool:
        return self._lock.locked()


class RedisCrawlGuard(CrawlGuard):
    """Cross-process guard backed by a Redis key (SET NX EX).

    The key holds a per-acquisition token: release and renewal only act while
    the token still matches, so a holder whose key expired cannot free the
    guard of the next holder. ``hold()`` renews the TTL until the block exits;
    the TTL only bounds how long a crashed worker keeps the guard.
    """

    def __init__(
        self,
        ttl_sec: int | None = None,
        client_factory: Callable[..., AbstractAsyncContextManager[RedisClient]] = (
            get_async_redis_client
        ),
        resource: str = RedisKeys.CRAWL_LOCK_RESOURCE,
        renew_interval_sec: float | None = None,
    ):
        self.ttl_sec = ttl_sec or settings.CRAWL_LOCK_TTL_SEC
        self.client_factory = client_factory
        self.resource = resource
        self.renew_interval_sec = renew_interval_sec or max(self.ttl_sec / 3, 1.0)
        # token 按任务上下文保存：并发的触发各自只能释放自己的锁
        self._token: ContextVar[str | None] = ContextVar(
            f"crawl_guard_token_{resource}_{id(self)}", default=None
        )

    def _client(self) -> AbstractAsyncContextManager[RedisClient]:
        # 每次调用新建连接，避免 Celery asyncio.run() 跨事件循环复用
        return self.client_factory(timeout=settings.REDIS_CLIENT_TIMEOUT_SEC)

    async def try_acquire(self) -> bool:
        token = uuid.uuid4().hex
        async with self._client() as client:
            acquired = await client.acquire_lock(self.resource, token, ttl=self.ttl_sec)
        if acquired:
            self._token.set(token)
        return acquired

    async def release(self) -> None:
        token = self._token.get()
        if token is None:
            logger.warning("Crawl guard released while idle")
            return
        self._token.set(None)
        async with self._client() as client:
            if not await client.release_lock(self.resource, token):
                logger.warning("Crawl guard expired before release, left to current holder")

    async def is_busy(self) -> bool:
        async with self._client() as client:
            return await client.is_locked(self.resource)

    @asynccontextmanager
    async def hold(self) -> AsyncGenerator[None, None]:
        async with super().hold():
            renewal = asyncio.create_task(self._keep_alive(self._token.get()))
            try:
                yield
            finally:
                renewal.cancel()
                with suppress(asyncio.CancelledError):
                    await renewal

    async def _keep_alive(self, token: str) -> None:
        while True:
            await asyncio.sleep(self.renew_interval_sec)
            try:
                async with self._client() as client:
                    extended = await client.extend_lock(self.resource, token, self.ttl_sec)
            except (RedisError, RedisUnavailableError) as e:
                logger.warning(f"Failed to renew crawl guard, retrying: {e}")
                continue
            if not extended:
                logger.error("Crawl guard lost while crawl is still running")
                return


def create_crawl_guard(backend: str | None = None) -> CrawlGuard:
    """Build the guard configured by CRAWL_GUARD_BACKEND."""
    backend = backend or settings.CRAWL_GUARD_BACKEND
    if backend == "memory":
        return InMemoryCrawlGuard()
    if backend == "redis":
        return RedisCrawlGuard()
    raise ValueError(f"Unknown crawl guard backend: {backend}")
