"""抓取锁单元测试。

测试覆盖：
- 非阻塞获取与释放
- 并发获取只有一个成功
- hold() 在各种退出路径上释放
- Redis 实现的 SET NX / DEL / EXISTS 语义
- 过期持有者不能释放新持有者的锁（fakeredis）
"""

import asyncio
import threading
from contextlib import asynccontextmanager

import fakeredis
import pytest

from release_sentry.core.infrastructure.redis.client import RedisClient, RedisUnavailableError
from release_sentry.core.infrastructure.redis.keys import RedisKeys
from release_sentry.modules.crawler.domain.exceptions import CrawlInProgressError
from release_sentry.modules.crawler.infrastructure.guards import (
    InMemoryCrawlGuard,
    RedisCrawlGuard,
    create_crawl_guard,
)

pytestmark = pytest.mark.anyio


class TestInMemoryCrawlGuard:
    """InMemoryCrawlGuard 测试。"""

    async def test_acquire_and_release(self):
        guard = InMemoryCrawlGuard()

        assert await guard.is_busy() is False
        assert await guard.try_acquire() is True
        assert await guard.is_busy() is True
        assert await guard.try_acquire() is False

        await guard.release()
        assert await guard.is_busy() is False
        assert await guard.try_acquire() is True

    async def test_release_when_idle_is_harmless(self):
        guard = InMemoryCrawlGuard()
        await guard.release()
        assert await guard.is_busy() is False

    async def test_concurrent_tasks_single_winner(self):
        guard = InMemoryCrawlGuard()
        results = await asyncio.gather(*(guard.try_acquire() for _ in range(20)))
        assert results.count(True) == 1

    def test_concurrent_threads_single_winner(self):
        """各线程运行自己的事件循环，模拟 Celery 的 asyncio.run()。"""
        guard = InMemoryCrawlGuard()
        barrier = threading.Barrier(8)
        results: list[bool] = []
        results_lock = threading.Lock()

        def worker():
            barrier.wait()
            acquired = asyncio.run(guard.try_acquire())
            with results_lock:
                results.append(acquired)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results.count(True) == 1

    async def test_hold_releases_on_success(self):
        guard = InMemoryCrawlGuard()
        async with guard.hold():
            assert await guard.is_busy() is True
        assert await guard.is_busy() is False

    async def test_hold_releases_and_propagates_on_error(self):
        guard = InMemoryCrawlGuard()
        with pytest.raises(ValueError, match="boom"):
            async with guard.hold():
                raise ValueError("boom")
        assert await guard.is_busy() is False

    async def test_hold_rejects_when_busy(self):
        guard = InMemoryCrawlGuard()
        assert await guard.try_acquire() is True

        with pytest.raises(CrawlInProgressError):
            async with guard.hold():
                pytest.fail("body must not run while busy")

        # 被拒绝的调用不能释放别人持有的锁
        assert await guard.is_busy() is True


class TestRedisCrawlGuard:
    """RedisCrawlGuard 测试（Redis 客户端为 mock）。"""

    @staticmethod
    def _factory(client):
        @asynccontextmanager
        async def factory(**_kwargs):
            yield client

        return factory

    async def test_acquire_uses_lock_with_ttl(self, mock_redis_client):
        guard = RedisCrawlGuard(ttl_sec=120, client_factory=self._factory(mock_redis_client))

        assert await guard.try_acquire() is True
        resource, token = mock_redis_client.acquire_lock.await_args.args
        assert resource == "crawl"
        assert token
        assert mock_redis_client.acquire_lock.await_args.kwargs == {"ttl": 120}

    async def test_acquire_fails_when_key_exists(self, mock_redis_client):
        mock_redis_client.acquire_lock.return_value = False
        guard = RedisCrawlGuard(client_factory=self._factory(mock_redis_client))

        assert await guard.try_acquire() is False

    async def test_release_passes_own_token(self, mock_redis_client):
        mock_redis_client.is_locked.return_value = True
        guard = RedisCrawlGuard(client_factory=self._factory(mock_redis_client))

        assert await guard.try_acquire() is True
        assert await guard.is_busy() is True
        await guard.release()

        _, token = mock_redis_client.acquire_lock.await_args.args
        mock_redis_client.release_lock.assert_awaited_once_with("crawl", token)

    async def test_release_without_acquire_is_harmless(self, mock_redis_client):
        guard = RedisCrawlGuard(client_factory=self._factory(mock_redis_client))

        await guard.release()

        mock_redis_client.release_lock.assert_not_awaited()

    async def test_hold_releases_on_error(self, mock_redis_client):
        guard = RedisCrawlGuard(client_factory=self._factory(mock_redis_client))

        with pytest.raises(RuntimeError):
            async with guard.hold():
                raise RuntimeError("collaborator failed")

        mock_redis_client.release_lock.assert_awaited_once()

    async def test_redis_unavailable_propagates(self):
        @asynccontextmanager
        async def unavailable(**_kwargs):
            raise RedisUnavailableError("Redis ping timeout")
            yield  # pragma: no cover

        guard = RedisCrawlGuard(client_factory=unavailable)
        with pytest.raises(RedisUnavailableError):
            await guard.try_acquire()


class TestCreateCrawlGuard:
    def test_memory_backend(self):
        assert isinstance(create_crawl_guard("memory"), InMemoryCrawlGuard)

    def test_redis_backend(self):
        assert isinstance(create_crawl_guard("redis"), RedisCrawlGuard)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_crawl_guard("zookeeper")


@pytest.fixture
def redis_server() -> fakeredis.FakeServer:
    return fakeredis.FakeServer()


@pytest.fixture
def redis_backend(redis_server) -> fakeredis.FakeAsyncRedis:
    """直接访问同一 fake server，用于模拟过期与检查 TTL。"""
    return fakeredis.FakeAsyncRedis(server=redis_server, decode_responses=True)


@pytest.fixture
def fake_client_factory(redis_server):
    @asynccontextmanager
    async def factory(**_kwargs):
        client = RedisClient()
        client._client = fakeredis.FakeAsyncRedis(server=redis_server, decode_responses=True)
        yield client

    return factory


class TestRedisCrawlGuardOwnership:
    """RedisCrawlGuard 测试（fakeredis 服务端）。"""

    LOCK_KEY = RedisKeys.lock(RedisKeys.CRAWL_LOCK_RESOURCE)

    async def test_expired_holder_cannot_release_next_holder(
        self, fake_client_factory, redis_backend
    ):
        first = RedisCrawlGuard(ttl_sec=60, client_factory=fake_client_factory)
        second = RedisCrawlGuard(ttl_sec=60, client_factory=fake_client_factory)
        third = RedisCrawlGuard(ttl_sec=60, client_factory=fake_client_factory)

        assert await first.try_acquire() is True
        await redis_backend.delete(self.LOCK_KEY)  # TTL 到期
        assert await second.try_acquire() is True

        await first.release()

        assert await second.is_busy() is True
        assert await third.try_acquire() is False

        await second.release()
        assert await third.try_acquire() is True

    async def test_release_frees_own_lock(self, fake_client_factory, redis_backend):
        guard = RedisCrawlGuard(ttl_sec=60, client_factory=fake_client_factory)

        assert await guard.try_acquire() is True
        assert await guard.try_acquire() is False
        await guard.release()

        assert await redis_backend.exists(self.LOCK_KEY) == 0
        assert await guard.try_acquire() is True

    async def test_lock_key_expires(self, fake_client_factory, redis_backend):
        guard = RedisCrawlGuard(ttl_sec=60, client_factory=fake_client_factory)

        await guard.try_acquire()

        assert 0 < await redis_backend.ttl(self.LOCK_KEY) <= 60

    async def test_hold_renews_ttl(self, fake_client_factory, redis_backend):
        guard = RedisCrawlGuard(
            ttl_sec=60, client_factory=fake_client_factory, renew_interval_sec=0.01
        )

        async with guard.hold():
            await redis_backend.expire(self.LOCK_KEY, 5)
            await asyncio.sleep(0.1)
            assert await redis_backend.ttl(self.LOCK_KEY) > 5

        assert await guard.is_busy() is False

    async def test_renewal_does_not_touch_foreign_lock(
        self, fake_client_factory, redis_backend
    ):
        guard = RedisCrawlGuard(
            ttl_sec=60, client_factory=fake_client_factory, renew_interval_sec=0.01
        )

        async with guard.hold():
            await redis_backend.set(self.LOCK_KEY, "other-holder", ex=5)
            await asyncio.sleep(0.1)
            assert await redis_backend.ttl(self.LOCK_KEY) <= 5

        assert await redis_backend.get(self.LOCK_KEY) == "other-holder"
