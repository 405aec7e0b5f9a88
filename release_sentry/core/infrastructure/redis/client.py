"""Redis 客户端封装。

提供统一的 Redis 访问接口，支持：
- 连接管理
- 健康检查
- 分布式锁
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import TYPE_CHECKING

import redis.asyncio as aioredis
from loguru import logger

if TYPE_CHECKING:
    from redis.asyncio import Redis

from release_sentry.core.config import settings
from release_sentry.core.infrastructure.health import HealthStatus, RedisHealthResult
from release_sentry.core.infrastructure.redis.keys import RedisKeys


# 比较 token 后再删除/续期，过期的持有者无法影响新的持有者
_RELEASE_LOCK_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""

_EXTEND_LOCK_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("expire", KEYS[1], ARGV[2])
end
return 0
"""


class RedisUnavailableError(RuntimeError):
    """Redis 不可用（连接失败/超时等）。"""


class RedisClient:
    """Redis 客户端封装类。"""

    def __init__(self, url: str | None = None):
        """初始化 Redis 客户端。

        Args:
            url: Redis 连接 URL，默认使用配置中的 REDIS_URL
        """
        self._url = url or settings.REDIS_URL
        self._client: Redis | None = None

    @property
    def client(self) -> Redis:
        """获取 Redis 客户端实例（延迟初始化）。"""
        if self._client is None:
            self._client = aioredis.from_url(
                self._url,
                encoding="utf-8",
                decode_responses=True,
                socket_timeout=10.0,
                socket_connect_timeout=5.0,
                retry_on_timeout=True,
            )
        return self._client

    async def close(self) -> None:
        """关闭 Redis 连接。"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def ping(self) -> bool:
        """检查 Redis 连接是否正常。"""
        try:
            return await self.client.ping()
        except Exception as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    @asynccontextmanager
    async def ensure_available(
        self,
        *,
        timeout: float = 5.0,
        close_on_exit: bool = False,
    ) -> AsyncGenerator[RedisClient, None]:
        """确保进入上下文时 Redis 连接可用。

        Usage:
            redis_client = RedisClient()
            try:
                async with redis_client.ensure_available(timeout=5.0, close_on_exit=True):
                    ...
            except RedisUnavailableError:
                ...
        """
        try:
            ok = await asyncio.wait_for(self.client.ping(), timeout=timeout)
            if not ok:
                raise RedisUnavailableError("Redis ping returned falsy result")
        except TimeoutError as e:
            if close_on_exit:
                await self.close()
            raise RedisUnavailableError("Redis ping timeout") from e
        except RedisUnavailableError:
            if close_on_exit:
                await self.close()
            raise
        except Exception as e:
            if close_on_exit:
                await self.close()
            raise RedisUnavailableError(f"Redis ping failed: {e}") from e

        try:
            yield self
        finally:
            if close_on_exit:
                await self.close()

    async def health_check(self) -> RedisHealthResult:
        """执行 Redis 健康检查。"""
        try:
            is_connected = await self.ping()
            info = await self.client.info("server") if is_connected else {}
            return RedisHealthResult(
                status=HealthStatus.OK if is_connected else HealthStatus.ERROR,
                connected=is_connected,
                version=info.get("redis_version", "unknown"),
            )
        except Exception as e:
            return RedisHealthResult(
                status=HealthStatus.ERROR,
                connected=False,
                error=str(e),
            )

    # ============ 基础操作 ============

    async def set(
        self,
        key: str,
        value: str,
        ex: int | timedelta | None = None,
        nx: bool = False,
    ) -> bool:
        """设置字符串值。

        Args:
            key: 键名
            value: 值
            ex: 过期时间（秒或 timedelta）
            nx: 仅当键不存在时设置

        Returns:
            设置成功返回 True
        """
        return bool(await self.client.set(key, value, ex=ex, nx=nx))

    async def delete(self, *keys: str) -> int:
        """删除一个或多个键。"""
        return await self.client.delete(*keys)

    async def exists(self, *keys: str) -> int:
        """检查键是否存在。"""
        return await self.client.exists(*keys)

    # ============ 锁操作 ============

    async def acquire_lock(
        self,
        resource: str,
        token: str,
        ttl: int = 60,
    ) -> bool:
        """尝试获取分布式锁（SET NX EX，原子操作）。

        Args:
            resource: 资源名称
            token: 持有者标识，释放与续期时校验
            ttl: 锁过期时间（秒）

        Returns:
            获取成功返回 True
        """
        key = RedisKeys.lock(resource)
        return await self.set(key, token, ex=ttl, nx=True)

    async def release_lock(self, resource: str, token: str) -> bool:
        """释放分布式锁（仅当仍由 token 持有时删除）。"""
        key = RedisKeys.lock(resource)
        return bool(await self.client.eval(_RELEASE_LOCK_SCRIPT, 1, key, token))

    async def extend_lock(self, resource: str, token: str, ttl: int) -> bool:
        """续期分布式锁（仅当仍由 token 持有时重置 TTL）。"""
        key = RedisKeys.lock(resource)
        return bool(await self.client.eval(_EXTEND_LOCK_SCRIPT, 1, key, token, ttl))

    async def is_locked(self, resource: str) -> bool:
        """检查锁是否被持有（不获取锁）。"""
        key = RedisKeys.lock(resource)
        return await self.exists(key) > 0


@asynccontextmanager
async def get_async_redis_client(
    *,
    timeout: float = 5.0,
    url: str | None = None,
) -> AsyncGenerator[RedisClient, None]:
    """获取可用的 RedisClient（上下文管理器）。

    - 进入上下文时会执行 ping 校验，并带超时控制
    - 退出上下文时自动关闭连接（避免 Celery 的 asyncio.run() 跨事件循环复用问题）
    """
    client = RedisClient(url=url)
    async with client.ensure_available(timeout=timeout, close_on_exit=True):
        yield client


# 全局 Redis 客户端实例
redis_client = RedisClient()
