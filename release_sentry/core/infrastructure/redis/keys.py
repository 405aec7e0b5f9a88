"""Redis Key 命名规范。

Redis 用于：
- Crawl Guard: 跨进程的抓取互斥锁
- Celery Broker / Result Backend
"""


class RedisKeys:
    """Redis Key 命名空间管理。"""

    # 锁
    # lock:{resource}
    LOCK_PREFIX = "lock"

    # 抓取互斥锁资源名
    CRAWL_LOCK_RESOURCE = "crawl"

    @classmethod
    def lock(cls, resource: str) -> str:
        """生成锁 key。

        Args:
            resource: 资源名称

        Returns:
            格式化的 Redis key
        """
        return f"{cls.LOCK_PREFIX}:{resource}"
