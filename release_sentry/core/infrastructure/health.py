"""统一的健康检查类型定义。

所有基础设施组件的健康检查都使用这些类型，确保类型安全和一致性。
"""

from enum import Enum

from pydantic import BaseModel, Field


class HealthStatus(str, Enum):
    """健康检查状态枚举。"""

    OK = "ok"
    ERROR = "error"
    DEGRADED = "degraded"


class DatabaseHealthResult(BaseModel):
    """数据库健康检查结果。"""

    status: HealthStatus = Field(..., description="健康状态")
    connected: bool = Field(..., description="是否已连接")
    version: str | None = Field(None, description="PostgreSQL 版本")
    error: str | None = Field(None, description="错误信息")


class RedisHealthResult(BaseModel):
    """Redis 健康检查结果。"""

    status: HealthStatus = Field(..., description="健康状态")
    connected: bool = Field(..., description="是否已连接")
    version: str | None = Field(None, description="Redis 版本")
    error: str | None = Field(None, description="错误信息")


class HealthReport(BaseModel):
    """整体健康检查结果。"""

    status: HealthStatus = Field(..., description="整体状态")
    database: DatabaseHealthResult
    redis: RedisHealthResult
    crawler_busy: bool | None = Field(None, description="抓取是否正在进行")

    @classmethod
    def combine(
        cls,
        database: DatabaseHealthResult,
        redis: RedisHealthResult,
        crawler_busy: bool | None = None,
    ) -> "HealthReport":
        """根据各组件状态汇总整体状态。"""
        if database.status == HealthStatus.OK and redis.status == HealthStatus.OK:
            status = HealthStatus.OK
        elif database.status == HealthStatus.ERROR:
            status = HealthStatus.ERROR
        else:
            status = HealthStatus.DEGRADED
        return cls(
            status=status,
            database=database,
            redis=redis,
            crawler_busy=crawler_busy,
        )
