"""releaseSentry Backend - 新发行追踪服务入口。"""

import sentry_sdk
from fastapi import FastAPI
from fastapi.concurrency import asynccontextmanager
from fastapi.routing import APIRoute
from loguru import logger

from release_sentry.core.config import settings
from release_sentry.core.domain.exceptions import DomainException
from release_sentry.core.infrastructure.database.session import check_db_health, init_db
from release_sentry.core.infrastructure.health import HealthReport
from release_sentry.core.infrastructure.logging import setup_logging
from release_sentry.core.infrastructure.redis import redis_client
from release_sentry.core.interfaces.http.exceptions import (
    domain_exception_handler,
    global_exception_handler,
)
from release_sentry.core.interfaces.http.routers import api_router
from release_sentry.modules.crawler.application import dependencies as crawler_app_deps
from release_sentry.modules.crawler.infrastructure import (
    dependencies as crawler_infra_deps,
)
from release_sentry.modules.crawler.infrastructure.runtime import get_crawler_runtime


def custom_generate_unique_id(route: APIRoute) -> str:
    """Generate unique operation IDs for OpenAPI."""
    if route.tags:
        return f"{route.tags[0]}-{route.name}"
    return route.name


# Initialize Sentry if configured
if settings.SENTRY_DSN and settings.ENVIRONMENT != "local":
    sentry_sdk.init(
        dsn=str(settings.SENTRY_DSN),
        enable_tracing=True,
        environment=settings.ENVIRONMENT,
    )


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Application lifespan manager."""
    setup_logging()
    logger.info("Starting releaseSentry backend...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    logger.info("Initializing database connection...")
    await init_db()

    yield

    await redis_client.close()
    logger.info("Shutting down releaseSentry backend...")


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="新发行追踪服务 - 抓取关注艺人的新发行并按分组写入歌单",
    version="0.1.0",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc",
    root_path=settings.ROOTPATH,
    generate_unique_id_function=custom_generate_unique_id,
    lifespan=lifespan,
)

# Dependency overrides (application -> infrastructure)
app.dependency_overrides[crawler_app_deps.get_crawl_guard] = (
    crawler_infra_deps.get_crawl_guard
)
app.dependency_overrides[crawler_app_deps.get_playlist_store_config] = (
    crawler_infra_deps.get_playlist_store_config
)
app.dependency_overrides[crawler_app_deps.get_crawl_service] = (
    crawler_infra_deps.get_crawl_service
)
app.dependency_overrides[crawler_app_deps.get_notifier_service] = (
    crawler_infra_deps.get_notifier_service
)

# Exception handlers
app.add_exception_handler(DomainException, domain_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# Include API router
app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/health", tags=["health"], response_model=HealthReport)
async def health_check() -> HealthReport:
    """Health check endpoint.

    检查关键依赖的健康状态：
    - PostgreSQL 数据库连接
    - Redis 连接
    - 抓取是否正在进行（锁不可读时为 null）
    """
    db_health_result = await check_db_health()
    redis_health_result = await redis_client.health_check()

    crawler_busy = None
    try:
        crawler_busy = await get_crawler_runtime().guard.is_busy()
    except Exception as e:
        logger.warning(f"Crawl guard check failed: {e}")

    return HealthReport.combine(
        database=db_health_result,
        redis=redis_health_result,
        crawler_busy=crawler_busy,
    )


@app.get("/", tags=["root"])
async def root():
    """Root endpoint."""
    return {
        "message": "Welcome to releaseSentry API",
        "docs": f"{settings.API_V1_STR}/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.SERVER_PORT,
        reload=settings.ENVIRONMENT == "local",
    )
