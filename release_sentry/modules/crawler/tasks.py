"""抓取 Celery 任务。

包含：
- 定时抓取
- [NEW] 标记清理

两个任务都不重试：下一次调度即为重试。
"""

import asyncio

from celery import shared_task
from loguru import logger

from release_sentry.core.infrastructure.celery.queues import Queues
from release_sentry.core.infrastructure.celery.retry import is_transient
from release_sentry.core.infrastructure.database.session import async_engine
from release_sentry.modules.crawler.domain.entities import CrawlResult, MaintenanceResult
from release_sentry.modules.crawler.infrastructure.runtime import get_crawler_runtime


@shared_task(
    name="release_sentry.modules.crawler.tasks.run_crawl",
    bind=True,
    max_retries=0,
    queue=Queues.CRAWL,
)
def run_crawl(_self: object) -> str:
    """执行一次定时抓取。由 Celery Beat 按 CRAWL_INTERVAL_MIN 调用。"""
    result = asyncio.run(_run_crawl_async())
    return result.outcome.value


async def _run_crawl_async() -> CrawlResult:
    try:
        service = get_crawler_runtime().crawl_service()
        return await service.run(trigger="schedule")
    except Exception as e:
        _log_failure("run_crawl", e)
        raise
    finally:
        # 连接池绑定在本次 asyncio.run() 的事件循环上
        await async_engine.dispose()


@shared_task(
    name="release_sentry.modules.crawler.tasks.clear_obsolete_notifiers",
    bind=True,
    max_retries=0,
    queue=Queues.MAINTENANCE,
)
def clear_obsolete_notifiers(_self: object) -> str:
    """清除过期的 [NEW] 标记。"""
    result = asyncio.run(_clear_obsolete_notifiers_async())
    return result.outcome.value


async def _clear_obsolete_notifiers_async() -> MaintenanceResult:
    try:
        service = get_crawler_runtime().notifier_service()
        return await service.clear_obsolete_notifiers(trigger="schedule")
    except Exception as e:
        _log_failure("clear_obsolete_notifiers", e)
        raise
    finally:
        await async_engine.dispose()


def _log_failure(task: str, exc: Exception) -> None:
    if is_transient(exc):
        logger.warning(f"{task} failed, next scheduled run will retry: {exc}")
    else:
        logger.exception(f"Error in {task}: {exc}")
