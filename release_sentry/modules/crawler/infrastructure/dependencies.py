"""Crawler module dependencies."""

from fastapi import Depends

from release_sentry.modules.crawler.application.config_cache import PlaylistStoreConfig
from release_sentry.modules.crawler.application.crawl_service import CrawlService
from release_sentry.modules.crawler.application.notifier_service import (
    NotifierMaintenanceService,
)
from release_sentry.modules.crawler.domain.guard import CrawlGuard
from release_sentry.modules.crawler.infrastructure.runtime import (
    CrawlerRuntime,
    get_crawler_runtime,
)


def get_runtime() -> CrawlerRuntime:
    return get_crawler_runtime()


async def get_crawl_guard(
    runtime: CrawlerRuntime = Depends(get_runtime),
) -> CrawlGuard:
    return runtime.guard


async def get_playlist_store_config(
    runtime: CrawlerRuntime = Depends(get_runtime),
) -> PlaylistStoreConfig:
    return runtime.config


async def get_crawl_service(
    runtime: CrawlerRuntime = Depends(get_runtime),
) -> CrawlService:
    return runtime.crawl_service()


async def get_notifier_service(
    runtime: CrawlerRuntime = Depends(get_runtime),
) -> NotifierMaintenanceService:
    return runtime.notifier_service()
