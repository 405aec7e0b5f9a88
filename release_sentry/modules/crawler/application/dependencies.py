"""Crawler module application dependencies."""

from typing import NoReturn

from release_sentry.modules.crawler.application.config_cache import PlaylistStoreConfig
from release_sentry.modules.crawler.application.crawl_service import CrawlService
from release_sentry.modules.crawler.application.notifier_service import (
    NotifierMaintenanceService,
)
from release_sentry.modules.crawler.domain.guard import CrawlGuard


def _missing_dependency(name: str) -> NoReturn:
    raise RuntimeError(f"Missing dependency override for {name}")


async def get_crawl_guard() -> CrawlGuard:
    _missing_dependency("CrawlGuard")


async def get_playlist_store_config() -> PlaylistStoreConfig:
    _missing_dependency("PlaylistStoreConfig")


async def get_crawl_service() -> CrawlService:
    _missing_dependency("CrawlService")


async def get_notifier_service() -> NotifierMaintenanceService:
    _missing_dependency("NotifierMaintenanceService")
