"""Clearing of stale [NEW] playlist indicators."""

from datetime import UTC, datetime, timedelta

from loguru import logger

from release_sentry.core.config import settings
from release_sentry.core.infrastructure.logging import BusinessEvents
from release_sentry.modules.crawler.application.config_cache import PlaylistStoreConfig
from release_sentry.modules.crawler.domain.categories import AlbumGroupExtended
from release_sentry.modules.crawler.domain.entities import (
    MaintenanceResult,
    PlaylistStore,
    TriggerOutcome,
)
from release_sentry.modules.crawler.domain.guard import CrawlGuard
from release_sentry.modules.crawler.domain.ports import PlaylistPublisher


class NotifierMaintenanceService:
    """[NEW] 标记维护服务。

    抓取进行中时跳过（仅做非独占检查，清理本身是幂等的）。
    """

    def __init__(
        self,
        guard: CrawlGuard,
        config: PlaylistStoreConfig,
        publisher: PlaylistPublisher,
        timeout_min: int | None = None,
    ):
        self.guard = guard
        self.config = config
        self.publisher = publisher
        self.timeout = timedelta(
            minutes=settings.NEW_NOTIFIER_TIMEOUT_MIN if timeout_min is None else timeout_min
        )

    async def clear_obsolete_notifiers(
        self, trigger: str = "manual"
    ) -> MaintenanceResult:
        if await self.guard.is_busy():
            BusinessEvents.trigger_rejected(trigger=trigger, reason="crawl_in_progress")
            return MaintenanceResult.rejected()

        now = datetime.now(UTC)
        stores = await self.config.get_all()
        cleared = []
        for group in self.config.enabled_groups(stores, AlbumGroupExtended):
            store = stores[group]
            if not self._is_obsolete(store, now):
                continue
            await self.publisher.clear_new(store.playlist_id)
            await self.config.unset(group)
            cleared.append(group)
            logger.info(f"Cleared [NEW] indicator of {group.value} playlist")
            BusinessEvents.notifier_cleared(
                album_group=group.value, playlist_id=store.playlist_id
            )

        return MaintenanceResult(
            outcome=(
                TriggerOutcome.ACCEPTED_WITH_CHANGES
                if cleared
                else TriggerOutcome.ACCEPTED_NO_CHANGES
            ),
            cleared=cleared,
        )

    def _is_obsolete(self, store: PlaylistStore, now: datetime) -> bool:
        if store.last_update is None:
            return False
        last_update = store.last_update
        if last_update.tzinfo is None:
            last_update = last_update.replace(tzinfo=UTC)
        return now - last_update > self.timeout
