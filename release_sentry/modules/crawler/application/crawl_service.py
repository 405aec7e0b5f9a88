"""抓取服务。

一次抓取的完整流程：
1. 获取抓取锁
2. 拉取关注艺人的发行
3. 过滤过期与已处理的发行
4. 分类到扩展分组
5. 写入对应歌单并标记 [NEW]
"""

import time
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta

from loguru import logger

from release_sentry.core.config import settings
from release_sentry.core.infrastructure.logging import BusinessEvents
from release_sentry.modules.crawler.application.config_cache import PlaylistStoreConfig
from release_sentry.modules.crawler.application.diff_reporter import (
    log_release_difference,
    sorted_releases,
)
from release_sentry.modules.crawler.application.remappers import (
    DEFAULT_REMAPPERS,
    Remapper,
    RemapperPipeline,
)
from release_sentry.modules.crawler.domain.categories import (
    ALBUM_GROUP_ORDER,
    AlbumGroup,
    AlbumGroupExtended,
)
from release_sentry.modules.crawler.domain.entities import (
    CrawlResult,
    PlaylistStore,
    Release,
    TriggerOutcome,
)
from release_sentry.modules.crawler.domain.exceptions import CrawlInProgressError
from release_sentry.modules.crawler.domain.guard import CrawlGuard
from release_sentry.modules.crawler.domain.ports import (
    PlaylistPublisher,
    ReleaseCatalog,
)
from release_sentry.modules.crawler.domain.repository import ReleaseRepository


def compile_result_string(added: Mapping[AlbumGroupExtended, int]) -> str | None:
    """Summary of songs added per group, e.g. ``New songs added: 5 [album: 3 / single: 2]``.

    Returns None when nothing was added.
    """
    parts = [
        f"{group.value}: {added[group]}"
        for group in ALBUM_GROUP_ORDER
        if added.get(group, 0) > 0
    ]
    if not parts:
        return None
    total = sum(count for count in added.values() if count > 0)
    return f"New songs added: {total} [{' / '.join(parts)}]"


class CrawlService:
    """抓取服务。

    职责：
    - 保证同一时间只有一次抓取
    - 过滤、去重、分类发行
    - 写入歌单并刷新 [NEW] 时间戳
    """

    def __init__(
        self,
        guard: CrawlGuard,
        config: PlaylistStoreConfig,
        catalog: ReleaseCatalog,
        publisher: PlaylistPublisher,
        release_repository: ReleaseRepository,
        remappers: tuple[Remapper, ...] = DEFAULT_REMAPPERS,
        lookback_days: int | None = None,
    ):
        self.guard = guard
        self.config = config
        self.catalog = catalog
        self.publisher = publisher
        self.release_repository = release_repository
        self.remappers = remappers
        self.lookback_days = (
            settings.RELEASE_LOOKBACK_DAYS if lookback_days is None else lookback_days
        )

    async def run(self, trigger: str = "manual") -> CrawlResult:
        """执行一次抓取。

        Args:
            trigger: 触发来源（日志用）

        Returns:
            CrawlResult: 抓取结果；锁被占用时 outcome 为 rejected_busy
        """
        try:
            async with self.guard.hold():
                return await self._crawl()
        except CrawlInProgressError:
            logger.info(f"Crawl rejected ({trigger}): another crawl is in progress")
            BusinessEvents.trigger_rejected(trigger=trigger, reason="crawl_in_progress")
            return CrawlResult.rejected()

    async def _crawl(self) -> CrawlResult:
        start_time = time.time()

        # 整次抓取使用同一份配置快照
        stores = await self.config.get_all()
        enabled_base = self.config.enabled_groups(stores, AlbumGroup)
        if not enabled_base:
            logger.warning("No playlist store is enabled, nothing to crawl")
            return CrawlResult(outcome=TriggerOutcome.ACCEPTED_NO_CHANGES)

        artist_ids = await self.catalog.get_followed_artist_ids()
        if not artist_ids:
            logger.info("No followed artists")
            return CrawlResult(outcome=TriggerOutcome.ACCEPTED_NO_CHANGES)

        releases = await self.catalog.get_releases(artist_ids, enabled_base)
        logger.debug(
            f"Fetched {len(releases)} releases from {len(artist_ids)} artists"
        )

        recent = self._filter_recent(releases)
        log_release_difference(
            releases,
            recent,
            f"Dropped releases outside the {self.lookback_days}-day lookback window:",
        )

        new_releases = await self._filter_unseen(recent)
        log_release_difference(recent, new_releases, "Dropped already seen releases:")

        if not new_releases:
            duration_ms = int((time.time() - start_time) * 1000)
            BusinessEvents.crawl_completed(
                songs_added=0, groups=[], duration_ms=duration_ms
            )
            return CrawlResult(
                outcome=TriggerOutcome.ACCEPTED_NO_CHANGES, duration_ms=duration_ms
            )

        enabled_extended = self.config.enabled_groups(stores, AlbumGroupExtended)
        pipeline = RemapperPipeline.for_enabled(enabled_extended, self.remappers)
        buckets = pipeline.classify(new_releases)

        added, published = await self._publish(buckets, stores)

        unpublished = [release for release in new_releases if release.id not in published]
        if unpublished:
            await self.release_repository.mark_seen(unpublished)

        duration_ms = int((time.time() - start_time) * 1000)
        summary = compile_result_string(added)
        BusinessEvents.crawl_completed(
            songs_added=sum(added.values()),
            groups=[group.value for group in added],
            duration_ms=duration_ms,
        )
        if summary:
            logger.info(summary)

        return CrawlResult(
            outcome=(
                TriggerOutcome.ACCEPTED_WITH_CHANGES
                if summary
                else TriggerOutcome.ACCEPTED_NO_CHANGES
            ),
            added=added,
            summary=summary,
            duration_ms=duration_ms,
        )

    def _filter_recent(self, releases: list[Release]) -> list[Release]:
        """Drop undated releases and those older than the lookback window."""
        cutoff = datetime.now(UTC).date() - timedelta(days=self.lookback_days)
        return [
            release
            for release in releases
            if release.release_date is not None and release.release_date >= cutoff
        ]

    async def _filter_unseen(self, releases: list[Release]) -> list[Release]:
        # 先按 ID 去重（保持顺序），再排除已处理的发行
        unique = list(dict.fromkeys(releases))
        if not unique:
            return []
        unseen_ids = await self.release_repository.filter_unseen(
            [release.id for release in unique]
        )
        return [release for release in unique if release.id in unseen_ids]

    async def _publish(
        self,
        buckets: Mapping[AlbumGroupExtended, list[Release]],
        stores: Mapping[AlbumGroupExtended, PlaylistStore],
    ) -> tuple[dict[AlbumGroupExtended, int], set[str]]:
        """Publish each group, marking its releases seen as soon as it is written.

        Returns the songs added per group and the IDs already marked seen.
        """
        added: dict[AlbumGroupExtended, int] = {}
        published: set[str] = set()
        for group in ALBUM_GROUP_ORDER:
            releases = buckets.get(group)
            if not releases:
                continue
            store = stores.get(group)
            if store is None or not store.is_enabled:
                logger.warning(
                    f"Skipping {len(releases)} {group.value} releases: no enabled playlist"
                )
                continue

            songs_added = await self.publisher.add_releases(
                store.playlist_id, sorted_releases(releases)
            )
            await self.release_repository.mark_seen(releases)
            published.update(release.id for release in releases)
            if songs_added > 0:
                added[group] = songs_added
                await self.publisher.mark_new(store.playlist_id)
                await self.config.refresh(group)
            logger.info(
                f"Added {songs_added} songs to {group.value} playlist {store.playlist_id}"
            )
        return added, published
