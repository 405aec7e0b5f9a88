"""Playlist store configuration cache.

缓存 AlbumGroupExtended → PlaylistStore 映射：
- 首次读取时一次性加载
- 写入后失效，下次读取重新加载
- 凭证单独缓存
"""

import threading
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from types import MappingProxyType

from loguru import logger

from release_sentry.modules.crawler.domain.categories import (
    AlbumGroup,
    AlbumGroupExtended,
    album_group_rank,
    to_extended,
)
from release_sentry.modules.crawler.domain.entities import BotCredentials, PlaylistStore
from release_sentry.modules.crawler.domain.repository import (
    CredentialsRepository,
    PlaylistStoreRepository,
)


class PlaylistStoreConfig:
    """Lazily loaded, invalidation-driven view of the playlist store table.

    Readers always see a complete snapshot. Loads run outside the lock; a load
    that overlaps an invalidation is handed to its caller but never installed.
    """

    def __init__(
        self,
        store_repository: PlaylistStoreRepository,
        credentials_repository: CredentialsRepository,
    ):
        self.store_repository = store_repository
        self.credentials_repository = credentials_repository
        self._lock = threading.Lock()
        self._snapshot: Mapping[AlbumGroupExtended, PlaylistStore] | None = None
        self._generation = 0
        self._credentials: BotCredentials | None = None

    async def get_all(self) -> Mapping[AlbumGroupExtended, PlaylistStore]:
        """Return the current snapshot, loading it if absent."""
        with self._lock:
            if self._snapshot is not None:
                return self._snapshot
            generation = self._generation

        stores = await self.store_repository.load_all()
        snapshot = MappingProxyType({store.album_group: store for store in stores})

        with self._lock:
            if self._generation == generation:
                self._snapshot = snapshot
                logger.debug(f"Playlist store config loaded ({len(snapshot)} stores)")
            else:
                logger.debug("Playlist store config invalidated during load, not cached")
        return snapshot

    async def get(
        self, album_group: AlbumGroup | AlbumGroupExtended
    ) -> PlaylistStore | None:
        return (await self.get_all()).get(to_extended(album_group))

    async def get_enabled(
        self, universe: Iterable[AlbumGroup | AlbumGroupExtended]
    ) -> list[AlbumGroup | AlbumGroupExtended]:
        """Groups of the universe with an enabled playlist, in the fixed order."""
        return self.enabled_groups(await self.get_all(), universe)

    @staticmethod
    def enabled_groups(
        snapshot: Mapping[AlbumGroupExtended, PlaylistStore],
        universe: Iterable[AlbumGroup | AlbumGroupExtended],
    ) -> list[AlbumGroup | AlbumGroupExtended]:
        """Same as get_enabled, over a snapshot already in hand."""
        wanted = list(universe)
        enabled = [
            group
            for group in wanted
            if (store := snapshot.get(to_extended(group))) is not None
            and store.is_enabled
        ]
        return sorted(enabled, key=album_group_rank)

    async def get_enabled_album_groups(self) -> list[AlbumGroup]:
        return await self.get_enabled(AlbumGroup)

    async def get_enabled_extended_groups(self) -> list[AlbumGroupExtended]:
        return await self.get_enabled(AlbumGroupExtended)

    async def refresh(self, album_group: AlbumGroupExtended) -> None:
        """Stamp the store's last_update with the current time."""
        await self.store_repository.refresh_last_update(album_group, datetime.now(UTC))
        self.invalidate()

    async def unset(self, album_group: AlbumGroupExtended) -> None:
        """Clear the store's last_update."""
        await self.store_repository.unset_last_update(album_group)
        self.invalidate()

    def invalidate(self) -> None:
        with self._lock:
            self._snapshot = None
            self._generation += 1

    # ============ 凭证 ============

    async def get_credentials(self) -> BotCredentials:
        with self._lock:
            if self._credentials is not None:
                return self._credentials
        credentials = await self.credentials_repository.load_credentials()
        with self._lock:
            if self._credentials is None:
                self._credentials = credentials
            return self._credentials

    async def update_tokens(
        self, access_token: str | None, refresh_token: str | None
    ) -> BotCredentials:
        """Persist new tokens and replace the cached credentials."""
        credentials = await self.credentials_repository.save_credentials(
            access_token, refresh_token
        )
        with self._lock:
            self._credentials = credentials
        return credentials
