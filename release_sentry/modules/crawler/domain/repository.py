"""Crawler repository interfaces."""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime

from release_sentry.modules.crawler.domain.categories import AlbumGroupExtended
from release_sentry.modules.crawler.domain.entities import (
    BotCredentials,
    PlaylistStore,
    Release,
)


class PlaylistStoreRepository(ABC):
    """Persistent playlist store configuration."""

    @abstractmethod
    async def load_all(self) -> list[PlaylistStore]:
        """Return every configured playlist store in one call."""
        pass

    @abstractmethod
    async def refresh_last_update(
        self, album_group: AlbumGroupExtended, at: datetime
    ) -> PlaylistStore:
        """Set last_update of the album group's store.

        Raises:
            PlaylistStoreNotFoundError: 分组不存在
        """
        pass

    @abstractmethod
    async def unset_last_update(self, album_group: AlbumGroupExtended) -> PlaylistStore:
        """Clear last_update of the album group's store.

        Raises:
            PlaylistStoreNotFoundError: 分组不存在
        """
        pass


class CredentialsRepository(ABC):
    """Persistent catalog credentials (single record)."""

    @abstractmethod
    async def load_credentials(self) -> BotCredentials:
        pass

    @abstractmethod
    async def save_credentials(
        self, access_token: str | None, refresh_token: str | None
    ) -> BotCredentials:
        pass


class ReleaseRepository(ABC):
    """Releases that have already been processed."""

    @abstractmethod
    async def filter_unseen(self, release_ids: Iterable[str]) -> set[str]:
        """Return the subset of ids that were never recorded."""
        pass

    @abstractmethod
    async def mark_seen(self, releases: Iterable[Release]) -> int:
        """Record releases as processed. Returns the number of new records."""
        pass
