"""Ports to the music service.

The crawler only depends on these interfaces; the concrete catalog client and
playlist writer are registered at startup.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from release_sentry.modules.crawler.domain.categories import AlbumGroup
from release_sentry.modules.crawler.domain.entities import Release


class ReleaseCatalog(ABC):
    """Read side of the music catalog."""

    @abstractmethod
    async def get_followed_artist_ids(self) -> list[str]:
        """Return the ids of every followed artist."""
        pass

    @abstractmethod
    async def get_releases(
        self,
        artist_ids: Sequence[str],
        album_groups: Sequence[AlbumGroup],
    ) -> list[Release]:
        """Return releases (with tracks) of the artists for the given base groups."""
        pass


class PlaylistPublisher(ABC):
    """Write side of the music service."""

    @abstractmethod
    async def add_releases(self, playlist_id: str, releases: Sequence[Release]) -> int:
        """Add the tracks of the releases to the playlist.

        Returns:
            添加的歌曲数量
        """
        pass

    @abstractmethod
    async def mark_new(self, playlist_id: str) -> None:
        """Add the [NEW] indicator to the playlist title."""
        pass

    @abstractmethod
    async def clear_new(self, playlist_id: str) -> None:
        """Remove the [NEW] indicator from the playlist title."""
        pass
