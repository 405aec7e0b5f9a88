"""Crawler domain exceptions."""

from fastapi import status

from release_sentry.core.domain.exceptions import DomainException, StorageError


class CrawlInProgressError(DomainException):
    """Raised when a crawl is requested while another one holds the guard."""

    http_status_code = status.HTTP_409_CONFLICT
    error_code = "CRAWL_IN_PROGRESS"

    def __init__(self, message: str = "A crawl is already in progress"):
        super().__init__(message)


class PlaylistStoreNotFoundError(StorageError):
    """Raised when no playlist store exists for the album group."""

    http_status_code = status.HTTP_404_NOT_FOUND
    error_code = "PLAYLIST_STORE_NOT_FOUND"

    def __init__(self, album_group: str):
        self.album_group = album_group
        super().__init__(f"Playlist store for album group '{album_group}' not found")


class ClassificationInputError(ValueError):
    """Release data that a remapper predicate cannot evaluate."""
