"""Logging of releases dropped between two pipeline stages."""

from collections.abc import Iterable

from loguru import logger

from release_sentry.modules.crawler.domain.entities import Release, release_sort_key


def release_difference(
    base: Iterable[Release], subtrahend: Iterable[Release]
) -> set[Release]:
    """Releases in base but not in subtrahend, by identity."""
    return set(base) - set(subtrahend)


def sorted_releases(releases: Iterable[Release]) -> list[Release]:
    return sorted(releases, key=release_sort_key)


def format_release(release: Release) -> str:
    """Readable one-liner, e.g. ``x [ALBUM] Artist - Name (2024-01-31)``."""
    release_date = release.release_date.isoformat() if release.release_date else "?"
    return (
        f"x [{release.album_group.value.upper()}] "
        f"{release.primary_artist} - {release.name or ''} ({release_date})"
    )


def log_release_difference(
    base: Iterable[Release],
    subtrahend: Iterable[Release],
    description: str | None = None,
) -> list[Release]:
    """Log the releases dropped from base, sorted.

    Returns:
        排序后的差集（便于调用方和测试检查）
    """
    difference = sorted_releases(release_difference(base, subtrahend))
    if difference:
        if description:
            logger.info(description)
        for release in difference:
            logger.debug(format_release(release))
    return difference
