"""Release classification into extended album groups.

Remappers are plain values evaluated in registration order; the first one
that accepts the release's default group and whose predicate holds decides
the release's extended album group.
"""

import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from release_sentry.modules.crawler.domain.categories import (
    ALBUM_GROUP_ORDER,
    AlbumGroupExtended,
)
from release_sentry.modules.crawler.domain.entities import Release
from release_sentry.modules.crawler.domain.exceptions import ClassificationInputError

EP_MIN_TRACKS = 4
EP_MAX_TRACKS = 6
EP_MAX_DURATION_MS = 30 * 60 * 1000
EP_SHORT_MAX_TRACKS = 3
EP_SHORT_MIN_DURATION_MS = 10 * 60 * 1000

_LIVE_PATTERN = re.compile(
    r"[(\[]\s*live\b|\s-\s*live\b|\blive\s+(at|from|in)\b",
    re.IGNORECASE,
)
_REMIX_PATTERN = re.compile(r"\b(remix|remixes|rmx)\b", re.IGNORECASE)


def _release_name(release: Release) -> str:
    if release.name is None:
        raise ClassificationInputError(f"Release {release.id} has no name")
    return release.name


def _track_names(release: Release) -> list[str]:
    if not release.tracks:
        raise ClassificationInputError(f"Release {release.id} has no tracks")
    names = []
    for track in release.tracks:
        if track.name is None:
            raise ClassificationInputError(f"Release {release.id} has an unnamed track")
        names.append(track.name)
    return names


def _matches_name_or_majority(release: Release, pattern: re.Pattern[str]) -> bool:
    if pattern.search(_release_name(release)):
        return True
    names = _track_names(release)
    matching = sum(1 for name in names if pattern.search(name))
    return matching * 2 > len(names)


def qualifies_as_live(release: Release) -> bool:
    """Release name or more than half of its tracks carry a live marker."""
    return _matches_name_or_majority(release, _LIVE_PATTERN)


def qualifies_as_remix(release: Release) -> bool:
    """Release name or more than half of its tracks mention a remix."""
    return _matches_name_or_majority(release, _REMIX_PATTERN)


def qualifies_as_ep(release: Release) -> bool:
    """EP heuristic.

    - 4 到 6 首，总时长不足 30 分钟
    - 1 到 3 首，总时长至少 10 分钟
    """
    if not release.tracks:
        raise ClassificationInputError(f"Release {release.id} has no tracks")
    durations = []
    for track in release.tracks:
        if track.duration_ms is None:
            raise ClassificationInputError(
                f"Release {release.id} has a track without duration"
            )
        durations.append(track.duration_ms)

    count = len(durations)
    total = sum(durations)
    if EP_MIN_TRACKS <= count <= EP_MAX_TRACKS:
        return total < EP_MAX_DURATION_MS
    if count <= EP_SHORT_MAX_TRACKS:
        return total >= EP_SHORT_MIN_DURATION_MS
    return False


@dataclass(frozen=True)
class Remapper:
    """A rule promoting releases into an extended album group."""

    album_group: AlbumGroupExtended
    allowed_sources: frozenset[AlbumGroupExtended]
    qualifies: Callable[[Release], bool]
    name: str = ""

    def is_allowed_source(self, album_group: AlbumGroupExtended) -> bool:
        return album_group in self.allowed_sources


# Registration order decides ties: live beats remix beats EP
DEFAULT_REMAPPERS: tuple[Remapper, ...] = (
    Remapper(
        album_group=AlbumGroupExtended.LIVE,
        allowed_sources=frozenset({AlbumGroupExtended.ALBUM, AlbumGroupExtended.SINGLE}),
        qualifies=qualifies_as_live,
        name="live",
    ),
    Remapper(
        album_group=AlbumGroupExtended.REMIX,
        allowed_sources=frozenset({AlbumGroupExtended.ALBUM, AlbumGroupExtended.SINGLE}),
        qualifies=qualifies_as_remix,
        name="remix",
    ),
    Remapper(
        album_group=AlbumGroupExtended.EP,
        allowed_sources=frozenset({AlbumGroupExtended.SINGLE}),
        qualifies=qualifies_as_ep,
        name="ep",
    ),
)


class RemapperPipeline:
    """Ordered list of remappers applied to each release."""

    def __init__(self, remappers: Sequence[Remapper] = DEFAULT_REMAPPERS):
        self.remappers = tuple(remappers)

    @classmethod
    def for_enabled(
        cls,
        enabled_groups: Iterable[AlbumGroupExtended],
        remappers: Sequence[Remapper] = DEFAULT_REMAPPERS,
    ) -> "RemapperPipeline":
        """Pipeline restricted to remappers whose group has an enabled playlist."""
        enabled = set(enabled_groups)
        return cls([remapper for remapper in remappers if remapper.album_group in enabled])

    def classify_release(self, release: Release) -> AlbumGroupExtended:
        source = release.default_group
        for remapper in self.remappers:
            if not remapper.is_allowed_source(source):
                continue
            try:
                if remapper.qualifies(release):
                    return remapper.album_group
            except ClassificationInputError:
                continue
        return source

    def classify(
        self, releases: Iterable[Release]
    ) -> dict[AlbumGroupExtended, list[Release]]:
        """Bucket releases by extended group; input order kept within a bucket."""
        buckets: dict[AlbumGroupExtended, list[Release]] = {}
        for release in releases:
            buckets.setdefault(self.classify_release(release), []).append(release)
        return {group: buckets[group] for group in ALBUM_GROUP_ORDER if group in buckets}
