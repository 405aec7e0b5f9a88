"""Crawler domain entities."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from release_sentry.modules.crawler.domain.categories import (
    AlbumGroup,
    AlbumGroupExtended,
    album_group_rank,
)


class Track(BaseModel):
    """A song belonging to a release."""

    model_config = ConfigDict(frozen=True)

    name: str | None = Field(default=None, description="曲名")
    duration_ms: int | None = Field(default=None, ge=0, description="时长（毫秒）")
    artist_names: tuple[str, ...] = Field(default=(), description="艺人")


class Release(BaseModel):
    """A catalog release paired with its tracks.

    Releases are compared and hashed by their external id only, so sets of
    releases deduplicate by identity.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="目录中的稳定 ID")
    name: str | None = Field(default=None, description="发行名称")
    artist_names: tuple[str, ...] = Field(default=(), description="艺人")
    album_group: AlbumGroup = Field(..., description="目录声明的基础分组")
    release_date: date | None = Field(default=None, description="发行日期")
    tracks: tuple[Track, ...] | None = Field(default=None, description="曲目")

    @property
    def default_group(self) -> AlbumGroupExtended:
        """The extended group a release keeps when no remapper claims it."""
        return AlbumGroupExtended.from_album_group(self.album_group)

    @property
    def primary_artist(self) -> str:
        return self.artist_names[0] if self.artist_names else ""

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Release):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


def release_sort_key(release: Release) -> tuple[int, date, str, str, str]:
    """Total order: album group, release date, artist, name, id."""
    return (
        album_group_rank(release.album_group),
        release.release_date or date.min,
        release.primary_artist.casefold(),
        (release.name or "").casefold(),
        release.id,
    )


class PlaylistStore(BaseModel):
    """Target playlist configured for one album group.

    A blank or missing playlist_id disables the album group.
    """

    model_config = ConfigDict(frozen=True)

    album_group: AlbumGroupExtended = Field(..., description="分组")
    playlist_id: str | None = Field(default=None, description="目标歌单 ID")
    last_update: datetime | None = Field(
        default=None, description="最近一次新增歌曲的时间（[NEW] 标记）"
    )

    @property
    def is_enabled(self) -> bool:
        return bool(self.playlist_id and self.playlist_id.strip())

    def with_last_update(self, last_update: datetime | None) -> "PlaylistStore":
        """Return a copy with the given last_update."""
        return self.model_copy(update={"last_update": last_update})


class BotCredentials(BaseModel):
    """Catalog access tokens. Opaque to the crawler."""

    model_config = ConfigDict(frozen=True)

    access_token: str | None = None
    refresh_token: str | None = None


class TriggerOutcome(StrEnum):
    """Result of a crawl or maintenance trigger."""

    ACCEPTED_WITH_CHANGES = "accepted_with_changes"
    ACCEPTED_NO_CHANGES = "accepted_no_changes"
    REJECTED_BUSY = "rejected_busy"


@dataclass
class CrawlResult:
    """抓取结果封装。"""

    outcome: TriggerOutcome
    added: dict[AlbumGroupExtended, int] = field(default_factory=dict)
    summary: str | None = None
    duration_ms: int = 0

    @property
    def songs_added(self) -> int:
        return sum(self.added.values())

    @classmethod
    def rejected(cls) -> "CrawlResult":
        return cls(outcome=TriggerOutcome.REJECTED_BUSY)


@dataclass
class MaintenanceResult:
    """[NEW] 标记清理结果封装。"""

    outcome: TriggerOutcome
    cleared: list[AlbumGroupExtended] = field(default_factory=list)

    @classmethod
    def rejected(cls) -> "MaintenanceResult":
        return cls(outcome=TriggerOutcome.REJECTED_BUSY)
