"""Crawler database models."""

from datetime import date, datetime

from sqlalchemy import Date, DateTime, Enum
from sqlmodel import Field

from release_sentry.core.infrastructure.database.base_model import BaseModel
from release_sentry.modules.crawler.domain.categories import (
    AlbumGroup,
    AlbumGroupExtended,
)


class PlaylistStoreModel(BaseModel, table=True):
    """Playlist store database model.

    每个扩展分组一行；playlist_id 为空表示该分组未启用。
    """

    __tablename__ = "playlist_stores"

    album_group: AlbumGroupExtended = Field(
        sa_type=Enum(
            AlbumGroupExtended,
            name="albumgroupextended",
            values_callable=lambda e: [i.value for i in e],
            create_constraint=False,
        ),
        nullable=False,
        unique=True,
        index=True,
    )
    playlist_id: str | None = Field(default=None, nullable=True)
    last_update: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),
        nullable=True,
    )


class BotCredentialsModel(BaseModel, table=True):
    """Catalog credentials (single row)."""

    __tablename__ = "bot_credentials"

    access_token: str | None = Field(default=None, nullable=True)
    refresh_token: str | None = Field(default=None, nullable=True)


class SeenReleaseModel(BaseModel, table=True):
    """Release already processed by a crawl."""

    __tablename__ = "seen_releases"

    release_id: str = Field(nullable=False, unique=True, index=True)
    album_group: AlbumGroup = Field(
        sa_type=Enum(
            AlbumGroup,
            name="albumgroup",
            values_callable=lambda e: [i.value for i in e],
            create_constraint=False,
        ),
        nullable=False,
    )
    release_date: date | None = Field(default=None, sa_type=Date, nullable=True)
