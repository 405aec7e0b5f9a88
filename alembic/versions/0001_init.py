"""init all tables

Revision ID: 0001_init
Revises:
Create Date: 2026-10-18
"""

import uuid
from datetime import UTC, datetime

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None

# Enums
album_group_enum = sa.Enum(
    "album", "single", "compilation", "appears_on", name="albumgroup"
)
album_group_extended_enum = sa.Enum(
    "album",
    "single",
    "compilation",
    "appears_on",
    "ep",
    "remix",
    "live",
    name="albumgroupextended",
)


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    # Playlist stores table
    playlist_stores = op.create_table(
        "playlist_stores",
        *_base_columns(),
        sa.Column("album_group", album_group_extended_enum, nullable=False),
        sa.Column("playlist_id", sa.String(), nullable=True),
        sa.Column("last_update", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_playlist_stores_album_group", "playlist_stores", ["album_group"], unique=True
    )

    # Bot credentials table (single row)
    op.create_table(
        "bot_credentials",
        *_base_columns(),
        sa.Column("access_token", sa.String(), nullable=True),
        sa.Column("refresh_token", sa.String(), nullable=True),
    )

    # Seen releases table
    op.create_table(
        "seen_releases",
        *_base_columns(),
        sa.Column("release_id", sa.String(), nullable=False),
        sa.Column("album_group", album_group_enum, nullable=False),
        sa.Column("release_date", sa.Date(), nullable=True),
    )
    op.create_index(
        "ix_seen_releases_release_id", "seen_releases", ["release_id"], unique=True
    )

    # 每个分组一行，playlist_id 为空即未启用
    now = datetime.now(UTC)
    op.bulk_insert(
        playlist_stores,
        [
            {
                "id": str(uuid.uuid4()),
                "created_at": now,
                "updated_at": now,
                "album_group": group,
                "playlist_id": None,
                "last_update": None,
            }
            for group in album_group_extended_enum.enums
        ],
    )


def downgrade() -> None:
    op.drop_index("ix_seen_releases_release_id", table_name="seen_releases")
    op.drop_table("seen_releases")
    op.drop_table("bot_credentials")
    op.drop_index("ix_playlist_stores_album_group", table_name="playlist_stores")
    op.drop_table("playlist_stores")

    album_group_extended_enum.drop(op.get_bind(), checkfirst=True)
    album_group_enum.drop(op.get_bind(), checkfirst=True)
