"""Crawler repository implementations.

每次调用打开独立会话（配置缓存的生命周期长于任何请求）。
"""

from collections.abc import AsyncIterator, Callable, Iterable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from datetime import datetime

from loguru import logger
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select

from release_sentry.core.domain.exceptions import StorageError
from release_sentry.core.infrastructure.database.base_model import utc_now
from release_sentry.core.infrastructure.database.session import get_async_session
from release_sentry.modules.crawler.domain.categories import AlbumGroupExtended
from release_sentry.modules.crawler.domain.entities import (
    BotCredentials,
    PlaylistStore,
    Release,
)
from release_sentry.modules.crawler.domain.exceptions import PlaylistStoreNotFoundError
from release_sentry.modules.crawler.domain.repository import (
    CredentialsRepository,
    PlaylistStoreRepository,
    ReleaseRepository,
)
from release_sentry.modules.crawler.infrastructure.mappers import (
    BotCredentialsMapper,
    PlaylistStoreMapper,
    SeenReleaseMapper,
)
from release_sentry.modules.crawler.infrastructure.models import (
    BotCredentialsModel,
    PlaylistStoreModel,
    SeenReleaseModel,
)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


@asynccontextmanager
async def _storage_session(
    session_factory: SessionFactory, operation: str
) -> AsyncIterator[AsyncSession]:
    """Open a session and translate driver failures into StorageError."""
    try:
        async with session_factory() as session:
            yield session
    except SQLAlchemyError as e:
        logger.error(f"Storage failure during {operation}: {e}")
        raise StorageError(f"Storage failure during {operation}") from e


class PostgreSQLPlaylistStoreRepository(PlaylistStoreRepository):
    """PostgreSQL playlist store repository implementation."""

    def __init__(
        self,
        session_factory: SessionFactory = get_async_session,
        mapper: PlaylistStoreMapper | None = None,
    ):
        self.session_factory = session_factory
        self.mapper = mapper or PlaylistStoreMapper()

    async def load_all(self) -> list[PlaylistStore]:
        async with _storage_session(self.session_factory, "load_all") as session:
            result = await session.execute(select(PlaylistStoreModel))
            return [self.mapper.to_domain(model) for model in result.scalars().all()]

    async def refresh_last_update(
        self, album_group: AlbumGroupExtended, at: datetime
    ) -> PlaylistStore:
        return await self._set_last_update(album_group, at)

    async def unset_last_update(self, album_group: AlbumGroupExtended) -> PlaylistStore:
        return await self._set_last_update(album_group, None)

    async def _set_last_update(
        self, album_group: AlbumGroupExtended, last_update: datetime | None
    ) -> PlaylistStore:
        async with _storage_session(self.session_factory, "set_last_update") as session:
            statement = select(PlaylistStoreModel).where(
                PlaylistStoreModel.album_group == album_group
            )
            result = await session.execute(statement)
            model = result.scalar_one_or_none()
            if model is None:
                raise PlaylistStoreNotFoundError(album_group.value)

            model.last_update = last_update
            model.updated_at = utc_now()
            session.add(model)
            await session.commit()
            await session.refresh(model)
            return self.mapper.to_domain(model)


class PostgreSQLCredentialsRepository(CredentialsRepository):
    """PostgreSQL credentials repository implementation."""

    def __init__(
        self,
        session_factory: SessionFactory = get_async_session,
        mapper: BotCredentialsMapper | None = None,
    ):
        self.session_factory = session_factory
        self.mapper = mapper or BotCredentialsMapper()

    async def load_credentials(self) -> BotCredentials:
        async with _storage_session(self.session_factory, "load_credentials") as session:
            result = await session.execute(select(BotCredentialsModel).limit(1))
            return self.mapper.to_domain(result.scalars().first())

    async def save_credentials(
        self, access_token: str | None, refresh_token: str | None
    ) -> BotCredentials:
        async with _storage_session(self.session_factory, "save_credentials") as session:
            result = await session.execute(select(BotCredentialsModel).limit(1))
            model = result.scalars().first()
            if model is None:
                model = BotCredentialsModel()
            model.access_token = access_token
            model.refresh_token = refresh_token
            model.updated_at = utc_now()
            session.add(model)
            await session.commit()
            await session.refresh(model)
            return self.mapper.to_domain(model)


class PostgreSQLReleaseRepository(ReleaseRepository):
    """PostgreSQL seen-release repository implementation."""

    def __init__(
        self,
        session_factory: SessionFactory = get_async_session,
        mapper: SeenReleaseMapper | None = None,
    ):
        self.session_factory = session_factory
        self.mapper = mapper or SeenReleaseMapper()

    async def filter_unseen(self, release_ids: Iterable[str]) -> set[str]:
        candidates = set(release_ids)
        if not candidates:
            return set()
        async with _storage_session(self.session_factory, "filter_unseen") as session:
            statement = select(SeenReleaseModel.release_id).where(
                col(SeenReleaseModel.release_id).in_(candidates)
            )
            result = await session.execute(statement)
            seen = set(result.scalars().all())
        return candidates - seen

    async def mark_seen(self, releases: Iterable[Release]) -> int:
        models = [self.mapper.to_model(release) for release in releases]
        if not models:
            return 0
        async with _storage_session(self.session_factory, "mark_seen") as session:
            stmt = (
                pg_insert(SeenReleaseModel)
                .values(
                    [
                        {
                            "id": model.id,
                            "created_at": model.created_at,
                            "updated_at": model.updated_at,
                            "release_id": model.release_id,
                            "album_group": model.album_group,
                            "release_date": model.release_date,
                        }
                        for model in models
                    ]
                )
                .on_conflict_do_nothing(index_elements=["release_id"])
                .returning(SeenReleaseModel.release_id)
            )
            result = await session.execute(stmt)
            inserted = len(result.scalars().all())
            await session.commit()
        logger.debug(f"Marked {inserted} releases as seen")
        return inserted
