"""
pytest 配置和共享 fixtures。

测试分层：
- unit/: 单元测试（不依赖外部服务，仓储与音乐服务均为内存实现）

使用方法：
    # 运行所有测试
    uv run pytest

    # 运行带覆盖率
    uv run pytest --cov=release_sentry --cov-report=html
"""

from collections.abc import AsyncGenerator, Callable, Iterable, Sequence
from datetime import UTC, date, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from release_sentry.core.config import Settings
from release_sentry.modules.crawler.application.config_cache import PlaylistStoreConfig
from release_sentry.modules.crawler.domain.categories import (
    AlbumGroup,
    AlbumGroupExtended,
)
from release_sentry.modules.crawler.domain.entities import (
    BotCredentials,
    PlaylistStore,
    Release,
    Track,
)
from release_sentry.modules.crawler.domain.exceptions import PlaylistStoreNotFoundError
from release_sentry.modules.crawler.domain.ports import (
    PlaylistPublisher,
    ReleaseCatalog,
)
from release_sentry.modules.crawler.domain.repository import (
    CredentialsRepository,
    PlaylistStoreRepository,
    ReleaseRepository,
)
from release_sentry.modules.crawler.infrastructure.guards import InMemoryCrawlGuard

# ============================================
# 配置 Fixtures
# ============================================


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """测试环境配置。"""
    return Settings(
        ENVIRONMENT="local",
        POSTGRES_DB="releasesentry_test",
        REDIS_URL="redis://localhost:6379/1",  # 使用 DB 1 隔离测试
        CRAWL_GUARD_BACKEND="memory",
        LOG_FILE_PATH=str(tmp_path / "release_sentry.log"),
    )


# ============================================
# 内存仓储
# ============================================


class InMemoryPlaylistStoreRepository(PlaylistStoreRepository):
    """In-memory playlist store table with call counting."""

    def __init__(self, stores: Iterable[PlaylistStore] = ()):
        self.stores = {store.album_group: store for store in stores}
        self.load_calls = 0
        self.fail_next_load: Exception | None = None

    async def load_all(self) -> list[PlaylistStore]:
        self.load_calls += 1
        if self.fail_next_load is not None:
            error, self.fail_next_load = self.fail_next_load, None
            raise error
        return list(self.stores.values())

    async def refresh_last_update(
        self, album_group: AlbumGroupExtended, at: datetime
    ) -> PlaylistStore:
        return self._replace(album_group, at)

    async def unset_last_update(self, album_group: AlbumGroupExtended) -> PlaylistStore:
        return self._replace(album_group, None)

    def _replace(
        self, album_group: AlbumGroupExtended, last_update: datetime | None
    ) -> PlaylistStore:
        if album_group not in self.stores:
            raise PlaylistStoreNotFoundError(album_group.value)
        store = self.stores[album_group].with_last_update(last_update)
        self.stores[album_group] = store
        return store


class InMemoryCredentialsRepository(CredentialsRepository):
    def __init__(self):
        self.credentials = BotCredentials(access_token="a0", refresh_token="r0")
        self.load_calls = 0

    async def load_credentials(self) -> BotCredentials:
        self.load_calls += 1
        return self.credentials

    async def save_credentials(
        self, access_token: str | None, refresh_token: str | None
    ) -> BotCredentials:
        self.credentials = BotCredentials(
            access_token=access_token, refresh_token=refresh_token
        )
        return self.credentials


class InMemoryReleaseRepository(ReleaseRepository):
    def __init__(self, seen_ids: Iterable[str] = ()):
        self.seen_ids = set(seen_ids)

    async def filter_unseen(self, release_ids: Iterable[str]) -> set[str]:
        return set(release_ids) - self.seen_ids

    async def mark_seen(self, releases: Iterable[Release]) -> int:
        new_ids = {release.id for release in releases} - self.seen_ids
        self.seen_ids |= new_ids
        return len(new_ids)


class InvalidatingPlaylistStoreConfig(PlaylistStoreConfig):
    """Drops its snapshot after every read, as if a writer raced each reader."""

    async def get_all(self):
        snapshot = await super().get_all()
        self.invalidate()
        return snapshot


# ============================================
# 音乐服务替身
# ============================================


class FakeReleaseCatalog(ReleaseCatalog):
    def __init__(
        self, artist_ids: Sequence[str] = ("artist-1",), releases: Sequence[Release] = ()
    ):
        self.artist_ids = list(artist_ids)
        self.releases = list(releases)
        self.requested_groups: list[AlbumGroup] | None = None

    async def get_followed_artist_ids(self) -> list[str]:
        return list(self.artist_ids)

    async def get_releases(
        self, artist_ids: Sequence[str], album_groups: Sequence[AlbumGroup]
    ) -> list[Release]:
        self.requested_groups = list(album_groups)
        return [r for r in self.releases if r.album_group in album_groups]


class FakePlaylistPublisher(PlaylistPublisher):
    """Counts one song per track and records every call."""

    def __init__(self):
        self.added: dict[str, list[Release]] = {}
        self.marked_new: list[str] = []
        self.cleared: list[str] = []

    async def add_releases(self, playlist_id: str, releases: Sequence[Release]) -> int:
        self.added.setdefault(playlist_id, []).extend(releases)
        return sum(len(release.tracks or ()) for release in releases)

    async def mark_new(self, playlist_id: str) -> None:
        self.marked_new.append(playlist_id)

    async def clear_new(self, playlist_id: str) -> None:
        self.cleared.append(playlist_id)


# ============================================
# 领域对象 Fixtures
# ============================================


def make_track(name: str = "Song", duration_ms: int | None = 200_000) -> Track:
    return Track(name=name, duration_ms=duration_ms, artist_names=("Artist",))


@pytest.fixture
def release_factory() -> Callable[..., Release]:
    """构造发行的工厂函数，默认为今天发行的单曲。"""

    def _make(
        release_id: str,
        name: str = "Release",
        album_group: AlbumGroup = AlbumGroup.SINGLE,
        release_date: date | None = None,
        tracks: Sequence[Track] | None = None,
        artist: str = "Artist",
    ) -> Release:
        return Release(
            id=release_id,
            name=name,
            artist_names=(artist,),
            album_group=album_group,
            release_date=release_date or datetime.now(UTC).date(),
            tracks=tuple(tracks) if tracks is not None else (make_track(),),
        )

    return _make


@pytest.fixture
def track_factory() -> Callable[..., Track]:
    return make_track


def enabled_stores(**playlist_ids: str) -> list[PlaylistStore]:
    """One store per extended group; groups not named are disabled."""
    return [
        PlaylistStore(album_group=group, playlist_id=playlist_ids.get(group.value))
        for group in AlbumGroupExtended
    ]


@pytest.fixture
def make_stores() -> Callable[..., list[PlaylistStore]]:
    return enabled_stores


@pytest.fixture
def store_repository() -> InMemoryPlaylistStoreRepository:
    return InMemoryPlaylistStoreRepository(
        enabled_stores(album="P-album", single="P-single", ep="P-ep")
    )


@pytest.fixture
def credentials_repository() -> InMemoryCredentialsRepository:
    return InMemoryCredentialsRepository()


@pytest.fixture
def release_repository() -> InMemoryReleaseRepository:
    return InMemoryReleaseRepository()


@pytest.fixture
def config(store_repository, credentials_repository) -> PlaylistStoreConfig:
    return PlaylistStoreConfig(store_repository, credentials_repository)


@pytest.fixture
def invalidating_config(store_repository, credentials_repository) -> PlaylistStoreConfig:
    return InvalidatingPlaylistStoreConfig(store_repository, credentials_repository)


@pytest.fixture
def guard() -> InMemoryCrawlGuard:
    return InMemoryCrawlGuard()


@pytest.fixture
def catalog() -> FakeReleaseCatalog:
    return FakeReleaseCatalog()


@pytest.fixture
def publisher() -> FakePlaylistPublisher:
    return FakePlaylistPublisher()


@pytest.fixture
def stale_timestamp() -> datetime:
    return datetime.now(UTC) - timedelta(hours=3)


# ============================================
# 数据库 Fixtures
# ============================================


@pytest.fixture
def mock_db_session() -> AsyncMock:
    """Mock 数据库会话。"""
    session = AsyncMock()
    session.add = MagicMock()
    return session


# ============================================
# Redis Fixtures
# ============================================


@pytest.fixture
def mock_redis_client() -> MagicMock:
    """Mock Redis 客户端（锁操作）。"""
    from release_sentry.core.infrastructure.redis.client import RedisClient

    client = MagicMock(spec=RedisClient)
    client.acquire_lock = AsyncMock(return_value=True)
    client.release_lock = AsyncMock(return_value=True)
    client.extend_lock = AsyncMock(return_value=True)
    client.is_locked = AsyncMock(return_value=False)
    return client


# ============================================
# HTTP Client Fixtures
# ============================================


@pytest.fixture
def crawl_service_mock() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def notifier_service_mock() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
async def async_client(
    config, crawl_service_mock, notifier_service_mock
) -> AsyncGenerator[AsyncClient, None]:
    """异步 HTTP 客户端（用于 API 测试）。"""
    from main import app
    from release_sentry.modules.crawler.application import dependencies as deps

    original_overrides = dict(app.dependency_overrides)
    app.dependency_overrides[deps.get_crawl_service] = lambda: crawl_service_mock
    app.dependency_overrides[deps.get_notifier_service] = lambda: notifier_service_mock
    app.dependency_overrides[deps.get_playlist_store_config] = lambda: config

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()
    app.dependency_overrides.update(original_overrides)
