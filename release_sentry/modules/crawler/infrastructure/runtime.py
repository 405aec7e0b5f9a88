"""Crawler runtime wiring.

The runtime is built once per process and shared by the HTTP app and the
Celery tasks. The catalog and playlist collaborators come from the factory
named by CRAWLER_COLLABORATORS_FACTORY, or are registered explicitly through
``register_collaborators``.
"""

from collections.abc import Callable
from typing import NoReturn

from kombu.utils.imports import symbol_by_name
from loguru import logger

from release_sentry.core.config import settings
from release_sentry.modules.crawler.application.config_cache import PlaylistStoreConfig
from release_sentry.modules.crawler.application.crawl_service import CrawlService
from release_sentry.modules.crawler.application.notifier_service import (
    NotifierMaintenanceService,
)
from release_sentry.modules.crawler.domain.guard import CrawlGuard
from release_sentry.modules.crawler.domain.ports import (
    PlaylistPublisher,
    ReleaseCatalog,
)
from release_sentry.modules.crawler.domain.repository import (
    CredentialsRepository,
    PlaylistStoreRepository,
    ReleaseRepository,
)
from release_sentry.modules.crawler.infrastructure.guards import create_crawl_guard
from release_sentry.modules.crawler.infrastructure.repositories import (
    PostgreSQLCredentialsRepository,
    PostgreSQLPlaylistStoreRepository,
    PostgreSQLReleaseRepository,
)

CollaboratorsFactory = Callable[
    [PlaylistStoreConfig], tuple[ReleaseCatalog, PlaylistPublisher]
]


def load_collaborators(
    factory: str | CollaboratorsFactory, config: PlaylistStoreConfig
) -> tuple[ReleaseCatalog, PlaylistPublisher]:
    """Resolve a "module:callable" path (or a callable) and build the collaborators.

    The factory receives the config cache so it can read and update credentials.
    """
    build = symbol_by_name(factory)
    catalog, publisher = build(config)
    return catalog, publisher


def _missing_dependency(name: str) -> NoReturn:
    raise RuntimeError(f"Missing dependency {name}: call register_collaborators() first")


class CrawlerRuntime:
    """Holds the process-wide crawler collaborators."""

    def __init__(
        self,
        guard: CrawlGuard,
        store_repository: PlaylistStoreRepository,
        credentials_repository: CredentialsRepository,
        release_repository: ReleaseRepository,
        catalog: ReleaseCatalog | None = None,
        publisher: PlaylistPublisher | None = None,
    ):
        self.guard = guard
        self.config = PlaylistStoreConfig(store_repository, credentials_repository)
        self.release_repository = release_repository
        self._catalog = catalog
        self._publisher = publisher

    @property
    def catalog(self) -> ReleaseCatalog:
        if self._catalog is None:
            _missing_dependency("ReleaseCatalog")
        return self._catalog

    @property
    def publisher(self) -> PlaylistPublisher:
        if self._publisher is None:
            _missing_dependency("PlaylistPublisher")
        return self._publisher

    def register_collaborators(
        self, catalog: ReleaseCatalog, publisher: PlaylistPublisher
    ) -> None:
        self._catalog = catalog
        self._publisher = publisher
        logger.info(
            f"Crawler collaborators registered: {type(catalog).__name__}, "
            f"{type(publisher).__name__}"
        )

    def crawl_service(self) -> CrawlService:
        return CrawlService(
            guard=self.guard,
            config=self.config,
            catalog=self.catalog,
            publisher=self.publisher,
            release_repository=self.release_repository,
        )

    def notifier_service(self) -> NotifierMaintenanceService:
        return NotifierMaintenanceService(
            guard=self.guard,
            config=self.config,
            publisher=self.publisher,
        )

    @classmethod
    def from_settings(
        cls, collaborators_factory: str | CollaboratorsFactory | None = None
    ) -> "CrawlerRuntime":
        """Build the runtime from settings.

        When CRAWLER_COLLABORATORS_FACTORY (or ``collaborators_factory``) is set,
        the catalog and publisher are created right away, so Celery workers get a
        complete runtime without any extra registration step.
        """
        runtime = cls(
            guard=create_crawl_guard(),
            store_repository=PostgreSQLPlaylistStoreRepository(),
            credentials_repository=PostgreSQLCredentialsRepository(),
            release_repository=PostgreSQLReleaseRepository(),
        )
        factory = collaborators_factory or settings.CRAWLER_COLLABORATORS_FACTORY
        if factory:
            runtime.register_collaborators(*load_collaborators(factory, runtime.config))
        else:
            logger.warning(
                "CRAWLER_COLLABORATORS_FACTORY is not set, crawler triggers will fail "
                "until register_collaborators() is called"
            )
        return runtime


_runtime: CrawlerRuntime | None = None


def get_crawler_runtime() -> CrawlerRuntime:
    """获取进程级 CrawlerRuntime（延迟初始化）。"""
    global _runtime
    if _runtime is None:
        _runtime = CrawlerRuntime.from_settings()
    return _runtime


def register_collaborators(catalog: ReleaseCatalog, publisher: PlaylistPublisher) -> None:
    """Register the music service collaborators for this process."""
    get_crawler_runtime().register_collaborators(catalog, publisher)
