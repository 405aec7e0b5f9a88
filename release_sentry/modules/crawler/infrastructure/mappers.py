"""Crawler entity-model mappers."""

from release_sentry.modules.crawler.domain.entities import (
    BotCredentials,
    PlaylistStore,
    Release,
)
from release_sentry.modules.crawler.infrastructure.models import (
    BotCredentialsModel,
    PlaylistStoreModel,
    SeenReleaseModel,
)


class PlaylistStoreMapper:
    """Playlist store entity-model mapper."""

    def to_domain(self, model: PlaylistStoreModel) -> PlaylistStore:
        return PlaylistStore(
            album_group=model.album_group,
            playlist_id=model.playlist_id,
            last_update=model.last_update,
        )


class BotCredentialsMapper:
    def to_domain(self, model: BotCredentialsModel | None) -> BotCredentials:
        if model is None:
            return BotCredentials()
        return BotCredentials(
            access_token=model.access_token,
            refresh_token=model.refresh_token,
        )


class SeenReleaseMapper:
    def to_model(self, release: Release) -> SeenReleaseModel:
        return SeenReleaseModel(
            release_id=release.id,
            album_group=release.album_group,
            release_date=release.release_date,
        )
