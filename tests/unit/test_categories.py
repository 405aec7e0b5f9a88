"""分组注册表与领域实体单元测试。"""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from release_sentry.modules.crawler.domain.categories import (
    ALBUM_GROUP_ORDER,
    AlbumGroup,
    AlbumGroupExtended,
    album_group_rank,
)
from release_sentry.modules.crawler.domain.entities import (
    CrawlResult,
    PlaylistStore,
    TriggerOutcome,
)


class TestAlbumGroups:
    def test_every_base_group_has_extended_image(self):
        for group in AlbumGroup:
            extended = AlbumGroupExtended.from_album_group(group)
            assert extended.value == group.value
            assert extended.parent is group
            assert extended.is_base

    @pytest.mark.parametrize(
        ("group", "parent"),
        [
            (AlbumGroupExtended.EP, AlbumGroup.SINGLE),
            (AlbumGroupExtended.REMIX, AlbumGroup.SINGLE),
            (AlbumGroupExtended.LIVE, AlbumGroup.ALBUM),
        ],
    )
    def test_extended_parents(self, group, parent):
        assert group.parent is parent
        assert not group.is_base

    def test_fixed_order_is_total(self):
        assert set(ALBUM_GROUP_ORDER) == set(AlbumGroupExtended)
        assert album_group_rank(AlbumGroup.SINGLE) == album_group_rank(
            AlbumGroupExtended.SINGLE
        )
        assert album_group_rank(AlbumGroupExtended.EP) < album_group_rank(
            AlbumGroup.COMPILATION
        )


class TestEntities:
    def test_release_identity(self, release_factory):
        first = release_factory("r1", name="A")
        second = release_factory("r1", name="B")

        assert first == second
        assert len({first, second}) == 1
        assert first.default_group == AlbumGroupExtended.SINGLE

    def test_playlist_store_is_immutable(self):
        store = PlaylistStore(album_group=AlbumGroupExtended.ALBUM, playlist_id=" ")
        updated = store.with_last_update(datetime.now(UTC))

        assert store.last_update is None
        assert updated.last_update is not None
        assert not store.is_enabled
        with pytest.raises(ValidationError):
            store.playlist_id = "P1"  # type: ignore[misc]

    def test_crawl_result_songs_added(self):
        result = CrawlResult(
            outcome=TriggerOutcome.ACCEPTED_WITH_CHANGES,
            added={AlbumGroupExtended.ALBUM: 3, AlbumGroupExtended.SINGLE: 2},
        )
        assert result.songs_added == 5
        assert CrawlResult.rejected().outcome == TriggerOutcome.REJECTED_BUSY
