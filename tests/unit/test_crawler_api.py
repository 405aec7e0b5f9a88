"""抓取 API 单元测试。"""

from unittest.mock import patch

import pytest

from release_sentry.core.domain.exceptions import LogUnavailableError, StorageError
from release_sentry.modules.crawler.domain.categories import AlbumGroupExtended
from release_sentry.modules.crawler.domain.entities import (
    CrawlResult,
    MaintenanceResult,
    TriggerOutcome,
)

pytestmark = pytest.mark.anyio

API = "/api/v1/crawler"


class TestCrawlEndpoint:
    async def test_crawl_with_changes(self, async_client, crawl_service_mock):
        crawl_service_mock.run.return_value = CrawlResult(
            outcome=TriggerOutcome.ACCEPTED_WITH_CHANGES,
            added={AlbumGroupExtended.ALBUM: 3, AlbumGroupExtended.SINGLE: 2},
            summary="New songs added: 5 [album: 3 / single: 2]",
        )

        response = await async_client.post(f"{API}/crawl")

        assert response.status_code == 201
        body = response.json()
        assert body["data"]["summary"] == "New songs added: 5 [album: 3 / single: 2]"
        assert body["data"]["added"] == {"album": 3, "single": 2}
        assert body["data"]["songs_added"] == 5

    async def test_crawl_without_changes(self, async_client, crawl_service_mock):
        crawl_service_mock.run.return_value = CrawlResult(
            outcome=TriggerOutcome.ACCEPTED_NO_CHANGES
        )

        response = await async_client.post(f"{API}/crawl")

        assert response.status_code == 204
        assert response.content == b""

    async def test_crawl_busy(self, async_client, crawl_service_mock):
        crawl_service_mock.run.return_value = CrawlResult.rejected()

        response = await async_client.post(f"{API}/crawl")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CRAWL_IN_PROGRESS"

    async def test_storage_failure(self, async_client, crawl_service_mock):
        crawl_service_mock.run.side_effect = StorageError("database down")

        response = await async_client.post(f"{API}/crawl")

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "STORAGE_ERROR"


class TestClearNotifiersEndpoint:
    async def test_cleared(self, async_client, notifier_service_mock):
        notifier_service_mock.clear_obsolete_notifiers.return_value = MaintenanceResult(
            outcome=TriggerOutcome.ACCEPTED_WITH_CHANGES,
            cleared=[AlbumGroupExtended.EP],
        )

        response = await async_client.post(f"{API}/clear-notifiers")

        assert response.status_code == 201
        assert response.json()["data"]["cleared"] == ["ep"]

    async def test_nothing_to_clear(self, async_client, notifier_service_mock):
        notifier_service_mock.clear_obsolete_notifiers.return_value = MaintenanceResult(
            outcome=TriggerOutcome.ACCEPTED_NO_CHANGES
        )

        response = await async_client.post(f"{API}/clear-notifiers")

        assert response.status_code == 204

    async def test_busy(self, async_client, notifier_service_mock):
        notifier_service_mock.clear_obsolete_notifiers.return_value = (
            MaintenanceResult.rejected()
        )

        response = await async_client.post(f"{API}/clear-notifiers")

        assert response.status_code == 409


class TestLogsEndpoint:
    async def test_logs(self, async_client):
        with patch(
            "release_sentry.modules.crawler.interfaces.router.read_log",
            return_value=["line 1", "line 2"],
        ) as read_log:
            response = await async_client.get(f"{API}/logs", params={"limit": 2})

        assert response.status_code == 200
        assert response.json()["data"] == ["line 1", "line 2"]
        read_log.assert_called_once_with(2)

    async def test_logs_unavailable(self, async_client):
        with patch(
            "release_sentry.modules.crawler.interfaces.router.read_log",
            side_effect=LogUnavailableError("Couldn't find log file"),
        ):
            response = await async_client.get(f"{API}/logs")

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "LOG_UNAVAILABLE"


class TestPlaylistStoresEndpoint:
    async def test_stores_in_fixed_order(self, async_client):
        response = await async_client.get(f"{API}/playlist-stores")

        assert response.status_code == 200
        data = response.json()["data"]
        assert [item["album_group"] for item in data] == [
            "album",
            "single",
            "ep",
            "remix",
            "live",
            "compilation",
            "appears_on",
        ]
        assert data[0]["enabled"] is True
        assert data[3]["enabled"] is False
