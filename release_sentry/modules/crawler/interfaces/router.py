"""Crawler API routes."""

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from release_sentry.core.infrastructure.logging import read_log
from release_sentry.core.interfaces.http.response import ApiResponse, ErrorResponse
from release_sentry.modules.crawler.application.config_cache import PlaylistStoreConfig
from release_sentry.modules.crawler.application.crawl_service import CrawlService
from release_sentry.modules.crawler.application.dependencies import (
    get_crawl_service,
    get_notifier_service,
    get_playlist_store_config,
)
from release_sentry.modules.crawler.application.notifier_service import (
    NotifierMaintenanceService,
)
from release_sentry.modules.crawler.domain.categories import ALBUM_GROUP_ORDER
from release_sentry.modules.crawler.domain.entities import TriggerOutcome
from release_sentry.modules.crawler.domain.exceptions import CrawlInProgressError
from release_sentry.modules.crawler.interfaces.schemas import (
    ClearNotifiersResponse,
    CrawlResultResponse,
    PlaylistStoreResponse,
)

router = APIRouter(prefix="/crawler", tags=["crawler"])


def _busy_response() -> JSONResponse:
    error = CrawlInProgressError()
    return JSONResponse(
        status_code=error.http_status_code,
        content=ErrorResponse.create(code=error.error_code, message=error.message).model_dump(),
    )


@router.post(
    "/crawl",
    response_model=ApiResponse[CrawlResultResponse],
    status_code=status.HTTP_201_CREATED,
    summary="手动触发抓取",
    description="201 表示有新增歌曲，204 表示没有新发行，409 表示已有抓取在进行",
    responses={
        status.HTTP_204_NO_CONTENT: {"description": "没有新增歌曲"},
        status.HTTP_409_CONFLICT: {"model": ErrorResponse, "description": "抓取进行中"},
    },
)
async def trigger_crawl(
    service: CrawlService = Depends(get_crawl_service),
):
    result = await service.run(trigger="http")

    if result.outcome == TriggerOutcome.REJECTED_BUSY:
        return _busy_response()
    if result.outcome == TriggerOutcome.ACCEPTED_NO_CHANGES:
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return ApiResponse.success(
        data=CrawlResultResponse(
            summary=result.summary,
            songs_added=result.songs_added,
            added={group.value: count for group, count in result.added.items()},
            duration_ms=result.duration_ms,
        ),
        message=result.summary or "Crawl finished",
        code=status.HTTP_201_CREATED,
    )


@router.post(
    "/clear-notifiers",
    response_model=ApiResponse[ClearNotifiersResponse],
    status_code=status.HTTP_201_CREATED,
    summary="清除过期的 [NEW] 标记",
    responses={
        status.HTTP_204_NO_CONTENT: {"description": "没有需要清除的标记"},
        status.HTTP_409_CONFLICT: {"model": ErrorResponse, "description": "抓取进行中"},
    },
)
async def clear_notifiers(
    service: NotifierMaintenanceService = Depends(get_notifier_service),
):
    result = await service.clear_obsolete_notifiers(trigger="http")

    if result.outcome == TriggerOutcome.REJECTED_BUSY:
        return _busy_response()
    if result.outcome == TriggerOutcome.ACCEPTED_NO_CHANGES:
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return ApiResponse.success(
        data=ClearNotifiersResponse(cleared=[group.value for group in result.cleared]),
        message="Notifiers cleared",
        code=status.HTTP_201_CREATED,
    )


@router.get(
    "/logs",
    response_model=ApiResponse[list[str]],
    summary="读取日志",
    description="返回日志文件的前 limit 行；limit 为负数时返回全部",
)
async def get_logs(
    limit: int | None = Query(None, description="行数"),
) -> ApiResponse[list[str]]:
    lines = await run_in_threadpool(read_log, limit)
    return ApiResponse.success(data=lines, meta={"lines": len(lines)})


@router.get(
    "/playlist-stores",
    response_model=ApiResponse[list[PlaylistStoreResponse]],
    summary="获取歌单配置",
)
async def list_playlist_stores(
    config: PlaylistStoreConfig = Depends(get_playlist_store_config),
) -> ApiResponse[list[PlaylistStoreResponse]]:
    stores = await config.get_all()
    return ApiResponse.success(
        data=[
            PlaylistStoreResponse(
                album_group=group.value,
                playlist_id=stores[group].playlist_id,
                enabled=stores[group].is_enabled,
                last_update=stores[group].last_update,
            )
            for group in ALBUM_GROUP_ORDER
            if group in stores
        ]
    )
