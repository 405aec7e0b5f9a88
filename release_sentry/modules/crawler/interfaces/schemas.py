"""Crawler API schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class CrawlResultResponse(BaseModel):
    """Crawl trigger response."""

    summary: str | None = Field(None, description="结果摘要")
    songs_added: int = Field(0, description="新增歌曲总数")
    added: dict[str, int] = Field(default_factory=dict, description="按分组的新增数量")
    duration_ms: int = Field(0, description="耗时（毫秒）")


class ClearNotifiersResponse(BaseModel):
    """Notifier maintenance response."""

    cleared: list[str] = Field(default_factory=list, description="已清除 [NEW] 标记的分组")


class PlaylistStoreResponse(BaseModel):
    """Playlist store configuration."""

    album_group: str = Field(..., description="分组")
    playlist_id: str | None = Field(None, description="目标歌单 ID")
    enabled: bool = Field(..., description="是否启用")
    last_update: datetime | None = Field(None, description="最近一次新增时间")
