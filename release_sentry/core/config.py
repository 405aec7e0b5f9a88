"""Application configuration."""

from typing import Literal, Self

from pydantic import HttpUrl, computed_field, model_validator
from pydantic_core import MultiHostUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    # Application
    PROJECT_NAME: str = "releaseSentry"
    SERVER_PORT: int = 8000
    ROOTPATH: str = ""
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    TIMEZONE: str = "UTC"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE_PATH: str = "logs/release_sentry.log"
    LOG_DEFAULT_READ_LINES: int = 100
    LOG_MAX_LINE_LENGTH: int = 160  # 超长日志截断为省略号

    # Sentry
    SENTRY_DSN: HttpUrl | None = None

    # PostgreSQL
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "releasesentry"

    @computed_field
    @property
    def database_url_object(self) -> MultiHostUrl:
        return MultiHostUrl.build(
            scheme="postgresql+psycopg",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD,
            host=self.POSTGRES_SERVER,
            port=self.POSTGRES_PORT,
            path=self.POSTGRES_DB,
        )

    @computed_field
    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        return str(self.database_url_object)

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_CLIENT_TIMEOUT_SEC: float = 5.0

    # Crawl Settings
    CRAWL_GUARD_BACKEND: Literal["memory", "redis"] = "redis"
    CRAWL_LOCK_TTL_SEC: int = 1800  # 崩溃的 worker 最多占用锁 30 分钟
    CRAWL_INTERVAL_MIN: int = 15
    CRAWL_OFFSET_MIN: int = 1  # 每小时从第几分钟开始
    CLEAR_NOTIFIER_INTERVAL_SEC: int = 10
    NEW_NOTIFIER_TIMEOUT_MIN: int = 60
    RELEASE_LOOKBACK_DAYS: int = 3
    # "module:callable"，返回 (ReleaseCatalog, PlaylistPublisher)；API 与 Worker 进程启动时使用
    CRAWLER_COLLABORATORS_FACTORY: str | None = None

    # Celery Settings
    CELERY_BROKER_URL: str | None = None  # 默认使用 REDIS_URL
    CELERY_RESULT_BACKEND: str | None = None  # 默认使用 REDIS_URL
    CELERY_TASK_SERIALIZER: str = "json"
    CELERY_RESULT_SERIALIZER: str = "json"
    CELERY_ACCEPT_CONTENT: list[str] = ["json"]

    @computed_field
    @property
    def celery_broker_url(self) -> str:
        """获取 Celery Broker URL，默认使用 Redis URL。"""
        return self.CELERY_BROKER_URL or self.REDIS_URL

    @computed_field
    @property
    def celery_result_backend(self) -> str:
        """获取 Celery Result Backend URL，默认使用 Redis URL。"""
        return self.CELERY_RESULT_BACKEND or self.REDIS_URL

    @model_validator(mode="after")
    def _check_crawl_schedule(self) -> Self:
        if not 1 <= self.CRAWL_INTERVAL_MIN <= 60:
            raise ValueError("CRAWL_INTERVAL_MIN must be between 1 and 60")
        if not 0 <= self.CRAWL_OFFSET_MIN < self.CRAWL_INTERVAL_MIN:
            raise ValueError("CRAWL_OFFSET_MIN must be smaller than CRAWL_INTERVAL_MIN")
        return self


settings = Settings()
