"""Celery task failure classification."""

from __future__ import annotations

from kombu.exceptions import OperationalError as KombuOperationalError
from redis.exceptions import RedisError

from release_sentry.core.domain.exceptions import StorageError
from release_sentry.core.infrastructure.redis.client import RedisUnavailableError

# Failures that the next scheduled run is expected to recover from
TRANSIENT_EXCEPTIONS: tuple[type[BaseException], ...] = (
    StorageError,
    RedisUnavailableError,
    RedisError,
    KombuOperationalError,
    TimeoutError,
)


def is_transient(exc: BaseException) -> bool:
    return isinstance(exc, TRANSIENT_EXCEPTIONS)
