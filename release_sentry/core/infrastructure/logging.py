"""Logging configuration with structlog integration.

提供两种日志记录方式：
1. loguru: 用于一般调试日志（同时写入日志文件，供 /logs 接口读取）
2. structlog: 用于关键业务事件的结构化日志
"""

import os
import sys
from itertools import islice
from pathlib import Path
from typing import Any

import structlog
from loguru import logger

from release_sentry.core.config import settings
from release_sentry.core.domain.exceptions import LogUnavailableError

ELLIPSIS = "..."


def setup_logging() -> None:
    """Configure application logging with structlog and loguru."""
    _configure_structlog()
    _configure_loguru()

    logger.info(f"Logging configured with level: {settings.LOG_LEVEL}")


def _configure_structlog() -> None:
    """配置 structlog 处理器链。"""
    if settings.ENVIRONMENT == "local":
        renderer = structlog.dev.ConsoleRenderer(colors=True)
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.CallsiteParameterAdder(
                [
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                    structlog.processors.CallsiteParameter.LINENO,
                ]
            ),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            _get_log_level_number(settings.LOG_LEVEL)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def _truncate_record(record: dict[str, Any]) -> bool:
    """loguru filter：截断过长的消息。"""
    record["message"] = truncate_message(record["message"])
    return True


def _configure_loguru() -> None:
    """配置 loguru。"""
    logger.remove()

    logger.add(
        sys.stderr,
        level=settings.LOG_LEVEL,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
        filter=_truncate_record,
        colorize=True,
    )

    # 文件日志：/logs 接口从这里读取
    logger.add(
        settings.LOG_FILE_PATH,
        rotation="10 MB",
        retention="30 days",
        level=settings.LOG_LEVEL,
        filter=_truncate_record,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
    )


def _get_log_level_number(level: str) -> int:
    """将日志级别字符串转换为数字。"""
    levels = {
        "DEBUG": 10,
        "INFO": 20,
        "WARNING": 30,
        "ERROR": 40,
        "CRITICAL": 50,
    }
    return levels.get(level.upper(), 20)


def truncate_message(message: str, max_length: int | None = None) -> str:
    """将超过最大长度的消息截断，并以省略号结尾。"""
    if max_length is None:
        max_length = settings.LOG_MAX_LINE_LENGTH
    if len(message) <= max_length:
        return message
    if max_length <= len(ELLIPSIS):
        return ELLIPSIS[:max_length]
    return message[: max_length - len(ELLIPSIS)] + ELLIPSIS


def read_log(limit: int | None = None, path: str | Path | None = None) -> list[str]:
    """读取日志文件开头的若干行。

    Args:
        limit: 最多读取的行数，默认 LOG_DEFAULT_READ_LINES；负数表示读取整个文件
        path: 日志文件路径，默认 LOG_FILE_PATH

    Returns:
        日志行列表（不含换行符）

    Raises:
        LogUnavailableError: 日志文件不存在或当前不可读
    """
    log_file = Path(path or settings.LOG_FILE_PATH)
    if not log_file.exists():
        raise LogUnavailableError(
            f"Couldn't find log file under expected location {log_file.resolve()}"
        )
    if not os.access(log_file, os.R_OK):
        raise LogUnavailableError(
            "Log file is currently locked, likely because it is being written to. "
            "Try again."
        )

    if limit is None:
        limit = settings.LOG_DEFAULT_READ_LINES

    try:
        with log_file.open(encoding="utf-8", errors="replace") as f:
            lines = f if limit < 0 else islice(f, limit)
            return [line.rstrip("\n") for line in lines]
    except OSError as e:
        raise LogUnavailableError(f"Failed to read log file: {e}") from e


# ============================================================================
# 业务事件日志记录器
# ============================================================================


class BusinessEvents:
    """业务事件日志助手类。

    提供统一的业务事件日志记录接口，确保事件格式一致。
    """

    _log = structlog.get_logger("business.events")

    @classmethod
    def crawl_completed(
        cls,
        songs_added: int,
        groups: list[str],
        duration_ms: int,
        **extra: Any,
    ) -> None:
        """记录抓取完成事件。"""
        cls._log.info(
            "crawl_completed",
            event_type="crawl",
            songs_added=songs_added,
            groups=groups,
            duration_ms=duration_ms,
            **extra,
        )

    @classmethod
    def trigger_rejected(
        cls,
        trigger: str,
        reason: str,
        **extra: Any,
    ) -> None:
        """记录触发被拒绝事件（上一次抓取仍在进行）。"""
        cls._log.info(
            "trigger_rejected",
            event_type="guard",
            trigger=trigger,
            reason=reason,
            **extra,
        )

    @classmethod
    def notifier_cleared(
        cls,
        album_group: str,
        playlist_id: str,
        **extra: Any,
    ) -> None:
        """记录 [NEW] 标记清除事件。"""
        cls._log.info(
            "notifier_cleared",
            event_type="maintenance",
            album_group=album_group,
            playlist_id=playlist_id,
            **extra,
        )
