"""Celery 应用配置。

- 使用 JSON 序列化
- 按功能拆分队列
- 定时任务（Beat）：抓取与 [NEW] 标记清理
"""

from celery import Celery
from celery.schedules import crontab
from kombu import Exchange, Queue

from release_sentry.core.config import settings
from release_sentry.core.infrastructure.celery.queues import TASK_ROUTES, Queues

celery_app = Celery("releasesentry")

celery_app.conf.update(
    # Broker & Backend
    broker_url=settings.celery_broker_url,
    result_backend=settings.celery_result_backend,
    # 序列化配置
    task_serializer=settings.CELERY_TASK_SERIALIZER,
    result_serializer=settings.CELERY_RESULT_SERIALIZER,
    accept_content=settings.CELERY_ACCEPT_CONTENT,
    # 时区配置
    timezone=settings.TIMEZONE,
    enable_utc=True,
    # 任务配置
    task_track_started=True,
    task_time_limit=settings.CRAWL_LOCK_TTL_SEC,  # 不超过抓取锁 TTL
    task_soft_time_limit=max(settings.CRAWL_LOCK_TTL_SEC - 60, 1),
    task_acks_late=False,  # 定时任务丢失即等下一次调度
    # 结果配置
    result_expires=3600,
    # Worker 配置
    worker_prefetch_multiplier=1,
    worker_concurrency=1,
)

default_exchange = Exchange("default", type="direct")
celery_app.conf.task_queues = (
    Queue(Queues.CRAWL, default_exchange, routing_key=Queues.CRAWL),
    Queue(Queues.MAINTENANCE, default_exchange, routing_key=Queues.MAINTENANCE),
)

celery_app.conf.task_routes = TASK_ROUTES
celery_app.conf.task_default_queue = Queues.CRAWL


def build_beat_schedule() -> dict:
    """Beat schedule derived from the crawl settings."""
    return {
        # 抓取：从第 CRAWL_OFFSET_MIN 分钟起，每 CRAWL_INTERVAL_MIN 分钟一次
        "run-crawl": {
            "task": "release_sentry.modules.crawler.tasks.run_crawl",
            "schedule": crontab(
                minute=f"{settings.CRAWL_OFFSET_MIN}-59/{settings.CRAWL_INTERVAL_MIN}"
            ),
            "options": {"queue": Queues.CRAWL},
        },
        # [NEW] 标记清理
        "clear-obsolete-notifiers": {
            "task": "release_sentry.modules.crawler.tasks.clear_obsolete_notifiers",
            "schedule": float(settings.CLEAR_NOTIFIER_INTERVAL_SEC),
            "options": {"queue": Queues.MAINTENANCE},
        },
    }


celery_app.conf.beat_schedule = build_beat_schedule()

celery_app.autodiscover_tasks(["release_sentry.modules.crawler"], related_name="tasks")
