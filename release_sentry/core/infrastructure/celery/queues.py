"""Celery 队列定义。

- q_crawl: 抓取任务
- q_maintenance: [NEW] 标记清理等维护任务
"""

from enum import StrEnum


class Queues(StrEnum):
    """Celery 队列枚举。"""

    CRAWL = "q_crawl"
    MAINTENANCE = "q_maintenance"


# 任务名称模式 -> 队列
TASK_ROUTES = {
    "release_sentry.modules.crawler.tasks.run_crawl": {"queue": Queues.CRAWL},
    "release_sentry.modules.crawler.tasks.clear_*": {"queue": Queues.MAINTENANCE},
}
