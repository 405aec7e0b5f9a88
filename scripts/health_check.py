#!/usr/bin/env python3
"""健康检查脚本。

检查数据库、Redis、Celery 队列与抓取锁的状态，可作为运维脚本或监控探针使用。

使用方式：
    python scripts/health_check.py
    python scripts/health_check.py --component crawler
    python scripts/health_check.py --json --strict
"""

import argparse
import asyncio
import json
import sys
from datetime import UTC, datetime

QUEUE_BACKLOG_WARNING = 10


async def check_database() -> dict:
    """检查数据库连接与歌单配置。"""
    from release_sentry.core.infrastructure.database.session import check_db_health
    from release_sentry.core.infrastructure.health import HealthStatus

    result = await check_db_health()
    if result.status != HealthStatus.OK:
        return {"status": "unhealthy", "error": result.error}
    return {"status": "healthy", "version": result.version}


async def check_redis() -> dict:
    """检查 Redis 连接。"""
    from release_sentry.core.infrastructure.redis.client import RedisClient

    client = RedisClient()
    try:
        result = await client.health_check()
    finally:
        await client.close()
    if not result.connected:
        return {"status": "unhealthy", "error": result.error or "Redis ping failed"}
    return {"status": "healthy", "version": result.version}


async def check_queues() -> dict:
    """检查 Celery 队列积压。"""
    from release_sentry.core.infrastructure.celery.queues import Queues
    from release_sentry.core.infrastructure.redis.client import RedisClient

    client = RedisClient()
    try:
        queues = {queue.value: await client.client.llen(queue.value) for queue in Queues}
    finally:
        await client.close()

    backlog = sum(queues.values())
    status = "healthy" if backlog <= QUEUE_BACKLOG_WARNING else "warning"
    return {"status": status, "total_backlog": backlog, "queues": queues}


async def check_crawler() -> dict:
    """检查抓取锁与已启用的分组。"""
    from release_sentry.modules.crawler.infrastructure.runtime import (
        get_crawler_runtime,
    )

    runtime = get_crawler_runtime()
    busy = await runtime.guard.is_busy()
    enabled = await runtime.config.get_enabled_extended_groups()
    return {
        "status": "healthy" if enabled else "warning",
        "busy": busy,
        "enabled_groups": [group.value for group in enabled],
    }


CHECKERS = {
    "database": check_database,
    "redis": check_redis,
    "queues": check_queues,
    "crawler": check_crawler,
}


async def _safe_check(name: str) -> dict:
    try:
        return await CHECKERS[name]()
    except Exception as e:
        return {"status": "error", "error": str(e)}


async def run_check(components: list[str]) -> dict:
    results = await asyncio.gather(*(_safe_check(name) for name in components))
    report = {
        "timestamp": datetime.now(UTC).isoformat(),
        "overall_status": "healthy",
        "components": dict(zip(components, results, strict=True)),
    }

    statuses = [result.get("status", "unknown") for result in results]
    if any(s in ("unhealthy", "error") for s in statuses):
        report["overall_status"] = "unhealthy"
    elif any(s == "warning" for s in statuses):
        report["overall_status"] = "degraded"
    return report


def print_result(result: dict, json_output: bool = False) -> None:
    if json_output:
        print(json.dumps(result, indent=2))
        return

    print(f"\n{'=' * 60}")
    print(f"Health Check Report - {result['timestamp']}")
    print(f"Overall Status: {result['overall_status'].upper()}")
    print(f"{'-' * 40}")
    for component, info in result["components"].items():
        print(f"{component}: {info.get('status', 'unknown')}")
        for key, value in info.items():
            if key != "status":
                print(f"    {key}: {value}")
    print(f"{'=' * 60}\n")


def main() -> None:
    parser = argparse.ArgumentParser(description="系统健康检查脚本")
    parser.add_argument(
        "--component",
        "-c",
        choices=list(CHECKERS),
        help="只检查特定组件",
    )
    parser.add_argument("--json", action="store_true", help="输出 JSON 格式")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="严格模式：任何非 healthy 状态都返回非零退出码",
    )
    args = parser.parse_args()

    components = [args.component] if args.component else list(CHECKERS)
    result = asyncio.run(run_check(components))
    print_result(result, args.json)

    if args.strict and result["overall_status"] != "healthy":
        sys.exit(1)


if __name__ == "__main__":
    main()
