"""Periodic background loops.

Started from the API process on startup, or standalone with
``python -m replyo.workers``. Each loop owns a fresh database session per tick
and survives failures of a single tick.
"""

import asyncio
import os
from typing import Callable

from sqlalchemy.orm import Session

from replyo.conversations import router as conversation_router
from replyo.database import SessionLocal
from replyo.defaults import STATS_AGGREGATION_INTERVAL_SECONDS
from replyo.logging_config import get_logger, setup_logging
from replyo.services import billing_service, follow_up_service, job_queue
from replyo.services.alert_service import alert_critical
from replyo.services.error_tracking import capture_exception, init_sentry

logger = get_logger("workers")


def _is_env_enabled(value: str | None, default: bool = True) -> bool:
    if value is None:
        return default
    return value.strip().lower() not in {"0", "false", "no", "off"}


def workers_enabled() -> bool:
    if os.environ.get("PYTEST_CURRENT_TEST"):
        return False
    return _is_env_enabled(os.environ.get("WORKERS_ENABLED"), default=True)


def _interval(name: str, default: float) -> float:
    try:
        return max(float(os.environ.get(name, str(default))), 1.0)
    except ValueError:
        return default


def run_follow_ups_tick(db: Session) -> dict:
    return follow_up_service.process_pending_follow_ups(db)


def run_jobs_tick(db: Session) -> dict:
    limit = int(os.environ.get("JOB_PROCESS_LIMIT", "10"))
    results = job_queue.run_due_jobs(db, limit=limit)
    job_queue.get_queue_lengths(db)
    return results


def run_stats_tick(db: Session) -> dict:
    job = job_queue.schedule_stats_aggregation(db)
    db.commit()
    return {"job_id": str(job.id)}


def run_kill_switch_tick(db: Session) -> dict:
    summary = billing_service.run_kill_switch(db)
    db.commit()
    return summary


def run_session_cleanup_tick(db: Session) -> dict:
    return {"removed": conversation_router.cleanup_sessions()}


# name -> (tick, env toggle, interval env, default seconds)
LOOPS: dict[str, tuple[Callable[[Session], dict], str, str, float]] = {
    "follow_ups": (run_follow_ups_tick, "FOLLOW_UP_WORKER_ENABLED", "FOLLOW_UP_INTERVAL_SECONDS", 300),
    "jobs": (run_jobs_tick, "JOB_WORKER_ENABLED", "JOB_INTERVAL_SECONDS", 30),
    "stats": (run_stats_tick, "STATS_WORKER_ENABLED", "STATS_INTERVAL_SECONDS", STATS_AGGREGATION_INTERVAL_SECONDS),
    "kill_switch": (run_kill_switch_tick, "KILL_SWITCH_ENABLED", "KILL_SWITCH_INTERVAL_SECONDS", 3600),
    "session_cleanup": (run_session_cleanup_tick, "SESSION_CLEANUP_ENABLED", "SESSION_CLEANUP_INTERVAL_SECONDS", 3600),
}


def run_tick(name: str) -> dict:
    tick = LOOPS[name][0]
    db = SessionLocal()
    try:
        return tick(db)
    finally:
        db.close()


async def _worker_loop(name: str) -> None:
    _, _, interval_env, default_interval = LOOPS[name]
    while True:
        try:
            await asyncio.sleep(_interval(interval_env, default_interval))
            results = await asyncio.to_thread(run_tick, name)
            logger.debug("Worker tick finished", extra={"context": {"worker": name, "results": results}})
        except asyncio.CancelledError:
            break
        except Exception as exc:
            logger.error(
                "Worker loop failed",
                extra={"context": {"worker": name, "error": str(exc)}},
            )
            alert_critical("Worker tick failed", {"worker": name, "error": str(exc)})
            capture_exception(exc, {"worker": name})


def start_workers() -> list[asyncio.Task]:
    tasks = []
    for name, (_, toggle_env, _, _) in LOOPS.items():
        if not _is_env_enabled(os.environ.get(toggle_env), default=True):
            continue
        tasks.append(asyncio.create_task(_worker_loop(name), name=f"replyo-{name}"))
        logger.info("Worker started", extra={"context": {"worker": name}})
    return tasks


async def stop_workers(tasks: list[asyncio.Task]) -> None:
    for task in tasks:
        task.cancel()
    for task in tasks:
        try:
            await task
        except asyncio.CancelledError:
            pass


async def main() -> None:
    tasks = start_workers()
    try:
        await asyncio.gather(*tasks)
    finally:
        await stop_workers(tasks)


if __name__ == "__main__":
    setup_logging()
    init_sentry("workers")
    asyncio.run(main())
