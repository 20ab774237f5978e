"""Durable delayed jobs stored in ``scheduled_jobs``.

Workers claim due rows with ``FOR UPDATE SKIP LOCKED`` so several processes
can poll the same table. Failed jobs are retried with linear backoff until
``max_attempts`` is reached, then marked FAILED and alerted.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from sqlalchemy import func, text
from sqlalchemy.orm import Session

from replyo.conversations import engine
from replyo.defaults import JOB_MAX_ATTEMPTS, JOB_RETRY_BACKOFF_SECONDS, ONBOARDING_EMAILS, SECOND_FOLLOW_UP_HOURS
from replyo.logging_config import get_logger
from replyo.models import Installation, ScheduledJob
from replyo.services import (
    billing_service,
    business_profile_service,
    conversation_persistence,
    email_service,
    follow_up_service,
    metrics,
    revenue_estimator,
)
from replyo.services.alert_service import alert_error
from replyo.services.error_tracking import capture_exception

logger = get_logger("job_queue")

FOLLOW_UP_JOB = "follow_up"
STATS_AGGREGATION_JOB = "stats_aggregation"
ONBOARDING_EMAIL_JOB = "onboarding_email"
JOB_TYPES = (FOLLOW_UP_JOB, STATS_AGGREGATION_JOB, ONBOARDING_EMAIL_JOB)


class JobSkipped(Exception):
    """Raised by a processor when the job no longer applies."""


def enqueue_job(
    db: Session,
    job_type: str,
    payload: dict[str, Any],
    *,
    delay_seconds: float = 0,
    max_attempts: int = JOB_MAX_ATTEMPTS,
    now: datetime | None = None,
) -> ScheduledJob:
    if job_type not in JOB_TYPES:
        raise ValueError(f"Unknown job type: {job_type}")
    now = now or datetime.now(timezone.utc)
    job = ScheduledJob(
        job_type=job_type,
        payload=payload,
        status="PENDING",
        attempts=0,
        max_attempts=max_attempts,
        run_at=now + timedelta(seconds=delay_seconds),
        created_at=now,
        updated_at=now,
    )
    db.add(job)
    db.flush()
    logger.info(
        "Job enqueued",
        extra={"context": {"job_type": job_type, "job_id": str(job.id), "delay_seconds": delay_seconds}},
    )
    return job


def claim_due_jobs(db: Session, *, limit: int = 10) -> list[dict[str, Any]]:
    rows = (
        db.execute(
            text(
                """
                WITH cte AS (
                    SELECT id
                    FROM scheduled_jobs
                    WHERE status = 'PENDING'
                      AND run_at <= NOW()
                    ORDER BY run_at
                    LIMIT :limit
                    FOR UPDATE SKIP LOCKED
                )
                UPDATE scheduled_jobs
                SET status = 'PROCESSING',
                    attempts = attempts + 1,
                    updated_at = NOW()
                FROM cte
                WHERE scheduled_jobs.id = cte.id
                RETURNING scheduled_jobs.id,
                          scheduled_jobs.job_type,
                          scheduled_jobs.payload,
                          scheduled_jobs.attempts,
                          scheduled_jobs.max_attempts
                """
            ),
            {"limit": limit},
        )
        .mappings()
        .all()
    )
    db.commit()
    return rows


def mark_job_done(db: Session, *, job_id) -> None:
    db.execute(
        text(
            """
            UPDATE scheduled_jobs
            SET status = 'DONE',
                last_error = NULL,
                updated_at = NOW()
            WHERE id = :id
            """
        ),
        {"id": job_id},
    )
    db.commit()


def retry_delay_seconds(attempts: int, backoff_seconds: float = JOB_RETRY_BACKOFF_SECONDS) -> float:
    return backoff_seconds * max(attempts, 1)


def mark_job_failed(db: Session, *, job_id, attempts: int, max_attempts: int, error: str) -> str:
    """Reschedule the job, or mark it FAILED once attempts are used up."""
    exhausted = attempts >= max_attempts
    status = "FAILED" if exhausted else "PENDING"
    db.execute(
        text(
            """
            UPDATE scheduled_jobs
            SET status = :status,
                last_error = :last_error,
                run_at = NOW() + make_interval(secs => :delay),
                updated_at = NOW()
            WHERE id = :id
            """
        ),
        {
            "id": job_id,
            "status": status,
            "last_error": error[:1000],
            "delay": 0 if exhausted else retry_delay_seconds(attempts),
        },
    )
    db.commit()
    return status


def _process_follow_up(db: Session, payload: dict[str, Any]) -> str:
    conversation = conversation_persistence.get_conversation(db, payload.get("conversation_id"))
    if conversation is None or conversation.business is None:
        raise JobSkipped("conversation not found")

    session = conversation_persistence.to_session(conversation)
    hours_inactive = (datetime.now(timezone.utc) - session.last_activity).total_seconds() / 3600
    if not engine.should_send_follow_up(session, hours_inactive):
        raise JobSkipped("not eligible")

    access = billing_service.check_access_for_business(db, conversation.business)
    if not access["limits"]["can_send_follow_ups"]:
        raise JobSkipped("no access")

    follow_up_service.send_follow_up_message(db, conversation)
    if payload.get("type", "first") == "first":
        schedule_follow_up(db, conversation.id, follow_up_type="second", delay_hours=SECOND_FOLLOW_UP_HOURS)
    return "sent"


def _process_stats_aggregation(db: Session, payload: dict[str, Any]) -> str:
    start = datetime.fromisoformat(payload["period_start"])
    end = datetime.fromisoformat(payload["period_end"])
    if payload.get("business_id"):
        business_ids = [payload["business_id"]]
    else:
        business_ids = [profile.id for profile in business_profile_service.get_all_business_profiles(db)]

    for business_id in business_ids:
        revenue_estimator.aggregate_stats_for_period(db, business_id, start, end, force=bool(payload.get("force")))
    return f"aggregated {len(business_ids)}"


def _process_onboarding_email(db: Session, payload: dict[str, Any]) -> str:
    business = business_profile_service.get_business_by_id(db, payload.get("business_id"))
    if business is None:
        raise JobSkipped("business not found")

    recipient = business.email or (business.subscription.email if business.subscription else None)
    if not recipient:
        raise JobSkipped("no email address")

    content = email_service.onboarding_email(payload["template"], business.business_name, business.ig_username)
    result = email_service.send_email(recipient, content["subject"], content["html"], content["text"])
    if result["status"] == "failed":
        raise RuntimeError(f"email send failed: {result.get('error') or result.get('http_status')}")

    if result["status"] == "sent":
        installation = (
            db.query(Installation)
            .filter(Installation.business_id == business.id)
            .order_by(Installation.created_at.desc())
            .first()
        )
        if installation:
            installation.onboarding_emails_sent = (installation.onboarding_emails_sent or 0) + 1
    return result["status"]


PROCESSORS: dict[str, Callable[[Session, dict[str, Any]], str]] = {
    FOLLOW_UP_JOB: _process_follow_up,
    STATS_AGGREGATION_JOB: _process_stats_aggregation,
    ONBOARDING_EMAIL_JOB: _process_onboarding_email,
}


def process_job(db: Session, row: dict[str, Any]) -> str:
    """Run one claimed job and record the outcome. Returns the final status."""
    job_type = row["job_type"]
    processor = PROCESSORS.get(job_type)
    context = {"job_id": str(row["id"]), "job_type": job_type, "attempts": row["attempts"]}

    try:
        if processor is None:
            raise JobSkipped("unknown job type")
        outcome = processor(db, dict(row["payload"] or {}))
        db.commit()
    except JobSkipped as exc:
        db.rollback()
        mark_job_done(db, job_id=row["id"])
        metrics.JOBS_TOTAL.labels(job_type, "skipped").inc()
        logger.info("Job skipped", extra={"context": {**context, "reason": str(exc)}})
        return "DONE"
    except Exception as exc:
        db.rollback()
        status = mark_job_failed(
            db,
            job_id=row["id"],
            attempts=row["attempts"],
            max_attempts=row["max_attempts"],
            error=str(exc),
        )
        metrics.JOBS_TOTAL.labels(job_type, status.lower()).inc()
        logger.error("Job failed", extra={"context": {**context, "error": str(exc), "status": status}})
        if status == "FAILED":
            alert_error("Job failed permanently", {**context, "error": str(exc)})
            capture_exception(exc, context)
        return status

    mark_job_done(db, job_id=row["id"])
    metrics.JOBS_TOTAL.labels(job_type, "done").inc()
    logger.info("Job done", extra={"context": {**context, "outcome": outcome}})
    return "DONE"


def run_due_jobs(db: Session, *, limit: int = 10) -> dict[str, int]:
    results = {"claimed": 0, "done": 0, "retried": 0, "failed": 0}
    for row in claim_due_jobs(db, limit=limit):
        results["claimed"] += 1
        status = process_job(db, row)
        if status == "DONE":
            results["done"] += 1
        elif status == "PENDING":
            results["retried"] += 1
        else:
            results["failed"] += 1
    return results


def schedule_follow_up(
    db: Session,
    conversation_id,
    *,
    follow_up_type: str = "first",
    delay_hours: float = 12,
) -> ScheduledJob:
    return enqueue_job(
        db,
        FOLLOW_UP_JOB,
        {"conversation_id": str(conversation_id), "type": follow_up_type},
        delay_seconds=delay_hours * 3600,
    )


def previous_hour_window(now: datetime | None = None) -> tuple[datetime, datetime]:
    now = now or datetime.now(timezone.utc)
    end = now.replace(minute=0, second=0, microsecond=0)
    return end - timedelta(hours=1), end


def schedule_stats_aggregation(db: Session, business_id=None, now: datetime | None = None) -> ScheduledJob:
    """Queue aggregation of the last complete hour, for one or all businesses."""
    start, end = previous_hour_window(now)
    payload: dict[str, Any] = {"period_start": start.isoformat(), "period_end": end.isoformat()}
    if business_id:
        payload["business_id"] = str(business_id)
    return enqueue_job(db, STATS_AGGREGATION_JOB, payload)


def schedule_onboarding_emails(db: Session, business_id) -> list[ScheduledJob]:
    return [
        enqueue_job(
            db,
            ONBOARDING_EMAIL_JOB,
            {"business_id": str(business_id), "template": template},
            delay_seconds=delay_hours * 3600,
        )
        for template, delay_hours in ONBOARDING_EMAILS
    ]


def get_queue_lengths(db: Session) -> dict[str, int]:
    rows = (
        db.query(ScheduledJob.job_type, func.count(ScheduledJob.id))
        .filter(ScheduledJob.status == "PENDING")
        .group_by(ScheduledJob.job_type)
        .all()
    )
    lengths = {job_type: 0 for job_type in JOB_TYPES}
    lengths.update({job_type: int(count) for job_type, count in rows})
    metrics.set_queue_lengths(lengths)
    return lengths
