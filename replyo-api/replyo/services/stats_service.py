from collections import Counter
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from replyo.conversations.types import START
from replyo.logging_config import get_logger
from replyo.models import BusinessStats, Conversation

logger = get_logger("stats_service")

CONVERSATION_EVENTS = {"start", "qualify", "book"}
TREND_WINDOW_DAYS = 7


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def compute_daily_stats(conversations: list[Conversation]) -> dict[str, Any]:
    total = len(conversations)
    qualified = sum(1 for c in conversations if c.is_qualified)
    bookings = sum(1 for c in conversations if c.has_booked)
    responded = sum(1 for c in conversations if c.state != START)
    services = Counter(c.lead_service for c in conversations if c.lead_service)
    return {
        "total_conversations": total,
        "qualified_leads": qualified,
        "booking_clicks": bookings,
        "most_requested_service": services.most_common(1)[0][0] if services else None,
        "response_rate": responded / total if total else 0.0,
        "conversion_rate": bookings / total if total else 0.0,
    }


def update_daily_stats(db: Session, business_id, day: Optional[date] = None) -> BusinessStats:
    """Recompute the stats row for one UTC day (today by default)."""
    day = day or datetime.now(timezone.utc).date()
    start, end = _day_bounds(day)
    conversations = (
        db.query(Conversation)
        .filter(
            Conversation.business_id == business_id,
            Conversation.created_at >= start,
            Conversation.created_at < end,
        )
        .all()
    )
    values = compute_daily_stats(conversations)

    row = (
        db.query(BusinessStats)
        .filter(BusinessStats.business_id == business_id, BusinessStats.date == day)
        .first()
    )
    if row is None:
        row = BusinessStats(business_id=business_id, date=day)
        db.add(row)
    for key, value in values.items():
        setattr(row, key, value)
    db.flush()
    return row


def _trend(recent: list[BusinessStats], previous: list[BusinessStats], attr: str) -> float:
    recent_total = sum(getattr(s, attr) or 0 for s in recent)
    previous_total = sum(getattr(s, attr) or 0 for s in previous)
    if previous_total <= 0:
        return 0.0
    return round((recent_total - previous_total) / previous_total * 100, 2)


def summarize_daily_stats(rows: list[BusinessStats]) -> dict[str, Any]:
    """Fold daily rows (newest first) into dashboard totals and trends."""
    if not rows:
        return {
            "conversations": 0,
            "qualified_leads": 0,
            "booking_clicks": 0,
            "top_service": None,
            "response_rate": 0,
            "conversion_rate": 0,
            "trend": {"conversations": 0, "bookings": 0},
            "daily_stats": [],
        }

    services = Counter(row.most_requested_service for row in rows if row.most_requested_service)
    recent = rows[:TREND_WINDOW_DAYS]
    previous = rows[TREND_WINDOW_DAYS : TREND_WINDOW_DAYS * 2]
    return {
        "conversations": sum(row.total_conversations or 0 for row in rows),
        "qualified_leads": sum(row.qualified_leads or 0 for row in rows),
        "booking_clicks": sum(row.booking_clicks or 0 for row in rows),
        "top_service": services.most_common(1)[0][0] if services else None,
        "response_rate": sum(row.response_rate or 0 for row in rows) / len(rows),
        "conversion_rate": sum(row.conversion_rate or 0 for row in rows) / len(rows),
        "trend": {
            "conversations": _trend(recent, previous, "total_conversations"),
            "bookings": _trend(recent, previous, "booking_clicks"),
        },
        "daily_stats": [
            {
                "date": row.date.isoformat(),
                "conversations": row.total_conversations,
                "bookings": row.booking_clicks,
                "conversion_rate": row.conversion_rate,
            }
            for row in rows
        ],
    }


def get_daily_rows(db: Session, business_id, days: int = 30) -> list[BusinessStats]:
    start_day = datetime.now(timezone.utc).date() - timedelta(days=days)
    return (
        db.query(BusinessStats)
        .filter(BusinessStats.business_id == business_id, BusinessStats.date >= start_day)
        .order_by(BusinessStats.date.desc())
        .all()
    )


def get_dashboard_stats(db: Session, business_id, days: int = 30) -> dict[str, Any]:
    return summarize_daily_stats(get_daily_rows(db, business_id, days))


def get_multi_business_stats(db: Session, business_ids: list, days: int = 30) -> list[dict[str, Any]]:
    if not business_ids:
        return []
    start_day = datetime.now(timezone.utc).date() - timedelta(days=days)
    rows = (
        db.query(
            BusinessStats.business_id,
            func.sum(BusinessStats.total_conversations),
            func.sum(BusinessStats.qualified_leads),
            func.sum(BusinessStats.booking_clicks),
            func.avg(BusinessStats.response_rate),
            func.avg(BusinessStats.conversion_rate),
        )
        .filter(BusinessStats.business_id.in_(business_ids), BusinessStats.date >= start_day)
        .group_by(BusinessStats.business_id)
        .all()
    )
    return [
        {
            "business_id": str(business_id),
            "conversations": int(conversations or 0),
            "qualified_leads": int(qualified or 0),
            "booking_clicks": int(bookings or 0),
            "response_rate": float(response_rate or 0),
            "conversion_rate": float(conversion_rate or 0),
        }
        for business_id, conversations, qualified, bookings, response_rate, conversion_rate in rows
    ]


def record_conversation_event(db: Session, business_id, event_type: str) -> None:
    if event_type not in CONVERSATION_EVENTS:
        logger.warning("Unknown conversation event", extra={"context": {"event_type": event_type}})
        return
    update_daily_stats(db, business_id)
    logger.info(
        "Conversation event recorded",
        extra={"context": {"business_id": str(business_id), "event_type": event_type}},
    )
