"""Revenue estimates derived from booking clicks."""

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from replyo.defaults import DEFAULT_AVG_ORDER_VALUE, DEFAULT_CONVERSION_MULTIPLIER, INDUSTRY_AVG_ORDER_VALUE
from replyo.logging_config import get_logger
from replyo.models import AggregatedStats, BusinessProfile, Conversation, ConversationMessage
from replyo.services.conversation_persistence import summarize_conversations

logger = get_logger("revenue_estimator")


@dataclass
class RevenueCalculation:
    booking_clicks: int
    avg_order_value: float
    conversion_multiplier: float
    estimated_revenue: float
    confidence: str  # high, medium, low

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class PeriodStats:
    business_id: str
    period_start: datetime
    period_end: datetime
    total_conversations: int
    qualified_leads: int
    booking_clicks: int
    top_service: Optional[str]
    avg_response_time_minutes: Optional[float]
    conversion_rate: float
    revenue: RevenueCalculation

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["period_start"] = self.period_start.isoformat()
        data["period_end"] = self.period_end.isoformat()
        return data


def calculate_revenue(
    booking_clicks: int,
    business_id: Optional[str] = None,
    industry: Optional[str] = None,
    avg_order_value: Optional[float] = None,
    conversion_multiplier: Optional[float] = None,
) -> RevenueCalculation:
    """Estimate revenue as clicks x average order value x conversion multiplier.

    Business-specific values win over industry defaults, which win over the
    global default. Confidence reflects how much of the estimate came from the
    business itself.
    """
    aov = avg_order_value or INDUSTRY_AVG_ORDER_VALUE.get((industry or "").lower()) or DEFAULT_AVG_ORDER_VALUE
    multiplier = conversion_multiplier or DEFAULT_CONVERSION_MULTIPLIER

    if avg_order_value and conversion_multiplier:
        confidence = "high"
    elif avg_order_value or conversion_multiplier or industry:
        confidence = "medium"
    else:
        confidence = "low"

    revenue = round(booking_clicks * aov * multiplier, 2)
    logger.debug(
        "Revenue calculated",
        extra={"context": {"business_id": business_id, "clicks": booking_clicks, "confidence": confidence}},
    )
    return RevenueCalculation(
        booking_clicks=booking_clicks,
        avg_order_value=float(aov),
        conversion_multiplier=float(multiplier),
        estimated_revenue=revenue,
        confidence=confidence,
    )


def average_response_minutes(pairs: list[tuple[datetime, datetime]]) -> Optional[float]:
    """Mean delay between conversation start and the first business reply."""
    delays = [(replied - started).total_seconds() / 60 for started, replied in pairs if started and replied]
    if not delays:
        return None
    return round(sum(delays) / len(delays), 2)


def growth_percent(current: float, previous: float) -> Optional[float]:
    if not previous:
        return None
    return round((current - previous) / previous * 100, 2)


def _first_reply_pairs(db: Session, business_id, start: datetime, end: datetime) -> list[tuple[datetime, datetime]]:
    return (
        db.query(Conversation.created_at, func.min(ConversationMessage.created_at))
        .join(ConversationMessage, ConversationMessage.conversation_id == Conversation.id)
        .filter(
            Conversation.business_id == business_id,
            Conversation.created_at >= start,
            Conversation.created_at < end,
            ConversationMessage.from_business.is_(True),
        )
        .group_by(Conversation.id, Conversation.created_at)
        .all()
    )


def get_business_stats(db: Session, business_id, start: datetime, end: datetime) -> Optional[PeriodStats]:
    business = db.query(BusinessProfile).filter(BusinessProfile.id == business_id).first()
    if not business:
        return None

    conversations = (
        db.query(Conversation)
        .filter(
            Conversation.business_id == business_id,
            Conversation.created_at >= start,
            Conversation.created_at < end,
        )
        .all()
    )
    summary = summarize_conversations(conversations)
    revenue = calculate_revenue(
        summary["booking_clicks"],
        business_id=str(business_id),
        industry=business.industry,
        avg_order_value=business.avg_order_value,
        conversion_multiplier=business.conversion_multiplier,
    )
    return PeriodStats(
        business_id=str(business_id),
        period_start=start,
        period_end=end,
        total_conversations=summary["conversations"],
        qualified_leads=summary["qualified_leads"],
        booking_clicks=summary["booking_clicks"],
        top_service=summary["top_service"],
        avg_response_time_minutes=average_response_minutes(_first_reply_pairs(db, business_id, start, end)),
        conversion_rate=summary["conversion_rate"],
        revenue=revenue,
    )


def get_revenue_growth(db: Session, business_id, start: datetime, end: datetime) -> dict[str, Any]:
    """Compare revenue with the preceding period of the same length."""
    previous_start = start - (end - start)
    current = get_business_stats(db, business_id, start, end)
    previous = get_business_stats(db, business_id, previous_start, start)
    current_revenue = current.revenue.estimated_revenue if current else 0.0
    previous_revenue = previous.revenue.estimated_revenue if previous else 0.0
    return {
        "current_revenue": current_revenue,
        "previous_revenue": previous_revenue,
        "growth_percent": growth_percent(current_revenue, previous_revenue),
    }


def aggregate_stats_for_period(
    db: Session,
    business_id,
    start: datetime,
    end: datetime,
    force: bool = False,
) -> Optional[AggregatedStats]:
    existing = (
        db.query(AggregatedStats)
        .filter(
            AggregatedStats.business_id == business_id,
            AggregatedStats.period_start == start,
            AggregatedStats.period_end == end,
        )
        .first()
    )
    if existing and not force:
        return existing

    stats = get_business_stats(db, business_id, start, end)
    if stats is None:
        return None

    row = existing or AggregatedStats(business_id=business_id, period_start=start, period_end=end)
    row.total_conversations = stats.total_conversations
    row.qualified_leads = stats.qualified_leads
    row.booking_clicks = stats.booking_clicks
    row.top_service = stats.top_service
    row.avg_response_time_minutes = stats.avg_response_time_minutes
    row.conversion_rate = stats.conversion_rate
    row.estimated_revenue = stats.revenue.estimated_revenue
    row.revenue_confidence = stats.revenue.confidence
    if existing is None:
        db.add(row)
    db.flush()

    logger.info(
        "Stats aggregated",
        extra={
            "context": {
                "business_id": str(business_id),
                "period_start": start.isoformat(),
                "conversations": stats.total_conversations,
                "recomputed": existing is not None,
            }
        },
    )
    return row
