from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy.orm import Session, joinedload

from replyo.conversations.types import END, START, ConversationResult, ConversationSession
from replyo.defaults import DEFAULT_INDUSTRY, MAX_FOLLOW_UPS
from replyo.logging_config import get_logger
from replyo.models import Conversation, ConversationMessage

logger = get_logger("conversation_persistence")

LEAD_FIELDS = ("lead_service", "lead_urgency", "lead_intent")


def _ensure_timezone(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def build_lead_data(conversation: Conversation) -> dict[str, Any]:
    lead_data = dict(conversation.lead_data or {})
    for field in LEAD_FIELDS:
        value = getattr(conversation, field, None)
        if value:
            lead_data[field] = value
    lead_data["follow_up_count"] = conversation.follow_up_count or 0
    return lead_data


def to_session(conversation: Conversation) -> ConversationSession:
    return ConversationSession(
        conversation_id=str(conversation.id),
        current_state=conversation.state or START,
        last_activity=_ensure_timezone(conversation.last_message_at) or datetime.now(timezone.utc),
        industry=conversation.industry or DEFAULT_INDUSTRY,
        lead_data=build_lead_data(conversation),
        is_qualified=bool(conversation.is_qualified),
        has_booked=bool(conversation.has_booked),
    )


def get_active_conversation(db: Session, business_id, user_id: str) -> Optional[Conversation]:
    return (
        db.query(Conversation)
        .filter(
            Conversation.business_id == business_id,
            Conversation.user_id == user_id,
            Conversation.state != END,
        )
        .order_by(Conversation.last_message_at.desc())
        .first()
    )


def get_or_create_conversation(
    db: Session,
    business_id,
    user_id: str,
    industry: Optional[str] = None,
) -> tuple[Conversation, bool]:
    """Return the newest open conversation for the pair, creating one at START."""
    conversation = get_active_conversation(db, business_id, user_id)
    if conversation:
        return conversation, False

    now = datetime.now(timezone.utc)
    conversation = Conversation(
        business_id=business_id,
        user_id=user_id,
        state=START,
        industry=industry or DEFAULT_INDUSTRY,
        lead_data={},
        is_qualified=False,
        has_booked=False,
        follow_up_count=0,
        last_message_at=now,
        created_at=now,
    )
    db.add(conversation)
    db.flush()
    logger.info(
        "Conversation created",
        extra={"context": {"business_id": str(business_id), "conversation_id": str(conversation.id)}},
    )
    return conversation, True


def get_conversation(db: Session, conversation_id) -> Optional[Conversation]:
    return db.query(Conversation).filter(Conversation.id == conversation_id).first()


def apply_result(
    conversation: Conversation,
    result: ConversationResult,
    now: Optional[datetime] = None,
) -> Conversation:
    """Copy an engine result onto a conversation row. Last write wins."""
    now = now or datetime.now(timezone.utc)
    conversation.state = result.state
    conversation.last_message_at = now

    qualification = {k: v for k, v in (result.qualification_data or {}).items() if v}
    extra = dict(conversation.lead_data or {})
    for field, value in qualification.items():
        if field in LEAD_FIELDS:
            setattr(conversation, field, value)
        else:
            extra[field] = value
    conversation.lead_data = extra

    if conversation.lead_service:
        conversation.is_qualified = True
    if result.is_booking_attempt:
        conversation.has_booked = True
    if result.should_follow_up and result.follow_up_hours:
        conversation.next_follow_up_at = now + timedelta(hours=result.follow_up_hours)
    return conversation


def update_conversation(db: Session, conversation_id, result: ConversationResult) -> Optional[Conversation]:
    conversation = get_conversation(db, conversation_id)
    if not conversation:
        logger.warning("Conversation not found for update", extra={"context": {"conversation_id": str(conversation_id)}})
        return None
    apply_result(conversation, result)
    db.flush()
    return conversation


def save_message(
    db: Session,
    conversation_id,
    message: str,
    from_business: bool,
    state: Optional[str] = None,
) -> ConversationMessage:
    row = ConversationMessage(
        conversation_id=conversation_id,
        message=message,
        from_business=from_business,
        state=state,
        created_at=datetime.now(timezone.utc),
    )
    db.add(row)
    db.flush()
    return row


def get_conversations_for_follow_up(db: Session, now: Optional[datetime] = None, limit: int = 100) -> list[Conversation]:
    now = now or datetime.now(timezone.utc)
    return (
        db.query(Conversation)
        .options(joinedload(Conversation.business))
        .filter(
            Conversation.next_follow_up_at.isnot(None),
            Conversation.next_follow_up_at <= now,
            Conversation.state != END,
            Conversation.has_booked.is_(False),
            Conversation.follow_up_count < MAX_FOLLOW_UPS,
        )
        .order_by(Conversation.next_follow_up_at)
        .limit(limit)
        .all()
    )


def mark_follow_up_sent(
    db: Session,
    conversation: Conversation,
    next_follow_up_at: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> Conversation:
    now = now or datetime.now(timezone.utc)
    conversation.follow_up_count = (conversation.follow_up_count or 0) + 1
    conversation.last_follow_up_at = now
    conversation.last_message_at = now
    conversation.next_follow_up_at = next_follow_up_at
    db.flush()
    return conversation


def close_active_conversation(db: Session, business_id, user_id: str) -> bool:
    conversation = get_active_conversation(db, business_id, user_id)
    if not conversation:
        return False
    conversation.state = END
    conversation.next_follow_up_at = None
    db.flush()
    return True


def summarize_conversations(conversations: list[Conversation]) -> dict[str, Any]:
    total = len(conversations)
    qualified = sum(1 for c in conversations if c.is_qualified)
    booked = sum(1 for c in conversations if c.has_booked)
    services = Counter(c.lead_service for c in conversations if c.lead_service)
    top_service = services.most_common(1)[0][0] if services else None
    return {
        "conversations": total,
        "qualified_leads": qualified,
        "booking_clicks": booked,
        "top_service": top_service,
        "conversion_rate": round(booked / total * 100, 2) if total else 0.0,
        "qualification_rate": round(qualified / total * 100, 2) if total else 0.0,
    }


def get_business_analytics(db: Session, business_id, days: int = 30) -> dict[str, Any]:
    since = datetime.now(timezone.utc) - timedelta(days=days)
    conversations = (
        db.query(Conversation)
        .filter(Conversation.business_id == business_id, Conversation.created_at >= since)
        .all()
    )
    return {"period_days": days, **summarize_conversations(conversations)}
