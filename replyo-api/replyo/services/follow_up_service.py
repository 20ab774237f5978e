from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy.orm import Session

from replyo.conversations import engine
from replyo.conversations.flows import get_conversation_flow, resolve_industry
from replyo.conversations.types import FOLLOW_UP
from replyo.defaults import MAX_FOLLOW_UPS
from replyo.logging_config import get_logger
from replyo.models import Conversation, ConversationMessage
from replyo.services import billing_service, business_profile_service, conversation_persistence, metrics
from replyo.services.meta_service import MetaGraphClient

logger = get_logger("follow_up_service")


def _ensure_timezone(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def send_follow_up_message(
    db: Session,
    conversation: Conversation,
    client: Optional[MetaGraphClient] = None,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """Render the FOLLOW_UP state, store it and deliver it over Instagram."""
    now = now or datetime.now(timezone.utc)
    business = conversation.business
    industry = resolve_industry(conversation.industry or business.industry)
    flow = get_conversation_flow(industry)

    session = conversation_persistence.to_session(conversation)
    result = engine.render_state(flow, FOLLOW_UP, session, business_profile_service.to_business_data(business))

    conversation_persistence.save_message(db, conversation.id, result.message, from_business=True, state=FOLLOW_UP)
    conversation.state = FOLLOW_UP

    sent_count = (conversation.follow_up_count or 0) + 1
    next_at = None
    if sent_count < MAX_FOLLOW_UPS and result.follow_up_hours:
        next_at = now + timedelta(hours=result.follow_up_hours)
    conversation_persistence.mark_follow_up_sent(db, conversation, next_follow_up_at=next_at, now=now)
    metrics.FOLLOW_UPS_TOTAL.labels(industry).inc()

    delivered = False
    if business.instagram_access_token:
        client = client or MetaGraphClient()
        response = client.send_message(
            business.instagram_access_token, conversation.user_id, result.message, result.quick_replies
        )
        delivered = not response.get("error")
        if not delivered:
            logger.error(
                "Follow-up delivery failed",
                extra={"context": {"conversation_id": str(conversation.id), "error": response.get("error")}},
            )

    logger.info(
        "Follow-up sent",
        extra={
            "context": {
                "conversation_id": str(conversation.id),
                "industry": industry,
                "follow_up_count": sent_count,
                "delivered": delivered,
            }
        },
    )
    return {"conversation_id": str(conversation.id), "follow_up_count": sent_count, "delivered": delivered}


def process_pending_follow_ups(db: Session, now: Optional[datetime] = None) -> dict[str, Any]:
    """Send every due follow-up. One failing conversation never stops the batch."""
    now = now or datetime.now(timezone.utc)
    summary = {"checked": 0, "sent": 0, "skipped": 0, "errors": 0}

    for conversation in conversation_persistence.get_conversations_for_follow_up(db, now=now):
        summary["checked"] += 1
        business = conversation.business
        if business is None:
            summary["skipped"] += 1
            continue

        access = billing_service.check_access_for_business(db, business)
        if not access["limits"]["can_send_follow_ups"]:
            conversation.next_follow_up_at = None
            db.commit()
            summary["skipped"] += 1
            continue

        try:
            send_follow_up_message(db, conversation, now=now)
            db.commit()
            summary["sent"] += 1
        except Exception as exc:
            db.rollback()
            summary["errors"] += 1
            logger.error(
                "Follow-up failed",
                extra={"context": {"conversation_id": str(conversation.id), "error": str(exc)}},
            )

    if summary["checked"]:
        logger.info("Follow-ups processed", extra={"context": summary})
    return summary


def cancel_follow_ups(db: Session, conversation_id) -> bool:
    conversation = conversation_persistence.get_conversation(db, conversation_id)
    if not conversation:
        return False
    conversation.next_follow_up_at = None
    db.flush()
    return True


def summarize_follow_up_effect(
    messages: list[ConversationMessage],
    booked_conversation_ids: set,
) -> dict[str, Any]:
    """Follow-up effectiveness from the messages of the affected conversations.

    Messages must be ordered by conversation then created_at.
    """
    sent = 0
    responded = 0
    converted = set()
    delays = []

    pending: Optional[ConversationMessage] = None
    current_conversation = None
    for message in messages:
        if message.conversation_id != current_conversation:
            current_conversation = message.conversation_id
            pending = None
        if message.from_business and message.state == FOLLOW_UP:
            sent += 1
            pending = message
            if message.conversation_id in booked_conversation_ids:
                converted.add(message.conversation_id)
            continue
        if pending is not None and not message.from_business:
            responded += 1
            delay = _ensure_timezone(message.created_at) - _ensure_timezone(pending.created_at)
            delays.append(delay.total_seconds() / 60)
            pending = None

    return {
        "total_follow_ups_sent": sent,
        "follow_up_response_rate": round(responded / sent * 100, 2) if sent else 0.0,
        "follow_up_conversions": len(converted),
        "avg_time_to_response_minutes": round(sum(delays) / len(delays), 2) if delays else 0.0,
    }


def get_follow_up_stats(db: Session, business_id, days: int = 30) -> dict[str, Any]:
    since = datetime.now(timezone.utc) - timedelta(days=days)
    conversations = (
        db.query(Conversation)
        .filter(
            Conversation.business_id == business_id,
            Conversation.created_at >= since,
            Conversation.follow_up_count > 0,
        )
        .all()
    )
    if not conversations:
        return summarize_follow_up_effect([], set())

    ids = [c.id for c in conversations]
    messages = (
        db.query(ConversationMessage)
        .filter(ConversationMessage.conversation_id.in_(ids))
        .order_by(ConversationMessage.conversation_id, ConversationMessage.created_at)
        .all()
    )
    return summarize_follow_up_effect(messages, {c.id for c in conversations if c.has_booked})


def test_follow_up(db: Session, conversation_id) -> str:
    """Send a follow-up right away if the conversation is due for one."""
    due = conversation_persistence.get_conversations_for_follow_up(db)
    conversation = next((c for c in due if str(c.id) == str(conversation_id)), None)
    if conversation is None:
        return "Conversation not found or not eligible for follow-up"
    send_follow_up_message(db, conversation)
    db.commit()
    return "Follow-up sent successfully"
