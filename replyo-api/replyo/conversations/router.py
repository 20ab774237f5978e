"""Routes inbound DMs through the right industry flow and keeps session state."""

import threading
from collections import Counter
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy.orm import Session

from replyo.conversations import engine
from replyo.conversations.flows import get_conversation_flow, resolve_industry
from replyo.conversations.types import ERROR, ConversationResult, ConversationSession
from replyo.defaults import SESSION_MAX_AGE_HOURS
from replyo.logging_config import LoggerAdapter, get_logger
from replyo.services import business_profile_service, conversation_persistence, metrics, stats_service
from replyo.services.business_profile_service import BusinessNotFoundError
from replyo.services.error_tracking import capture_exception

logger = get_logger("conversation_router")

ERROR_MESSAGE = "Sorry, I'm having trouble right now. Please try again or contact us directly."


class SessionStore:
    """In-memory sessions keyed by ``business_id:user_id``."""

    def __init__(self) -> None:
        self._sessions: dict[str, ConversationSession] = {}
        self._lock = threading.Lock()

    @staticmethod
    def key(business_id, user_id: str) -> str:
        return f"{business_id}:{user_id}"

    def get(self, business_id, user_id: str) -> Optional[ConversationSession]:
        with self._lock:
            return self._sessions.get(self.key(business_id, user_id))

    def set(self, business_id, user_id: str, session: ConversationSession) -> None:
        with self._lock:
            self._sessions[self.key(business_id, user_id)] = session

    def delete(self, business_id, user_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(self.key(business_id, user_id), None) is not None

    def cleanup(self, max_age: timedelta = timedelta(hours=SESSION_MAX_AGE_HOURS), now: Optional[datetime] = None) -> int:
        now = now or datetime.now(timezone.utc)
        with self._lock:
            stale = [key for key, session in self._sessions.items() if now - session.last_activity > max_age]
            for key in stale:
                del self._sessions[key]
        return len(stale)

    def stats(self) -> dict[str, Any]:
        with self._lock:
            sessions = list(self._sessions.values())
        return {
            "active_sessions": len(sessions),
            "by_industry": dict(Counter(session.industry for session in sessions)),
            "by_state": dict(Counter(session.current_state for session in sessions)),
            "qualified": sum(1 for session in sessions if session.is_qualified),
            "booked": sum(1 for session in sessions if session.has_booked),
        }

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


sessions = SessionStore()


def error_result() -> ConversationResult:
    return ConversationResult(state=ERROR, message=ERROR_MESSAGE, quick_replies=[])


def _conversation_events(created: bool, result: ConversationResult, was_qualified: bool, had_booked: bool) -> list[str]:
    events = []
    if created:
        events.append("start")
    if result.qualification_data.get("lead_service") and not was_qualified:
        events.append("qualify")
    if result.is_booking_attempt and not had_booked:
        events.append("book")
    return events


def process_message(db: Session, ig_username: str, user_id: str, message: str) -> ConversationResult:
    """Run one inbound message through the business's flow.

    Raises BusinessNotFoundError when the username is unknown; any other
    failure is rolled back and answered with a generic apology.
    """
    business = business_profile_service.get_business_profile(db, ig_username)
    if not business:
        raise BusinessNotFoundError(ig_username)

    log = LoggerAdapter(logger, {"business_id": str(business.id), "user_id": user_id})
    industry = resolve_industry(business.industry)

    try:
        conversation, created = conversation_persistence.get_or_create_conversation(
            db, business.id, user_id, industry=industry
        )
        session = conversation_persistence.to_session(conversation)
        was_qualified = session.is_qualified
        had_booked = session.has_booked

        flow = get_conversation_flow(industry)
        business_data = business_profile_service.to_business_data(business)
        result = engine.process_message(flow, session, message, business_data)

        conversation_persistence.save_message(db, conversation.id, message, from_business=False, state=session.current_state)
        conversation_persistence.save_message(db, conversation.id, result.message, from_business=True, state=result.state)
        conversation_persistence.apply_result(conversation, result)
        db.flush()

        events = _conversation_events(created, result, was_qualified, had_booked)
        for event in events:
            stats_service.record_conversation_event(db, business.id, event)

        metrics.record_conversation_result(
            industry,
            result.state,
            created=created,
            qualified="qualify" in events,
            booked="book" in events,
        )

        sessions.set(business.id, user_id, conversation_persistence.to_session(conversation))
        log.info(
            "Message processed",
            context={
                "conversation_id": str(conversation.id),
                "from_state": session.current_state,
                "to_state": result.state,
                "events": events,
            },
        )
        return result
    except Exception as exc:
        db.rollback()
        log.error("Message processing failed", context={"error": str(exc)}, exc_info=True)
        capture_exception(exc, {"business_id": str(business.id), "industry": industry})
        return error_result()


def reset_conversation(db: Session, ig_username: str, user_id: str) -> bool:
    """Forget the cached session and close the open conversation."""
    business = business_profile_service.get_business_profile(db, ig_username)
    if not business:
        raise BusinessNotFoundError(ig_username)
    dropped = sessions.delete(business.id, user_id)
    closed = conversation_persistence.close_active_conversation(db, business.id, user_id)
    logger.info(
        "Conversation reset",
        extra={"context": {"business_id": str(business.id), "user_id": user_id, "closed": closed}},
    )
    return dropped or closed


def get_session(business_id, user_id: str) -> Optional[ConversationSession]:
    session = sessions.get(business_id, user_id)
    return replace(session) if session else None


def cleanup_sessions(max_age_hours: int = SESSION_MAX_AGE_HOURS) -> int:
    removed = sessions.cleanup(timedelta(hours=max_age_hours))
    if removed:
        logger.info("Stale sessions removed", extra={"context": {"removed": removed}})
    return removed


def get_session_stats() -> dict[str, Any]:
    return sessions.stats()
