"""Scripted conversation engine.

Routing is deliberately simple: a quick-reply title match, then keyword
intents, then a loose word-overlap match against the offered quick replies,
falling back to the QUESTION state.
"""

import re
from dataclasses import replace
from typing import Optional

from replyo.conversations.types import (
    BOOK,
    END,
    INTENT_PATTERNS,
    LOCATION,
    PRICES,
    QUALIFY,
    QUESTION,
    ROUTABLE_INTENTS,
    START,
    BusinessData,
    ConversationFlow,
    ConversationResult,
    ConversationSession,
    FlowState,
)
from replyo.defaults import FIRST_FOLLOW_UP_HOURS, MAX_FOLLOW_UPS, SECOND_FOLLOW_UP_HOURS

FUZZY_MATCH_THRESHOLD = 0.6

_NON_WORD_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")

INTENT_TARGETS = {
    "PRICING": PRICES,
    "LOCATION": LOCATION,
    "SERVICES": QUALIFY,
}

PLACEHOLDER_FALLBACKS = {
    "business_name": "us",
    "location": "our location",
    "phone": "us",
}


def normalize_text(text: str) -> str:
    """Lowercase, drop punctuation and emoji, collapse whitespace."""
    text = _NON_WORD_RE.sub("", (text or "").lower())
    return _WHITESPACE_RE.sub(" ", text).strip()


def detect_intent(text: str) -> Optional[str]:
    lowered = (text or "").lower()
    for intent in ROUTABLE_INTENTS:
        if any(pattern in lowered for pattern in INTENT_PATTERNS[intent]):
            return intent
    return None


def calculate_similarity(text1: str, text2: str) -> float:
    words1 = text1.split()
    words2 = text2.split()
    if not words1 or not words2:
        return 0.0
    matches = sum(1 for word in words1 if any(word in other or other in word for other in words2))
    return matches / max(len(words1), len(words2))


def determine_next_state(state: FlowState, user_input: str, session: ConversationSession) -> str:
    normalized = normalize_text(user_input)

    for reply in state.quick_replies:
        if normalize_text(reply.title) == normalized:
            return reply.next

    intent = detect_intent(user_input)
    if intent == "BOOKING":
        return BOOK if session.is_qualified else QUALIFY
    if intent in INTENT_TARGETS:
        return INTENT_TARGETS[intent]

    best_next = None
    best_score = 0.0
    for reply in state.quick_replies:
        score = calculate_similarity(normalized, normalize_text(reply.title))
        if score > FUZZY_MATCH_THRESHOLD and score > best_score:
            best_next = reply.next
            best_score = score
    if best_next:
        return best_next

    return QUESTION


def _match_level(text: str, levels: dict[str, list[str]], order: tuple[str, ...]) -> Optional[str]:
    for level in order:
        if any(pattern in text for pattern in levels[level]):
            return level
    return None


def extract_qualification_value(field: str, user_input: str) -> str:
    lowered = (user_input or "").lower()

    if field == "lead_urgency":
        if "emergency" in lowered:
            return "emergency"
        level = _match_level(lowered, INTENT_PATTERNS["URGENCY"], ("HIGH", "MEDIUM", "LOW"))
        return {"HIGH": "today", "MEDIUM": "this_week", "LOW": "planning"}.get(level, "this_week")

    if field == "lead_intent":
        level = _match_level(lowered, INTENT_PATTERNS["QUALIFICATION"], ("FIRST_TIME", "RETURNING", "COMPARISON"))
        return {"FIRST_TIME": "first_time", "RETURNING": "returning", "COMPARISON": "comparison"}.get(
            level, "first_time"
        )

    return (user_input or "").strip()


def generate_message(state: FlowState, business: BusinessData, session: ConversationSession) -> str:
    if callable(state.message):
        return state.message(business, session)

    message = state.message
    for key, fallback in PLACEHOLDER_FALLBACKS.items():
        message = message.replace("{{" + key + "}}", getattr(business, key, None) or fallback)
    service = session.lead_data.get("lead_service")
    if service:
        message = message.replace("{{service}}", service)
    return message


def _build_result(
    state_name: str,
    state: FlowState,
    business: BusinessData,
    session: ConversationSession,
    qualification_data: dict[str, str],
) -> ConversationResult:
    return ConversationResult(
        state=state_name,
        message=generate_message(state, business, session),
        quick_replies=list(state.quick_replies),
        should_qualify=state.is_qualifying,
        qualification_data=qualification_data,
        is_booking_attempt=state.is_booking_state,
        should_follow_up=bool(state.follow_up_after_hours),
        follow_up_hours=state.follow_up_after_hours,
    )


def process_message(
    flow: ConversationFlow,
    session: ConversationSession,
    user_input: str,
    business: BusinessData,
) -> ConversationResult:
    """Advance the session by one user message and render the reply."""
    current_name = session.current_state if session.current_state in flow else START
    current = flow[current_name]

    next_name = determine_next_state(current, user_input, session)
    if next_name not in flow:
        next_name = QUESTION

    qualification_data: dict[str, str] = {}
    if current.is_qualifying and current.qualification_field:
        qualification_data[current.qualification_field] = extract_qualification_value(
            current.qualification_field, user_input
        )

    rendering_session = replace(session, lead_data={**session.lead_data, **qualification_data})
    return _build_result(next_name, flow[next_name], business, rendering_session, qualification_data)


def render_state(
    flow: ConversationFlow,
    state_name: str,
    session: ConversationSession,
    business: BusinessData,
) -> ConversationResult:
    """Render a state without consuming user input."""
    return _build_result(state_name, flow[state_name], business, session, {})


def should_send_follow_up(session: ConversationSession, hours_inactive: float) -> bool:
    if session.has_booked or session.current_state == END:
        return False
    count = session.follow_up_count
    if count >= MAX_FOLLOW_UPS:
        return False
    if count == 0:
        return hours_inactive >= FIRST_FOLLOW_UP_HOURS
    return hours_inactive >= SECOND_FOLLOW_UP_HOURS
