"""Data types shared by conversation flows and the engine."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Union

START = "START"
QUALIFY = "QUALIFY"
QUALIFY_TIMING = "QUALIFY_TIMING"
BOOK = "BOOK"
PRICES = "PRICES"
LOCATION = "LOCATION"
QUESTION = "QUESTION"
FOLLOW_UP = "FOLLOW_UP"
END = "END"
ERROR = "ERROR"

REQUIRED_STATES = (START, QUALIFY, BOOK, PRICES, LOCATION, QUESTION, FOLLOW_UP, END)


@dataclass
class QuickReply:
    title: str
    next: str
    action: Optional[str] = None  # qualify, book, location, question


@dataclass
class BusinessData:
    id: Optional[str] = None
    business_name: Optional[str] = None
    booking_link: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    hours: Optional[str] = None
    tone: Optional[str] = None
    industry: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "business_name": self.business_name,
            "booking_link": self.booking_link,
            "email": self.email,
            "phone": self.phone,
            "location": self.location,
            "hours": self.hours,
            "tone": self.tone,
            "industry": self.industry,
        }


@dataclass
class ConversationSession:
    conversation_id: str
    current_state: str = START
    last_activity: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    industry: str = "beauty"
    lead_data: dict[str, Any] = field(default_factory=dict)
    is_qualified: bool = False
    has_booked: bool = False

    @property
    def follow_up_count(self) -> int:
        try:
            return int(self.lead_data.get("follow_up_count") or 0)
        except (TypeError, ValueError):
            return 0


MessageTemplate = Union[str, Callable[[BusinessData, ConversationSession], str]]


@dataclass
class FlowState:
    message: MessageTemplate
    quick_replies: list[QuickReply] = field(default_factory=list)
    is_qualifying: bool = False
    qualification_field: Optional[str] = None
    is_booking_state: bool = False
    follow_up_after_hours: Optional[int] = None


ConversationFlow = dict[str, FlowState]


@dataclass
class ConversationResult:
    state: str
    message: str
    quick_replies: list[QuickReply] = field(default_factory=list)
    should_qualify: bool = False
    qualification_data: dict[str, str] = field(default_factory=dict)
    is_booking_attempt: bool = False
    should_follow_up: bool = False
    follow_up_hours: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state,
            "message": self.message,
            "quick_replies": [
                {"title": reply.title, "next": reply.next, "action": reply.action} for reply in self.quick_replies
            ],
            "should_qualify": self.should_qualify,
            "qualification_data": dict(self.qualification_data),
            "is_booking_attempt": self.is_booking_attempt,
            "should_follow_up": self.should_follow_up,
            "follow_up_hours": self.follow_up_hours,
        }


INTENT_PATTERNS: dict[str, Any] = {
    "BOOKING": [
        "book", "appointment", "schedule", "reserve", "when", "available",
        "time", "slot", "calendar", "today", "tomorrow", "this week",
    ],
    "PRICING": [
        "price", "cost", "how much", "rate", "fee", "expensive",
        "cheap", "affordable", "discount", "deal", "special", "offer",
    ],
    "LOCATION": [
        "where", "location", "address", "directions", "how to get",
        "parking", "near", "close", "far", "drive", "walk",
    ],
    "SERVICES": [
        "what", "service", "do you", "offer", "provide", "specialize",
        "type", "kind", "style", "treatment", "package",
    ],
    "URGENCY": {
        "HIGH": ["today", "now", "urgent", "asap", "emergency", "immediately"],
        "MEDIUM": ["this week", "soon", "quickly", "fast", "tomorrow"],
        "LOW": ["next week", "next month", "planning", "eventually", "future"],
    },
    "QUALIFICATION": {
        "FIRST_TIME": ["first time", "never been", "new", "never tried", "first visit"],
        "RETURNING": ["been before", "came here", "regular", "usual", "again"],
        "COMPARISON": ["comparing", "other places", "vs", "better", "different", "cheaper"],
    },
}

ROUTABLE_INTENTS = ("BOOKING", "PRICING", "LOCATION", "SERVICES")
