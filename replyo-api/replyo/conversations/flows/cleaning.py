from replyo.conversations.flows.common import is_first_follow_up, lead_value, location_card, name_or
from replyo.conversations.types import FlowState, QuickReply


def _start(business, session):
    return (
        f"🏠 Hi! Welcome to {name_or(business, 'our cleaning service')}\n\n"
        "How can we help make your space spotless?"
    )


def _book(business, session):
    service = lead_value(session, "lead_service", "your cleaning")
    return (
        f"Excellent! We'll make your space shine! ✨\n\nBook {service} here:\n{business.booking_link or '#'}\n\n"
        f"Or call {business.phone or 'us'} for immediate scheduling!"
    )


def _follow_up(business, session):
    name = name_or(business, "us")
    if is_first_follow_up(session):
        return f"Hi again! 🏠\n\nStill need help with cleaning from {name}?\n\nWe'd love to make your space sparkle! ✨"
    return (
        f"Don't let cleaning stress you out! 🧽\n\nLet the professionals at {name} handle it.\n\n"
        "Book today for a spotless space! 🌟"
    )


FLOW = {
    "START": FlowState(
        message=_start,
        quick_replies=[
            QuickReply("📅 Book cleaning", "QUALIFY", "book"),
            QuickReply("💰 Get pricing", "PRICES", "qualify"),
            QuickReply("📍 Service areas", "LOCATION", "location"),
            QuickReply("❓ Ask question", "QUESTION", "question"),
        ],
        follow_up_after_hours=12,
    ),
    "QUALIFY": FlowState(
        message=(
            "Perfect! ✨\n\nWhat type of cleaning do you need? "
            "(e.g., regular cleaning, deep clean, move-in/out, office)"
        ),
        quick_replies=[
            QuickReply("🏡 Regular home cleaning", "QUALIFY_TIMING"),
            QuickReply("🧽 Deep cleaning", "QUALIFY_TIMING"),
            QuickReply("📦 Move-in/out cleaning", "QUALIFY_TIMING"),
            QuickReply("🏢 Office cleaning", "QUALIFY_TIMING"),
            QuickReply("✨ Other service", "QUALIFY_TIMING"),
        ],
        is_qualifying=True,
        qualification_field="lead_service",
    ),
    "QUALIFY_TIMING": FlowState(
        message="Great choice! 🌟\n\nWhen do you need this done?",
        quick_replies=[
            QuickReply("⚡ ASAP", "BOOK"),
            QuickReply("📅 This week", "BOOK"),
            QuickReply("🗓️ Next week", "BOOK"),
            QuickReply("📋 Getting quotes", "BOOK"),
        ],
        is_qualifying=True,
        qualification_field="lead_urgency",
    ),
    "BOOK": FlowState(
        message=_book,
        quick_replies=[
            QuickReply("📞 Call for quote", "LOCATION"),
            QuickReply("❓ Have questions", "QUESTION"),
            QuickReply("✅ All set!", "END"),
        ],
        is_booking_state=True,
        follow_up_after_hours=12,
    ),
    "PRICES": FlowState(
        message=(
            "Our pricing depends on space size and service type 🏠\n\n"
            "We offer competitive rates with no hidden fees! Best way to get accurate pricing:"
        ),
        quick_replies=[
            QuickReply("📅 Get free estimate", "QUALIFY", "book"),
            QuickReply("📍 Check service area", "LOCATION"),
            QuickReply("❓ Pricing questions", "QUESTION"),
        ],
    ),
    "LOCATION": FlowState(
        message=lambda business, session: location_card(
            business,
            location_label="Service Areas",
            location_default="Contact us for service areas",
            hours_label="Availability",
            hours_default="Flexible scheduling 7 days/week",
        ),
        quick_replies=[
            QuickReply("🏠 Book cleaning", "QUALIFY", "book"),
            QuickReply("💰 Get pricing", "PRICES"),
            QuickReply("❓ Ask question", "QUESTION"),
        ],
    ),
    "QUESTION": FlowState(
        message="Of course! 💬\n\nWhat would you like to know? We're here to help make your life easier!",
        quick_replies=[
            QuickReply("💰 Pricing info", "PRICES"),
            QuickReply("📅 Book service", "QUALIFY"),
            QuickReply("📍 Service areas", "LOCATION"),
        ],
    ),
    "FOLLOW_UP": FlowState(
        message=_follow_up,
        quick_replies=[
            QuickReply("✨ Yes, let's book!", "QUALIFY"),
            QuickReply("❓ Have questions", "QUESTION"),
            QuickReply("🚫 Not needed", "END"),
        ],
        follow_up_after_hours=48,
    ),
    "END": FlowState(
        message="Thank you! 🙏\n\nWe're here whenever you need a spotless space. Have a wonderful day! ✨",
        quick_replies=[
            QuickReply("🏠 Actually, let's book", "QUALIFY"),
            QuickReply("📍 Service areas", "LOCATION"),
        ],
    ),
}
