from replyo.conversations.flows.common import is_first_follow_up, lead_value, location_card, name_or
from replyo.conversations.types import FlowState, QuickReply


def _start(business, session):
    return f"💄 Hi there! Welcome to {name_or(business, 'our salon')}\n\nHow can we help you today?"


def _book(business, session):
    service = lead_value(session, "lead_service", "your service")
    return (
        f"Excellent! 🎉\n\nClick here to book {service}:\n{business.booking_link or '#'}\n\n"
        f"Or call us at {business.phone or 'our number'} for immediate booking."
    )


def _prices(business, session):
    return (
        "Our prices vary by service and treatment time 💎\n\n"
        "Most clients find our rates very competitive! Here's how to see our full price list:\n\n"
        f"{business.booking_link or 'Contact us for pricing'}"
    )


def _follow_up(business, session):
    name = name_or(business, "us")
    if is_first_follow_up(session):
        return (
            f"Hi again! 👋\n\nJust wanted to check if you're still interested in booking with {name}?\n\n"
            "We'd love to help you look and feel amazing! ✨"
        )
    return (
        f"Last chance! 💎\n\nWe have some availability opening up this week at {name}.\n\n"
        "Book now to secure your spot! 📅"
    )


FLOW = {
    "START": FlowState(
        message=_start,
        quick_replies=[
            QuickReply("💅 Book an appointment", "QUALIFY", "book"),
            QuickReply("💰 Prices & services", "PRICES", "qualify"),
            QuickReply("📍 Location & hours", "LOCATION", "location"),
            QuickReply("❓ Ask a question", "QUESTION", "question"),
        ],
        follow_up_after_hours=12,
    ),
    "QUALIFY": FlowState(
        message="Perfect! 💕\n\nWhat service are you looking for? (e.g., nails, lashes, facial, massage)",
        quick_replies=[
            QuickReply("💅 Nail services", "QUALIFY_TIMING"),
            QuickReply("👁️ Lash services", "QUALIFY_TIMING"),
            QuickReply("✨ Facial treatment", "QUALIFY_TIMING"),
            QuickReply("💆 Massage therapy", "QUALIFY_TIMING"),
            QuickReply("🎨 Other service", "QUALIFY_TIMING"),
        ],
        is_qualifying=True,
        qualification_field="lead_service",
    ),
    "QUALIFY_TIMING": FlowState(
        message="Great choice! ⭐\n\nWhen are you looking to book?",
        quick_replies=[
            QuickReply("📅 Today", "BOOK"),
            QuickReply("📆 This week", "BOOK"),
            QuickReply("🗓️ Next week", "BOOK"),
            QuickReply("🔮 Just planning ahead", "BOOK"),
        ],
        is_qualifying=True,
        qualification_field="lead_urgency",
    ),
    "BOOK": FlowState(
        message=_book,
        quick_replies=[
            QuickReply("📞 Call instead", "LOCATION"),
            QuickReply("❓ Have questions", "QUESTION"),
            QuickReply("✅ All set, thanks!", "END"),
        ],
        is_booking_state=True,
        follow_up_after_hours=12,
    ),
    "PRICES": FlowState(
        message=_prices,
        quick_replies=[
            QuickReply("📅 Book consultation", "QUALIFY", "book"),
            QuickReply("📍 Visit our location", "LOCATION"),
            QuickReply("❓ Specific questions", "QUESTION"),
        ],
    ),
    "LOCATION": FlowState(
        message=lambda business, session: location_card(business),
        quick_replies=[
            QuickReply("📅 Book appointment", "QUALIFY", "book"),
            QuickReply("💰 See prices", "PRICES"),
            QuickReply("❓ Ask question", "QUESTION"),
        ],
    ),
    "QUESTION": FlowState(
        message="Of course! 💬\n\nWhat would you like to know? Type your question below and we'll help you out.",
        quick_replies=[
            QuickReply("💰 Pricing info", "PRICES"),
            QuickReply("📅 Book appointment", "QUALIFY"),
            QuickReply("📍 Location & hours", "LOCATION"),
        ],
    ),
    "FOLLOW_UP": FlowState(
        message=_follow_up,
        quick_replies=[
            QuickReply("✅ Yes, let's book!", "QUALIFY"),
            QuickReply("❓ Have questions", "QUESTION"),
            QuickReply("🚫 Not interested", "END"),
        ],
        follow_up_after_hours=48,
    ),
    "END": FlowState(
        message="Thank you so much! 💕\n\nWe can't wait to see you soon. Have a beautiful day! ✨",
        quick_replies=[
            QuickReply("📅 Actually, let me book", "QUALIFY"),
            QuickReply("📍 Get location", "LOCATION"),
        ],
    ),
}
