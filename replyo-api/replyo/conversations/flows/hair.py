from replyo.conversations.flows.common import is_first_follow_up, lead_value, location_card, name_or
from replyo.conversations.types import FlowState, QuickReply


def _start(business, session):
    return f"✂️ Hey! Thanks for messaging {name_or(business, 'us')}\n\nHow can we help you today?"


def _book(business, session):
    service = lead_value(session, "lead_service", "your service")
    return (
        f"Excellent! 🎉\n\nClick here to book {service}:\n{business.booking_link or '#'}\n\n"
        f"Or call us at {business.phone or 'our number'} for immediate booking."
    )


def _prices(business, session):
    message = (
        "Our prices depend on the service and your hair type ✂️\n\n"
        "Most clients either book directly or start with a consultation here:"
    )
    if business.booking_link:
        message += f"\n{business.booking_link}"
    return message


def _follow_up(business, session):
    name = name_or(business, "us")
    if is_first_follow_up(session):
        return f"Hey! 👋\n\nStill need that fresh cut at {name}?\n\nWe've got some great slots opening up! ✂️"
    return (
        f"Last call! 🔥\n\nDon't miss out on booking with our top barbers at {name}.\n\n"
        "Click below to secure your spot! 📅"
    )


FLOW = {
    "START": FlowState(
        message=_start,
        quick_replies=[
            QuickReply("📅 Book an appointment", "QUALIFY", "book"),
            QuickReply("💰 Prices", "PRICES", "qualify"),
            QuickReply("📍 Location & hours", "LOCATION", "location"),
            QuickReply("❓ Ask a question", "QUESTION", "question"),
        ],
        follow_up_after_hours=12,
    ),
    "QUALIFY": FlowState(
        message="Perfect! 👌\n\nWhat service are you looking for? (e.g., haircut, color, styling, beard trim)",
        quick_replies=[
            QuickReply("✂️ Haircut", "QUALIFY_TIMING"),
            QuickReply("🎨 Hair color", "QUALIFY_TIMING"),
            QuickReply("🧔 Beard trim", "QUALIFY_TIMING"),
            QuickReply("💇 Styling", "QUALIFY_TIMING"),
            QuickReply("🔥 Other service", "QUALIFY_TIMING"),
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
        message="No problem at all 👍\n\nJust type your question below and we'll take care of it.",
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
        message="Thank you! 🙏\n\nLooking forward to seeing you soon. Have a great day! ✂️",
        quick_replies=[
            QuickReply("📅 Actually, let me book", "QUALIFY"),
            QuickReply("📍 Get location", "LOCATION"),
        ],
    ),
}
