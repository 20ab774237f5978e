from replyo.conversations.flows.common import is_first_follow_up, lead_value, location_card, name_or
from replyo.conversations.types import FlowState, QuickReply


def _start(business, session):
    return (
        f"🚗 Hey! Welcome to {name_or(business, 'our detailing shop')}\n\n"
        "Ready to make your car look brand new?"
    )


def _book(business, session):
    service = lead_value(session, "lead_service", "your car detailing")
    return (
        f"Your car will look incredible! 🤩\n\nBook {service} here:\n{business.booking_link or '#'}\n\n"
        f"Or call {business.phone or 'us'} to schedule now!"
    )


def _follow_up(business, session):
    name = name_or(business, "us")
    if is_first_follow_up(session):
        return (
            f"Hey! 🚗\n\nStill want to give your car that showroom shine at {name}?\n\n"
            "Don't let your car stay dirty, book today! ✨"
        )
    return f"Your car deserves better! 🔥\n\n{name} will make it look incredible.\n\nBook now and drive with pride! 🌟"


FLOW = {
    "START": FlowState(
        message=_start,
        quick_replies=[
            QuickReply("✨ Book detailing", "QUALIFY", "book"),
            QuickReply("💰 See packages", "PRICES", "qualify"),
            QuickReply("📍 Our location", "LOCATION", "location"),
            QuickReply("❓ Ask question", "QUESTION", "question"),
        ],
        follow_up_after_hours=12,
    ),
    "QUALIFY": FlowState(
        message=(
            "Awesome! 🔥\n\nWhat type of detailing does your car need? "
            "(e.g., full detail, wash/wax, interior, paint correction)"
        ),
        quick_replies=[
            QuickReply("✨ Full detail package", "QUALIFY_TIMING"),
            QuickReply("🧽 Wash & wax", "QUALIFY_TIMING"),
            QuickReply("🪑 Interior detailing", "QUALIFY_TIMING"),
            QuickReply("🎨 Paint correction", "QUALIFY_TIMING"),
            QuickReply("🚗 Other service", "QUALIFY_TIMING"),
        ],
        is_qualifying=True,
        qualification_field="lead_service",
    ),
    "QUALIFY_TIMING": FlowState(
        message="Perfect choice! 🌟\n\nWhen would you like to bring your car in?",
        quick_replies=[
            QuickReply("📅 This week", "BOOK"),
            QuickReply("🗓️ Next week", "BOOK"),
            QuickReply("📋 This month", "BOOK"),
            QuickReply("🤔 Just browsing", "BOOK"),
        ],
        is_qualifying=True,
        qualification_field="lead_urgency",
    ),
    "BOOK": FlowState(
        message=_book,
        quick_replies=[
            QuickReply("📞 Call to book", "LOCATION"),
            QuickReply("❓ Have questions", "QUESTION"),
            QuickReply("✅ All set!", "END"),
        ],
        is_booking_state=True,
        follow_up_after_hours=12,
    ),
    "PRICES": FlowState(
        message=(
            "Premium detailing at competitive prices! 💎\n\n"
            "We offer packages from basic wash to full paint protection. Every car gets VIP treatment:"
        ),
        quick_replies=[
            QuickReply("📅 Book & see pricing", "QUALIFY", "book"),
            QuickReply("📍 Visit our shop", "LOCATION"),
            QuickReply("❓ Package questions", "QUESTION"),
        ],
    ),
    "LOCATION": FlowState(
        message=lambda business, session: location_card(business, location_label="Shop Location"),
        quick_replies=[
            QuickReply("🚗 Book detailing", "QUALIFY", "book"),
            QuickReply("💰 See packages", "PRICES"),
            QuickReply("❓ Ask question", "QUESTION"),
        ],
    ),
    "QUESTION": FlowState(
        message="Absolutely! 🚗\n\nWhat would you like to know? We're passionate about making cars look amazing!",
        quick_replies=[
            QuickReply("💰 Pricing info", "PRICES"),
            QuickReply("✨ Book service", "QUALIFY"),
            QuickReply("📍 Location & hours", "LOCATION"),
        ],
    ),
    "FOLLOW_UP": FlowState(
        message=_follow_up,
        quick_replies=[
            QuickReply("✨ Yes, let's book!", "QUALIFY"),
            QuickReply("❓ Have questions", "QUESTION"),
            QuickReply("🚫 Not interested", "END"),
        ],
        follow_up_after_hours=48,
    ),
    "END": FlowState(
        message="Thank you! 🙏\n\nWe're here whenever your car needs that VIP treatment! 🚗✨",
        quick_replies=[
            QuickReply("✨ Actually, let's book", "QUALIFY"),
            QuickReply("📍 Get location", "LOCATION"),
        ],
    ),
}
