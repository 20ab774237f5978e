from replyo.conversations.flows.common import is_first_follow_up, lead_value, location_card, name_or
from replyo.conversations.types import FlowState, QuickReply


def _start(business, session):
    return (
        f"💪 Hey there! Welcome to {name_or(business, 'our fitness studio')}\n\n"
        "Ready to transform your fitness journey?"
    )


def _book(business, session):
    goal = lead_value(session, "lead_service", "your fitness goals")
    return (
        f"Let's crush {goal} together! 💥\n\nBook your session here:\n{business.booking_link or '#'}\n\n"
        f"Or call {business.phone or 'us'} to get started immediately!"
    )


def _follow_up(business, session):
    name = name_or(business, "us")
    if is_first_follow_up(session):
        return (
            f"Hey! 💪\n\nStill ready to start your fitness transformation with {name}?\n\n"
            "Don't let another day pass, let's get you moving! 🔥"
        )
    return (
        f"Final call! 🚨\n\nYour future self will thank you for starting today at {name}.\n\n"
        "Book now and transform your life! 💯"
    )


FLOW = {
    "START": FlowState(
        message=_start,
        quick_replies=[
            QuickReply("🎯 Book training session", "QUALIFY", "book"),
            QuickReply("💰 Pricing & packages", "PRICES", "qualify"),
            QuickReply("📍 Gym location", "LOCATION", "location"),
            QuickReply("❓ Ask a question", "QUESTION", "question"),
        ],
        follow_up_after_hours=12,
    ),
    "QUALIFY": FlowState(
        message="Awesome! 🔥\n\nWhat are your fitness goals? (e.g., weight loss, muscle gain, strength, endurance)",
        quick_replies=[
            QuickReply("🏃‍♂️ Weight loss", "QUALIFY_TIMING"),
            QuickReply("💪 Muscle building", "QUALIFY_TIMING"),
            QuickReply("🏋️‍♀️ Strength training", "QUALIFY_TIMING"),
            QuickReply("🏃 Endurance/cardio", "QUALIFY_TIMING"),
            QuickReply("🎯 Other goals", "QUALIFY_TIMING"),
        ],
        is_qualifying=True,
        qualification_field="lead_service",
    ),
    "QUALIFY_TIMING": FlowState(
        message="Perfect choice! 💯\n\nWhen would you like to start?",
        quick_replies=[
            QuickReply("⚡ This week", "BOOK"),
            QuickReply("📅 Next week", "BOOK"),
            QuickReply("🗓️ This month", "BOOK"),
            QuickReply("🤔 Just exploring", "BOOK"),
        ],
        is_qualifying=True,
        qualification_field="lead_urgency",
    ),
    "BOOK": FlowState(
        message=_book,
        quick_replies=[
            QuickReply("📞 Call to discuss", "LOCATION"),
            QuickReply("❓ Have questions", "QUESTION"),
            QuickReply("✅ All set!", "END"),
        ],
        is_booking_state=True,
        follow_up_after_hours=12,
    ),
    "PRICES": FlowState(
        message=(
            "Our training packages are designed for results! 🎯\n\n"
            "We offer personal training, group sessions, and nutrition coaching. "
            "Best way to get exact pricing is a quick consultation:"
        ),
        quick_replies=[
            QuickReply("📅 Book consultation", "QUALIFY", "book"),
            QuickReply("📍 Visit our gym", "LOCATION"),
            QuickReply("❓ Specific questions", "QUESTION"),
        ],
    ),
    "LOCATION": FlowState(
        message=lambda business, session: location_card(
            business,
            location_label="Gym Location",
            hours_label="Training Hours",
            hours_default="Flexible scheduling available",
        ),
        quick_replies=[
            QuickReply("💪 Book training", "QUALIFY", "book"),
            QuickReply("💰 See packages", "PRICES"),
            QuickReply("❓ Ask question", "QUESTION"),
        ],
    ),
    "QUESTION": FlowState(
        message="Absolutely! 💬\n\nWhat would you like to know? I'm here to help you succeed!",
        quick_replies=[
            QuickReply("💰 Pricing info", "PRICES"),
            QuickReply("🎯 Book session", "QUALIFY"),
            QuickReply("📍 Location & hours", "LOCATION"),
        ],
    ),
    "FOLLOW_UP": FlowState(
        message=_follow_up,
        quick_replies=[
            QuickReply("🔥 Yes, let's do this!", "QUALIFY"),
            QuickReply("❓ Have questions", "QUESTION"),
            QuickReply("🚫 Not ready", "END"),
        ],
        follow_up_after_hours=48,
    ),
    "END": FlowState(
        message="Thank you! 🙏\n\nRemember, every expert was once a beginner. We're here when you're ready! 💪",
        quick_replies=[
            QuickReply("🎯 Actually, let's book", "QUALIFY"),
            QuickReply("📍 Get location", "LOCATION"),
        ],
    ),
}
