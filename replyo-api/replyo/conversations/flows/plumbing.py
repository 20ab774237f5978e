from replyo.conversations.flows.common import (
    is_emergency,
    is_first_follow_up,
    lead_value,
    location_card,
    name_or,
)
from replyo.conversations.types import FlowState, QuickReply


def _start(business, session):
    return (
        f"🔧 Hello! Welcome to {name_or(business, 'our plumbing service')}\n\n"
        "What plumbing issue can we help you with?"
    )


def _book(business, session):
    service = lead_value(session, "lead_service", "your plumbing issue")
    if is_emergency(session):
        return (
            f"🚨 Emergency service for {service}!\n\n"
            f"Call us RIGHT NOW: {business.phone or 'our emergency line'}\n\nWe'll be there fast!"
        )
    return (
        f"We'll fix {service} quickly! 🔧\n\nSchedule here:\n{business.booking_link or '#'}\n\n"
        f"Or call {business.phone or 'us'} for immediate dispatch!"
    )


def _follow_up(business, session):
    name = name_or(business, "us")
    if is_first_follow_up(session):
        return (
            f"Hi! 🔧\n\nDid you get that plumbing issue resolved? {name} is still ready to help!\n\n"
            "Don't let small problems become big ones! 💧"
        )
    return (
        f"Plumbing problems don't fix themselves! 🚨\n\n{name} offers quick, reliable service.\n\n"
        "Call now before it gets worse! 🔧"
    )


FLOW = {
    "START": FlowState(
        message=_start,
        quick_replies=[
            QuickReply("🚨 Emergency repair", "QUALIFY", "book"),
            QuickReply("🔧 Schedule service", "QUALIFY", "book"),
            QuickReply("💰 Get estimate", "PRICES", "qualify"),
            QuickReply("❓ Ask question", "QUESTION", "question"),
        ],
        follow_up_after_hours=6,
    ),
    "QUALIFY": FlowState(
        message=(
            "We're here to help! 💪\n\nWhat type of plumbing work do you need? "
            "(e.g., leak repair, drain cleaning, installation, emergency)"
        ),
        quick_replies=[
            QuickReply("💧 Leak repair", "QUALIFY_TIMING"),
            QuickReply("🚽 Toilet/drain issues", "QUALIFY_TIMING"),
            QuickReply("🔧 Installation/replacement", "QUALIFY_TIMING"),
            QuickReply("🚨 Emergency service", "QUALIFY_TIMING"),
            QuickReply("🔍 Other issue", "QUALIFY_TIMING"),
        ],
        is_qualifying=True,
        qualification_field="lead_service",
    ),
    "QUALIFY_TIMING": FlowState(
        message="Got it! ⚡\n\nHow urgent is this?",
        quick_replies=[
            QuickReply("🚨 Emergency NOW", "BOOK"),
            QuickReply("⚡ Today if possible", "BOOK"),
            QuickReply("📅 This week", "BOOK"),
            QuickReply("🗓️ Planning ahead", "BOOK"),
        ],
        is_qualifying=True,
        qualification_field="lead_urgency",
    ),
    "BOOK": FlowState(
        message=_book,
        quick_replies=[
            QuickReply("📞 Call now", "LOCATION"),
            QuickReply("❓ Have questions", "QUESTION"),
            QuickReply("✅ All set!", "END"),
        ],
        is_booking_state=True,
        follow_up_after_hours=6,
    ),
    "PRICES": FlowState(
        message=(
            "Fair, transparent pricing with no surprises! 💯\n\n"
            "We provide free estimates and upfront pricing. Emergency rates may apply for after-hours service."
        ),
        quick_replies=[
            QuickReply("📅 Get free estimate", "QUALIFY", "book"),
            QuickReply("📍 Service areas", "LOCATION"),
            QuickReply("❓ Pricing questions", "QUESTION"),
        ],
    ),
    "LOCATION": FlowState(
        message=lambda business, session: location_card(
            business,
            location_label="Service Areas",
            location_default="Contact us for service coverage",
            hours_label="Availability",
            hours_default="24/7 Emergency Service Available",
            phone_label="Emergency Line",
        ),
        quick_replies=[
            QuickReply("🔧 Book service", "QUALIFY", "book"),
            QuickReply("💰 Get estimate", "PRICES"),
            QuickReply("❓ Ask question", "QUESTION"),
        ],
    ),
    "QUESTION": FlowState(
        message="Absolutely! 🔧\n\nWhat can I help you with? We're the plumbing experts you can trust!",
        quick_replies=[
            QuickReply("💰 Pricing info", "PRICES"),
            QuickReply("🔧 Book service", "QUALIFY"),
            QuickReply("📍 Service areas", "LOCATION"),
        ],
    ),
    "FOLLOW_UP": FlowState(
        message=_follow_up,
        quick_replies=[
            QuickReply("🔧 Yes, need help!", "QUALIFY"),
            QuickReply("❓ Have questions", "QUESTION"),
            QuickReply("✅ All fixed", "END"),
        ],
        follow_up_after_hours=24,
    ),
    "END": FlowState(
        message="Thank you! 🙏\n\nWe're always here for your plumbing needs. Stay leak-free! 🔧",
        quick_replies=[
            QuickReply("🔧 Actually, need service", "QUALIFY"),
            QuickReply("📍 Service areas", "LOCATION"),
        ],
    ),
}
