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
        f"⚡ Hello! Welcome to {name_or(business, 'our electrical service')}\n\n"
        "What electrical work can we help you with?"
    )


def _book(business, session):
    service = lead_value(session, "lead_service", "your electrical work")
    if is_emergency(session):
        return (
            f"🚨 ELECTRICAL EMERGENCY!\n\nFor {service}, call immediately: "
            f"{business.phone or 'our emergency line'}\n\nLicensed electrician dispatching now! ⚡"
        )
    return (
        f"Licensed & insured for {service}! ⚡\n\nSchedule here:\n{business.booking_link or '#'}\n\n"
        f"Or call {business.phone or 'us'} for immediate service!"
    )


def _follow_up(business, session):
    name = name_or(business, "us")
    if is_first_follow_up(session):
        return (
            f"Hi! ⚡\n\nDid you get that electrical work taken care of? {name} is ready to help safely!\n\n"
            "Don't risk DIY electrical work! 🚨"
        )
    return (
        f"Electrical issues can be dangerous! ⚡\n\n{name} provides safe, licensed electrical service.\n\n"
        "Protect your family, call today! 🏠"
    )


FLOW = {
    "START": FlowState(
        message=_start,
        quick_replies=[
            QuickReply("🚨 Emergency electrical", "QUALIFY", "book"),
            QuickReply("⚡ Schedule service", "QUALIFY", "book"),
            QuickReply("💰 Get estimate", "PRICES", "qualify"),
            QuickReply("❓ Ask question", "QUESTION", "question"),
        ],
        follow_up_after_hours=6,
    ),
    "QUALIFY": FlowState(
        message=(
            "Safety first! ⚡\n\nWhat type of electrical work do you need? "
            "(e.g., outlet/switch, panel upgrade, wiring, lighting)"
        ),
        quick_replies=[
            QuickReply("🔌 Outlets/switches", "QUALIFY_TIMING"),
            QuickReply("💡 Lighting installation", "QUALIFY_TIMING"),
            QuickReply("🏠 Panel/wiring upgrade", "QUALIFY_TIMING"),
            QuickReply("🚨 Emergency repair", "QUALIFY_TIMING"),
            QuickReply("⚡ Other electrical", "QUALIFY_TIMING"),
        ],
        is_qualifying=True,
        qualification_field="lead_service",
    ),
    "QUALIFY_TIMING": FlowState(
        message="Perfect! ⚡\n\nHow soon do you need this done?",
        quick_replies=[
            QuickReply("🚨 Emergency - NOW", "BOOK"),
            QuickReply("⚡ Today/ASAP", "BOOK"),
            QuickReply("📅 This week", "BOOK"),
            QuickReply("🗓️ Planning project", "BOOK"),
        ],
        is_qualifying=True,
        qualification_field="lead_urgency",
    ),
    "BOOK": FlowState(
        message=_book,
        quick_replies=[
            QuickReply("📞 Call electrician", "LOCATION"),
            QuickReply("❓ Safety questions", "QUESTION"),
            QuickReply("✅ All set!", "END"),
        ],
        is_booking_state=True,
        follow_up_after_hours=6,
    ),
    "PRICES": FlowState(
        message=(
            "Licensed, insured, and fairly priced! ⚡\n\n"
            "We provide free estimates and transparent pricing. All work meets electrical code requirements."
        ),
        quick_replies=[
            QuickReply("📅 Free estimate", "QUALIFY", "book"),
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
            hours_default="24/7 Emergency Electrical Service",
            phone_label="Licensed Electrician",
        ),
        quick_replies=[
            QuickReply("⚡ Book service", "QUALIFY", "book"),
            QuickReply("💰 Get estimate", "PRICES"),
            QuickReply("❓ Ask question", "QUESTION"),
        ],
    ),
    "QUESTION": FlowState(
        message=(
            "Safety is our priority! ⚡\n\n"
            "What electrical questions do you have? Our licensed electricians are here to help!"
        ),
        quick_replies=[
            QuickReply("💰 Pricing info", "PRICES"),
            QuickReply("⚡ Book service", "QUALIFY"),
            QuickReply("📍 Service areas", "LOCATION"),
        ],
    ),
    "FOLLOW_UP": FlowState(
        message=_follow_up,
        quick_replies=[
            QuickReply("⚡ Yes, need electrician!", "QUALIFY"),
            QuickReply("❓ Safety questions", "QUESTION"),
            QuickReply("✅ All handled", "END"),
        ],
        follow_up_after_hours=24,
    ),
    "END": FlowState(
        message="Thank you! 🙏\n\nStay safe and remember, we're here for all your electrical needs! ⚡",
        quick_replies=[
            QuickReply("⚡ Actually, need service", "QUALIFY"),
            QuickReply("📍 Service areas", "LOCATION"),
        ],
    ),
}
