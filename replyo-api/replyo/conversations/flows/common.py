"""Message helpers reused by the industry flows."""

from replyo.conversations.types import BusinessData, ConversationSession


def name_or(business: BusinessData, default: str) -> str:
    return business.business_name or default


def lead_value(session: ConversationSession, key: str, default: str = "") -> str:
    return session.lead_data.get(key) or default


def is_emergency(session: ConversationSession) -> bool:
    return session.lead_data.get("lead_urgency") == "emergency"


def is_first_follow_up(session: ConversationSession) -> bool:
    return session.follow_up_count == 0


def location_card(
    business: BusinessData,
    *,
    location_label: str = "Location",
    location_default: str = "Contact us for location",
    hours_label: str = "Hours",
    hours_default: str = "Contact us for hours",
    phone_label: str = "Phone",
) -> str:
    return (
        f"📍 **{location_label}:**\n{business.location or location_default}\n\n"
        f"⏰ **{hours_label}:**\n{business.hours or hours_default}\n\n"
        f"📞 **{phone_label}:**\n{business.phone or 'Contact us'}"
    )
