from replyo.conversations.flows import beauty, cleaning, detailing, electrical, fitness, hair, plumbing
from replyo.conversations.types import ConversationFlow

FLOWS: dict[str, ConversationFlow] = {
    "beauty": beauty.FLOW,
    "hair": hair.FLOW,
    "fitness": fitness.FLOW,
    "cleaning": cleaning.FLOW,
    "plumbing": plumbing.FLOW,
    "electrical": electrical.FLOW,
    "detailing": detailing.FLOW,
}

INDUSTRY_ALIASES = {
    "hair": "hair",
    "barber": "hair",
    "barbershop": "hair",
    "hairdresser": "hair",
    "fitness": "fitness",
    "gym": "fitness",
    "personal training": "fitness",
    "trainer": "fitness",
    "cleaning": "cleaning",
    "house cleaning": "cleaning",
    "office cleaning": "cleaning",
    "maid service": "cleaning",
    "plumbing": "plumbing",
    "plumber": "plumbing",
    "pipes": "plumbing",
    "electrical": "electrical",
    "electrician": "electrical",
    "electric": "electrical",
    "detailing": "detailing",
    "car detailing": "detailing",
    "auto detailing": "detailing",
    "car wash": "detailing",
}


def resolve_industry(industry: str | None) -> str:
    """Map a free-form industry label onto one of the supported flows."""
    key = (industry or "").strip().lower()
    return INDUSTRY_ALIASES.get(key, "beauty")


def get_conversation_flow(industry: str | None) -> ConversationFlow:
    return FLOWS[resolve_industry(industry)]


__all__ = ["FLOWS", "INDUSTRY_ALIASES", "get_conversation_flow", "resolve_industry"]
