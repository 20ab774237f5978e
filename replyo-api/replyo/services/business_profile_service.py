from typing import Any, Optional

from sqlalchemy.orm import Session

from replyo.conversations.types import BusinessData
from replyo.logging_config import get_logger
from replyo.models import BusinessProfile

logger = get_logger("business_profile_service")

PROFILE_FIELDS = (
    "business_name",
    "booking_link",
    "industry",
    "email",
    "phone",
    "location",
    "hours",
    "tone",
    "avg_order_value",
    "conversion_multiplier",
    "instagram_account_id",
    "instagram_access_token",
)


class BusinessNotFoundError(Exception):
    """Raised when no business profile matches an Instagram username."""

    def __init__(self, ig_username: str):
        self.ig_username = ig_username
        super().__init__(f"Business not found: {ig_username}")


def normalize_ig_username(value: Optional[str]) -> str:
    return (value or "").strip().lstrip("@").strip().lower()


def get_business_profile(db: Session, ig_username: str) -> Optional[BusinessProfile]:
    return db.query(BusinessProfile).filter(BusinessProfile.ig_username == normalize_ig_username(ig_username)).first()


def get_business_by_id(db: Session, business_id) -> Optional[BusinessProfile]:
    return db.query(BusinessProfile).filter(BusinessProfile.id == business_id).first()


def get_business_by_instagram_account(db: Session, account_id: str) -> Optional[BusinessProfile]:
    return db.query(BusinessProfile).filter(BusinessProfile.instagram_account_id == account_id).first()


def get_all_business_profiles(db: Session) -> list[BusinessProfile]:
    return db.query(BusinessProfile).order_by(BusinessProfile.created_at.desc()).all()


def upsert_business_profile(db: Session, ig_username: str, data: dict[str, Any]) -> BusinessProfile:
    """Create or update a profile; None values never overwrite stored data."""
    username = normalize_ig_username(ig_username)
    profile = db.query(BusinessProfile).filter(BusinessProfile.ig_username == username).first()
    updates = {key: value for key, value in data.items() if key in PROFILE_FIELDS and value is not None}

    if profile is None:
        profile = BusinessProfile(ig_username=username, business_name=updates.pop("business_name", None) or username)
        db.add(profile)
        created = True
    else:
        created = False

    for key, value in updates.items():
        setattr(profile, key, value)
    db.flush()

    logger.info(
        "Business profile upserted",
        extra={"context": {"ig_username": username, "created": created, "fields": sorted(updates)}},
    )
    return profile


def to_business_data(profile: BusinessProfile) -> BusinessData:
    return BusinessData(
        id=str(profile.id) if profile.id else None,
        business_name=profile.business_name,
        booking_link=profile.booking_link,
        email=profile.email,
        phone=profile.phone,
        location=profile.location,
        hours=profile.hours,
        tone=profile.tone,
        industry=profile.industry,
    )


def serialize_profile(profile: BusinessProfile) -> dict[str, Any]:
    return {
        "id": str(profile.id) if profile.id else None,
        "ig_username": profile.ig_username,
        "business_name": profile.business_name,
        "booking_link": profile.booking_link,
        "industry": profile.industry,
        "email": profile.email,
        "phone": profile.phone,
        "location": profile.location,
        "hours": profile.hours,
        "tone": profile.tone,
        "instagram_connected": bool(profile.instagram_access_token),
        "created_at": profile.created_at.isoformat() if profile.created_at else None,
        "updated_at": profile.updated_at.isoformat() if profile.updated_at else None,
    }


def get_business_data(db: Session, ig_username: str) -> Optional[dict[str, Any]]:
    """Business data as seen by the conversation flows."""
    profile = get_business_profile(db, ig_username)
    if not profile:
        return None
    return to_business_data(profile).to_dict()


def update_business_data(db: Session, ig_username: str, updates: dict[str, Any]) -> bool:
    profile = get_business_profile(db, ig_username)
    if not profile:
        return False
    for key, value in updates.items():
        if key in PROFILE_FIELDS and value is not None:
            setattr(profile, key, value)
    db.flush()
    return True


def business_exists(db: Session, ig_username: str) -> bool:
    return get_business_profile(db, ig_username) is not None


def get_all_business_usernames(db: Session) -> list[str]:
    rows = db.query(BusinessProfile.ig_username).order_by(BusinessProfile.ig_username).all()
    return [row[0] for row in rows]
