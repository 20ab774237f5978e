from typing import Any, Optional

from sqlalchemy.orm import Session

from replyo.logging_config import get_logger
from replyo.models import BusinessProfile, Subscription, SubscriptionStatus
from replyo.services.business_profile_service import get_business_profile, normalize_ig_username

logger = get_logger("license_service")

PENDING_BUSINESS_NAME = "Pending"


class NoAvailableSubscriptionError(Exception):
    pass


def find_unclaimed_subscription(db: Session) -> Optional[Subscription]:
    """Newest ACTIVE subscription that no business has claimed yet."""
    claimed = db.query(BusinessProfile.subscription_id).filter(BusinessProfile.subscription_id.isnot(None))
    return (
        db.query(Subscription)
        .filter(
            Subscription.status == SubscriptionStatus.ACTIVE.value,
            Subscription.id.notin_(claimed),
        )
        .order_by(Subscription.created_at.desc())
        .first()
    )


def register_ig_username(db: Session, ig_username: str) -> BusinessProfile:
    username = normalize_ig_username(ig_username)
    profile = get_business_profile(db, username)

    subscription = None
    if profile is None or profile.subscription_id is None:
        subscription = find_unclaimed_subscription(db)
        if subscription is None:
            raise NoAvailableSubscriptionError("No available subscription found")

    if profile is None:
        profile = BusinessProfile(ig_username=username, business_name=PENDING_BUSINESS_NAME)
        db.add(profile)
    if subscription is not None:
        profile.subscription_id = subscription.id
    db.flush()

    logger.info(
        "Instagram username registered",
        extra={"context": {"ig_username": username, "subscription_id": str(profile.subscription_id)}},
    )
    return profile


def check_access_by_username(db: Session, ig_username: str) -> dict[str, Any]:
    profile = get_business_profile(db, ig_username)
    return {"allowed": profile is not None, "ig_username": normalize_ig_username(ig_username)}
