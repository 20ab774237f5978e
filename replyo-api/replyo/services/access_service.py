from typing import Any

from sqlalchemy.orm import Session

from replyo.models import SubscriptionStatus
from replyo.services.instagram_service import get_instagram_page


def check_access(db: Session, page_id: str) -> dict[str, Any]:
    """A page may use the bot only while its subscription is ACTIVE."""
    page = get_instagram_page(db, page_id)
    if not page:
        return {"allowed": False, "page_id": page_id, "reason": "Page not connected"}

    subscription = page.subscription
    if not subscription:
        return {"allowed": False, "page_id": page_id, "reason": "Subscription not found"}

    allowed = subscription.status == SubscriptionStatus.ACTIVE.value
    return {
        "allowed": allowed,
        "page_id": page_id,
        "subscription_status": subscription.status,
        "reason": None if allowed else "Subscription is not active",
    }
