from typing import Any, Optional

from sqlalchemy.orm import Session

from replyo.logging_config import get_logger
from replyo.models import InstagramPage, Subscription, SubscriptionStatus
from replyo.services.result import Result

logger = get_logger("instagram_service")


def connect_instagram_page(
    db: Session,
    *,
    subscription_id,
    page_id: str,
    page_name: Optional[str] = None,
    access_token: Optional[str] = None,
) -> Result[InstagramPage]:
    subscription = db.query(Subscription).filter(Subscription.id == subscription_id).first()
    if not subscription:
        return Result.failure("Subscription not found", "not_found")
    if subscription.status != SubscriptionStatus.ACTIVE.value:
        return Result.failure("Subscription is not active", "inactive")

    page = get_instagram_page(db, page_id)
    if page is None:
        page = InstagramPage(page_id=page_id)
        db.add(page)
    page.subscription_id = subscription.id
    if page_name:
        page.page_name = page_name
    if access_token:
        page.access_token = access_token
    db.flush()

    logger.info(
        "Instagram page connected",
        extra={"context": {"page_id": page_id, "subscription_id": str(subscription.id)}},
    )
    return Result.success(page)


def disconnect_instagram_page(db: Session, page_id: str) -> bool:
    page = get_instagram_page(db, page_id)
    if not page:
        return False
    db.delete(page)
    db.flush()
    logger.info("Instagram page disconnected", extra={"context": {"page_id": page_id}})
    return True


def get_instagram_page(db: Session, page_id: str) -> Optional[InstagramPage]:
    return db.query(InstagramPage).filter(InstagramPage.page_id == page_id).first()


def get_instagram_pages_by_subscription(db: Session, subscription_id) -> list[InstagramPage]:
    return (
        db.query(InstagramPage)
        .filter(InstagramPage.subscription_id == subscription_id)
        .order_by(InstagramPage.connected_at.desc())
        .all()
    )


def serialize_page(page: InstagramPage) -> dict[str, Any]:
    return {
        "id": str(page.id) if page.id else None,
        "page_id": page.page_id,
        "page_name": page.page_name,
        "subscription_id": str(page.subscription_id) if page.subscription_id else None,
        "connected_at": page.connected_at.isoformat() if page.connected_at else None,
    }
