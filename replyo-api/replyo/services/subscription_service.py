from typing import Optional

from sqlalchemy.orm import Session

from replyo.defaults import LEGACY_PLANS
from replyo.logging_config import get_logger
from replyo.models import Subscription, SubscriptionStatus

logger = get_logger("subscription_service")


def normalize_plan(plan: Optional[str]) -> Optional[str]:
    if not plan:
        return None
    plan = plan.strip().lower()
    return LEGACY_PLANS.get(plan, plan)


def find_by_customer_id(db: Session, stripe_customer_id: str) -> Optional[Subscription]:
    return db.query(Subscription).filter(Subscription.stripe_customer_id == stripe_customer_id).first()


def find_by_subscription_id(db: Session, stripe_subscription_id: str) -> Optional[Subscription]:
    return db.query(Subscription).filter(Subscription.stripe_subscription_id == stripe_subscription_id).first()


def create_subscription(
    db: Session,
    *,
    stripe_customer_id: str,
    stripe_subscription_id: Optional[str] = None,
    email: Optional[str] = None,
    plan: Optional[str] = None,
    status: Optional[SubscriptionStatus] = None,
) -> Subscription:
    """Create or update the subscription for a Stripe customer.

    Without an explicit status the row is ACTIVE once Stripe has issued a
    subscription id and PENDING before that.
    """
    if status is None:
        status = SubscriptionStatus.ACTIVE if stripe_subscription_id else SubscriptionStatus.PENDING

    subscription = find_by_customer_id(db, stripe_customer_id)
    if subscription is None:
        subscription = Subscription(stripe_customer_id=stripe_customer_id)
        db.add(subscription)

    if stripe_subscription_id:
        subscription.stripe_subscription_id = stripe_subscription_id
    if email:
        subscription.email = email
    if plan:
        subscription.plan = normalize_plan(plan)
    subscription.status = status.value
    db.flush()

    logger.info(
        "Subscription saved",
        extra={
            "context": {
                "stripe_customer_id": stripe_customer_id,
                "stripe_subscription_id": stripe_subscription_id,
                "status": status.value,
            }
        },
    )
    return subscription


def update_subscription_status(
    db: Session,
    stripe_subscription_id: str,
    status: SubscriptionStatus,
    plan: Optional[str] = None,
) -> Optional[Subscription]:
    subscription = find_by_subscription_id(db, stripe_subscription_id)
    if subscription is None:
        logger.warning(
            "Subscription not found for status update",
            extra={"context": {"stripe_subscription_id": stripe_subscription_id, "status": status.value}},
        )
        return None
    previous = subscription.status
    subscription.status = status.value
    if plan:
        subscription.plan = normalize_plan(plan)
    db.flush()
    logger.info(
        "Subscription status updated",
        extra={
            "context": {
                "stripe_subscription_id": stripe_subscription_id,
                "from": previous,
                "to": status.value,
            }
        },
    )
    return subscription


def get_subscriptions_by_status(db: Session, statuses: list[SubscriptionStatus]) -> list[Subscription]:
    return db.query(Subscription).filter(Subscription.status.in_([s.value for s in statuses])).all()
