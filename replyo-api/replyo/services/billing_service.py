"""Stripe billing events, access checks and the unpaid-account kill switch."""

import json
from typing import Any, Optional

import stripe
from sqlalchemy.orm import Session

from replyo.logging_config import get_logger
from replyo.models import BusinessProfile, Installation, InstallationStatus, Subscription, SubscriptionStatus
from replyo.services import subscription_service
from replyo.services.alert_service import alert_error, alert_warning
from replyo.services.business_profile_service import get_business_profile

logger = get_logger("billing_service")

KILL_SWITCH_STATUSES = [SubscriptionStatus.PAST_DUE, SubscriptionStatus.CANCELLED]
KILL_SWITCH_REASON = "subscription_inactive"


class StripeSignatureError(Exception):
    pass


def map_stripe_status(stripe_status: Optional[str]) -> SubscriptionStatus:
    status = (stripe_status or "").lower()
    if status == "active":
        return SubscriptionStatus.ACTIVE
    if status == "past_due":
        return SubscriptionStatus.PAST_DUE
    if status in ("canceled", "cancelled"):
        return SubscriptionStatus.CANCELLED
    return SubscriptionStatus.PENDING


def verify_stripe_event(payload: bytes, signature: Optional[str], secret: Optional[str]) -> dict[str, Any]:
    if not signature:
        raise StripeSignatureError("Missing Stripe signature")
    if not secret:
        raise StripeSignatureError("Stripe webhook secret is not configured")
    try:
        stripe.Webhook.construct_event(payload=payload, sig_header=signature, secret=secret)
    except Exception as exc:
        raise StripeSignatureError(f"Webhook signature verification failed: {exc}") from exc
    return json.loads(payload)


def _plan_from_subscription(obj: dict[str, Any]) -> str:
    items = (obj.get("items") or {}).get("data") or []
    if items:
        price = items[0].get("price") or {}
        return price.get("nickname") or price.get("lookup_key") or "unknown"
    return "unknown"


def _invoice_subscription_id(invoice: dict[str, Any]) -> Optional[str]:
    if invoice.get("subscription"):
        return invoice["subscription"]
    parent = invoice.get("parent") or {}
    details = parent.get("subscription_details") or {}
    return details.get("subscription")


def _subscription_for_invoice(db: Session, invoice: dict[str, Any]) -> Optional[Subscription]:
    subscription_id = _invoice_subscription_id(invoice)
    if subscription_id:
        subscription = subscription_service.find_by_subscription_id(db, subscription_id)
        if subscription:
            return subscription
    if invoice.get("customer"):
        return subscription_service.find_by_customer_id(db, invoice["customer"])
    return None


def set_installations_disabled(db: Session, subscription: Subscription, disabled: bool, reason: Optional[str] = None) -> int:
    """Toggle every installation of the businesses linked to a subscription."""
    installations = (
        db.query(Installation)
        .join(BusinessProfile, BusinessProfile.id == Installation.business_id)
        .filter(BusinessProfile.subscription_id == subscription.id)
        .all()
    )
    changed = 0
    for installation in installations:
        if installation.disabled == disabled:
            continue
        if not disabled and installation.disabled_reason not in (None, KILL_SWITCH_REASON):
            continue
        installation.disabled = disabled
        installation.disabled_reason = reason if disabled else None
        changed += 1
    db.flush()
    return changed


def handle_stripe_event(db: Session, event: dict[str, Any]) -> str:
    """Apply a verified Stripe event. Returns a short description of what was done."""
    event_type = event.get("type")
    obj = (event.get("data") or {}).get("object") or {}

    if event_type == "customer.subscription.created":
        subscription_service.create_subscription(
            db,
            stripe_customer_id=obj.get("customer"),
            stripe_subscription_id=obj.get("id"),
            email=obj.get("customer_email"),
            plan=_plan_from_subscription(obj),
            status=map_stripe_status(obj.get("status")),
        )
        return "subscription_created"

    if event_type == "customer.subscription.updated":
        status = map_stripe_status(obj.get("status"))
        subscription = subscription_service.update_subscription_status(
            db, obj.get("id"), status, plan=_plan_from_subscription(obj)
        )
        if subscription and status in KILL_SWITCH_STATUSES:
            set_installations_disabled(db, subscription, True, KILL_SWITCH_REASON)
        elif subscription and status == SubscriptionStatus.ACTIVE:
            set_installations_disabled(db, subscription, False)
        return "subscription_updated"

    if event_type == "customer.subscription.deleted":
        subscription = subscription_service.update_subscription_status(db, obj.get("id"), SubscriptionStatus.CANCELLED)
        if subscription:
            disabled = set_installations_disabled(db, subscription, True, KILL_SWITCH_REASON)
            alert_warning(
                "Subscription cancelled",
                {"stripe_subscription_id": obj.get("id"), "installations_disabled": disabled},
            )
        return "subscription_cancelled"

    if event_type in ("invoice.paid", "invoice.payment_succeeded"):
        subscription = _subscription_for_invoice(db, obj)
        if subscription is None:
            logger.warning("Paid invoice for unknown subscription", extra={"context": {"invoice_id": obj.get("id")}})
            return "ignored"
        subscription.status = SubscriptionStatus.ACTIVE.value
        set_installations_disabled(db, subscription, False)
        db.flush()
        return "subscription_activated"

    if event_type == "invoice.payment_failed":
        subscription = _subscription_for_invoice(db, obj)
        if subscription is None:
            logger.warning("Failed invoice for unknown subscription", extra={"context": {"invoice_id": obj.get("id")}})
            return "ignored"
        subscription.status = SubscriptionStatus.PAST_DUE.value
        db.flush()
        alert_warning(
            "Payment failed",
            {"stripe_customer_id": subscription.stripe_customer_id, "invoice_id": obj.get("id")},
        )
        return "subscription_past_due"

    logger.info("Unhandled Stripe event", extra={"context": {"event_type": event_type}})
    return "ignored"


def _latest_installation(db: Session, business_id) -> Optional[Installation]:
    return (
        db.query(Installation)
        .filter(Installation.business_id == business_id)
        .order_by(Installation.created_at.desc())
        .first()
    )


def check_access_for_business(db: Session, business: BusinessProfile) -> dict[str, Any]:
    subscription = business.subscription
    installation = _latest_installation(db, business.id)

    subscription_active = bool(subscription and subscription.status == SubscriptionStatus.ACTIVE.value)
    installation_ready = bool(
        installation and installation.status == InstallationStatus.INSTALLED.value and not installation.disabled
    )
    allowed = subscription_active and installation_ready

    return {
        "allowed": allowed,
        "ig_username": business.ig_username,
        "subscription": {"status": subscription.status, "plan": subscription.plan} if subscription else None,
        "installation": {"status": installation.status, "disabled": installation.disabled} if installation else None,
        "limits": {
            "can_process_messages": allowed,
            "can_send_follow_ups": allowed,
            "can_access_analytics": subscription_active,
        },
    }


def check_access_for_username(db: Session, ig_username: str) -> Optional[dict[str, Any]]:
    business = get_business_profile(db, ig_username)
    if not business:
        return None
    return check_access_for_business(db, business)


def run_kill_switch(db: Session) -> dict[str, int]:
    """Disable installations of businesses whose subscription stopped paying."""
    summary = {"checked": 0, "disabled": 0, "errors": 0}
    for subscription in subscription_service.get_subscriptions_by_status(db, KILL_SWITCH_STATUSES):
        summary["checked"] += 1
        try:
            disabled = set_installations_disabled(db, subscription, True, KILL_SWITCH_REASON)
        except Exception as exc:
            summary["errors"] += 1
            logger.error(
                "Kill switch failed for subscription",
                extra={"context": {"subscription_id": str(subscription.id), "error": str(exc)}},
            )
            alert_error("Kill switch failed", {"subscription_id": str(subscription.id), "error": str(exc)})
            continue
        if disabled:
            summary["disabled"] += disabled
            alert_warning(
                "Installations disabled for inactive subscription",
                {
                    "stripe_customer_id": subscription.stripe_customer_id,
                    "status": subscription.status,
                    "installations": disabled,
                },
            )
    logger.info("Kill switch finished", extra={"context": summary})
    return summary
