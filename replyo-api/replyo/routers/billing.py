"""Stripe webhooks and billing access checks."""

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from replyo.config import settings
from replyo.database import get_db
from replyo.logging_config import get_logger
from replyo.services import billing_service
from replyo.services.alert_service import alert_error
from replyo.services.error_tracking import capture_exception
from replyo.services.rate_limiter import business_rate_limit, webhook_rate_limit

logger = get_logger("billing_router")

router = APIRouter(tags=["billing"])


@router.post("/webhooks/stripe", dependencies=[Depends(webhook_rate_limit)])
@router.post("/billing/webhook", dependencies=[Depends(webhook_rate_limit)])
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(default=None, alias="Stripe-Signature"),
    db: Session = Depends(get_db),
):
    payload = await request.body()
    try:
        event = billing_service.verify_stripe_event(payload, stripe_signature, settings.stripe_webhook_secret)
    except billing_service.StripeSignatureError as exc:
        logger.warning("Stripe webhook rejected", extra={"context": {"error": str(exc)}})
        raise HTTPException(status_code=400, detail=str(exc))

    try:
        result = billing_service.handle_stripe_event(db, event)
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.error(
            "Stripe webhook processing failed",
            extra={"context": {"event_id": event.get("id"), "event_type": event.get("type"), "error": str(exc)}},
            exc_info=True,
        )
        alert_error("Stripe webhook failed", {"event_type": event.get("type"), "error": str(exc)})
        capture_exception(exc, {"event_id": event.get("id"), "event_type": event.get("type")})
        raise HTTPException(status_code=500, detail="Webhook processing failed")

    logger.info(
        "Stripe webhook processed",
        extra={"context": {"event_id": event.get("id"), "event_type": event.get("type"), "result": result}},
    )
    return {"received": True, "result": result}


@router.get("/check-access/{ig_username}", dependencies=[Depends(business_rate_limit)])
def check_billing_access(ig_username: str, db: Session = Depends(get_db)):
    access = billing_service.check_access_for_username(db, ig_username)
    if access is None:
        raise HTTPException(status_code=404, detail="Business not found")
    return {"success": True, "data": access}
