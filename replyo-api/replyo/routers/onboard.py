from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from replyo.database import get_db
from replyo.schemas.billing import OnboardRequest
from replyo.services import subscription_service
from replyo.services.rate_limiter import business_rate_limit

router = APIRouter(tags=["onboarding"])


@router.post("/onboard", status_code=201, dependencies=[Depends(business_rate_limit)])
def onboard(request: OnboardRequest, db: Session = Depends(get_db)):
    """Store subscription metadata after checkout."""
    subscription = subscription_service.create_subscription(
        db,
        stripe_customer_id=request.stripe_customer_id,
        stripe_subscription_id=request.stripe_subscription_id,
        email=request.email,
        plan=request.plan,
    )
    db.commit()
    return {
        "success": True,
        "message": "Subscription created successfully",
        "data": {"subscription_id": str(subscription.id), "status": subscription.status, "plan": subscription.plan},
    }
