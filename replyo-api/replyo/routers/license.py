from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from replyo.database import get_db
from replyo.schemas.billing import IgUsernameRequest
from replyo.services import license_service
from replyo.services.rate_limiter import business_rate_limit

router = APIRouter(tags=["license"])


@router.post("/register-ig", dependencies=[Depends(business_rate_limit)])
def register_ig(request: IgUsernameRequest, db: Session = Depends(get_db)):
    try:
        license_service.register_ig_username(db, request.ig_username)
    except license_service.NoAvailableSubscriptionError as exc:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(exc))
    db.commit()
    return {"success": True, "message": "Instagram username registered successfully"}


@router.post("/check-access", dependencies=[Depends(business_rate_limit)])
def check_access(request: IgUsernameRequest, db: Session = Depends(get_db)):
    return {"success": True, "data": license_service.check_access_by_username(db, request.ig_username)}
