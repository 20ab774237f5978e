from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from replyo.database import get_db
from replyo.schemas.instagram import CheckPageAccessRequest, ConnectInstagramRequest
from replyo.services import access_service, instagram_service
from replyo.services.rate_limiter import business_rate_limit

router = APIRouter(tags=["instagram"])

ERROR_STATUS = {"not_found": 404, "inactive": 403}


@router.post("/connect-instagram", dependencies=[Depends(business_rate_limit)])
def connect_instagram(request: ConnectInstagramRequest, db: Session = Depends(get_db)):
    result = instagram_service.connect_instagram_page(
        db,
        subscription_id=request.subscription_id,
        page_id=request.instagram_page_id,
        page_name=request.page_name,
        access_token=request.access_token,
    )
    if not result.ok:
        db.rollback()
        raise HTTPException(status_code=ERROR_STATUS.get(result.error_code, 400), detail=result.error)
    db.commit()
    return {
        "success": True,
        "message": "Instagram page connected successfully",
        "data": instagram_service.serialize_page(result.value),
    }


@router.delete("/connect-instagram/{page_id}", dependencies=[Depends(business_rate_limit)])
def disconnect_instagram(page_id: str, db: Session = Depends(get_db)):
    if not instagram_service.disconnect_instagram_page(db, page_id):
        raise HTTPException(status_code=404, detail="Instagram page not found")
    db.commit()
    return {"success": True, "message": "Instagram page disconnected successfully"}


@router.post("/check-page-access", dependencies=[Depends(business_rate_limit)])
def check_page_access(request: CheckPageAccessRequest, db: Session = Depends(get_db)):
    return {"success": True, "data": access_service.check_access(db, request.instagram_page_id)}
