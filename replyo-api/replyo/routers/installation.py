from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from replyo.database import get_db
from replyo.schemas.installation import TriggerInstallRequest
from replyo.services import installation_service
from replyo.services.rate_limiter import business_rate_limit

router = APIRouter(prefix="/install", tags=["installation"])


@router.post("/trigger", dependencies=[Depends(business_rate_limit)])
def trigger_installation(request: TriggerInstallRequest, db: Session = Depends(get_db)):
    result = installation_service.trigger_installation(db, request.business_id, force=request.force)
    if not result.ok:
        raise HTTPException(status_code=404, detail=result.error)
    db.commit()
    return {"success": True, "data": {"installation": result.value}}


@router.get("/status/{business_id}")
def installation_status(business_id: UUID, db: Session = Depends(get_db)):
    installation = installation_service.get_installation_status(db, business_id)
    if installation is None:
        raise HTTPException(status_code=404, detail="Installation not found")
    return {"success": True, "data": {"installation": installation}}


@router.post("/mark-complete/{business_id}")
def mark_complete(business_id: UUID, db: Session = Depends(get_db)):
    result = installation_service.mark_installation_complete(db, business_id)
    if not result.ok:
        raise HTTPException(status_code=404, detail=result.error)
    db.commit()
    return {"success": True, "data": {"installation": result.value}}
