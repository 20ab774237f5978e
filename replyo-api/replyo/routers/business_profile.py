"""Business profile intake: direct form posts, Fillout webhooks and lookups."""

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from replyo.database import get_db
from replyo.logging_config import get_logger
from replyo.schemas.billing import IgUsernameRequest
from replyo.services import business_profile_service, form_extraction
from replyo.services.rate_limiter import business_rate_limit

logger = get_logger("business_profile_router")

router = APIRouter(tags=["business-profile"])
webhook_router = APIRouter(tags=["business-profile"])


@router.post("/business-profile", dependencies=[Depends(business_rate_limit)])
def save_business_profile(body: dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    fields = form_extraction.extract_profile_fields(body)
    ig_username = fields.pop("ig_username")
    if not ig_username:
        logger.warning(
            "Business profile without Instagram username",
            extra={"context": {"body_keys": sorted(body), "has_responses": isinstance(body.get("responses"), list)}},
        )
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "message": "Validation error",
                "errors": [{"path": "ig_username", "message": "Instagram username is required"}],
            },
        )

    profile = business_profile_service.upsert_business_profile(db, ig_username, fields)
    db.commit()
    return {
        "success": True,
        "message": "Business profile saved successfully",
        "data": {"id": str(profile.id), "ig_username": profile.ig_username},
    }


@router.post("/get-business-data", dependencies=[Depends(business_rate_limit)])
def get_business_data(request: IgUsernameRequest, db: Session = Depends(get_db)):
    data = business_profile_service.get_business_data(db, request.ig_username)
    if data is None:
        raise HTTPException(status_code=404, detail="Business profile not found")
    data.pop("id", None)
    return {"success": True, "data": data}


@webhook_router.post("/fillout-webhook")
def fillout_webhook(payload: Any = Body(default=None), db: Session = Depends(get_db)):
    """Always answers 200 so Fillout does not retry."""
    if not isinstance(payload, dict):
        logger.warning("Fillout webhook with non-object body")
        return {"success": False, "message": "ig_username not found"}

    try:
        ig_username = form_extraction.find_fillout_username(payload)
        if not ig_username:
            logger.info("Fillout webhook without Instagram username", extra={"context": {"keys": sorted(payload)}})
            return {"success": False, "message": "ig_username not found"}

        fields = form_extraction.extract_fillout_fields(payload)
        business_profile_service.upsert_business_profile(db, ig_username, fields)
        db.commit()
        logger.info("Fillout profile saved", extra={"context": {"ig_username": ig_username}})
    except Exception as exc:
        db.rollback()
        logger.error("Fillout webhook failed", extra={"context": {"error": str(exc)}}, exc_info=True)
    return {"success": True}
