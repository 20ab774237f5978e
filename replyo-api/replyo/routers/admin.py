"""Operator endpoints guarded by the X-Admin-Token header."""

import os
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from sqlalchemy.orm import Session

from replyo.database import get_db
from replyo.schemas.admin import (
    AggregateStatsRequest,
    AlertTestResponse,
    BusinessUpdateRequest,
    RunJobsRequest,
    ScheduleFollowUpRequest,
)
from replyo.services import (
    billing_service,
    business_profile_service,
    conversation_persistence,
    follow_up_service,
    instagram_service,
    job_queue,
    revenue_estimator,
    stats_service,
)
from replyo.services.alert_service import send_alert

router = APIRouter(prefix="/admin", tags=["admin"])


def _require_admin_token(provided: Optional[str]) -> None:
    expected = os.environ.get("ADMIN_TOKEN")
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="ADMIN_TOKEN not configured",
        )
    if not provided or provided != expected:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid admin token")


def require_admin(x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token")) -> None:
    _require_admin_token(x_admin_token)


@router.post("/follow-ups/run", dependencies=[Depends(require_admin)])
def run_follow_ups(db: Session = Depends(get_db)):
    return {"success": True, "data": follow_up_service.process_pending_follow_ups(db)}


@router.post("/follow-ups/{conversation_id}/schedule", dependencies=[Depends(require_admin)])
def schedule_follow_up(
    conversation_id: UUID,
    request: Optional[ScheduleFollowUpRequest] = None,
    db: Session = Depends(get_db),
):
    request = request or ScheduleFollowUpRequest()
    if not conversation_persistence.get_conversation(db, conversation_id):
        raise HTTPException(status_code=404, detail="Conversation not found")
    job = job_queue.schedule_follow_up(
        db, conversation_id, follow_up_type=request.follow_up_type, delay_hours=request.delay_hours
    )
    db.commit()
    return {"success": True, "data": {"job_id": str(job.id), "run_at": job.run_at.isoformat()}}


@router.post("/follow-ups/{conversation_id}/test", dependencies=[Depends(require_admin)])
def send_test_follow_up(conversation_id: UUID, db: Session = Depends(get_db)):
    """Send the follow-up now instead of waiting for the poller."""
    message = follow_up_service.test_follow_up(db, conversation_id)
    return {"success": message == "Follow-up sent successfully", "message": message}


@router.post("/kill-switch/run", dependencies=[Depends(require_admin)])
def run_kill_switch(db: Session = Depends(get_db)):
    summary = billing_service.run_kill_switch(db)
    db.commit()
    return {"success": True, "data": summary}


@router.post("/stats/aggregate", dependencies=[Depends(require_admin)])
def aggregate_stats(request: Optional[AggregateStatsRequest] = None, db: Session = Depends(get_db)):
    """Aggregate one period now, or queue the previous hour when no period is given."""
    request = request or AggregateStatsRequest()
    if request.period_start is None:
        job = job_queue.schedule_stats_aggregation(db, business_id=request.business_id)
        db.commit()
        return {"success": True, "data": {"job_id": str(job.id)}}

    if request.business_id:
        business_ids = [request.business_id]
    else:
        business_ids = [profile.id for profile in business_profile_service.get_all_business_profiles(db)]
    aggregated = 0
    for business_id in business_ids:
        if revenue_estimator.aggregate_stats_for_period(
            db, business_id, request.period_start, request.period_end, force=request.force
        ):
            aggregated += 1
    db.commit()
    return {"success": True, "data": {"aggregated": aggregated}}


@router.post("/jobs/run", dependencies=[Depends(require_admin)])
def run_jobs(request: Optional[RunJobsRequest] = None, db: Session = Depends(get_db)):
    request = request or RunJobsRequest()
    results = job_queue.run_due_jobs(db, limit=request.limit)
    return {"success": True, "data": {**results, "queue": job_queue.get_queue_lengths(db)}}


@router.post("/alerts/test", response_model=AlertTestResponse, dependencies=[Depends(require_admin)])
def alerts_test():
    sent = send_alert("INFO", "Alerts test", {"source": "admin.alerts.test"})
    if sent:
        return AlertTestResponse(success=True, message="Alert sent")
    return AlertTestResponse(success=False, message="Alert not sent (check ALERT_BOT_TOKEN/ALERT_CHAT_ID)")


@router.get("/stats", dependencies=[Depends(require_admin)])
def multi_business_stats(days: int = Query(default=30, ge=1, le=365), db: Session = Depends(get_db)):
    business_ids = [profile.id for profile in business_profile_service.get_all_business_profiles(db)]
    return {"success": True, "data": stats_service.get_multi_business_stats(db, business_ids, days)}


@router.get("/businesses", dependencies=[Depends(require_admin)])
def list_businesses(db: Session = Depends(get_db)):
    return {"success": True, "data": business_profile_service.get_all_business_usernames(db)}


def _business_or_404(db: Session, ig_username: str):
    profile = business_profile_service.get_business_profile(db, ig_username)
    if not profile:
        raise HTTPException(status_code=404, detail="Business profile not found")
    return profile


@router.get("/businesses/{ig_username}", dependencies=[Depends(require_admin)])
def get_business(ig_username: str, db: Session = Depends(get_db)):
    return {"success": True, "data": business_profile_service.serialize_profile(_business_or_404(db, ig_username))}


@router.patch("/businesses/{ig_username}", dependencies=[Depends(require_admin)])
def update_business(ig_username: str, request: BusinessUpdateRequest, db: Session = Depends(get_db)):
    updates = request.model_dump(exclude_none=True)
    if not business_profile_service.update_business_data(db, ig_username, updates):
        raise HTTPException(status_code=404, detail="Business profile not found")
    db.commit()
    return {"success": True, "message": "Business profile updated", "data": sorted(updates)}


@router.get("/businesses/{ig_username}/analytics", dependencies=[Depends(require_admin)])
def business_analytics(
    ig_username: str,
    days: int = Query(default=30, ge=1, le=365),
    db: Session = Depends(get_db),
):
    profile = _business_or_404(db, ig_username)
    return {"success": True, "data": conversation_persistence.get_business_analytics(db, profile.id, days)}


@router.get("/subscriptions/{subscription_id}/pages", dependencies=[Depends(require_admin)])
def subscription_pages(subscription_id: UUID, db: Session = Depends(get_db)):
    pages = instagram_service.get_instagram_pages_by_subscription(db, subscription_id)
    return {"success": True, "data": [instagram_service.serialize_page(page) for page in pages]}
