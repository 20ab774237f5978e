"""Business dashboard: period stats, revenue estimate and export."""

from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from replyo.database import get_db
from replyo.services import billing_service, business_profile_service, follow_up_service, revenue_estimator, stats_service
from replyo.services.rate_limiter import expensive_rate_limit

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


def _load_business(db: Session, ig_username: str):
    business = business_profile_service.get_business_profile(db, ig_username)
    if not business:
        raise HTTPException(status_code=404, detail="Business not found")
    access = billing_service.check_access_for_business(db, business)
    if not access["limits"]["can_access_analytics"]:
        raise HTTPException(status_code=403, detail="Analytics require an active subscription")
    return business


@router.get("/{ig_username}", dependencies=[Depends(expensive_rate_limit)])
def get_dashboard(ig_username: str, days: int = Query(default=30, ge=1, le=365), db: Session = Depends(get_db)):
    business = _load_business(db, ig_username)
    end = datetime.now(timezone.utc)
    start = end - timedelta(days=days)

    stats = revenue_estimator.get_business_stats(db, business.id, start, end)
    return {
        "success": True,
        "data": {
            "business": {
                "instagram": business.ig_username,
                "name": business.business_name,
                "industry": business.industry,
            },
            "stats": stats.to_dict() if stats else None,
            "growth": revenue_estimator.get_revenue_growth(db, business.id, start, end),
            "daily": stats_service.get_dashboard_stats(db, business.id, days),
            "follow_ups": follow_up_service.get_follow_up_stats(db, business.id, days),
            "period": {"start": start.isoformat(), "end": end.isoformat(), "days": days},
        },
    }


@router.get("/{ig_username}/export", dependencies=[Depends(expensive_rate_limit)])
def export_stats(ig_username: str, days: int = Query(default=30, ge=1, le=365), db: Session = Depends(get_db)):
    business = _load_business(db, ig_username)
    rows = stats_service.get_daily_rows(db, business.id, days)
    export = []
    for row in rows:
        revenue = revenue_estimator.calculate_revenue(
            row.booking_clicks or 0,
            business_id=str(business.id),
            industry=business.industry,
            avg_order_value=business.avg_order_value,
            conversion_multiplier=business.conversion_multiplier,
        )
        export.append(
            {
                "date": row.date.isoformat(),
                "conversations": row.total_conversations or 0,
                "qualified_leads": row.qualified_leads or 0,
                "booking_clicks": row.booking_clicks or 0,
                "estimated_revenue": revenue.estimated_revenue,
            }
        )
    return {"success": True, "data": {"business": {"instagram": business.ig_username}, "stats": export}}
