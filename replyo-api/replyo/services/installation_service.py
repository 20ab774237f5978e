from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.orm import Session

from replyo.logging_config import get_logger
from replyo.models import Installation, InstallationStatus
from replyo.services import business_profile_service, job_queue
from replyo.services.result import Result

logger = get_logger("installation_service")


def get_latest_installation(db: Session, business_id) -> Optional[Installation]:
    return (
        db.query(Installation)
        .filter(Installation.business_id == business_id)
        .order_by(Installation.created_at.desc())
        .first()
    )


def serialize_installation(installation: Installation) -> dict[str, Any]:
    return {
        "id": str(installation.id) if installation.id else None,
        "business_id": str(installation.business_id),
        "status": installation.status,
        "webhook_verified": bool(installation.webhook_verified),
        "manual_required": bool(installation.manual_required),
        "disabled": bool(installation.disabled),
        "disabled_reason": installation.disabled_reason,
        "onboarding_emails_sent": installation.onboarding_emails_sent or 0,
        "installed_at": installation.installed_at.isoformat() if installation.installed_at else None,
    }


def trigger_installation(db: Session, business_id, force: bool = False) -> Result[dict[str, Any]]:
    """Install Replyo for a business.

    An existing INSTALLED row is returned as is unless ``force`` is set. A
    business with an Instagram token is installed straight away; without one
    the installation waits for the owner to finish the OAuth flow.
    """
    business = business_profile_service.get_business_by_id(db, business_id)
    if not business:
        return Result.failure("Business not found", "not_found")

    existing = get_latest_installation(db, business.id)
    if existing and existing.status == InstallationStatus.INSTALLED.value and not force:
        return Result.success({**serialize_installation(existing), "message": "Already installed"})

    installation = existing
    if installation is None:
        installation = Installation(business_id=business.id)
        db.add(installation)

    now = datetime.now(timezone.utc)
    if business.instagram_access_token:
        installation.status = InstallationStatus.INSTALLED.value
        installation.webhook_verified = True
        installation.manual_required = False
        installation.installed_at = now
        message = "Installation completed successfully"
    else:
        installation.status = InstallationStatus.MANUAL_REQUIRED.value
        installation.manual_required = True
        message = "Instagram account must be connected before installation"
    installation.onboarding_emails_sent = installation.onboarding_emails_sent or 0
    db.flush()

    if existing is None:
        job_queue.schedule_onboarding_emails(db, business.id)

    logger.info(
        "Installation triggered",
        extra={"context": {"business_id": str(business.id), "status": installation.status, "force": force}},
    )
    return Result.success({**serialize_installation(installation), "message": message})


def get_installation_status(db: Session, business_id) -> Optional[dict[str, Any]]:
    installation = get_latest_installation(db, business_id)
    if not installation:
        return None
    return serialize_installation(installation)


def mark_installation_complete(db: Session, business_id) -> Result[dict[str, Any]]:
    installation = get_latest_installation(db, business_id)
    if not installation:
        return Result.failure("Installation not found", "not_found")
    installation.status = InstallationStatus.INSTALLED.value
    installation.manual_required = False
    installation.installed_at = installation.installed_at or datetime.now(timezone.utc)
    db.flush()
    logger.info("Installation marked complete", extra={"context": {"business_id": str(business_id)}})
    return Result.success({**serialize_installation(installation), "message": "Installation marked as complete"})
