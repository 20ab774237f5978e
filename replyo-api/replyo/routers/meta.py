"""Instagram (Meta) webhook and OAuth callback."""

import json
from html import escape
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Header, Query, Request
from fastapi.responses import HTMLResponse, PlainTextResponse
from sqlalchemy.orm import Session

from replyo.config import settings
from replyo.database import get_db
from replyo.logging_config import get_logger
from replyo.services import meta_service

logger = get_logger("meta_router")

router = APIRouter(tags=["meta"])
webhook_router = APIRouter(tags=["meta"])

PAGE_STYLE = (
    "body{font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,sans-serif;display:flex;"
    "justify-content:center;align-items:center;min-height:100vh;margin:0;"
    "background:linear-gradient(135deg,#667eea 0%,#764ba2 100%);color:white}"
    ".container{text-align:center;padding:2rem;background:rgba(255,255,255,0.1);border-radius:20px;max-width:500px}"
    ".username{font-weight:bold;color:#ffd700}"
)


def _page(title: str, body: str) -> str:
    return (
        f"<html><head><title>{escape(title)}</title><style>{PAGE_STYLE}</style></head>"
        f"<body><div class=\"container\">{body}</div></body></html>"
    )


def _error_page(title: str, message: str) -> str:
    return _page(title, f"<h1>{escape(title)}</h1><p>{escape(message)}</p>")


@router.get("/webhook/meta")
def verify_meta_webhook(
    hub_mode: Optional[str] = Query(default=None, alias="hub.mode"),
    hub_verify_token: Optional[str] = Query(default=None, alias="hub.verify_token"),
    hub_challenge: Optional[str] = Query(default=None, alias="hub.challenge"),
):
    if (
        hub_mode == "subscribe"
        and settings.meta_verify_token
        and hub_verify_token == settings.meta_verify_token
    ):
        logger.info("Meta webhook verified")
        return PlainTextResponse(hub_challenge or "")

    logger.warning(
        "Meta webhook verification failed",
        extra={"context": {"mode": hub_mode, "verify_token": hub_verify_token}},
    )
    return PlainTextResponse("Forbidden", status_code=403)


@webhook_router.post("/webhook/meta")
async def receive_meta_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    x_hub_signature_256: Optional[str] = Header(default=None, alias="X-Hub-Signature-256"),
):
    """Meta retries anything that is not a 200, so every outcome is acknowledged."""
    body = await request.body()

    if settings.meta_app_secret and not meta_service.verify_signature(
        body, x_hub_signature_256, settings.meta_app_secret
    ):
        logger.warning("Meta webhook signature mismatch", extra={"context": {"signature": x_hub_signature_256}})
        return {"success": True, "processed": 0}

    try:
        payload = json.loads(body or b"{}")
    except ValueError:
        logger.warning("Meta webhook body is not JSON")
        return {"success": True, "processed": 0}

    if not isinstance(payload, dict) or payload.get("object") not in (None, "instagram", "page"):
        return {"success": True, "processed": 0}

    events = meta_service.extract_messaging_events(payload)
    if events:
        background_tasks.add_task(meta_service.process_messaging_events, events)
    logger.info("Meta webhook received", extra={"context": {"events": len(events)}})
    return {"success": True, "processed": len(events)}


@router.get("/meta/oauth/callback", response_class=HTMLResponse)
def meta_oauth_callback(
    code: Optional[str] = None,
    error: Optional[str] = None,
    error_description: Optional[str] = None,
    db: Session = Depends(get_db),
):
    if error:
        logger.warning("Meta OAuth denied", extra={"context": {"error": error}})
        return HTMLResponse(
            _error_page("OAuth Error", error_description or error),
            status_code=400,
        )
    if not code:
        return HTMLResponse(
            _error_page("OAuth Error", "Missing authorization code. Please try connecting again."),
            status_code=400,
        )

    try:
        profile = meta_service.complete_oauth(db, code)
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.error("Meta OAuth failed", extra={"context": {"error": str(exc)}})
        return HTMLResponse(
            _error_page("Connection Failed", "We couldn't connect your Instagram account. Please try again."),
            status_code=500,
        )

    username = escape(profile.ig_username)
    return HTMLResponse(
        _page(
            "Instagram Connected Successfully",
            "<div style=\"font-size:4rem\">🎉</div>"
            "<h1>Instagram Connected Successfully!</h1>"
            f"<p>Your Instagram account <span class=\"username\">@{username}</span> is now connected to Replyo.</p>"
            "<p>You can now close this window and return to your dashboard.</p>",
        )
    )
