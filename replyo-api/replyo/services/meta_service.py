"""Meta Graph API client, Instagram webhook parsing and OAuth completion."""

import hashlib
import hmac
from typing import Any, Optional

import httpx
from sqlalchemy.orm import Session

from replyo.config import settings
from replyo.conversations import router as conversation_router
from replyo.conversations.types import QuickReply
from replyo.database import SessionLocal
from replyo.logging_config import get_logger
from replyo.models import BusinessProfile
from replyo.services import billing_service, business_profile_service

logger = get_logger("meta_service")

MAX_QUICK_REPLIES = 13
MAX_QUICK_REPLY_TITLE = 20


class MetaOAuthError(Exception):
    pass


class MetaGraphClient:
    """Thin client for the endpoints Replyo needs from the Graph API."""

    BASE_URL = "https://graph.facebook.com/{version}"

    def __init__(self, version: Optional[str] = None):
        self.base_url = self.BASE_URL.format(version=version or settings.meta_graph_version)

    def _make_request(self, method: str, path: str, params: Optional[dict] = None, data: Optional[dict] = None) -> dict:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            with httpx.Client(timeout=30.0) as client:
                response = client.request(method, url, params=params, json=data)
                body = response.json()
        except Exception as e:
            logger.error("Meta API request failed", extra={"context": {"path": path, "error": str(e)}})
            return {"error": {"message": str(e)}}
        if response.status_code >= 400 and "error" not in body:
            body = {"error": {"message": f"HTTP {response.status_code}"}}
        return body

    def exchange_code(self, code: str) -> dict:
        """Swap an OAuth code for a short-lived user token."""
        return self._make_request(
            "GET",
            "oauth/access_token",
            params={
                "client_id": settings.meta_app_id,
                "client_secret": settings.meta_app_secret,
                "redirect_uri": settings.meta_redirect_uri,
                "code": code,
            },
        )

    def exchange_long_lived(self, short_lived_token: str) -> dict:
        return self._make_request(
            "GET",
            "oauth/access_token",
            params={
                "grant_type": "fb_exchange_token",
                "client_id": settings.meta_app_id,
                "client_secret": settings.meta_app_secret,
                "fb_exchange_token": short_lived_token,
            },
        )

    def get_instagram_account(self, access_token: str) -> Optional[dict]:
        """First Instagram business account linked to the user's Facebook pages."""
        body = self._make_request(
            "GET",
            "me",
            params={
                "fields": "id,name,accounts{id,name,instagram_business_account{id,username}}",
                "access_token": access_token,
            },
        )
        pages = (body.get("accounts") or {}).get("data") or []
        for page in pages:
            account = page.get("instagram_business_account")
            if account:
                return {"id": account.get("id"), "username": account.get("username"), "page_id": page.get("id")}
        return None

    def send_message(
        self,
        access_token: str,
        recipient_id: str,
        text: str,
        quick_replies: Optional[list[QuickReply]] = None,
    ) -> dict:
        """Send a DM, attaching quick replies when the state offers them."""
        message: dict[str, Any] = {"text": text}
        if quick_replies:
            message["quick_replies"] = [
                {
                    "content_type": "text",
                    "title": reply.title[:MAX_QUICK_REPLY_TITLE],
                    "payload": reply.title,
                }
                for reply in quick_replies[:MAX_QUICK_REPLIES]
            ]
        return self._make_request(
            "POST",
            "me/messages",
            params={"access_token": access_token},
            data={"recipient": {"id": recipient_id}, "message": message},
        )


def verify_signature(body: bytes, signature_header: Optional[str], app_secret: Optional[str]) -> bool:
    """Check X-Hub-Signature-256 against the raw request body."""
    if not app_secret or not signature_header or not signature_header.startswith("sha256="):
        return False
    expected = hmac.new(app_secret.encode(), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature_header.split("=", 1)[1])


def extract_messaging_events(payload: dict[str, Any]) -> list[dict[str, Any]]:
    """Flatten a webhook payload into inbound text messages.

    Echoes of our own replies are skipped. A quick reply tap is reported with
    its payload so the flow sees the button title.
    """
    events = []
    for entry in payload.get("entry") or []:
        for item in entry.get("messaging") or []:
            message = item.get("message") or {}
            if not message or message.get("is_echo"):
                continue
            quick_reply = message.get("quick_reply") or {}
            text = quick_reply.get("payload") or message.get("text")
            sender = (item.get("sender") or {}).get("id")
            if not text or not sender:
                continue
            events.append(
                {
                    "account_id": (item.get("recipient") or {}).get("id") or entry.get("id"),
                    "entry_id": entry.get("id"),
                    "sender_id": sender,
                    "text": text,
                    "message_id": message.get("mid"),
                }
            )
    return events


def _business_for_event(db: Session, event: dict[str, Any]) -> Optional[BusinessProfile]:
    for account_id in (event.get("account_id"), event.get("entry_id")):
        if not account_id:
            continue
        business = business_profile_service.get_business_by_instagram_account(db, account_id)
        if business:
            return business
    return None


def handle_messaging_event(db: Session, event: dict[str, Any], client: Optional[MetaGraphClient] = None) -> str:
    """Answer one inbound DM. Returns what happened, for logs and tests."""
    business = _business_for_event(db, event)
    if business is None:
        logger.warning("No business for Instagram account", extra={"context": {"account_id": event.get("account_id")}})
        return "unknown_account"

    access = billing_service.check_access_for_business(db, business)
    if not access["limits"]["can_process_messages"]:
        logger.info(
            "Message ignored, business has no access",
            extra={"context": {"ig_username": business.ig_username}},
        )
        return "no_access"

    result = conversation_router.process_message(db, business.ig_username, event["sender_id"], event["text"])
    db.commit()

    if not business.instagram_access_token:
        logger.warning("Business has no Instagram token", extra={"context": {"ig_username": business.ig_username}})
        return "no_token"

    client = client or MetaGraphClient()
    response = client.send_message(
        business.instagram_access_token, event["sender_id"], result.message, result.quick_replies
    )
    if response.get("error"):
        logger.error(
            "Failed to send Instagram reply",
            extra={"context": {"ig_username": business.ig_username, "error": response["error"]}},
        )
        return "send_failed"
    return "replied"


def process_messaging_events(events: list[dict[str, Any]]) -> dict[str, int]:
    """Background entry point; owns its database session."""
    outcomes: dict[str, int] = {}
    db = SessionLocal()
    try:
        for event in events:
            try:
                outcome = handle_messaging_event(db, event)
            except Exception as exc:
                db.rollback()
                logger.error(
                    "Instagram event failed",
                    extra={"context": {"message_id": event.get("message_id"), "error": str(exc)}},
                    exc_info=True,
                )
                outcome = "error"
            outcomes[outcome] = outcomes.get(outcome, 0) + 1
    finally:
        db.close()
    logger.info("Instagram events processed", extra={"context": outcomes})
    return outcomes


def complete_oauth(db: Session, code: str, client: Optional[MetaGraphClient] = None) -> BusinessProfile:
    """Exchange an OAuth code and store the long-lived token on the business."""
    client = client or MetaGraphClient()

    short_lived = client.exchange_code(code)
    if short_lived.get("error") or not short_lived.get("access_token"):
        raise MetaOAuthError("Failed to exchange authorization code")

    long_lived = client.exchange_long_lived(short_lived["access_token"])
    if long_lived.get("error") or not long_lived.get("access_token"):
        raise MetaOAuthError("Failed to obtain long-lived token")
    token = long_lived["access_token"]

    account = client.get_instagram_account(token)
    if not account or not account.get("username"):
        raise MetaOAuthError("No Instagram business account found on connected Facebook pages")

    profile = business_profile_service.upsert_business_profile(
        db,
        account["username"],
        {"instagram_access_token": token, "instagram_account_id": account.get("id")},
    )
    logger.info(
        "Instagram access token saved",
        extra={"context": {"business_id": str(profile.id), "ig_username": profile.ig_username}},
    )
    return profile
