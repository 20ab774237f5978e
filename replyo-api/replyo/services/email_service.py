"""Transactional email through the SendGrid v3 API."""

from html import escape
from typing import Any, Optional

import httpx

from replyo.config import settings
from replyo.logging_config import get_logger

logger = get_logger("email_service")

SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"
ONBOARDING_TEMPLATES = ("welcome", "setup_guide", "best_practices")


def _mask_email(email: Optional[str]) -> str:
    if not email or "@" not in email:
        return "***"
    local, _, domain = email.partition("@")
    return f"{local[:2]}***@{domain}"


def send_email(to: str, subject: str, html: str, text: Optional[str] = None) -> dict[str, Any]:
    """Send one email.

    Returns a dict: { status: sent|failed|skipped_no_config, http_status?, error? }
    """
    if not settings.sendgrid_api_key or not settings.email_from:
        logger.info("Email skipped, SendGrid not configured", extra={"context": {"to": _mask_email(to)}})
        return {"status": "skipped_no_config"}

    content = []
    if text:
        content.append({"type": "text/plain", "value": text})
    content.append({"type": "text/html", "value": html})
    payload = {
        "personalizations": [{"to": [{"email": to}]}],
        "from": {"email": settings.email_from, "name": settings.email_from_name},
        "subject": subject,
        "content": content,
    }

    try:
        with httpx.Client(timeout=15) as client:
            response = client.post(
                SENDGRID_URL,
                json=payload,
                headers={"Authorization": f"Bearer {settings.sendgrid_api_key}"},
            )
    except httpx.HTTPError as exc:
        logger.error("Email request failed", extra={"context": {"to": _mask_email(to), "error": str(exc)}})
        return {"status": "failed", "error": str(exc)}

    if response.status_code >= 300:
        logger.error(
            "Email rejected",
            extra={"context": {"to": _mask_email(to), "http_status": response.status_code}},
        )
        return {"status": "failed", "http_status": response.status_code, "error": response.text[:500]}

    logger.info("Email sent", extra={"context": {"to": _mask_email(to), "subject": subject}})
    return {"status": "sent", "http_status": response.status_code}


def onboarding_email(template: str, business_name: str, ig_username: str) -> dict[str, str]:
    """Subject, html and text bodies for an onboarding email."""
    name = escape(business_name or ig_username)
    handle = escape(ig_username)

    if template == "welcome":
        return {
            "subject": f"Welcome to Replyo, {business_name}! 🎉",
            "html": (
                "<h2>Welcome to Replyo!</h2>"
                f"<p>Hi {name} team,</p>"
                "<p>We're excited to help you automate your Instagram DMs and grow your business! 🚀</p>"
                f"<p>Your Instagram account (@{handle}) is now connected to our conversation system.</p>"
                "<h3>What happens next?</h3><ul>"
                "<li>We'll automatically respond to your Instagram DMs</li>"
                "<li>Qualify leads and send them to your booking link</li>"
                "<li>Send follow-up messages to increase conversions</li>"
                "<li>Track your estimated revenue on the dashboard</li></ul>"
                f"<p>Your dashboard: <a href=\"{settings.dashboard_url}\">{settings.dashboard_url}</a></p>"
                "<p>Need help? Just reply to this email.</p><p>Best regards,<br>The Replyo Team</p>"
            ),
            "text": (
                f"Welcome to Replyo, {business_name}! Your account (@{ig_username}) is now connected "
                "and we'll start answering your Instagram DMs."
            ),
        }

    if template == "setup_guide":
        return {
            "subject": "Setup Guide: Maximize Your Replyo Results",
            "html": (
                "<h2>Quick Setup Guide</h2>"
                f"<p>Hi {name} team,</p>"
                "<p>To get the most out of Replyo, here's your quick setup checklist:</p><ol>"
                "<li><strong>Booking Link:</strong> Make sure your booking link is working</li>"
                "<li><strong>Business Hours:</strong> Update your availability</li>"
                "<li><strong>Services:</strong> List your main services clearly</li>"
                "<li><strong>Pricing:</strong> Have clear pricing information ready</li></ol>"
                "<p>Questions? We're here to help!</p><p>Best regards,<br>The Replyo Team</p>"
            ),
            "text": (
                f"Quick setup guide for {business_name}: make sure your booking link works, update business "
                "hours, list services clearly, and have pricing ready."
            ),
        }

    if template == "best_practices":
        return {
            "subject": "How to Maximize Your Bookings with Replyo",
            "html": (
                "<h2>Maximize Your Results</h2>"
                f"<p>Hi {name} team,</p><ol>"
                "<li><strong>Keep booking links updated</strong>: broken links mean lost revenue</li>"
                "<li><strong>Post engaging content</strong>: more DMs, more potential customers</li>"
                "<li><strong>Use Instagram Stories</strong> to encourage people to DM you</li></ol>"
                "<p>Check your dashboard for conversion rates, top services and revenue estimates.</p>"
                "<p>Best regards,<br>The Replyo Team</p>"
            ),
            "text": (
                "Maximize your Replyo results: keep booking links updated, post engaging content and check "
                "your dashboard regularly."
            ),
        }

    raise ValueError(f"Unknown onboarding template: {template}")
