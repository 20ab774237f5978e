"""Operator alerts posted to a Telegram chat.

Workers can hit the same failure on every tick, so an identical alert is
sent at most once per ``ALERT_COOLDOWN_SECONDS``.
"""

import os
import threading
import time
from typing import Optional

import httpx

from replyo.logging_config import get_logger

logger = get_logger("alert_service")

ALERT_BOT_TOKEN = os.environ.get("ALERT_BOT_TOKEN")
ALERT_CHAT_ID = os.environ.get("ALERT_CHAT_ID")
ALERT_ENVIRONMENT = os.environ.get("ENVIRONMENT", "development")
ALERT_COOLDOWN_SECONDS = 300

TELEGRAM_URL = "https://api.telegram.org/bot{token}/sendMessage"
TELEGRAM_MAX_LENGTH = 4000
LEVEL_EMOJI = {"INFO": "ℹ️", "WARNING": "⚠️", "ERROR": "❌", "CRITICAL": "🔥"}

_recent: dict[tuple[str, str], float] = {}
_recent_lock = threading.Lock()


def format_alert(level: str, message: str, context: Optional[dict] = None) -> str:
    header = f"{LEVEL_EMOJI.get(level, '📢')} *{level}* · replyo/{ALERT_ENVIRONMENT}"
    lines = [header, "", message]
    if context:
        details = "\n".join(f"{key}: {value}" for key, value in context.items())
        lines += ["", f"```\n{details}\n```"]
    text = "\n".join(lines)
    if len(text) > TELEGRAM_MAX_LENGTH:
        text = text[: TELEGRAM_MAX_LENGTH - 3] + "..."
    return text


def _should_send(level: str, message: str, now: float) -> bool:
    key = (level, message)
    with _recent_lock:
        last = _recent.get(key)
        if last is not None and now - last < ALERT_COOLDOWN_SECONDS:
            return False
        _recent[key] = now
    return True


def reset_cooldowns() -> None:
    with _recent_lock:
        _recent.clear()


def send_alert(level: str, message: str, context: Optional[dict] = None) -> bool:
    """Post an alert. Returns True only when Telegram accepted it."""
    if not ALERT_BOT_TOKEN or not ALERT_CHAT_ID:
        logger.warning("Alert not delivered, Telegram is not configured", extra={"context": {"level": level, "alert": message}})
        return False

    if not _should_send(level, message, time.monotonic()):
        logger.info("Duplicate alert suppressed", extra={"context": {"level": level, "alert": message}})
        return False

    payload = {"chat_id": ALERT_CHAT_ID, "text": format_alert(level, message, context), "parse_mode": "Markdown"}
    try:
        with httpx.Client(timeout=10) as client:
            response = client.post(TELEGRAM_URL.format(token=ALERT_BOT_TOKEN), json=payload)
    except httpx.HTTPError as e:
        logger.error("Alert delivery failed", extra={"context": {"level": level, "error": str(e)}})
        return False

    if response.status_code != 200:
        logger.error(
            "Telegram rejected alert",
            extra={"context": {"level": level, "status_code": response.status_code}},
        )
        return False
    return True


def alert_warning(message: str, context: Optional[dict] = None) -> bool:
    return send_alert("WARNING", message, context)


def alert_error(message: str, context: Optional[dict] = None) -> bool:
    return send_alert("ERROR", message, context)


def alert_critical(message: str, context: Optional[dict] = None) -> bool:
    return send_alert("CRITICAL", message, context)
