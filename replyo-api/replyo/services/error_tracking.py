"""Sentry error tracking. Everything here is a no-op unless SENTRY_DSN is set."""

from typing import Any, Optional

import sentry_sdk

from replyo.config import settings
from replyo.logging_config import get_logger

logger = get_logger("error_tracking")

FILTERED = "[Filtered]"
SENSITIVE_FIELDS = {
    "password",
    "email",
    "phone",
    "stripe_secret_key",
    "access_token",
    "instagram_access_token",
    "verify_token",
}
SENSITIVE_HEADERS = {"authorization", "cookie", "x-admin-token", "stripe-signature", "x-hub-signature-256"}


def _filter_mapping(values: dict, keys: set[str]) -> dict:
    return {key: FILTERED if str(key).lower() in keys else value for key, value in values.items()}


def scrub_event(event: dict[str, Any], hint: Optional[dict] = None) -> dict[str, Any]:
    """before_send hook: drop credentials and contact details from request data."""
    request = event.get("request")
    if isinstance(request, dict):
        if isinstance(request.get("data"), dict):
            request["data"] = _filter_mapping(request["data"], SENSITIVE_FIELDS)
        if isinstance(request.get("headers"), dict):
            request["headers"] = _filter_mapping(request["headers"], SENSITIVE_HEADERS)
    extra = event.get("extra")
    if isinstance(extra, dict):
        event["extra"] = _filter_mapping(extra, SENSITIVE_FIELDS)
    return event


def init_sentry(component: str) -> bool:
    if not settings.sentry_dsn:
        logger.info("Sentry DSN not configured, error tracking disabled")
        return False

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        traces_sample_rate=settings.sentry_traces_sample_rate,
        send_default_pii=False,
        before_send=scrub_event,
    )
    sentry_sdk.set_tag("component", component)
    logger.info("Sentry error tracking initialized", extra={"context": {"component": component}})
    return True


def capture_exception(exc: BaseException, context: Optional[dict[str, Any]] = None) -> None:
    if not settings.sentry_dsn:
        return
    with sentry_sdk.new_scope() as scope:
        if context:
            scope.set_context("replyo", context)
        scope.capture_exception(exc)
