"""Fixed-window rate limits backed by Redis, used as FastAPI dependencies."""

from typing import Awaitable, Callable, Optional

import redis.asyncio as redis_async
from fastapi import Request

from replyo.config import settings
from replyo.defaults import RATE_LIMITS
from replyo.logging_config import get_logger

logger = get_logger("rate_limiter")

_redis_client = None


class RateLimitExceeded(Exception):
    def __init__(self, name: str, limit: int, retry_after: int):
        self.name = name
        self.limit = limit
        self.retry_after = retry_after
        super().__init__(f"Rate limit '{name}' exceeded")

    def headers(self) -> dict[str, str]:
        return {
            "Retry-After": str(self.retry_after),
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Reset": str(self.retry_after),
        }

    def body(self) -> dict:
        return {
            "success": False,
            "error": "Too many requests",
            "message": f"Rate limit exceeded. Try again in {self.retry_after} seconds.",
            "retryAfter": self.retry_after,
        }


def _get_redis_client():
    global _redis_client
    if _redis_client is None:
        _redis_client = redis_async.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=settings.redis_socket_timeout_seconds,
            socket_timeout=settings.redis_socket_timeout_seconds,
        )
    return _redis_client


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def check_rate_limit(name: str, identifier: str) -> Optional[int]:
    """Count a hit. Returns the current count, or None when Redis is unavailable."""
    limit, window_seconds = RATE_LIMITS[name]
    key = f"rate_limit:{name}:{identifier}"
    redis_client = _get_redis_client()
    try:
        count = await redis_client.incr(key)
        if count == 1:
            await redis_client.expire(key, window_seconds)
        ttl = await redis_client.ttl(key) if count > limit else window_seconds
    except Exception as exc:
        logger.warning("Rate limit redis check failed", extra={"context": {"limit": name, "error": str(exc)}})
        return None

    if count > limit:
        retry_after = ttl if ttl and ttl > 0 else window_seconds
        logger.warning(
            "Rate limit exceeded",
            extra={"context": {"limit": name, "identifier": identifier, "count": count}},
        )
        raise RateLimitExceeded(name, limit, retry_after)
    return count


async def _message_identifier(request: Request) -> str:
    try:
        body = await request.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("ig_username"):
        return str(body["ig_username"]).lower()
    return client_ip(request)


async def _business_identifier(request: Request) -> str:
    return client_ip(request)


async def _webhook_identifier(request: Request) -> str:
    return request.headers.get("x-webhook-source") or client_ip(request)


async def _expensive_identifier(request: Request) -> str:
    return request.path_params.get("ig_username") or client_ip(request)


def rate_limit(name: str, identify: Callable[[Request], Awaitable[str]]):
    async def dependency(request: Request) -> None:
        if not settings.rate_limit_enabled:
            return
        await check_rate_limit(name, await identify(request))

    dependency.__name__ = f"{name}_rate_limit"
    return dependency


message_rate_limit = rate_limit("message", _message_identifier)
business_rate_limit = rate_limit("business", _business_identifier)
webhook_rate_limit = rate_limit("webhook", _webhook_identifier)
expensive_rate_limit = rate_limit("expensive", _expensive_identifier)
global_rate_limit = rate_limit("global", _business_identifier)
