# beatmarket/core/rate_limiter.py
import logging
from typing import Optional, Tuple

import redis.asyncio as redis
from fastapi import HTTPException, Request, status

from beatmarket.app.config import settings

logger = logging.getLogger(__name__)

try:
    r = redis.from_url(settings.REDIS_URL, decode_responses=True) if settings.REDIS_URL else None
except Exception as exc:
    logger.warning(f"Rate limiting disabled, Redis unavailable: {exc}")
    r = None  # Allow app to start even if Redis is unavailable


def get_client_ip(request: Request) -> str:
    """Extract client IP address."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _rate_key(scope: str, identifier: str) -> str:
    return f"rate_limit:{scope}:{identifier}"


async def hit(scope: str, identifier: str, max_calls: int, period: int) -> Tuple[bool, Optional[int]]:
    """
    Count one call in a fixed window.
    Returns (allowed, retry_after_seconds_or_None).
    """
    if r is None:
        return True, None

    key = _rate_key(scope, identifier)
    current = await r.incr(key)
    if current == 1:
        await r.expire(key, period)

    if current > max_calls:
        ttl = await r.ttl(key)
        return False, ttl if ttl and ttl > 0 else period
    return True, None


def rate_limit(scope: str, max_calls: int, period: int):
    """
    FastAPI dependency limiting calls per client IP.

    Usage: ``dependencies=[Depends(rate_limit("guest_download", 30, 60))]``
    """

    async def dependency(request: Request) -> None:
        allowed, retry_after = await hit(scope, get_client_ip(request), max_calls, period)
        if not allowed:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=f"Rate limit exceeded. Retry after {retry_after}s",
                headers={"Retry-After": str(retry_after)},
            )

    return dependency
