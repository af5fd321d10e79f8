"""Rate limiting on Redis.

Sliding window per client IP, stored as a sorted set of request timestamps.
Routes opt in with a tier:

    @router.post("/login", dependencies=[Depends(rate_limit("auth"))])

Tiers:
    default     100 requests / 60 s
    auth         10 requests / 60 s   (login)
    sensitive    20 requests / 60 s   (user creation)

If Redis is unreachable the request is allowed (fail open) and the error is
logged; rate limiting is abuse protection, not authorization.
"""

import logging
import time
import uuid

from fastapi import Request

from hearinghope.config import settings
from hearinghope.middleware.exceptions import RateLimitExceededError
from hearinghope.utils.cache import get_redis

logger = logging.getLogger(__name__)

RATE_LIMIT_TIERS: dict[str, tuple[int, int]] = {
    "default": (100, 60),
    "auth": (10, 60),
    "sensitive": (20, 60),
}


def client_ip(request: Request) -> str:
    """First hop of X-Forwarded-For, else the peer address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"


class RateLimiter:
    """Sliding-window counter on a Redis sorted set."""

    @staticmethod
    async def hit(key: str, limit: int, window: int) -> tuple[bool, float]:
        """Record one request under `key`.

        Returns:
            (allowed, reset_time)
        """
        current_time = time.time()
        window_start = current_time - window
        redis_key = f"ratelimit:{key}"

        try:
            redis_client = await get_redis()
            await redis_client.zremrangebyscore(redis_key, 0, window_start)
            count = await redis_client.zcard(redis_key)

            if count >= limit:
                oldest = await redis_client.zrange(redis_key, 0, 0, withscores=True)
                reset_time = oldest[0][1] + window if oldest else current_time + window
                return False, reset_time

            # Unique member so two requests in the same tick both count
            await redis_client.zadd(redis_key, {f"{current_time}:{uuid.uuid4().hex[:8]}": current_time})
            await redis_client.expire(redis_key, window)
            return True, current_time + window

        except Exception as e:
            logger.error(f"Rate limit check failed: {e}")
            return True, current_time + window


def rate_limit(tier: str = "default"):
    """Dependency factory enforcing one rate-limit tier for a route."""
    limit, window = RATE_LIMIT_TIERS[tier]

    async def _check(request: Request) -> None:
        if not settings.rate_limit_enabled:
            return
        ip = client_ip(request)
        allowed, reset_time = await RateLimiter.hit(f"{tier}:{ip}", limit, window)
        if not allowed:
            logger.warning(f"Rate limit exceeded for IP {ip} on tier {tier}")
            raise RateLimitExceededError(retry_after=max(1, int(reset_time - time.time())))

    return _check
