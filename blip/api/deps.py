from typing import Optional

from fastapi import Depends, Request
from loguru import logger

from blip.core import config
from blip.core.auth import get_current_user_id, get_optional_user_id
from blip.core.errors import RateLimitError
from blip.services.rate_limit import FixedWindowRateLimiter

signal_limiter = FixedWindowRateLimiter(config.RATE_LIMIT_SIGNALS_PER_HOUR, 60 * 60)
ping_limiter = FixedWindowRateLimiter(config.RATE_LIMIT_PINGS_PER_MINUTE, 60)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _enforce(limiter: FixedWindowRateLimiter, key: str, message: str) -> None:
    result = limiter.hit(key)
    if not result.allowed:
        logger.warning(f"Throttled | key={key} retry_after={result.retry_after}s")
        raise RateLimitError(message, retry_after=result.retry_after)


def throttle_signals(
    request: Request,
    user_id: str = Depends(get_current_user_id),
) -> str:
    _enforce(signal_limiter, f"signals:{user_id or client_ip(request)}", "Too many signals created. Please wait.")
    return user_id


def throttle_pings(
    request: Request,
    user_id: Optional[str] = Depends(get_optional_user_id),
) -> Optional[str]:
    _enforce(ping_limiter, f"pings:{user_id or client_ip(request)}", "Too many location updates.")
    return user_id
