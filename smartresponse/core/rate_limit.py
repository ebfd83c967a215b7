"""Rate limiting configuration for the Smart Response API."""

import logging
import os

import redis
from slowapi import Limiter
from slowapi.util import get_remote_address

from smartresponse.core.config import settings

# Redis backs the limiter for multi-worker deployments
# Falls back to in-memory if Redis is not available (dev/test mode)
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
IS_TESTING = os.getenv("TESTING", "").lower() in ("1", "true", "yes")
DEFAULT_LIMITS = (
    []
    if IS_TESTING or settings.RATE_LIMIT_API <= 0
    else [f"{settings.RATE_LIMIT_API}/minute"]
)
PUBLIC_SUBMIT_LIMIT = f"{max(settings.RATE_LIMIT_PUBLIC_SUBMIT, 1)}/minute"


def _build_limiter() -> Limiter:
    if IS_TESTING:
        return Limiter(
            key_func=get_remote_address,
            storage_uri="memory://",
            default_limits=DEFAULT_LIMITS,
            enabled=False,
        )

    try:
        client = redis.from_url(REDIS_URL, socket_connect_timeout=1)
        client.ping()
    except redis.RedisError as exc:
        logging.getLogger(__name__).warning(
            "Redis unavailable for rate limiting, using in-memory: %s", exc
        )
        storage_uri = "memory://"
    else:
        storage_uri = REDIS_URL

    return Limiter(
        key_func=get_remote_address,
        storage_uri=storage_uri,
        default_limits=DEFAULT_LIMITS,
    )


limiter = _build_limiter()
