"""
Rate Limiter Configuration

Supports both in-memory and Redis storage for rate limiting.
Redis is recommended for production (multiple instances).
"""

import logging
from typing import Optional

from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request

from ..config import settings

logger = logging.getLogger(__name__)


def get_real_client_ip(request: Request) -> str:
    """Get real client IP behind reverse proxy"""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Take the first IP (original client)
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request)


def get_storage_uri(redis_url: Optional[str] = None) -> str:
    """
    Storage URI for the limiter: REDIS_URL when the redis client is
    installed and the server answers, in-memory otherwise.
    """
    if not redis_url:
        return "memory://"

    try:
        import redis

        redis.from_url(redis_url).ping()
        return redis_url
    except ImportError:
        logger.warning("REDIS_URL is set but the redis package is not installed (pip install wayfare-backend[redis]), using in-memory storage")
    except Exception as e:
        logger.warning(f"Redis connection failed: {e}, using in-memory storage")
    return "memory://"


def create_limiter() -> Limiter:
    """
    Create a rate limiter with appropriate storage backend.
    Uses Redis if REDIS_URL is set and reachable, otherwise in-memory.
    """
    storage_uri = get_storage_uri(settings.redis_url)
    logger.info(f"Rate limiter storage: {storage_uri.split('@')[-1]}")
    return Limiter(
        key_func=get_real_client_ip,
        storage_uri=storage_uri,
        default_limits=["100/minute"]
    )


# Global rate limiter instance
limiter = create_limiter()


# ================================
# RATE LIMIT CONFIGURATIONS
# ================================

RATE_LIMITS = {
    "reservation_create": "30/minute",
    "reservation_update": "60/minute",
    "search": "60/minute",
    "chat_write": "120/minute",
}


def get_rate_limit(operation: str) -> str:
    """Get rate limit for a specific operation."""
    return RATE_LIMITS.get(operation, "100/minute")
