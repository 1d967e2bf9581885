# Redis client helper: opt-in, fail-open access to a shared Redis connection.
# Built once per app context from Settings (redis_enabled, redis_url); other modules receive the handle.
import logging
from typing import Any, Optional

from .config import Settings

# Module-scoped logger for connection/health messages
_logger = logging.getLogger("estateconnect.redis")


def build_redis(settings: Settings) -> Optional[Any]:
    """
    Return a Redis client if enabled and reachable; otherwise return None.

    Behavior:
    - Disabled unless settings.redis_enabled is set
    - Fail-open on errors (do not raise), so locks and rate limits degrade to no-ops
    """
    if not settings.redis_enabled:
        return None

    try:
        import redis

        client = redis.Redis.from_url(
            settings.redis_url,
            socket_timeout=0.25,
            socket_connect_timeout=0.25,
            retry_on_timeout=False,
            health_check_interval=0,
        )
        # Ping to verify connectivity and credentials
        client.ping()
        _logger.info("Connected to Redis at %s", settings.redis_url)
        return client
    except Exception as exc:
        _logger.warning("Redis unavailable (fail-open): %s", exc)
        return None
