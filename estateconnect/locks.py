# Distributed locking helpers backed by Redis to serialize writes per entity across processes.
# Designed to fail open so the application remains available if Redis is down.
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional
from uuid import uuid4

from fastapi import HTTPException, status

# Namespaced logger for lock acquisition/release diagnostics
logger = logging.getLogger("estateconnect.locks")

_RELEASE_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
else
    return 0
end
"""


@contextmanager
def redis_try_lock(r: Optional[Any], key: str, ttl_ms: int = 5000) -> Iterator[bool]:
    """
    Best-effort distributed lock implemented with Redis SET NX PX.

    Behavior:
    - True when the lock is acquired, or when Redis is unavailable (fail-open).
    - False when another process holds the lock.
    - Unlock uses a token-checked Lua script to avoid releasing a lock we don't own.
    """
    if r is None:
        yield True
        return

    token = uuid4().hex
    try:
        # SET key token NX PX ttl_ms returns True on success, falsy/None otherwise
        acquired = bool(r.set(key, token, nx=True, px=ttl_ms))
    except Exception as exc:
        logger.warning("redis_try_lock error (key=%s): %s", key, exc)
        yield True
        return

    try:
        yield acquired
    finally:
        if acquired:
            try:
                r.eval(_RELEASE_SCRIPT, 1, key, token)
            except Exception as exc:
                # The lock will expire by TTL
                logger.debug("redis_try_lock release error (key=%s): %s", key, exc)


@contextmanager
def entity_write_lock(r: Optional[Any], key: str, ttl_ms: int = 5000) -> Iterator[None]:
    """
    Guard a read-check-write on one entity; raises 429 when another writer holds it.

        with entity_write_lock(ctx.redis, f"lock:property:{pid}"):
            # compare-and-swap + commit
    """
    with redis_try_lock(r, key, ttl_ms=ttl_ms) as locked:
        if not locked:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={"error": "busy", "retry_after": 1},
            )
        yield
