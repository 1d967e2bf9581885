# Per-IP fixed-window request limits for auth and write endpoints, counted in Redis.
# Counter keys look like rl:v1:ip:{ip}:{scope} and expire with the window.
# With Redis disabled or unreachable every request is let through.
import logging
from typing import Any, Callable, Literal, Optional, Tuple

from fastapi import HTTPException, Request, status

from .config import Settings

logger = logging.getLogger("estateconnect.rate_limit")

# "write" covers listing, booking, favorite, profile and upload mutations
Scope = Literal["login", "signup", "write"]


def _limit_for_scope(settings: Settings, scope: Scope) -> int:
    limits = {
        "login": settings.rate_limit_login_per_window,
        "signup": settings.rate_limit_signup_per_window,
        "write": settings.rate_limit_write_per_window,
    }
    return limits[scope]


def _client_ip(request: Request) -> str:
    # Remote address of the connection; X-Forwarded-For is not consulted
    client = request.client
    return client.host if client and client.host else "unknown"


def _count_hit(r: Any, key: str, window: int) -> Tuple[int, Optional[int]]:
    """Increment the window counter; returns (hits so far, seconds left in the window)."""
    hits = r.incr(key, amount=1)
    if hits == 1:
        r.expire(key, window)
        return hits, window
    return hits, r.ttl(key)


def _too_many_requests(scope: Scope, limit: int, window: int, retry_after: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail={
            "error": "rate_limited",
            "scope": scope,
            "limit": limit,
            "window_seconds": window,
            "retry_after": retry_after,
        },
        headers={"Retry-After": str(retry_after)},
    )


def rate_limit(scope: Scope) -> Callable[[Request], None]:
    """
    Route dependency enforcing `rate_limit_<scope>_per_window` requests per
    `rate_limit_window_seconds` for each client IP.

        @router.post("/bookings", dependencies=[Depends(rate_limit("write"))])
    """

    def _dependency(request: Request) -> None:
        ctx = request.app.state.ctx
        if ctx.redis is None:
            return

        settings = ctx.settings
        window = settings.rate_limit_window_seconds
        limit = _limit_for_scope(settings, scope)
        ip = _client_ip(request)
        try:
            hits, ttl = _count_hit(ctx.redis, f"rl:v1:ip:{ip}:{scope}", window)
        except Exception as exc:
            logger.warning("rate_limit.fail_open", extra={"scope": scope, "ip": ip, "error": str(exc)})
            return

        if hits > limit:
            retry_after = ttl if isinstance(ttl, int) and ttl > 0 else window
            logger.info("rate_limit.exceeded", extra={"scope": scope, "ip": ip, "hits": hits})
            raise _too_many_requests(scope, limit, window, retry_after)

    return _dependency
