# Runtime configuration: one Settings object built at process start and carried by the app context.
# Values come from environment variables; tests construct Settings(...) directly.
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional

# Credentialed CORS cannot use '*'; these are the local dev frontends
DEFAULT_DEV_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]


# Basic truthy parser for env flags (1, true, yes, on)
def _truthy(val: Optional[str], default: bool = False) -> bool:
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "t", "yes", "y", "on"}


def _to_int(val: Optional[str], default: int) -> int:
    try:
        return int(val) if val is not None else default
    except ValueError:
        return default


# Parse CORS origins from a comma-separated env var.
# '*' is mapped to explicit localhost origins so credentialed requests remain allowed.
def _parse_cors_origins(env_value: Optional[str]) -> List[str]:
    if not env_value:
        return list(DEFAULT_DEV_ORIGINS)

    origins = [o.strip() for o in env_value.split(",") if o.strip()]
    if "*" in origins:
        return list(DEFAULT_DEV_ORIGINS)

    return origins


@dataclass
class Settings:
    """Application settings.

    auto_approve_listings selects the initial status of new listings:
    - True: listings go live immediately ("approved")
    - False: listings wait for an administrator ("pending")
    """

    database_url: str = "sqlite:///./data.db"
    jwt_secret: str = "dev-secret-change-me"
    jwt_ttl_seconds: int = 60 * 60 * 24 * 7  # 7 days
    auto_approve_listings: bool = False
    api_prefix: str = "/api"
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_DEV_ORIGINS))
    upload_dir: str = "./uploads"
    max_upload_bytes: int = 5 * 1024 * 1024
    upload_url_ttl_seconds: int = 60 * 60 * 24 * 365  # signed image URLs last a year
    admin_email: Optional[str] = None
    admin_password: Optional[str] = None
    admin_name: str = "System Administrator"
    debug_endpoints: bool = True
    redis_enabled: bool = False
    redis_url: str = "redis://localhost:6379/0"
    rate_limit_window_seconds: int = 60
    rate_limit_login_per_window: int = 10
    rate_limit_signup_per_window: int = 5
    rate_limit_write_per_window: int = 30

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.getenv("DATABASE_URL", "sqlite:///./data.db"),
            jwt_secret=os.getenv("ESTATECONNECT_JWT_SECRET", "dev-secret-change-me"),
            jwt_ttl_seconds=_to_int(os.getenv("JWT_TTL_SECONDS"), 60 * 60 * 24 * 7),
            auto_approve_listings=_truthy(os.getenv("AUTO_APPROVE_LISTINGS"), default=False),
            api_prefix=os.getenv("API_PREFIX", "/api").rstrip("/"),
            cors_origins=_parse_cors_origins(os.getenv("CORS_ORIGINS")),
            upload_dir=os.getenv("UPLOAD_DIR", "./uploads"),
            max_upload_bytes=_to_int(os.getenv("MAX_UPLOAD_BYTES"), 5 * 1024 * 1024),
            upload_url_ttl_seconds=_to_int(os.getenv("UPLOAD_URL_TTL_SECONDS"), 60 * 60 * 24 * 365),
            admin_email=(os.getenv("ADMIN_EMAIL") or "").strip().lower() or None,
            admin_password=os.getenv("ADMIN_PASSWORD") or None,
            admin_name=os.getenv("ADMIN_NAME", "System Administrator"),
            debug_endpoints=_truthy(os.getenv("DEBUG_ENDPOINTS"), default=True),
            redis_enabled=_truthy(os.getenv("REDIS_ENABLED"), default=False),
            redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
            rate_limit_window_seconds=_to_int(os.getenv("RATE_LIMIT_WINDOW_SECONDS"), 60),
            rate_limit_login_per_window=_to_int(os.getenv("RATE_LIMIT_LOGIN_PER_WINDOW"), 10),
            rate_limit_signup_per_window=_to_int(os.getenv("RATE_LIMIT_SIGNUP_PER_WINDOW"), 5),
            rate_limit_write_per_window=_to_int(os.getenv("RATE_LIMIT_WRITE_PER_WINDOW"), 30),
        )
