# Startup routines run from the app lifespan.
from __future__ import annotations

import logging
from typing import Optional

from .context import AppContext
from . import models

logger = logging.getLogger("estateconnect.auth")


def bootstrap_admin(ctx: AppContext) -> Optional[str]:
    """
    Ensure the configured system administrator exists.

    Semantics:
    - No-op unless settings.admin_email and settings.admin_password are both set.
    - Idempotent across restarts: an existing identity is reused, a missing profile is created.
    - An existing non-admin profile for that email is left untouched (no role promotion).

    Returns:
    - The admin's user id, or None when skipped.
    """
    settings = ctx.settings
    if not (settings.admin_email and settings.admin_password):
        logger.info("admin.bootstrap.skipped")
        return None

    db = ctx.session_factory()
    try:
        identity = ctx.identity.find_by_email(db, settings.admin_email)
        if identity is None:
            identity = ctx.identity.create_identity(db, settings.admin_email, settings.admin_password)

        profile = db.get(models.User, identity.id)
        if profile is None:
            db.add(
                models.User(
                    id=identity.id,
                    email=identity.email,
                    name=settings.admin_name,
                    role="admin",
                    is_active=True,
                )
            )
            logger.info("admin.bootstrap.created", extra={"user_id": identity.id})
        elif profile.role != "admin":
            logger.warning("admin.bootstrap.role_mismatch", extra={"user_id": identity.id, "role": profile.role})
        db.commit()
        return identity.id
    except Exception:
        # Roll back partial work, then bubble up the error
        db.rollback()
        raise
    finally:
        db.close()
