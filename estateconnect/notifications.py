# Notification fan-out: inbox rows written as a side effect of listing state changes.
# Helpers only add rows to the caller's session; the caller commits them together with the state change.
from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from . import models

logger = logging.getLogger("estateconnect.notifications")

PROPERTY_LISTED = "property_listed"
PROPERTY_APPROVED = "property_approved"
PROPERTY_REJECTED = "property_rejected"


def notify(
    db: Session,
    recipient_id: str,
    kind: str,
    message: str,
    prop: Optional[models.Property] = None,
    owner_name: Optional[str] = None,
) -> models.Notification:
    note = models.Notification(
        recipient_id=recipient_id,
        type=kind,
        property_id=prop.id if prop is not None else None,
        property_title=prop.title if prop is not None else None,
        owner_name=owner_name,
        message=message,
        read=False,
        created_at=models.utcnow(),
    )
    db.add(note)
    return note


def notify_admins(
    db: Session,
    kind: str,
    message: str,
    prop: Optional[models.Property] = None,
    owner_name: Optional[str] = None,
) -> List[models.Notification]:
    """One inbox entry per admin profile."""
    admin_ids = [row.id for row in db.query(models.User.id).filter(models.User.role == "admin").all()]
    notes = [notify(db, admin_id, kind, message, prop=prop, owner_name=owner_name) for admin_id in admin_ids]
    logger.info("notifications.fanout", extra={"kind": kind, "recipients": len(notes)})
    return notes


def listing_submitted(db: Session, prop: models.Property) -> List[models.Notification]:
    return notify_admins(
        db,
        PROPERTY_LISTED,
        f'New property "{prop.title}" listed by {prop.owner_name}',
        prop=prop,
        owner_name=prop.owner_name,
    )


def listing_approved(db: Session, prop: models.Property) -> models.Notification:
    return notify(
        db,
        prop.owner_id,
        PROPERTY_APPROVED,
        f'Your property "{prop.title}" has been approved and is now live!',
        prop=prop,
    )


def listing_rejected(db: Session, prop: models.Property, reason: str) -> models.Notification:
    return notify(
        db,
        prop.owner_id,
        PROPERTY_REJECTED,
        f'Your property "{prop.title}" was not approved. Reason: {reason}',
        prop=prop,
    )
