# Administrator endpoints: listing review (approve/reject) and the user directory.
# Each decision and the owner's notification commit in one transaction.
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..context import AppContext, get_context
from ..db import get_db
from ..locks import entity_write_lock
from ..rate_limit import rate_limit
from ..versioning import compare_and_swap
from .. import models, notifications, schemas
from .auth import require_admin
from .properties import get_property_or_404

router = APIRouter()
logger = logging.getLogger("estateconnect.properties")

DEFAULT_REJECTION_REASON = "No reason provided"


@router.put(
    "/admin/properties/{property_id}/approve",
    response_model=schemas.PropertyEnvelope,
    dependencies=[Depends(rate_limit("write"))],
)
def approve_property(
    property_id: str,
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_context),
    admin: models.User = Depends(require_admin),
) -> schemas.PropertyEnvelope:
    """
    pending -> approved, then notify the owner once.

    Approving an already approved listing is a no-op (no second notification).
    Rejected and sold listings cannot be approved.
    """
    with entity_write_lock(ctx.redis, f"lock:property:{property_id}"):
        obj = get_property_or_404(db, property_id)
        if obj.status == "approved":
            return schemas.PropertyEnvelope(
                property=schemas.PropertyRead.model_validate(obj),
                message="Property already approved",
            )
        if obj.status != "pending":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Only pending properties can be approved (current status: {obj.status})",
            )

        compare_and_swap(
            db,
            models.Property,
            property_id,
            obj.version,
            {"status": "approved", "approved_at": models.utcnow(), "approved_by": admin.id},
        )
        notifications.listing_approved(db, obj)
        db.commit()

    db.refresh(obj)
    logger.info("property.approved", extra={"property_id": property_id, "admin_id": admin.id})
    return schemas.PropertyEnvelope(
        property=schemas.PropertyRead.model_validate(obj),
        message="Property approved successfully",
    )


@router.put(
    "/admin/properties/{property_id}/reject",
    response_model=schemas.PropertyEnvelope,
    dependencies=[Depends(rate_limit("write"))],
)
def reject_property(
    property_id: str,
    payload: Optional[schemas.RejectRequest] = Body(default=None),
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_context),
    admin: models.User = Depends(require_admin),
) -> schemas.PropertyEnvelope:
    """
    pending -> rejected with a reason, then notify the owner once.

    A missing or blank reason is stored as "No reason provided".
    Rejecting an already rejected listing is a no-op; approved and sold listings cannot be rejected.
    """
    reason = ((payload.reason if payload else None) or "").strip() or DEFAULT_REJECTION_REASON

    with entity_write_lock(ctx.redis, f"lock:property:{property_id}"):
        obj = get_property_or_404(db, property_id)
        if obj.status == "rejected":
            return schemas.PropertyEnvelope(
                property=schemas.PropertyRead.model_validate(obj),
                message="Property already rejected",
            )
        if obj.status != "pending":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Only pending properties can be rejected (current status: {obj.status})",
            )

        compare_and_swap(
            db,
            models.Property,
            property_id,
            obj.version,
            {
                "status": "rejected",
                "rejected_at": models.utcnow(),
                "rejected_by": admin.id,
                "rejection_reason": reason,
            },
        )
        notifications.listing_rejected(db, obj, reason)
        db.commit()

    db.refresh(obj)
    logger.info("property.rejected", extra={"property_id": property_id, "admin_id": admin.id})
    return schemas.PropertyEnvelope(
        property=schemas.PropertyRead.model_validate(obj),
        message="Property rejected",
    )


@router.get("/admin/users", response_model=schemas.UserList)
def list_users(
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
) -> schemas.UserList:
    items = db.query(models.User).order_by(models.User.created_at.desc(), models.User.id.asc()).all()
    return schemas.UserList(users=[schemas.UserRead.model_validate(u) for u in items])
