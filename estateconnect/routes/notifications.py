# Inbox endpoints: list own notifications and flag one as read.
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..db import get_db
from .. import models, schemas
from .auth import get_current_user

router = APIRouter()


@router.get("/notifications", response_model=schemas.NotificationList)
def list_notifications(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> schemas.NotificationList:
    items = (
        db.query(models.Notification)
        .filter(models.Notification.recipient_id == user.id)
        .order_by(models.Notification.created_at.desc(), models.Notification.id.desc())
        .all()
    )
    return schemas.NotificationList(notifications=[schemas.NotificationRead.model_validate(n) for n in items])


@router.put("/notifications/{notification_id}/read", response_model=schemas.SuccessResponse)
def mark_notification_read(
    notification_id: str,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> schemas.SuccessResponse:
    # Scoped to the caller's inbox: another user's id behaves like an unknown id
    rows = (
        db.query(models.Notification)
        .filter(models.Notification.id == notification_id, models.Notification.recipient_id == user.id)
        .update({"read": True}, synchronize_session=False)
    )
    if rows == 0:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    db.commit()
    return schemas.SuccessResponse(success=True)
