# Booking endpoints: create, list and owner status changes.
# Visibility is a query on customer_id/owner_id; status changes are version-checked and locked per booking.
from __future__ import annotations

import logging
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..context import AppContext, get_context
from ..db import get_db
from ..locks import entity_write_lock
from ..rate_limit import rate_limit
from ..versioning import compare_and_swap
from .. import models, schemas
from .auth import get_current_user, require_customer

router = APIRouter()
logger = logging.getLogger("estateconnect.bookings")


@router.post(
    "/bookings",
    response_model=schemas.BookingEnvelope,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("write"))],
)
def create_booking(
    payload: schemas.BookingCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(require_customer),
) -> schemas.BookingEnvelope:
    """
    Record a purchase/rent request against an approved listing.

    amount and paymentMethod describe the payment intent only; nothing is charged.
    Several pending bookings may exist for the same listing.
    """
    prop = db.get(models.Property, payload.property_id)
    if prop is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")
    if prop.status != "approved":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Property is not available for booking")

    obj = models.Booking(
        property_id=prop.id,
        customer_id=user.id,
        customer_name=user.name,
        customer_email=user.email,
        owner_id=prop.owner_id,
        booking_type=payload.booking_type,
        payment_method=payload.payment_method,
        amount=payload.amount,
        contact_info=dict(payload.contact_info),
        status="pending",
        version=1,
    )
    try:
        db.add(obj)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("booking.create_failed", extra={"property_id": prop.id, "customer_id": user.id})
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create booking") from exc
    db.refresh(obj)

    logger.info(
        "booking.created",
        extra={"booking_id": obj.id, "property_id": prop.id, "customer_id": user.id, "owner_id": prop.owner_id},
    )
    return schemas.BookingEnvelope(
        booking=schemas.BookingRead.model_validate(obj),
        message="Booking created successfully! The property owner will contact you soon.",
    )


@router.get("/bookings", response_model=schemas.BookingList)
def list_my_bookings(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> schemas.BookingList:
    """
    Bookings where the caller is the customer or the listing owner, newest first,
    each with the current listing (or a placeholder if it was deleted).
    """
    items = (
        db.query(models.Booking)
        .filter(or_(models.Booking.customer_id == user.id, models.Booking.owner_id == user.id))
        .order_by(models.Booking.created_at.desc(), models.Booking.id.desc())
        .all()
    )

    property_ids = {b.property_id for b in items}
    props: Dict[str, models.Property] = {}
    if property_ids:
        props = {
            p.id: p
            for p in db.query(models.Property).filter(models.Property.id.in_(property_ids)).all()
        }

    out = []
    for b in items:
        prop = props.get(b.property_id)
        attached = schemas.PropertyRead.model_validate(prop) if prop is not None else schemas.PropertyPlaceholder()
        out.append(schemas.BookingWithProperty.model_validate(b).model_copy(update={"property": attached}))
    return schemas.BookingList(bookings=out)


@router.put(
    "/bookings/{booking_id}",
    response_model=schemas.BookingEnvelope,
    dependencies=[Depends(rate_limit("write"))],
)
def update_booking_status(
    booking_id: str,
    payload: schemas.BookingStatusUpdate,
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_context),
    user: models.User = Depends(get_current_user),
) -> schemas.BookingEnvelope:
    """
    Owner confirms or cancels a pending booking.

    Authorization: only the booking's ownerId. Confirmed and cancelled are terminal.
    """
    with entity_write_lock(ctx.redis, f"lock:booking:{booking_id}"):
        obj = db.get(models.Booking, booking_id)
        if obj is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
        if obj.owner_id != user.id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to update this booking")
        if obj.status != "pending":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Only pending bookings can be updated (current status: {obj.status})",
            )

        compare_and_swap(db, models.Booking, booking_id, obj.version, {"status": payload.status})
        db.commit()

    db.refresh(obj)
    logger.info(
        "booking.status_changed",
        extra={"booking_id": booking_id, "owner_id": user.id, "status": obj.status},
    )
    return schemas.BookingEnvelope(booking=schemas.BookingRead.model_validate(obj))
