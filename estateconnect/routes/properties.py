# Property listing endpoints.
# Owners create and manage their own listings; anyone can browse; admins may edit or remove any listing.
import calendar
import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..context import AppContext, get_context
from ..db import get_db
from ..locks import entity_write_lock
from ..rate_limit import rate_limit
from ..versioning import compare_and_swap
from .. import models, notifications, schemas
from .auth import get_current_user, require_owner

# Router namespace for property APIs
router = APIRouter()
logger = logging.getLogger("estateconnect.properties")

DEFAULT_DURATION = "1month"
# Listing durations: (days, months) added to the creation time
DURATIONS = {
    "1day": (1, 0),
    "1week": (7, 0),
    "1month": (0, 1),
    "2months": (0, 2),
    "3months": (0, 3),
}


def _add_months(value: datetime, months: int) -> datetime:
    # Calendar month offset, clamped to the last day of the target month (Jan 31 + 1 month -> Feb 28/29)
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def calculate_expiry_date(duration: Optional[str], now: datetime) -> datetime:
    """Expiry for a new listing; unknown or missing durations use one month."""
    days, months = DURATIONS.get(duration or DEFAULT_DURATION, DURATIONS[DEFAULT_DURATION])
    return _add_months(now + timedelta(days=days), months)


def get_property_or_404(db: Session, property_id: str) -> models.Property:
    obj = db.get(models.Property, property_id)
    if obj is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")
    return obj


def _can_manage(user: models.User, obj: models.Property) -> bool:
    return obj.owner_id == user.id or user.role == "admin"


@router.get("/properties", response_model=schemas.PropertyList)
def list_properties(
    location: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    type_filter: Optional[str] = Query(None, alias="type"),
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    db: Session = Depends(get_db),
) -> schemas.PropertyList:
    """
    Public listing search.

    Filters:
    - location: case-insensitive substring
    - status, type: exact
    - minPrice/maxPrice: inclusive bounds

    Rows without an id or title are skipped as partial writes.
    Ordered by newest first.
    """
    q = db.query(models.Property).filter(models.Property.id != "", models.Property.title != "")
    if location:
        q = q.filter(func.lower(models.Property.location).contains(location.lower(), autoescape=True))
    if status_filter:
        q = q.filter(models.Property.status == status_filter)
    if type_filter:
        q = q.filter(models.Property.type == type_filter)
    if min_price is not None:
        q = q.filter(models.Property.price >= min_price)
    if max_price is not None:
        q = q.filter(models.Property.price <= max_price)

    items = q.order_by(models.Property.created_at.desc(), models.Property.id.desc()).all()
    logger.info(
        "properties.list",
        extra={
            "location": location,
            "status": status_filter,
            "type": type_filter,
            "min_price": min_price,
            "max_price": max_price,
            "count": len(items),
        },
    )
    return schemas.PropertyList(properties=[schemas.PropertyRead.model_validate(p) for p in items])


@router.post(
    "/properties",
    response_model=schemas.PropertyEnvelope,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("write"))],
)
def create_property(
    payload: schemas.PropertyCreate,
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_context),
    user: models.User = Depends(require_owner),
) -> schemas.PropertyEnvelope:
    """
    Create a listing owned by the authenticated owner and notify every admin.

    Initial status follows the auto_approve_listings policy: "approved" (live now)
    or "pending" (waits for admin review).
    """
    now = models.utcnow()
    initial_status = "approved" if ctx.settings.auto_approve_listings else "pending"
    obj = models.Property(
        id=models.new_id(),
        owner_id=user.id,
        owner_name=user.name,
        owner_email=user.email,
        title=payload.title,
        description=payload.description,
        location=payload.location,
        price=payload.price,
        type=payload.type,
        bedrooms=payload.bedrooms,
        bathrooms=payload.bathrooms,
        area=payload.area,
        images=list(payload.images),
        owner_verification=payload.owner_verification,
        third_party_witness=payload.third_party_witness,
        status=initial_status,
        created_at=now,
        updated_at=now,
        expiry_date=calculate_expiry_date(payload.duration, now),
        version=1,
    )
    try:
        db.add(obj)
        notifications.listing_submitted(db, obj)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("property.create_failed", extra={"owner_id": user.id})
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create property") from exc
    db.refresh(obj)

    logger.info(
        "property.created",
        extra={"property_id": obj.id, "owner_id": user.id, "status": obj.status},
    )
    if obj.status == "approved":
        message = "Property listed successfully and is now visible to customers!"
    else:
        message = "Property submitted successfully and is awaiting admin approval."
    return schemas.PropertyEnvelope(property=schemas.PropertyRead.model_validate(obj), message=message)


@router.get("/properties/{property_id}", response_model=schemas.PropertyEnvelope)
def get_property(property_id: str, db: Session = Depends(get_db)) -> schemas.PropertyEnvelope:
    obj = get_property_or_404(db, property_id)
    return schemas.PropertyEnvelope(property=schemas.PropertyRead.model_validate(obj))


@router.put(
    "/properties/{property_id}",
    response_model=schemas.PropertyEnvelope,
    dependencies=[Depends(rate_limit("write"))],
)
def update_property(
    property_id: str,
    payload: schemas.PropertyUpdate,
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_context),
    user: models.User = Depends(get_current_user),
) -> schemas.PropertyEnvelope:
    """
    Shallow-merge a patch onto a listing.

    Authorization: the listing's owner or an admin.
    status may only be set to "sold", by the owner, from "approved".
    """
    obj = get_property_or_404(db, property_id)
    if not _can_manage(user, obj):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to update this property")

    seen_version = obj.version
    if payload.version is not None and payload.version != seen_version:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Conflicting update, please retry")

    changes = payload.changes()
    if payload.status == "sold":
        if obj.owner_id != user.id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the owner can mark a property as sold")
        if obj.status != "approved":
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only approved properties can be marked as sold")
        changes["status"] = "sold"

    if changes:
        with entity_write_lock(ctx.redis, f"lock:property:{property_id}"):
            compare_and_swap(db, models.Property, property_id, seen_version, changes)
            db.commit()
        db.refresh(obj)
        logger.info(
            "property.updated",
            extra={"property_id": property_id, "user_id": user.id, "fields": sorted(changes)},
        )

    return schemas.PropertyEnvelope(property=schemas.PropertyRead.model_validate(obj))


@router.delete(
    "/properties/{property_id}",
    response_model=schemas.MessageResponse,
    dependencies=[Depends(rate_limit("write"))],
)
def delete_property(
    property_id: str,
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_context),
    user: models.User = Depends(get_current_user),
) -> schemas.MessageResponse:
    """
    Remove a listing (owner or admin). Favorites pointing at it are removed too;
    bookings keep their propertyId and render a placeholder afterwards.
    """
    obj = get_property_or_404(db, property_id)
    if not _can_manage(user, obj):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to delete this property")

    with entity_write_lock(ctx.redis, f"lock:property:{property_id}"):
        try:
            db.query(models.Favorite).filter(models.Favorite.property_id == property_id).delete(synchronize_session=False)
            db.delete(obj)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("property.delete_failed", extra={"property_id": property_id})
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to delete property") from exc

    logger.info("property.deleted", extra={"property_id": property_id, "user_id": user.id})
    return schemas.MessageResponse(message="Property deleted successfully")
