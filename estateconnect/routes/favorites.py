# Favorites: a per-user set of listing ids.
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db import get_db
from ..rate_limit import rate_limit
from .. import models, schemas
from .auth import get_current_user

router = APIRouter()
logger = logging.getLogger("estateconnect.favorites")


def _favorite_ids(db: Session, user_id: str) -> List[str]:
    rows = (
        db.query(models.Favorite.property_id)
        .filter(models.Favorite.user_id == user_id)
        .order_by(models.Favorite.created_at.asc(), models.Favorite.id.asc())
        .all()
    )
    return [row.property_id for row in rows]


@router.post("/favorites", response_model=schemas.FavoriteIds, dependencies=[Depends(rate_limit("write"))])
def add_favorite(
    payload: schemas.FavoriteCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> schemas.FavoriteIds:
    """Idempotent add: favoriting the same listing twice keeps one entry."""
    if db.get(models.Property, payload.property_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")

    exists = (
        db.query(models.Favorite.id)
        .filter(models.Favorite.user_id == user.id, models.Favorite.property_id == payload.property_id)
        .first()
    )
    if exists is None:
        db.add(models.Favorite(user_id=user.id, property_id=payload.property_id))
        try:
            db.commit()
            logger.info("favorite.added", extra={"user_id": user.id, "property_id": payload.property_id})
        except IntegrityError:
            # Concurrent add of the same pair; the unique constraint kept one row
            db.rollback()
    return schemas.FavoriteIds(favorites=_favorite_ids(db, user.id))


@router.delete(
    "/favorites/{property_id}",
    response_model=schemas.FavoriteIds,
    dependencies=[Depends(rate_limit("write"))],
)
def remove_favorite(
    property_id: str,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> schemas.FavoriteIds:
    db.query(models.Favorite).filter(
        models.Favorite.user_id == user.id,
        models.Favorite.property_id == property_id,
    ).delete(synchronize_session=False)
    db.commit()
    logger.info("favorite.removed", extra={"user_id": user.id, "property_id": property_id})
    return schemas.FavoriteIds(favorites=_favorite_ids(db, user.id))


@router.get("/favorites", response_model=schemas.PropertyList)
def list_favorites(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> schemas.PropertyList:
    # Inner join drops favorites whose listing no longer exists
    items = (
        db.query(models.Property)
        .join(models.Favorite, models.Favorite.property_id == models.Property.id)
        .filter(models.Favorite.user_id == user.id)
        .order_by(models.Favorite.created_at.asc(), models.Favorite.id.asc())
        .all()
    )
    return schemas.PropertyList(properties=[schemas.PropertyRead.model_validate(p) for p in items])
