# Diagnostics: raw dump of stored listings. Mounted only when settings.debug_endpoints is on.
import json
import logging
from collections import Counter

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from .. import models, schemas

router = APIRouter()
logger = logging.getLogger("estateconnect.properties")

PREVIEW_CHARS = 150


@router.get("/debug/properties", response_model=schemas.DebugProperties)
def debug_properties(db: Session = Depends(get_db)) -> schemas.DebugProperties:
    rows = db.query(models.Property).order_by(models.Property.created_at.asc(), models.Property.id.asc()).all()

    items = []
    for index, p in enumerate(rows):
        preview = json.dumps(
            {"id": p.id, "title": p.title, "status": p.status, "ownerId": p.owner_id, "price": p.price},
            default=str,
        )[:PREVIEW_CHARS]
        items.append(
            schemas.DebugItem(index=index, id=p.id, has_title=bool(p.title), status=p.status or "N/A", preview=preview)
        )

    by_status = Counter(p.status for p in rows)
    result = schemas.DebugProperties(
        total_items=len(rows),
        valid_properties=sum(1 for p in rows if p.id and p.title),
        pending_count=by_status["pending"],
        approved_count=by_status["approved"],
        rejected_count=by_status["rejected"],
        sold_count=by_status["sold"],
        items=items,
    )
    logger.info("properties.debug_dump", extra={"total": result.total_items, "valid": result.valid_properties})
    return result
