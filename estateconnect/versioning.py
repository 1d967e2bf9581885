# Optimistic concurrency: conditional UPDATE keyed on the row's version stamp.
from __future__ import annotations

from typing import Any, Dict

from fastapi import HTTPException, status
from sqlalchemy.orm import Session


def compare_and_swap(db: Session, model: Any, obj_id: str, seen_version: int, values: Dict[str, Any]) -> int:
    """
    Apply `values` to row `obj_id` only if its version still equals `seen_version`.

    Bumps the version in the same statement and returns the new version. Zero
    affected rows means another writer got there first: the transaction is
    rolled back and 409 is raised. The caller commits on success.
    """
    new_version = (seen_version or 1) + 1
    rows = (
        db.query(model)
        .filter(model.id == obj_id, model.version == seen_version)
        .update({**values, "version": new_version}, synchronize_session=False)
    )
    if rows == 0:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Conflicting update, please retry")
    return new_version
