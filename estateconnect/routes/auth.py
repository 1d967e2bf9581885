from __future__ import annotations

import logging
from typing import Callable, Optional

from fastapi import APIRouter, Depends, HTTPException, Header, status
from sqlalchemy.orm import Session

from ..context import AppContext, get_context
from ..db import get_db
from ..identity import EmailAlreadyRegistered, InvalidToken, TokenExpired
from ..rate_limit import rate_limit
from .. import models, schemas

router = APIRouter()
logger = logging.getLogger("estateconnect.auth")


# ----------------
# Dependencies
# ----------------
def bearer_token_from_auth_header(authorization: Optional[str]) -> str:
    if not authorization:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="No access token provided")
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid Authorization header")
    return parts[1].strip()


def get_current_user(
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_context),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> models.User:
    """
    Resolve the bearer token to an identity, then load its profile fresh from the DB.

    - Missing/invalid/expired token -> 401
    - Valid identity without a profile, or a deactivated profile -> 403 (fails closed)
    """
    token = bearer_token_from_auth_header(authorization)
    try:
        identity_id = ctx.identity.resolve_token(token)
    except TokenExpired as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired") from exc
    except InvalidToken as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized") from exc

    user = db.get(models.User, identity_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Profile not found")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is disabled")
    return user


def require_role(role: str, detail: str) -> Callable[..., models.User]:
    def _dependency(user: models.User = Depends(get_current_user)) -> models.User:
        if user.role != role:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
        return user

    return _dependency


require_owner = require_role("owner", "Only property owners can upload properties")
require_customer = require_role("customer", "Only customers can make bookings")
require_admin = require_role("admin", "Admin access required")


# ----------------
# Routes
# ----------------
@router.post(
    "/signup",
    response_model=schemas.SignupResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("signup"))],
)
def signup(
    payload: schemas.SignupRequest,
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_context),
) -> schemas.SignupResponse:
    # Identity and profile are committed together
    try:
        identity = ctx.identity.create_identity(db, payload.email, payload.password)
    except EmailAlreadyRegistered:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    user = models.User(
        id=identity.id,
        email=identity.email,
        name=payload.name,
        role=payload.role,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("auth.signup", extra={"user_id": user.id, "role": user.role})

    return schemas.SignupResponse(
        user=schemas.UserRead.model_validate(user),
        access_token=ctx.identity.issue_token(identity),
        message="Account created successfully! You can now login.",
    )


@router.post("/login", response_model=schemas.TokenResponse, dependencies=[Depends(rate_limit("login"))])
def login(
    payload: schemas.LoginRequest,
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_context),
) -> schemas.TokenResponse:
    identity = ctx.identity.authenticate(db, payload.email, payload.password)
    if identity is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    user = db.get(models.User, identity.id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Profile not found")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is disabled")

    return schemas.TokenResponse(
        access_token=ctx.identity.issue_token(identity),
        user=schemas.UserRead.model_validate(user),
    )


@router.get("/profile", response_model=schemas.ProfileResponse)
def get_profile(user: models.User = Depends(get_current_user)) -> schemas.ProfileResponse:
    return schemas.ProfileResponse(profile=schemas.UserRead.model_validate(user))


@router.put("/profile", response_model=schemas.ProfileResponse, dependencies=[Depends(rate_limit("write"))])
def update_profile(
    payload: schemas.ProfileUpdate,
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_context),
    user: models.User = Depends(get_current_user),
) -> schemas.ProfileResponse:
    """
    Merge the editable profile fields. An email change is mirrored onto the identity
    so the new address is also the login.
    """
    if payload.name is not None:
        user.name = payload.name
    if payload.email is not None and payload.email != user.email:
        existing = ctx.identity.find_by_email(db, payload.email)
        if existing is not None and existing.id != user.id:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")
        identity = db.get(models.Identity, user.id)
        if identity is not None:
            identity.email = payload.email
            db.add(identity)
        user.email = payload.email

    db.add(user)
    db.commit()
    db.refresh(user)
    return schemas.ProfileResponse(profile=schemas.UserRead.model_validate(user))
