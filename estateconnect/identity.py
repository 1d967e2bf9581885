# Identity provider: email/password credentials and signed bearer tokens.
# Knows nothing about roles or profiles; those live in the users table and are loaded per request.
from __future__ import annotations

import time
from typing import Optional

import jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from . import models


class IdentityError(Exception):
    """Base class for identity provider failures."""


class InvalidToken(IdentityError):
    pass


class TokenExpired(InvalidToken):
    pass


class EmailAlreadyRegistered(IdentityError):
    pass


class IdentityProvider:
    """
    Issues and verifies HS256 JWTs for identities stored in the database.

    Tokens carry only the identity id ('sub') and email; authorization data is
    never read from the token.
    """

    algorithm = "HS256"

    def __init__(self, secret: str, ttl_seconds: int) -> None:
        self.secret = secret
        self.ttl_seconds = ttl_seconds
        # Use bcrypt_sha256 to avoid bcrypt's 72-byte password limit and handle unicode safely.
        self.pwd_context = CryptContext(schemes=["bcrypt_sha256"], deprecated="auto")

    def hash_password(self, password: str) -> str:
        return self.pwd_context.hash(password)

    def verify_password(self, password: str, password_hash: str) -> bool:
        return self.pwd_context.verify(password, password_hash)

    def find_by_email(self, db: Session, email: str) -> Optional[models.Identity]:
        return db.query(models.Identity).filter(models.Identity.email == email.strip().lower()).first()

    def create_identity(self, db: Session, email: str, password: str) -> models.Identity:
        """Add a new identity to the session (flushed, not committed) so the caller can commit it with a profile."""
        email = email.strip().lower()
        if self.find_by_email(db, email) is not None:
            raise EmailAlreadyRegistered(email)
        identity = models.Identity(email=email, password_hash=self.hash_password(password))
        db.add(identity)
        db.flush()
        return identity

    def authenticate(self, db: Session, email: str, password: str) -> Optional[models.Identity]:
        identity = self.find_by_email(db, email)
        if identity is None or not self.verify_password(password, identity.password_hash):
            return None
        return identity

    def issue_token(self, identity: models.Identity) -> str:
        now = int(time.time())
        payload = {
            "sub": identity.id,
            "email": identity.email,
            "iat": now,
            "exp": now + self.ttl_seconds,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def resolve_token(self, token: str) -> str:
        """Return the identity id a token was issued for."""
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpired("Token expired") from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidToken("Invalid token") from exc
        sub = payload.get("sub")
        if not sub:
            raise InvalidToken("Invalid token payload")
        return str(sub)
