# Application context: every process-wide handle, built once by create_app() and stored on app.state.ctx.
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from fastapi import Request
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .blobstore import LocalBlobStore
from .config import Settings
from .db import build_engine, build_session_factory
from .identity import IdentityProvider
from .redis_client import build_redis


@dataclass
class AppContext:
    settings: Settings
    engine: Engine
    session_factory: sessionmaker
    identity: IdentityProvider
    blobs: LocalBlobStore
    redis: Optional[Any] = None


def build_context(settings: Settings) -> AppContext:
    engine = build_engine(settings.database_url)
    return AppContext(
        settings=settings,
        engine=engine,
        session_factory=build_session_factory(engine),
        identity=IdentityProvider(secret=settings.jwt_secret, ttl_seconds=settings.jwt_ttl_seconds),
        blobs=LocalBlobStore(
            settings.upload_dir,
            secret=settings.jwt_secret,
            url_ttl_seconds=settings.upload_url_ttl_seconds,
        ),
        redis=build_redis(settings),
    )


# FastAPI dependency
def get_context(request: Request) -> AppContext:
    return request.app.state.ctx
