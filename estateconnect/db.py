from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from typing import Generator

from fastapi import Request

# Base class for ORM models declared via SQLAlchemy's declarative API
Base = declarative_base()


def build_engine(database_url: str) -> Engine:
    """
    Build the SQLAlchemy engine with backend-specific settings.

    - SQLite (dev/local/tests): allow cross-thread access since it's a file-based database.
    - Server DBs (e.g., MySQL/Postgres): enable safe pooling to avoid stale or dropped connections under load.
    """
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_recycle=280,  # recycle connections periodically to prevent 'MySQL server has gone away'
        pool_size=10,
        max_overflow=20,
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    # One session per request; autocommit and autoflush disabled for explicit transaction control
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db(request: Request) -> Generator:
    """
    FastAPI dependency.

    Yields a session from the application context's factory for the lifetime of
    the request and guarantees it is closed afterwards, even if an exception is raised.
    """
    db = request.app.state.ctx.session_factory()
    try:
        yield db
    finally:
        db.close()
