# Application factory: builds the context, middleware, startup routines, and API routers.
# Run with: uvicorn --factory estateconnect.main:create_app
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .bootstrap import bootstrap_admin
from .config import Settings
from .context import build_context
from .db import Base
from .errors import install_exception_handlers
from .routes.admin import router as admin_router
from .routes.auth import router as auth_router
from .routes.bookings import router as bookings_router
from .routes.debug import router as debug_router
from .routes.favorites import router as favorites_router
from .routes.notifications import router as notifications_router
from .routes.properties import router as properties_router
from .routes.uploads import files_router
from .routes.uploads import router as uploads_router


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    ctx = build_context(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # For local SQLite, auto-create tables; production DBs rely on Alembic migrations.
        if settings.database_url.startswith("sqlite"):
            Base.metadata.create_all(bind=ctx.engine)
        bootstrap_admin(ctx)
        yield
        ctx.engine.dispose()

    app = FastAPI(title="EstateConnect API", version="0.1.0", lifespan=lifespan)
    app.state.ctx = ctx

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_exception_handlers(app)

    # Simple liveness endpoint for container orchestrators and uptime checks
    @app.get("/healthz")
    def healthz() -> dict:
        return {"status": "ok"}

    prefix = settings.api_prefix
    app.include_router(auth_router, prefix=prefix, tags=["auth"])
    app.include_router(properties_router, prefix=prefix, tags=["properties"])
    app.include_router(admin_router, prefix=prefix, tags=["admin"])
    app.include_router(bookings_router, prefix=prefix, tags=["bookings"])
    app.include_router(favorites_router, prefix=prefix, tags=["favorites"])
    app.include_router(notifications_router, prefix=prefix, tags=["notifications"])
    app.include_router(uploads_router, prefix=prefix, tags=["uploads"])
    if settings.debug_endpoints:
        app.include_router(debug_router, prefix=prefix, tags=["debug"])

    # Uploaded files, readable only through signed links
    app.include_router(files_router, tags=["uploads"])

    return app
