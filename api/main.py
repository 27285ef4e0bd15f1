"""Bookstore API — FastAPI entry point.

Registers middleware, routers, exception handlers and lifecycle hooks.
``create_app`` builds an app for a given Settings; the module-level ``app``
is what ``uvicorn api.main:app`` serves.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.auth import router as auth_router
from api.middleware import RequestContextMiddleware, get_request_id
from core.config import Settings
from core.database import Database, get_database
from core.errors import AppError
from core.logging_setup import configure_logging
from verticals.bookstore.models.schemas import fail, ok
from verticals.bookstore.router import router as catalog_router
from verticals.bookstore.transactions import router as transactions_router

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup/shutdown hooks."""
    settings: Settings = app.state.settings
    database = getattr(app.state, "database", None)
    if database is None:
        database = Database(settings)
        app.state.database = database
    if settings.create_tables:
        await database.create_all()

    logger.info("Bookstore API started")
    yield
    await database.dispose()
    logger.info("Bookstore API shut down")


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s request_id=%s", exc.message, request.url.path, get_request_id())
    return JSONResponse(status_code=exc.status_code, content=fail(exc.message))


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=fail(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Schema failures are reported as 400 with the first offending field."""
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        location = ".".join(
            str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")
        )
        detail = first.get("msg", "invalid value")
        message = f"Invalid request: {location}: {detail}" if location else f"Invalid request: {detail}"
    return JSONResponse(status_code=400, content=fail(message))


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------

def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Bookstore API",
        description="Bookstore catalog, orders and sales statistics",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware)

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    # -----------------------------------------------------------------------
    # Routers
    # -----------------------------------------------------------------------

    app.include_router(auth_router, tags=["Auth"])
    app.include_router(catalog_router, tags=["Catalog"])
    app.include_router(transactions_router, tags=["Transactions"])

    # -----------------------------------------------------------------------
    # Health & root
    # -----------------------------------------------------------------------

    @app.get("/health-check", tags=["Health"])
    async def health(database: Database = Depends(get_database)):
        reachable = await database.ping()
        return ok(
            "Service healthy",
            {
                "date": datetime.now(timezone.utc).isoformat(),
                "database": "connected" if reachable else "unreachable",
                "version": VERSION,
            },
        )

    @app.get("/", tags=["Health"])
    async def root():
        return ok("Bookstore API", {"version": VERSION, "docs": "/docs"})

    return app


app = create_app()
