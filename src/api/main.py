"""FastAPI application entry point."""
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routers import agent, bookmarks, categories, checkout, collections, health, tags
from core.config import get_settings
from db.session import create_schema, dispose_engine, get_engine
from services.exceptions import (
    DanglingReferenceError,
    InvalidInputError,
    NotFoundError,
    PersistenceFailedError,
    UpstreamUnavailableError,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan - startup and shutdown."""
    app_settings = get_settings()

    # Startup: create tables when running against a database
    if app_settings.use_sql_store:
        await create_schema(get_engine())
        logger.info("Using SQL entity store")
    else:
        logger.info("DATABASE_URL not set, using in-memory entity store")

    yield

    # Shutdown: close pooled connections
    await dispose_engine()


app_settings = get_settings()

logging.basicConfig(
    level=app_settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Bookmarks API",
    description="Bookmark management with AI summaries, tags, collections and categories.",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(_request: Request, exc: InvalidInputError) -> JSONResponse:
    """Malformed caller input."""
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": exc.message})


@app.exception_handler(NotFoundError)
async def not_found_handler(_request: Request, exc: NotFoundError) -> JSONResponse:
    """Missing entity, or one owned by another user."""
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": exc.message})


@app.exception_handler(DanglingReferenceError)
async def dangling_reference_handler(
    _request: Request, exc: DanglingReferenceError,
) -> JSONResponse:
    """Unresolvable relationship under the strict policy."""
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": exc.message})


@app.exception_handler(UpstreamUnavailableError)
async def upstream_unavailable_handler(
    _request: Request, exc: UpstreamUnavailableError,
) -> JSONResponse:
    """
    External collaborator failure.

    Fatal collaborators (checkout) are reported as an opaque internal error;
    others as a bad gateway carrying only the service name and status code.
    """
    if exc.fatal:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal Error"},
        )
    return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content={"detail": exc.message})


@app.exception_handler(PersistenceFailedError)
async def persistence_failed_handler(
    _request: Request, exc: PersistenceFailedError,
) -> JSONResponse:
    """Store write or read failure."""
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": exc.message},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[bookmarks.DIAGNOSTICS_HEADER],
)

app.include_router(health.router)
app.include_router(bookmarks.router)
app.include_router(tags.router)
app.include_router(collections.router)
app.include_router(categories.router)
app.include_router(agent.router)
app.include_router(checkout.router)
