from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from alembic import command
from alembic.config import Config
from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import settings
from .db import SessionLocal, transaction
from .errors import (
    AlreadyExists,
    AuthenticationRequired,
    FolioError,
    NotFound,
    StorageError,
    Unauthorized,
    ValidationError,
)
from .routers import auth, posts, system, tags, users
from .services import tags as tag_registry
from .services import users as user_service

load_dotenv()

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

_STARTUP_COMPLETE = False

# Most specific first: AuthenticationRequired is an Unauthorized.
_ERROR_STATUS: list[tuple[type[FolioError], int]] = [
    (NotFound, status.HTTP_404_NOT_FOUND),
    (AlreadyExists, status.HTTP_409_CONFLICT),
    (AuthenticationRequired, status.HTTP_401_UNAUTHORIZED),
    (Unauthorized, status.HTTP_403_FORBIDDEN),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (StorageError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def _alembic_config() -> Config:
    base_dir = Path(__file__).resolve().parent.parent
    cfg = Config(str(base_dir / "alembic.ini"))
    cfg.set_main_option("script_location", str(base_dir / "alembic"))
    return cfg


def run_migrations() -> None:
    logger.info("Running Alembic migrations...")
    try:
        command.upgrade(_alembic_config(), "head")
    except Exception as e:
        logger.error(f"run_migrations: Error occurred: {e}", exc_info=True)
        raise
    logger.info("run_migrations: Completed successfully.")


def run_startup_tasks() -> None:
    """Migrate the schema, bootstrap the admin account and clear leftover orphan tags."""
    global _STARTUP_COMPLETE
    if _STARTUP_COMPLETE:
        logger.info("run_startup_tasks: Already completed, skipping.")
        return

    run_migrations()
    db = SessionLocal()
    try:
        user_service.ensure_admin(db, settings.ADMIN_USERNAME, settings.ADMIN_PASSWORD)
        # Edits sweep best-effort; anything a failed sweep left behind goes here.
        with transaction(db, "startup orphan sweep"):
            tag_registry.sweep_orphans(db)
    finally:
        db.close()

    _STARTUP_COMPLETE = True
    logger.info("Startup tasks completed.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application...")
    run_startup_tasks()
    logger.info("Folio API server ready")
    yield
    logger.info("Shutting down application...")


app = FastAPI(
    title="Folio API",
    version="1.0.0",
    description="Blog posts with images, tags, comments and chronological navigation",
    lifespan=lifespan,
)

if settings.CORS_ORIGINS == ["*"]:
    logger.warning(
        "CORS is configured to allow all origins. "
        "This is insecure for production. Set CORS_ORIGINS to specific domains."
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With"],
    max_age=600,
)


@app.exception_handler(FolioError)
async def handle_domain_error(request: Request, exc: FolioError) -> JSONResponse:
    status_code = next(
        (code for error_type, code in _ERROR_STATUS if isinstance(exc, error_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        detail = "Internal storage error"
    else:
        detail = str(exc)
    return JSONResponse(status_code=status_code, content={"detail": detail})


app.include_router(system.router)
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(posts.router)
app.include_router(tags.router)
