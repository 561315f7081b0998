"""FastAPI application entry point and lifespan management.

Configures logging and CORS, registers the API routers and the JSON error
handlers, and manages the application lifespan (database table creation,
shared HTTP client shutdown).
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from mvp_studio.config import get_settings
from mvp_studio.database import create_tables
from mvp_studio.api.v1.router import router as v1_router
from mvp_studio.services.http_client_manager import close_all_clients
from mvp_studio.services.quota_reconciler import QuotaExceededError
from mvp_studio.services.wizard import WizardTransitionError

logger = logging.getLogger(__name__)


def _setup_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # Suppress noisy third-party HTTP loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Runs on startup: create the database directory and tables."""
    settings = get_settings()
    _setup_logging(settings.LOG_LEVEL)

    if settings.DATABASE_URL.startswith("sqlite:///"):
        db_path = settings.DATABASE_URL.replace("sqlite:///", "")
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    create_tables()
    logger.info("Database tables ready")
    if not settings.LLM_API_KEY:
        logger.warning("LLM_API_KEY is not set; generated stages will use fallback content")

    yield  # Application runs here

    await close_all_clients()
    logger.info("Shutting down")


def _error(status_code: int, message: str, headers: dict | None = None, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, **extra},
        headers=headers,
    )


def _summarize_validation(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors()[:3]:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        parts.append(f"{'.'.join(loc) or 'request'}: {err.get('msg', 'invalid')}")
    return "Invalid request: " + "; ".join(parts)


def register_exception_handlers(app: FastAPI) -> None:
    """Every error leaves the API as ``{"success": false, "error": ...}``."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return _error(400, _summarize_validation(exc))

    @app.exception_handler(QuotaExceededError)
    async def quota_exception_handler(request: Request, exc: QuotaExceededError):
        info = exc.status.to_info().model_dump(by_alias=True)
        return _error(429, exc.message, rateLimitInfo=info)

    @app.exception_handler(WizardTransitionError)
    async def wizard_exception_handler(request: Request, exc: WizardTransitionError):
        return _error(400, str(exc))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(500, "Internal server error")


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    @app.get("/health", tags=["Health"])
    async def health():
        return {
            "status": "healthy",
            "version": settings.APP_VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    app.include_router(v1_router)

    return app


app = create_app()
