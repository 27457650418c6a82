"""Main FastAPI application for the email ingestion service."""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Dict, Any, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from . import __version__
from .config.settings import Settings, MonitoringSettings, get_settings
from .database.engine import create_database_engine, create_session_factory, close_database_engine
from .database.store import SqlEmailStore
from .exceptions import EmailInProgressError, EmailNotFoundError, IngestionError, ValidationError
from .ingestion import IngestionPipeline
from .middleware.logging import LoggingMiddleware
from .routers import emails, health
from .services.embeddings import create_embedding_provider

logger = structlog.get_logger(__name__)


def configure_logging(monitoring: MonitoringSettings) -> None:
    """Configure structured logging."""
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=monitoring.level)

    renderer = (
        structlog.dev.ConsoleRenderer()
        if monitoring.format == "console"
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def build_pipeline(settings: Settings, store, embedder) -> IngestionPipeline:
    """Create the ingestion pipeline from settings and its collaborators."""
    return IngestionPipeline(
        store=store,
        embedder=embedder,
        chunk_size=settings.ingestion.chunk_size,
        embedding_concurrency=settings.ingestion.embedding_concurrency,
        store_timeout=settings.ingestion.store_timeout_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = app.state.settings
    logger.info("Starting mailstore", environment=settings.environment, log_level=settings.monitoring.level)

    # Collaborators injected before startup (tests, embedding hosts) are kept
    owned = getattr(app.state, "pipeline", None) is None
    engine = None
    embedder = None
    if owned:
        engine = create_database_engine(settings.database)
        embedder = create_embedding_provider(settings.embedding)
        store = SqlEmailStore(create_session_factory(engine))
        app.state.engine = engine
        app.state.store = store
        app.state.pipeline = build_pipeline(settings, store, embedder)

    yield

    logger.info("Shutting down mailstore")
    if owned:
        await embedder.close()
        await close_database_engine(engine)
        app.state.pipeline = None


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings.monitoring)

    app = FastAPI(
        title="mailstore",
        description="Stores emails with per-section vector embeddings",
        version=__version__,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url="/redoc" if settings.environment != "production" else None,
        lifespan=lifespan
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)

    @app.exception_handler(EmailNotFoundError)
    async def email_not_found_handler(request: Request, exc: EmailNotFoundError):
        """Handle unknown email ids."""
        logger.info("Email not found", email_id=exc.email_id, path=request.url.path)
        return JSONResponse(status_code=404, content=exc.to_dict())

    @app.exception_handler(EmailInProgressError)
    async def email_in_progress_handler(request: Request, exc: EmailInProgressError):
        """Handle resume requests for emails still being ingested."""
        logger.warning("Email still being ingested", email_id=exc.email_id, path=request.url.path)
        return JSONResponse(status_code=409, content=exc.to_dict())

    @app.exception_handler(IngestionError)
    async def ingestion_error_handler(request: Request, exc: IngestionError):
        """Handle store and embedding failures raised outside the pipeline."""
        logger.error(
            "Ingestion error",
            error_type=exc.error_type,
            email_id=exc.email_id,
            error=exc.message,
            path=request.url.path,
        )
        status_code = 400 if isinstance(exc, ValidationError) else 500
        return JSONResponse(status_code=status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler."""
        logger.error("Unhandled exception",
                     exc_info=exc,
                     path=request.url.path,
                     method=request.method)
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to store email"}
        )

    app.include_router(health.router, prefix="/health", tags=["health"])
    app.include_router(emails.router, prefix="/api", tags=["emails"])

    @app.get("/")
    async def root() -> Dict[str, Any]:
        """Root endpoint."""
        return {
            "message": "mailstore",
            "version": __version__,
            "status": "running"
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "mailstore.main:app",
        host=get_settings().host,
        port=get_settings().port,
        log_level="info"
    )
