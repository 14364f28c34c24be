"""FastAPI application entrypoint."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import api_router
from .core.config import AppSettings, get_settings
from .core.db import create_engine
from .core.errors import ScribeError
from .core.logging import get_logger, setup_logging
from .models.schema import ComponentSchema, load_schema
from .services.engine import ComponentEngine
from .services.types import TypeMapper

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifecycle hooks for startup and shutdown."""

    settings: AppSettings = app.state.settings
    setup_logging(settings.log_level)

    engine = create_engine(settings)
    app.state.component_engine = ComponentEngine(engine, TypeMapper(settings.naive_timezone))

    logger.info(
        "application.startup",
        environment=settings.environment,
        version=settings.version,
        fields=[field.name for field in app.state.component_schema.properties],
    )

    try:
        yield
    finally:
        await engine.dispose()
        logger.info("application.shutdown")


async def handle_scribe_error(request: Request, exc: ScribeError) -> JSONResponse:
    """Translate engine errors into JSON responses."""

    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "request.failed",
        method=request.method,
        path=request.url.path,
        error=type(exc).__name__,
        message=exc.message,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": type(exc).__name__},
    )


def create_app(settings: AppSettings | None = None, schema: ComponentSchema | None = None) -> FastAPI:
    """Construct the FastAPI application instance.

    ``schema`` is the component schema this server serves; it defaults to the
    file named by ``SCRIBE_SCHEMA_PATH`` or the packaged default schema.
    """

    settings = settings or get_settings()

    application = FastAPI(
        title=settings.project_name,
        version=settings.version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    application.state.settings = settings
    application.state.component_schema = schema if schema is not None else load_schema(settings.schema_path)

    if settings.cors_allowed_origins:
        application.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_allowed_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    application.add_exception_handler(ScribeError, handle_scribe_error)

    @application.get("/", tags=["meta"], summary="Service metadata")
    async def root() -> dict[str, str]:
        """Service metadata root endpoint."""

        return {"service": settings.project_name, "version": settings.version}

    application.include_router(api_router)

    return application


app = create_app()
