"""
FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from advdesk import __version__
from advdesk.config import get_settings
from advdesk.errors import AdvdeskError, InternalError, InvalidArgument, ResourceExhausted
from advdesk.logging_setup import configure_logging

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json)
    logger.info("application_starting")
    logger.info(
        "configuration_loaded",
        environment=settings.environment,
        debug=settings.debug,
        storage_backend=settings.storage_backend,
    )

    yield

    if settings.storage_backend == "redis":
        from advdesk.storage.documents import get_document_store

        await get_document_store().close()
    logger.info("application_shutting_down")


def error_response(error: AdvdeskError) -> JSONResponse:
    """JSON envelope for a typed error."""
    headers = None
    if isinstance(error, ResourceExhausted):
        headers = {"Retry-After": str(error.retry_after)}
    return JSONResponse(
        status_code=error.http_status,
        content={"error": error.to_dict()},
        headers=headers,
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="ADVDESK API",
        description="AI drafting, judge review and client intake for law offices",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(AdvdeskError)
    async def advdesk_error_handler(request: Request, exc: AdvdeskError) -> JSONResponse:
        logger.info(
            "request_failed",
            path=request.url.path,
            method=request.method,
            code=exc.code,
            status=exc.http_status,
        )
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        logger.info("request_invalid", path=request.url.path, errors=exc.errors())
        return error_response(InvalidArgument("Dados da requisição inválidos."))

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
        )
        return error_response(InternalError())

    # Include routers
    from advdesk.api.routes import chat, files, knowledge, petitions, reviews, users
    from advdesk.api.routes import settings as tenant_settings

    app.include_router(petitions.router, prefix="/api/v1/petitions", tags=["petitions"])
    app.include_router(reviews.router, prefix="/api/v1/reviews", tags=["reviews"])
    app.include_router(chat.router, prefix="/api/v1/chat/sessions", tags=["chat"])
    app.include_router(users.router, prefix="/api/v1/users", tags=["users"])
    app.include_router(knowledge.router, prefix="/api/v1/knowledge", tags=["knowledge"])
    app.include_router(tenant_settings.router, prefix="/api/v1/settings", tags=["settings"])
    app.include_router(files.router, prefix="/api/v1", tags=["files"])

    # Health check
    @app.get("/health")
    async def health_check() -> dict:
        """Health check endpoint."""
        from advdesk.services.llm_service import get_llm_service
        from advdesk.services.multimodal_service import get_multimodal_service

        services = {
            "llm": get_llm_service().health_check(),
            "multimodal": get_multimodal_service().health_check(),
        }
        if settings.storage_backend == "redis":
            from advdesk.storage.documents import get_document_store

            services["redis"] = await get_document_store().health_check()

        return {"status": "healthy", "services": services}

    # Root endpoint
    @app.get("/")
    async def root() -> dict:
        """Root endpoint."""
        return {
            "name": "ADVDESK API",
            "version": __version__,
            "docs": "/docs",
        }

    return app


# Create default app instance
app = create_app()
