"""
FastAPI Application for the Returns & Refunds service.

Exposes the store settings, eligibility, returns and refunds endpoints.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from core.data import ConcurrencyConflict, EntityNotFound
from core.domain import DomainError
from use_cases.returns import ReturnsServices, StoreDefaults, build_services, router as returns_router
from use_cases.returns.presentation import ReturnsNotificationComposer

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Reduce Azure SDK logging verbosity
logging.getLogger("azure.cosmos").setLevel(logging.WARNING)
logging.getLogger("azure.core").setLevel(logging.WARNING)
logging.getLogger("azure.identity").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)

_composer = ReturnsNotificationComposer()


def _error_response(status_code: int, error: Exception) -> JSONResponse:
    code = getattr(error, "code", "error")
    message = getattr(error, "message", None) or str(error)
    content = {
        "error": code,
        "message": message,
        "notification": _composer.compose_error(error).to_dict(),
    }
    errors = getattr(error, "errors", None)
    if errors:
        content["errors"] = [{"field": e.field, "message": e.message, "code": e.code} for e in errors]
    reasons = getattr(error, "reasons", None)
    if reasons:
        content["reasons"] = reasons
    return JSONResponse(status_code=status_code, content=content)


def create_app(services: Optional[ReturnsServices] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        services: Prebuilt services (tests); built from settings at startup otherwise
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager - handles startup and shutdown."""
        logger.info("Starting Returns & Refunds service...")
        if getattr(app.state, "returns_services", None) is None:
            # Eager-build so the Cosmos client is ready before the first request
            app.state.returns_services = build_services(
                settings.store_backend,
                defaults=StoreDefaults.from_settings(settings),
            )
        logger.info("Returns services ready (backend: %s)", app.state.backend)
        yield
        logger.info("Shutting down...")

    app = FastAPI(
        title="Returns & Refunds",
        description="Eligibility, status workflows and refund settlement for store returns",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc"
    )
    app.state.returns_services = services
    app.state.backend = "injected" if services is not None else settings.store_backend

    # CORS middleware for local development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Restrict in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError):
        return _error_response(422, exc)

    @app.exception_handler(EntityNotFound)
    async def not_found_handler(request: Request, exc: EntityNotFound):
        return _error_response(404, exc)

    @app.exception_handler(ConcurrencyConflict)
    async def conflict_handler(request: Request, exc: ConcurrencyConflict):
        return _error_response(409, exc)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "internal_error", "message": "Erro interno do servidor"},
        )

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": "1.0.0",
            "use_case": "returns_refunds",
            "store_backend": app.state.backend,
        }

    app.include_router(returns_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=False,
        log_level=settings.log_level.lower()
    )
