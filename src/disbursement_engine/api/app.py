"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from disbursement_engine.api.routes import health_router, salary_router, webhooks_router
from disbursement_engine.config import get_settings
from disbursement_engine.disbursement import Disbursement
from disbursement_engine.exceptions import (
    AlreadyPaid,
    DisbursementError,
    GatewayError,
    NotFound,
    ValidationError,
)

logger = logging.getLogger(__name__)

_ERROR_STATUS: dict[type[DisbursementError], tuple[int, str]] = {
    NotFound: (status.HTTP_404_NOT_FOUND, "NOT_FOUND"),
    AlreadyPaid: (status.HTTP_409_CONFLICT, "ALREADY_PAID"),
    GatewayError: (status.HTTP_502_BAD_GATEWAY, "GATEWAY_ERROR"),
    ValidationError: (422, "VALIDATION_ERROR"),
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    owned = getattr(app.state, "disbursement", None) is None
    if owned:
        app.state.disbursement = Disbursement.from_settings(get_settings())
    yield
    # Shutdown
    if owned:
        app.state.disbursement.close()
        app.state.disbursement = None


def create_app(system: Disbursement | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        system: Pre-built collaborators. When omitted, one is built from
            the environment at startup and closed at shutdown.
    """
    app = FastAPI(
        title="Salary Disbursement API",
        description="Monthly salary payouts through Paystack",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.disbursement = system

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(DisbursementError)
    async def disbursement_exception_handler(
        request: Request, exc: DisbursementError
    ) -> JSONResponse:
        """Map domain errors onto HTTP status codes."""
        for error_type, (http_status, code) in _ERROR_STATUS.items():
            if isinstance(exc, error_type):
                break
        else:
            http_status, code = status.HTTP_500_INTERNAL_SERVER_ERROR, "DISBURSEMENT_ERROR"

        if http_status >= 500:
            logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc)
        return JSONResponse(
            status_code=http_status,
            content={"detail": str(exc), "code": code},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(salary_router, prefix="/api/v1")
    app.include_router(webhooks_router)

    return app


# Default app instance for uvicorn
app = create_app()
