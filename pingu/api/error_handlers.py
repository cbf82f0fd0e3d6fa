"""Error Handlers — global exception handlers for the PingU API.

Invariants:
    - PingUError → structured JSON with error code, message, severity
    - RequestValidationError → field-level error details
    - RateLimitExceeded → 429 RATE_LIMITED envelope
    - Exception (catch-all) → never leaks internal details

Design Decisions:
    - Three-layer handler: domain (PingUError), validation (Pydantic), catch-all (Exception)
    - Extracted from main.py to keep the entry point small
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from pingu.core.errors import ErrorSeverity, PingUError, RateLimitedError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_pingu_error_handler(app)
    _register_validation_error_handler(app)
    _register_rate_limit_handler(app)
    _register_generic_error_handler(app)


def _register_pingu_error_handler(app: FastAPI) -> None:
    """Register PingU domain/infrastructure error handler."""

    @app.exception_handler(PingUError)
    async def pingu_error_handler(request: Request, exc: PingUError):
        """Handle all PingU domain/infrastructure errors."""
        log = logger.error if exc.http_status >= 500 else logger.warning
        log(
            f"PingUError: {exc.message}",
            extra={"error_code": exc.code, "path": request.url.path},
        )
        return JSONResponse(
            status_code=exc.http_status, content=exc.to_response(),
        )


def _register_validation_error_handler(app: FastAPI) -> None:
    """Register Pydantic validation error handler."""

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ):
        """Handle Pydantic validation errors."""
        logger.warning(
            f"Validation error on {request.url.path}: {exc.errors()}",
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_build_validation_error_response(exc),
        )


def _register_rate_limit_handler(app: FastAPI) -> None:
    """Register the slowapi limit handler (sync: the limiter middleware calls it directly)."""

    @app.exception_handler(RateLimitExceeded)
    def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        """Render an exceeded request budget as 429 RATE_LIMITED."""
        error = RateLimitedError(str(exc.detail))
        logger.warning(
            f"Rate limit exceeded on {request.url.path}",
            extra={"error_code": error.code, "path": request.url.path},
        )
        return JSONResponse(
            status_code=error.http_status, content=error.to_response(),
        )


def _register_generic_error_handler(app: FastAPI) -> None:
    """Register catch-all error handler."""

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all — never leaks internal details."""
        logger.error(
            f"Unhandled exception on {request.url.path}: {exc}",
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                    "category": "internal",
                    "severity": ErrorSeverity.CRITICAL.value,
                },
            },
        )


def _build_validation_error_response(exc: RequestValidationError) -> dict:
    """Build structured validation error response."""
    return {
        "error": {
            "code": "VALIDATION_ERROR",
            "message": "Invalid request data",
            "category": "validation",
            "severity": ErrorSeverity.ERROR.value,
            "details": [
                {
                    "field": ".".join(str(loc) for loc in e["loc"]),
                    "message": e["msg"],
                    "type": e["type"],
                }
                for e in exc.errors()
            ],
        },
    }
