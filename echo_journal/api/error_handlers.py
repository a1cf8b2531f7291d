"""Error Handlers - global exception handlers for the Echo Journal API.

Invariants:
    - JournalError -> its own http_status and to_response() envelope
    - JournalError is logged at the level of its severity: a save already in flight
      is a WARNING, a failed augmentation is an ERROR, bad configuration is CRITICAL
    - Log records carry the user_id / entry_id from the error context, so a failed
      reflection can be traced to the entry that was still persisted
    - RequestValidationError -> 400 with field-level error details
    - Exception (catch-all) -> never leaks internal details
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from echo_journal.core.errors import ErrorSeverity, JournalError

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    ErrorSeverity.INFO: logging.INFO,
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_journal_error_handler(app)
    _register_validation_error_handler(app)
    _register_generic_error_handler(app)


def _log_journal_error(request: Request, exc: JournalError) -> None:
    """Log at the error's severity, with the entry it concerns when known."""
    logger.log(
        _LOG_LEVELS.get(exc.severity, logging.ERROR),
        f"{exc.category.value} error on {request.method} {request.url.path}: {exc.message}",
        extra={
            "error_code": exc.code,
            "user_id": exc.context.user_id,
            "entry_id": exc.context.entry_id,
            "status_code": exc.http_status,
        },
    )


def _register_journal_error_handler(app: FastAPI) -> None:
    """Register the journal domain/infrastructure error handler."""

    @app.exception_handler(JournalError)
    async def journal_error_handler(request: Request, exc: JournalError):
        """Auth, persistence, save-conflict and generative-API failures."""
        _log_journal_error(request, exc)
        return JSONResponse(
            status_code=exc.http_status, content=exc.to_response(),
        )


def _register_validation_error_handler(app: FastAPI) -> None:
    """Register Pydantic validation error handler."""

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ):
        """Reject malformed entry and sign-in bodies."""
        logger.warning(
            f"Validation error on {request.url.path}: {exc.errors()}",
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_build_validation_error_response(exc),
        )


def _register_generic_error_handler(app: FastAPI) -> None:
    """Register catch-all error handler."""

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all - never leaks internal details."""
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
    """Build field-level validation error response."""
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
