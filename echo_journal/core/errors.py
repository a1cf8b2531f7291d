"""Error Hierarchy - typed, categorized exceptions for all Echo Journal failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Every error carries a user-facing message; internal details stay in `message`
    - to_response() produces REST envelope; to_sse_event() produces SSE envelope
    - ApiRateLimitExceeded never leaves ResilientGenerativeClient; the retry loop consumes it

Design Decisions:
    - Single hierarchy with JournalError base: FastAPI global handler catches all
    - ApiError groups the generative-service failures so callers can catch one type
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    AUTHENTICATION = "authentication"
    SUBSCRIPTION = "subscription"
    PERSISTENCE = "persistence"
    EXTERNAL_API = "external_api"
    CONFLICT = "conflict"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    user_id: str | None = None
    entry_id: str | None = None
    attempt: int | None = None
    status_code: int | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None


class JournalError(Exception):
    """Base exception for all Echo Journal errors."""

    default_user_message = "Something went wrong. Please try again."

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    @property
    def user_message(self) -> str:
        return self.context.user_message or self.default_user_message

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.user_message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "user_id": self.context.user_id,
                    "entry_id": self.context.entry_id,
                    "attempt": self.context.attempt,
                    "status_code": self.context.status_code,
                },
            }
        }

    def to_sse_event(self) -> dict:
        """Convert to SSE error event."""
        return {
            "type": "error",
            "data": {
                "code": self.code,
                "message": self.user_message,
                "severity": self.severity.value,
                "recoverable": self.severity in (
                    ErrorSeverity.INFO, ErrorSeverity.WARNING,
                ),
            },
        }


# ─── Startup / Identity ─────────────────────────────────────────

class ConfigurationError(JournalError):
    """Startup configuration missing or invalid. Fatal, never retried."""

    default_user_message = "The journal is not configured. Please check the environment setup."

    def __init__(self, missing: list[str], context: ErrorContext | None = None):
        super().__init__(
            f"Missing or invalid configuration: {', '.join(missing)}",
            "CONFIGURATION_ERROR", ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL, context, 500,
        )
        self.missing = missing


class AuthenticationError(JournalError):
    """Identity acquisition failed."""

    default_user_message = "Authentication failed. Please try again."

    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "AUTHENTICATION_ERROR", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.ERROR, context, 401,
        )


# ─── Store ──────────────────────────────────────────────────────

class SubscriptionError(JournalError):
    """Live-sync notification failed. Non-fatal: the mirror keeps its last snapshot."""

    default_user_message = "Could not retrieve journal entries."

    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "SUBSCRIPTION_ERROR", ErrorCategory.SUBSCRIPTION,
            ErrorSeverity.WARNING, context, 503,
        )


class PersistenceError(JournalError):
    """Store write (or store query) failed."""

    default_user_message = "Failed to save your entry. Please try again."

    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Store {operation} failed: {message}",
            "PERSISTENCE_ERROR", ErrorCategory.PERSISTENCE,
            ErrorSeverity.ERROR, context, 503,
        )
        self.operation = operation


class SaveInProgressError(JournalError):
    """A save is already pending on this workflow."""

    default_user_message = "Your previous entry is still being saved."

    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "A save is already in progress",
            "SAVE_IN_PROGRESS", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )


# ─── Generative Service ─────────────────────────────────────────

class ApiError(JournalError):
    """Generative service call failed."""

    default_user_message = "Your entry was saved, but reflective prompts could not be generated."

    def __init__(
        self,
        message: str,
        api_error_type: str,
        code: str,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 502,
    ):
        super().__init__(
            f"Generative API error ({api_error_type}): {message}",
            code, ErrorCategory.EXTERNAL_API, severity, context, http_status,
        )
        self.api_error_type = api_error_type


class ApiRateLimitExceeded(ApiError):
    """Service answered 429 for one attempt."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Rate limit exceeded", "rate_limit", "API_RATE_LIMITED",
            ErrorSeverity.WARNING, context, 429,
        )


class ApiRetriesExhausted(ApiError):
    """Every allowed attempt was rate limited."""
    def __init__(self, attempts: int, context: ErrorContext | None = None):
        super().__init__(
            f"API call failed after {attempts} attempts",
            "retries_exhausted", "API_RETRIES_EXHAUSTED",
            ErrorSeverity.ERROR, context, 503,
        )
        self.attempts = attempts


class ApiRequestError(ApiError):
    """Non-retriable service failure. status is None when no response arrived."""
    def __init__(self, status: int | None, context: ErrorContext | None = None):
        detail = (
            f"API call failed with status: {status}"
            if status is not None else "API call failed before a response arrived"
        )
        super().__init__(
            detail, "request_error", "API_REQUEST_ERROR",
            ErrorSeverity.ERROR, context, 502,
        )
        self.status = status


class ApiResponseParseError(ApiError):
    """Envelope or payload did not match the expected schema."""
    def __init__(self, reason: str, context: ErrorContext | None = None):
        super().__init__(
            reason, "parse_error", "API_RESPONSE_PARSE_ERROR",
            ErrorSeverity.ERROR, context, 502,
        )
        self.reason = reason
