"""Error Hierarchy — typed, categorized exceptions for all PingU failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable; infrastructure errors (500-level) are critical
    - ResourceNotFoundError and VersionConflictError are never merged: a missing row
      and a stale version are separate failure kinds
    - to_response() produces the REST envelope; no internal details leaked

Design Decisions:
    - Single hierarchy with PingUError base: FastAPI global handler catches all
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    INTERNAL = "internal"
    CONFLICT = "conflict"
    TIMEOUT = "timeout"
    RATE_LIMIT = "rate_limit"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    user_id: int | None = None
    partner_id: int | None = None
    operation: str | None = None
    debug_info: dict[str, Any] | None = None


class PingUError(Exception):
    """Base exception for all PingU errors."""

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

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "user_id": self.context.user_id,
                    "partner_id": self.context.partner_id,
                    "operation": self.context.operation,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class ResourceNotFoundError(PingUError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class PartnerNotFoundError(PingUError):
    """Operation needs a partner link, but none is set or the partner row is gone."""
    def __init__(self, user_id: int, context: ErrorContext | None = None):
        super().__init__(
            f"User '{user_id}' has no partner",
            "PARTNER_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.user_id = user_id


class VersionConflictError(PingUError):
    """Row changed since the caller read it; the write was not applied."""
    def __init__(
        self, user_id: int, expected_version: int, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"User '{user_id}' was modified concurrently "
            f"(expected version {expected_version})",
            "VERSION_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )
        self.user_id = user_id
        self.expected_version = expected_version


class DuplicateKeyError(PingUError):
    """Uniqueness constraint violated on username or email."""
    def __init__(self, field: str, context: ErrorContext | None = None):
        super().__init__(
            f"A user with that {field} already exists",
            "DUPLICATE_KEY", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )
        self.field = field


class AlreadyPartneredError(PingUError):
    """One side of a requested pairing is already linked to someone."""
    def __init__(self, user_id: int, context: ErrorContext | None = None):
        super().__init__(
            f"User '{user_id}' already has a partner",
            "ALREADY_PARTNERED", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 409,
        )
        self.user_id = user_id


class SelfPartnerError(PingUError):
    """A user tried to partner with themselves."""
    def __init__(self, user_id: int, context: ErrorContext | None = None):
        super().__init__(
            "Cannot partner with yourself",
            "SELF_PARTNER", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 400,
        )
        self.user_id = user_id


class StillPartneredError(PingUError):
    """Deletion refused while the account is linked to a partner."""
    def __init__(self, user_id: int, context: ErrorContext | None = None):
        super().__init__(
            f"User '{user_id}' must unpartner before deletion",
            "STILL_PARTNERED", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 409,
        )
        self.user_id = user_id


class RateLimitedError(PingUError):
    """Client exceeded the per-IP request budget."""
    def __init__(self, limit: str, context: ErrorContext | None = None):
        super().__init__(
            f"Too many requests: limit is {limit}",
            "RATE_LIMITED", ErrorCategory.RATE_LIMIT,
            ErrorSeverity.WARNING, context, 429,
        )
        self.limit = limit


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(PingUError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class StorageTimeoutError(DatabaseError):
    """A storage statement exceeded the per-query timeout."""
    def __init__(self, timeout_seconds: float, context: ErrorContext | None = None):
        super().__init__(
            f"no response within {timeout_seconds}s", "execute", context,
        )
        self.code = "STORAGE_TIMEOUT"
        self.category = ErrorCategory.TIMEOUT
        self.http_status = 504
        self.timeout_seconds = timeout_seconds
