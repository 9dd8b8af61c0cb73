"""Error Hierarchy - typed, categorized exceptions for all bookstore failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Business-rule errors (4xx) are never retried; infrastructure errors (5xx) are critical
    - to_response() produces the REST envelope used by the global error handler
    - UnauthorizedError carries one fixed message: it never reveals whether a token existed

Design Decisions:
    - Single hierarchy with BookstoreError base: FastAPI global handler catches all
    - ErrorContext as dataclass: request-scoped identifiers for observability
      without coupling to the logging framework
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
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
    AUTHENTICATION = "authentication"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    INTERNAL = "internal"
    CONFLICT = "conflict"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    user_id: str | None = None
    item_id: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class BookstoreError(Exception):
    """Base exception for all bookstore errors."""

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
                    "item_id": self.context.item_id,
                    "retry_after_ms": self.context.retry_after_ms,
                },
            }
        }


# ─── Authentication Errors (401) ────────────────────────────────

class UnauthorizedError(BookstoreError):
    """Missing, empty, or unknown access token."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Unauthorized", "UNAUTHORIZED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


class InvalidCredentialsError(BookstoreError):
    """Unknown username or wrong password (indistinguishable on purpose)."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Invalid username or password", "INVALID_CREDENTIALS",
            ErrorCategory.AUTHENTICATION, ErrorSeverity.WARNING, context, 401,
        )


# ─── Business Rule Errors (400-level) ───────────────────────────

class ItemNotFoundError(BookstoreError):
    """Requested catalog item does not exist."""
    def __init__(self, item_id: str, context: ErrorContext | None = None):
        super().__init__(
            f"Book '{item_id}' not found",
            "ITEM_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.item_id = item_id


class AlreadyOwnedError(BookstoreError):
    """User already owns the item being purchased."""
    def __init__(self, item_id: str, context: ErrorContext | None = None):
        super().__init__(
            f"Book '{item_id}' is already owned",
            "ALREADY_OWNED", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )
        self.item_id = item_id


class InsufficientFundsError(BookstoreError):
    """Balance is lower than the item price."""
    def __init__(
        self, balance: Decimal, price: Decimal, context: ErrorContext | None = None,
    ):
        super().__init__(
            "Insufficient funds",
            "INSUFFICIENT_FUNDS", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 402,
        )
        self.balance = balance
        self.price = price


class NotOwnedError(BookstoreError):
    """Return requested for an item the user does not own."""
    def __init__(self, item_id: str, context: ErrorContext | None = None):
        super().__init__(
            f"Book '{item_id}' is not owned",
            "NOT_OWNED", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.item_id = item_id


class UsernameTakenError(BookstoreError):
    """Registration attempted with a username already in use."""
    def __init__(self, username: str, context: ErrorContext | None = None):
        super().__init__(
            "User already exists",
            "USERNAME_TAKEN", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )
        self.username = username


class InvalidAmountError(BookstoreError):
    """Deposit amount is not a positive number of cents within limits."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "INVALID_AMOUNT", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(BookstoreError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class TransactionConflictError(BookstoreError):
    """Serialization conflict persisted after all retries; nothing was committed."""
    def __init__(
        self,
        attempts: int,
        retry_after_ms: int | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.retry_after_ms = retry_after_ms
        super().__init__(
            f"Transaction conflict persisted after {attempts} attempt(s); retry later",
            "TRANSACTION_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, ctx, 503,
        )
        self.attempts = attempts
