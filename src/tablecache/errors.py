"""
Structured error types for tablecache.

Provides a typed hierarchy of errors with metadata for retry decisions,
error categorization and logging. Every error raised by the cache engine,
the row stores and the configuration layer extends :class:`CacheError`.

Manifesto:
    - **Typed Error Hierarchy:** Callers catch what they can handle
    - **Explicit Retry Semantics:** Each error knows if it's retryable
    - **Rich Context:** Errors carry key/table metadata for logging
    - **Error Chaining:** Driver exceptions are preserved as ``cause``

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                        CacheError                             │
        │  (category, retryable, context, cause)                        │
        ├──────────────────────────────────────────────────────────────┤
        │                                                               │
        │  ValidationError       ConfigurationError    DatabaseError    │
        │  (VALIDATION)          (CONFIG)              (DATABASE)       │
        │       │                     │                     │           │
        │  InvalidKeyError       MissingConfigError    QueryError       │
        │  InvalidOptionsError   InvalidConfigError                     │
        │  InvalidValueError                                            │
        │                                                               │
        │  StoreUnavailableError      SweepFailureError                 │
        │  (DATABASE, retryable)      (SWEEP, logged only)              │
        └──────────────────────────────────────────────────────────────┘

Propagation:
    Foreground failures (validation, store unavailability, query errors)
    are raised to the immediate caller. Configuration errors are raised at
    construction time. ``SweepFailureError`` is built for logging by the
    sweeper and is never raised to a foreground caller.

Examples:
    >>> error = StoreUnavailableError("connection refused")
    >>> error.retryable
    True
    >>> error.with_context(table="cache_entries").context.table
    'cache_entries'

Tags:
    error-handling, exception-hierarchy, retry-logic, tablecache

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    # Infrastructure errors
    DATABASE = "DATABASE"         # Connection, pool, query failures
    SWEEP = "SWEEP"               # Background expired-row reclamation

    # Caller errors
    VALIDATION = "VALIDATION"     # Bad key, value or expiration options

    # Configuration errors (never retryable)
    CONFIG = "CONFIG"             # Missing target, bad interval

    # Internal errors
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        key: Cache key involved in the failing operation
        operation: Engine operation name (get, set, refresh, remove, sweep)
        table: Fully qualified cache table
        store: Row store kind (sqlite, postgresql, memory)
        metadata: Additional key-value pairs
    """

    key: str | None = None
    operation: str | None = None
    table: str | None = None
    store: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["key", "operation", "table", "store"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class CacheError(Exception):
    """
    Base exception for all tablecache errors.

    Subclasses set ``default_category`` and ``default_retryable`` to give
    sensible defaults for their domain.

    Examples:
        >>> error = CacheError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.to_dict()["retryable"]
        False
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> CacheError:
        """
        Add context to this error (fluent API).

        Usage:
            raise StoreUnavailableError("Failed").with_context(
                key="session:42",
                operation="get",
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(CacheError):
    """
    Caller supplied an invalid argument.

    Never retryable - the call must be fixed.
    """

    default_category = ErrorCategory.VALIDATION
    default_retryable = False

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        if self.value is not None:
            result["value"] = repr(self.value)
        return result


class InvalidKeyError(ValidationError):
    """Key is missing, empty, not a string or too long."""

    def __init__(self, message: str = "Cache key must be a non-empty string", **kwargs: Any):
        super().__init__(message, field="key", **kwargs)


class InvalidOptionsError(ValidationError):
    """Expiration options are malformed or contradictory."""

    pass


class InvalidValueError(ValidationError):
    """Cached value is not a bytes-like payload."""

    def __init__(self, message: str = "Cache value must be bytes-like", **kwargs: Any):
        super().__init__(message, field="value", **kwargs)


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigurationError(CacheError):
    """
    Configuration error raised at construction time.

    Never retryable - configuration must be fixed.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class MissingConfigError(ConfigurationError):
    """Required configuration is missing."""

    def __init__(self, key: str, message: str | None = None):
        self.key = key
        super().__init__(message or f"Missing required configuration: {key}")


class InvalidConfigError(ConfigurationError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}")


# =============================================================================
# STORE ERRORS
# =============================================================================


class StoreUnavailableError(CacheError):
    """Row store connection or transport failure.

    Propagated to the caller of the foreground operation.
    """

    default_category = ErrorCategory.DATABASE
    default_retryable = True


class DatabaseError(CacheError):
    """Database statement error that is not a transport failure."""

    default_category = ErrorCategory.DATABASE
    default_retryable = False


class QueryError(DatabaseError):
    """SQL statement was rejected by the database."""

    pass


class SweepFailureError(CacheError):
    """Background deletion of expired rows failed.

    Logged by the sweeper, never raised to foreground callers.
    """

    default_category = ErrorCategory.SWEEP
    default_retryable = True


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, CacheError):
        return error.retryable
    return isinstance(error, (ConnectionError, TimeoutError))


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, CacheError):
        return error.category
    if isinstance(error, (ConnectionError, OSError)):
        return ErrorCategory.DATABASE
    if isinstance(error, (ValueError, TypeError)):
        return ErrorCategory.VALIDATION
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "CacheError",
    # Validation
    "ValidationError",
    "InvalidKeyError",
    "InvalidOptionsError",
    "InvalidValueError",
    # Config
    "ConfigurationError",
    "MissingConfigError",
    "InvalidConfigError",
    # Store
    "StoreUnavailableError",
    "DatabaseError",
    "QueryError",
    "SweepFailureError",
    # Utilities
    "is_retryable",
    "categorize_error",
]
