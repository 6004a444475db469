"""AniTick Error Handling Module

This module defines the error handling system for AniTick, providing
structured error classes with context information and user-friendly messages.

The error hierarchy follows these principles:
- One Source of Truth: All error codes are defined in ErrorCode enum
- Structured Context: ErrorContext provides additional information
- Proper Exception Chaining: Original exceptions are preserved

Catalog, storage and notification failures map onto four concrete types:
NetworkError, RateLimitSignal, NotFoundError and StorageError.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Union

# Type alias for primitive context values (str, int, float, bool only)
PrimitiveContextValue = Union[str, int, float, bool]


class ErrorCode(str, Enum):
    """Error codes for the AniTick application.

    This enum serves as the single source of truth for all error codes
    used throughout the application.
    """

    # Network and API Errors
    NETWORK_ERROR = "NETWORK_ERROR"
    API_RATE_LIMIT = "API_RATE_LIMIT"
    API_REQUEST_FAILED = "API_REQUEST_FAILED"
    API_TIMEOUT = "API_TIMEOUT"
    API_SERVER_ERROR = "API_SERVER_ERROR"
    API_INVALID_RESPONSE = "API_INVALID_RESPONSE"
    MEDIA_NOT_FOUND = "MEDIA_NOT_FOUND"

    # Storage Errors
    STORAGE_READ_FAILED = "STORAGE_READ_FAILED"
    STORAGE_WRITE_FAILED = "STORAGE_WRITE_FAILED"
    STORAGE_CORRUPTED = "STORAGE_CORRUPTED"

    # Notification Errors
    NOTIFICATION_DISPLAY_FAILED = "NOTIFICATION_DISPLAY_FAILED"

    # Validation Errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_METADATA = "INVALID_METADATA"

    # Configuration Errors
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    CONFIG_MISSING = "CONFIG_MISSING"

    # Application Errors
    APPLICATION_ERROR = "APPLICATION_ERROR"
    UNKNOWN_COMMAND = "UNKNOWN_COMMAND"

    # CLI Errors
    CLI_COMMAND_FAILED = "CLI_COMMAND_FAILED"
    CLI_UNEXPECTED_ERROR = "CLI_UNEXPECTED_ERROR"


def _coerce_primitives(value: Any | None) -> dict[str, PrimitiveContextValue] | None:
    """Coerce additional_data values to primitives.

    Converts Path, Enum, Decimal to primitive types.

    Args:
        value: Input dictionary or None

    Returns:
        Dictionary with primitive values only, or None

    Raises:
        TypeError: If value is not a dict or contains unconvertible types
    """
    if value is None:
        return None

    if not isinstance(value, dict):
        error_msg = f"additional_data must be dict, got {type(value).__name__}"
        raise TypeError(error_msg)

    coerced: dict[str, PrimitiveContextValue] = {}
    for key, val in value.items():
        if isinstance(val, (str, int, float, bool)):
            coerced[key] = val
        elif isinstance(val, Path):
            coerced[key] = str(val)
        elif isinstance(val, Enum):
            coerced[key] = val.value
        elif isinstance(val, Decimal):
            coerced[key] = float(val)
        else:
            error_msg = (
                f"Cannot coerce {type(val).__name__} to primitive type. "
                f"Only str, int, float, bool, Path, Enum, Decimal are allowed."
            )
            raise TypeError(error_msg)

    return coerced


@dataclass(frozen=True)
class ErrorContext:
    """Context information for errors.

    Only primitive types (str, int, float, bool) are allowed in
    additional_data to ensure safe serialization in structured logs.

    Attributes:
        operation: Optional operation name that caused the error
        additional_data: Optional dict with primitive values only
    """

    operation: str | None = None
    additional_data: dict[str, PrimitiveContextValue] | None = None

    def __post_init__(self) -> None:
        """Post-initialization coercion."""
        if self.additional_data is not None:
            coerced = _coerce_primitives(self.additional_data)
            object.__setattr__(self, "additional_data", coerced)

    def safe_dict(self) -> dict[str, Any]:
        """Export context as a dict that always carries additional_data."""
        data: dict[str, Any] = {}
        if self.operation is not None:
            data["operation"] = self.operation
        data["additional_data"] = dict(self.additional_data or {})
        return data


class AniTickError(Exception):
    """Base exception class for all AniTick errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """Initialize AniTickError.

        Args:
            code: Error code from ErrorCode enum
            message: Human-readable error message
            context: Additional context information
            original_error: Original exception that caused this error
        """
        self.code = code
        self.message = message
        self.context = context or ErrorContext()
        self.original_error = original_error
        super().__init__(f"{code.value}: {message}")

    def __str__(self) -> str:
        """Return string representation of the error."""
        return f"{self.code.value}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging and response envelopes."""
        return {
            "code": self.code.value,
            "message": self.message,
            "context": self.context.safe_dict(),
            "original_error": str(self.original_error) if self.original_error else None,
        }


class DomainError(AniTickError):
    """Domain-specific errors.

    These errors occur when business rules are violated, for example an
    invalid settings update or a catalog id without an upstream record.
    """


class InfrastructureError(AniTickError):
    """Infrastructure-related errors.

    These errors occur when interacting with external systems
    like the catalog API, the storage backend or the notification display.
    """


class ApplicationError(AniTickError):
    """Application-level errors (command routing, configuration, CLI)."""


class NetworkError(InfrastructureError):
    """Transport failure or non-recoverable API response.

    Not retried automatically; callers that need resilience wrap the
    call in ``retry_with_backoff``.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.NETWORK_ERROR,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(code, message, context, original_error)
        self.status_code = status_code


class RateLimitSignal(InfrastructureError):
    """Upstream answered with HTTP 429.

    Recoverable: the catalog client waits and re-issues the request.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: float | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(ErrorCode.API_RATE_LIMIT, message, context)
        self.retry_after = retry_after


class NotFoundError(DomainError):
    """Requested catalog id has no upstream record."""

    def __init__(
        self,
        media_id: int,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(
            ErrorCode.MEDIA_NOT_FOUND,
            f"No media found for id: {media_id}",
            context or ErrorContext(operation="get_details", additional_data={"media_id": media_id}),
            original_error,
        )
        self.media_id = media_id


class StorageError(InfrastructureError):
    """Persistence layer failure; the operation is aborted without partial write."""


class NotificationDisplayError(InfrastructureError):
    """The notification display capability rejected a notification."""


def create_validation_error(
    message: str,
    field: str | None = None,
    operation: str | None = None,
    original_error: Exception | None = None,
) -> DomainError:
    """Create a validation error with context."""
    additional_data: dict[str, PrimitiveContextValue] | None = (
        {"field": field} if field else None
    )
    context = ErrorContext(
        operation=operation,
        additional_data=additional_data,
    )
    return DomainError(
        ErrorCode.VALIDATION_ERROR,
        message,
        context,
        original_error,
    )


def create_storage_error(
    message: str,
    key: str,
    operation: str,
    code: ErrorCode = ErrorCode.STORAGE_WRITE_FAILED,
    original_error: Exception | None = None,
) -> StorageError:
    """Create a storage error bound to a storage key."""
    return StorageError(
        code,
        message,
        ErrorContext(operation=operation, additional_data={"key": key}),
        original_error,
    )
