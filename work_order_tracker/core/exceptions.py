"""
Exception classes for Work Order Tracker

Provides the hierarchy of exceptions raised while driving work orders through
their lifecycle and persisting them to the document store.
"""

from typing import Optional, Dict, Any


class WorkOrderError(Exception):
    """Base exception for all work order tracker errors."""

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        error_registry.record_error(self)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details
        }


class AuthenticationRequired(WorkOrderError):
    """Raised when an action is issued without an authenticated principal."""

    def __init__(self, action: str):
        super().__init__(
            f"You must be signed in to {action} a work order",
            error_code="AUTHENTICATION_REQUIRED",
            details={"action": action}
        )


class AuthorizationDenied(WorkOrderError):
    """Raised when a principal is neither the owner nor an administrator."""

    def __init__(self, principal_id: str, work_order_id: Optional[str] = None, message: Optional[str] = None):
        super().__init__(
            message or f"Principal {principal_id} is not allowed to modify work order {work_order_id}",
            error_code="AUTHORIZATION_DENIED",
            details={"principal_id": principal_id, "work_order_id": work_order_id}
        )


class NotFound(WorkOrderError):
    """Raised when a referenced record does not exist."""

    def __init__(self, kind: str, record_id: str):
        super().__init__(
            f"{kind} {record_id} not found",
            error_code="NOT_FOUND",
            details={"kind": kind, "id": record_id}
        )


class WorkOrderNotFoundError(NotFound):
    """Raised when a requested work order cannot be found."""

    def __init__(self, work_order_id: str):
        super().__init__("Work order", work_order_id)


class PartNotFoundError(NotFound):
    """Raised when a requested part record cannot be found."""

    def __init__(self, designation: str):
        super().__init__("Part", designation)


class ValidationFailed(WorkOrderError):
    """Raised when input validation fails."""

    def __init__(self, field: str, message: str, value: Any = None):
        super().__init__(
            f"Validation error for {field}: {message}",
            error_code="VALIDATION_FAILED",
            details={"field": field, "value": str(value) if value is not None else None}
        )


class IllegalTransition(WorkOrderError):
    """Raised when a lifecycle action is not valid in the current state."""

    def __init__(self, action: str, status: str, work_order_id: Optional[str] = None):
        super().__init__(
            f"Cannot {action} a work order that is {status}",
            error_code="ILLEGAL_TRANSITION",
            details={"action": action, "status": status, "work_order_id": work_order_id}
        )


class StoreError(WorkOrderError):
    """Base class for document store failures."""

    def __init__(self, operation: str, message: str, collection: Optional[str] = None,
                 error_code: str = "STORE_ERROR"):
        super().__init__(
            f"Store operation '{operation}' failed: {message}",
            error_code=error_code,
            details={"operation": operation, "collection": collection}
        )
        self.operation = operation


class TransientStoreError(StoreError):
    """Raised for store failures expected to clear on retry (connectivity, unavailability)."""

    def __init__(self, operation: str, message: str, collection: Optional[str] = None):
        super().__init__(operation, message, collection, error_code="TRANSIENT_STORE_ERROR")


class PermanentStoreError(StoreError):
    """Raised for store failures that will not clear on retry, or once retries are exhausted."""

    def __init__(self, operation: str, message: str, collection: Optional[str] = None,
                 attempts: Optional[int] = None):
        super().__init__(operation, message, collection, error_code="PERMANENT_STORE_ERROR")
        self.details["attempts"] = attempts


class ConfigurationError(WorkOrderError):
    """Raised when there's an error in configuration."""

    def __init__(self, config_key: str, message: str):
        super().__init__(
            f"Configuration error for {config_key}: {message}",
            error_code="CONFIGURATION_ERROR",
            details={"config_key": config_key}
        )


# Global error registry for tracking patterns
class ErrorRegistry:
    """Registry for tracking and analyzing errors."""

    def __init__(self):
        self.error_counts = {}

    def record_error(self, error: WorkOrderError):
        """Record an error for analysis."""
        error_type = error.__class__.__name__
        self.error_counts[error_type] = self.error_counts.get(error_type, 0) + 1

    def get_error_statistics(self) -> Dict[str, Any]:
        """Get error statistics for monitoring."""
        return {
            "total_errors": sum(self.error_counts.values()),
            "error_counts": self.error_counts,
            "most_common_error": max(self.error_counts.items(), key=lambda x: x[1])[0] if self.error_counts else None
        }

    def reset(self):
        """Forget all recorded errors."""
        self.error_counts.clear()


# Global error registry instance
error_registry = ErrorRegistry()
