# ==============================================================================
# CUSTOM EXCEPTIONS - Data Layer Error Hierarchy
# ==============================================================================
# Structured exception classes shared by adapters, factory and repositories
# Each exception maps to an HTTP status code for the operational surface
# ==============================================================================

from __future__ import annotations

from typing import Any, Dict, List, Optional


class AppException(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error identifier
        status_code: HTTP status code to return
        details: Additional context dictionary
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        error_code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary format for JSON response.

        Returns:
            Dictionary containing error details
        """
        return {
            "success": False,
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details,
            }
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message='{self.message}', "
            f"error_code='{self.error_code}', "
            f"status_code={self.status_code})"
        )


# ==============================================================================
# STARTUP EXCEPTIONS
# ==============================================================================

class ConfigurationError(AppException):
    """
    Raised when provider configuration is invalid or incomplete.

    Fatal at startup and never retried automatically.

    Attributes:
        missing_keys: Environment keys that must be set for the provider
    """

    def __init__(
        self,
        message: str = "Invalid database configuration",
        missing_keys: Optional[List[str]] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        _details = details or {}
        if missing_keys:
            _details["missing_keys"] = list(missing_keys)

        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            status_code=500,
            details=_details,
        )
        self.missing_keys = list(missing_keys or [])


class NotInitializedError(AppException):
    """
    Raised when the database is used before initialization completed.

    Callers should run ``ensure_connection()`` and retry once.
    """

    def __init__(
        self,
        message: str = (
            "Database not initialized. "
            "Call initialize_database() or ensure_connection() first."
        ),
    ) -> None:
        super().__init__(
            message=message,
            error_code="DATABASE_NOT_INITIALIZED",
            status_code=503,
        )


# ==============================================================================
# DATABASE EXCEPTIONS
# ==============================================================================

class DatabaseError(AppException):
    """
    Base exception for backend failures.

    Raised when database operations fail due to:
    - Connection issues
    - Query execution failures
    - Transaction errors
    """

    def __init__(
        self,
        message: str = "Database operation failed",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="DATABASE_ERROR",
            status_code=503,
            details=details,
        )


class DatabaseConnectionError(DatabaseError):
    """
    Raised when the backend is unreachable.

    The layer never retries on its own; retry policy belongs to the caller.
    """

    def __init__(
        self,
        message: str = "Failed to connect to database",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, details=details)
        self.error_code = "DATABASE_CONNECTION_ERROR"


class QueryError(DatabaseError):
    """Raised when the backend rejects a statement for a non-constraint reason."""

    def __init__(
        self,
        message: str = "Query failed",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, details=details)
        self.error_code = "QUERY_ERROR"
        self.status_code = 500


class TransactionAbortedError(DatabaseError):
    """
    Raised when a transaction callback failed.

    All writes issued through the transactional handle have been rolled
    back before this is raised.

    Attributes:
        original: The exception raised by the callback
    """

    def __init__(
        self,
        message: str = "Transaction aborted and rolled back",
        original: Optional[BaseException] = None,
    ) -> None:
        details = {}
        if original is not None:
            details["cause"] = f"{type(original).__name__}: {original}"

        super().__init__(message=message, details=details)
        self.error_code = "TRANSACTION_ABORTED"
        self.status_code = 500
        self.original = original


# ==============================================================================
# RESOURCE EXCEPTIONS
# ==============================================================================

class NotFoundError(AppException):
    """
    Raised when a write references a record that does not exist.

    Maps to HTTP 404 Not Found.

    Attributes:
        resource_type: Table of the missing record
        resource_id: Identifier of the missing record
    """

    def __init__(
        self,
        message: str = "Resource not found",
        resource_type: Optional[str] = None,
        resource_id: Optional[Any] = None,
    ) -> None:
        details = {}
        if resource_type:
            details["resource_type"] = resource_type
        if resource_id:
            details["resource_id"] = str(resource_id)

        super().__init__(
            message=message,
            error_code="NOT_FOUND",
            status_code=404,
            details=details,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class ConstraintViolationError(AppException):
    """
    Raised when a write breaks a uniqueness or required-field constraint.

    Maps to HTTP 409 Conflict so callers can show a specific message
    (e.g. "email already in use").
    """

    def __init__(
        self,
        message: str = "Constraint violation",
        table: Optional[str] = None,
        constraint: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        _details = details or {}
        if table:
            _details["table"] = table
        if constraint:
            _details["constraint"] = constraint

        super().__init__(
            message=message,
            error_code="CONSTRAINT_VIOLATION",
            status_code=409,
            details=_details,
        )
        self.table = table
        self.constraint = constraint


# ==============================================================================
# VALIDATION EXCEPTIONS
# ==============================================================================

class ValidationError(AppException):
    """
    Raised when input validation fails.

    Maps to HTTP 422 Unprocessable Entity.
    Contains field-level validation errors.
    """

    def __init__(
        self,
        message: str = "Validation error",
        errors: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            status_code=422,
            details={"validation_errors": errors or {}},
        )
        self.errors = errors or {}


class UnsupportedOperationError(AppException):
    """
    Raised when a provider lacks the capability an operation needs.

    Maps to HTTP 501 Not Implemented.
    """

    def __init__(
        self,
        message: str = "Operation not supported by this provider",
        provider: Optional[str] = None,
        operation: Optional[str] = None,
    ) -> None:
        details = {}
        if provider:
            details["provider"] = provider
        if operation:
            details["operation"] = operation

        super().__init__(
            message=message,
            error_code="UNSUPPORTED_OPERATION",
            status_code=501,
            details=details,
        )
