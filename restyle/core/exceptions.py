from __future__ import annotations

from enum import Enum


class ErrorType(str, Enum):
    TARGET_NOT_FOUND = "TARGET_NOT_FOUND"
    INVALID_SELECTOR = "INVALID_SELECTOR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    PERMISSION_ERROR = "PERMISSION_ERROR"
    EXECUTION_ERROR = "EXECUTION_ERROR"
    GENERATIVE_SERVICE_ERROR = "GENERATIVE_SERVICE_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    SERIALIZATION_ERROR = "SERIALIZATION_ERROR"
    UNKNOWN = "UNKNOWN"


class RestyleError(RuntimeError):
    """Base class for failures raised by the restyle core."""

    error_type = ErrorType.UNKNOWN


class TargetNotFoundError(RestyleError):
    """Raised when no live element matches the requested targets."""

    error_type = ErrorType.TARGET_NOT_FOUND


class InvalidSelectorError(RestyleError):
    """Raised when a selector cannot be parsed by the document backend."""

    error_type = ErrorType.INVALID_SELECTOR


class DocumentAccessError(TargetNotFoundError):
    """Raised when a handle can no longer be read or written (stale, detached)."""


class StyleValidationError(RestyleError):
    """Raised when a mutation request carries no usable style entries."""

    error_type = ErrorType.VALIDATION_ERROR

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = list(errors or [])


class NetworkError(RestyleError):
    error_type = ErrorType.NETWORK_ERROR


class PermissionDeniedError(RestyleError):
    error_type = ErrorType.PERMISSION_ERROR


class ScriptExecutionError(RestyleError):
    error_type = ErrorType.EXECUTION_ERROR


class GenerativeServiceError(RestyleError):
    error_type = ErrorType.GENERATIVE_SERVICE_ERROR


class OperationTimeoutError(RestyleError, TimeoutError):
    error_type = ErrorType.TIMEOUT_ERROR


class SerializationError(RestyleError):
    error_type = ErrorType.SERIALIZATION_ERROR


class InterpreterError(RestyleError):
    """Raised when the interpreter answers with an unusable HTTP status."""

    error_type = ErrorType.GENERATIVE_SERVICE_ERROR
