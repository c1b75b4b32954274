"""
Custom exceptions for MDB_PERSISTENCE.

Every error raised by this package carries a machine readable ``code`` and
the correlation id of the call that failed. Errors raised by the MongoDB
driver during CRUD calls are not wrapped and reach the caller as-is.
"""

from typing import Any, Dict, Optional


class MongoPersistenceError(RuntimeError):
    """
    Base exception for MDB_PERSISTENCE errors.

    Attributes:
        message: Error message
        code: Error code (e.g. "NO_HOST", "CONNECT_FAILED")
        correlation_id: Correlation id of the failed call (if available)
        context: Optional dictionary with additional context
    """

    default_code = "UNKNOWN"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        correlation_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            code: Error code, defaults to the class ``default_code``
            correlation_id: Correlation id of the failed call
            context: Optional dictionary with additional context information
        """
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.correlation_id = correlation_id
        self.context = context or {}

    def __str__(self) -> str:
        """Return formatted error message with code and context if available."""
        text = f"[{self.code}] {self.message}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            text = f"{text} (context: {context_str})"
        return text


class ConfigurationError(MongoPersistenceError):
    """
    Raised when configuration is invalid or missing.

    Covers missing connection fields (NO_HOST, NO_PORT, NO_DATABASE), a missing
    connection list (NO_CONNECTION), a missing collection name (NO_COLLECTION)
    and unresolvable discovery/credential references.

    Attributes:
        config_key: Configuration key that caused the error (if available)
    """

    default_code = "CONFIG_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        correlation_id: Optional[str] = None,
        config_key: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if config_key:
            context["config_key"] = config_key
        super().__init__(message, code=code, correlation_id=correlation_id, context=context)
        self.config_key = config_key


class MongoConnectionError(MongoPersistenceError):
    """
    Raised when connecting to, disconnecting from or preparing MongoDB fails.

    The underlying driver error is chained as ``__cause__``.
    """

    default_code = "CONNECTION_ERROR"


class InvalidStateError(MongoPersistenceError):
    """Raised when an operation needs an open connection and none is bound."""

    default_code = "INVALID_STATE"
