"""
Unit tests for custom exceptions.

Tests exception hierarchy, codes and message formatting.
"""

from mdb_persistence.exceptions import (
    ConfigurationError,
    InvalidStateError,
    MongoConnectionError,
    MongoPersistenceError,
)


class TestExceptionHierarchy:
    """Test exception inheritance hierarchy."""

    def test_base_error_is_runtime_error(self):
        """Test that MongoPersistenceError is a RuntimeError."""
        assert isinstance(MongoPersistenceError("test error"), RuntimeError)

    def test_subclasses(self):
        """Test that every package error derives from MongoPersistenceError."""
        for error_cls in (ConfigurationError, MongoConnectionError, InvalidStateError):
            error = error_cls("failed")
            assert isinstance(error, MongoPersistenceError)
            assert isinstance(error, RuntimeError)


class TestExceptionCodes:
    """Test default and explicit error codes."""

    def test_default_codes(self):
        assert MongoPersistenceError("x").code == "UNKNOWN"
        assert ConfigurationError("x").code == "CONFIG_ERROR"
        assert MongoConnectionError("x").code == "CONNECTION_ERROR"
        assert InvalidStateError("x").code == "INVALID_STATE"

    def test_explicit_code_and_correlation_id(self):
        error = MongoConnectionError("Connect failed", code="CONNECT_FAILED", correlation_id="123")

        assert error.code == "CONNECT_FAILED"
        assert error.correlation_id == "123"


class TestExceptionMessages:
    """Test exception message formatting."""

    def test_message(self):
        """Test message without context."""
        error = MongoPersistenceError("Something went wrong", code="BROKEN")

        assert str(error) == "[BROKEN] Something went wrong"
        assert error.message == "Something went wrong"
        assert error.context == {}

    def test_message_with_context(self):
        """Test message with context."""
        error = MongoPersistenceError("Failed", code="X", context={"collection": "dummies"})

        assert str(error) == "[X] Failed (context: collection=dummies)"

    def test_configuration_error_config_key(self):
        """Test that the config key is kept and added to context."""
        error = ConfigurationError("Host is not set", code="NO_HOST", config_key="connection.host")

        assert error.config_key == "connection.host"
        assert error.context["config_key"] == "connection.host"
        assert "config_key=connection.host" in str(error)
