"""
Configuration management for MDB_PERSISTENCE.

Components are configured with :class:`ConfigParams`, a flat mapping of
dotted keys (``connection.host``, ``options.max_pool_size``) to values.
Sections can be extracted, merged with defaults and overridden.

Example:
    config = ConfigParams.from_tuples(
        "collection", "dummies",
        "connection.host", "localhost",
        "connection.port", 27017,
        "connection.database", "test",
    )
    persistence.configure(config)

    # Or from MONGO_* environment variables
    persistence.configure(config_from_env())
"""

import os
from typing import Any, Optional

from jsonschema import Draft7Validator

from .constants import DEFAULT_MONGO_PORT
from .exceptions import ConfigurationError


class ConfigParams(dict):
    """
    Flat key-value configuration with dotted section names.

    Keys are stored as given; values are kept in their original type and
    converted on read through the typed getters.
    """

    @classmethod
    def from_tuples(cls, *tuples: Any) -> "ConfigParams":
        """Create configuration from a flat ``key, value, key, value`` sequence."""
        if len(tuples) % 2 != 0:
            raise ValueError("Configuration tuples must come in key/value pairs")
        return cls(zip(tuples[0::2], tuples[1::2]))

    @classmethod
    def from_value(cls, value: Optional[dict]) -> "ConfigParams":
        """Create configuration from a (possibly nested) dictionary."""
        config = cls()
        config._flatten("", value or {})
        return config

    def _flatten(self, prefix: str, value: dict) -> None:
        for key, item in value.items():
            name = f"{prefix}.{key}" if prefix else str(key)
            if isinstance(item, dict):
                self._flatten(name, item)
            else:
                self[name] = item

    def get_section_names(self) -> list[str]:
        """Get names of top-level sections in declaration order."""
        names: list[str] = []
        for key in self.keys():
            if "." not in key:
                continue
            name = key.split(".", 1)[0]
            if name not in names:
                names.append(name)
        return names

    def get_section(self, section: str) -> "ConfigParams":
        """
        Get all parameters under a section with the section prefix removed.

        Args:
            section: Section name (e.g. "options")

        Returns:
            New ConfigParams, empty when the section does not exist
        """
        prefix = f"{section}."
        return ConfigParams(
            (key[len(prefix) :], value) for key, value in self.items() if key.startswith(prefix)
        )

    def add_section(self, section: str, values: dict) -> None:
        """Add parameters under the given section prefix."""
        for key, value in values.items():
            self[f"{section}.{key}" if section else key] = value

    def set_defaults(self, defaults: Optional[dict]) -> "ConfigParams":
        """Return a copy where missing keys are taken from ``defaults``."""
        result = ConfigParams(defaults or {})
        result.update(self)
        return result

    def override(self, values: Optional[dict]) -> "ConfigParams":
        """Return a copy where keys from ``values`` replace existing ones."""
        result = ConfigParams(self)
        result.update(values or {})
        return result

    def get_as_nullable_string(self, key: str) -> Optional[str]:
        value = self.get(key)
        if value is None:
            return None
        return str(value)

    def get_as_string(self, key: str, default: str = "") -> str:
        value = self.get_as_nullable_string(key)
        return default if value is None else value

    def get_as_nullable_integer(self, key: str) -> Optional[int]:
        value = self.get(key)
        if value is None or value == "":
            return None
        try:
            return int(float(value))
        except (TypeError, ValueError):
            return None

    def get_as_integer(self, key: str, default: int = 0) -> int:
        value = self.get_as_nullable_integer(key)
        return default if value is None else value

    def get_as_nullable_boolean(self, key: str) -> Optional[bool]:
        value = self.get(key)
        if value is None or value == "":
            return None
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in ("true", "1", "yes", "y", "t"):
            return True
        if text in ("false", "0", "no", "n", "f"):
            return False
        return None

    def get_as_boolean(self, key: str, default: bool = False) -> bool:
        value = self.get_as_nullable_boolean(key)
        return default if value is None else value


def config_from_env(prefix: str = "MONGO_") -> ConfigParams:
    """
    Build connection configuration from environment variables.

    Reads ``MONGO_URI``, ``MONGO_HOST``, ``MONGO_PORT``, ``MONGO_DB``,
    ``MONGO_USER`` and ``MONGO_PASSWORD`` (prefix configurable). A URI,
    when set, takes precedence over host/port/database during resolution.

    Args:
        prefix: Environment variable prefix

    Returns:
        ConfigParams with ``connection.*`` and ``credential.*`` keys
    """
    config = ConfigParams()

    uri = os.getenv(f"{prefix}URI", "")
    if uri:
        config["connection.uri"] = uri
    config["connection.host"] = os.getenv(f"{prefix}HOST", "localhost")
    config["connection.port"] = os.getenv(f"{prefix}PORT", str(DEFAULT_MONGO_PORT))
    config["connection.database"] = os.getenv(f"{prefix}DB", "test")

    username = os.getenv(f"{prefix}USER", "")
    if username:
        config["credential.username"] = username
        config["credential.password"] = os.getenv(f"{prefix}PASSWORD", "")

    return config


# JSON schema for the "options" section. Values may arrive as strings from
# files or environment variables, so numbers are accepted in both forms.
_INTEGER = {"type": ["integer", "string"], "pattern": "^[0-9]+$"}
_BOOLEAN = {"type": ["boolean", "string"]}

OPTIONS_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "max_pool_size": _INTEGER,
        "keep_alive": _INTEGER,
        "connect_timeout": _INTEGER,
        "socket_timeout": _INTEGER,
        "max_page_size": _INTEGER,
        "auto_reconnect": _BOOLEAN,
        "reconnect_interval": _INTEGER,
        "replica_set": {"type": "string"},
        "ssl": _BOOLEAN,
        "auth_source": {"type": "string"},
        "auth_user": {"type": "string"},
        "auth_password": {"type": "string"},
        "debug": _BOOLEAN,
    },
}

_options_validator = Draft7Validator(OPTIONS_SCHEMA)


def validate_options(options: dict, correlation_id: Optional[str] = None) -> None:
    """
    Validate an ``options`` section against :data:`OPTIONS_SCHEMA`.

    Unknown keys are allowed; known keys must have a usable type.

    Raises:
        ConfigurationError: With code INVALID_OPTIONS listing every violation
    """
    errors = sorted(_options_validator.iter_errors(dict(options)), key=lambda e: list(e.path))
    if not errors:
        return

    messages = [f"options.{'.'.join(str(p) for p in e.path)}: {e.message}" for e in errors]
    raise ConfigurationError(
        "Invalid connection options: " + "; ".join(messages),
        code="INVALID_OPTIONS",
        correlation_id=correlation_id,
        context={"error_paths": [".".join(str(p) for p in e.path) for e in errors]},
    )
