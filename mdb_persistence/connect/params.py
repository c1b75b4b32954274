"""
Connection and credential parameter fragments.

Both are flat :class:`ConfigParams` read from the ``connection(s)`` and
``credential(s)`` configuration sections:

    connection.host=localhost
    connection.port=27017
    connection.database=test

    connections.node1.host=mongo1
    connections.node2.host=mongo2

    credential.username=user
    credential.password=pass
"""

from typing import Optional

from ..config import ConfigParams


def _many_from_config(config: ConfigParams, single: str, plural: str) -> list[ConfigParams]:
    result: list[ConfigParams] = []

    sections = config.get_section(plural)
    for name in sections.get_section_names():
        section = sections.get_section(name)
        if section:
            result.append(section)

    section = config.get_section(single)
    if section:
        result.append(section)

    return result


class ConnectionParams(ConfigParams):
    """Connection fragment: uri | host + port + database | discovery_key."""

    @property
    def uri(self) -> str:
        return self.get_as_string("uri")

    @property
    def host(self) -> str:
        return self.get_as_string("host")

    @property
    def port(self) -> int:
        return self.get_as_integer("port")

    @property
    def database(self) -> str:
        return self.get_as_string("database")

    @property
    def discovery_key(self) -> str:
        return self.get_as_string("discovery_key")

    def use_discovery(self) -> bool:
        """Check whether this fragment must be resolved through a discovery service."""
        return bool(self.discovery_key)

    @classmethod
    def many_from_config(cls, config: ConfigParams) -> list["ConnectionParams"]:
        """Read all connection fragments from ``connections.*`` and ``connection``."""
        return [cls(section) for section in _many_from_config(config, "connection", "connections")]

    @classmethod
    def from_config(cls, config: ConfigParams) -> Optional["ConnectionParams"]:
        connections = cls.many_from_config(config)
        return connections[0] if connections else None


class CredentialParams(ConfigParams):
    """Credential fragment: username + password | store_key."""

    @property
    def username(self) -> str:
        return self.get_as_string("username")

    @property
    def password(self) -> str:
        return self.get_as_string("password")

    @property
    def store_key(self) -> str:
        return self.get_as_string("store_key")

    def use_credential_store(self) -> bool:
        """Check whether this fragment must be resolved through a credential store."""
        return bool(self.store_key)

    @classmethod
    def many_from_config(cls, config: ConfigParams) -> list["CredentialParams"]:
        """Read all credential fragments from ``credentials.*`` and ``credential``."""
        return [cls(section) for section in _many_from_config(config, "credential", "credentials")]
