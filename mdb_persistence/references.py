"""
Component references.

A lightweight container used to wire components together. Components are
registered under a :class:`Descriptor` and located with descriptors that may
contain ``*`` wildcards, e.g. ``*:connection:mongodb:*:1.0``.

Usage:
    connection = MongoConnection()
    references = References.from_tuples(
        Descriptor("app", "connection", "mongodb", "default", "1.0"), connection,
    )
    persistence.set_references(references)
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Descriptor:
    """
    Component locator made of five parts, any of which may be ``*``.

    Attributes:
        group: Logical group (e.g. "app")
        type: Component type (e.g. "connection", "discovery")
        kind: Implementation kind (e.g. "mongodb", "memory")
        name: Instance name
        version: Implementation version
    """

    group: str = "*"
    type: str = "*"
    kind: str = "*"
    name: str = "*"
    version: str = "*"

    @classmethod
    def from_string(cls, value: str) -> "Descriptor":
        """
        Parse a ``group:type:kind:name:version`` string.

        Raises:
            ValueError: If the string does not have five parts
        """
        parts = value.split(":")
        if len(parts) != 5:
            raise ValueError(f"Descriptor '{value}' must have 5 parts separated by ':'")
        return cls(*parts)

    @staticmethod
    def _part_matches(pattern: str, value: str) -> bool:
        return pattern == "*" or value == "*" or pattern == value

    def match(self, other: "Descriptor") -> bool:
        """Check whether two descriptors match, treating ``*`` as a wildcard."""
        return all(
            self._part_matches(a, b)
            for a, b in (
                (self.group, other.group),
                (self.type, other.type),
                (self.kind, other.kind),
                (self.name, other.name),
                (self.version, other.version),
            )
        )

    def __str__(self) -> str:
        return f"{self.group}:{self.type}:{self.kind}:{self.name}:{self.version}"


class References:
    """
    Container of component references located by descriptors.

    Registration order is preserved; lookups return matches in that order.
    """

    def __init__(self) -> None:
        self._entries: list[tuple[Descriptor, Any]] = []

    @classmethod
    def from_tuples(cls, *tuples: Any) -> "References":
        """Create references from a flat ``descriptor, component, ...`` sequence."""
        references = cls()
        for locator, component in zip(tuples[0::2], tuples[1::2]):
            references.put(locator, component)
        return references

    def put(self, locator: Descriptor | str, component: Any) -> "References":
        """
        Register a component.

        Returns:
            Self for chaining
        """
        if component is None:
            raise ValueError("Component cannot be None")
        if isinstance(locator, str):
            locator = Descriptor.from_string(locator)
        self._entries.append((locator, component))
        logger.debug(f"Registered reference {locator}")
        return self

    def remove(self, locator: Descriptor | str) -> Any | None:
        """Remove the first component matching the locator and return it."""
        if isinstance(locator, str):
            locator = Descriptor.from_string(locator)
        for index, (descriptor, component) in enumerate(self._entries):
            if locator.match(descriptor):
                del self._entries[index]
                return component
        return None

    def get_optional(self, locator: Descriptor | str) -> list[Any]:
        """Get all components matching the locator (possibly empty)."""
        if isinstance(locator, str):
            locator = Descriptor.from_string(locator)
        return [component for descriptor, component in self._entries if locator.match(descriptor)]

    def get_one_optional(self, locator: Descriptor | str) -> Optional[Any]:
        """Get the first component matching the locator, or None."""
        components = self.get_optional(locator)
        return components[0] if components else None

    def get_one_required(self, locator: Descriptor | str) -> Any:
        """
        Get the first component matching the locator.

        Raises:
            KeyError: If nothing matches
        """
        component = self.get_one_optional(locator)
        if component is None:
            raise KeyError(f"Reference {locator} is not registered")
        return component

    def __contains__(self, locator: Descriptor | str) -> bool:
        return self.get_one_optional(locator) is not None

    def __len__(self) -> int:
        return len(self._entries)
