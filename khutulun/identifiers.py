"""Service identifiers and ordered sets of them."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ServiceIdentifier:
    """A service named within a namespace."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace},{self.name}"


@dataclass
class ServiceIdentifiers:
    """An insertion-ordered collection of distinct service identifiers."""

    items: list[ServiceIdentifier] = field(default_factory=list)

    def has(self, identifier: ServiceIdentifier) -> bool:
        return identifier in self.items

    def add(self, *args: ServiceIdentifier) -> bool:
        """Add identifiers not already present; return True if any were added."""
        added = False
        for identifier in args:
            if not self.has(identifier):
                self.items.append(identifier)
                added = True
        return added

    def merge(self, identifiers: ServiceIdentifiers | None) -> bool:
        """Add all identifiers from another collection; return True if any were added."""
        if identifiers is None:
            return False
        return self.add(*identifiers.items)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self.items

    def __iter__(self) -> Iterator[ServiceIdentifier]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __str__(self) -> str:
        return ";".join(str(identifier) for identifier in self.items)