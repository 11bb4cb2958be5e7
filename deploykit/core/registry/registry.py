"""Abstract interface of name-keyed registries."""

import builtins
from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class BaseRegistry(ABC, Generic[T]):
    """Maps canonical names to registered entries.

    Implementations may accept additional aliases when resolving names, but
    ``get`` and ``contains`` only ever look at canonical names.
    """

    @abstractmethod
    def register(self, name: str, obj: T, **metadata: Any) -> None:
        """Store ``obj`` under the canonical ``name``."""

    @abstractmethod
    def get(self, name: str, expected_type: type | None = None) -> T:
        """Look up the entry registered as ``name``.

        Raises:
            KeyError: If nothing is registered as ``name``
            TypeError: If the entry does not match ``expected_type``
        """

    @abstractmethod
    def contains(self, name: str) -> bool: ...

    @abstractmethod
    def list(self, filter_criteria: dict[str, Any] | None = None) -> builtins.list[str]:
        """Canonical names of the entries, optionally filtered."""

    @abstractmethod
    def clear(self) -> None: ...

    @abstractmethod
    def remove(self, name: str) -> bool:
        """Drop ``name``; False if it was not registered."""

    @abstractmethod
    def update(self, name: str, obj: T, **metadata: Any) -> bool:
        """Replace the entry for ``name``; False if it was not registered before."""

    def list_aliases(self, canonical_name: str) -> builtins.list[str]:
        """Alternative names accepted for ``canonical_name``; none by default."""
        return []
