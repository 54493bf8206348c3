from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional


class FieldCategory(str, Enum):
    """How a field is compared and emitted."""

    SCALAR = "scalar"
    NESTED = "nested"
    LIST_LIKE = "list_like"
    MAP_LIKE = "map_like"

    @property
    def is_complex(self) -> bool:
        return self is not FieldCategory.SCALAR


class ItemOperation(str, Enum):
    """Operation recorded for a list index present on only one side."""

    ADDED = "Added"
    REMOVED = "Removed"


def _no_default() -> Any:
    return None


@dataclass(frozen=True)
class FieldDescriptor:
    """
    Static metadata for one readable field of a shape.

    Attributes:
        name: Field name as it appears in the diff document
        category: Comparison strategy for the field
        value_type: Declared type with any Optional wrapper removed
        accessor: Reads the field from an instance of the owning shape
        nullable: True when the declared type admits None
        element: Descriptor of the item type for list-like fields
        container: Concrete collection type for list-like fields
        default: Produces the value read from an absent instance
    """

    name: str
    category: FieldCategory
    value_type: Any
    accessor: Optional[Callable[[Any], Any]] = None
    nullable: bool = False
    element: Optional["FieldDescriptor"] = None
    container: Optional[type] = None
    default: Callable[[], Any] = _no_default

    def read(self, instance: Any) -> Any:
        """Read this field, treating a missing instance as all-default."""
        if instance is None:
            return self.default()
        return self.accessor(instance)


@dataclass(frozen=True)
class DiffPolicy:
    """
    Configuration for shape classification and output.

    Attributes:
        include_properties: Treat annotated read-only properties as fields.
        include_private: Include names starting with an underscore.
        ensure_ascii: Escape non-ASCII characters in the emitted JSON.
    """

    include_properties: bool = True
    include_private: bool = False
    ensure_ascii: bool = False

    @classmethod
    def default(cls) -> "DiffPolicy":
        """Create default policy."""
        return cls()

    @classmethod
    def fields_only(cls) -> "DiffPolicy":
        """Create a policy that ignores properties."""
        return cls(include_properties=False)

    @classmethod
    def ascii(cls) -> "DiffPolicy":
        """Create a policy that emits ASCII-only JSON."""
        return cls(ensure_ascii=True)
