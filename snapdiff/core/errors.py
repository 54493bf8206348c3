"""Exceptions raised by snapdiff."""

from __future__ import annotations

from typing import Any, Optional, Tuple


class SnapdiffError(Exception):
    """Base exception for snapdiff errors."""

    pass


class ShapeConfigurationError(SnapdiffError):
    """
    Raised when a shape cannot be classified into a diff engine.

    This is a construction-time failure: no engine is cached for the shape,
    and retrying without changing the shape definition fails the same way.
    """

    def __init__(self, message: str, shape: Any, field: Optional[str] = None):
        super().__init__(message)
        self.shape = shape
        self.field = field

    def __str__(self) -> str:
        location = f"shape={_shape_name(self.shape)}"
        if self.field is not None:
            location += f", field={self.field}"
        return f"ShapeConfigurationError({location}): {self.args[0]}"


class ShapeMismatchError(SnapdiffError, TypeError):
    """Raised when the two sides of a diff are instances of different shapes."""

    def __init__(self, old_shape: type, new_shape: type):
        super().__init__(
            f"cannot diff {_shape_name(old_shape)} against "
            f"{_shape_name(new_shape)}; pass shape= to choose one"
        )
        self.old_shape = old_shape
        self.new_shape = new_shape


class CanonicalizationError(SnapdiffError, ValueError):
    """Raised when two keys of one mapping render to the same JSON key."""

    def __init__(self, message: str, keys: Tuple[Any, Any]):
        super().__init__(message)
        self.keys = keys


class SnapshotLoadError(SnapdiffError, ValueError):
    """Raised when JSON data cannot be loaded into a shape."""

    def __init__(self, message: str, path: str = "$"):
        super().__init__(message)
        self.path = path

    def __str__(self) -> str:
        return f"SnapshotLoadError at {self.path}: {self.args[0]}"


def _shape_name(shape: Any) -> str:
    if isinstance(shape, type):
        return f"{shape.__module__}.{shape.__qualname__}"
    return repr(shape)
