from __future__ import annotations

from typing import Any, Optional

from .engine import EMPTY_DIFF, DiffEngine
from .errors import ShapeMismatchError
from .registry import EngineRegistry

_default_registry = EngineRegistry()


def default_registry() -> EngineRegistry:
    """Process-wide registry used when no registry is passed explicitly."""
    return _default_registry


def get_engine(shape: Any, registry: Optional[EngineRegistry] = None) -> DiffEngine:
    return (registry or _default_registry).get_or_build(shape)


def diff(
    old: Any,
    new: Any,
    *,
    shape: Any = None,
    registry: Optional[EngineRegistry] = None,
) -> str:
    """Diff two snapshots of the same shape and return compact JSON.

    Args:
        old: The "before" snapshot, or None.
        new: The "after" snapshot, or None.
        shape: Shape to diff as; defaults to the runtime type of the
               snapshots.
        registry: Engine cache to use; defaults to the process-wide one.

    Returns:
        JSON object text describing every changed field, ``{}`` when the
        snapshots are equal.

    Raises:
        ShapeConfigurationError: If the shape cannot be classified.
        ShapeMismatchError: If the snapshots have different runtime types
            and no shape was given.
    """
    if shape is None:
        if old is None and new is None:
            return EMPTY_DIFF
        if old is not None and new is not None and type(old) is not type(new):
            raise ShapeMismatchError(type(old), type(new))
        shape = type(new if old is None else old)
    return get_engine(shape, registry).diff(old, new)
