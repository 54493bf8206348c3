"""Load JSON snapshot data into shape instances.

Uses the same field classification as the diff engine, so a snapshot stored
as JSON (for example by an audit job) can be diffed against a later one.

Conversion rules:
- nested fields recurse into their record shape
- list-like fields load each element and rebuild the declared container
- map-like fields convert keys to the declared key type (JSON keys are
  always strings) and load record or scalar values; other values are kept
  as loaded
- scalars convert from their JSON form: ISO-8601 strings to date/time,
  numbers or strings to Decimal, values (or member names) to Enum, strings
  to UUID, seconds to timedelta
- unknown keys are ignored; missing keys fall back to the field default
"""

from __future__ import annotations

import collections.abc
import dataclasses
import datetime
import decimal
import enum
import inspect
import uuid
from typing import Any, Dict, Optional, Tuple, Union, get_args, get_origin

from .classify import is_record_type
from .diff import default_registry
from .errors import SnapshotLoadError
from .registry import EngineRegistry
from .types import FieldCategory, FieldDescriptor


def load_instance(
    shape: Any,
    data: Any,
    registry: Optional[EngineRegistry] = None,
    path: str = "$",
) -> Any:
    """Build an instance of ``shape`` from JSON-compatible data.

    Args:
        shape: Record class (or parameterized generic record) to build.
        data: Mapping of field name to JSON value, or None.
        registry: Engine registry providing the field classification.
        path: Location of ``data`` in the enclosing document, for errors.

    Returns:
        The new instance, or None when ``data`` is None.

    Raises:
        SnapshotLoadError: If the data does not fit the shape.
        ShapeConfigurationError: If the shape cannot be classified.
    """
    if data is None:
        return None
    if not isinstance(data, collections.abc.Mapping):
        raise SnapshotLoadError(f"expected an object, got {type(data).__name__}", path)

    registry = registry or default_registry()
    engine = registry.get_or_build(shape)
    values: Dict[str, Any] = {}
    for descriptor in engine.fields:
        if descriptor.name in data:
            values[descriptor.name] = _load_value(
                descriptor, data[descriptor.name], registry, f"{path}.{descriptor.name}"
            )
    return _construct(get_origin(shape) or shape, values, path)


def _construct(cls: type, values: Dict[str, Any], path: str) -> Any:
    writable = {
        name: value
        for name, value in values.items()
        if not isinstance(inspect.getattr_static(cls, name, None), property)
    }
    if dataclasses.is_dataclass(cls):
        init_names = {f.name for f in dataclasses.fields(cls) if f.init}
        try:
            instance = cls(**{k: v for k, v in writable.items() if k in init_names})
        except TypeError as exc:
            raise SnapshotLoadError(str(exc), path) from exc
        for name, value in writable.items():
            if name not in init_names:
                object.__setattr__(instance, name, value)
        return instance

    instance = cls.__new__(cls)
    for name, value in writable.items():
        setattr(instance, name, value)
    return instance


def _load_value(
    descriptor: FieldDescriptor, raw: Any, registry: EngineRegistry, path: str
) -> Any:
    if raw is None:
        return None
    category = descriptor.category
    if category is FieldCategory.NESTED:
        return load_instance(descriptor.value_type, raw, registry, path)
    if category is FieldCategory.MAP_LIKE:
        if not isinstance(raw, collections.abc.Mapping):
            raise SnapshotLoadError(f"expected an object, got {type(raw).__name__}", path)
        return _load_map(descriptor.value_type, raw, registry, path)
    if category is FieldCategory.LIST_LIKE:
        if not isinstance(raw, list):
            raise SnapshotLoadError(f"expected an array, got {type(raw).__name__}", path)
        items = [
            _load_value(descriptor.element, item, registry, f"{path}[{i}]")
            for i, item in enumerate(raw)
        ]
        container = descriptor.container or list
        return items if container is list else container(items)
    return _load_scalar(descriptor.value_type, raw, path)


def _load_map(map_type: Any, raw: Any, registry: EngineRegistry, path: str) -> Dict[Any, Any]:
    key_type, value_type = _map_types(map_type)
    loaded: Dict[Any, Any] = {}
    for key, value in raw.items():
        entry_path = f"{path}.{key}"
        if value is None:
            item = None
        elif is_record_type(value_type):
            item = load_instance(value_type, value, registry, entry_path)
        else:
            item = _load_scalar(value_type, value, entry_path)
        loaded[_load_scalar(key_type, key, entry_path)] = item
    return loaded


def _map_types(map_type: Any) -> Tuple[Any, Any]:
    args = get_args(map_type)
    if len(args) != 2:
        return Any, Any
    key_type, value_type = args
    if get_origin(value_type) is Union:
        present = [arg for arg in get_args(value_type) if arg is not type(None)]
        if len(present) == 1:
            value_type = present[0]
    return key_type, value_type


def _load_scalar(value_type: Any, raw: Any, path: str) -> Any:
    cls = get_origin(value_type) or value_type
    if not isinstance(cls, type):
        return raw
    try:
        if issubclass(cls, enum.Enum):
            return _load_enum(cls, raw)
        if issubclass(cls, bool):
            if not isinstance(raw, bool):
                raise TypeError(f"expected a boolean, got {raw!r}")
            return raw
        if issubclass(cls, int):
            if isinstance(raw, bool) or (isinstance(raw, float) and not raw.is_integer()):
                raise TypeError(f"expected an integer, got {raw!r}")
            return cls(raw)
        if issubclass(cls, float):
            return cls(raw)
        if issubclass(cls, decimal.Decimal):
            return cls(str(raw))
        if issubclass(cls, (datetime.datetime, datetime.date, datetime.time)):
            return cls.fromisoformat(raw)
        if issubclass(cls, datetime.timedelta):
            return cls(seconds=raw)
        if issubclass(cls, uuid.UUID):
            return cls(raw)
        if issubclass(cls, str):
            if not isinstance(raw, str):
                raise TypeError(f"expected a string, got {raw!r}")
            return raw
    except (TypeError, ValueError, decimal.InvalidOperation) as exc:
        raise SnapshotLoadError(str(exc), path) from exc
    return raw


def _load_enum(cls: Any, raw: Any) -> Any:
    try:
        return cls(raw)
    except ValueError:
        if isinstance(raw, str):
            if raw in cls.__members__:
                return cls[raw]
            # Mapping keys hold the member value as text
            for member in cls:
                if str(member.value) == raw:
                    return member
        raise
