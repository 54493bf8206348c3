"""Shape classification for snapdiff.

Inspects a shape's readable fields once and assigns each one a category.

Precedence (first match wins):
1. map_like: the declared type is a Mapping
2. list_like: the declared type is an iterable collection other than text
3. nested: the declared type is a record (dataclass or annotated class)
4. scalar: everything else

Classification looks only at declared types, never at runtime values. A
field that cannot be classified deterministically fails the whole shape.
"""

from __future__ import annotations

import collections
import collections.abc
import dataclasses
import datetime
import decimal
import enum
import fractions
import inspect
import logging
import operator
import types
import uuid
from typing import (
    Any,
    Callable,
    ClassVar,
    Dict,
    List,
    Literal,
    Optional,
    Tuple,
    TypeVar,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

from .errors import ShapeConfigurationError
from .types import DiffPolicy, FieldCategory, FieldDescriptor

logger = logging.getLogger(__name__)

# Classes that are never nested records even when they carry annotations
_SCALAR_CLASSES: Tuple[type, ...] = (
    bool,
    int,
    float,
    complex,
    str,
    bytes,
    bytearray,
    decimal.Decimal,
    fractions.Fraction,
    datetime.datetime,
    datetime.date,
    datetime.time,
    datetime.timedelta,
    uuid.UUID,
    enum.Enum,
)

_CONCRETE_CONTAINERS: Tuple[type, ...] = (list, tuple, set, frozenset, collections.deque)


class _Unclassifiable(Exception):
    """Internal signal carrying the reason a declared type was rejected."""


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


def classify_shape(shape: Any, policy: Optional[DiffPolicy] = None) -> Tuple[FieldDescriptor, ...]:
    """Classify every readable field of a shape.

    Args:
        shape: A record class, or a parameterized generic record such as
               ``TimeSeries[DailyActiveUsers]``.
        policy: Controls which members count as fields.

    Returns:
        Field descriptors in declaration order.

    Raises:
        ShapeConfigurationError: If the shape or any of its fields cannot
            be classified.
    """
    policy = policy or DiffPolicy.default()
    cls, bindings = _resolve_shape(shape)

    descriptors: List[FieldDescriptor] = []
    for name, hint, default in _readable_fields(shape, cls, policy):
        hint = _substitute(hint, bindings)
        try:
            descriptors.append(_describe(name, hint, operator.attrgetter(name), default))
        except _Unclassifiable as exc:
            raise ShapeConfigurationError(str(exc), shape=shape, field=name) from None

    logger.debug(
        "classified %s: %s",
        _display(shape),
        ", ".join(f"{d.name}={d.category.value}" for d in descriptors) or "<no fields>",
    )
    return tuple(descriptors)


def is_record_type(tp: Any) -> bool:
    """Return True when a declared type denotes a nested record shape."""
    cls = get_origin(tp) or tp
    if not isinstance(cls, type) or issubclass(cls, _SCALAR_CLASSES):
        return False
    if dataclasses.is_dataclass(cls):
        return True
    return any(
        inspect.get_annotations(klass) for klass in cls.__mro__ if klass is not object
    )


# ---------------------------------------------------------------------------
# Field discovery
# ---------------------------------------------------------------------------


def _resolve_shape(shape: Any) -> Tuple[type, Dict[Any, Any]]:
    origin = get_origin(shape)
    if origin is not None and isinstance(origin, type):
        params = getattr(origin, "__parameters__", ())
        return origin, dict(zip(params, get_args(shape)))
    if not isinstance(shape, type):
        raise ShapeConfigurationError("shape must be a class", shape=shape)
    if issubclass(shape, _SCALAR_CLASSES + _CONCRETE_CONTAINERS + (dict,)):
        raise ShapeConfigurationError(
            "scalars and collections are not record shapes", shape=shape
        )
    return shape, {}


def _readable_fields(
    shape: Any, cls: type, policy: DiffPolicy
) -> List[Tuple[str, Any, Callable[[], Any]]]:
    try:
        hints = get_type_hints(cls)
    except (NameError, TypeError, AttributeError) as exc:
        raise ShapeConfigurationError(
            f"type hints cannot be resolved: {exc}", shape=shape
        ) from exc

    fields: List[Tuple[str, Any, Callable[[], Any]]] = []
    if dataclasses.is_dataclass(cls):
        for f in dataclasses.fields(cls):
            fields.append((f.name, hints.get(f.name, f.type), _dataclass_default(f)))
    else:
        for name, hint in hints.items():
            if get_origin(hint) is ClassVar or hint is ClassVar:
                continue
            fields.append((name, hint, _class_default(cls, name)))

    if policy.include_properties:
        seen = {name for name, _, _ in fields}
        for name, prop in _properties(cls):
            if name in seen:
                continue
            try:
                prop_hints = get_type_hints(prop.fget)
            except (NameError, TypeError) as exc:
                raise ShapeConfigurationError(
                    f"property type cannot be resolved: {exc}", shape=shape, field=name
                ) from exc
            if "return" not in prop_hints:
                continue
            seen.add(name)
            fields.append((name, prop_hints["return"], _absent))

    if not policy.include_private:
        fields = [f for f in fields if not f[0].startswith("_")]
    return fields


def _properties(cls: type) -> List[Tuple[str, property]]:
    found: Dict[str, property] = {}
    for klass in reversed(cls.__mro__):
        for name, member in vars(klass).items():
            if isinstance(member, property) and member.fget is not None:
                found[name] = member
            elif name in found:
                # Overridden by a plain attribute in a subclass
                del found[name]
    return list(found.items())


def _absent() -> Any:
    return None


def _dataclass_default(f: dataclasses.Field) -> Callable[[], Any]:
    if f.default is not dataclasses.MISSING:
        value = f.default
        return lambda: value
    if f.default_factory is not dataclasses.MISSING:
        return f.default_factory
    return _absent


def _class_default(cls: type, name: str) -> Callable[[], Any]:
    for klass in cls.__mro__:
        if name in vars(klass):
            value = vars(klass)[name]
            return lambda: value
    return _absent


# ---------------------------------------------------------------------------
# Type classification
# ---------------------------------------------------------------------------


def _describe(
    name: str,
    hint: Any,
    accessor: Optional[Callable[[Any], Any]],
    default: Callable[[], Any],
) -> FieldDescriptor:
    value_type, nullable = _unwrap_optional(hint)
    value_type = _strip_newtype(value_type)

    if isinstance(value_type, TypeVar):
        raise _Unclassifiable(f"unresolved type variable {value_type}")
    if value_type is Any or get_origin(value_type) is Literal:
        return FieldDescriptor(name, FieldCategory.SCALAR, value_type, accessor, nullable, default=default)

    cls = get_origin(value_type) or value_type
    if not isinstance(cls, type):
        raise _Unclassifiable(f"unsupported declared type {value_type!r}")

    if issubclass(cls, collections.abc.Mapping):
        category = FieldCategory.MAP_LIKE
    elif issubclass(cls, collections.abc.Iterable) and not issubclass(
        cls, (str, bytes, bytearray)
    ):
        element = _describe(f"{name}[]", _element_type(value_type), None, _absent)
        return FieldDescriptor(
            name,
            FieldCategory.LIST_LIKE,
            value_type,
            accessor,
            nullable,
            element=element,
            container=_container(cls),
            default=default,
        )
    elif is_record_type(value_type):
        category = FieldCategory.NESTED
    else:
        category = FieldCategory.SCALAR
    return FieldDescriptor(name, category, value_type, accessor, nullable, default=default)


def _unwrap_optional(hint: Any) -> Tuple[Any, bool]:
    origin = get_origin(hint)
    if origin is Union or origin is types.UnionType:
        args = get_args(hint)
        members = [a for a in args if a is not type(None)]
        if len(members) != 1:
            raise _Unclassifiable(f"ambiguous union type {hint!r}")
        return members[0], len(members) < len(args)
    if hint is None or hint is type(None):
        raise _Unclassifiable("field is declared as None")
    return hint, False


def _strip_newtype(tp: Any) -> Any:
    while hasattr(tp, "__supertype__"):
        tp = tp.__supertype__
    return tp


def _element_type(collection_type: Any) -> Any:
    args = get_args(collection_type)
    cls = get_origin(collection_type) or collection_type
    if issubclass(cls, tuple):
        if len(args) == 2 and args[1] is Ellipsis:
            args = args[:1]
        elif args and all(a == args[0] for a in args):
            args = args[:1]
    if len(args) != 1 or args[0] is Any or isinstance(args[0], TypeVar):
        raise _Unclassifiable(
            f"ambiguous element type for collection {collection_type!r}"
        )
    return args[0]


def _container(cls: type) -> type:
    for concrete in _CONCRETE_CONTAINERS:
        if issubclass(cls, concrete):
            return concrete
    if issubclass(cls, collections.abc.Set):
        return frozenset
    return list


def _substitute(hint: Any, bindings: Dict[Any, Any]) -> Any:
    if not bindings:
        return hint
    if isinstance(hint, TypeVar):
        return bindings.get(hint, hint)
    params = getattr(hint, "__parameters__", ())
    if params and get_origin(hint) is not None:
        return hint[tuple(bindings.get(p, p) for p in params)]
    return hint


def _display(shape: Any) -> str:
    if isinstance(shape, type):
        return shape.__qualname__
    return repr(shape)
