"""Per-field comparison and emission rules.

Each field descriptor becomes one rule: it reads the field from both
instances and writes ``"name": <change>`` only when the values differ. The
comparison itself is a *comparator* ``(old_value, new_value) -> json | None``
chosen by category, so list items reuse the comparator of their element type.

Nested and list-like comparators are *deferred*: calling one returns a
generator step that yields child steps and returns the change text. The
engine runs those steps from an explicit stack (see run_steps), so the depth
of a snapshot is not limited by the interpreter's recursion limit.

Emitted shapes:
- scalar:    {"OldValue": v, "NewValue": v}
- map_like:  {"OldValue": <canonical json>, "NewValue": <canonical json>}
- nested:    the inner diff object, embedded directly
- list_like: {"[i]": <item change>, ...}, positional (index-aligned)

Whole values (map sides and added/removed list items) are canonical JSON,
which writes an Enum by its value. A changed Enum scalar, including a changed
element of a list of enums, is written by member name instead, so one
``List[Plan]`` field can show ``"PRO"`` for a changed item and ``1`` for an
added one.
"""

from __future__ import annotations

import datetime
import decimal
import enum
import math
from typing import Any, Callable, Generator, List, NamedTuple, Optional, get_origin

from .canon import canon_json, sort_canonically
from .errors import CanonicalizationError
from .types import FieldCategory, FieldDescriptor, ItemOperation
from .writer import JsonWriter

Comparator = Callable[[Any, Any], Any]
Step = Generator[Any, Optional[str], Optional[str]]
ValueWriter = Callable[[JsonWriter, str, Any], None]


class Comparison(NamedTuple):
    """A comparator and whether it returns a Step instead of the change."""

    compare: Comparator
    deferred: bool


class FieldRule(NamedTuple):
    """Emission rule for one field of a shape."""

    name: str
    read: Callable[[Any], Any]
    compare: Comparator
    deferred: bool


def build_rule(
    descriptor: FieldDescriptor,
    resolve_engine: Callable[[Any], Any],
    ensure_ascii: bool = False,
) -> FieldRule:
    """Build the emission rule for one field of a shape.

    Args:
        descriptor: Classified field.
        resolve_engine: Returns the diff engine for a nested shape; may
            return an engine whose construction is still in progress.
        ensure_ascii: Escape non-ASCII characters in emitted JSON.
    """
    compare, deferred = build_comparator(descriptor, resolve_engine, ensure_ascii)
    return FieldRule(descriptor.name, descriptor.read, compare, deferred)


def build_comparator(
    descriptor: FieldDescriptor,
    resolve_engine: Callable[[Any], Any],
    ensure_ascii: bool = False,
) -> Comparison:
    category = descriptor.category
    if category is FieldCategory.SCALAR:
        return Comparison(_scalar_comparator(descriptor, ensure_ascii), False)
    if category is FieldCategory.MAP_LIKE:
        return Comparison(_map_comparator(ensure_ascii), False)
    if category is FieldCategory.NESTED:
        return Comparison(_nested_comparator(resolve_engine(descriptor.value_type)), True)
    if category is FieldCategory.LIST_LIKE:
        return Comparison(_list_comparator(descriptor, resolve_engine, ensure_ascii), True)
    raise ValueError(f"unknown field category {category!r}")


def run_steps(root: Step) -> Optional[str]:
    """Run a step and every step it yields, innermost first, without recursion."""
    stack: List[Step] = [root]
    result: Optional[str] = None
    while stack:
        try:
            child = stack[-1].send(result)
        except StopIteration as stop:
            stack.pop()
            result = stop.value
        else:
            stack.append(child)
            result = None
    return result


def whole_value_json(value: Any, ensure_ascii: bool = False) -> str:
    """Canonical JSON for a whole value; type-qualified keys if plain keys collide."""
    try:
        return canon_json(value, ensure_ascii)
    except CanonicalizationError:
        return canon_json(value, ensure_ascii, typed_keys=True)


# ---------------------------------------------------------------------------
# Scalar
# ---------------------------------------------------------------------------


def _scalar_comparator(descriptor: FieldDescriptor, ensure_ascii: bool) -> Comparator:
    write_value = scalar_writer(descriptor.value_type)

    def compare(old: Any, new: Any) -> Optional[str]:
        if values_equal(old, new):
            return None
        writer = JsonWriter(ensure_ascii)
        writer.write_start_object()
        _write_side(writer, "OldValue", old, write_value)
        _write_side(writer, "NewValue", new, write_value)
        writer.write_end_object()
        return writer.getvalue()

    return compare


def values_equal(old: Any, new: Any) -> bool:
    """Natural value equality, with NaN equal to itself."""
    if old is None or new is None:
        return old is new
    if old == new:
        return True
    return _is_nan(old) and _is_nan(new)


def _is_nan(value: Any) -> bool:
    if isinstance(value, float):
        return math.isnan(value)
    if isinstance(value, decimal.Decimal):
        return value.is_nan()
    return False


def _write_side(writer: JsonWriter, key: str, value: Any, write_value: ValueWriter) -> None:
    if value is None:
        writer.write_null(key)
    else:
        write_value(writer, key, value)


def scalar_writer(value_type: Any) -> ValueWriter:
    """Pick the serializer for a scalar's declared type."""
    if value_type is Any:
        return _write_dynamic
    cls = get_origin(value_type) or value_type
    if not isinstance(cls, type):
        return _write_dynamic
    if issubclass(cls, bool):
        return _write_bool
    if issubclass(cls, enum.Enum):
        return _write_enum
    if issubclass(cls, str):
        return _write_string
    if issubclass(cls, (int, float, decimal.Decimal)):
        return _write_number
    if issubclass(cls, (datetime.datetime, datetime.date, datetime.time)):
        return _write_isoformat
    if cls is object:
        return _write_dynamic
    return _write_text


def _write_bool(writer: JsonWriter, key: str, value: Any) -> None:
    if isinstance(value, bool):
        writer.write_bool(key, value)
    else:
        _write_dynamic(writer, key, value)


def _write_string(writer: JsonWriter, key: str, value: Any) -> None:
    writer.write_string(key, value if isinstance(value, str) else str(value))


def _write_number(writer: JsonWriter, key: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float, decimal.Decimal)):
        _write_dynamic(writer, key, value)
    elif isinstance(value, float) and not math.isfinite(value):
        writer.write_string(key, _float_text(value))
    elif isinstance(value, decimal.Decimal) and not value.is_finite():
        writer.write_string(key, str(value))
    else:
        writer.write_number(key, value)


def _write_isoformat(writer: JsonWriter, key: str, value: Any) -> None:
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        writer.write_string(key, value.isoformat())
    else:
        _write_dynamic(writer, key, value)


def _write_enum(writer: JsonWriter, key: str, value: Any) -> None:
    writer.write_string(key, value.name if isinstance(value, enum.Enum) else str(value))


def _write_text(writer: JsonWriter, key: str, value: Any) -> None:
    writer.write_string(key, str(value))


def _write_dynamic(writer: JsonWriter, key: str, value: Any) -> None:
    """Serialize by runtime kind, for fields declared as Any or Literal."""
    if isinstance(value, (dict, list, tuple, set, frozenset)) or _has_fields(value):
        writer.write_raw(whole_value_json(value, writer.ensure_ascii), key)
        return
    write = scalar_writer(type(value))
    if write is _write_dynamic:
        _write_text(writer, key, value)
    else:
        write(writer, key, value)


def _has_fields(value: Any) -> bool:
    return hasattr(value, "__dataclass_fields__") or (
        hasattr(value, "__dict__") and not isinstance(value, (type, enum.Enum))
    )


def _float_text(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    return "Infinity" if value > 0 else "-Infinity"


# ---------------------------------------------------------------------------
# Map-like
# ---------------------------------------------------------------------------


def _map_comparator(ensure_ascii: bool) -> Comparator:
    def compare(old: Any, new: Any) -> Optional[str]:
        if old is None and new is None:
            return None
        # Key types take part in identity: {1: x} and {"1": x} differ
        old_typed = _typed_json(old, ensure_ascii)
        new_typed = _typed_json(new, ensure_ascii)
        if old_typed == new_typed:
            return None
        try:
            old_json = _plain_json(old, ensure_ascii)
            new_json = _plain_json(new, ensure_ascii)
        except CanonicalizationError:
            old_json, new_json = old_typed, new_typed
        else:
            if old_json == new_json:
                old_json, new_json = old_typed, new_typed
        writer = JsonWriter(ensure_ascii)
        writer.write_start_object()
        writer.write_raw(old_json, "OldValue")
        writer.write_raw(new_json, "NewValue")
        writer.write_end_object()
        return writer.getvalue()

    return compare


def _plain_json(value: Any, ensure_ascii: bool) -> str:
    return "null" if value is None else canon_json(value, ensure_ascii)


def _typed_json(value: Any, ensure_ascii: bool) -> str:
    return "null" if value is None else canon_json(value, ensure_ascii, typed_keys=True)


# ---------------------------------------------------------------------------
# Nested
# ---------------------------------------------------------------------------


def _nested_comparator(engine: Any) -> Comparator:
    def compare(old: Any, new: Any) -> Step:
        if old is None and new is None:
            return None
        # A missing side reads as an instance holding every field's default
        return (yield engine.walk(old, new))

    return compare


# ---------------------------------------------------------------------------
# List-like
# ---------------------------------------------------------------------------


def _list_comparator(
    descriptor: FieldDescriptor,
    resolve_engine: Callable[[Any], Any],
    ensure_ascii: bool,
) -> Comparator:
    compare_items, items_deferred = build_comparator(
        descriptor.element, resolve_engine, ensure_ascii
    )
    unordered = descriptor.container in (set, frozenset)

    def compare(old: Any, new: Any) -> Step:
        if old is None and new is None:
            return None
        old_items = _materialize(old, unordered)
        new_items = _materialize(new, unordered)

        writer = JsonWriter(ensure_ascii)
        writer.write_start_object()
        changed = False
        for i in range(max(len(old_items), len(new_items))):
            old_item = old_items[i] if i < len(old_items) else None
            new_item = new_items[i] if i < len(new_items) else None
            if old_item is None and new_item is None:
                continue

            key = f"[{i}]"
            if old_item is None or new_item is None:
                changed = True
                if old_item is None:
                    operation, value_key, value = ItemOperation.ADDED, "NewValue", new_item
                else:
                    operation, value_key, value = ItemOperation.REMOVED, "OldValue", old_item
                writer.write_start_object(key)
                writer.write_string("Operation", operation.value)
                writer.write_raw(whole_value_json(value, ensure_ascii), value_key)
                writer.write_end_object()
                continue

            if items_deferred:
                item_change = yield compare_items(old_item, new_item)
            else:
                item_change = compare_items(old_item, new_item)
            if item_change is not None:
                changed = True
                writer.write_raw(item_change, key)

        writer.write_end_object()
        return writer.getvalue() if changed else None

    return compare


def _materialize(items: Any, unordered: bool) -> List[Any]:
    if items is None:
        return []
    if unordered:
        return sort_canonically(items)
    return list(items)
