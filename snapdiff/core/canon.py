"""Deterministic canonicalization of snapshot values.

Provides the stable JSON text used for whole-value comparison of map-like
fields and for serializing list items that were added or removed.

Guarantees:
- canon_json(v) is deterministic: same input always yields identical text
- Dict key order is irrelevant (sorted internally)
- Two keys of one mapping that render to the same JSON key (1 and "1")
  raise CanonicalizationError; typed_keys=True keeps them apart
- Decimals keep every digit: a value a float cannot hold exactly is
  emitted as a string
- Sets are emitted in sorted canonical order
- Floats use repr-level precision; -0.0 collapses to 0.0; NaN/Infinity
  become strings
- Records (dataclasses and plain objects) become objects of their public
  attributes
- Output is compact: no whitespace between tokens
"""
from __future__ import annotations

import dataclasses
import datetime
import decimal
import enum
import hashlib
import json
import math
import uuid
from typing import Any, Dict, List

from .errors import CanonicalizationError


def canon_json(value: Any, ensure_ascii: bool = False, typed_keys: bool = False) -> str:
    """Canonicalize a value to compact JSON text.

    Args:
        value: Any JSON-like value, record instance, or scalar.
        ensure_ascii: Escape non-ASCII characters when True.
        typed_keys: Prefix every mapping key with its type name, so that
            ``1`` and ``"1"`` stay distinct keys.

    Returns:
        Canonical JSON text.

    Raises:
        CanonicalizationError: Two keys of one mapping render to the same
            JSON key.
    """
    return json.dumps(
        normalize_value(value, typed_keys),
        sort_keys=True,
        ensure_ascii=ensure_ascii,
        separators=(",", ":"),
    )


def sha256_hex(data: bytes) -> str:
    """Compute SHA-256 hex digest of bytes."""
    return hashlib.sha256(data).hexdigest()


def normalize_value(value: Any, typed_keys: bool = False) -> Any:
    """Reduce a value to plain JSON types (dict, list, str, int, float, bool, None)."""
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, enum.Enum):
        return normalize_value(value.value, typed_keys)
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        return _normalize_float(value)
    if isinstance(value, decimal.Decimal):
        return _normalize_decimal(value)
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        data = bytes(value)
        return {"__bytes__": True, "sha256": sha256_hex(data), "length": len(data)}
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, dict):
        return _normalize_mapping(value, typed_keys)
    if isinstance(value, (set, frozenset)):
        return [normalize_value(v, typed_keys) for v in sort_canonically(value, typed_keys)]
    if isinstance(value, (list, tuple)):
        return [normalize_value(v, typed_keys) for v in value]
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            f.name: normalize_value(getattr(value, f.name), typed_keys)
            for f in dataclasses.fields(value)
        }
    if hasattr(value, "__dict__") and not isinstance(value, type):
        return {
            k: normalize_value(v, typed_keys)
            for k, v in vars(value).items()
            if not k.startswith("_")
        }
    return str(value)


def key_text(key: Any, typed: bool = False) -> str:
    """Render a mapping key as the JSON object key it becomes."""
    text = str(key.value) if isinstance(key, enum.Enum) else str(key)
    if typed:
        return f"{type(key).__qualname__}:{text}"
    return text


def sort_canonically(items: Any, typed_keys: bool = False) -> List[Any]:
    """Order an unordered collection by the canonical text of its members."""
    return sorted(items, key=lambda item: canon_json(item, typed_keys=typed_keys))


def _normalize_mapping(value: dict, typed_keys: bool) -> Dict[str, Any]:
    normalized: Dict[str, Any] = {}
    seen: Dict[str, Any] = {}
    for key, item in value.items():
        text = key_text(key, typed_keys)
        if text in seen:
            raise CanonicalizationError(
                f"mapping keys {seen[text]!r} and {key!r} both render as {text!r}",
                (seen[text], key),
            )
        seen[text] = key
        normalized[text] = normalize_value(item, typed_keys)
    return dict(sorted(normalized.items()))


def _normalize_decimal(value: decimal.Decimal) -> Any:
    if not value.is_finite():
        return str(value)
    if value == value.to_integral_value():
        return int(value)
    as_float = float(value)
    if decimal.Decimal(repr(as_float)) == value:
        return _normalize_float(as_float)
    # More digits than a float holds
    return str(value.normalize())


def _normalize_float(value: float) -> Any:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    normalized = float(f"{value:.17g}")
    if normalized == 0.0:
        normalized = 0.0
    return normalized
