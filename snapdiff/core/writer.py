"""Compact streaming JSON writer used to emit diff documents.

The writer only knows about objects: every value is written either at the
top level or after a field name. Tokens are appended to an in-memory buffer
that belongs to a single diff call.
"""

from __future__ import annotations

import decimal
import json
import math
from typing import Any, List, Optional


class JsonWriter:
    """Append-only writer producing compact JSON text (no whitespace)."""

    def __init__(self, ensure_ascii: bool = False):
        self._parts: List[str] = []
        # One flag per open object: True until its first member is written
        self._first_member: List[bool] = []
        self._after_name = False
        self._ensure_ascii = ensure_ascii

    @property
    def ensure_ascii(self) -> bool:
        return self._ensure_ascii

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    def write_field(self, name: str) -> None:
        if not self._first_member:
            raise ValueError("field name written outside of an object")
        if self._after_name:
            raise ValueError(f"field {name!r} written before the previous value")
        if self._first_member[-1]:
            self._first_member[-1] = False
        else:
            self._parts.append(",")
        self._parts.append(self._encode_str(name))
        self._parts.append(":")
        self._after_name = True

    def write_start_object(self, name: Optional[str] = None) -> None:
        self._begin_value(name)
        self._parts.append("{")
        self._first_member.append(True)

    def write_end_object(self) -> None:
        if not self._first_member or self._after_name:
            raise ValueError("unbalanced end of object")
        self._first_member.pop()
        self._parts.append("}")

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------

    def write_null(self, name: Optional[str] = None) -> None:
        self._begin_value(name)
        self._parts.append("null")

    def write_string(self, name: Optional[str], value: str) -> None:
        self._begin_value(name)
        self._parts.append(self._encode_str(value))

    def write_number(self, name: Optional[str], value: Any) -> None:
        self._begin_value(name)
        self._parts.append(_number_text(value))

    def write_bool(self, name: Optional[str], value: bool) -> None:
        self._begin_value(name)
        self._parts.append("true" if value else "false")

    def write_raw(self, json_text: str, name: Optional[str] = None) -> None:
        """Embed already-encoded JSON text verbatim."""
        self._begin_value(name)
        self._parts.append(json_text)

    def getvalue(self) -> str:
        if self._first_member or self._after_name:
            raise ValueError("JSON document is incomplete")
        return "".join(self._parts)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _begin_value(self, name: Optional[str]) -> None:
        if name is not None:
            self.write_field(name)
        elif self._first_member and not self._after_name:
            raise ValueError("value written inside an object without a field name")
        self._after_name = False

    def _encode_str(self, value: str) -> str:
        return json.dumps(value, ensure_ascii=self._ensure_ascii)


def _number_text(value: Any) -> str:
    if isinstance(value, bool):
        raise TypeError("booleans are written with write_bool")
    if isinstance(value, int):
        return str(int(value))
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"non-finite number {value!r} has no JSON form")
        return repr(value)
    if isinstance(value, decimal.Decimal):
        if not value.is_finite():
            raise ValueError(f"non-finite number {value!r} has no JSON form")
        return str(value)
    raise TypeError(f"unsupported number type {type(value).__name__}")
