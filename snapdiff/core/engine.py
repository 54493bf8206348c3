"""
Diff engine for one shape.

An engine owns the ordered rules built for a shape: every scalar field first,
then every complex (nested, list-like, map-like) field, each group in field
declaration order. Engines are created by an EngineRegistry, installed once,
and never change afterwards, so a single engine may serve any number of
threads at the same time.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .rules import FieldRule, Step, run_steps
from .types import DiffPolicy, FieldDescriptor
from .writer import JsonWriter

EMPTY_DIFF = "{}"


class DiffEngine:
    """
    Compares two instances of one shape and renders the changes as JSON.

    The output is a compact JSON object holding one key per changed field;
    unchanged fields (including fields that are None on both sides) never
    appear. Lists are compared by index: an element inserted in the middle
    of a list reports every later index as changed.
    """

    def __init__(self, shape: Any, policy: DiffPolicy):
        self.shape = shape
        self.policy = policy
        self._fields: Tuple[FieldDescriptor, ...] = ()
        self._rules: Tuple[FieldRule, ...] = ()
        self._installed = False

    def install(self, fields: Sequence[FieldDescriptor], rules: Sequence[FieldRule]) -> None:
        """
        Attach the classified fields and their rules, scalars first.

        Called exactly once by the registry that created the engine.
        """
        if self._installed:
            raise RuntimeError(f"engine for {self.shape!r} is already installed")
        if len(fields) != len(rules):
            raise ValueError("every field needs exactly one rule")
        pairs = list(zip(fields, rules))
        ordered = [p for p in pairs if not p[0].category.is_complex] + [
            p for p in pairs if p[0].category.is_complex
        ]
        self._fields = tuple(f for f, _ in ordered)
        self._rules = tuple(r for _, r in ordered)
        self._installed = True

    @property
    def fields(self) -> Tuple[FieldDescriptor, ...]:
        """Classified fields in emission order."""
        return self._fields

    def diff(self, old: Any, new: Any) -> str:
        """
        Diff two instances of this engine's shape.

        Args:
            old: The "before" snapshot; None reads as an all-default instance
            new: The "after" snapshot; None reads as an all-default instance

        Returns:
            Compact JSON object text, ``{}`` when nothing differs
        """
        result = self.diff_or_none(old, new)
        return EMPTY_DIFF if result is None else result

    def diff_or_none(self, old: Any, new: Any) -> Optional[str]:
        """Like diff(), but None when nothing differs."""
        return run_steps(self.walk(old, new))

    def walk(self, old: Any, new: Any) -> Step:
        """
        Diff as a resumable step.

        Nested and list-like fields yield child steps instead of calling into
        other engines, and are sent the child's change text back. run_steps
        drives the whole tree from one loop, so snapshot depth is bounded by
        memory, not by the interpreter stack.
        """
        writer = JsonWriter(self.policy.ensure_ascii)
        writer.write_start_object()
        for rule in self._rules:
            old_value, new_value = rule.read(old), rule.read(new)
            if rule.deferred:
                change = yield rule.compare(old_value, new_value)
            else:
                change = rule.compare(old_value, new_value)
            if change is not None:
                writer.write_raw(change, rule.name)
        writer.write_end_object()
        result = writer.getvalue()
        return None if result == EMPTY_DIFF else result

    def diff_dict(self, old: Any, new: Any) -> Dict[str, Any]:
        """Diff and parse the result into plain Python objects."""
        return json.loads(self.diff(old, new))

    def field_names(self) -> List[str]:
        return [f.name for f in self._fields]

    def __repr__(self) -> str:
        state = "installed" if self._installed else "building"
        return f"DiffEngine(shape={self.shape!r}, fields={len(self._fields)}, {state})"
