"""
Engine registry: shape -> built DiffEngine, populated lazily.

Construction runs once per shape under a re-entrant lock. An engine is
registered as "building" before its rules are made, so a shape that refers
to itself (directly or through other shapes) resolves to the engine already
under construction instead of recursing forever. Engines become visible to
other threads only after the outermost build finishes; if any shape in that
build fails, every engine begun in it is discarded.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional

from .classify import classify_shape
from .engine import DiffEngine
from .errors import ShapeConfigurationError
from .rules import build_rule
from .types import DiffPolicy

logger = logging.getLogger(__name__)


class EngineRegistry:
    """Thread-safe, append-only cache of diff engines keyed by shape."""

    def __init__(self, policy: Optional[DiffPolicy] = None):
        self.policy = policy or DiffPolicy.default()
        self._engines: Dict[Any, DiffEngine] = {}
        self._building: Dict[Any, DiffEngine] = {}
        self._lock = threading.RLock()

    def get_or_build(self, shape: Any) -> DiffEngine:
        """
        Return the engine for a shape, building it on first use.

        Raises:
            ShapeConfigurationError: If the shape (or any shape reachable
                from its fields) cannot be classified.
        """
        try:
            engine = self._engines.get(shape)
        except TypeError:
            raise ShapeConfigurationError("shape must be hashable", shape=shape) from None
        if engine is not None:
            return engine

        with self._lock:
            engine = self._engines.get(shape)
            if engine is not None:
                return engine

            outermost = not self._building
            try:
                engine = self._build(shape)
            except Exception:
                if outermost:
                    discarded = len(self._building)
                    self._building.clear()
                    logger.warning(
                        "engine build for %r failed; discarded %d partial engine(s)",
                        shape,
                        discarded,
                    )
                raise

            if outermost:
                self._engines.update(self._building)
                logger.debug(
                    "published %d engine(s) for %r", len(self._building), shape
                )
                self._building.clear()
            return engine

    def __contains__(self, shape: Any) -> bool:
        return shape in self._engines

    def __len__(self) -> int:
        return len(self._engines)

    def _build(self, shape: Any) -> DiffEngine:
        engine = self._building.get(shape)
        if engine is not None:
            # Reached through a self-referential field
            return engine

        engine = DiffEngine(shape, self.policy)
        self._building[shape] = engine
        fields = classify_shape(shape, self.policy)
        rules = [
            build_rule(f, self.get_or_build, self.policy.ensure_ascii) for f in fields
        ]
        engine.install(fields, rules)
        logger.debug("built engine for %r with %d field(s)", shape, len(fields))
        return engine
