"""Core types and logic for snapdiff."""

from .canon import canon_json, normalize_value, sha256_hex
from .classify import classify_shape, is_record_type
from .diff import default_registry, diff, get_engine
from .engine import EMPTY_DIFF, DiffEngine
from .errors import (
    CanonicalizationError,
    ShapeConfigurationError,
    ShapeMismatchError,
    SnapdiffError,
    SnapshotLoadError,
)
from .loader import load_instance
from .registry import EngineRegistry
from .rules import build_comparator, build_rule, run_steps
from .types import DiffPolicy, FieldCategory, FieldDescriptor, ItemOperation
from .writer import JsonWriter

__all__ = [
    # Core types
    "DiffPolicy",
    "FieldCategory",
    "FieldDescriptor",
    "ItemOperation",
    # Canonicalization
    "canon_json",
    "normalize_value",
    "sha256_hex",
    # Classification and rules
    "classify_shape",
    "is_record_type",
    "build_rule",
    "build_comparator",
    "run_steps",
    # Engine and registry
    "DiffEngine",
    "EMPTY_DIFF",
    "EngineRegistry",
    "default_registry",
    "get_engine",
    "diff",
    # Output
    "JsonWriter",
    # Loading
    "load_instance",
    # Exceptions
    "SnapdiffError",
    "ShapeConfigurationError",
    "ShapeMismatchError",
    "SnapshotLoadError",
    "CanonicalizationError",
]
