from .core import (
    # Engine and registry
    DiffEngine,
    # Core types
    DiffPolicy,
    EngineRegistry,
    FieldCategory,
    FieldDescriptor,
    ItemOperation,
    # Output
    JsonWriter,
    # Exceptions
    CanonicalizationError,
    ShapeConfigurationError,
    ShapeMismatchError,
    SnapdiffError,
    SnapshotLoadError,
    # Canonicalization
    canon_json,
    # Classification
    classify_shape,
    default_registry,
    # Diff
    diff,
    get_engine,
    # Loading
    load_instance,
)
from .version import FORMAT_VERSION, SNAPDIFF_VERSION

__all__ = [
    # Version
    "SNAPDIFF_VERSION",
    "FORMAT_VERSION",
    # Core types
    "DiffPolicy",
    "FieldCategory",
    "FieldDescriptor",
    "ItemOperation",
    # Diff
    "diff",
    "get_engine",
    "default_registry",
    "DiffEngine",
    "EngineRegistry",
    # Classification
    "classify_shape",
    # Canonicalization
    "canon_json",
    # Output
    "JsonWriter",
    # Loading
    "load_instance",
    # Exceptions
    "SnapdiffError",
    "CanonicalizationError",
    "ShapeConfigurationError",
    "ShapeMismatchError",
    "SnapshotLoadError",
]
