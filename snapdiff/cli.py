"""snapdiff CLI.

Entry point for the ``snapdiff`` command-line tool.

Usage:
    snapdiff diff --shape module:Class <old.json> <new.json>
                  [--ascii] [--pretty] [--app-dir DIR] [--verbose]
    snapdiff fields --shape module:Class [--format json|text]
                  [--app-dir DIR] [--verbose]

Exit status of ``diff``: 0 when the snapshots are equal, 1 when they differ,
2 when the shape or a snapshot cannot be loaded.
"""

from __future__ import annotations

import argparse
import importlib
import json
import logging
import os
import sys
from typing import Any

from .core.engine import EMPTY_DIFF
from .core.errors import SnapdiffError
from .core.loader import load_instance
from .core.registry import EngineRegistry
from .core.types import DiffPolicy
from .version import FORMAT_VERSION, SNAPDIFF_VERSION

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _fail(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(2)


def _import_shape(reference: str, app_dir: str) -> Any:
    module_name, sep, qualname = reference.partition(":")
    if not sep or not module_name or not qualname:
        _fail(f"shape must look like 'module:Class', got '{reference}'")

    if app_dir not in sys.path:
        sys.path.insert(0, app_dir)
    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as exc:
        _fail(f"cannot import module '{module_name}': {exc}")
    for part in qualname.split("."):
        try:
            target = getattr(target, part)
        except AttributeError:
            _fail(f"module '{module_name}' has no attribute '{qualname}'")
    return target


def _read_json(path: str) -> Any:
    try:
        with open(path, encoding="utf-8") as handle:
            return json.load(handle)
    except OSError as exc:
        _fail(f"cannot read {path}: {exc.strerror}")
    except json.JSONDecodeError as exc:
        _fail(f"{path} is not valid JSON: {exc}")


def _registry(args: argparse.Namespace) -> EngineRegistry:
    policy = DiffPolicy.ascii() if getattr(args, "ascii", False) else DiffPolicy.default()
    return EngineRegistry(policy)


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


def _cmd_diff(args: argparse.Namespace) -> None:
    shape = _import_shape(args.shape, args.app_dir)
    registry = _registry(args)

    try:
        old = load_instance(shape, _read_json(args.old), registry)
        new = load_instance(shape, _read_json(args.new), registry)
        result = registry.get_or_build(shape).diff(old, new)
    except SnapdiffError as exc:
        _fail(str(exc))

    if args.pretty:
        print(json.dumps(json.loads(result), indent=2, ensure_ascii=args.ascii))
    else:
        print(result)

    if result != EMPTY_DIFF:
        sys.exit(1)


def _cmd_fields(args: argparse.Namespace) -> None:
    shape = _import_shape(args.shape, args.app_dir)
    try:
        engine = _registry(args).get_or_build(shape)
    except SnapdiffError as exc:
        _fail(str(exc))

    rows = [
        {
            "name": f.name,
            "category": f.category.value,
            "type": _type_name(f.value_type),
            "nullable": f.nullable,
        }
        for f in engine.fields
    ]
    if args.format == "json":
        print(json.dumps(rows, indent=2))
        return
    width = max((len(r["name"]) for r in rows), default=0)
    for row in rows:
        suffix = " (nullable)" if row["nullable"] else ""
        print(f"{row['name']:<{width}}  {row['category']:<9}  {row['type']}{suffix}")


def _type_name(tp: Any) -> str:
    if isinstance(tp, type):
        return tp.__qualname__
    return repr(tp).replace("typing.", "")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--shape", required=True, help="Record class to load, as 'module:Class'"
    )
    parser.add_argument(
        "--app-dir",
        default=os.getcwd(),
        help="Directory prepended to sys.path before importing (default: cwd)",
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Log engine construction to stderr"
    )


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="snapdiff",
        description="snapdiff: field-level JSON diffs of record snapshots",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"snapdiff {SNAPDIFF_VERSION} (format {FORMAT_VERSION})",
    )
    subparsers = parser.add_subparsers(dest="command")

    diff_parser = subparsers.add_parser("diff", help="Diff two JSON snapshots")
    diff_parser.add_argument("old", help="Path to the 'before' snapshot")
    diff_parser.add_argument("new", help="Path to the 'after' snapshot")
    _add_common(diff_parser)
    diff_parser.add_argument(
        "--ascii", action="store_true", help="Escape non-ASCII characters"
    )
    diff_parser.add_argument(
        "--pretty", action="store_true", help="Indent the diff for reading"
    )
    diff_parser.set_defaults(func=_cmd_diff)

    fields_parser = subparsers.add_parser(
        "fields", help="Show how a shape's fields are classified"
    )
    _add_common(fields_parser)
    fields_parser.add_argument(
        "--format",
        choices=["json", "text"],
        default="text",
        help="Output format (default: text)",
    )
    fields_parser.set_defaults(func=_cmd_fields)

    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s"
        )
    args.func(args)


if __name__ == "__main__":
    main()
