from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from typing import Sequence

from .config import BuildOptions, load_options
from .exceptions import SceneTreeError
from .scene import PostProcess, load_scene

LOG = logging.getLogger(__name__)


class _JoinPathAction(argparse.Action):
    """Join successive CLI tokens into a single path string (handles spaces gracefully)."""

    def __call__(self, parser, namespace, values, option_string=None):
        joined = " ".join(values).strip()
        setattr(namespace, self.dest, joined or None)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse the CLI arguments for the tree inspector."""

    parser = argparse.ArgumentParser(
        prog="scenetree",
        description="Load a 3D asset and print its node hierarchy",
    )
    parser.add_argument(
        "input_path",
        nargs="+",
        action=_JoinPathAction,
        help="Scene file (IFC, USD, or anything assimp can read)",
    )
    parser.add_argument(
        "--post-process",
        dest="post_process",
        nargs="*",
        default=None,
        choices=[member.name.lower() for member in PostProcess],
        help="assimp post-processing steps applied before the tree is built",
    )
    parser.add_argument(
        "--config",
        dest="config_path",
        nargs="+",
        action=_JoinPathAction,
        default=None,
        help="JSON or YAML file with build options",
    )
    parser.add_argument(
        "--strict",
        dest="strict_fields",
        action="store_true",
        default=None,
        help="Fail the whole build on malformed mesh or metadata fields",
    )
    parser.add_argument(
        "--max-depth",
        dest="max_depth",
        type=int,
        default=None,
        help="Refuse hierarchies deeper than this many levels",
    )
    parser.add_argument(
        "--json",
        dest="as_json",
        action="store_true",
        help="Print the tree as JSON instead of indented text",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: %(default)s)",
    )
    return parser.parse_args(argv)


def _resolve_options(args: argparse.Namespace) -> BuildOptions:
    options = load_options(args.config_path) if args.config_path else BuildOptions()
    overrides = {}
    if args.strict_fields is not None:
        overrides["strict_fields"] = args.strict_fields
    if args.max_depth is not None:
        overrides["max_depth"] = args.max_depth
    return replace(options, **overrides) if overrides else options


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s: %(message)s")
    try:
        options = _resolve_options(args)
        scene = load_scene(args.input_path, args.post_process, options=options)
    except (SceneTreeError, ValueError, OSError, RuntimeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    if scene.root is None:
        LOG.warning("%s has no root node", args.input_path)
        return 0
    if args.as_json:
        print(json.dumps(scene.root.snapshot().to_dict(), indent=2, default=str))
    else:
        print(scene.format())
    return 0


__all__ = ["main", "parse_args"]
