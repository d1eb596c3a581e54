"""Shared, thread-safe scene-graph trees built from imported 3D asset hierarchies."""

from .builder import BuildStats, TreeBuilder, build_tree
from .config import BuildOptions, load_options
from .exceptions import (
    FieldConversionError,
    HierarchyDepthError,
    ParentUnavailableError,
    SceneLoadError,
    SceneTreeError,
)
from .node import (
    Node,
    NodeHandle,
    NodeSnapshot,
    count_nodes,
    find,
    format_tree,
    iter_preorder,
    iter_with_depth,
)
from .scene import PostProcess, Scene, load_scene
from .source import SourceHierarchyView, SourceNode, iter_source, source_from_mapping

__all__ = [
    "BuildOptions",
    "BuildStats",
    "FieldConversionError",
    "HierarchyDepthError",
    "Node",
    "NodeHandle",
    "NodeSnapshot",
    "ParentUnavailableError",
    "PostProcess",
    "Scene",
    "SceneLoadError",
    "SceneTreeError",
    "SourceHierarchyView",
    "SourceNode",
    "TreeBuilder",
    "build_tree",
    "count_nodes",
    "find",
    "format_tree",
    "iter_preorder",
    "iter_source",
    "iter_with_depth",
    "load_options",
    "load_scene",
    "source_from_mapping",
]
