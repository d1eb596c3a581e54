"""Materialise a source hierarchy into a shared :class:`~scenetree.node.Node` tree.

The walk is depth-first and pre-order, driven by an explicit worklist rather
than the call stack, so arbitrarily deep sources only cost heap memory. Each
node is fully populated before any child is attached, and children are
appended to their parent in source order.

Cyclic sources are a caller error: without ``max_depth`` the walk never
terminates on them.
"""

from __future__ import annotations

import logging
import weakref
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .config import BuildOptions
from .conversion import convert_meshes, convert_metadata, convert_name, convert_transform
from .exceptions import HierarchyDepthError
from .node import Node, NodeHandle
from .source import SourceHierarchyView

LOG = logging.getLogger(__name__)


@dataclass
class BuildStats:
    nodes: int = 0
    depth: int = 0  # deepest level reached; the root is level 0


class TreeBuilder:
    """Build :class:`NodeHandle` trees from :class:`SourceHierarchyView` roots."""

    def __init__(self, options: Optional[BuildOptions] = None):
        self.options = options if options is not None else BuildOptions()
        self.stats = BuildStats()

    def create_node(self, view: SourceHierarchyView, parent: Optional[NodeHandle]) -> Node:
        """Convert the primitive fields of ``view``; children are attached later."""
        strict = self.options.strict_fields
        return Node(
            name=convert_name(view.name),
            children=[],
            meshes=convert_meshes(view.meshes, strict=strict),
            metadata=convert_metadata(view.metadata, strict=strict),
            transformation=convert_transform(view.transform),
            parent_ref=weakref.ref(parent) if parent is not None else None,
        )

    def build(self, view: SourceHierarchyView) -> NodeHandle:
        """Build the tree under ``view``; its counters are left in ``self.stats``.

        ``self.stats`` belongs to whichever build finished last. Threads sharing
        one builder should call :meth:`build_with_stats` instead.
        """
        root, self.stats = self.build_with_stats(view)
        return root

    def build_with_stats(self, view: SourceHierarchyView) -> Tuple[NodeHandle, BuildStats]:
        """Build the tree under ``view`` and return it with this build's counters."""
        max_depth = self.options.max_depth
        stats = BuildStats()
        root: Optional[NodeHandle] = None
        stack: List[Tuple[SourceHierarchyView, Optional[NodeHandle], int]] = [(view, None, 0)]
        while stack:
            current, parent, depth = stack.pop()
            if max_depth is not None and depth >= max_depth:
                raise HierarchyDepthError(max_depth, convert_name(current.name))

            handle = NodeHandle(self.create_node(current, parent))
            if parent is None:
                root = handle
            else:
                with parent.lock() as parent_node:
                    parent_node.children.append(handle)

            stats.nodes += 1
            stats.depth = max(stats.depth, depth)
            kids = list(current.children or ())
            # reversed so the first child is popped first
            stack.extend((kid, handle, depth + 1) for kid in reversed(kids))

        LOG.debug("Built scene tree: %d node(s), depth %d", stats.nodes, stats.depth)
        return root, stats


def build_tree(view: SourceHierarchyView, options: Optional[BuildOptions] = None) -> NodeHandle:
    """Build a tree from ``view`` and return the root handle."""
    return TreeBuilder(options).build(view)


__all__ = ["BuildStats", "TreeBuilder", "build_tree"]
