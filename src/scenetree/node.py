"""Scene-graph node model and the shared handle that wraps every node.

Ownership follows forward edges only. A :class:`NodeHandle` owns its
:class:`Node`, and a node owns the handles listed in ``children``. The
back-reference to the parent is a :func:`weakref.ref`, so releasing the last
reference to the root lets plain reference counting reclaim the whole tree.

Locking rules:

* every handle carries its own ``threading.RLock``; ``with handle.lock() as node``
  is the only way to touch node contents
* helpers in this module hold at most one node lock at a time. They copy what
  they need (child handles, the parent ref) under the lock and release it
  before following those edges
* code that must hold two node locks at once takes the ancestor first
"""

from __future__ import annotations

import threading
import weakref
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, TypeVar

import numpy as np

from .conversion import identity_matrix
from .exceptions import ParentUnavailableError

T = TypeVar("T")


@dataclass(eq=False)
class Node:
    """One vertex of the scene graph."""

    name: str = ""
    children: List["NodeHandle"] = field(default_factory=list)
    meshes: List[int] = field(default_factory=list)
    metadata: Optional[Dict[str, Any]] = None
    transformation: np.ndarray = field(default_factory=identity_matrix)
    # Weak so that children never keep their parent alive.
    parent_ref: Optional["weakref.ReferenceType[NodeHandle]"] = field(default=None, repr=False)

    @property
    def is_root(self) -> bool:
        return self.parent_ref is None

    @property
    def parent(self) -> Optional["NodeHandle"]:
        """Resolve the parent handle; ``None`` for the root.

        Raises :class:`ParentUnavailableError` when the parent was reclaimed.
        """
        if self.parent_ref is None:
            return None
        handle = self.parent_ref()
        if handle is None:
            raise ParentUnavailableError(self.name)
        return handle


@dataclass(frozen=True)
class NodeSnapshot:
    """Immutable copy of a subtree, detached from any lock."""

    name: str
    children: Tuple["NodeSnapshot", ...]
    meshes: Tuple[int, ...]
    metadata: Optional[Dict[str, Any]]
    transformation: Tuple[float, ...]  # row-major, 16 values

    def matrix(self) -> np.ndarray:
        return np.array(self.transformation, dtype=float).reshape(4, 4)

    def to_dict(self) -> Dict[str, Any]:
        """Nested plain-dict form, suitable for JSON output."""
        out: Dict[str, Any] = {
            "name": self.name,
            "meshes": list(self.meshes),
            "metadata": self.metadata,
            "transformation": list(self.transformation),
            "children": [],
        }
        stack = [(self, out)]
        while stack:
            snap, payload = stack.pop()
            for child in snap.children:
                child_payload = {
                    "name": child.name,
                    "meshes": list(child.meshes),
                    "metadata": child.metadata,
                    "transformation": list(child.transformation),
                    "children": [],
                }
                payload["children"].append(child_payload)
                stack.append((child, child_payload))
        return out


class NodeHandle:
    """Shared, lock-protected reference to a :class:`Node`.

    Handles compare by identity. Any number of holders may keep a handle; the
    node lives as long as one of them (or its parent's ``children``) does.
    """

    __slots__ = ("_node", "_lock", "__weakref__")

    def __init__(self, node: Node):
        self._node = node
        self._lock = threading.RLock()

    @contextmanager
    def lock(self, timeout: Optional[float] = None) -> Iterator[Node]:
        """Hold this node's lock and yield the node for reading or writing."""
        if not self._lock.acquire(timeout=-1 if timeout is None else timeout):
            raise TimeoutError(f"Timed out after {timeout}s waiting for a node lock")
        try:
            yield self._node
        finally:
            self._lock.release()

    def read(self, fn: Callable[[Node], T]) -> T:
        with self._lock:
            return fn(self._node)

    @property
    def name(self) -> str:
        with self._lock:
            return self._node.name

    def children(self) -> List["NodeHandle"]:
        """Copy of the child handle list, in source order."""
        with self._lock:
            return list(self._node.children)

    def parent(self) -> Optional["NodeHandle"]:
        """Resolve the parent after releasing this node's lock."""
        with self._lock:
            ref = self._node.parent_ref
            name = self._node.name
        if ref is None:
            return None
        handle = ref()
        if handle is None:
            raise ParentUnavailableError(name)
        return handle

    def is_root(self) -> bool:
        with self._lock:
            return self._node.parent_ref is None

    def same_node(self, other: Optional["NodeHandle"]) -> bool:
        return other is self

    def path(self) -> List[str]:
        """Names from the root down to this node."""
        names: List[str] = []
        current: Optional[NodeHandle] = self
        while current is not None:
            names.append(current.name)
            current = current.parent()
        names.reverse()
        return names

    def snapshot(self) -> NodeSnapshot:
        """Copy this subtree into immutable :class:`NodeSnapshot` objects."""
        records: List[Tuple[str, Tuple[int, ...], Optional[Dict[str, Any]], Tuple[float, ...], List[NodeHandle]]] = []
        positions: Dict[int, int] = {}
        stack: List[NodeHandle] = [self]
        while stack:
            handle = stack.pop()
            with handle._lock:
                node = handle._node
                record = (
                    node.name,
                    tuple(node.meshes),
                    dict(node.metadata) if node.metadata is not None else None,
                    tuple(float(v) for v in np.asarray(node.transformation, dtype=float).reshape(-1)),
                    list(node.children),
                )
            positions[id(handle)] = len(records)
            records.append(record)
            stack.extend(reversed(record[4]))

        # Pre-order puts every child after its parent, so build back to front.
        built: List[Optional[NodeSnapshot]] = [None] * len(records)
        for pos in range(len(records) - 1, -1, -1):
            name, meshes, metadata, transformation, kids = records[pos]
            built[pos] = NodeSnapshot(
                name=name,
                children=tuple(built[positions[id(kid)]] for kid in kids),
                meshes=meshes,
                metadata=metadata,
                transformation=transformation,
            )
        return built[0]

    def __repr__(self) -> str:
        with self._lock:
            name = self._node.name
            count = len(self._node.children)
        return f"<NodeHandle {name!r} children={count}>"


def iter_with_depth(root: NodeHandle) -> Iterator[Tuple[NodeHandle, int]]:
    """Pre-order walk over forward edges, yielding ``(handle, depth)``."""
    stack: List[Tuple[NodeHandle, int]] = [(root, 0)]
    while stack:
        handle, depth = stack.pop()
        yield handle, depth
        kids = handle.children()
        stack.extend((kid, depth + 1) for kid in reversed(kids))


def iter_preorder(root: NodeHandle) -> Iterator[NodeHandle]:
    for handle, _ in iter_with_depth(root):
        yield handle


def find(root: NodeHandle, name: str) -> Optional[NodeHandle]:
    """First node named ``name`` in pre-order, or ``None``."""
    for handle in iter_preorder(root):
        if handle.name == name:
            return handle
    return None


def count_nodes(root: NodeHandle) -> int:
    return sum(1 for _ in iter_preorder(root))


def _describe(node: Node) -> str:
    parts = [node.name or "<unnamed>"]
    if node.meshes:
        parts.append(f"meshes={list(node.meshes)}")
    if node.metadata:
        parts.append(f"metadata={sorted(node.metadata)}")
    return " ".join(parts)


def format_tree(root: NodeHandle, indent: str = "  ") -> str:
    """Render the subtree as indented text, following forward edges only."""
    lines = []
    for handle, depth in iter_with_depth(root):
        lines.append(f"{indent * depth}{handle.read(_describe)}")
    return "\n".join(lines)


__all__ = [
    "Node",
    "NodeHandle",
    "NodeSnapshot",
    "iter_preorder",
    "iter_with_depth",
    "find",
    "count_nodes",
    "format_tree",
]
