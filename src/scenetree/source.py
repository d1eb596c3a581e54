from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Protocol, Sequence, Tuple, runtime_checkable


@runtime_checkable
class SourceHierarchyView(Protocol):
    """Read-only view of one node of an externally decoded hierarchy.

    ``children`` must be ordered and may be empty; every child satisfies the
    same contract. Views are never mutated by scenetree.
    """

    @property
    def name(self) -> Any: ...

    @property
    def transform(self) -> Any: ...

    @property
    def meshes(self) -> Any: ...

    @property
    def metadata(self) -> Any: ...

    @property
    def children(self) -> Sequence["SourceHierarchyView"]: ...


@dataclass(frozen=True)
class SourceNode:
    """Plain in-memory source view."""

    name: str = ""
    transform: Any = None
    meshes: Tuple[int, ...] = tuple()
    metadata: Optional[Dict[str, Any]] = None
    children: Tuple["SourceNode", ...] = field(default_factory=tuple)


def source_from_mapping(data: Dict[str, Any]) -> SourceNode:
    """Build a :class:`SourceNode` tree from nested dictionaries.

    Recognised keys: ``name``, ``transform``, ``meshes``, ``metadata`` and
    ``children`` (a list of mappings of the same shape).
    """
    if not isinstance(data, dict):
        raise ValueError(f"Source node must be a mapping, got {type(data).__name__}")
    children = tuple(source_from_mapping(child) for child in data.get("children") or [])
    meshes = data.get("meshes")
    return SourceNode(
        name=data.get("name", ""),
        transform=data.get("transform"),
        meshes=tuple(meshes) if meshes is not None else tuple(),
        metadata=data.get("metadata"),
        children=children,
    )


def iter_source(view: SourceHierarchyView) -> Iterator[Tuple[SourceHierarchyView, int]]:
    """Pre-order walk over a source hierarchy, yielding ``(view, depth)``."""
    stack = [(view, 0)]
    while stack:
        current, depth = stack.pop()
        yield current, depth
        kids = list(current.children or ())
        stack.extend((kid, depth + 1) for kid in reversed(kids))


__all__ = ["SourceHierarchyView", "SourceNode", "source_from_mapping", "iter_source"]
