from __future__ import annotations

from typing import Any, Optional


class SceneTreeError(Exception):
    """Base class for every error raised by scenetree."""


class ParentUnavailableError(SceneTreeError):
    """Raised when a weak parent reference no longer resolves to a live node."""

    def __init__(self, child_name: str):
        super().__init__(f"Parent of node '{child_name}' is no longer available")
        self.child_name = child_name


class FieldConversionError(SceneTreeError):
    """Raised when a source field cannot be converted into node data."""

    def __init__(self, field_name: str, value: Any, reason: Optional[str] = None):
        detail = f": {reason}" if reason else ""
        super().__init__(f"Cannot convert {field_name} value {value!r}{detail}")
        self.field_name = field_name
        self.value = value


class HierarchyDepthError(SceneTreeError):
    """Raised when a source hierarchy is deeper than the configured limit."""

    def __init__(self, max_depth: int, name: str):
        super().__init__(f"Source hierarchy exceeds max depth {max_depth} at node '{name}'")
        self.max_depth = max_depth
        self.name = name


class SceneLoadError(SceneTreeError):
    """Raised when a scene file cannot be opened or parsed."""


__all__ = [
    "SceneTreeError",
    "ParentUnavailableError",
    "FieldConversionError",
    "HierarchyDepthError",
    "SceneLoadError",
]
