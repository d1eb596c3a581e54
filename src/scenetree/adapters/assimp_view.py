from __future__ import annotations

import ctypes
import logging
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Tuple

from ..conversion import convert_name

LOG = logging.getLogger(__name__)

_UNREADABLE = object()


def _plain_value(entry) -> Any:
    """Reduce a decoded metadata entry to a Python value that owns its data."""
    value = getattr(entry, "data", entry)
    if isinstance(value, ctypes._SimpleCData):
        return value.value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).split(b"\x00", 1)[0].decode("utf-8", errors="replace")
    if isinstance(value, ctypes.Structure):
        if hasattr(value, "data") and hasattr(value, "length"):
            # aiString
            return convert_name(value)
        if all(hasattr(value, axis) for axis in "xyz"):
            return (float(value.x), float(value.y), float(value.z))
        return _UNREADABLE
    if isinstance(value, (ctypes._Pointer, ctypes.Array)):
        return _UNREADABLE
    return value


def _metadata_of(node) -> Any:
    """Return node metadata as a plain dict, or ``None``.

    pyassimp decodes ``aiMetadata`` into ``keys`` and ``values`` lists set on
    the ``node.metadata`` pointer. Only those decoded values are kept: the raw
    ``mKeys``/``mValues`` entries point into memory that ``pyassimp.release``
    frees once loading is done.
    """
    raw = getattr(node, "metadata", None)
    if raw is None:
        return None
    if isinstance(raw, Mapping):
        return raw
    keys = getattr(raw, "keys", None)
    values = getattr(raw, "values", None)
    if isinstance(keys, list) and isinstance(values, list):
        decoded: Dict[str, Any] = {}
        for key, entry in zip(keys, values):
            name = convert_name(key)
            value = _plain_value(entry)
            if value is _UNREADABLE:
                LOG.warning("Skipping metadata %r with unsupported entry type %s", name, type(entry).__name__)
                continue
            decoded[name] = value
        return decoded
    try:
        if not raw:
            return None
    except ValueError:
        pass
    # Undecoded metadata goes through unchanged; convert_metadata rejects it.
    return raw


class AssimpNodeView:
    """Source view over a pyassimp ``Node``."""

    __slots__ = ("_node", "_mesh_lookup")

    def __init__(self, node, mesh_lookup: Dict[int, int]):
        self._node = node
        self._mesh_lookup = mesh_lookup

    @property
    def name(self) -> Any:
        return getattr(self._node, "name", None)

    @property
    def transform(self) -> Any:
        return getattr(self._node, "transformation", None)

    @property
    def meshes(self) -> Optional[List[Any]]:
        """Scene mesh indices; mesh objects missing from ``scene.meshes`` are skipped."""
        raw = getattr(self._node, "meshes", None)
        if raw is None:
            return None
        resolved: List[Any] = []
        for item in raw:
            if isinstance(item, int):
                resolved.append(item)
                continue
            index = self._mesh_lookup.get(id(item))
            if index is None:
                LOG.warning("Skipping mesh %r on node %r: not part of the scene", item, convert_name(self.name))
                continue
            resolved.append(index)
        return resolved

    @property
    def metadata(self) -> Any:
        return _metadata_of(self._node)

    @property
    def children(self) -> Tuple["AssimpNodeView", ...]:
        kids = getattr(self._node, "children", None) or ()
        return tuple(AssimpNodeView(kid, self._mesh_lookup) for kid in kids)


def view_from_assimp_scene(scene) -> AssimpNodeView:
    """Wrap ``scene.rootnode``; mesh objects are mapped back to ``scene.meshes`` indices."""
    root = getattr(scene, "rootnode", None)
    if root is None:
        raise ValueError("Assimp scene has no root node")
    lookup = {id(mesh): index for index, mesh in enumerate(getattr(scene, "meshes", None) or [])}
    return AssimpNodeView(root, lookup)


__all__ = ["AssimpNodeView", "view_from_assimp_scene"]
