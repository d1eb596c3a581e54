"""Per-field conversion from source hierarchy values into node data.

Every helper here is pure: the same source value always yields the same
converted value, independent of where the node sits in the tree.

Absent data is never an error (``None`` meshes become ``[]``, ``None``
metadata stays ``None``, a missing transform is identity). Malformed mesh or
metadata values either fall back to the empty/absent value with a warning, or
raise :class:`FieldConversionError` when ``strict`` is requested. A malformed
transform always raises.
"""

from __future__ import annotations

import logging
import operator
from collections.abc import Mapping
from typing import Any, Dict, List, Optional

import numpy as np

from .exceptions import FieldConversionError

LOG = logging.getLogger(__name__)

# assimp's aiMatrix4x4 names its row-major cells a1..a4, b1..b4, c1..c4, d1..d4
_ASSIMP_CELLS = tuple(f"{row}{col}" for row in "abcd" for col in "1234")


def identity_matrix() -> np.ndarray:
    return np.eye(4, dtype=float)


def convert_name(value: Any) -> str:
    """Return node names as text; assimp ``aiString`` and raw bytes are decoded."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    data = getattr(value, "data", None)
    if isinstance(data, (bytes, bytearray)):
        length = getattr(value, "length", None)
        raw = bytes(data[:length]) if isinstance(length, int) else bytes(data)
        return raw.split(b"\x00", 1)[0].decode("utf-8", errors="replace")
    return str(value)


def convert_transform(value: Any) -> np.ndarray:
    """Convert a source transform into a float64 (4, 4) array in row-major order.

    Accepted inputs: a 4x4 numpy array, nested 4x4 sequences, a flat sequence
    of 16 row-major values, an assimp-style matrix exposing ``a1``..``d4``, or
    any matrix object indexable as ``value[row][col]`` (e.g. ``Gf.Matrix4d``).
    """
    if value is None:
        return identity_matrix()
    if all(hasattr(value, cell) for cell in _ASSIMP_CELLS):
        try:
            cells = [float(getattr(value, cell)) for cell in _ASSIMP_CELLS]
        except (TypeError, ValueError) as exc:
            raise FieldConversionError("transformation", value, str(exc)) from exc
        return np.array(cells, dtype=float).reshape(4, 4)
    try:
        arr = np.array(value, dtype=float)
    except (TypeError, ValueError):
        arr = None
    if arr is not None and (arr.shape == (4, 4) or arr.shape == (16,)):
        return arr.reshape(4, 4)
    try:
        rows = [[float(value[i][j]) for j in range(4)] for i in range(4)]
    except (TypeError, ValueError, IndexError, KeyError) as exc:
        raise FieldConversionError("transformation", value, "expected a 4x4 matrix") from exc
    return np.array(rows, dtype=float)


def _malformed(field_name: str, value: Any, reason: str, strict: bool, fallback):
    if strict:
        raise FieldConversionError(field_name, value, reason)
    LOG.warning("Ignoring malformed %s value %r (%s)", field_name, value, reason)
    return fallback


def convert_meshes(value: Any, *, strict: bool = False) -> List[int]:
    """Return mesh indices as a list of ints; order and duplicates are kept."""
    if value is None:
        return []
    if isinstance(value, np.ndarray):
        if value.size == 0:
            return []
        if not np.issubdtype(value.dtype, np.integer):
            return _malformed("meshes", value, "expected an integer array", strict, [])
        value = value.reshape(-1).tolist()
    if isinstance(value, (str, bytes, bytearray, Mapping)):
        return _malformed("meshes", value, "expected a sequence of indices", strict, [])
    try:
        items = list(value)
    except TypeError:
        return _malformed("meshes", value, "expected a sequence of indices", strict, [])
    indices: List[int] = []
    for item in items:
        if isinstance(item, bool):
            return _malformed("meshes", value, f"boolean entry {item!r}", strict, [])
        try:
            index = operator.index(item)
        except TypeError:
            return _malformed("meshes", value, f"non-integer entry {item!r}", strict, [])
        if index < 0:
            return _malformed("meshes", value, f"negative index {index}", strict, [])
        indices.append(index)
    return indices


def convert_metadata(value: Any, *, strict: bool = False) -> Optional[Dict[str, Any]]:
    """Return metadata as a dict, or ``None`` when the source has none.

    Values are passed through untouched; only the key/value pairing is
    resolved here.
    """
    if value is None:
        return None
    if isinstance(value, Mapping):
        return {convert_name(key): item for key, item in value.items()}
    keys = getattr(value, "keys", None)
    values = getattr(value, "values", None)
    if keys is not None and values is not None and not callable(keys) and not callable(values):
        try:
            keys = list(keys)
            values = list(values)
        except TypeError:
            return _malformed("metadata", value, "keys/values are not sequences", strict, None)
        if len(keys) != len(values):
            return _malformed(
                "metadata", value, f"{len(keys)} keys but {len(values)} values", strict, None
            )
        return {convert_name(key): item for key, item in zip(keys, values)}
    return _malformed("metadata", value, "expected a mapping", strict, None)


__all__ = [
    "identity_matrix",
    "convert_name",
    "convert_transform",
    "convert_meshes",
    "convert_metadata",
]
