from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from ..pxr_utils import Usd, UsdGeom


class UsdStageContext:
    """Pre-order numbering of ``UsdGeom.Mesh`` prims below a root prim."""

    def __init__(self, root_prim):
        self.mesh_paths: List[Any] = []
        self._mesh_index: Dict[str, int] = {}
        for prim in Usd.PrimRange(root_prim):
            if prim.IsA(UsdGeom.Mesh):
                self._mesh_index[str(prim.GetPath())] = len(self.mesh_paths)
                self.mesh_paths.append(prim.GetPath())

    def mesh_index(self, prim) -> Optional[int]:
        return self._mesh_index.get(str(prim.GetPath()))


class UsdPrimView:
    """Source view over a USD prim.

    Local transforms are taken as authored (USD row-vector convention,
    translation in the last row).
    """

    __slots__ = ("_prim", "_context")

    def __init__(self, prim, context: UsdStageContext):
        self._prim = prim
        self._context = context

    @property
    def prim(self):
        return self._prim

    @property
    def name(self) -> str:
        return self._prim.GetName()

    @property
    def transform(self):
        if not self._prim.IsA(UsdGeom.Xformable):
            return None
        return UsdGeom.Xformable(self._prim).GetLocalTransformation()

    @property
    def meshes(self) -> List[int]:
        index = self._context.mesh_index(self._prim)
        return [] if index is None else [index]

    @property
    def metadata(self) -> Optional[Dict[str, Any]]:
        data = self._prim.GetCustomData()
        return dict(data) if data else None

    @property
    def children(self) -> Tuple["UsdPrimView", ...]:
        return tuple(UsdPrimView(kid, self._context) for kid in self._prim.GetChildren())


def view_from_usd_stage(stage, root_path: Optional[str] = None) -> UsdPrimView:
    """Return a view rooted at ``root_path`` (default: the stage pseudo-root)."""
    if root_path is None:
        prim = stage.GetPseudoRoot()
    else:
        prim = stage.GetPrimAtPath(root_path)
        if not prim or not prim.IsValid():
            raise ValueError(f"No prim at {root_path}")
    return UsdPrimView(prim, UsdStageContext(prim))


__all__ = ["UsdPrimView", "UsdStageContext", "view_from_usd_stage"]
