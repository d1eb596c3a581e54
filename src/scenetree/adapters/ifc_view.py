"""Source view over the spatial decomposition of an IFC model.

The hierarchy starts at ``IfcProject`` and follows, for every object, its
aggregation children (``IsDecomposedBy``) followed by the elements contained
in it (``ContainsElements``). Products carrying a ``Representation`` receive
a mesh index in pre-order; :attr:`IfcModelContext.products` maps each index
back to its entity.

Transforms are the object's ``RelativePlacement`` in model length units,
which is the placement relative to ``PlacementRelTo``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import ifcopenshell
import ifcopenshell.util.element
import ifcopenshell.util.placement

LOG = logging.getLogger(__name__)


def _entity_label(entity) -> str:
    """Return a user-friendly label for hierarchy nodes."""
    for attr in ("Name", "LongName", "Description"):
        value = getattr(entity, attr, None)
        if isinstance(value, str) and value.strip():
            return value.strip()
    label = entity.is_a() if hasattr(entity, "is_a") else "IfcEntity"
    try:
        step_id = entity.id()
    except Exception:
        step_id = None
    return f"{label}_{step_id}" if step_id is not None else label


def _spatial_children(entity) -> List[Any]:
    kids: List[Any] = []
    for rel in getattr(entity, "IsDecomposedBy", None) or []:
        kids.extend(getattr(rel, "RelatedObjects", None) or [])
    for rel in getattr(entity, "ContainsElements", None) or []:
        kids.extend(getattr(rel, "RelatedElements", None) or [])
    return kids


class IfcModelContext:
    """Mesh numbering shared by every view over one model."""

    def __init__(self, root):
        self.products: List[Any] = []
        self._mesh_index: Dict[int, int] = {}
        stack = [root]
        while stack:
            entity = stack.pop()
            if getattr(entity, "Representation", None) is not None:
                self._mesh_index[entity.id()] = len(self.products)
                self.products.append(entity)
            stack.extend(reversed(_spatial_children(entity)))

    def mesh_index(self, entity) -> Optional[int]:
        return self._mesh_index.get(entity.id())


class IfcSpatialView:
    __slots__ = ("_entity", "_context")

    def __init__(self, entity, context: IfcModelContext):
        self._entity = entity
        self._context = context

    @property
    def entity(self):
        return self._entity

    @property
    def context(self) -> IfcModelContext:
        return self._context

    @property
    def name(self) -> str:
        return _entity_label(self._entity)

    @property
    def transform(self):
        placement = getattr(self._entity, "ObjectPlacement", None)
        if placement is None or not placement.is_a("IfcLocalPlacement"):
            return None
        relative = getattr(placement, "RelativePlacement", None)
        if relative is None:
            return None
        return ifcopenshell.util.placement.get_axis2placement(relative)

    @property
    def meshes(self) -> List[int]:
        index = self._context.mesh_index(self._entity)
        return [] if index is None else [index]

    @property
    def metadata(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"ifc_class": self._entity.is_a()}
        guid = getattr(self._entity, "GlobalId", None)
        if guid:
            data["GlobalId"] = guid
        psets = ifcopenshell.util.element.get_psets(self._entity)
        if psets:
            data["psets"] = psets
        return data

    @property
    def children(self) -> Tuple["IfcSpatialView", ...]:
        return tuple(IfcSpatialView(kid, self._context) for kid in _spatial_children(self._entity))


def view_from_ifc(model: ifcopenshell.file) -> IfcSpatialView:
    """Return a view rooted at the model's ``IfcProject``."""
    projects = model.by_type("IfcProject")
    if not projects:
        raise ValueError("IFC model has no IfcProject")
    if len(projects) > 1:
        LOG.warning("IFC model has %d IfcProject entities; using the first", len(projects))
    root = projects[0]
    return IfcSpatialView(root, IfcModelContext(root))


__all__ = ["IfcModelContext", "IfcSpatialView", "view_from_ifc"]
