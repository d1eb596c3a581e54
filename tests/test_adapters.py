from __future__ import annotations

import ctypes
from types import SimpleNamespace

import numpy as np
import pytest

from scenetree import build_tree, find, iter_preorder
from scenetree.adapters.assimp_view import view_from_assimp_scene


class _AiString:
    def __init__(self, text: str):
        self.data = text.encode("utf-8") + b"\x00"
        self.length = len(text.encode("utf-8"))


def _assimp_node(name, meshes=(), children=(), transformation=None, metadata=None):
    return SimpleNamespace(
        name=name,
        meshes=list(meshes),
        children=list(children),
        transformation=np.eye(4) if transformation is None else transformation,
        metadata=metadata,
    )


def test_assimp_scene():
    cube_mesh, lamp_mesh = object(), object()
    moved = np.eye(4)
    moved[:3, 3] = (0.0, 4.0, 0.0)
    metadata = SimpleNamespace(keys=["UpAxis"], values=[SimpleNamespace(data=1)])
    scene = SimpleNamespace(
        meshes=[cube_mesh, lamp_mesh],
        rootnode=_assimp_node(
            "<BlenderRoot>",
            children=[
                _assimp_node("Cube", meshes=[cube_mesh], metadata=metadata),
                _assimp_node("Lamp", meshes=[lamp_mesh, cube_mesh], transformation=moved),
                _assimp_node("Camera"),
            ],
        ),
    )

    root = build_tree(view_from_assimp_scene(scene))

    assert [child.name for child in root.children()] == ["Cube", "Lamp", "Camera"]
    with root.lock() as node:
        assert node.name == "<BlenderRoot>"
        assert node.meshes == []
        assert node.metadata is None
    cube, lamp, _ = root.children()
    assert cube.read(lambda n: (n.meshes, n.metadata)) == ([0], {"UpAxis": 1})
    assert lamp.read(lambda n: n.meshes) == [1, 0]
    assert lamp.read(lambda n: n.transformation[1, 3]) == 4.0
    assert cube.parent() is root


_CTYPES_OBJECTS = (ctypes._SimpleCData, ctypes._Pointer, ctypes.Structure, ctypes.Array)


class _MetadataEntry(ctypes.Structure):
    _fields_ = [("mType", ctypes.c_uint), ("mData", ctypes.c_void_p)]


class _Vector3D(ctypes.Structure):
    _fields_ = [("x", ctypes.c_float), ("y", ctypes.c_float), ("z", ctypes.c_float)]


def _decoded_metadata(items):
    """Metadata shaped like pyassimp's: decoded lists set on the aiMetadata pointer."""
    entries = (_MetadataEntry * len(items))()
    views = list(entries)
    for entry, (_, data) in zip(views, items):
        entry.mType = 1
        entry.data = data
    pointer = ctypes.pointer(views[0])
    pointer.keys = [key for key, _ in items]
    pointer.values = views
    return pointer, entries


def test_assimp_metadata_keeps_only_python_values():
    metadata, entries = _decoded_metadata(
        [
            ("UpAxis", 1),
            ("UnitScaleFactor", ctypes.c_double(2.5)),
            ("Title", b"Demo\x00"),
            ("Offset", _Vector3D(1.0, 2.0, 3.0)),
            ("Opaque", ctypes.pointer(ctypes.c_int(7))),
        ]
    )
    scene = SimpleNamespace(meshes=[], rootnode=_assimp_node("root", metadata=metadata))

    root = build_tree(view_from_assimp_scene(scene))
    ctypes.memset(ctypes.addressof(entries), 0xAB, ctypes.sizeof(entries))

    stored = root.read(lambda n: n.metadata)
    assert stored == {
        "UpAxis": 1,
        "UnitScaleFactor": 2.5,
        "Title": "Demo",
        "Offset": (1.0, 2.0, 3.0),
    }
    assert not any(isinstance(value, _CTYPES_OBJECTS) for value in stored.values())


def test_assimp_undecoded_metadata_is_not_stored():
    raw = ctypes.pointer(_MetadataEntry(mType=1))
    scene = SimpleNamespace(meshes=[], rootnode=_assimp_node("root", metadata=raw))

    root = build_tree(view_from_assimp_scene(scene))

    assert root.read(lambda n: n.metadata) is None


def test_assimp_foreign_mesh_is_skipped():
    known = object()
    scene = SimpleNamespace(meshes=[known], rootnode=_assimp_node("root", meshes=[object(), known]))

    root = build_tree(view_from_assimp_scene(scene))

    assert root.read(lambda n: n.meshes) == [0]


def test_assimp_scene_without_root():
    with pytest.raises(ValueError):
        view_from_assimp_scene(SimpleNamespace(meshes=[], rootnode=None))


def _ifc_model():
    ifcopenshell = pytest.importorskip("ifcopenshell")
    import ifcopenshell.guid

    def guid():
        return ifcopenshell.guid.new()

    model = ifcopenshell.file(schema="IFC4")
    project = model.createIfcProject(guid(), None, "Demo")
    site = model.createIfcSite(guid(), None, "Site")
    building = model.createIfcBuilding(guid(), None, "Building")
    storey = model.createIfcBuildingStorey(guid(), None, "Level 1")
    slab = model.createIfcSlab(guid(), None, "Floor")
    wall = model.createIfcWall(guid(), None, "Wall")
    model.createIfcRelAggregates(guid(), None, None, None, project, [site])
    model.createIfcRelAggregates(guid(), None, None, None, site, [building])
    model.createIfcRelAggregates(guid(), None, None, None, building, [storey])
    model.createIfcRelContainedInSpatialStructure(guid(), None, None, None, [wall], building)
    model.createIfcRelContainedInSpatialStructure(guid(), None, None, None, [slab], storey)

    point = model.createIfcCartesianPoint((1.0, 2.0, 3.0))
    axis = model.createIfcAxis2Placement3D(point, None, None)
    site.ObjectPlacement = model.createIfcLocalPlacement(None, axis)
    return model, wall, slab


def test_ifc_spatial_hierarchy():
    model, wall, slab = _ifc_model()
    wall.Representation = model.createIfcProductDefinitionShape()
    slab.Representation = model.createIfcProductDefinitionShape()
    from scenetree.adapters.ifc_view import view_from_ifc

    view = view_from_ifc(model)
    root = build_tree(view)

    names = [handle.name for handle in iter_preorder(root)]
    assert names == ["Demo", "Site", "Building", "Level 1", "Floor", "Wall"]
    building = find(root, "Building")
    assert [child.name for child in building.children()] == ["Level 1", "Wall"]

    floor, wall_node = find(root, "Floor"), find(root, "Wall")
    assert floor.read(lambda n: n.meshes) == [0]
    assert wall_node.read(lambda n: n.meshes) == [1]
    assert view.context.products[1] == wall

    metadata = wall_node.read(lambda n: n.metadata)
    assert metadata["ifc_class"] == "IfcWall"
    assert metadata["GlobalId"] == wall.GlobalId

    site = find(root, "Site")
    np.testing.assert_allclose(site.read(lambda n: n.transformation[:3, 3]), (1.0, 2.0, 3.0))
    np.testing.assert_array_equal(root.read(lambda n: n.transformation), np.eye(4))
    assert wall_node.path() == ["Demo", "Site", "Building", "Wall"]


def test_ifc_without_project():
    ifcopenshell = pytest.importorskip("ifcopenshell")
    from scenetree.adapters.ifc_view import view_from_ifc

    with pytest.raises(ValueError):
        view_from_ifc(ifcopenshell.file(schema="IFC4"))


def _usd_stage():
    pytest.importorskip("pxr")
    from pxr import Gf, Usd, UsdGeom

    stage = Usd.Stage.CreateInMemory()
    world = UsdGeom.Xform.Define(stage, "/World")
    world.AddTranslateOp().Set(Gf.Vec3d(1.0, 2.0, 3.0))
    UsdGeom.Mesh.Define(stage, "/World/Box")
    UsdGeom.Xform.Define(stage, "/World/Group")
    UsdGeom.Mesh.Define(stage, "/World/Group/Other")
    stage.GetPrimAtPath("/World/Box").SetCustomDataByKey("source", "test")
    return stage


def test_usd_prim_hierarchy():
    stage = _usd_stage()
    from scenetree.adapters.usd_view import view_from_usd_stage

    root = build_tree(view_from_usd_stage(stage, "/World"))

    assert root.name == "World"
    assert [child.name for child in root.children()] == ["Box", "Group"]
    np.testing.assert_allclose(root.read(lambda n: n.transformation[3, :3]), (1.0, 2.0, 3.0))
    box = find(root, "Box")
    other = find(root, "Other")
    assert box.read(lambda n: (n.meshes, n.metadata)) == ([0], {"source": "test"})
    assert other.read(lambda n: (n.meshes, n.metadata)) == ([1], None)
    assert other.parent().name == "Group"


def test_usd_missing_root_path():
    stage = _usd_stage()
    from scenetree.adapters.usd_view import view_from_usd_stage

    with pytest.raises(ValueError):
        view_from_usd_stage(stage, "/Nope")
