"""Scene aggregate and file loading.

``load_scene`` picks a source adapter from the file suffix, builds the node
tree while the source library still holds the decoded file, and returns a
:class:`Scene` that no longer depends on that library.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional, Sequence, Tuple, Union

from .builder import TreeBuilder
from .config import BuildOptions
from .exceptions import SceneLoadError
from .node import NodeHandle, count_nodes, find, format_tree
from .source import SourceHierarchyView

LOG = logging.getLogger(__name__)

PathLike = Union[str, Path]

IFC_SUFFIXES = {".ifc"}
USD_SUFFIXES = {".usd", ".usda", ".usdc", ".usdz"}


class PostProcess(Enum):
    """assimp post-processing steps, valued by their ``pyassimp.postprocess`` name."""

    CALC_TANGENT_SPACE = "aiProcess_CalcTangentSpace"
    JOIN_IDENTICAL_VERTICES = "aiProcess_JoinIdenticalVertices"
    MAKE_LEFT_HANDED = "aiProcess_MakeLeftHanded"
    TRIANGULATE = "aiProcess_Triangulate"
    GEN_NORMALS = "aiProcess_GenNormals"
    GEN_SMOOTH_NORMALS = "aiProcess_GenSmoothNormals"
    VALIDATE_DATA_STRUCTURE = "aiProcess_ValidateDataStructure"
    SORT_BY_PRIMITIVE_TYPE = "aiProcess_SortByPType"
    OPTIMIZE_MESHES = "aiProcess_OptimizeMeshes"
    OPTIMIZE_GRAPH = "aiProcess_OptimizeGraph"
    FLIP_UVS = "aiProcess_FlipUVs"

    @classmethod
    def parse(cls, value: Union[str, "PostProcess"]) -> "PostProcess":
        """Accept members, member names (any case, ``-`` or ``_``) or assimp names."""
        if isinstance(value, cls):
            return value
        token = str(value).strip()
        for member in cls:
            if token == member.value:
                return member
        key = token.upper().replace("-", "_")
        try:
            return cls[key]
        except KeyError:
            choices = ", ".join(member.name.lower() for member in cls)
            raise ValueError(f"Unknown post-process step '{value}' (choose from: {choices})") from None


def post_process_flags(steps: Iterable[PostProcess]) -> int:
    """OR together the assimp bit flags for ``steps``."""
    from pyassimp import postprocess

    flags = 0
    for step in steps:
        flags |= getattr(postprocess, step.value)
    return flags


@dataclass
class Scene:
    """A loaded scene: the root node handle plus where it came from."""

    root: Optional[NodeHandle]
    source_path: Optional[Path] = None
    post_process: Tuple[PostProcess, ...] = field(default_factory=tuple)

    @classmethod
    def from_view(
        cls,
        view: SourceHierarchyView,
        *,
        options: Optional[BuildOptions] = None,
        source_path: Optional[PathLike] = None,
        post_process: Sequence[PostProcess] = (),
    ) -> "Scene":
        root = TreeBuilder(options).build(view)
        return cls(
            root=root,
            source_path=Path(source_path) if source_path is not None else None,
            post_process=tuple(post_process),
        )

    @classmethod
    def from_file(
        cls,
        path: PathLike,
        post_process: Optional[Sequence[Union[str, PostProcess]]] = None,
        *,
        options: Optional[BuildOptions] = None,
    ) -> "Scene":
        return load_scene(path, post_process, options=options)

    def find(self, name: str) -> Optional[NodeHandle]:
        return find(self.root, name) if self.root is not None else None

    def node_count(self) -> int:
        return count_nodes(self.root) if self.root is not None else 0

    def format(self) -> str:
        return format_tree(self.root) if self.root is not None else ""


def _load_ifc(path: Path, options: BuildOptions) -> NodeHandle:
    import ifcopenshell

    from .adapters.ifc_view import view_from_ifc

    try:
        model = ifcopenshell.open(str(path))
    except Exception as exc:
        raise SceneLoadError(f"ifcopenshell failed to open {path}: {exc}") from exc
    LOG.info("Opened IFC %s (schema %s)", path, getattr(model, "schema", "?"))
    try:
        view = view_from_ifc(model)
    except ValueError as exc:
        raise SceneLoadError(f"{path}: {exc}") from exc
    return TreeBuilder(options).build(view)


def _load_usd(path: Path, options: BuildOptions) -> NodeHandle:
    from .adapters.usd_view import view_from_usd_stage
    from .pxr_utils import Usd

    try:
        stage = Usd.Stage.Open(str(path))
    except Exception as exc:
        raise SceneLoadError(f"Usd.Stage.Open failed for {path}: {exc}") from exc
    if stage is None:
        raise SceneLoadError(f"Usd.Stage.Open returned no stage for {path}")
    return TreeBuilder(options).build(view_from_usd_stage(stage))


def _load_assimp(path: Path, steps: Tuple[PostProcess, ...], options: BuildOptions) -> NodeHandle:
    from .adapters.assimp_view import view_from_assimp_scene

    try:
        import pyassimp
    except ImportError as exc:
        raise SceneLoadError(f"pyassimp is unavailable: {exc}") from exc
    except BaseException as exc:
        # pyassimp raises AssimpError, a BaseException, when libassimp is missing
        if type(exc).__name__ != "AssimpError":
            raise
        raise SceneLoadError(f"pyassimp is unavailable: {exc}") from exc
    flags = post_process_flags(steps)
    try:
        with pyassimp.load(str(path), processing=flags) as source:
            # Build before the context exits; pyassimp frees the scene on release.
            return TreeBuilder(options).build(view_from_assimp_scene(source))
    except pyassimp.errors.AssimpError as exc:
        raise SceneLoadError(f"assimp failed to load {path}: {exc}") from exc


def load_scene(
    path: PathLike,
    post_process: Optional[Sequence[Union[str, PostProcess]]] = None,
    *,
    options: Optional[BuildOptions] = None,
) -> Scene:
    """Load ``path`` and build its node tree.

    ``post_process`` defaults to ``options.post_process``; it only affects
    files loaded through assimp.
    """
    options = options if options is not None else BuildOptions()
    path = Path(path)
    if not path.is_file():
        raise SceneLoadError(f"Scene file not found: {path}")
    raw_steps = options.post_process if post_process is None else post_process
    try:
        steps = tuple(PostProcess.parse(step) for step in raw_steps)
    except ValueError as exc:
        raise SceneLoadError(str(exc)) from exc

    suffix = path.suffix.lower()
    if suffix in IFC_SUFFIXES:
        if steps:
            LOG.debug("Post-processing steps are ignored for IFC input %s", path)
        root = _load_ifc(path, options)
    elif suffix in USD_SUFFIXES:
        if steps:
            LOG.debug("Post-processing steps are ignored for USD input %s", path)
        root = _load_usd(path, options)
    else:
        root = _load_assimp(path, steps, options)

    scene = Scene(root=root, source_path=path, post_process=steps)
    LOG.info("Loaded %s: %d node(s)", path, scene.node_count())
    return scene


__all__ = ["PostProcess", "Scene", "load_scene", "post_process_flags"]
