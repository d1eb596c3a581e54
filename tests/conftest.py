from __future__ import annotations

import numpy as np
import pytest

from scenetree.source import SourceNode

from .utils import make_chain


@pytest.fixture
def example_source() -> SourceNode:
    translate = np.eye(4)
    translate[0, 3] = 2.5
    return SourceNode(
        name="R",
        transform=np.eye(4),
        children=(
            SourceNode(name="A", meshes=(0, 2), metadata={"kind": "mesh"}, transform=translate),
            SourceNode(
                name="B",
                meshes=(),
                children=(SourceNode(name="C", meshes=(1,)),),
            ),
        ),
    )


@pytest.fixture
def deep_source() -> SourceNode:
    return make_chain(3000)
