from __future__ import annotations

from scenetree.source import SourceNode


def make_chain(depth: int, fanout: int = 1) -> SourceNode:
    """A hierarchy ``depth`` levels deep; every level holds the next level
    followed by ``fanout - 1`` leaves."""
    node = SourceNode(name=f"level_{depth - 1}", meshes=(depth - 1,))
    for level in range(depth - 2, -1, -1):
        leaves = tuple(SourceNode(name=f"leaf_{level}_{i}") for i in range(fanout - 1))
        node = SourceNode(name=f"level_{level}", meshes=(level,), children=(node,) + leaves)
    return node
