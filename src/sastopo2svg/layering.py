"""Depth-first layering of a SAS digraph.

Every path through the digraph is walked starting from the initiators.  Each
visited vertex is appended to the column for its depth, so the resulting
columns give both the width (maximum depth) and height (largest column) of
the drawing.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set

from .digraph import Digraph, Vertex
from .errors import CycleDetectedError

logger = logging.getLogger(__name__)


@dataclass
class Layering:
    # depth (1 = initiators) -> vertex FMRIs in visitation order
    columns: Dict[int, List[str]] = field(default_factory=dict)
    max_depth: int = 0
    max_height: int = 0

    def column(self, depth: int) -> List[str]:
        return self.columns.get(depth, [])


def layer(digraph: Digraph, *, dedupe: bool = False) -> Layering:
    """Assign every vertex reachable from an initiator to a depth column.

    A vertex reachable over several paths of equal depth is appended to that
    column once per path unless ``dedupe`` is set.
    """
    layering = Layering()

    for fmri in digraph.initiators:
        logger.debug("initiator: %s", fmri)
        vtx = digraph.vertex(fmri)
        depth = _walk(digraph, vtx, layering.columns, dedupe)
        if depth > layering.max_depth:
            layering.max_depth = depth

    for depth in range(1, layering.max_depth + 1):
        height = len(layering.column(depth))
        logger.debug("depth: %d has height %d", depth, height)
        if height > layering.max_height:
            layering.max_height = height

    logger.debug("max_depth: %d", layering.max_depth)
    logger.debug("max_height: %d", layering.max_height)
    return layering


def _walk(digraph: Digraph, root: Vertex, columns: Dict[int, List[str]], dedupe: bool) -> int:
    """Visit every path below ``root`` in pre-order and return the deepest column.

    The walk keeps its own stack of edge iterators so chains of any length
    are handled without recursion.  ``path`` holds the vertices of the active
    path, one per stack frame.
    """
    path: List[str] = []
    on_path: Set[str] = set()
    stack: List[Iterator[str]] = []
    max_depth = 0

    vtx: Optional[Vertex] = root
    while vtx is not None or stack:
        if vtx is not None:
            depth = len(path) + 1
            _place(vtx, depth, columns, path, on_path, dedupe)
            if depth > max_depth:
                max_depth = depth
            path.append(vtx.fmri)
            on_path.add(vtx.fmri)
            stack.append(iter(vtx.edges))

        edge = next(stack[-1], None)
        if edge is None:
            stack.pop()
            on_path.discard(path.pop())
            vtx = None
        else:
            vtx = digraph.vertex(edge)
    return max_depth


def _place(
    vtx: Vertex,
    depth: int,
    columns: Dict[int, List[str]],
    path: List[str],
    on_path: Set[str],
    dedupe: bool,
) -> None:
    if vtx.fmri in on_path:
        cycle = path[path.index(vtx.fmri):] + [vtx.fmri]
        raise CycleDetectedError("cycle detected: " + " -> ".join(cycle), cycle)

    column = columns.setdefault(depth, [])
    if not (dedupe and vtx.fmri in column):
        column.append(vtx.fmri)


__all__ = ["Layering", "layer"]
