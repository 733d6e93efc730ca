"""Grid placement of layered vertices and the drawing primitives for them."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from .digraph import Digraph, Property, VERTEX_KINDS
from .errors import MalformedInputError
from .layering import Layering

logger = logging.getLogger(__name__)

VTX_WIDTH = 120
VTX_HEIGHT = 120
COLUMN_PITCH = 250
ROW_PITCH = 150
X_MARGIN = 50
Y_MARGIN = 10
EXIT_LENGTH = 50
MIN_CANVAS_WIDTH = 1200
MIN_CANVAS_HEIGHT = 1100

DEFAULT_ICON_DIR = "assets/icons"


@dataclass(frozen=True)
class Geometry:
    x: int
    y: int
    width: int
    height: int

    @property
    def mid_y(self) -> int:
        return self.y + self.height // 2


@dataclass
class NodeGlyph:
    fmri: str
    name: str
    href: str
    geometry: Geometry
    properties: Tuple[Property, ...]


@dataclass
class Connector:
    x1: int
    y1: int
    x2: int
    y2: int
    # "exit" leaves the source, "riser" runs vertically, "feed" enters the target
    role: str


@dataclass
class Drawing:
    width: int
    height: int
    product_id: str = ""
    nodename: str = ""
    os_version: str = ""
    timestamp: str = ""
    nodes: List[NodeGlyph] = field(default_factory=list)
    connectors: List[Connector] = field(default_factory=list)
    placements: Dict[str, Geometry] = field(default_factory=dict)


def canvas_size(layering: Layering) -> Tuple[int, int]:
    return (
        max(MIN_CANVAS_WIDTH, layering.max_depth * COLUMN_PITCH),
        max(MIN_CANVAS_HEIGHT, layering.max_height * ROW_PITCH),
    )


def place_vertex(depth: int, height: int, column_length: int, max_height: int) -> Geometry:
    """Grid cell for the ``height``-th vertex (1-indexed) of column ``depth``."""
    x = (depth - 1) * COLUMN_PITCH + X_MARGIN
    y_factor = 1 if height == 1 else max_height // column_length
    y = (height - 1) * ROW_PITCH * y_factor + Y_MARGIN
    return Geometry(x, y, VTX_WIDTH, VTX_HEIGHT)


def emit_drawing(
    digraph: Digraph, layering: Layering, *, icon_dir: str = DEFAULT_ICON_DIR
) -> Drawing:
    """Place every layered vertex and emit node and connector primitives.

    All node glyphs are emitted (and their placements recorded) before any
    connector, since connectors are routed to the final target placements.
    """
    width, height = canvas_size(layering)
    drawing = Drawing(
        width=width,
        height=height,
        product_id=digraph.product_id,
        nodename=digraph.nodename,
        os_version=digraph.os_version,
        timestamp=digraph.timestamp,
    )

    for depth in range(1, layering.max_depth + 1):
        column = layering.column(depth)
        for index, fmri in enumerate(column):
            vtx = digraph.vertex(fmri)
            geometry = place_vertex(depth, index + 1, len(column), layering.max_height)
            logger.debug(
                "VERTEX: fmri: %s, depth: %d, height: %d, x: %d, y: %d",
                fmri,
                depth,
                index + 1,
                geometry.x,
                geometry.y,
            )
            if vtx.name not in VERTEX_KINDS:
                raise MalformedInputError(f'unexpected vertex name "{vtx.name}" for "{fmri}"')

            drawing.placements[fmri] = geometry
            drawing.nodes.append(
                NodeGlyph(
                    fmri=fmri,
                    name=vtx.name,
                    href=f"{icon_dir}/{vtx.name}.png",
                    geometry=geometry,
                    properties=vtx.properties,
                )
            )

    for depth in range(1, layering.max_depth + 1):
        for fmri in layering.column(depth):
            vtx = digraph.vertex(fmri)
            if not vtx.edges:
                continue
            drawing.connectors.extend(_route_edges(drawing.placements, fmri, vtx.edges))

    return drawing


def _route_edges(
    placements: Dict[str, Geometry], fmri: str, edges: Tuple[str, ...]
) -> List[Connector]:
    source = placements[fmri]
    start_x = source.x + source.width
    start_y = source.mid_y
    bus_x = start_x + EXIT_LENGTH

    connectors = [Connector(start_x, start_y, bus_x, start_y, "exit")]
    for edge_fmri in edges:
        target = placements[edge_fmri]
        end_y = target.mid_y
        connectors.append(Connector(bus_x, start_y, bus_x, end_y, "riser"))
        connectors.append(Connector(bus_x, end_y, target.x, end_y, "feed"))
    return connectors


__all__ = [
    "Connector",
    "Drawing",
    "Geometry",
    "NodeGlyph",
    "canvas_size",
    "emit_drawing",
    "place_vertex",
]
