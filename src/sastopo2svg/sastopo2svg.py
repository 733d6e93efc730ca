"""SAS topology snapshot to SVG converter."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .digraph import build_digraph
from .document import write_outputs
from .emitter import DEFAULT_ICON_DIR, Drawing, emit_drawing
from .layering import layer
from .nvlist import parse_topology_xml

logger = logging.getLogger(__name__)


@dataclass
class Config:
    outdir: Path
    xml_path: Path
    asset_dir: Optional[Path] = None
    dedupe_layers: bool = False


def render_topology(
    xml_text: Union[str, bytes], *, dedupe_layers: bool = False, icon_dir: str = DEFAULT_ICON_DIR
) -> Drawing:
    """Parse a topo digraph XML snapshot and lay it out as a ``Drawing``."""
    tree = parse_topology_xml(xml_text)
    digraph = build_digraph(tree)
    layering = layer(digraph, dedupe=dedupe_layers)
    return emit_drawing(digraph, layering, icon_dir=icon_dir)


def run(config: Config) -> Drawing:
    """Convert ``config.xml_path`` and write the SVG and HTML into ``config.outdir``.

    Nothing is written unless the whole topology converts successfully.
    """
    logger.debug("Reading topology from %s", config.xml_path)
    xml_bytes = Path(config.xml_path).read_bytes()
    drawing = render_topology(xml_bytes, dedupe_layers=config.dedupe_layers)
    asset_dir = Path(config.asset_dir) if config.asset_dir is not None else None
    write_outputs(drawing, Path(config.outdir), asset_dir=asset_dir)
    return drawing


__all__ = ["Config", "render_topology", "run"]
