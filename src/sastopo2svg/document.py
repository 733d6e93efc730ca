"""SVG and HTML documents for a placed SAS topology drawing."""
from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Mapping, Optional, Tuple

from .emitter import Drawing
from .resources import install_assets, load_html_template, load_script

logger = logging.getLogger(__name__)

SVG_NS = "http://www.w3.org/2000/svg"
ET.register_namespace("", SVG_NS)

SVG_FILE = "sastopo.svg"
HTML_FILE = "sastopo2svg.html"

LINEAR_FILTER_MATRIX = "1 0 0 1.9 -2.2 0 1 0 0.0 0.3 0 0 1 0 0.5 0 0 0 1 0.2"

_ATTR_INVALID = re.compile(r"[^A-Za-z0-9._-]")
# set on a group by the click handler at view time
_SCRIPT_ATTRS = frozenset({"filter"})


def _q(tag: str) -> str:
    return f"{{{SVG_NS}}}{tag}"


def build_svg(drawing: Drawing, *, script: Optional[str] = None) -> ET.Element:
    """Build the SVG element tree for ``drawing``.

    ``script`` defaults to the packaged click handler that fills in the
    property tables of the HTML wrapper.
    """
    svg_root = ET.Element(
        _q("svg"),
        {
            "width": str(drawing.width),
            "height": str(drawing.height),
            "viewBox": f"0 0 {drawing.width} {drawing.height}",
            "overflow": "scroll",
        },
    )

    on_click = ET.SubElement(svg_root, _q("script"), {"type": "application/ecmascript"})
    on_click.text = script if script is not None else load_script()

    svg_filter = ET.SubElement(svg_root, _q("filter"), {"id": "linear"})
    ET.SubElement(
        svg_filter, _q("feColorMatrix"), {"type": "matrix", "values": LINEAR_FILTER_MATRIX}
    )

    # Hidden element carrying the host information shown by the wrapper page.
    ET.SubElement(
        svg_root,
        _q("rect"),
        {
            "x": "1",
            "y": "1",
            "width": "1",
            "height": "1",
            "visibility": "hidden",
            "id": "hostprops",
            "product-id": drawing.product_id,
            "nodename": drawing.nodename,
            "os-version": drawing.os_version,
            "timestamp": drawing.timestamp,
        },
    )

    for node in drawing.nodes:
        group = ET.SubElement(svg_root, _q("g"))
        group.set("onclick", "showInfo(evt)")
        group.set("name", node.name)
        group.set("fmri", node.fmri)
        for prop in node.properties:
            group.set(_unique_attr_name(prop.name, group.attrib), prop.value)
        geometry = node.geometry
        ET.SubElement(
            group,
            _q("image"),
            {
                "href": node.href,
                "x": str(geometry.x),
                "y": str(geometry.y),
                "width": str(geometry.width),
                "height": str(geometry.height),
            },
        )

    for line in drawing.connectors:
        ET.SubElement(
            svg_root,
            _q("line"),
            {
                "x1": str(line.x1),
                "y1": str(line.y1),
                "x2": str(line.x2),
                "y2": str(line.y2),
                "stroke": "black",
                "stroke-width": "2",
            },
        )

    return svg_root


def svg_to_string(element: ET.Element) -> str:
    ET.indent(element, space="  ")
    return ET.tostring(element, encoding="unicode")


def build_html(drawing: Drawing, svg_name: str = SVG_FILE) -> str:
    """Embed the SVG in a scrollable iframe so large fabrics stay viewable."""
    html = load_html_template()
    html += (
        f'<iframe src="{svg_name}" width={drawing.width} height={drawing.height} '
        'scrollable="yes" frameborder="no"></iframe>\n'
    )
    html += "</div></div></body></html>\n"
    return html


def write_outputs(
    drawing: Drawing, outdir: Path, *, asset_dir: Optional[Path] = None
) -> Tuple[Path, Path]:
    """Write icon assets, the SVG and the HTML wrapper into ``outdir``.

    Files are written one after another; a failure part way through leaves
    whatever was already written in place.  An incomplete ``asset_dir`` is
    rejected before ``outdir`` is created.
    """
    # install_assets validates asset_dir first and creates outdir as needed.
    install_assets(outdir, asset_dir)

    svg_path = outdir / SVG_FILE
    logger.debug("Saving SVG to %s", svg_path)
    svg_path.write_text(svg_to_string(build_svg(drawing)) + "\n", encoding="utf-8")

    html_path = outdir / HTML_FILE
    logger.debug("Saving HTML to %s", html_path)
    html_path.write_text(build_html(drawing, SVG_FILE), encoding="utf-8")
    return svg_path, html_path


def _attr_name(name: str) -> str:
    cleaned = _ATTR_INVALID.sub("-", name)
    if not cleaned or not (cleaned[0].isalpha() or cleaned[0] == "_"):
        cleaned = "_" + cleaned
    return cleaned


def _unique_attr_name(name: str, taken: Mapping[str, str]) -> str:
    """Attribute name for a property that keeps clear of ``taken`` names.

    Properties that clash with the group's own attributes, or with each other
    once cleaned, get a numeric suffix: ``fmri-2``, ``a-b-2``, ``a-b-3``.
    """
    base = _attr_name(name)
    candidate = base
    suffix = 2
    while candidate in taken or candidate in _SCRIPT_ATTRS:
        candidate = f"{base}-{suffix}"
        suffix += 1
    return candidate


__all__ = ["HTML_FILE", "SVG_FILE", "build_html", "build_svg", "svg_to_string", "write_outputs"]
