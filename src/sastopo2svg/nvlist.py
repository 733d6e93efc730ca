"""Generic nvlist attribute tree and the topo digraph XML reader.

The snapshot is an illumos topo digraph serialized as XML.  Vertex properties
are stored as nested name/value lists (nvlists), so before the SAS digraph can
be built the document is turned into a small tree of tagged values:

* ``Scalar``  -- an nvpair carrying a ``value`` attribute
* ``Array``   -- an nvpair whose children are ``<nvpair value=".."/>`` elements
* ``Nested``  -- an nvpair whose children are ``<nvlist>`` elements

An nvpair carries at most one of these.
"""
from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from .errors import MalformedInputError

TOPO_DIGRAPH = "topo-digraph"
VERTICES = "vertices"
VERTEX = "vertex"
NVPAIR = "nvpair"
NVLIST = "nvlist"
OUTGOING_EDGES = "outgoing-edges"
EDGE = "edge"

_SNIPPET_LIMIT = 240


@dataclass(frozen=True)
class Scalar:
    text: str

    def __str__(self) -> str:
        return repr(self.text)


@dataclass(frozen=True)
class Array:
    items: Tuple[str, ...]

    def __str__(self) -> str:
        return "[" + ", ".join(repr(item) for item in self.items) + "]"


@dataclass(frozen=True)
class Nested:
    nvlists: Tuple["Nvlist", ...]

    def __str__(self) -> str:
        return "[" + ", ".join(str(nvl) for nvl in self.nvlists) + "]"


NvValue = Union[Scalar, Array, Nested]


@dataclass(frozen=True)
class Nvpair:
    name: str
    type: Optional[str]
    value: Optional[NvValue]

    def __str__(self) -> str:
        if self.value is None:
            return f"{self.name}=<empty>"
        return f"{self.name}={self.value}"


@dataclass(frozen=True)
class Nvlist:
    pairs: Tuple[Nvpair, ...] = ()

    def find(self, name: str) -> Optional[Nvpair]:
        for pair in self.pairs:
            if pair.name == name:
                return pair
        return None

    def __str__(self) -> str:
        return "{" + ", ".join(str(pair) for pair in self.pairs) + "}"


@dataclass
class VertexRecord:
    fmri: str
    name: str
    instance: str
    outgoing_edges: Optional[List[str]]
    propgroups: List[Nvpair] = field(default_factory=list)


@dataclass
class TopologyTree:
    fmri_scheme: str
    product_id: str
    nodename: str
    os_version: str
    timestamp: str
    vertices: List[VertexRecord] = field(default_factory=list)


def parse_topology_xml(xml_text: Union[str, bytes]) -> TopologyTree:
    """Deserialize topo digraph XML into a ``TopologyTree``.

    Pass the raw file bytes so the parser honours the encoding named in the
    XML declaration.  ``xml.etree.ElementTree.ParseError`` is propagated
    unchanged for input that is not well-formed XML, including bytes that
    are invalid in the declared encoding.
    """
    root = ET.fromstring(xml_text)
    if _local_name(root.tag) != TOPO_DIGRAPH:
        raise MalformedInputError(
            f"expected <{TOPO_DIGRAPH}> root element (got <{_local_name(root.tag)}>)"
        )

    tree = TopologyTree(
        fmri_scheme=root.get("fmri-scheme", ""),
        product_id=root.get("product-id", ""),
        nodename=root.get("nodename", ""),
        os_version=root.get("os-version", ""),
        timestamp=root.get("timestamp", ""),
    )

    vertices_node = _first_child(root, VERTICES)
    if vertices_node is None:
        raise MalformedInputError(f"<{TOPO_DIGRAPH}> has no <{VERTICES}> element")

    for child in _children(vertices_node):
        if _local_name(child.tag) == VERTEX:
            tree.vertices.append(_parse_vertex(child))
    return tree


def _parse_vertex(node: ET.Element) -> VertexRecord:
    attrs = {}
    for key in ("fmri", "name", "instance"):
        value = node.get(key)
        if value is None:
            raise MalformedInputError(
                f'<{VERTEX}> is missing required attribute "{key}": {_snippet(node)}'
            )
        attrs[key] = value

    outgoing_edges: Optional[List[str]] = None
    propgroups: List[Nvpair] = []
    for child in _children(node):
        local = _local_name(child.tag)
        if local == NVPAIR:
            propgroups.append(_parse_nvpair(child))
        elif local == OUTGOING_EDGES:
            if outgoing_edges is None:
                outgoing_edges = []
            for edge in _children(child):
                if _local_name(edge.tag) != EDGE:
                    continue
                target = edge.get("fmri")
                if not target:
                    raise MalformedInputError(
                        f'<{EDGE}> requires a non-empty "fmri" attribute: {_snippet(edge)}'
                    )
                outgoing_edges.append(target)

    return VertexRecord(
        fmri=attrs["fmri"],
        name=attrs["name"],
        instance=attrs["instance"],
        outgoing_edges=outgoing_edges,
        propgroups=propgroups,
    )


def _parse_nvlist(node: ET.Element) -> Nvlist:
    pairs = [_parse_nvpair(child) for child in _children(node) if _local_name(child.tag) == NVPAIR]
    return Nvlist(pairs=tuple(pairs))


def _parse_nvpair(node: ET.Element) -> Nvpair:
    name = node.get("name")
    if name is None:
        raise MalformedInputError(f'<{NVPAIR}> is missing "name" attribute: {_snippet(node)}')

    raw = node.get("value")
    elements = [child for child in _children(node) if _local_name(child.tag) == NVPAIR]
    nvlists = [child for child in _children(node) if _local_name(child.tag) == NVLIST]

    if raw is not None and (elements or nvlists):
        raise MalformedInputError(
            f'<{NVPAIR} name="{name}"> has both a value attribute and child elements: '
            f"{_snippet(node)}"
        )
    if elements and nvlists:
        raise MalformedInputError(
            f'<{NVPAIR} name="{name}"> mixes array elements and nested nvlists: {_snippet(node)}'
        )

    value: Optional[NvValue] = None
    if raw is not None:
        value = Scalar(raw)
    elif elements:
        items = []
        for elem in elements:
            item = elem.get("value")
            if item is None:
                raise MalformedInputError(
                    f'array element of <{NVPAIR} name="{name}"> has no value: {_snippet(node)}'
                )
            items.append(item)
        value = Array(tuple(items))
    elif nvlists:
        value = Nested(tuple(_parse_nvlist(child) for child in nvlists))

    return Nvpair(name=name, type=node.get("type"), value=value)


def _children(node: ET.Element) -> List[ET.Element]:
    return [child for child in node if child.tag is not ET.Comment]


def _first_child(node: ET.Element, local: str) -> Optional[ET.Element]:
    for child in _children(node):
        if _local_name(child.tag) == local:
            return child
    return None


def _snippet(node: ET.Element) -> str:
    text = ET.tostring(node, encoding="unicode").strip()
    if len(text) > _SNIPPET_LIMIT:
        return text[:_SNIPPET_LIMIT] + "..."
    return text


def _local_name(tag: str) -> str:
    if tag.startswith("{"):
        return tag.split("}", 1)[1]
    return tag


__all__ = [
    "Array",
    "Nested",
    "NvValue",
    "Nvlist",
    "Nvpair",
    "Scalar",
    "TopologyTree",
    "VertexRecord",
    "parse_topology_xml",
]
