"""SAS topology digraph and the builder that recreates it from an nvlist tree."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .errors import MalformedInputError, VertexLookupError
from .nvlist import Array, Nested, Nvlist, Scalar, TopologyTree

logger = logging.getLogger(__name__)

# Topo node names in the SAS scheme topology.
INITIATOR = "initiator"
PORT = "port"
EXPANDER = "expander"
TARGET = "target"
VERTEX_KINDS = (INITIATOR, PORT, EXPANDER, TARGET)

PG_NAME = "property-group-name"
PG_VALS = "property-values"
PROP_NAME = "property-name"
PROP_VALUE = "property-value"

# The protocol group only holds an nvlist form of the vertex FMRI.
PROTOCOL_PGROUP = "protocol"

_HEX_RE = re.compile(r"[0-9A-Fa-f]+")
_U64_LIMIT = 1 << 64


@dataclass(frozen=True)
class Property:
    name: str
    value: str


@dataclass(frozen=True)
class Vertex:
    fmri: str
    name: str
    instance: int
    properties: Tuple[Property, ...] = ()
    # None when the vertex has no <outgoing-edges> element at all.
    outgoing_edges: Optional[Tuple[str, ...]] = None

    @property
    def edges(self) -> Tuple[str, ...]:
        return self.outgoing_edges or ()


@dataclass
class Digraph:
    product_id: str
    nodename: str
    os_version: str
    # time of snapshot in ISO-8601 format
    timestamp: str
    vertices: Dict[str, Vertex] = field(default_factory=dict)
    initiators: List[str] = field(default_factory=list)

    def vertex(self, fmri: str) -> Vertex:
        try:
            return self.vertices[fmri]
        except KeyError:
            raise VertexLookupError(f'failed to lookup vertex "{fmri}"', fmri) from None


def extract_property(nvl: Nvlist) -> Property:
    """Turn one property nvlist into a ``Property``.

    Array values are flattened into a single comma-delimited string; an
    array-typed value with no elements becomes the empty string.
    """
    propname: Optional[str] = None
    propval: Optional[str] = None

    for pair in nvl.pairs:
        if pair.name == PROP_NAME and isinstance(pair.value, Scalar):
            propname = pair.value.text
        elif pair.name == PROP_VALUE:
            if isinstance(pair.value, Array):
                propval = ",".join(pair.value.items)
            elif isinstance(pair.value, Scalar):
                propval = pair.value.text
            elif pair.value is None and _is_scalar_array_type(pair.type):
                propval = ""

    if propname is None or propval is None:
        raise MalformedInputError(f"malformed property value nvlist: {nvl}")
    return Property(propname, propval)


def _is_scalar_array_type(nvtype: Optional[str]) -> bool:
    # e.g. string-array, uint8-array; nvlist arrays never resolve to text
    return nvtype is not None and nvtype.endswith("-array") and nvtype != "nvlist-array"


def parse_instance(text: str) -> int:
    """Decode a ``0x``-prefixed hex instance string into an unsigned 64-bit int."""
    body = text[2:]
    if not _HEX_RE.fullmatch(body):
        raise MalformedInputError(f"invalid hexadecimal instance: {text!r}")
    value = int(body, 16)
    if value >= _U64_LIMIT:
        raise MalformedInputError(f"instance does not fit in 64 bits: {text!r}")
    return value


def build_digraph(tree: TopologyTree) -> Digraph:
    """Recreate the SAS topology described by ``tree`` as a ``Digraph``."""
    digraph = Digraph(
        product_id=tree.product_id,
        nodename=tree.nodename,
        os_version=tree.os_version,
        timestamp=tree.timestamp,
    )

    for record in tree.vertices:
        instance = parse_instance(record.instance)
        edges = tuple(record.outgoing_edges) if record.outgoing_edges is not None else None

        properties: List[Property] = []
        for pgnvp in record.propgroups:
            if not isinstance(pgnvp.value, Nested):
                continue
            for pg in pgnvp.value.nvlists:
                properties.extend(_collect_propgroup(record.fmri, pg))

        vtx = Vertex(
            fmri=record.fmri,
            name=record.name,
            instance=instance,
            properties=tuple(properties),
            outgoing_edges=edges,
        )
        if vtx.fmri in digraph.vertices:
            raise MalformedInputError(f'duplicate vertex fmri "{vtx.fmri}"')
        if vtx.name == INITIATOR:
            digraph.initiators.append(vtx.fmri)
        digraph.vertices[vtx.fmri] = vtx

    for vtx in digraph.vertices.values():
        for target in vtx.edges:
            if target not in digraph.vertices:
                raise VertexLookupError(
                    f'vertex "{vtx.fmri}" has an edge to unknown vertex "{target}"', target
                )

    logger.debug(
        "built digraph: %d vertices, %d initiators",
        len(digraph.vertices),
        len(digraph.initiators),
    )
    return digraph


def _collect_propgroup(fmri: str, pg: Nvlist) -> List[Property]:
    pgname = ""
    props: Optional[Tuple[Nvlist, ...]] = None
    for pgnvp in pg.pairs:
        if pgnvp.name == PG_NAME:
            if isinstance(pgnvp.value, Scalar):
                pgname = pgnvp.value.text
        elif pgnvp.name == PG_VALS:
            if isinstance(pgnvp.value, Nested):
                props = pgnvp.value.nvlists
        else:
            raise MalformedInputError(
                f'unexpected nvpair name "{pgnvp.name}" in property group of "{fmri}": {pg}'
            )

    if not pgname:
        raise MalformedInputError(f"malformed propgroup, {PG_NAME} not set: {pg}")
    # Some groups are present but carry nothing to display.
    if props is None or pgname == PROTOCOL_PGROUP:
        return []
    return [extract_property(propnvl) for propnvl in props]


__all__ = [
    "Digraph",
    "EXPANDER",
    "INITIATOR",
    "PORT",
    "Property",
    "TARGET",
    "VERTEX_KINDS",
    "Vertex",
    "build_digraph",
    "extract_property",
    "parse_instance",
]
