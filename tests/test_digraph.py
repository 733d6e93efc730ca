from __future__ import annotations

import sys
import unittest
from pathlib import Path

TESTS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = TESTS_DIR.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from sastopo2svg.digraph import Property, build_digraph, extract_property, parse_instance
from sastopo2svg.errors import MalformedInputError, VertexLookupError
from sastopo2svg.nvlist import Array, Nested, Nvlist, Nvpair, Scalar, parse_topology_xml

from topo_fixtures import (
    EXP,
    INI,
    INI2,
    PORT,
    PROTOCOL_PG,
    TGT,
    linear_topology,
    propgroup_xml,
    topology_xml,
    vertex_xml,
)


def _build(*vertices: str):
    return build_digraph(parse_topology_xml(topology_xml(*vertices)))


class ExtractPropertyTests(unittest.TestCase):
    def test_scalar_value(self) -> None:
        nvl = Nvlist(
            (
                Nvpair("property-name", "string", Scalar("sas-address")),
                Nvpair("property-type", "uint32", Scalar("9")),
                Nvpair("property-value", "string", Scalar("w500304801e6a8f00")),
            )
        )
        self.assertEqual(extract_property(nvl), Property("sas-address", "w500304801e6a8f00"))

    def test_array_value_is_comma_joined(self) -> None:
        nvl = Nvlist(
            (
                Nvpair("property-name", "string", Scalar("letters")),
                Nvpair("property-value", "string-array", Array(("a", "b", "c"))),
            )
        )
        self.assertEqual(extract_property(nvl).value, "a,b,c")

    def test_empty_array_value_is_empty_string(self) -> None:
        nvl = Nvlist(
            (
                Nvpair("property-name", "string", Scalar("phys")),
                Nvpair("property-value", "string-array", None),
            )
        )
        self.assertEqual(extract_property(nvl), Property("phys", ""))

    def test_empty_nvlist_array_value_is_still_rejected(self) -> None:
        nvl = Nvlist(
            (
                Nvpair("property-name", "string", Scalar("resource")),
                Nvpair("property-value", "nvlist-array", None),
            )
        )
        with self.assertRaises(MalformedInputError):
            extract_property(nvl)

    def test_missing_value_reports_nvlist(self) -> None:
        nvl = Nvlist((Nvpair("property-name", "string", Scalar("orphan")),))
        with self.assertRaises(MalformedInputError) as ctx:
            extract_property(nvl)
        self.assertIn("malformed property value nvlist", str(ctx.exception))
        self.assertIn("orphan", str(ctx.exception))

    def test_missing_name(self) -> None:
        nvl = Nvlist((Nvpair("property-value", "string", Scalar("x")),))
        with self.assertRaises(MalformedInputError):
            extract_property(nvl)

    def test_nested_value_is_not_resolvable(self) -> None:
        nvl = Nvlist(
            (
                Nvpair("property-name", "string", Scalar("resource")),
                Nvpair("property-value", "fmri", Nested((Nvlist(),))),
            )
        )
        with self.assertRaises(MalformedInputError):
            extract_property(nvl)


class ParseInstanceTests(unittest.TestCase):
    def test_hex_with_prefix(self) -> None:
        self.assertEqual(parse_instance("0x1f"), 31)
        self.assertEqual(parse_instance("0X1F"), 31)
        self.assertEqual(parse_instance("0x0"), 0)

    def test_largest_u64(self) -> None:
        self.assertEqual(parse_instance("0xffffffffffffffff"), 2**64 - 1)

    def test_overflow(self) -> None:
        with self.assertRaises(MalformedInputError):
            parse_instance("0x10000000000000000")

    def test_invalid_bodies(self) -> None:
        for text in ("0x", "0xzz", "0x-1", "0x1_0", "0x 1", "", "7"):
            with self.subTest(text=text):
                with self.assertRaises(MalformedInputError):
                    parse_instance(text)


class BuildDigraphTests(unittest.TestCase):
    def test_linear_topology(self) -> None:
        digraph = build_digraph(parse_topology_xml(linear_topology()))
        self.assertEqual(digraph.product_id, "Joyent-Compute-Platform-3301")
        self.assertEqual(digraph.timestamp, "2020-06-12T18:03:01Z")
        self.assertEqual(set(digraph.vertices), {INI, PORT, TGT})
        self.assertEqual(digraph.initiators, [INI])

        ini = digraph.vertices[INI]
        self.assertEqual(ini.instance, 0x500304801E6A8F00)
        self.assertEqual(ini.outgoing_edges, (PORT,))
        self.assertEqual(ini.properties, (Property("manufacturer", "LSI"),))

        tgt = digraph.vertices[TGT]
        self.assertIsNone(tgt.outgoing_edges)
        self.assertEqual(tgt.edges, ())
        self.assertEqual(tgt.properties, (Property("phy-mask", "0,1"),))

    def test_empty_edge_list_is_preserved(self) -> None:
        digraph = _build(vertex_xml(INI, "initiator", edges=[]))
        self.assertEqual(digraph.vertices[INI].outgoing_edges, ())

    def test_protocol_group_never_contributes(self) -> None:
        protocol_with_plain_values = propgroup_xml("protocol", [("resource", "sas")])
        digraph = _build(
            vertex_xml(INI, "initiator", propgroups=[PROTOCOL_PG, protocol_with_plain_values])
        )
        self.assertEqual(digraph.vertices[INI].properties, ())

    def test_group_without_values_is_skipped(self) -> None:
        digraph = _build(
            vertex_xml(
                INI,
                "initiator",
                propgroups=[propgroup_xml("empty"), propgroup_xml("authority", [("product-id", "X")])],
            )
        )
        self.assertEqual(digraph.vertices[INI].properties, (Property("product-id", "X"),))

    def test_empty_string_array_property(self) -> None:
        digraph = _build(
            vertex_xml(
                TGT,
                "target",
                propgroups=[propgroup_xml("target-properties", [("phys", []), ("phy-mask", ["3"])])],
            )
        )
        self.assertEqual(
            digraph.vertices[TGT].properties,
            (Property("phys", ""), Property("phy-mask", "3")),
        )

    def test_properties_keep_tree_order(self) -> None:
        digraph = _build(
            vertex_xml(
                EXP,
                "expander",
                propgroups=[
                    propgroup_xml("authority", [("product-id", "X"), ("server-id", "hn")]),
                    propgroup_xml("expander-properties", [("phys", ["0", "1", "2"])]),
                ],
            )
        )
        self.assertEqual(
            [p.name for p in digraph.vertices[EXP].properties],
            ["product-id", "server-id", "phys"],
        )

    def test_group_without_name_is_rejected(self) -> None:
        nameless = (
            '<nvlist><nvpair name="property-values" type="nvlist-array">'
            "<nvlist/></nvpair></nvlist>"
        )
        with self.assertRaises(MalformedInputError) as ctx:
            _build(vertex_xml(INI, "initiator", propgroups=[nameless]))
        self.assertIn("property-group-name not set", str(ctx.exception))

    def test_group_with_empty_name_is_rejected(self) -> None:
        with self.assertRaises(MalformedInputError):
            _build(vertex_xml(INI, "initiator", propgroups=[propgroup_xml("", [("a", "b")])]))

    def test_unexpected_group_nvpair_is_rejected(self) -> None:
        extra = (
            '<nvlist><nvpair name="property-group-name" type="string" value="authority"/>'
            '<nvpair name="property-group-version" type="uint32" value="1"/></nvlist>'
        )
        with self.assertRaises(MalformedInputError) as ctx:
            _build(vertex_xml(INI, "initiator", propgroups=[extra]))
        self.assertIn("property-group-version", str(ctx.exception))

    def test_bad_instance_is_rejected(self) -> None:
        with self.assertRaises(MalformedInputError):
            _build(vertex_xml(INI, "initiator", instance="0xnothex"))

    def test_initiators_in_discovery_order(self) -> None:
        digraph = _build(
            vertex_xml(INI2, "initiator", edges=[TGT]),
            vertex_xml(TGT, "target"),
            vertex_xml(INI, "initiator", edges=[TGT]),
        )
        self.assertEqual(digraph.initiators, [INI2, INI])

    def test_edge_to_unknown_vertex(self) -> None:
        with self.assertRaises(VertexLookupError) as ctx:
            _build(vertex_xml(INI, "initiator", edges=["sas:///target=missing"]))
        self.assertEqual(ctx.exception.fmri, "sas:///target=missing")
        self.assertIn(INI, str(ctx.exception))

    def test_forward_edge_references_are_allowed(self) -> None:
        digraph = _build(vertex_xml(INI, "initiator", edges=[PORT]), vertex_xml(PORT, "port"))
        self.assertEqual(digraph.vertices[INI].edges, (PORT,))

    def test_duplicate_fmri_is_rejected(self) -> None:
        with self.assertRaises(MalformedInputError):
            _build(vertex_xml(PORT, "port"), vertex_xml(PORT, "port"))

    def test_lookup(self) -> None:
        digraph = _build(vertex_xml(PORT, "port"))
        self.assertEqual(digraph.vertex(PORT).name, "port")
        with self.assertRaises(VertexLookupError):
            digraph.vertex(TGT)


if __name__ == "__main__":
    unittest.main()
