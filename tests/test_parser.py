from __future__ import annotations

import json
import sys
import unittest
from pathlib import Path

TESTS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = TESTS_DIR.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from aksaradraw import AksaraDrawError, Diagram, parse
from aksaradraw.parser import detect_input_kind, parse_flow, parse_hierarchy


class HierarchyParserTests(unittest.TestCase):
    def test_parent_with_children(self) -> None:
        diagram = parse("CEO > [CTO, CFO]")
        self.assertEqual(diagram.type, "org")
        self.assertEqual([node.label for node in diagram.nodes], ["CEO", "CTO", "CFO"])
        self.assertEqual([node.id for node in diagram.nodes], ["n1", "n2", "n3"])
        self.assertEqual([(e.source, e.target) for e in diagram.edges], [("n1", "n2"), ("n1", "n3")])
        self.assertEqual(diagram.layout.algorithm, "tree")
        self.assertEqual(diagram.layout.direction, "TB")
        self.assertEqual((diagram.layout.spacing.x, diagram.layout.spacing.y), (150.0, 100.0))

    def test_options_set_child_layout_and_direction(self) -> None:
        diagram = parse_hierarchy("CEO > [CTO, CFO] (h, LR)\nCTO > [Dev] (TD)")
        ceo, cto = diagram.nodes[0], diagram.nodes[1]
        self.assertEqual(ceo.metadata.child_layout, "horizontal")
        self.assertEqual(ceo.metadata.child_direction, "LR")
        self.assertIsNone(cto.metadata.child_layout)
        self.assertEqual(cto.metadata.child_direction, "TB")

    def test_options_are_whole_tokens(self) -> None:
        diagram = parse_hierarchy("Root > [A] (vertical)")
        self.assertEqual(diagram.nodes[0].metadata.child_layout, "vertical")
        self.assertIsNone(diagram.nodes[0].metadata.child_direction)

    def test_repeated_labels_share_a_node(self) -> None:
        diagram = parse("CEO > [CTO]\nCTO > [Dev, QA]\n\nCEO > [CFO]")
        self.assertEqual([node.label for node in diagram.nodes], ["CEO", "CTO", "Dev", "QA", "CFO"])
        self.assertEqual(len(diagram.edges), 4)

    def test_empty_children_are_skipped(self) -> None:
        diagram = parse_hierarchy("A > [B, , C,]")
        self.assertEqual([node.label for node in diagram.nodes], ["A", "B", "C"])
        self.assertEqual(len(diagram.edges), 2)

    def test_standalone_line_becomes_node(self) -> None:
        diagram = parse_hierarchy("Lonely")
        self.assertEqual(len(diagram.nodes), 1)
        self.assertEqual(diagram.edges, [])

    def test_ids_restart_per_call(self) -> None:
        parse("X > [Y]")
        diagram = parse("A > [B]")
        self.assertEqual(diagram.nodes[0].id, "n1")


class FlowParserTests(unittest.TestCase):
    def test_decision_and_edge_label(self) -> None:
        diagram = parse("Valid Data? -> Show Error [label: Tidak]")
        self.assertEqual(diagram.type, "flowchart")
        decision, target = diagram.nodes
        self.assertEqual((decision.label, decision.shape), ("Valid Data", "diamond"))
        self.assertEqual((target.label, target.shape), ("Show Error", "rect"))
        self.assertEqual(diagram.edges[0].label, "Tidak")

    def test_chain_reuses_nodes(self) -> None:
        diagram = parse_flow("Start -> Input\nInput -> Valid?\nValid? -> Save [label: Ya]\nOrphan")
        self.assertEqual([node.label for node in diagram.nodes], ["Start", "Input", "Valid", "Save", "Orphan"])
        self.assertEqual(len(diagram.edges), 3)
        self.assertIsNone(diagram.edges[0].label)
        self.assertEqual(diagram.edges[2].label, "Ya")


class StructuredParserTests(unittest.TestCase):
    def test_json_document(self) -> None:
        source = json.dumps(
            {
                "type": "custom",
                "nodes": [
                    {"id": "a", "label": "A", "shape": "circle", "style": {"fill": "#eee", "fontSize": 12}},
                    {"id": "b", "label": "B"},
                ],
                "edges": [{"from": "a", "to": "b", "type": "dashed", "label": "go"}],
                "layout": {"algorithm": "tree", "direction": "LR"},
            }
        )
        diagram = parse(source)
        self.assertEqual(diagram.nodes[0].shape, "circle")
        self.assertEqual(diagram.nodes[0].font_size, 12.0)
        self.assertEqual(diagram.edges[0].type, "dashed")
        self.assertEqual(diagram.edges[0].source, "a")
        self.assertEqual(diagram.layout.direction, "LR")

    def test_missing_sections_default(self) -> None:
        diagram = parse('{"nodes": [{"id": "only"}]}')
        self.assertEqual(diagram.nodes[0].label, "only")
        self.assertEqual(diagram.edges, [])
        self.assertEqual(diagram.layout.algorithm, "tree")

    def test_invalid_json(self) -> None:
        with self.assertRaises(AksaraDrawError) as ctx:
            parse("{not json")
        self.assertEqual(ctx.exception.code, "E_PARSE_JSON")
        self.assertTrue(str(ctx.exception).startswith("Invalid JSON:"))
        self.assertIsInstance(ctx.exception.__cause__, json.JSONDecodeError)

    def test_non_object_document(self) -> None:
        with self.assertRaises(AksaraDrawError) as ctx:
            parse("[1, 2]", "json")
        self.assertEqual(ctx.exception.code, "E_PARSE_STRUCTURE")

    def test_null_label_falls_back_to_id(self) -> None:
        diagram = parse('{"nodes": [{"id": "a", "label": null}, {"id": 7}]}')
        self.assertEqual([node.label for node in diagram.nodes], ["a", "7"])

    def test_scalar_fields_are_coerced_to_strings(self) -> None:
        diagram = parse(
            '{"nodes": [{"id": "a", "shape": 3, "style": {"fill": 5, "stroke": 0}}, {"id": "b"}],'
            ' "edges": [{"id": 1, "from": "a", "to": "b", "style": {"stroke": 9}}],'
            ' "canvas": {"background": 255}}'
        )
        node = diagram.nodes[0]
        self.assertEqual((node.shape, node.style.fill, node.style.stroke), ("3", "5", "0"))
        self.assertEqual((diagram.edges[0].id, diagram.edges[0].style.stroke), ("1", "9"))
        self.assertEqual(diagram.canvas.background, "255")

    def test_node_without_id(self) -> None:
        with self.assertRaises(AksaraDrawError) as ctx:
            parse('{"nodes": [{"label": "nameless"}]}')
        self.assertEqual(ctx.exception.code, "E_PARSE_STRUCTURE")

    def test_round_trip(self) -> None:
        original = parse("CEO > [CTO, CFO] (h)\nCTO > [Dev]")
        again = parse(original.to_json())
        self.assertIsInstance(again, Diagram)
        self.assertEqual(again, original)


class DetectionTests(unittest.TestCase):
    def test_detection(self) -> None:
        self.assertEqual(detect_input_kind('  {"nodes": []}'), "structured")
        self.assertEqual(detect_input_kind("A > [B]"), "hierarchy")
        self.assertEqual(detect_input_kind("A -> B"), "flow")
        self.assertEqual(detect_input_kind("just a label"), "hierarchy")

    def test_hint_overrides_detection(self) -> None:
        diagram = parse("A -> B", "hierarchy")
        self.assertEqual(diagram.type, "org")
        self.assertEqual(len(diagram.nodes), 1)
        self.assertEqual(parse("A -> B", "flowchart").type, "flowchart")

    def test_unknown_hint(self) -> None:
        with self.assertRaises(AksaraDrawError) as ctx:
            parse("A -> B", "sequence")
        self.assertEqual(ctx.exception.code, "E_PARSE_HINT")


if __name__ == "__main__":
    unittest.main()
