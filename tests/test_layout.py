from __future__ import annotations

import sys
import unittest
from pathlib import Path

TESTS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = TESTS_DIR.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from aksaradraw import Edge, LayoutConfig, Node, Spacing, layout_diagram, parse
from aksaradraw.layout import layout_grid, layout_tree, layout_tree_list, resolve_layout
from aksaradraw.sizing import auto_size_nodes, calculate_text_size


def _boxes(labels: list[str]) -> list[Node]:
    return [Node(id=label, label=label, width=100.0, height=50.0) for label in labels]


class SizingTests(unittest.TestCase):
    def test_single_line(self) -> None:
        width, height = calculate_text_size("Hi", 14)
        self.assertAlmostEqual(width, 36.8)
        self.assertAlmostEqual(height, 41.0)

    def test_multi_line(self) -> None:
        width, height = calculate_text_size("ab\nabcd", 14)
        self.assertAlmostEqual(width, 53.6)
        self.assertAlmostEqual(height, 62.0)

    def test_only_missing_dimension_is_filled(self) -> None:
        node = Node(id="a", label="Hi", width=200.0)
        auto_size_nodes([node])
        self.assertEqual(node.width, 200.0)
        self.assertAlmostEqual(node.height, 41.0)


class GridLayoutTests(unittest.TestCase):
    def test_five_nodes_three_columns(self) -> None:
        nodes = layout_grid(_boxes(list("abcde")), [], LayoutConfig(algorithm="grid"))
        self.assertEqual(
            [(node.x, node.y) for node in nodes],
            [(0, 0), (150, 0), (300, 0), (0, 100), (150, 100)],
        )

    def test_empty(self) -> None:
        self.assertEqual(layout_grid([], [], LayoutConfig(algorithm="grid")), [])

    def test_unknown_algorithm_falls_back_to_grid(self) -> None:
        self.assertIs(resolve_layout("force"), layout_grid)
        self.assertIs(resolve_layout(None), layout_grid)
        self.assertIs(resolve_layout("Tree-List"), layout_tree_list)


class TreeLayoutTests(unittest.TestCase):
    def _positions(self, text: str, **layout) -> dict[str, tuple[float, float]]:
        diagram = parse(text)
        for key, value in layout.items():
            setattr(diagram.layout, key, value)
        return {node.label: (node.x, node.y) for node in layout_diagram(diagram)}

    def test_default_stacks_children_in_a_column(self) -> None:
        pos = self._positions("CEO > [CTO, CFO]")
        self.assertEqual(pos["CEO"], (0, 0))
        self.assertAlmostEqual(pos["CTO"][0], 195.2)
        self.assertAlmostEqual(pos["CFO"][0], 195.2)
        self.assertAlmostEqual(pos["CTO"][1], 100.0)
        self.assertAlmostEqual(pos["CFO"][1], 171.0)

    def test_horizontal_children_side_by_side(self) -> None:
        pos = self._positions("CEO > [CTO, CFO] (h)")
        self.assertAlmostEqual(pos["CEO"][0], 37.6)
        self.assertEqual(pos["CEO"][1], 0)
        self.assertAlmostEqual(pos["CTO"][0], 0.0)
        self.assertAlmostEqual(pos["CFO"][0], 75.2)
        self.assertEqual(pos["CTO"][1], 100)
        self.assertEqual(pos["CFO"][1], 100)

    def test_right_to_left_children_pack_from_far_end(self) -> None:
        pos = self._positions("CEO > [CTO, CFO] (h, RL)")
        self.assertAlmostEqual(pos["CFO"][0], 0.0)
        self.assertAlmostEqual(pos["CTO"][0], 75.2)

    def test_bottom_to_top_mirrors(self) -> None:
        pos = self._positions("CEO > [CTO, CFO] (h)", direction="BT")
        self.assertAlmostEqual(pos["CEO"][1], 100.0)
        self.assertAlmostEqual(pos["CTO"][1], 0.0)
        self.assertAlmostEqual(pos["CFO"][1], 0.0)

    def test_left_to_right_spreads_children_vertically(self) -> None:
        pos = self._positions("CEO > [CTO, CFO]", direction="LR")
        self.assertEqual(pos["CEO"][0], 0)
        self.assertAlmostEqual(pos["CEO"][1], 35.5)
        self.assertEqual(pos["CTO"], (150, 0))
        self.assertAlmostEqual(pos["CFO"][1], 71.0)

    def test_right_to_left_mirrors(self) -> None:
        pos = self._positions("CEO > [CTO, CFO]", direction="RL")
        self.assertAlmostEqual(pos["CEO"][0], 150.0)
        self.assertAlmostEqual(pos["CTO"][0], 0.0)

    def test_idempotent(self) -> None:
        diagram = parse("A > [B, C] (h)\nB > [D, E]\nC > [F]")
        first = [(n.id, n.x, n.y) for n in layout_diagram(diagram)]
        second = [(n.id, n.x, n.y) for n in layout_diagram(diagram)]
        self.assertEqual(first, second)

        nodes = _boxes(["a", "b"])
        nodes[1].x, nodes[1].y = 999.0, 999.0
        edges = [Edge(source="a", target="b")]
        once = [(n.x, n.y) for n in layout_tree(nodes, edges, LayoutConfig())]
        twice = [(n.x, n.y) for n in layout_tree(nodes, edges, LayoutConfig())]
        self.assertEqual(once, twice)

    def test_cycles_terminate_and_place_every_node(self) -> None:
        nodes = _boxes(["a", "b"])
        edges = [Edge(source="a", target="b"), Edge(source="b", target="a"), Edge(source="a", target="a")]
        placed = layout_tree(nodes, edges, LayoutConfig())
        self.assertEqual([node.id for node in placed], ["a", "b"])
        self.assertTrue(all(node.x is not None and node.y is not None for node in placed))

    def test_disconnected_nodes_form_extra_trees(self) -> None:
        nodes = _boxes(["a", "b", "c"])
        placed = layout_tree(nodes, [Edge(source="a", target="b")], LayoutConfig())
        pos = {node.id: (node.x, node.y) for node in placed}
        self.assertEqual(pos["a"], (0, 0))
        self.assertEqual(pos["b"], (250, 100))
        self.assertEqual(pos["c"], (380, 0))

    def test_root_is_first_node_without_known_parent(self) -> None:
        nodes = _boxes(["child", "root"])
        edges = [Edge(source="ghost", target="root"), Edge(source="root", target="child")]
        placed = layout_tree(nodes, edges, LayoutConfig())
        self.assertEqual(placed[0].id, "root")

    def test_small_pitch_is_pushed_below_parent(self) -> None:
        nodes = _boxes(["a", "b"])
        config = LayoutConfig(spacing=Spacing(y=10.0))
        placed = layout_tree(nodes, [Edge(source="a", target="b")], config)
        self.assertEqual(placed[1].y, 80)


class TreeListLayoutTests(unittest.TestCase):
    def test_outline_positions_and_metadata(self) -> None:
        nodes = _boxes(["root", "a", "b", "a1"])
        edges = [
            Edge(source="root", target="a"),
            Edge(source="root", target="b"),
            Edge(source="a", target="a1"),
        ]
        placed = layout_tree_list(nodes, edges, LayoutConfig(algorithm="tree-list"))
        self.assertEqual([node.id for node in placed], ["root", "a", "a1", "b"])
        self.assertEqual([(n.x, n.y) for n in placed], [(0, 0), (150, 60), (300, 120), (150, 180)])
        by_id = {node.id: node.metadata for node in placed}
        self.assertEqual([by_id[key].tree_depth for key in ("root", "a", "a1", "b")], [0, 1, 2, 1])
        self.assertFalse(by_id["a"].is_last)
        self.assertTrue(by_id["b"].is_last)
        self.assertTrue(by_id["a1"].is_last)
        self.assertEqual(by_id["root"].ancestor_lines, [])
        self.assertEqual(len(by_id["a1"].ancestor_lines), 2)
        self.assertTrue(by_id["a1"].ancestor_lines[1])


if __name__ == "__main__":
    unittest.main()
