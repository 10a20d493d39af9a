"""Layout algorithms: tree, grid and indented tree-list.

Every algorithm takes ``(nodes, edges, config)``, writes ``x``/``y`` onto the
given nodes and returns them in output order. Trees are rebuilt per call as
an adjacency map plus an arena of ``_TreeNode`` entries addressed by index.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set, Tuple

from .model import Edge, LayoutConfig, Node

LOGGER = logging.getLogger(__name__)

DEFAULT_NODE_WIDTH = 100.0
DEFAULT_NODE_HEIGHT = 50.0
MIN_NODE_GAP = 30.0
STACK_GAP = 150.0

TREE_SPACING = (150.0, 100.0)
GRID_SPACING = (150.0, 100.0)
TREE_LIST_SPACING = (150.0, 60.0)

LayoutAlgorithm = Callable[[List[Node], List[Edge], LayoutConfig], List[Node]]


@dataclass
class _TreeNode:
    node: Node
    parent: Optional[int]
    depth: int
    children: List[int] = field(default_factory=list)
    is_last: bool = False
    extent: float = 0.0
    breadth: float = 0.0
    depth_pos: float = 0.0


def _spacing(config: LayoutConfig, defaults: Tuple[float, float]) -> Tuple[float, float]:
    spacing = config.spacing
    if spacing is None:
        return defaults
    x = spacing.x if spacing.x is not None else defaults[0]
    y = spacing.y if spacing.y is not None else defaults[1]
    return x, y


def _width(node: Node) -> float:
    return node.width if node.width is not None else DEFAULT_NODE_WIDTH


def _height(node: Node) -> float:
    return node.height if node.height is not None else DEFAULT_NODE_HEIGHT


def child_arrangement(node: Node, depth_is_x: bool) -> Tuple[bool, bool]:
    """Return ``(side_by_side, reversed)`` for the children of ``node``.

    ``child_layout`` names the physical orientation of the sibling group
    (``horizontal`` is a row, ``vertical`` a column); without it,
    ``child_direction`` picks one and the default is ``vertical``. A row is
    side-by-side when depth runs along y and stacked when it runs along x.
    """
    meta = node.metadata
    physical = meta.child_layout
    if physical is None and meta.child_direction is not None:
        physical = "horizontal" if meta.child_direction in {"LR", "RL"} else "vertical"
    if physical is None:
        physical = "vertical"
    side_by_side = (physical == "horizontal") != depth_is_x
    reverse_code = "BT" if depth_is_x else "RL"
    return side_by_side, side_by_side and meta.child_direction == reverse_code


def build_forest(nodes: List[Node], edges: List[Edge]) -> Tuple[List[_TreeNode], List[int]]:
    """Build the layout forest for ``nodes``.

    The first tree is rooted at the first node without an incoming edge (or
    the first node when every node has one). Remaining parentless nodes, then
    any other unvisited node, root further trees so every node is placed
    exactly once. A node reached twice keeps its first (pre-order) parent,
    which also breaks cycles.
    """
    node_by_id: Dict[str, Node] = {node.id: node for node in nodes}
    children_by_id: Dict[str, List[str]] = {}
    has_parent: Set[str] = set()
    for edge in edges:
        if edge.source not in node_by_id or edge.target not in node_by_id:
            continue
        children_by_id.setdefault(edge.source, []).append(edge.target)
        if edge.source != edge.target:
            has_parent.add(edge.target)

    arena: List[_TreeNode] = []
    visited: Set[str] = set()

    def _build(node_id: str, parent: Optional[int], depth: int) -> int:
        visited.add(node_id)
        index = len(arena)
        arena.append(_TreeNode(node=node_by_id[node_id], parent=parent, depth=depth))
        for child_id in children_by_id.get(node_id, []):
            if child_id in visited:
                continue
            arena[index].children.append(_build(child_id, index, depth + 1))
        if arena[index].children:
            arena[arena[index].children[-1]].is_last = True
        return index

    roots: List[int] = []
    candidates = [node for node in nodes if node.id not in has_parent]
    candidates.extend(node for node in nodes if node.id in has_parent)
    for node in candidates:
        if node.id in visited:
            continue
        if roots:
            LOGGER.debug("node %r is unreachable from the root; starting another tree", node.id)
        roots.append(_build(node.id, None, 0))
    return arena, roots


class _TreePlacer:
    """Places one forest along abstract depth/breadth axes."""

    def __init__(self, arena: List[_TreeNode], depth_is_x: bool, pitch: float) -> None:
        self.arena = arena
        self.depth_is_x = depth_is_x
        self.pitch = pitch

    def breadth_size(self, tree: _TreeNode) -> float:
        return _height(tree.node) if self.depth_is_x else _width(tree.node)

    def depth_size(self, tree: _TreeNode) -> float:
        return _width(tree.node) if self.depth_is_x else _height(tree.node)

    def arrangement(self, tree: _TreeNode) -> Tuple[bool, bool]:
        return child_arrangement(tree.node, self.depth_is_x)

    def compute_extent(self, index: int) -> float:
        tree = self.arena[index]
        own = self.breadth_size(tree)
        if not tree.children:
            tree.extent = own
            return own
        child_extents = [self.compute_extent(child) for child in tree.children]
        side_by_side, _ = self.arrangement(tree)
        if side_by_side:
            total = sum(child_extents) + (len(child_extents) - 1) * MIN_NODE_GAP
            tree.extent = max(own, total)
        else:
            tree.extent = own + STACK_GAP + max(child_extents)
        return tree.extent

    def place(self, index: int, bound: float, depth_pos: float) -> float:
        """Place the subtree at ``index``; return its far depth edge."""
        tree = self.arena[index]
        own = self.breadth_size(tree)
        far = depth_pos + self.depth_size(tree)
        tree.depth_pos = depth_pos
        if not tree.children:
            tree.breadth = bound
            return far

        floor = depth_pos + self.depth_size(tree) + MIN_NODE_GAP
        side_by_side, reverse = self.arrangement(tree)
        if side_by_side:
            tree.breadth = bound + (tree.extent - own) / 2.0
            extents = [self.arena[child].extent for child in tree.children]
            total = sum(extents) + (len(extents) - 1) * MIN_NODE_GAP
            start = bound + (tree.extent - total) / 2.0
            cursor = start
            for child, extent in zip(tree.children, extents):
                slot = cursor
                if reverse:
                    slot = start + total - (cursor - start) - extent
                far = max(far, self._place_child(child, slot, depth_pos + self.pitch, floor))
                cursor += extent + MIN_NODE_GAP
        else:
            tree.breadth = bound
            column = bound + own + STACK_GAP
            cursor = depth_pos + self.pitch
            for child in tree.children:
                child_far = self._place_child(child, column, cursor, floor)
                far = max(far, child_far)
                cursor = child_far + MIN_NODE_GAP
        return far

    def _place_child(self, index: int, bound: float, depth_pos: float, floor: float) -> float:
        far = self.place(index, bound, depth_pos)
        if depth_pos < floor:
            deficit = floor - depth_pos
            self._shift_depth(index, deficit)
            far += deficit
        return far

    def _shift_depth(self, index: int, amount: float) -> None:
        tree = self.arena[index]
        tree.depth_pos += amount
        for child in tree.children:
            self._shift_depth(child, amount)

    def commit(self) -> None:
        for tree in self.arena:
            if self.depth_is_x:
                tree.node.x, tree.node.y = tree.depth_pos, tree.breadth
            else:
                tree.node.x, tree.node.y = tree.breadth, tree.depth_pos


def layout_tree(nodes: List[Node], edges: List[Edge], config: LayoutConfig) -> List[Node]:
    if not nodes:
        return []
    direction = config.direction or "TB"
    depth_is_x = direction in {"LR", "RL"}
    spacing_x, spacing_y = _spacing(config, TREE_SPACING)
    pitch = spacing_x if depth_is_x else spacing_y

    arena, roots = build_forest(nodes, edges)
    placer = _TreePlacer(arena, depth_is_x, pitch)
    cursor = 0.0
    for root in roots:
        extent = placer.compute_extent(root)
        placer.place(root, cursor, 0.0)
        cursor += extent + MIN_NODE_GAP
    placer.commit()

    positioned = [tree.node for tree in arena]
    if direction == "BT":
        max_bottom = max(node.y + _height(node) for node in positioned)
        for node in positioned:
            node.y = max_bottom - node.y - _height(node)
    elif direction == "RL":
        max_right = max(node.x + _width(node) for node in positioned)
        for node in positioned:
            node.x = max_right - node.x - _width(node)
    return positioned


def layout_grid(nodes: List[Node], edges: List[Edge], config: LayoutConfig) -> List[Node]:
    """Row-major grid with ``ceil(sqrt(n))`` columns; edges are ignored."""
    if not nodes:
        return []
    spacing_x, spacing_y = _spacing(config, GRID_SPACING)
    cols = math.ceil(math.sqrt(len(nodes)))
    for idx, node in enumerate(nodes):
        node.x = (idx % cols) * spacing_x
        node.y = (idx // cols) * spacing_y
    return list(nodes)


def layout_tree_list(nodes: List[Node], edges: List[Edge], config: LayoutConfig) -> List[Node]:
    """Indented outline: one line per node in pre-order.

    Also records ``tree_depth``, ``is_last`` and ``ancestor_lines`` so the
    renderer can draw outline connectors without walking the tree again.
    """
    if not nodes:
        return []
    indent, line_height = _spacing(config, TREE_LIST_SPACING)
    arena, _roots = build_forest(nodes, edges)

    lines_by_index: Dict[int, List[bool]] = {}
    for line, tree in enumerate(arena):
        if tree.parent is None:
            ancestor_lines: List[bool] = []
        else:
            parent = arena[tree.parent]
            ancestor_lines = lines_by_index[tree.parent] + [not parent.is_last]
        lines_by_index[line] = ancestor_lines
        node = tree.node
        node.x = tree.depth * indent
        node.y = line * line_height
        node.metadata.tree_depth = tree.depth
        node.metadata.is_last = tree.is_last
        node.metadata.ancestor_lines = list(ancestor_lines)
    return [tree.node for tree in arena]


LAYOUTS: Dict[str, LayoutAlgorithm] = {
    "tree": layout_tree,
    "grid": layout_grid,
    "tree-list": layout_tree_list,
}


def resolve_layout(name: Optional[str]) -> LayoutAlgorithm:
    algorithm = LAYOUTS.get((name or "").strip().lower())
    if algorithm is None:
        LOGGER.debug("unknown layout algorithm %r; using grid", name)
        return layout_grid
    return algorithm


__all__ = [
    "LAYOUTS",
    "build_forest",
    "child_arrangement",
    "layout_grid",
    "layout_tree",
    "layout_tree_list",
    "resolve_layout",
]
