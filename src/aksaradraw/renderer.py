"""SVG renderer.

Nodes arrive positioned by a layout. The renderer computes their bounding
box, shifts everything so the drawing starts at ``PADDING``, derives the
connector geometry for every drawable edge and serializes the result with
ElementTree. The geometry helpers are shared with the PNG backend in
``raster`` so both outputs agree.
"""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple

from .model import CanvasConfig, Edge, Node, RenderOptions
from .shapes import SVG_NS, ShapeRegistry, _fmt, _q

LOGGER = logging.getLogger(__name__)

PADDING = 50.0
DEFAULT_NODE_WIDTH = 100.0
DEFAULT_NODE_HEIGHT = 50.0

EDGE_STROKE = "#666"
EDGE_STROKE_WIDTH = 1.5
GUIDE_STROKE = "#999"
GUIDE_STROKE_WIDTH = 1.0
EDGE_LABEL_FONT_SIZE = 11.0
EDGE_LABEL_FILL = "#555"
EDGE_LABEL_OFFSET = 5.0
DASH_PATTERNS = {"dashed": "5,5", "dotted": "2,2"}
TRANSPARENT_BACKGROUNDS = {"none", "transparent"}

Point = Tuple[float, float]


@dataclass
class Bounds:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y


@dataclass
class Segment:
    start: Point
    end: Point
    guide: bool = False


@dataclass
class EdgeGeometry:
    """Connector for one edge: a cubic curve or a set of straight segments."""

    curve: Optional[Tuple[Point, Point, Point, Point]] = None
    segments: List[Segment] = field(default_factory=list)
    label_at: Optional[Point] = None

    @property
    def has_arrow(self) -> bool:
        return self.curve is not None


def node_box(node: Node) -> Tuple[float, float, float, float]:
    x = node.x if node.x is not None else 0.0
    y = node.y if node.y is not None else 0.0
    width = node.width if node.width is not None else DEFAULT_NODE_WIDTH
    height = node.height if node.height is not None else DEFAULT_NODE_HEIGHT
    return x, y, width, height


def measure_bounds(nodes: List[Node]) -> Bounds:
    if not nodes:
        return Bounds(0.0, 0.0, 0.0, 0.0)
    boxes = [node_box(node) for node in nodes]
    return Bounds(
        min_x=min(x for x, _, _, _ in boxes),
        min_y=min(y for _, y, _, _ in boxes),
        max_x=max(x + w for x, _, w, _ in boxes),
        max_y=max(y + h for _, y, _, h in boxes),
    )


def normalize_nodes(
    nodes: List[Node], padding: float = PADDING
) -> Tuple[List[Node], float, float]:
    """Return shifted copies of ``nodes`` plus the natural canvas size.

    The copies start at ``padding`` on both axes; the canvas is the bounding
    box grown by ``padding`` on every side.
    """
    bounds = measure_bounds(nodes)
    dx = padding - bounds.min_x
    dy = padding - bounds.min_y
    shifted = []
    for node in nodes:
        x, y, _, _ = node_box(node)
        shifted.append(replace(node, x=x + dx, y=y + dy))
    return shifted, bounds.width + 2 * padding, bounds.height + 2 * padding


def resolve_canvas(
    natural_width: float,
    natural_height: float,
    options: Optional[RenderOptions],
    canvas: Optional[CanvasConfig],
) -> Tuple[float, float, Optional[str]]:
    """Pick output width, height and background: options, then canvas, then natural size."""
    width = natural_width
    height = natural_height
    background: Optional[str] = None
    for source in (canvas, options):
        if source is None:
            continue
        if source.width is not None:
            width = source.width
        if source.height is not None:
            height = source.height
        if source.background:
            background = source.background
    return width, height, background


def _tree_list_geometry(source: Node, target: Node) -> Optional[EdgeGeometry]:
    meta = target.metadata
    depth = meta.tree_depth
    if depth is None or source.metadata.tree_depth != depth - 1:
        return None
    sx, sy, _, sh = node_box(source)
    tx, ty, _, th = node_box(target)
    indent = tx - sx
    if indent <= 0:
        return None

    trunk_x = sx + indent / 2.0
    center_y = ty + th / 2.0
    trunk_end = center_y if meta.is_last else ty + th
    geometry = EdgeGeometry(
        segments=[
            Segment((trunk_x, sy + sh), (trunk_x, trunk_end)),
            Segment((trunk_x, center_y), (tx, center_y)),
        ]
    )
    lines = meta.ancestor_lines or []
    for column in range(depth - 1):
        if column + 1 < len(lines) and lines[column + 1]:
            guide_x = tx - (depth - column) * indent + indent / 2.0
            geometry.segments.append(Segment((guide_x, ty), (guide_x, ty + th), guide=True))
    geometry.label_at = ((trunk_x + tx) / 2.0, center_y - EDGE_LABEL_OFFSET)
    return geometry


def _curve_geometry(source: Node, target: Node) -> EdgeGeometry:
    px, py, pw, ph = node_box(source)
    cx, cy, cw, ch = node_box(target)
    p_center = (px + pw / 2.0, py + ph / 2.0)
    c_center = (cx + cw / 2.0, cy + ch / 2.0)
    below = c_center[1] >= p_center[1]
    right = c_center[0] >= p_center[0]
    apart_x = cx >= px + pw or cx + cw <= px
    apart_y = cy >= py + ph or cy + ch <= py
    sv = 1.0 if below else -1.0
    sh = 1.0 if right else -1.0

    if apart_x and not apart_y:
        start = (px + pw if right else px, p_center[1])
        end = (cx if right else cx + cw, c_center[1])
        offset = abs(end[0] - start[0]) * 0.5
        c1 = (start[0] + sh * offset, start[1])
        c2 = (end[0] - sh * offset, end[1])
    elif apart_x and apart_y:
        start = (p_center[0], py + ph if below else py)
        end = (cx if right else cx + cw, c_center[1])
        c1 = (start[0], start[1] + sv * abs(end[1] - start[1]) * 0.4)
        c2 = (end[0] - sh * abs(end[0] - start[0]) * 0.3, end[1])
    else:
        start = (p_center[0], py + ph if below else py)
        end = (c_center[0], cy if below else cy + ch)
        offset = abs(end[1] - start[1]) * 0.5
        c1 = (start[0], start[1] + sv * offset)
        c2 = (end[0], end[1] - sv * offset)

    label_at = ((start[0] + end[0]) / 2.0, (start[1] + end[1]) / 2.0 - EDGE_LABEL_OFFSET)
    return EdgeGeometry(curve=(start, c1, c2, end), label_at=label_at)


def edge_geometry(source: Node, target: Node) -> EdgeGeometry:
    """Connector between two positioned nodes.

    Outline edges (the target carries ``tree_depth``) get right-angle
    segments; everything else is a cubic curve picked from how the two boxes
    are separated.
    """
    geometry = _tree_list_geometry(source, target)
    if geometry is not None:
        return geometry
    return _curve_geometry(source, target)


def drawable_edges(nodes: List[Node], edges: List[Edge]) -> List[Tuple[Edge, Node, Node]]:
    node_by_id: Dict[str, Node] = {node.id: node for node in nodes}
    drawable = []
    for edge in edges:
        source = node_by_id.get(edge.source)
        target = node_by_id.get(edge.target)
        if source is None or target is None:
            LOGGER.debug("skipping edge %s -> %s: endpoint not found", edge.source, edge.target)
            continue
        drawable.append((edge, source, target))
    return drawable


def edge_paint(edge: Edge) -> Tuple[str, float]:
    style = edge.style
    stroke = style.stroke if style is not None and style.stroke else EDGE_STROKE
    width = style.stroke_width if style is not None and style.stroke_width is not None else EDGE_STROKE_WIDTH
    return stroke, width


def _arrow_marker(defs: ET.Element) -> None:
    marker = ET.SubElement(
        defs,
        _q("marker"),
        {
            "id": "arrowhead",
            "markerWidth": "8",
            "markerHeight": "8",
            "refX": "7",
            "refY": "2.5",
            "orient": "auto",
        },
    )
    ET.SubElement(marker, _q("polygon"), {"points": "0 0, 8 2.5, 0 5", "fill": EDGE_STROKE})


def _edge_element(edge: Edge, geometry: EdgeGeometry) -> ET.Element:
    stroke, width = edge_paint(edge)
    group = ET.Element(_q("g"), {"class": f"edge edge-{edge.type}"})
    if edge.id:
        group.set("data-edge-id", edge.id)
    dash = DASH_PATTERNS.get(edge.type)

    if geometry.curve is not None:
        start, c1, c2, end = geometry.curve
        d = (
            f"M {_fmt(start[0])},{_fmt(start[1])} "
            f"C {_fmt(c1[0])},{_fmt(c1[1])} {_fmt(c2[0])},{_fmt(c2[1])} {_fmt(end[0])},{_fmt(end[1])}"
        )
        attrs = {
            "d": d,
            "fill": "none",
            "stroke": stroke,
            "stroke-width": _fmt(width),
            "marker-end": "url(#arrowhead)",
        }
        if dash:
            attrs["stroke-dasharray"] = dash
        ET.SubElement(group, _q("path"), attrs)

    for segment in geometry.segments:
        attrs = {
            "x1": _fmt(segment.start[0]),
            "y1": _fmt(segment.start[1]),
            "x2": _fmt(segment.end[0]),
            "y2": _fmt(segment.end[1]),
        }
        if segment.guide:
            attrs.update({"stroke": GUIDE_STROKE, "stroke-width": _fmt(GUIDE_STROKE_WIDTH)})
        else:
            attrs.update({"stroke": stroke, "stroke-width": _fmt(width)})
            if dash:
                attrs["stroke-dasharray"] = dash
        ET.SubElement(group, _q("line"), attrs)

    if edge.label and geometry.label_at is not None:
        text = ET.SubElement(
            group,
            _q("text"),
            {
                "x": _fmt(geometry.label_at[0]),
                "y": _fmt(geometry.label_at[1]),
                "text-anchor": "middle",
                "font-size": _fmt(EDGE_LABEL_FONT_SIZE),
                "fill": EDGE_LABEL_FILL,
            },
        )
        text.text = edge.label
    return group


def _pretty_xml(element: ET.Element) -> str:
    ET.indent(element, space="  ")
    return ET.tostring(element, encoding="unicode")


def render_svg(
    nodes: List[Node],
    edges: List[Edge],
    options: Optional[RenderOptions] = None,
    shapes: Optional[ShapeRegistry] = None,
    canvas: Optional[CanvasConfig] = None,
) -> str:
    """Serialize positioned ``nodes`` and ``edges`` as a standalone SVG document."""
    registry = shapes if shapes is not None else ShapeRegistry()
    positioned, natural_width, natural_height = normalize_nodes(nodes)
    width, height, background = resolve_canvas(natural_width, natural_height, options, canvas)

    root = ET.Element(
        _q("svg"),
        {
            "width": _fmt(width),
            "height": _fmt(height),
            "viewBox": f"0 0 {_fmt(width)} {_fmt(height)}",
        },
    )
    if options is not None and options.theme:
        root.set("data-theme", options.theme)
    if background and background.strip().lower() not in TRANSPARENT_BACKGROUNDS:
        ET.SubElement(
            root, _q("rect"), {"x": "0", "y": "0", "width": "100%", "height": "100%", "fill": background}
        )

    _arrow_marker(ET.SubElement(root, _q("defs")))

    edges_group = ET.SubElement(root, _q("g"), {"id": "edges"})
    for edge, source, target in drawable_edges(positioned, edges):
        edges_group.append(_edge_element(edge, edge_geometry(source, target)))

    nodes_group = ET.SubElement(root, _q("g"), {"id": "nodes"})
    for node in positioned:
        fragment = registry.render(node)
        fragment.set("data-node-id", node.id)
        nodes_group.append(fragment)

    LOGGER.debug(
        "rendered %d nodes and %d edges onto a %sx%s canvas",
        len(positioned),
        len(edges),
        _fmt(width),
        _fmt(height),
    )
    return _pretty_xml(root)


__all__ = [
    "PADDING",
    "Bounds",
    "EdgeGeometry",
    "Segment",
    "SVG_NS",
    "drawable_edges",
    "edge_geometry",
    "measure_bounds",
    "normalize_nodes",
    "render_svg",
]
