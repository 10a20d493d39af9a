"""Diagram model shared by the parser, layouts and renderer."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

DIRECTIONS = {"TB", "BT", "LR", "RL"}
DIRECTION_ALIASES = {"TD": "TB"}
CHILD_LAYOUTS = {"horizontal", "vertical"}
EDGE_TYPES = {"solid", "dashed", "dotted", "arrow"}


class AksaraDrawError(ValueError):
    """Engine error with a stable code for CLI mapping."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return self.message


def normalize_direction(value: Optional[str], default: Optional[str] = "TB") -> Optional[str]:
    if value is None:
        return default
    key = value.strip().upper()
    key = DIRECTION_ALIASES.get(key, key)
    if key in DIRECTIONS:
        return key
    return default


@dataclass
class NodeStyle:
    fill: Optional[str] = None
    stroke: Optional[str] = None
    stroke_width: Optional[float] = None
    font_size: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NodeStyle":
        return cls(
            fill=_opt_str(data.get("fill")),
            stroke=_opt_str(data.get("stroke")),
            stroke_width=_opt_float(data.get("strokeWidth")),
            font_size=_opt_float(data.get("fontSize")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return _compact(
            {
                "fill": self.fill,
                "stroke": self.stroke,
                "strokeWidth": self.stroke_width,
                "fontSize": self.font_size,
            }
        )


@dataclass
class EdgeStyle:
    stroke: Optional[str] = None
    stroke_width: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EdgeStyle":
        return cls(stroke=_opt_str(data.get("stroke")), stroke_width=_opt_float(data.get("strokeWidth")))

    def to_dict(self) -> Dict[str, Any]:
        return _compact({"stroke": self.stroke, "strokeWidth": self.stroke_width})


@dataclass
class NodeMetadata:
    """Side-channel between parser, layouts and renderer.

    ``child_layout`` and ``child_direction`` are written by the hierarchy
    parser and read by the tree layout. ``tree_depth``, ``is_last`` and
    ``ancestor_lines`` are written by the tree-list layout and read by the
    renderer to draw outline connectors.
    """

    child_layout: Optional[str] = None
    child_direction: Optional[str] = None
    tree_depth: Optional[int] = None
    is_last: Optional[bool] = None
    ancestor_lines: Optional[List[bool]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NodeMetadata":
        layout = data.get("childLayout")
        if layout not in CHILD_LAYOUTS:
            layout = None
        depth = data.get("treeDepth")
        lines = data.get("ancestorLines")
        return cls(
            child_layout=layout,
            child_direction=normalize_direction(data.get("childDirection"), None),
            tree_depth=int(depth) if depth is not None else None,
            is_last=bool(data["isLast"]) if data.get("isLast") is not None else None,
            ancestor_lines=[bool(v) for v in lines] if isinstance(lines, list) else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return _compact(
            {
                "childLayout": self.child_layout,
                "childDirection": self.child_direction,
                "treeDepth": self.tree_depth,
                "isLast": self.is_last,
                "ancestorLines": list(self.ancestor_lines) if self.ancestor_lines is not None else None,
            }
        )

    def is_empty(self) -> bool:
        return not self.to_dict()


@dataclass
class Node:
    id: str
    label: str
    shape: Optional[str] = None
    x: Optional[float] = None
    y: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    style: Optional[NodeStyle] = None
    metadata: NodeMetadata = field(default_factory=NodeMetadata)

    @property
    def font_size(self) -> Optional[float]:
        return self.style.font_size if self.style is not None else None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Node":
        style = data.get("style")
        metadata = data.get("metadata")
        label = data.get("label")
        return cls(
            id=str(data["id"]),
            label=str(label) if label is not None else str(data["id"]),
            shape=_opt_str(data.get("shape")),
            x=_opt_float(data.get("x")),
            y=_opt_float(data.get("y")),
            width=_opt_float(data.get("width")),
            height=_opt_float(data.get("height")),
            style=NodeStyle.from_dict(style) if isinstance(style, dict) else None,
            metadata=NodeMetadata.from_dict(metadata) if isinstance(metadata, dict) else NodeMetadata(),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = _compact(
            {
                "id": self.id,
                "label": self.label,
                "shape": self.shape,
                "x": self.x,
                "y": self.y,
                "width": self.width,
                "height": self.height,
            }
        )
        if self.style is not None and self.style.to_dict():
            data["style"] = self.style.to_dict()
        if not self.metadata.is_empty():
            data["metadata"] = self.metadata.to_dict()
        return data


@dataclass
class Edge:
    source: str
    target: str
    label: Optional[str] = None
    type: str = "solid"
    id: Optional[str] = None
    style: Optional[EdgeStyle] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Edge":
        style = data.get("style")
        edge_type = data.get("type") or "solid"
        if edge_type not in EDGE_TYPES:
            edge_type = "solid"
        label = data.get("label")
        return cls(
            source=str(data.get("from", "")),
            target=str(data.get("to", "")),
            label=str(label) if label is not None else None,
            type=edge_type,
            id=_opt_str(data.get("id")),
            style=EdgeStyle.from_dict(style) if isinstance(style, dict) else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = _compact({"id": self.id, "from": self.source, "to": self.target, "label": self.label})
        if self.type != "solid":
            data["type"] = self.type
        if self.style is not None and self.style.to_dict():
            data["style"] = self.style.to_dict()
        return data


@dataclass
class Spacing:
    x: Optional[float] = None
    y: Optional[float] = None


@dataclass
class LayoutConfig:
    algorithm: str = "tree"
    direction: str = "TB"
    spacing: Optional[Spacing] = None
    padding: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LayoutConfig":
        spacing = data.get("spacing")
        parsed_spacing: Optional[Spacing] = None
        if isinstance(spacing, dict):
            parsed_spacing = Spacing(x=_opt_float(spacing.get("x")), y=_opt_float(spacing.get("y")))
        return cls(
            algorithm=str(data.get("algorithm") or "grid"),
            direction=normalize_direction(data.get("direction")),
            spacing=parsed_spacing,
            padding=_opt_float(data.get("padding")),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"algorithm": self.algorithm, "direction": self.direction}
        if self.spacing is not None:
            data["spacing"] = _compact({"x": self.spacing.x, "y": self.spacing.y})
        if self.padding is not None:
            data["padding"] = self.padding
        return data


def default_layout() -> LayoutConfig:
    return LayoutConfig(algorithm="tree", direction="TB", spacing=Spacing(x=150.0, y=100.0))


@dataclass
class CanvasConfig:
    width: Optional[float] = None
    height: Optional[float] = None
    background: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CanvasConfig":
        return cls(
            width=_opt_float(data.get("width")),
            height=_opt_float(data.get("height")),
            background=_opt_str(data.get("background")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return _compact({"width": self.width, "height": self.height, "background": self.background})


@dataclass
class RenderOptions:
    width: Optional[float] = None
    height: Optional[float] = None
    background: Optional[str] = None
    theme: Optional[str] = None


@dataclass
class Diagram:
    type: str = "custom"
    nodes: List[Node] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)
    layout: LayoutConfig = field(default_factory=default_layout)
    canvas: Optional[CanvasConfig] = None

    def node_by_id(self) -> Dict[str, Node]:
        return {node.id: node for node in self.nodes}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Diagram":
        raw_nodes = data.get("nodes") or []
        raw_edges = data.get("edges") or []
        if not isinstance(raw_nodes, list) or not isinstance(raw_edges, list):
            raise AksaraDrawError("E_PARSE_STRUCTURE", '"nodes" and "edges" must be arrays')
        nodes: List[Node] = []
        for idx, raw in enumerate(raw_nodes):
            if not isinstance(raw, dict) or raw.get("id") is None:
                raise AksaraDrawError(
                    "E_PARSE_STRUCTURE", f"node at index {idx} must be an object with an \"id\""
                )
            nodes.append(Node.from_dict(raw))
        edges = [Edge.from_dict(raw) for raw in raw_edges if isinstance(raw, dict)]
        layout = data.get("layout")
        canvas = data.get("canvas")
        return cls(
            type=str(data.get("type") or "custom"),
            nodes=nodes,
            edges=edges,
            layout=LayoutConfig.from_dict(layout) if isinstance(layout, dict) else default_layout(),
            canvas=CanvasConfig.from_dict(canvas) if isinstance(canvas, dict) else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "type": self.type,
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
            "layout": self.layout.to_dict(),
        }
        if self.canvas is not None and self.canvas.to_dict():
            data["canvas"] = self.canvas.to_dict()
        return data

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _opt_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _compact(values: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}
