"""Built-in node shapes and the registry for caller-supplied shapes."""
from __future__ import annotations

import logging
import math
import xml.etree.ElementTree as ET
from typing import Callable, Dict, Optional, Tuple, Union

from .model import AksaraDrawError, Node
from .sizing import DEFAULT_FONT_SIZE, LINE_HEIGHT

LOGGER = logging.getLogger(__name__)

SVG_NS = "http://www.w3.org/2000/svg"
ET.register_namespace("", SVG_NS)

DEFAULT_FILL = "white"
DEFAULT_STROKE = "black"
DEFAULT_STROKE_WIDTH = 2.0
LABEL_FILL = "black"

ShapeRenderer = Callable[[Node], Union[ET.Element, str]]


def _q(tag: str) -> str:
    return f"{{{SVG_NS}}}{tag}"


def _fmt(value: float) -> str:
    if math.isclose(value, round(value)):
        return str(int(round(value)))
    return f"{value:.3f}".rstrip("0").rstrip(".")


def _box(node: Node, default_width: float, default_height: float) -> Tuple[float, float, float, float]:
    x = node.x if node.x is not None else 0.0
    y = node.y if node.y is not None else 0.0
    width = node.width if node.width is not None else default_width
    height = node.height if node.height is not None else default_height
    return x, y, width, height


def _paint(node: Node) -> Dict[str, str]:
    style = node.style
    fill = style.fill if style is not None and style.fill else DEFAULT_FILL
    stroke = style.stroke if style is not None and style.stroke else DEFAULT_STROKE
    stroke_width = (
        style.stroke_width if style is not None and style.stroke_width is not None else DEFAULT_STROKE_WIDTH
    )
    return {"fill": fill, "stroke": stroke, "stroke-width": _fmt(stroke_width)}


def _label(node: Node, cx: float, cy: float) -> ET.Element:
    font_size = node.font_size or DEFAULT_FONT_SIZE
    text = ET.Element(
        _q("text"),
        {
            "x": _fmt(cx),
            "y": _fmt(cy),
            "text-anchor": "middle",
            "dominant-baseline": "middle",
            "font-size": _fmt(font_size),
            "fill": LABEL_FILL,
        },
    )
    lines = node.label.split("\n")
    if len(lines) == 1:
        text.text = node.label
        return text
    line_height = font_size * LINE_HEIGHT
    for idx, line in enumerate(lines):
        dy = -(len(lines) - 1) / 2.0 * line_height if idx == 0 else line_height
        tspan = ET.SubElement(text, _q("tspan"), {"x": _fmt(cx), "dy": _fmt(dy)})
        tspan.text = line
    return text


def _group(kind: str, primitive: ET.Element, label: ET.Element) -> ET.Element:
    group = ET.Element(_q("g"), {"class": f"node shape-{kind}"})
    group.append(primitive)
    group.append(label)
    return group


def render_rect(node: Node) -> ET.Element:
    x, y, width, height = _box(node, 100.0, 50.0)
    attrs = {"x": _fmt(x), "y": _fmt(y), "width": _fmt(width), "height": _fmt(height), "rx": "5"}
    attrs.update(_paint(node))
    return _group("rect", ET.Element(_q("rect"), attrs), _label(node, x + width / 2, y + height / 2))


def render_circle(node: Node) -> ET.Element:
    x, y, width, height = _box(node, 80.0, 80.0)
    cx, cy = x + width / 2, y + height / 2
    attrs = {"cx": _fmt(cx), "cy": _fmt(cy), "r": _fmt(max(width, height) / 2)}
    attrs.update(_paint(node))
    return _group("circle", ET.Element(_q("circle"), attrs), _label(node, cx, cy))


def render_diamond(node: Node) -> ET.Element:
    x, y, width, height = _box(node, 100.0, 80.0)
    cx, cy = x + width / 2, y + height / 2
    d = (
        f"M {_fmt(cx)},{_fmt(y)} L {_fmt(x + width)},{_fmt(cy)} "
        f"L {_fmt(cx)},{_fmt(y + height)} L {_fmt(x)},{_fmt(cy)} Z"
    )
    attrs = {"d": d}
    attrs.update(_paint(node))
    return _group("diamond", ET.Element(_q("path"), attrs), _label(node, cx, cy))


def render_ellipse(node: Node) -> ET.Element:
    x, y, width, height = _box(node, 120.0, 60.0)
    cx, cy = x + width / 2, y + height / 2
    attrs = {"cx": _fmt(cx), "cy": _fmt(cy), "rx": _fmt(width / 2), "ry": _fmt(height / 2)}
    attrs.update(_paint(node))
    return _group("ellipse", ET.Element(_q("ellipse"), attrs), _label(node, cx, cy))


BUILTIN_SHAPES: Dict[str, ShapeRenderer] = {
    "rect": render_rect,
    "rectangle": render_rect,
    "circle": render_circle,
    "diamond": render_diamond,
    "ellipse": render_ellipse,
}


class ShapeRegistry:
    """Resolves shape names: custom registrations, then built-ins, then rect."""

    def __init__(self) -> None:
        self._custom: Dict[str, ShapeRenderer] = {}

    def register(self, name: str, renderer: ShapeRenderer) -> None:
        if not callable(renderer):
            raise AksaraDrawError("E_SHAPE_RENDER", f'shape renderer for "{name}" is not callable')
        self._custom[name] = renderer

    def is_custom(self, name: Optional[str]) -> bool:
        return name is not None and name in self._custom

    def resolve(self, name: Optional[str]) -> ShapeRenderer:
        key = name or "rect"
        renderer = self._custom.get(key) or BUILTIN_SHAPES.get(key)
        if renderer is None:
            LOGGER.debug("unknown shape %r; using rect", name)
            return render_rect
        return renderer

    def render(self, node: Node) -> ET.Element:
        fragment = self.resolve(node.shape)(node)
        if isinstance(fragment, ET.Element):
            return fragment
        if isinstance(fragment, str):
            try:
                return ET.fromstring(f'<g xmlns="{SVG_NS}">{fragment}</g>')
            except ET.ParseError as exc:
                raise AksaraDrawError(
                    "E_SHAPE_RENDER",
                    f'shape "{node.shape}" returned malformed SVG for node "{node.id}": {exc}',
                ) from exc
        raise AksaraDrawError(
            "E_SHAPE_RENDER",
            f'shape "{node.shape}" returned {type(fragment).__name__}; expected an Element or SVG string',
        )


__all__ = [
    "BUILTIN_SHAPES",
    "ShapeRegistry",
    "ShapeRenderer",
    "render_circle",
    "render_diamond",
    "render_ellipse",
    "render_rect",
]
