"""Facade tying parsing, sizing, layout and rendering together."""
from __future__ import annotations

import copy
import logging
from typing import List, Optional, Union

from .layout import layout_tree_list, resolve_layout
from .model import Diagram, Node, RenderOptions
from .parser import parse as _parse
from .raster import render_png_bytes
from .renderer import render_svg
from .shapes import ShapeRegistry, ShapeRenderer
from .sizing import auto_size_nodes

LOGGER = logging.getLogger(__name__)

DiagramInput = Union[Diagram, str]


def _clear_outline_metadata(nodes: List[Node]) -> None:
    for node in nodes:
        node.metadata.tree_depth = None
        node.metadata.is_last = None
        node.metadata.ancestor_lines = None


class AksaraDraw:
    """Diagram engine with its own shape registry.

    Every call works on a deep copy of the diagram's nodes, so the caller's
    ``Diagram`` is left untouched and repeated renders give the same output.
    Text input is parsed first with auto-detection.
    """

    def __init__(self) -> None:
        self.shapes = ShapeRegistry()

    def parse(self, text: str, type_hint: Optional[str] = None) -> Diagram:
        return _parse(text, type_hint)

    def register_shape(self, name: str, renderer: ShapeRenderer) -> None:
        self.shapes.register(name, renderer)
        LOGGER.debug("registered custom shape %r", name)

    def _diagram(self, diagram: DiagramInput) -> Diagram:
        if isinstance(diagram, str):
            return self.parse(diagram)
        return diagram

    def layout_diagram(self, diagram: DiagramInput) -> List[Node]:
        """Return sized, positioned copies of the diagram's nodes in layout order."""
        source = self._diagram(diagram)
        nodes = copy.deepcopy(source.nodes)
        auto_size_nodes(nodes)
        algorithm = resolve_layout(source.layout.algorithm)
        if algorithm is not layout_tree_list:
            _clear_outline_metadata(nodes)
        LOGGER.debug(
            "laying out %d nodes with %r (%s)", len(nodes), source.layout.algorithm, source.layout.direction
        )
        return algorithm(nodes, source.edges, source.layout)

    def render(self, diagram: DiagramInput, options: Optional[RenderOptions] = None) -> str:
        source = self._diagram(diagram)
        nodes = self.layout_diagram(source)
        return render_svg(nodes, source.edges, options, self.shapes, source.canvas)

    def render_png(
        self, diagram: DiagramInput, options: Optional[RenderOptions] = None, *, scale: float = 1.0
    ) -> bytes:
        source = self._diagram(diagram)
        nodes = self.layout_diagram(source)
        return render_png_bytes(nodes, source.edges, options, self.shapes, source.canvas, scale=scale)


_DEFAULT = AksaraDraw()


def parse(text: str, type_hint: Optional[str] = None) -> Diagram:
    """Parse diagram text into a :class:`Diagram`."""
    return _DEFAULT.parse(text, type_hint)


def register_shape(name: str, renderer: ShapeRenderer) -> None:
    """Register ``renderer`` under ``name`` on the shared engine."""
    _DEFAULT.register_shape(name, renderer)


def layout_diagram(diagram: DiagramInput) -> List[Node]:
    return _DEFAULT.layout_diagram(diagram)


def render(diagram: DiagramInput, options: Optional[RenderOptions] = None) -> str:
    """Lay out ``diagram`` and return a standalone SVG document."""
    return _DEFAULT.render(diagram, options)


def render_png(diagram: DiagramInput, options: Optional[RenderOptions] = None, *, scale: float = 1.0) -> bytes:
    """Lay out ``diagram`` and return PNG bytes."""
    return _DEFAULT.render_png(diagram, options, scale=scale)


__all__ = [
    "AksaraDraw",
    "layout_diagram",
    "parse",
    "register_shape",
    "render",
    "render_png",
]
