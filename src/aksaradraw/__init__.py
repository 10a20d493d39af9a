"""Public API for aksara-draw."""
from .engine import AksaraDraw, layout_diagram, parse, register_shape, render, render_png
from .model import (
    AksaraDrawError,
    CanvasConfig,
    Diagram,
    Edge,
    EdgeStyle,
    LayoutConfig,
    Node,
    NodeMetadata,
    NodeStyle,
    RenderOptions,
    Spacing,
)

__all__ = [
    "AksaraDraw",
    "AksaraDrawError",
    "CanvasConfig",
    "Diagram",
    "Edge",
    "EdgeStyle",
    "LayoutConfig",
    "Node",
    "NodeMetadata",
    "NodeStyle",
    "RenderOptions",
    "Spacing",
    "layout_diagram",
    "parse",
    "register_shape",
    "render",
    "render_png",
]
