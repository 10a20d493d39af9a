"""Approximate node sizing from label text."""
from __future__ import annotations

from typing import List, Tuple

from .model import Node

DEFAULT_FONT_SIZE = 14.0
AVG_CHAR_WIDTH = 0.6
LINE_HEIGHT = 1.5
TEXT_PADDING = 20.0


def calculate_text_size(text: str, font_size: float = DEFAULT_FONT_SIZE) -> Tuple[float, float]:
    """Return ``(width, height)`` of a box that fits ``text``.

    Proportional-width heuristic: every character is ``0.6 * font_size``
    wide and every line ``1.5 * font_size`` tall, plus 20 units of padding.
    """
    lines = text.split("\n")
    longest = max(len(line) for line in lines)
    width = longest * AVG_CHAR_WIDTH * font_size + TEXT_PADDING
    height = len(lines) * font_size * LINE_HEIGHT + TEXT_PADDING
    return width, height


def auto_size_nodes(nodes: List[Node]) -> List[Node]:
    """Fill in missing width/height in place and return ``nodes``."""
    for node in nodes:
        if node.width is not None and node.height is not None:
            continue
        font_size = node.font_size or DEFAULT_FONT_SIZE
        width, height = calculate_text_size(node.label, font_size)
        if node.width is None:
            node.width = width
        if node.height is None:
            node.height = height
    return nodes
