"""PNG output drawn with Pillow from the same geometry as the SVG renderer."""
from __future__ import annotations

import io
import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFont

from .model import AksaraDrawError, CanvasConfig, Edge, Node, RenderOptions
from .renderer import (
    DASH_PATTERNS,
    EDGE_LABEL_FILL,
    EDGE_LABEL_FONT_SIZE,
    GUIDE_STROKE,
    GUIDE_STROKE_WIDTH,
    TRANSPARENT_BACKGROUNDS,
    Point,
    drawable_edges,
    edge_geometry,
    edge_paint,
    node_box,
    normalize_nodes,
    resolve_canvas,
)
from .shapes import DEFAULT_FILL, DEFAULT_STROKE, DEFAULT_STROKE_WIDTH, LABEL_FILL, ShapeRegistry
from .sizing import DEFAULT_FONT_SIZE, LINE_HEIGHT

LOGGER = logging.getLogger(__name__)

CURVE_SAMPLES = 24
ARROW_LENGTH = 8.0
ARROW_HALF_WIDTH = 2.5

SANS_SERIF_FAMILIES = ["Helvetica", "Arial", "Liberation Sans", "DejaVu Sans"]


class _FontFinder:
    """Caches Pillow fonts by pixel size, preferring an installed sans-serif face."""

    FONT_DIRS = [
        Path("/System/Library/Fonts"),
        Path("/System/Library/Fonts/Supplemental"),
        Path("/Library/Fonts"),
        Path("~/Library/Fonts").expanduser(),
        Path("/usr/share/fonts"),
        Path("/usr/local/share/fonts"),
        Path("C:/Windows/Fonts"),
    ]

    def __init__(self) -> None:
        self._fonts: Dict[int, ImageFont.ImageFont] = {}
        self._path: Optional[str] = None
        self._searched = False

    def font(self, size: float) -> ImageFont.ImageFont:
        key = max(1, int(round(size)))
        cached = self._fonts.get(key)
        if cached is not None:
            return cached
        font: Optional[ImageFont.ImageFont] = None
        for candidate in self._candidates():
            try:
                font = ImageFont.truetype(candidate, key)
                break
            except OSError:
                continue
        if font is None:
            LOGGER.debug("no TrueType font found; using Pillow's default font")
            font = ImageFont.load_default()
        self._fonts[key] = font
        return font

    def _candidates(self) -> List[str]:
        if not self._searched:
            self._path = self._locate()
            self._searched = True
        candidates = [self._path] if self._path else []
        candidates.append("DejaVuSans.ttf")
        return candidates

    def _locate(self) -> Optional[str]:
        wanted = [re.sub(r"[^a-z0-9]+", "", family.lower()) for family in SANS_SERIF_FAMILIES]
        best: Optional[Tuple[int, str]] = None
        for directory in self.FONT_DIRS:
            if not directory.exists():
                continue
            for path in directory.rglob("*.ttf"):
                stem = re.sub(r"[^a-z0-9]+", "", path.stem.lower())
                for rank, name in enumerate(wanted):
                    if stem == name and (best is None or rank < best[0]):
                        best = (rank, str(path))
        return best[1] if best else None


_FONTS = _FontFinder()


def _cubic(points: Sequence[Point], samples: int = CURVE_SAMPLES) -> List[Point]:
    (x0, y0), (x1, y1), (x2, y2), (x3, y3) = points
    sampled = []
    for step in range(samples + 1):
        t = step / samples
        u = 1.0 - t
        sampled.append(
            (
                u ** 3 * x0 + 3 * u * u * t * x1 + 3 * u * t * t * x2 + t ** 3 * x3,
                u ** 3 * y0 + 3 * u * u * t * y1 + 3 * u * t * t * y2 + t ** 3 * y3,
            )
        )
    return sampled


def _dashes(points: List[Point], pattern: Optional[str], scale: float) -> List[List[Point]]:
    """Split a polyline into the visible runs of an SVG dash pattern."""
    if not pattern or len(points) < 2:
        return [points]
    lengths = [float(part) * scale for part in pattern.split(",")]
    runs: List[List[Point]] = []
    current: List[Point] = [points[0]]
    index, remaining, drawing = 0, lengths[0], True
    for (ax, ay), (bx, by) in zip(points, points[1:]):
        seg = ((bx - ax) ** 2 + (by - ay) ** 2) ** 0.5
        pos = 0.0
        while seg - pos > remaining:
            pos += remaining
            t = pos / seg
            point = (ax + (bx - ax) * t, ay + (by - ay) * t)
            if drawing:
                current.append(point)
                runs.append(current)
            current = [point]
            drawing = not drawing
            index = (index + 1) % len(lengths)
            remaining = lengths[index]
        remaining -= seg - pos
        if drawing:
            current.append((bx, by))
    if drawing and len(current) > 1:
        runs.append(current)
    return runs


def _arrowhead(tip: Point, before: Point, width: float) -> List[Point]:
    dx, dy = tip[0] - before[0], tip[1] - before[1]
    length = (dx * dx + dy * dy) ** 0.5 or 1.0
    ux, uy = dx / length, dy / length
    back = (tip[0] - ux * ARROW_LENGTH * width, tip[1] - uy * ARROW_LENGTH * width)
    spread = ARROW_HALF_WIDTH * width
    return [tip, (back[0] - uy * spread, back[1] + ux * spread), (back[0] + uy * spread, back[1] - ux * spread)]


def _text_block(
    draw: ImageDraw.ImageDraw, lines: List[str], center: Point, font_size: float, fill: str, scale: float
) -> None:
    font = _FONTS.font(font_size * scale)
    line_height = font_size * LINE_HEIGHT * scale
    top = center[1] - line_height * len(lines) / 2.0
    for idx, line in enumerate(lines):
        left, upper, right, lower = draw.textbbox((0, 0), line, font=font)
        x = center[0] - (right - left) / 2.0 - left
        y = top + idx * line_height + (line_height - (lower - upper)) / 2.0 - upper
        draw.text((x, y), line, fill=fill, font=font)


class _Painter:
    def __init__(self, image: Image.Image, scale: float, shapes: ShapeRegistry) -> None:
        self.draw = ImageDraw.Draw(image)
        self.scale = scale
        self.shapes = shapes

    def _s(self, point: Point) -> Point:
        return point[0] * self.scale, point[1] * self.scale

    def _stroke_px(self, width: float) -> int:
        return max(1, int(round(width * self.scale)))

    def node(self, node: Node) -> None:
        x, y, width, height = node_box(node)
        style = node.style
        fill = style.fill if style is not None and style.fill else DEFAULT_FILL
        stroke = style.stroke if style is not None and style.stroke else DEFAULT_STROKE
        stroke_width = (
            style.stroke_width if style is not None and style.stroke_width is not None else DEFAULT_STROKE_WIDTH
        )
        line = self._stroke_px(stroke_width)
        kind = node.shape or "rect"
        if self.shapes.is_custom(kind) or kind not in {"circle", "diamond", "ellipse"}:
            kind = "rect"
        (x0, y0), (x1, y1) = self._s((x, y)), self._s((x + width, y + height))
        cx, cy = (x0 + x1) / 2.0, (y0 + y1) / 2.0

        if kind == "circle":
            r = max(x1 - x0, y1 - y0) / 2.0
            self.draw.ellipse([cx - r, cy - r, cx + r, cy + r], fill=fill, outline=stroke, width=line)
        elif kind == "ellipse":
            self.draw.ellipse([x0, y0, x1, y1], fill=fill, outline=stroke, width=line)
        elif kind == "diamond":
            self.draw.polygon([(cx, y0), (x1, cy), (cx, y1), (x0, cy)], fill=fill, outline=stroke, width=line)
        else:
            self.draw.rounded_rectangle(
                [x0, y0, x1, y1], radius=5 * self.scale, fill=fill, outline=stroke, width=line
            )

        font_size = node.font_size or DEFAULT_FONT_SIZE
        _text_block(self.draw, node.label.split("\n"), (cx, cy), font_size, LABEL_FILL, self.scale)

    def edge(self, edge: Edge, source: Node, target: Node) -> None:
        geometry = edge_geometry(source, target)
        stroke, width = edge_paint(edge)
        pattern = DASH_PATTERNS.get(edge.type)
        line = self._stroke_px(width)

        if geometry.curve is not None:
            points = [self._s(point) for point in _cubic(geometry.curve)]
            for run in _dashes(points, pattern, self.scale):
                self.draw.line(run, fill=stroke, width=line)
            self.draw.polygon(_arrowhead(points[-1], points[-2], width * self.scale), fill=stroke)

        for segment in geometry.segments:
            points = [self._s(segment.start), self._s(segment.end)]
            if segment.guide:
                self.draw.line(points, fill=GUIDE_STROKE, width=self._stroke_px(GUIDE_STROKE_WIDTH))
                continue
            for run in _dashes(points, pattern, self.scale):
                self.draw.line(run, fill=stroke, width=line)

        if edge.label and geometry.label_at is not None:
            anchor = self._s(geometry.label_at)
            height = EDGE_LABEL_FONT_SIZE * LINE_HEIGHT * self.scale
            _text_block(
                self.draw,
                [edge.label],
                (anchor[0], anchor[1] - height / 2.0),
                EDGE_LABEL_FONT_SIZE,
                EDGE_LABEL_FILL,
                self.scale,
            )


def render_png_bytes(
    nodes: List[Node],
    edges: List[Edge],
    options: Optional[RenderOptions] = None,
    shapes: Optional[ShapeRegistry] = None,
    canvas: Optional[CanvasConfig] = None,
    scale: float = 1.0,
) -> bytes:
    """Rasterize positioned ``nodes`` and ``edges``; return PNG bytes."""
    if scale <= 0:
        raise AksaraDrawError("E_RENDER_ARGS", f"scale must be positive (got {scale})")
    registry = shapes if shapes is not None else ShapeRegistry()
    positioned, natural_width, natural_height = normalize_nodes(nodes)
    width, height, background = resolve_canvas(natural_width, natural_height, options, canvas)
    size = (max(1, int(round(width * scale))), max(1, int(round(height * scale))))

    color = (255, 255, 255, 0)
    if background and background.strip().lower() not in TRANSPARENT_BACKGROUNDS:
        color = background
    try:
        image = Image.new("RGBA", size, color)
        painter = _Painter(image, scale, registry)
        for edge, source, target in drawable_edges(positioned, edges):
            painter.edge(edge, source, target)
        for node in positioned:
            painter.node(node)
    except ValueError as exc:
        raise AksaraDrawError("E_RENDER_ARGS", f"cannot rasterize diagram: {exc}") from exc

    LOGGER.debug("rasterized %d nodes at scale %s into %dx%d pixels", len(positioned), scale, *size)
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


__all__ = ["render_png_bytes"]
