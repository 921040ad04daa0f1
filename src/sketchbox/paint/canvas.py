from __future__ import annotations

import io
import json
import logging
import math
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

import pygame

from sketchbox.settings import RGBA, ToolState

logger = logging.getLogger(__name__)

Point = Tuple[float, float]
Offset = Tuple[float, float]
ChangeListener = Callable[[], None]

BLOB_FORMAT = "sketchbox.strokes"
BLOB_VERSION = 1
BACKGROUND = (255, 255, 255)
THUMBNAIL_SIZE = (200, 200)
UNDO_MAX_DEPTH = 50
# Smallest distance between recorded points, in canvas units.
MIN_POINT_SPACING = 1.0


class StrokeDecodeError(ValueError):
    """Raised when a stroke blob cannot be turned back into strokes."""


@dataclass
class Stroke:
    tool: str
    color: RGBA
    width: float
    points: List[Point] = field(default_factory=list)

    def draw_color(self) -> Tuple[int, int, int]:
        if self.tool == "eraser":
            return BACKGROUND
        return _to_rgb(self.color)


def _to_rgb(color: RGBA) -> Tuple[int, int, int]:
    r, g, b, a = color
    # Composite onto the white background; strokes are drawn opaque.
    def blend(channel: float) -> int:
        return max(0, min(255, int(round(255 * (channel * a + (1.0 - a))))))

    return (blend(r), blend(g), blend(b))


def encode_strokes(strokes: Sequence[Stroke]) -> bytes:
    payload = {
        "format": BLOB_FORMAT,
        "version": BLOB_VERSION,
        "strokes": [
            {
                "tool": stroke.tool,
                "color": list(stroke.color),
                "width": stroke.width,
                "points": [[x, y] for x, y in stroke.points],
            }
            for stroke in strokes
        ],
    }
    return json.dumps(payload, separators=(",", ":")).encode("utf-8")


def _decode_stroke(item: object) -> Stroke:
    if not isinstance(item, dict):
        raise StrokeDecodeError("stroke entry is not an object")
    tool = item.get("tool")
    if tool not in {"pen", "eraser"}:
        raise StrokeDecodeError(f"unknown tool {tool!r}")
    color = item.get("color")
    if not isinstance(color, list) or len(color) != 4:
        raise StrokeDecodeError("stroke color must have four channels")
    width = item.get("width")
    if isinstance(width, bool) or not isinstance(width, (int, float)) or width <= 0:
        raise StrokeDecodeError("stroke width must be positive")
    points = item.get("points")
    if not isinstance(points, list):
        raise StrokeDecodeError("stroke points must be a list")
    try:
        return Stroke(
            tool=tool,
            color=(float(color[0]), float(color[1]), float(color[2]), float(color[3])),
            width=float(width),
            points=[(float(point[0]), float(point[1])) for point in points],
        )
    except (TypeError, ValueError, IndexError) as exc:
        raise StrokeDecodeError(f"malformed stroke: {exc}") from exc


def decode_strokes(data: bytes) -> List[Stroke]:
    try:
        payload = json.loads(bytes(data).decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise StrokeDecodeError(f"stroke blob is not readable: {exc}") from exc
    if not isinstance(payload, dict) or payload.get("format") != BLOB_FORMAT:
        raise StrokeDecodeError("stroke blob has an unknown format")
    version = payload.get("version")
    if not isinstance(version, int) or version > BLOB_VERSION:
        raise StrokeDecodeError(f"unsupported stroke blob version {version!r}")
    items = payload.get("strokes")
    if not isinstance(items, list):
        raise StrokeDecodeError("stroke blob has no stroke list")
    return [_decode_stroke(item) for item in items]


def screen_to_canvas(pos: Tuple[float, float], origin: Tuple[int, int], zoom: float, offset: Offset) -> Point:
    return (
        (pos[0] - origin[0] + offset[0]) / zoom,
        (pos[1] - origin[1] + offset[1]) / zoom,
    )


def canvas_to_screen(point: Point, origin: Tuple[int, int], zoom: float, offset: Offset) -> Tuple[int, int]:
    return (
        int(round(point[0] * zoom - offset[0] + origin[0])),
        int(round(point[1] * zoom - offset[1] + origin[1])),
    )


def strokes_bounds(strokes: Sequence[Stroke]) -> Optional[pygame.Rect]:
    xs: List[float] = []
    ys: List[float] = []
    for stroke in strokes:
        if stroke.tool == "eraser":
            continue
        pad = stroke.width / 2
        for x, y in stroke.points:
            xs.extend((x - pad, x + pad))
            ys.extend((y - pad, y + pad))
    if not xs:
        return None
    left = int(math.floor(min(xs)))
    top = int(math.floor(min(ys)))
    return pygame.Rect(left, top, max(1, int(math.ceil(max(xs))) - left), max(1, int(math.ceil(max(ys))) - top))


def _draw_stroke(surface: pygame.Surface, stroke: Stroke, origin: Tuple[int, int], zoom: float, offset: Offset) -> None:
    if not stroke.points:
        return
    color = stroke.draw_color()
    radius = max(1, int(round(stroke.width * zoom / 2)))
    screen_points = [canvas_to_screen(point, origin, zoom, offset) for point in stroke.points]
    pygame.draw.circle(surface, color, screen_points[0], radius)
    for start, end in zip(screen_points, screen_points[1:]):
        distance = max(1.0, math.hypot(end[0] - start[0], end[1] - start[1]))
        steps = max(1, int(distance / max(1, radius / 2)))
        for idx in range(1, steps + 1):
            t = idx / steps
            x = int(start[0] + (end[0] - start[0]) * t)
            y = int(start[1] + (end[1] - start[1]) * t)
            pygame.draw.circle(surface, color, (x, y), radius)


class DrawingCanvas:
    """Stroke capture, history and rendering for one drawing.

    The canvas is the only place that knows what a stroke is. Callers
    subscribe to learn that the drawing changed; they never inspect
    strokes or history themselves.
    """

    def __init__(self, undo_depth: int = UNDO_MAX_DEPTH) -> None:
        self._strokes: List[Stroke] = []
        self.undo_stack: List[List[Stroke]] = []
        self.redo_stack: List[List[Stroke]] = []
        self.undo_depth = max(1, undo_depth)
        self.current_stroke: Optional[Stroke] = None
        self._listeners: List[ChangeListener] = []

    @property
    def strokes(self) -> List[Stroke]:
        return list(self._strokes)

    @property
    def is_empty(self) -> bool:
        return not self._strokes

    @property
    def can_undo(self) -> bool:
        return bool(self.undo_stack)

    @property
    def can_redo(self) -> bool:
        return bool(self.redo_stack)

    def subscribe(self, listener: ChangeListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    def _push_undo(self) -> None:
        self.undo_stack.append(list(self._strokes))
        if len(self.undo_stack) > self.undo_depth:
            self.undo_stack.pop(0)
        self.redo_stack.clear()

    def load_strokes(self, strokes: Sequence[Stroke]) -> None:
        self._strokes = list(strokes)
        self.undo_stack = []
        self.redo_stack = []
        self.current_stroke = None

    def load_data(self, data: bytes) -> None:
        self.load_strokes(decode_strokes(data))

    def data(self) -> bytes:
        return encode_strokes(self._strokes)

    def begin_stroke(self, point: Point, tool_state: ToolState) -> None:
        self.current_stroke = Stroke(
            tool="eraser" if tool_state.eraser_active else "pen",
            color=tool_state.color,
            width=float(tool_state.line_width),
            points=[point],
        )

    def extend_stroke(self, point: Point) -> None:
        if self.current_stroke is None:
            return
        last = self.current_stroke.points[-1]
        if math.hypot(point[0] - last[0], point[1] - last[1]) < MIN_POINT_SPACING:
            return
        self.current_stroke.points.append(point)

    def end_stroke(self) -> None:
        stroke = self.current_stroke
        self.current_stroke = None
        if stroke is None:
            return
        self._push_undo()
        self._strokes.append(stroke)
        self._notify()

    def clear(self) -> None:
        self.current_stroke = None
        if not self._strokes:
            return
        self._push_undo()
        self._strokes = []
        self._notify()

    def undo(self) -> bool:
        if not self.undo_stack:
            return False
        self.redo_stack.append(list(self._strokes))
        self._strokes = self.undo_stack.pop()
        self._notify()
        return True

    def redo(self) -> bool:
        if not self.redo_stack:
            return False
        self.undo_stack.append(list(self._strokes))
        self._strokes = self.redo_stack.pop()
        self._notify()
        return True

    def render(
        self,
        surface: pygame.Surface,
        origin: Tuple[int, int] = (0, 0),
        zoom: float = 1.0,
        offset: Offset = (0.0, 0.0),
    ) -> None:
        for stroke in self._strokes:
            _draw_stroke(surface, stroke, origin, zoom, offset)
        if self.current_stroke is not None:
            _draw_stroke(surface, self.current_stroke, origin, zoom, offset)

    def render_thumbnail(self, size: Tuple[int, int] = THUMBNAIL_SIZE) -> Optional[bytes]:
        """Rasterize the drawing bounds into a PNG of ``size``."""
        try:
            thumb = pygame.Surface(size)
            thumb.fill(BACKGROUND)
            bounds = strokes_bounds(self._strokes)
            if bounds is not None:
                # Strokes are drawn at thumbnail scale; no surface is larger than ``size``.
                scale = min(size[0] / bounds.width, size[1] / bounds.height)
                origin = (
                    int((size[0] - bounds.width * scale) / 2),
                    int((size[1] - bounds.height * scale) / 2),
                )
                offset = (bounds.left * scale, bounds.top * scale)
                for stroke in self._strokes:
                    _draw_stroke(thumb, stroke, origin, scale, offset)
            buffer = io.BytesIO()
            pygame.image.save(thumb, buffer, "thumbnail.png")
        except pygame.error as exc:
            logger.warning("Could not render thumbnail: %s", exc)
            return None
        return buffer.getvalue()
