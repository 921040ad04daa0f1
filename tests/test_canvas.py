import io

import pygame
import pytest

from sketchbox.paint.canvas import (
    DrawingCanvas,
    Stroke,
    StrokeDecodeError,
    canvas_to_screen,
    decode_strokes,
    encode_strokes,
    screen_to_canvas,
    strokes_bounds,
)
from sketchbox.settings import ToolState

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def _draw_line(canvas, start, end, state=None):
    canvas.begin_stroke(start, state or ToolState())
    canvas.extend_stroke(end)
    canvas.end_stroke()


def test_finished_stroke_notifies_listeners():
    canvas = DrawingCanvas()
    calls = []
    canvas.subscribe(lambda: calls.append("changed"))

    canvas.begin_stroke((0.0, 0.0), ToolState())
    canvas.extend_stroke((10.0, 10.0))
    assert calls == []
    canvas.end_stroke()

    assert calls == ["changed"]
    assert len(canvas.strokes) == 1


def test_stroke_uses_current_tool_state():
    canvas = DrawingCanvas()
    _draw_line(canvas, (0.0, 0.0), (5.0, 5.0), ToolState(color=(1.0, 0.0, 0.0, 1.0), line_width=8.0))
    _draw_line(canvas, (0.0, 0.0), (5.0, 5.0), ToolState(eraser_active=True))

    pen, eraser = canvas.strokes
    assert pen.tool == "pen"
    assert pen.color == (1.0, 0.0, 0.0, 1.0)
    assert pen.width == 8.0
    assert eraser.tool == "eraser"


def test_extend_skips_points_closer_than_spacing():
    canvas = DrawingCanvas()
    canvas.begin_stroke((0.0, 0.0), ToolState())
    canvas.extend_stroke((0.2, 0.2))
    canvas.extend_stroke((3.0, 4.0))
    canvas.end_stroke()
    assert canvas.strokes[0].points == [(0.0, 0.0), (3.0, 4.0)]


def test_undo_redo_walk_history():
    canvas = DrawingCanvas()
    _draw_line(canvas, (0.0, 0.0), (5.0, 5.0))
    _draw_line(canvas, (10.0, 0.0), (15.0, 5.0))

    assert canvas.undo()
    assert len(canvas.strokes) == 1
    assert canvas.can_redo
    assert canvas.redo()
    assert len(canvas.strokes) == 2
    assert not canvas.redo()


def test_new_stroke_clears_redo_history():
    canvas = DrawingCanvas()
    _draw_line(canvas, (0.0, 0.0), (5.0, 5.0))
    canvas.undo()
    _draw_line(canvas, (1.0, 1.0), (6.0, 6.0))
    assert not canvas.can_redo


def test_undo_depth_is_bounded():
    canvas = DrawingCanvas(undo_depth=2)
    for idx in range(4):
        _draw_line(canvas, (float(idx), 0.0), (float(idx) + 5.0, 5.0))
    assert canvas.undo()
    assert canvas.undo()
    assert not canvas.undo()
    assert len(canvas.strokes) == 2


def test_clear_is_undoable():
    canvas = DrawingCanvas()
    _draw_line(canvas, (0.0, 0.0), (5.0, 5.0))
    canvas.clear()
    assert canvas.is_empty
    canvas.undo()
    assert len(canvas.strokes) == 1


def test_load_strokes_resets_history_without_notifying():
    canvas = DrawingCanvas()
    _draw_line(canvas, (0.0, 0.0), (5.0, 5.0))
    calls = []
    canvas.subscribe(lambda: calls.append(1))

    canvas.load_strokes([Stroke(tool="pen", color=(0.0, 0.0, 0.0, 1.0), width=2.0, points=[(1.0, 1.0)])])

    assert calls == []
    assert not canvas.can_undo
    assert len(canvas.strokes) == 1


def test_unsubscribed_listener_is_not_called():
    canvas = DrawingCanvas()
    calls = []
    listener = lambda: calls.append(1)  # noqa: E731
    canvas.subscribe(listener)
    canvas.unsubscribe(listener)
    _draw_line(canvas, (0.0, 0.0), (5.0, 5.0))
    assert calls == []


def test_blob_survives_encode_and_decode():
    strokes = [
        Stroke(tool="pen", color=(0.1, 0.2, 0.3, 1.0), width=3.0, points=[(1.5, 2.5), (4.0, 8.0)]),
        Stroke(tool="eraser", color=(0.0, 0.0, 0.0, 1.0), width=20.0, points=[(0.0, 0.0)]),
    ]
    assert decode_strokes(encode_strokes(strokes)) == strokes


@pytest.mark.parametrize(
    "blob",
    [
        b"\xff\xfe not utf-8",
        b"not json",
        b"[]",
        b'{"format": "other", "version": 1, "strokes": []}',
        b'{"format": "sketchbox.strokes", "version": 99, "strokes": []}',
        b'{"format": "sketchbox.strokes", "version": 1, "strokes": [{"tool": "laser"}]}',
        b'{"format": "sketchbox.strokes", "version": 1, "strokes": [{"tool": "pen", "color": [0, 0, 0, 1], "width": 0, "points": []}]}',
        b'{"format": "sketchbox.strokes", "version": 1, "strokes": [{"tool": "pen", "color": [0, 0, 0, 1], "width": 2, "points": [[1]]}]}',
    ],
)
def test_decode_rejects_malformed_blobs(blob):
    with pytest.raises(StrokeDecodeError):
        decode_strokes(blob)


def test_screen_and_canvas_transforms_are_inverse():
    origin = (100, 50)
    point = screen_to_canvas((300, 250), origin, 2.0, (40.0, -20.0))
    assert point == (120.0, 90.0)
    assert canvas_to_screen(point, origin, 2.0, (40.0, -20.0)) == (300, 250)


def test_bounds_ignore_eraser_strokes():
    strokes = [
        Stroke(tool="pen", color=(0.0, 0.0, 0.0, 1.0), width=4.0, points=[(10.0, 10.0), (30.0, 20.0)]),
        Stroke(tool="eraser", color=(0.0, 0.0, 0.0, 1.0), width=4.0, points=[(500.0, 500.0)]),
    ]
    bounds = strokes_bounds(strokes)
    assert (bounds.left, bounds.top, bounds.right, bounds.bottom) == (8, 8, 32, 22)
    assert strokes_bounds([]) is None


def test_thumbnail_is_png_even_when_empty():
    canvas = DrawingCanvas()
    assert canvas.render_thumbnail().startswith(PNG_SIGNATURE)

    _draw_line(canvas, (0.0, 0.0), (400.0, 100.0))
    data = canvas.render_thumbnail((64, 64))
    assert data.startswith(PNG_SIGNATURE)


def test_thumbnail_of_widely_spread_strokes_stays_small():
    canvas = DrawingCanvas()
    canvas.load_strokes(
        [
            Stroke(tool="pen", color=(0.0, 0.0, 0.0, 1.0), width=5.0, points=[(0.0, 0.0)]),
            Stroke(tool="pen", color=(0.0, 0.0, 0.0, 1.0), width=5.0, points=[(40000.0, 40000.0)]),
        ]
    )
    data = canvas.render_thumbnail((200, 200))
    assert data is not None
    assert data.startswith(PNG_SIGNATURE)
    image = pygame.image.load(io.BytesIO(data), "thumbnail.png")
    assert image.get_size() == (200, 200)
