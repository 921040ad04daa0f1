from __future__ import annotations

import json
import logging
import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

RGBA = Tuple[float, float, float, float]
Offset = Tuple[float, float]

MIN_ZOOM = 0.5
MAX_ZOOM = 3.0

DEFAULT_COLOR: RGBA = (0.0, 0.0, 0.0, 1.0)
DEFAULT_LINE_WIDTH = 5.0
DEFAULT_ZOOM = 1.0
DEFAULT_OFFSET: Offset = (0.0, 0.0)


def clamp_zoom(scale: float, minimum: float = MIN_ZOOM, maximum: float = MAX_ZOOM) -> float:
    try:
        value = float(scale)
    except (TypeError, ValueError):
        return DEFAULT_ZOOM
    if not math.isfinite(value):
        return DEFAULT_ZOOM
    return min(max(value, minimum), maximum)


@dataclass
class ToolState:
    color: RGBA = DEFAULT_COLOR
    line_width: float = DEFAULT_LINE_WIDTH
    eraser_active: bool = False
    toolbar_visible: bool = True
    zoom_scale: float = DEFAULT_ZOOM
    pan_offset: Offset = DEFAULT_OFFSET

    def select_color(self, color: RGBA) -> None:
        # Width is left alone so it comes back with the pen.
        self.color = color
        self.eraser_active = False

    def select_width(self, width: float) -> None:
        self.line_width = width
        self.eraser_active = False

    def toggle_eraser(self) -> None:
        self.eraser_active = not self.eraser_active

    def toggle_toolbar(self) -> None:
        self.toolbar_visible = not self.toolbar_visible

    def set_zoom(self, scale: float) -> None:
        self.zoom_scale = clamp_zoom(scale)

    def zoom_by(self, factor: float, base: Optional[float] = None) -> None:
        start = self.zoom_scale if base is None else base
        self.set_zoom(start * factor)

    def pan_by(self, dx: float, dy: float) -> None:
        self.pan_offset = (self.pan_offset[0] + dx, self.pan_offset[1] + dy)

    def pan_from(self, start: Offset, translation: Tuple[float, float]) -> None:
        # Dragging content right scrolls the viewport left.
        self.pan_offset = (start[0] - translation[0], start[1] - translation[1])

    def reset_view(self) -> None:
        self.zoom_scale = DEFAULT_ZOOM
        self.pan_offset = DEFAULT_OFFSET


def _coerce_color(value: Any) -> Optional[RGBA]:
    if not isinstance(value, (list, tuple)) or len(value) != 4:
        return None
    try:
        channels = [float(channel) for channel in value]
    except (TypeError, ValueError):
        return None
    if not all(0.0 <= channel <= 1.0 for channel in channels):
        return None
    return (channels[0], channels[1], channels[2], channels[3])


def _coerce_positive(value: Any, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if not math.isfinite(value) or value <= 0:
        return default
    return float(value)


def _coerce_offset(value: Any) -> Offset:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        return DEFAULT_OFFSET
    try:
        x, y = float(value[0]), float(value[1])
    except (TypeError, ValueError):
        return DEFAULT_OFFSET
    if not (math.isfinite(x) and math.isfinite(y)):
        return DEFAULT_OFFSET
    return (x, y)


def _coerce_bool(value: Any, default: bool) -> bool:
    return value if isinstance(value, bool) else default


class SettingsStore:
    """Tool preferences persisted as a JSON document.

    One store is created at startup and handed to the views that need it.
    Every field is defaulted on its own, so a file written by an older
    version (or damaged by hand) still loads.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, ValueError) as exc:
            logger.warning("Could not read settings from %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed settings file %s", self.path)
            return {}
        return data

    def _write(self, data: Dict[str, Any]) -> bool:
        tmp_path = self.path.with_name(f".{self.path.name}.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            logger.warning("Could not write settings to %s: %s", self.path, exc)
            return False
        return True

    def load(self) -> ToolState:
        data = self._read()
        return ToolState(
            color=_coerce_color(data.get("color")) or DEFAULT_COLOR,
            line_width=_coerce_positive(data.get("line_width"), DEFAULT_LINE_WIDTH),
            eraser_active=_coerce_bool(data.get("eraser_active"), False),
            toolbar_visible=_coerce_bool(data.get("toolbar_visible"), True),
            zoom_scale=clamp_zoom(_coerce_positive(data.get("zoom_scale"), DEFAULT_ZOOM)),
            pan_offset=_coerce_offset(data.get("pan_offset")),
        )

    def save(self, state: ToolState) -> bool:
        data = self._read()
        data.update(
            {
                "color": list(state.color),
                "line_width": float(state.line_width),
                "eraser_active": bool(state.eraser_active),
                "toolbar_visible": bool(state.toolbar_visible),
                "zoom_scale": float(state.zoom_scale),
                "pan_offset": list(state.pan_offset),
            }
        )
        data.setdefault("last_drawing_id", None)
        return self._write(data)

    def reset(self) -> ToolState:
        state = ToolState()
        data = {"last_drawing_id": None}
        self._write(data)
        self.save(state)
        return state

    @property
    def last_drawing_id(self) -> Optional[str]:
        value = self._read().get("last_drawing_id")
        return value if isinstance(value, str) and value else None

    @last_drawing_id.setter
    def last_drawing_id(self, value: Optional[str]) -> None:
        data = self._read()
        data["last_drawing_id"] = value
        self._write(data)
