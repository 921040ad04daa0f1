from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pygame

from sketchbox.paint.canvas import DrawingCanvas, screen_to_canvas
from sketchbox.paint.session import (
    DEFAULT_TITLE,
    CloseAction,
    DrawingSession,
    LoadStatus,
    SaveStatus,
)
from sketchbox.settings import RGBA, SettingsStore, ToolState
from sketchbox.storage import DrawingRepository
from sketchbox.ui.common import (
    Button,
    Dialog,
    apply_text_input,
    is_primary_pointer_event,
    is_shortcut,
    pointer_event_pos,
)

logger = logging.getLogger(__name__)

Color = Tuple[int, int, int]
Point = Tuple[int, int]

FINGERMOTION = getattr(pygame, "FINGERMOTION", None)
MULTIGESTURE = getattr(pygame, "MULTIGESTURE", None)

# --- Tuning constants ---
SCROLL_STEP = 40
WHEEL_ZOOM_STEP = 1.1
PINCH_GAIN = 2.5
DEFAULT_LINE_WIDTHS = [1.0, 3.0, 5.0, 8.0, 12.0, 20.0]
SELECTED_OUTLINE = (200, 60, 60)

SAVE_ACTION = "Save"
DISCARD_ACTION = "Don't Save"
CANCEL_ACTION = "Cancel"


def _color_to_rgba(value: Sequence[Any]) -> RGBA:
    channels = [max(0, min(255, int(channel))) / 255.0 for channel in list(value)[:3]]
    while len(channels) < 3:
        channels.append(0.0)
    return (channels[0], channels[1], channels[2], 1.0)


def _rgba_to_color(color: RGBA) -> Color:
    return (
        int(round(color[0] * 255)),
        int(round(color[1] * 255)),
        int(round(color[2] * 255)),
    )


def _same_color(a: RGBA, b: RGBA) -> bool:
    return all(abs(x - y) < 1e-3 for x, y in zip(a, b))


def _coerce_line_widths(value: object, default: List[float]) -> List[float]:
    if not isinstance(value, (list, tuple)):
        return list(default)
    widths = []
    for item in value:
        try:
            width = float(item)
        except (TypeError, ValueError):
            continue
        if width > 0:
            widths.append(width)
    return widths or list(default)


def _format_zoom(scale: float) -> str:
    return f"{int(scale * 100)}%"


def _wheel_zoom_factor(steps: float) -> float:
    return WHEEL_ZOOM_STEP ** steps


def _pinch_factor(pinched: float) -> float:
    return max(0.1, 1.0 + pinched * PINCH_GAIN)


def _display_title(session: DrawingSession) -> str:
    title = session.title.strip() or "New Drawing"
    if session.is_new and title == DEFAULT_TITLE:
        title = "New Drawing"
    return f"* {title}" if session.dirty else title


class EditorApp:
    def __init__(
        self,
        screen: pygame.Surface,
        screen_rect: pygame.Rect,
        clock: pygame.time.Clock,
        config: Dict[str, Any],
        settings: SettingsStore,
        repository: DrawingRepository,
        record_id: Optional[str] = None,
    ) -> None:
        self.screen = screen
        self.screen_rect = screen_rect
        self.clock = clock
        self.config = config
        self.settings = settings

        editor_config = config.get("editor", {})
        self.palette = [_color_to_rgba(color) for color in editor_config.get("palette", [])] or [(0.0, 0.0, 0.0, 1.0)]
        self.line_widths = _coerce_line_widths(editor_config.get("line_widths"), DEFAULT_LINE_WIDTHS)
        thumb = editor_config.get("thumbnail_size", [200, 200])
        thumbnail_size = (int(thumb[0]), int(thumb[1]))

        self.tool_state: ToolState = settings.load()
        self.canvas = DrawingCanvas(undo_depth=int(editor_config.get("undo_depth", 50)))
        self.session = DrawingSession(repository, self.canvas, self.tool_state, thumbnail_size=thumbnail_size)
        if record_id is not None:
            status = self.session.load(record_id)
            if status is LoadStatus.LOADED:
                self.settings.last_drawing_id = record_id
            else:
                logger.warning("Opened drawing %s with status %s", record_id, status.value)

        self.margin = 12
        self.menu_pad = 10
        self.menu_gap = 8
        self.menu_bg = (238, 234, 226)
        self.bar_height = max(48, min(64, int(self.screen_rect.height * 0.07)))
        self.font = pygame.font.SysFont("sans", 18)

        self.bar_buttons: Dict[str, Button] = {}
        self.color_buttons: List[Tuple[RGBA, Button]] = []
        self.width_buttons: List[Tuple[float, Button]] = []
        self.tool_buttons: Dict[str, Button] = {}
        self.controls_rect = pygame.Rect(0, 0, 0, 0)
        self.canvas_rect = pygame.Rect(0, 0, 0, 0)
        self._build_ui()

        self.dialog: Optional[Dialog] = None
        self.pointer_down = False
        self.pan_anchor: Optional[Tuple[Point, Tuple[float, float]]] = None
        self.quit_requested = False
        self.running = True

    def _build_ui(self) -> None:
        self.bar_buttons.clear()
        self.color_buttons.clear()
        self.width_buttons.clear()
        self.tool_buttons.clear()

        bar_rect = pygame.Rect(0, 0, self.screen_rect.width, self.bar_height)
        button_h = self.bar_height - 2 * self.menu_pad
        button_w = max(72, int(button_h * 1.8))
        top = bar_rect.top + self.menu_pad

        left = self.margin
        for key, label in (("close", "Close"), ("clear", "Clear"), ("toolbar", "Tools")):
            rect = pygame.Rect(left, top, button_w, button_h)
            self.bar_buttons[key] = Button(rect=rect, label=label, fill=(245, 245, 245))
            left = rect.right + self.menu_gap

        right = self.screen_rect.right - self.margin
        for key, label in (("save", "Save"), ("redo", "Redo"), ("undo", "Undo")):
            rect = pygame.Rect(right - button_w, top, button_w, button_h)
            self.bar_buttons[key] = Button(rect=rect, label=label, fill=(245, 245, 245))
            right = rect.left - self.menu_gap

        swatch = max(36, min(52, int(self.screen_rect.height * 0.05)))
        panel_width = swatch * 2 + self.menu_gap + self.menu_pad * 2
        content_top = bar_rect.bottom + self.margin
        content_height = self.screen_rect.height - content_top - self.margin
        if self.tool_state.toolbar_visible:
            self.controls_rect = pygame.Rect(self.margin, content_top, panel_width, content_height)
            canvas_left = self.controls_rect.right + self.margin
        else:
            self.controls_rect = pygame.Rect(self.margin, content_top, 0, content_height)
            canvas_left = self.margin
        self.canvas_rect = pygame.Rect(
            canvas_left,
            content_top,
            self.screen_rect.width - canvas_left - self.margin,
            content_height,
        )
        if not self.tool_state.toolbar_visible:
            return

        pad = self.menu_pad
        gap = self.menu_gap
        x0 = self.controls_rect.left + pad
        y = self.controls_rect.top + pad
        for idx, color in enumerate(self.palette):
            row, col = divmod(idx, 2)
            rect = pygame.Rect(x0 + col * (swatch + gap), y + row * (swatch + gap), swatch, swatch)
            self.color_buttons.append((color, Button(rect=rect, fill=_rgba_to_color(color))))
        rows = (len(self.palette) + 1) // 2
        y += rows * (swatch + gap) + gap

        inner_w = self.controls_rect.width - pad * 2
        width_h = max(20, swatch // 2)
        for width in self.line_widths:
            rect = pygame.Rect(x0, y, inner_w, width_h)
            self.width_buttons.append((width, Button(rect=rect, fill=self.menu_bg)))
            y += width_h + gap // 2
        y += gap

        for key, label in (("eraser", "Eraser"), ("reset_zoom", "Fit")):
            rect = pygame.Rect(x0, y, inner_w, swatch)
            self.tool_buttons[key] = Button(rect=rect, label=label, fill=(245, 245, 245))
            y += swatch + gap

    # --- tool and view state -------------------------------------------------

    def _persist_tools(self) -> None:
        self.settings.save(self.tool_state)

    def _select_color(self, color: RGBA) -> None:
        self.tool_state.select_color(color)
        self._persist_tools()

    def _select_width(self, width: float) -> None:
        self.tool_state.select_width(width)
        self._persist_tools()

    def _toggle_eraser(self) -> None:
        self.tool_state.toggle_eraser()
        self._persist_tools()

    def _toggle_toolbar(self) -> None:
        self.tool_state.toggle_toolbar()
        self._persist_tools()
        self._build_ui()

    def _reset_zoom(self) -> None:
        self.tool_state.reset_view()
        self._persist_tools()

    def _canvas_point(self, pos: Point) -> Tuple[float, float]:
        return screen_to_canvas(pos, self.canvas_rect.topleft, self.tool_state.zoom_scale, self.tool_state.pan_offset)

    # --- save / close --------------------------------------------------------

    def _open_save_dialog(self, message: str = "Enter a name for your drawing") -> None:
        title = self.session.title
        if self.dialog is not None and self.dialog.text is not None:
            title = self.dialog.text
        elif title == DEFAULT_TITLE:
            title = ""
        self.dialog = Dialog(
            title="Save Drawing",
            message=message,
            actions=[SAVE_ACTION, DISCARD_ACTION, CANCEL_ACTION],
            text=title,
            placeholder="Drawing Title",
        )
        pygame.key.start_text_input()

    def _dismiss_dialog(self) -> None:
        self.dialog = None
        pygame.key.stop_text_input()

    def _finish(self) -> None:
        if self.session.record_id is not None:
            self.settings.last_drawing_id = self.session.record_id
        self._dismiss_dialog()
        self.running = False

    def _save(self) -> None:
        status = self.session.close_with_save()
        if status is SaveStatus.SAVED:
            self._finish()
        elif status is SaveStatus.TITLE_REQUIRED:
            self._open_save_dialog()
        else:
            self._open_save_dialog("Could not save drawing. Try again?")

    def _request_close(self) -> None:
        if self.session.request_close() is CloseAction.CLOSED:
            self._finish()
        else:
            self._open_save_dialog()

    def _handle_dialog_action(self, action: str) -> None:
        if action == SAVE_ACTION:
            title = self.dialog.text if self.dialog is not None else None
            status = self.session.close_with_save(title)
            if status is SaveStatus.SAVED:
                self._finish()
            elif status is SaveStatus.TITLE_REQUIRED:
                self._open_save_dialog("Please enter a title")
            else:
                self._open_save_dialog("Could not save drawing. Try again?")
        elif action == DISCARD_ACTION:
            self.session.discard_and_close()
            self._finish()
        else:
            self.quit_requested = False
            self._dismiss_dialog()

    def _handle_dialog_event(self, event: pygame.event.Event) -> None:
        if self.dialog is None:
            return
        if event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
            self._handle_dialog_action(CANCEL_ACTION)
            return
        if event.type == pygame.KEYDOWN and event.key in {pygame.K_RETURN, pygame.K_KP_ENTER}:
            self._handle_dialog_action(SAVE_ACTION)
            return
        if self.dialog.text is not None:
            self.dialog.text = apply_text_input(self.dialog.text, event)
        if self.dialog is not None and is_primary_pointer_event(event, is_down=True):
            pos = pointer_event_pos(event, self.screen_rect)
            if pos is None:
                return
            action = self.dialog.action_at(pos)
            if action is not None:
                self._handle_dialog_action(action)

    # --- pointer and gesture handling ----------------------------------------

    def _handle_pointer_down(self, pos: Point) -> None:
        if self.canvas_rect.collidepoint(pos):
            self.canvas.begin_stroke(self._canvas_point(pos), self.tool_state)
            return

        for key, button in self.bar_buttons.items():
            if button.hit(pos):
                self._handle_bar_action(key)
                return

        for color, button in self.color_buttons:
            if button.hit(pos):
                self._select_color(color)
                return

        for width, button in self.width_buttons:
            if button.hit(pos):
                self._select_width(width)
                return

        if "eraser" in self.tool_buttons and self.tool_buttons["eraser"].hit(pos):
            self._toggle_eraser()
        elif "reset_zoom" in self.tool_buttons and self.tool_buttons["reset_zoom"].hit(pos):
            self._reset_zoom()

    def _handle_bar_action(self, key: str) -> None:
        if key == "close":
            self._request_close()
        elif key == "clear":
            self.session.clear()
        elif key == "toolbar":
            self._toggle_toolbar()
        elif key == "undo":
            self.session.undo()
        elif key == "redo":
            self.session.redo()
        elif key == "save":
            self._save()

    def _handle_pointer_move(self, pos: Point) -> None:
        if self.canvas.current_stroke is None:
            return
        self.canvas.extend_stroke(self._canvas_point(pos))

    def _handle_pointer_up(self) -> None:
        self.canvas.end_stroke()

    def _handle_wheel(self, event: pygame.event.Event) -> None:
        mods = pygame.key.get_mods()
        if mods & (pygame.KMOD_CTRL | pygame.KMOD_META):
            self.tool_state.zoom_by(_wheel_zoom_factor(event.y))
        else:
            self.tool_state.pan_by(-event.x * SCROLL_STEP, -event.y * SCROLL_STEP)
        self._persist_tools()

    def _handle_keydown(self, event: pygame.event.Event) -> None:
        if event.key == pygame.K_ESCAPE:
            self._request_close()
        elif is_shortcut(event, pygame.K_s):
            self._save()
        elif is_shortcut(event, pygame.K_z, shift=True):
            self.session.redo()
        elif is_shortcut(event, pygame.K_z):
            self.session.undo()

    def _handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit_requested = True
            self._request_close()
            return
        if self.dialog is not None:
            self._handle_dialog_event(event)
            return
        if event.type == pygame.KEYDOWN:
            self._handle_keydown(event)
        elif event.type == pygame.MOUSEBUTTONDOWN and getattr(event, "button", 1) == 2:
            self.pan_anchor = (event.pos, self.tool_state.pan_offset)
        elif event.type == pygame.MOUSEBUTTONUP and getattr(event, "button", 1) == 2:
            self.pan_anchor = None
            self._persist_tools()
        elif event.type == pygame.MOUSEWHEEL:
            self._handle_wheel(event)
        elif MULTIGESTURE is not None and event.type == MULTIGESTURE:
            if abs(event.pinched) > 1e-3:
                self.tool_state.zoom_by(_pinch_factor(event.pinched))
                self._persist_tools()
        elif is_primary_pointer_event(event, is_down=True):
            pos = pointer_event_pos(event, self.screen_rect)
            if pos is None:
                return
            self.pointer_down = True
            self._handle_pointer_down(pos)
        elif event.type == pygame.MOUSEMOTION or (FINGERMOTION is not None and event.type == FINGERMOTION):
            if self.pan_anchor is not None and event.type == pygame.MOUSEMOTION:
                (start_x, start_y), start_offset = self.pan_anchor
                self.tool_state.pan_from(start_offset, (event.pos[0] - start_x, event.pos[1] - start_y))
                return
            if event.type == pygame.MOUSEMOTION:
                if not (self.pointer_down or event.buttons[0]):
                    return
            elif not self.pointer_down:
                return
            pos = pointer_event_pos(event, self.screen_rect)
            if pos is None:
                return
            self._handle_pointer_move(pos)
        elif is_primary_pointer_event(event, is_down=False):
            self.pointer_down = False
            self._handle_pointer_up()

    # --- drawing -------------------------------------------------------------

    def _update_button_states(self) -> None:
        self.bar_buttons["undo"].enabled = self.canvas.can_undo
        self.bar_buttons["redo"].enabled = self.canvas.can_redo
        self.bar_buttons["save"].enabled = self.session.dirty or self.session.is_new

    def _render(self) -> None:
        self._update_button_states()
        self.screen.fill((252, 248, 240))

        pygame.draw.rect(self.screen, (255, 255, 255), self.canvas_rect)
        previous_clip = self.screen.get_clip()
        self.screen.set_clip(self.canvas_rect)
        self.canvas.render(
            self.screen,
            self.canvas_rect.topleft,
            self.tool_state.zoom_scale,
            self.tool_state.pan_offset,
        )
        self.screen.set_clip(previous_clip)
        pygame.draw.rect(self.screen, (200, 200, 200), self.canvas_rect, width=2)

        pygame.draw.rect(self.screen, self.menu_bg, pygame.Rect(0, 0, self.screen_rect.width, self.bar_height))
        for button in self.bar_buttons.values():
            button.draw(self.screen, self.font)
        title = self.font.render(_display_title(self.session), True, (30, 30, 30))
        self.screen.blit(title, title.get_rect(center=(self.screen_rect.centerx, self.bar_height // 2)))
        zoom = self.font.render(_format_zoom(self.tool_state.zoom_scale), True, (90, 90, 90))
        self.screen.blit(zoom, zoom.get_rect(midleft=(self.bar_buttons["toolbar"].rect.right + 16, self.bar_height // 2)))

        if self.tool_state.toolbar_visible:
            pygame.draw.rect(self.screen, self.menu_bg, self.controls_rect, border_radius=12)
            for color, button in self.color_buttons:
                button.draw(self.screen)
                if not self.tool_state.eraser_active and _same_color(color, self.tool_state.color):
                    pygame.draw.rect(self.screen, SELECTED_OUTLINE, button.rect, width=3, border_radius=12)
            for width, button in self.width_buttons:
                button.draw(self.screen)
                thickness = max(1, min(button.rect.height - 4, int(round(width))))
                pygame.draw.line(
                    self.screen,
                    _rgba_to_color(self.tool_state.color),
                    (button.rect.left + 8, button.rect.centery),
                    (button.rect.right - 8, button.rect.centery),
                    thickness,
                )
                if not self.tool_state.eraser_active and abs(width - self.tool_state.line_width) < 1e-6:
                    pygame.draw.rect(self.screen, SELECTED_OUTLINE, button.rect, width=2, border_radius=8)
            for key, button in self.tool_buttons.items():
                button.draw(self.screen, self.font)
                if key == "eraser" and self.tool_state.eraser_active:
                    pygame.draw.rect(self.screen, SELECTED_OUTLINE, button.rect, width=3, border_radius=12)

        if self.dialog is not None:
            self.dialog.draw(self.screen, self.font)

        pygame.display.flip()

    def run(self) -> bool:
        """Run until the drawing is closed; return True if the app should quit."""
        self._render()
        while self.running:
            for event in pygame.event.get():
                self._handle_event(event)
                if not self.running:
                    break
            if not self.running:
                break
            self._render()
            self.clock.tick(60)
        self._persist_tools()
        return self.quit_requested


def run_editor(
    screen: pygame.Surface,
    screen_rect: pygame.Rect,
    clock: pygame.time.Clock,
    config: Dict[str, Any],
    settings: SettingsStore,
    repository: DrawingRepository,
    record_id: Optional[str] = None,
) -> bool:
    return EditorApp(screen, screen_rect, clock, config, settings, repository, record_id).run()
