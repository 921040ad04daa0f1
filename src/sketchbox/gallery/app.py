from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import pygame

from sketchbox.config import load_config
from sketchbox.logs import configure_logging
from sketchbox.paint.app import run_editor
from sketchbox.paths import ensure_directories, get_data_root
from sketchbox.settings import SettingsStore
from sketchbox.storage import DrawingRecord, DrawingRepository
from sketchbox.ui.common import (
    Button,
    create_fullscreen_window,
    draw_placeholder_icon,
    is_escape_chord,
    is_primary_pointer_event,
    load_image_bytes,
    pointer_event_pos,
)

logger = logging.getLogger(__name__)

FINGERMOTION = getattr(pygame, "FINGERMOTION", None)

# --- Tuning constants ---
WIDE_LAYOUT_MIN_WIDTH = 1024
TILE_GAP = 16
CAPTION_HEIGHT = 48
SCROLL_STEP = 40
DRAG_THRESHOLD = 10


@dataclass
class GalleryTile:
    record: DrawingRecord
    thumb: Optional[pygame.Surface] = None


def _column_count(width: int, config: Dict[str, Any]) -> int:
    gallery = config.get("gallery", {})
    if width >= WIDE_LAYOUT_MIN_WIDTH:
        columns = gallery.get("columns_wide", 4)
    else:
        columns = gallery.get("columns_narrow", 2)
    try:
        return max(1, int(columns))
    except (TypeError, ValueError):
        return 2


def _tile_rects(count: int, columns: int, area: pygame.Rect, scroll: int = 0) -> List[pygame.Rect]:
    size = max(1, (area.width - TILE_GAP * (columns + 1)) // columns)
    rects = []
    for idx in range(count):
        row, col = divmod(idx, columns)
        rects.append(
            pygame.Rect(
                area.left + TILE_GAP + col * (size + TILE_GAP),
                area.top + TILE_GAP + row * (size + CAPTION_HEIGHT + TILE_GAP) - scroll,
                size,
                size,
            )
        )
    return rects


def _max_scroll(count: int, columns: int, area: pygame.Rect) -> int:
    if count == 0:
        return 0
    size = max(1, (area.width - TILE_GAP * (columns + 1)) // columns)
    rows = (count + columns - 1) // columns
    total = TILE_GAP + rows * (size + CAPTION_HEIGHT + TILE_GAP)
    return max(0, total - area.height)


def _delete_rect(tile_rect: pygame.Rect) -> pygame.Rect:
    size = max(28, tile_rect.width // 7)
    return pygame.Rect(tile_rect.right - size - 6, tile_rect.top + 6, size, size)


def _format_date(value: datetime) -> str:
    return value.astimezone().strftime("%b %d, %Y")


class GalleryApp:
    def __init__(
        self,
        *,
        screen: Optional[pygame.Surface] = None,
        screen_rect: Optional[pygame.Rect] = None,
        clock: Optional[pygame.time.Clock] = None,
    ) -> None:
        self.config = load_config()
        self.data_root = get_data_root(self.config)
        dirs = ensure_directories(self.data_root)
        configure_logging(self.config, dirs["logs"])

        self.settings = SettingsStore(dirs["settings"])
        self.repository = DrawingRepository(dirs["database"])

        if screen is None:
            self.screen, self.screen_rect = create_fullscreen_window()
        else:
            self.screen = screen
            self.screen_rect = screen_rect or screen.get_rect()
        self.clock = clock or pygame.time.Clock()

        self.margin = 16
        self.bar_height = max(56, min(72, int(self.screen_rect.height * 0.08)))
        self.font = pygame.font.SysFont("sans", 18)
        self.title_font = pygame.font.SysFont("sans", 28)
        self.columns = _column_count(self.screen_rect.width, self.config)
        self.grid_rect = pygame.Rect(
            0,
            self.bar_height,
            self.screen_rect.width,
            self.screen_rect.height - self.bar_height,
        )

        button_h = self.bar_height - 20
        self.new_button = Button(
            rect=pygame.Rect(self.screen_rect.right - self.margin - 140, 10, 140, button_h),
            label="+ New",
            fill=(245, 245, 245),
        )
        self.retry_button = Button(
            rect=pygame.Rect(0, 0, 200, button_h),
            label="Check again",
            fill=(245, 245, 245),
        )
        self.retry_button.rect.center = (self.screen_rect.centerx, self.screen_rect.centery + 80)

        self.store_ready = False
        self.status_message = "Checking..."
        self.tiles: List[GalleryTile] = []
        self.scroll_y = 0
        self.pointer_down = False
        self.drag_last_y: Optional[int] = None
        self.drag_distance = 0
        self.pressed_pos: Optional[Tuple[int, int]] = None
        self.check_store()

    def check_store(self) -> None:
        self.repository.init_schema()
        self.store_ready = self.repository.is_available()
        if self.store_ready:
            self.status_message = "Drawing store is ready"
            self.reload()
        else:
            self.status_message = f"Drawing store at {self.repository.db_path} is not usable"
            self.tiles = []

    def reload(self) -> None:
        if not self.store_ready:
            logger.warning("Skipping gallery reload: drawing store unavailable")
            return
        rects = _tile_rects(1, self.columns, self.grid_rect)
        thumb_size = rects[0].size
        self.tiles = [
            GalleryTile(record=record, thumb=load_image_bytes(record.thumbnail, thumb_size))
            for record in self.repository.fetch_all()
        ]
        self.scroll_y = min(self.scroll_y, _max_scroll(len(self.tiles), self.columns, self.grid_rect))
        logger.info("Loaded %d drawings", len(self.tiles))

    def _open_editor(self, record_id: Optional[str]) -> bool:
        quit_requested = run_editor(
            self.screen,
            self.screen_rect,
            self.clock,
            self.config,
            self.settings,
            self.repository,
            record_id,
        )
        self.reload()
        pygame.event.clear([pygame.MOUSEBUTTONDOWN, pygame.MOUSEBUTTONUP])
        return quit_requested

    def _delete(self, record: DrawingRecord) -> None:
        self.repository.delete(record.id)
        if self.settings.last_drawing_id == record.id:
            self.settings.last_drawing_id = None
        self.reload()

    def _tile_at(self, pos: Tuple[int, int]) -> Optional[Tuple[GalleryTile, pygame.Rect]]:
        if not self.grid_rect.collidepoint(pos):
            return None
        rects = _tile_rects(len(self.tiles), self.columns, self.grid_rect, self.scroll_y)
        for tile, rect in zip(self.tiles, rects):
            caption = pygame.Rect(rect.left, rect.top, rect.width, rect.height + CAPTION_HEIGHT)
            if caption.collidepoint(pos):
                return tile, rect
        return None

    def _handle_tap(self, pos: Tuple[int, int]) -> bool:
        if not self.store_ready:
            if self.retry_button.hit(pos):
                self.check_store()
            return False
        if self.new_button.hit(pos):
            return self._open_editor(None)
        hit = self._tile_at(pos)
        if hit is None:
            return False
        tile, rect = hit
        if _delete_rect(rect).collidepoint(pos):
            self._delete(tile.record)
            return False
        return self._open_editor(tile.record.id)

    def _scroll(self, delta: int) -> None:
        limit = _max_scroll(len(self.tiles), self.columns, self.grid_rect)
        self.scroll_y = max(0, min(limit, self.scroll_y + delta))

    def _draw_diagnostic(self) -> None:
        icon_rect = pygame.Rect(0, 0, 160, 120)
        icon_rect.center = (self.screen_rect.centerx, self.screen_rect.centery - 80)
        draw_placeholder_icon(self.screen, icon_rect, "!")
        text = self.font.render(self.status_message, True, (140, 30, 30))
        self.screen.blit(text, text.get_rect(center=(self.screen_rect.centerx, self.screen_rect.centery + 20)))
        self.retry_button.draw(self.screen, self.font)

    def _draw_empty(self) -> None:
        text = self.title_font.render("No drawings yet", True, (90, 90, 90))
        self.screen.blit(text, text.get_rect(center=(self.screen_rect.centerx, self.screen_rect.centery - 20)))
        hint = self.font.render("Tap + New to start drawing", True, (120, 120, 120))
        self.screen.blit(hint, hint.get_rect(center=(self.screen_rect.centerx, self.screen_rect.centery + 20)))

    def _draw_tiles(self) -> None:
        last_id = self.settings.last_drawing_id
        rects = _tile_rects(len(self.tiles), self.columns, self.grid_rect, self.scroll_y)
        previous_clip = self.screen.get_clip()
        self.screen.set_clip(self.grid_rect)
        for tile, rect in zip(self.tiles, rects):
            if rect.bottom + CAPTION_HEIGHT < self.grid_rect.top or rect.top > self.grid_rect.bottom:
                continue
            pygame.draw.rect(self.screen, (255, 255, 255), rect, border_radius=12)
            if tile.thumb is not None:
                self.screen.blit(tile.thumb, tile.thumb.get_rect(center=rect.center))
            else:
                draw_placeholder_icon(self.screen, rect, "No preview")
            outline = (200, 60, 60) if tile.record.id == last_id else (210, 210, 210)
            pygame.draw.rect(self.screen, outline, rect, width=2, border_radius=12)

            delete_rect = _delete_rect(rect)
            pygame.draw.rect(self.screen, (235, 235, 235), delete_rect, border_radius=8)
            cross = self.font.render("x", True, (160, 40, 40))
            self.screen.blit(cross, cross.get_rect(center=delete_rect.center))

            title = self.font.render(tile.record.title or "Untitled", True, (20, 20, 20))
            self.screen.blit(title, (rect.left + 4, rect.bottom + 4))
            date = self.font.render(_format_date(tile.record.modified_date), True, (120, 120, 120))
            self.screen.blit(date, (rect.left + 4, rect.bottom + 6 + self.font.get_height()))
        self.screen.set_clip(previous_clip)

    def _render(self) -> None:
        self.screen.fill((248, 244, 236))
        pygame.draw.rect(self.screen, (238, 234, 226), pygame.Rect(0, 0, self.screen_rect.width, self.bar_height))
        heading = self.title_font.render("My Drawings", True, (30, 30, 30))
        self.screen.blit(heading, heading.get_rect(midleft=(self.margin, self.bar_height // 2)))
        self.new_button.enabled = self.store_ready
        self.new_button.draw(self.screen, self.font)

        if not self.store_ready:
            self._draw_diagnostic()
        elif not self.tiles:
            self._draw_empty()
        else:
            self._draw_tiles()
        pygame.display.flip()

    def run(self, *, quit_on_exit: bool = True) -> None:
        running = True
        self._render()
        while running:
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                elif is_escape_chord(event):
                    running = False
                elif event.type == pygame.MOUSEWHEEL:
                    self._scroll(-event.y * SCROLL_STEP)
                elif is_primary_pointer_event(event, is_down=True):
                    pos = pointer_event_pos(event, self.screen_rect)
                    if pos is None:
                        continue
                    self.pointer_down = True
                    self.pressed_pos = pos
                    self.drag_last_y = pos[1]
                    self.drag_distance = 0
                elif event.type == pygame.MOUSEMOTION or (FINGERMOTION is not None and event.type == FINGERMOTION):
                    if not self.pointer_down or self.drag_last_y is None:
                        continue
                    pos = pointer_event_pos(event, self.screen_rect)
                    if pos is None:
                        continue
                    delta = self.drag_last_y - pos[1]
                    self.drag_distance += abs(delta)
                    self.drag_last_y = pos[1]
                    if self.drag_distance >= DRAG_THRESHOLD:
                        self._scroll(delta)
                elif is_primary_pointer_event(event, is_down=False):
                    pressed = self.pressed_pos
                    was_drag = self.drag_distance >= DRAG_THRESHOLD
                    self.pointer_down = False
                    self.pressed_pos = None
                    self.drag_last_y = None
                    if pressed is not None and not was_drag:
                        if self._handle_tap(pressed):
                            running = False
                            break

            self._render()
            self.clock.tick(60)

        if quit_on_exit:
            pygame.quit()


def main() -> None:
    try:
        GalleryApp().run(quit_on_exit=True)
    except Exception:
        logger.exception("SketchBox stopped unexpectedly")
        pygame.quit()
        sys.exit(1)


if __name__ == "__main__":
    main()
