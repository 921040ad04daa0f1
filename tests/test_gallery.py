from datetime import datetime, timezone

import pygame

from sketchbox.gallery.app import (
    CAPTION_HEIGHT,
    TILE_GAP,
    _column_count,
    _delete_rect,
    _format_date,
    _max_scroll,
    _tile_rects,
)


def test_column_count_depends_on_width():
    config = {"gallery": {"columns_wide": 4, "columns_narrow": 2}}
    assert _column_count(1366, config) == 4
    assert _column_count(800, config) == 2


def test_column_count_falls_back_on_bad_config():
    assert _column_count(800, {"gallery": {"columns_narrow": "many"}}) == 2
    assert _column_count(1366, {"gallery": {"columns_wide": 0}}) == 1
    assert _column_count(1366, {}) == 4


def test_tile_rects_fill_rows_left_to_right():
    area = pygame.Rect(0, 100, 4 * 100 + 5 * TILE_GAP, 600)
    rects = _tile_rects(5, 4, area)
    assert [rect.size for rect in rects] == [(100, 100)] * 5
    assert rects[0].topleft == (TILE_GAP, 100 + TILE_GAP)
    assert rects[3].left == TILE_GAP + 3 * (100 + TILE_GAP)
    assert rects[4].left == TILE_GAP
    assert rects[4].top == 100 + TILE_GAP + 100 + CAPTION_HEIGHT + TILE_GAP


def test_tile_rects_apply_scroll():
    area = pygame.Rect(0, 0, 400, 400)
    assert _tile_rects(1, 2, area, scroll=30)[0].top == TILE_GAP - 30


def test_max_scroll_is_zero_when_content_fits():
    area = pygame.Rect(0, 0, 400, 4000)
    assert _max_scroll(3, 2, area) == 0
    assert _max_scroll(0, 2, area) == 0


def test_max_scroll_covers_overflow():
    area = pygame.Rect(0, 0, 3 * TILE_GAP + 200, 300)
    rows_height = TILE_GAP + 3 * (100 + CAPTION_HEIGHT + TILE_GAP)
    assert _max_scroll(6, 2, area) == rows_height - 300


def test_delete_rect_sits_in_top_right_corner():
    tile = pygame.Rect(0, 0, 210, 210)
    rect = _delete_rect(tile)
    assert rect.right == tile.right - 6
    assert rect.top == tile.top + 6
    assert tile.contains(rect)


def test_format_date_uses_month_day_year():
    stamp = datetime(2026, 2, 6, 12, 0, 0, tzinfo=timezone.utc)
    assert _format_date(stamp).endswith("2026")
