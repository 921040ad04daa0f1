from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import pygame


Color = Tuple[int, int, int]
Point = Tuple[int, int]

FINGERDOWN = getattr(pygame, "FINGERDOWN", None)
FINGERMOTION = getattr(pygame, "FINGERMOTION", None)
FINGERUP = getattr(pygame, "FINGERUP", None)
FINGER_EVENTS = {event for event in (FINGERDOWN, FINGERMOTION, FINGERUP) if event is not None}

TITLE_MAX_LENGTH = 60


@dataclass
class Button:
    rect: pygame.Rect
    label: str = ""
    image: Optional[pygame.Surface] = None
    fill: Optional[Color] = None
    border_color: Optional[Color] = (30, 30, 30)
    border_width: int = 0
    enabled: bool = True

    def draw(self, surface: pygame.Surface, font: Optional[pygame.font.Font] = None) -> None:
        if self.fill is not None:
            pygame.draw.rect(surface, self.fill, self.rect, border_radius=12)
        if self.image is not None:
            image_rect = self.image.get_rect(center=self.rect.center)
            surface.blit(self.image, image_rect)
        if self.border_color is not None and self.border_width > 0:
            pygame.draw.rect(
                surface,
                self.border_color,
                self.rect,
                width=self.border_width,
                border_radius=12,
            )
        if self.label and font is not None:
            color = (20, 20, 20) if self.enabled else (160, 160, 160)
            text = font.render(self.label, True, color)
            text_rect = text.get_rect(center=self.rect.center)
            surface.blit(text, text_rect)

    def hit(self, pos: Tuple[int, int]) -> bool:
        return self.enabled and self.rect.collidepoint(pos)


@dataclass
class Dialog:
    title: str
    message: str
    actions: List[str]
    text: Optional[str] = None
    placeholder: str = ""
    buttons: List[Tuple[str, Button]] = field(default_factory=list)

    def layout(self, screen_rect: pygame.Rect, font: pygame.font.Font) -> pygame.Rect:
        width = min(520, screen_rect.width - 40)
        row = font.get_height() + 20
        rows = 3 + (1 if self.text is not None else 0)
        panel = pygame.Rect(0, 0, width, rows * row + 24)
        panel.center = screen_rect.center
        gap = 10
        button_w = (width - gap * (len(self.actions) + 1)) // max(1, len(self.actions))
        top = panel.bottom - row - 12
        self.buttons = []
        for idx, action in enumerate(self.actions):
            rect = pygame.Rect(panel.left + gap + idx * (button_w + gap), top, button_w, row)
            self.buttons.append((action, Button(rect=rect, label=action, fill=(245, 245, 245))))
        return panel

    def draw(self, surface: pygame.Surface, font: pygame.font.Font) -> None:
        screen_rect = surface.get_rect()
        overlay = pygame.Surface(screen_rect.size, pygame.SRCALPHA)
        overlay.fill((0, 0, 0, 140))
        surface.blit(overlay, (0, 0))
        panel = self.layout(screen_rect, font)
        pygame.draw.rect(surface, (250, 248, 244), panel, border_radius=14)
        row = font.get_height() + 20
        title = font.render(self.title, True, (20, 20, 20))
        surface.blit(title, title.get_rect(midtop=(panel.centerx, panel.top + 12)))
        message = font.render(self.message, True, (90, 90, 90))
        surface.blit(message, message.get_rect(midtop=(panel.centerx, panel.top + 12 + row)))
        if self.text is not None:
            field_rect = pygame.Rect(panel.left + 16, panel.top + 12 + row * 2, panel.width - 32, row - 6)
            pygame.draw.rect(surface, (255, 255, 255), field_rect, border_radius=8)
            pygame.draw.rect(surface, (180, 180, 180), field_rect, width=2, border_radius=8)
            shown = self.text or self.placeholder
            color = (20, 20, 20) if self.text else (160, 160, 160)
            label = font.render(shown, True, color)
            surface.blit(label, label.get_rect(midleft=(field_rect.left + 10, field_rect.centery)))
        for _, button in self.buttons:
            button.draw(surface, font)

    def action_at(self, pos: Point) -> Optional[str]:
        for action, button in self.buttons:
            if button.hit(pos):
                return action
        return None


def apply_text_input(text: str, event: pygame.event.Event, max_length: int = TITLE_MAX_LENGTH) -> str:
    if event.type == pygame.TEXTINPUT:
        return (text + event.text)[:max_length]
    if event.type == pygame.KEYDOWN and event.key == pygame.K_BACKSPACE:
        return text[:-1]
    return text


def create_fullscreen_window() -> Tuple[pygame.Surface, pygame.Rect]:
    pygame.init()
    screen = pygame.display.set_mode((0, 0), pygame.FULLSCREEN)
    pygame.display.set_caption("SketchBox")
    pygame.mouse.set_visible(True)
    return screen, screen.get_rect()


def load_image_bytes(data: Optional[bytes], size: Optional[Tuple[int, int]] = None) -> Optional[pygame.Surface]:
    if not data:
        return None
    try:
        image = pygame.image.load(io.BytesIO(data), "thumbnail.png")
    except (pygame.error, OSError):
        return None
    if pygame.display.get_surface() is not None:
        image = image.convert_alpha()
    if size:
        image = scale_to_fit(image, size)
    return image


def scale_to_fit(surface: pygame.Surface, size: Tuple[int, int]) -> pygame.Surface:
    target_w, target_h = size
    src_w, src_h = surface.get_size()
    scale = min(target_w / src_w, target_h / src_h)
    new_size = (max(1, int(src_w * scale)), max(1, int(src_h * scale)))
    return pygame.transform.smoothscale(surface, new_size)


def draw_placeholder_icon(
    surface: pygame.Surface,
    rect: pygame.Rect,
    label: str,
    *,
    border_width: int = 0,
    border_color: Color = (40, 40, 40),
) -> None:
    pygame.draw.rect(surface, (220, 220, 220), rect, border_radius=16)
    if border_width > 0:
        pygame.draw.rect(surface, border_color, rect, width=border_width, border_radius=16)
    font = pygame.font.SysFont("sans", 22)
    text = font.render(label, True, (30, 30, 30))
    text_rect = text.get_rect(center=rect.center)
    surface.blit(text, text_rect)


def is_escape_chord(event: pygame.event.Event) -> bool:
    if event.type != pygame.KEYDOWN:
        return False
    if event.key != pygame.K_HOME:
        return False
    mods = event.mod
    has_ctrl = bool(mods & pygame.KMOD_CTRL)
    has_alt = bool(mods & pygame.KMOD_ALT)
    disallowed = (
        pygame.KMOD_SHIFT
        | pygame.KMOD_META
        | pygame.KMOD_GUI
        | getattr(pygame, "KMOD_ALTGR", 0)
    )
    return has_ctrl and has_alt and (mods & disallowed) == 0


def is_shortcut(event: pygame.event.Event, key: int, *, shift: bool = False) -> bool:
    if event.type != pygame.KEYDOWN or event.key != key:
        return False
    mods = event.mod
    command = pygame.KMOD_CTRL | pygame.KMOD_META
    if not mods & command:
        return False
    return bool(mods & pygame.KMOD_SHIFT) == shift


def is_primary_pointer_event(event: pygame.event.Event, *, is_down: bool) -> bool:
    expected_type = pygame.MOUSEBUTTONDOWN if is_down else pygame.MOUSEBUTTONUP
    if event.type == expected_type:
        # Some touch stacks can emit emulated mouse events with button 0.
        button = getattr(event, "button", 1)
        if button in {0, 1}:
            return True
        return bool(getattr(event, "touch", False))
    finger_type = FINGERDOWN if is_down else FINGERUP
    return finger_type is not None and event.type == finger_type


def pointer_event_pos(event: pygame.event.Event, screen_rect: pygame.Rect) -> Optional[Point]:
    if hasattr(event, "pos"):
        return event.pos
    if event.type in FINGER_EVENTS:
        return (
            int(event.x * screen_rect.width),
            int(event.y * screen_rect.height),
        )
    return None
