import io

import pygame

from sketchbox.ui.common import (
    apply_text_input,
    is_escape_chord,
    is_primary_pointer_event,
    is_shortcut,
    load_image_bytes,
    pointer_event_pos,
)


def test_primary_pointer_event_accepts_left_mouse_button():
    event = pygame.event.Event(pygame.MOUSEBUTTONDOWN, button=1, pos=(10, 10))
    assert is_primary_pointer_event(event, is_down=True)


def test_primary_pointer_event_accepts_touch_emulated_mouse_button_zero():
    event = pygame.event.Event(pygame.MOUSEBUTTONDOWN, button=0, pos=(10, 10), touch=True)
    assert is_primary_pointer_event(event, is_down=True)


def test_primary_pointer_event_rejects_right_mouse_button():
    event = pygame.event.Event(pygame.MOUSEBUTTONDOWN, button=3, pos=(10, 10))
    assert not is_primary_pointer_event(event, is_down=True)


def test_pointer_event_pos_scales_finger_coordinates():
    event = pygame.event.Event(pygame.FINGERDOWN, x=0.5, y=0.25, finger_id=1, touch_id=1)
    assert pointer_event_pos(event, pygame.Rect(0, 0, 800, 600)) == (400, 150)


def test_apply_text_input_appends_and_deletes():
    text = apply_text_input("Ca", pygame.event.Event(pygame.TEXTINPUT, text="t"))
    assert text == "Cat"
    text = apply_text_input(text, pygame.event.Event(pygame.KEYDOWN, key=pygame.K_BACKSPACE, mod=0))
    assert text == "Ca"


def test_apply_text_input_caps_length():
    text = apply_text_input("abc", pygame.event.Event(pygame.TEXTINPUT, text="defg"), max_length=5)
    assert text == "abcde"


def test_is_shortcut_requires_command_modifier():
    save = pygame.event.Event(pygame.KEYDOWN, key=pygame.K_s, mod=pygame.KMOD_LCTRL)
    plain = pygame.event.Event(pygame.KEYDOWN, key=pygame.K_s, mod=0)
    redo = pygame.event.Event(pygame.KEYDOWN, key=pygame.K_z, mod=pygame.KMOD_LCTRL | pygame.KMOD_LSHIFT)
    assert is_shortcut(save, pygame.K_s)
    assert not is_shortcut(plain, pygame.K_s)
    assert is_shortcut(redo, pygame.K_z, shift=True)
    assert not is_shortcut(redo, pygame.K_z)


def test_escape_chord_needs_ctrl_alt_home():
    chord = pygame.event.Event(pygame.KEYDOWN, key=pygame.K_HOME, mod=pygame.KMOD_LCTRL | pygame.KMOD_LALT)
    home = pygame.event.Event(pygame.KEYDOWN, key=pygame.K_HOME, mod=0)
    assert is_escape_chord(chord)
    assert not is_escape_chord(home)


def test_load_image_bytes_handles_missing_and_broken_data():
    assert load_image_bytes(None) is None
    assert load_image_bytes(b"not-an-image") is None


def test_load_image_bytes_scales_to_fit():
    surface = pygame.Surface((40, 20))
    buffer = io.BytesIO()
    pygame.image.save(surface, buffer, "thumb.png")

    image = load_image_bytes(buffer.getvalue(), (10, 10))
    assert image.get_size() == (10, 5)
