# tests/test_crabby_client.py
import pygame

from crabby_bird.crabby_client import is_pointer_press


def test_real_mouse_press_counts():
    event = pygame.event.Event(pygame.MOUSEBUTTONDOWN, {"pos": (10, 10), "button": 1, "touch": False})
    assert is_pointer_press(event)


def test_mouse_press_mirrored_from_touch_is_ignored():
    event = pygame.event.Event(pygame.MOUSEBUTTONDOWN, {"pos": (10, 10), "button": 1, "touch": True})
    assert not is_pointer_press(event)


def test_other_events_are_not_presses():
    assert not is_pointer_press(pygame.event.Event(pygame.FINGERDOWN, {"x": 0.5, "y": 0.5}))
    assert not is_pointer_press(pygame.event.Event(pygame.KEYDOWN, {"key": pygame.K_SPACE}))
