"""
Toolkit-independent input event records.

The window layer translates its native events into these records and posts
them to the render loop, which consumes them at the start of each frame. Tests
feed the loop synthetic events the same way.
"""

from dataclasses import dataclass
from typing import Union

from .enums import Key, MouseButton


@dataclass(frozen=True)
class KeyEvent:
    key: Key
    pressed: bool


@dataclass(frozen=True)
class MouseMoveEvent:
    x: float
    y: float


@dataclass(frozen=True)
class MouseButtonEvent:
    button: MouseButton
    pressed: bool
    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True)
class ScrollEvent:
    steps: float   # positive = wheel away from user (zoom in)


@dataclass(frozen=True)
class ResizeEvent:
    width: int
    height: int


@dataclass(frozen=True)
class CursorWarpEvent:
    """The window moved the captured cursor to (x, y); not user motion."""
    x: float
    y: float


@dataclass(frozen=True)
class FocusLostEvent:
    """The window lost keyboard focus; pending releases will never arrive."""


@dataclass(frozen=True)
class CloseEvent:
    pass


InputEvent = Union[KeyEvent, MouseMoveEvent, MouseButtonEvent, CursorWarpEvent, ScrollEvent,
                   ResizeEvent, FocusLostEvent, CloseEvent]
