"""Decoded input events.

Turning raw terminal bytes into these objects is the job of an external
decoder; the runtime only consumes them.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Key:
    """Which special keys and modifiers accompany a key event."""

    up_arrow: bool = False
    down_arrow: bool = False
    left_arrow: bool = False
    right_arrow: bool = False
    page_up: bool = False
    page_down: bool = False
    home: bool = False
    end: bool = False
    return_: bool = False
    escape: bool = False
    tab: bool = False
    backspace: bool = False
    delete: bool = False
    ctrl: bool = False
    shift: bool = False
    meta: bool = False


@dataclass(frozen=True)
class KeyEvent:
    char: str = ""
    key: Key = field(default_factory=Key)


class MouseButton(str, enum.Enum):
    LEFT = "left"
    RIGHT = "right"
    MIDDLE = "middle"
    SCROLL_UP = "scroll-up"
    SCROLL_DOWN = "scroll-down"
    NONE = "none"


class MouseAction(str, enum.Enum):
    CLICK = "click"
    DOUBLE_CLICK = "double-click"
    DRAG = "drag"
    RELEASE = "release"
    MOVE = "move"


@dataclass(frozen=True)
class Modifiers:
    ctrl: bool = False
    shift: bool = False
    alt: bool = False


@dataclass(frozen=True)
class MouseEvent:
    """A mouse event in zero-based screen cell coordinates."""

    x: int
    y: int
    button: MouseButton = MouseButton.LEFT
    action: MouseAction = MouseAction.CLICK
    modifiers: Modifiers = field(default_factory=Modifiers)

    @property
    def is_scroll(self) -> bool:
        return self.button in (MouseButton.SCROLL_UP, MouseButton.SCROLL_DOWN)
