"""Keyboard shortcut strings such as ``"ctrl+s"`` or ``"shift+tab, esc"``."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Union

from cellflow.events import Key

GLOBAL_SCOPE = "global"

_ALIASES = {
    "up": "up_arrow",
    "down": "down_arrow",
    "left": "left_arrow",
    "right": "right_arrow",
    "arrowup": "up_arrow",
    "arrowdown": "down_arrow",
    "arrowleft": "left_arrow",
    "arrowright": "right_arrow",
    "esc": "escape",
    "return": "enter",
    "space": " ",
    "del": "delete",
    "pgup": "page_up",
    "pgdn": "page_down",
    "pageup": "page_up",
    "pagedown": "page_down",
}

_MODIFIERS = {
    "ctrl": "ctrl",
    "control": "ctrl",
    "alt": "alt",
    "option": "alt",
    "shift": "shift",
    "meta": "meta",
    "cmd": "meta",
    "command": "meta",
}

# Binding key name -> ``Key`` flag
_SPECIAL = {
    "up_arrow": "up_arrow",
    "down_arrow": "down_arrow",
    "left_arrow": "left_arrow",
    "right_arrow": "right_arrow",
    "escape": "escape",
    "enter": "return_",
    "tab": "tab",
    "backspace": "backspace",
    "delete": "delete",
    "page_up": "page_up",
    "page_down": "page_down",
    "home": "home",
    "end": "end",
}


@dataclass(frozen=True)
class Hotkey:
    key: str
    ctrl: bool = False
    alt: bool = False
    shift: bool = False
    meta: bool = False

    def __str__(self) -> str:
        parts = [m.capitalize() for m in ("ctrl", "alt", "shift", "meta") if getattr(self, m)]
        if len(self.key) == 1:
            parts.append(self.key.upper())
        else:
            parts.append(self.key.replace("_", " ").title())
        return "+".join(parts)


def parse_hotkey(text: str) -> Hotkey:
    """Parse ``"ctrl+shift+s"``; modifier and key names are case-insensitive."""
    key = ""
    flags = {"ctrl": False, "alt": False, "shift": False, "meta": False}
    for part in text.lower().split("+"):
        part = part.strip()
        if part in _MODIFIERS:
            flags[_MODIFIERS[part]] = True
        elif part:
            key = _ALIASES.get(part, part)
    if not key and text.endswith("+"):
        # "ctrl++"
        key = "+"
    if not key:
        raise ValueError(f"Hotkey {text!r} names no key")
    return Hotkey(key, **flags)


def parse_hotkeys(keys: Union[str, Sequence[str]]) -> list[Hotkey]:
    """Parse a comma-separated string or a sequence of hotkey strings."""
    if isinstance(keys, str):
        keys = keys.split(",")
    return [parse_hotkey(k) for k in keys if k.strip()]


def matches_hotkey(char: str, key: Key, hotkey: Hotkey) -> bool:
    """Whether the key event ``(char, key)`` is *hotkey*.

    Terminals report Alt as a meta prefix, so ``alt`` and ``meta`` bindings
    both match ``key.meta``.
    """
    if hotkey.ctrl != key.ctrl or hotkey.shift != key.shift:
        return False
    if (hotkey.alt or hotkey.meta) != key.meta:
        return False
    flag = _SPECIAL.get(hotkey.key)
    if flag is not None:
        return getattr(key, flag)
    if hotkey.ctrl and len(hotkey.key) == 1 and "a" <= hotkey.key <= "z":
        # Ctrl+letter may arrive as the raw control code
        code = chr(ord(hotkey.key) - 96)
        if char == code:
            return True
    return char.lower() == hotkey.key
