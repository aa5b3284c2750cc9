"""Cell styles: colour tokens, attribute bits, SGR encoding and border glyphs."""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Mapping, NamedTuple

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Colours
# ---------------------------------------------------------------------------

_NAMED_COLORS: dict[str, int] = {
    "black": 0,
    "red": 1,
    "green": 2,
    "yellow": 3,
    "blue": 4,
    "magenta": 5,
    "cyan": 6,
    "white": 7,
    "gray": 8,
    "grey": 8,
    "blackBright": 8,
    "redBright": 9,
    "greenBright": 10,
    "yellowBright": 11,
    "blueBright": 12,
    "magentaBright": 13,
    "cyanBright": 14,
    "whiteBright": 15,
}

_HEX_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
_RGB_RE = re.compile(r"^rgb\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*\)$")
_ANSI256_RE = re.compile(r"^ansi256\(\s*(\d{1,3})\s*\)$")


class Color(NamedTuple):
    """A parsed colour: ``kind`` is ``"named"``, ``"ansi256"`` or ``"rgb"``."""

    kind: str
    value: tuple[int, ...]

    def sgr(self, background: bool) -> str:
        if self.kind == "named":
            n = self.value[0]
            base = 40 if background else 30
            if n < 8:
                return str(base + n)
            return str(base + 60 + (n - 8))
        if self.kind == "ansi256":
            return f"{48 if background else 38};5;{self.value[0]}"
        r, g, b = self.value
        return f"{48 if background else 38};2;{r};{g};{b}"


def _snake_to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


@lru_cache(maxsize=256)
def _parse_color_token(token: str) -> Color | None:
    name = _snake_to_camel(token.strip())
    if name in _NAMED_COLORS:
        return Color("named", (_NAMED_COLORS[name],))
    if _HEX_RE.match(token):
        hex_part = token[1:]
        if len(hex_part) == 3:
            hex_part = "".join(ch * 2 for ch in hex_part)
        return Color("rgb", tuple(int(hex_part[i : i + 2], 16) for i in (0, 2, 4)))
    m = _RGB_RE.match(token)
    if m:
        channels = tuple(int(c) for c in m.groups())
        if all(c <= 255 for c in channels):
            return Color("rgb", channels)
    m = _ANSI256_RE.match(token)
    if m and int(m.group(1)) <= 255:
        return Color("ansi256", (int(m.group(1)),))
    return None


def parse_color(value: Any) -> Color | None:
    """Parse a colour token, returning ``None`` (default colour) if unknown.

    Accepted forms: a named colour (``"red"``, ``"cyanBright"`` or
    ``"cyan_bright"``), ``"#rgb"``/``"#rrggbb"``, ``"rgb(r, g, b)"``,
    ``"ansi256(n)"``, an ``int`` 0-255, or an ``(r, g, b)`` tuple.
    """
    if value is None or value == "":
        return None
    if isinstance(value, Color):
        return value
    if isinstance(value, bool):
        logger.debug("Ignoring boolean colour token %r", value)
        return None
    if isinstance(value, int):
        if 0 <= value <= 255:
            return Color("ansi256", (value,))
    elif isinstance(value, tuple) and len(value) == 3:
        if all(isinstance(c, int) and 0 <= c <= 255 for c in value):
            return Color("rgb", value)
    elif isinstance(value, str):
        color = _parse_color_token(value)
        if color is not None:
            return color
    logger.debug("Unknown colour token %r, using default colour", value)
    return None


# ---------------------------------------------------------------------------
# Attributes / Style
# ---------------------------------------------------------------------------


class Attr(enum.IntFlag):
    NONE = 0
    BOLD = 1
    DIM = 2
    ITALIC = 4
    UNDERLINE = 8
    BLINK = 16
    INVERSE = 32
    HIDDEN = 64
    STRIKETHROUGH = 128


_ATTR_SGR: tuple[tuple[Attr, str], ...] = (
    (Attr.BOLD, "1"),
    (Attr.DIM, "2"),
    (Attr.ITALIC, "3"),
    (Attr.UNDERLINE, "4"),
    (Attr.BLINK, "5"),
    (Attr.INVERSE, "7"),
    (Attr.HIDDEN, "8"),
    (Attr.STRIKETHROUGH, "9"),
)

_ATTR_PROPS: tuple[tuple[str, Attr], ...] = (
    ("bold", Attr.BOLD),
    ("dim", Attr.DIM),
    ("italic", Attr.ITALIC),
    ("underline", Attr.UNDERLINE),
    ("blink", Attr.BLINK),
    ("inverse", Attr.INVERSE),
    ("hidden", Attr.HIDDEN),
    ("strikethrough", Attr.STRIKETHROUGH),
)


@dataclass(frozen=True)
class Style:
    fg: Color | None = None
    bg: Color | None = None
    attrs: Attr = Attr.NONE

    @property
    def is_default(self) -> bool:
        return self.fg is None and self.bg is None and not self.attrs

    def with_bg(self, bg: Color | None) -> Style:
        return Style(self.fg, bg, self.attrs)

    def sgr_params(self) -> list[str]:
        params = [code for flag, code in _ATTR_SGR if self.attrs & flag]
        if self.fg is not None:
            params.append(self.fg.sgr(background=False))
        if self.bg is not None:
            params.append(self.bg.sgr(background=True))
        return params


DEFAULT_STYLE = Style()


def sgr(style: Style) -> str:
    """Return the escape sequence that switches the terminal to *style*.

    The sequence always starts with a reset so it does not depend on
    whatever style was active before.
    """
    params = style.sgr_params()
    if not params:
        return "\x1b[0m"
    return "\x1b[0;" + ";".join(params) + "m"


def text_style(props: Mapping[str, Any]) -> Style:
    """Build the ``Style`` for a Text node from its props."""
    attrs = Attr.NONE
    for prop, flag in _ATTR_PROPS:
        if props.get(prop):
            attrs |= flag
    return Style(
        fg=parse_color(props.get("color")),
        bg=parse_color(props.get("background_color")),
        attrs=attrs,
    )


# ---------------------------------------------------------------------------
# Borders
# ---------------------------------------------------------------------------


class BorderChars(NamedTuple):
    top_left: str
    top: str
    top_right: str
    right: str
    bottom_right: str
    bottom: str
    bottom_left: str
    left: str


BORDER_STYLES: dict[str, BorderChars] = {
    "single": BorderChars("┌", "─", "┐", "│", "┘", "─", "└", "│"),
    "double": BorderChars("╔", "═", "╗", "║", "╝", "═", "╚", "║"),
    "round": BorderChars("╭", "─", "╮", "│", "╯", "─", "╰", "│"),
    "bold": BorderChars("┏", "━", "┓", "┃", "┛", "━", "┗", "┃"),
    "heavy": BorderChars("┏", "━", "┓", "┃", "┛", "━", "┗", "┃"),
    "classic": BorderChars("+", "-", "+", "|", "+", "-", "+", "|"),
    "dashed": BorderChars("┌", "╌", "┐", "╎", "┘", "╌", "└", "╎"),
}


def has_border(props: Mapping[str, Any]) -> bool:
    style = props.get("border_style")
    return bool(style) and style != "none"


def border_chars(name: str) -> BorderChars:
    """Return the glyph set for *name*, falling back to ``single``."""
    chars = BORDER_STYLES.get(name)
    if chars is None:
        logger.debug("Unknown border style %r, using 'single'", name)
        return BORDER_STYLES["single"]
    return chars
