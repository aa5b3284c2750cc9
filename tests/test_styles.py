"""Tests for cellflow.styles -- colour parsing, SGR encoding and borders."""

from __future__ import annotations

from cellflow.styles import (
    Attr,
    Color,
    Style,
    border_chars,
    has_border,
    parse_color,
    sgr,
    text_style,
)


# ---------------------------------------------------------------------------
# parse_color
# ---------------------------------------------------------------------------


class TestParseColor:
    """Turn colour tokens into ``Color`` values."""

    def test_named_color(self) -> None:
        assert parse_color("red") == Color("named", (1,))

    def test_bright_named_color_both_spellings(self) -> None:
        assert parse_color("cyanBright") == Color("named", (14,))
        assert parse_color("cyan_bright") == Color("named", (14,))

    def test_short_hex(self) -> None:
        assert parse_color("#f00") == Color("rgb", (255, 0, 0))

    def test_long_hex(self) -> None:
        assert parse_color("#102030") == Color("rgb", (16, 32, 48))

    def test_rgb_function(self) -> None:
        assert parse_color("rgb(1, 2, 3)") == Color("rgb", (1, 2, 3))

    def test_ansi256_function_and_int(self) -> None:
        assert parse_color("ansi256(200)") == Color("ansi256", (200,))
        assert parse_color(42) == Color("ansi256", (42,))

    def test_rgb_tuple(self) -> None:
        assert parse_color((9, 8, 7)) == Color("rgb", (9, 8, 7))

    def test_unknown_token_is_default(self) -> None:
        assert parse_color("not-a-colour") is None
        assert parse_color("rgb(300, 0, 0)") is None
        assert parse_color(None) is None

    def test_bool_is_not_an_index(self) -> None:
        assert parse_color(True) is None


# ---------------------------------------------------------------------------
# SGR
# ---------------------------------------------------------------------------


class TestSgr:
    """Encode styles as self-contained escape sequences."""

    def test_default_style_is_plain_reset(self) -> None:
        assert sgr(Style()) == "\x1b[0m"

    def test_bold_red(self) -> None:
        style = Style(fg=parse_color("red"), attrs=Attr.BOLD)
        assert sgr(style) == "\x1b[0;1;31m"

    def test_bright_background(self) -> None:
        style = Style(bg=parse_color("blueBright"))
        assert sgr(style) == "\x1b[0;104m"

    def test_truecolor_foreground(self) -> None:
        style = Style(fg=parse_color("#ff8000"))
        assert sgr(style) == "\x1b[0;38;2;255;128;0m"

    def test_ansi256_background(self) -> None:
        style = Style(bg=parse_color(17))
        assert sgr(style) == "\x1b[0;48;5;17m"


class TestTextStyle:
    def test_collects_attribute_props(self) -> None:
        style = text_style({"bold": True, "underline": True, "color": "green"})
        assert style.attrs == Attr.BOLD | Attr.UNDERLINE
        assert style.fg == Color("named", (2,))
        assert style.bg is None

    def test_empty_props_is_default(self) -> None:
        assert text_style({}).is_default


# ---------------------------------------------------------------------------
# Borders
# ---------------------------------------------------------------------------


class TestBorders:
    def test_none_and_missing_mean_no_border(self) -> None:
        assert not has_border({})
        assert not has_border({"border_style": "none"})
        assert has_border({"border_style": "round"})

    def test_known_style_glyphs(self) -> None:
        chars = border_chars("double")
        assert chars.top_left == "╔"
        assert chars.bottom == "═"

    def test_unknown_style_falls_back_to_single(self) -> None:
        assert border_chars("wavy") == border_chars("single")
