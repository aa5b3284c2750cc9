"""Tests for cellflow.hotkeys -- parsing and matching shortcut strings."""

from __future__ import annotations

import pytest

from cellflow.events import Key
from cellflow.hotkeys import Hotkey, matches_hotkey, parse_hotkey, parse_hotkeys


class TestParse:
    def test_modifiers_and_key(self) -> None:
        assert parse_hotkey("Ctrl+Shift+S") == Hotkey("s", ctrl=True, shift=True)

    def test_aliases(self) -> None:
        assert parse_hotkey("up").key == "up_arrow"
        assert parse_hotkey("esc").key == "escape"
        assert parse_hotkey("return").key == "enter"
        assert parse_hotkey("pgdn").key == "page_down"
        assert parse_hotkey("space").key == " "

    def test_modifier_aliases(self) -> None:
        assert parse_hotkey("cmd+k") == Hotkey("k", meta=True)
        assert parse_hotkey("option+x") == Hotkey("x", alt=True)
        assert parse_hotkey("control+c") == Hotkey("c", ctrl=True)

    def test_plus_key(self) -> None:
        assert parse_hotkey("ctrl++") == Hotkey("+", ctrl=True)

    def test_modifier_only_raises(self) -> None:
        with pytest.raises(ValueError):
            parse_hotkey("ctrl+shift")

    def test_comma_separated_and_sequence(self) -> None:
        assert parse_hotkeys("q, esc") == [Hotkey("q"), Hotkey("escape")]
        assert parse_hotkeys(["j", "down"]) == [Hotkey("j"), Hotkey("down_arrow")]

    def test_str(self) -> None:
        assert str(parse_hotkey("ctrl+shift+s")) == "Ctrl+Shift+S"
        assert str(parse_hotkey("pgup")) == "Page Up"


class TestMatch:
    """A key event matches only with exactly the binding's modifiers."""

    def test_plain_character(self) -> None:
        assert matches_hotkey("q", Key(), parse_hotkey("q"))
        assert matches_hotkey("Q", Key(), parse_hotkey("q"))
        assert not matches_hotkey("w", Key(), parse_hotkey("q"))

    def test_extra_modifier_does_not_match(self) -> None:
        assert not matches_hotkey("q", Key(ctrl=True), parse_hotkey("q"))

    def test_ctrl_letter(self) -> None:
        assert matches_hotkey("s", Key(ctrl=True), parse_hotkey("ctrl+s"))

    def test_ctrl_letter_as_control_code(self) -> None:
        assert matches_hotkey("\x13", Key(ctrl=True), parse_hotkey("ctrl+s"))

    def test_alt_matches_meta_flag(self) -> None:
        assert matches_hotkey("x", Key(meta=True), parse_hotkey("alt+x"))
        assert not matches_hotkey("x", Key(), parse_hotkey("alt+x"))

    def test_special_keys(self) -> None:
        assert matches_hotkey("", Key(up_arrow=True), parse_hotkey("up"))
        assert matches_hotkey("\r", Key(return_=True), parse_hotkey("enter"))
        assert matches_hotkey("", Key(tab=True, shift=True), parse_hotkey("shift+tab"))
        assert not matches_hotkey("", Key(down_arrow=True), parse_hotkey("up"))
