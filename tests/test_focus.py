"""Tests for cellflow.focus -- the per-App focus order."""

from __future__ import annotations

from typing import Iterator

import pytest

from cellflow.focus import FocusManager
from cellflow.signals import Runtime


@pytest.fixture
def manager() -> Iterator[FocusManager]:
    runtime = Runtime()
    with runtime.activate():
        yield FocusManager(runtime)


def filled(manager: FocusManager, *ids: str) -> FocusManager:
    for focus_id in ids:
        manager.register(focus_id)
    return manager


class TestCycling:
    """focus_next and focus_previous walk the registration order."""

    def test_nothing_focused_initially(self, manager: FocusManager) -> None:
        filled(manager, "a", "b")
        assert manager.active_id is None

    def test_next_wraps_around(self, manager: FocusManager) -> None:
        filled(manager, "a", "b", "c")
        seen = []
        for _ in range(4):
            manager.focus_next()
            seen.append(manager.active_id)
        assert seen == ["a", "b", "c", "a"]

    def test_previous_starts_from_the_end(self, manager: FocusManager) -> None:
        filled(manager, "a", "b", "c")
        manager.focus_previous()
        assert manager.active_id == "c"
        manager.focus_previous()
        assert manager.active_id == "b"

    def test_inactive_entries_are_skipped(self, manager: FocusManager) -> None:
        filled(manager, "a", "b", "c")
        manager.set_active("b", False)
        manager.focus("a")
        manager.focus_next()
        assert manager.active_id == "c"

    def test_empty_order_is_a_no_op(self, manager: FocusManager) -> None:
        manager.focus_next()
        manager.focus_previous()
        assert manager.active_id is None


class TestRegistration:
    def test_focus_unknown_id_is_ignored(self, manager: FocusManager) -> None:
        filled(manager, "a")
        manager.focus("zzz")
        assert manager.active_id is None

    def test_unregister_focused_id_clears_focus(self, manager: FocusManager) -> None:
        filled(manager, "a", "b")
        manager.focus("b")
        manager.unregister("b")
        assert manager.active_id is None
        assert manager.order == ("a",)

    def test_register_twice_keeps_one_entry(self, manager: FocusManager) -> None:
        filled(manager, "a", "a")
        assert len(manager) == 1

    def test_blur(self, manager: FocusManager) -> None:
        filled(manager, "a")
        manager.focus("a")
        manager.blur()
        assert manager.active_id is None
        assert not manager.is_focused("a")
