"""Keyboard focus shared by the components of one App.

Focusable components register an id in mount order.  The focused id lives
in a signal, so a component that asks whether it is focused re-renders when
focus moves.  Inactive entries keep their place in the order but are
skipped when cycling.
"""

from __future__ import annotations

import logging
from typing import Optional

from cellflow.context import Context, create_context
from cellflow.signals import Runtime, Signal

logger = logging.getLogger(__name__)


class FocusManager:
    def __init__(self, runtime: Runtime) -> None:
        self._order: list[str] = []
        self._active: dict[str, bool] = {}
        with runtime.detached():
            self._focused: Signal[Optional[str]] = runtime.signal(None)

    def __len__(self) -> int:
        return len(self._order)

    @property
    def order(self) -> tuple[str, ...]:
        return tuple(self._order)

    @property
    def active_id(self) -> Optional[str]:
        """The focused id.  Reading it inside a render or effect subscribes."""
        return self._focused.get()

    def is_focused(self, focus_id: str) -> bool:
        return self._focused.get() == focus_id

    def register(self, focus_id: str, is_active: bool = True) -> None:
        if focus_id in self._active:
            logger.debug("Focus id %r registered twice", focus_id)
            return
        self._order.append(focus_id)
        self._active[focus_id] = is_active

    def unregister(self, focus_id: str) -> None:
        if focus_id not in self._active:
            return
        del self._active[focus_id]
        self._order.remove(focus_id)
        if self._focused.peek() == focus_id:
            self._focused.set(None)

    def set_active(self, focus_id: str, is_active: bool) -> None:
        if focus_id in self._active:
            self._active[focus_id] = is_active

    def focus(self, focus_id: str) -> None:
        if focus_id in self._active:
            self._focused.set(focus_id)
        else:
            logger.debug("Cannot focus unknown id %r", focus_id)

    def blur(self) -> None:
        self._focused.set(None)

    def focus_next(self) -> None:
        self._step(1)

    def focus_previous(self) -> None:
        self._step(-1)

    def _step(self, delta: int) -> None:
        candidates = [i for i in self._order if self._active[i]]
        if not candidates:
            return
        current = self._focused.peek()
        if current in candidates:
            index = (candidates.index(current) + delta) % len(candidates)
        else:
            index = 0 if delta > 0 else len(candidates) - 1
        self._focused.set(candidates[index])


# Provided by the running App
FOCUS_CONTEXT: Context[Optional[FocusManager]] = create_context(None, "Focus")
