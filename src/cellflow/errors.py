"""Exceptions raised by the reactive runtime.

Layout and style problems never surface here: they degrade to a safe default
instead.  Only usage bugs and runaway update loops are raised.
"""

from __future__ import annotations


class CellflowError(Exception):
    """Base class for every error raised by cellflow."""


class TooManyUpdatesError(CellflowError):
    """An effect kept re-triggering itself past the update-depth cap."""

    def __init__(self, depth: int) -> None:
        super().__init__(
            f"too many updates: flush did not settle after {depth} passes "
            "(an effect is probably writing a signal it also reads)"
        )
        self.depth = depth


class HookOrderError(CellflowError):
    """A component consumed a different hook sequence than last render."""


class InvalidHookCallError(HookOrderError):
    """A hook was called while no component was rendering."""


class DisposedError(CellflowError):
    """A disposed signal, memo or effect was used."""
