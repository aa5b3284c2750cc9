"""Frame diffing and terminal encoding.

``diff`` compares two frames cell by cell and returns the minimal list of
write operations; ``encode_ops`` turns those into escape sequences.  The
``Differ`` holds the one previous frame between renders.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from cellflow.frame import BLANK, Cell, Frame
from cellflow.styles import sgr

CLEAR_SCREEN = "\x1b[0m\x1b[2J\x1b[H"
RESET = "\x1b[0m"


@dataclass(frozen=True)
class ClearScreen:
    pass


@dataclass(frozen=True)
class WriteRun:
    """Cells to write on row ``y`` starting at column ``x``."""

    x: int
    y: int
    cells: tuple[Cell, ...]


Op = Union[ClearScreen, WriteRun]


# ---------------------------------------------------------------------------
# Diffing
# ---------------------------------------------------------------------------


def _spans(columns: list[int], max_gap: int) -> list[list[int]]:
    """Group sorted column indices into ``[start, end]`` spans.

    Indices separated by at most *max_gap* untouched columns share a span.
    """
    spans: list[list[int]] = []
    for col in columns:
        if spans and col - spans[-1][1] - 1 <= max_gap:
            spans[-1][1] = col
        else:
            spans.append([col, col])
    return spans


def _widen(row: tuple[Cell, ...], spans: list[list[int]]) -> list[list[int]]:
    """Grow spans so no wide glyph is split, merging spans that then touch."""
    out: list[list[int]] = []
    last = len(row) - 1
    for start, end in spans:
        if row[start].char == "" and start > 0:
            start -= 1
        if end < last and row[end + 1].char == "":
            end += 1
        if out and start <= out[-1][1] + 1:
            out[-1][1] = max(out[-1][1], end)
        else:
            out.append([start, end])
    return out


def _runs(y: int, row: tuple[Cell, ...], columns: list[int], max_gap: int) -> list[WriteRun]:
    return [
        WriteRun(start, y, row[start : end + 1])
        for start, end in _widen(row, _spans(columns, max_gap))
    ]


def diff(previous: Optional[Frame], next: Frame, *, max_gap: int = 0) -> list[Op]:
    """Return the operations that turn the screen showing *previous* into *next*.

    Without a previous frame of the same size this is a full bootstrap: a
    ``ClearScreen`` followed by runs for every non-blank cell.
    """
    max_gap = max(0, max_gap)
    if previous is None or previous.width != next.width or previous.height != next.height:
        ops: list[Op] = [ClearScreen()]
        for y, row in enumerate(next.rows):
            columns = [x for x, cell in enumerate(row) if cell != BLANK]
            ops.extend(_runs(y, row, columns, max_gap))
        return ops

    ops = []
    for y, (old_row, row) in enumerate(zip(previous.rows, next.rows)):
        if old_row == row:
            continue
        columns = [x for x, (old, new) in enumerate(zip(old_row, row)) if old != new]
        ops.extend(_runs(y, row, columns, max_gap))
    return ops


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def encode_ops(ops: list[Op]) -> str:
    """Encode *ops* as cursor moves, SGR switches and glyphs."""
    out: list[str] = []
    wrote = False
    for op in ops:
        if isinstance(op, ClearScreen):
            out.append(CLEAR_SCREEN)
            continue
        out.append(f"\x1b[{op.y + 1};{op.x + 1}H")
        current = None
        for cell in op.cells:
            if cell.char == "":
                continue
            if cell.style != current:
                out.append(sgr(cell.style))
                current = cell.style
            out.append(cell.char)
        wrote = True
    if wrote:
        out.append(RESET)
    return "".join(out)


# ---------------------------------------------------------------------------
# Differ
# ---------------------------------------------------------------------------


@dataclass
class DiffStats:
    frames: int = 0
    full_redraws: int = 0
    last_op_count: int = 0
    last_cell_count: int = 0


class Differ:
    """Diffs each new frame against the last one it rendered."""

    def __init__(self, max_gap: int = 0) -> None:
        self.max_gap = max_gap
        self._previous: Optional[Frame] = None
        self.stats = DiffStats()

    @property
    def has_previous(self) -> bool:
        return self._previous is not None

    def diff(self, frame: Frame) -> list[Op]:
        """Compute ops for *frame* and make it the new previous frame."""
        ops = diff(self._previous, frame, max_gap=self.max_gap)
        self._previous = frame
        self.stats.frames += 1
        if ops and isinstance(ops[0], ClearScreen):
            self.stats.full_redraws += 1
        self.stats.last_op_count = len(ops)
        self.stats.last_cell_count = sum(
            len(op.cells) for op in ops if isinstance(op, WriteRun)
        )
        return ops

    def render(self, frame: Frame) -> str:
        return encode_ops(self.diff(frame))

    def reset(self) -> None:
        """Forget the previous frame so the next render is a full redraw."""
        self._previous = None
