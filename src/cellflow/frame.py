"""Cell grids: the mutable ``Canvas`` paint target and the immutable ``Frame``."""

from __future__ import annotations

from typing import Iterator, NamedTuple, Optional

from cellflow.layout import Rect
from cellflow.styles import DEFAULT_STYLE, Color, Style, sgr
from cellflow.utils import clusters


class Cell(NamedTuple):
    """One terminal cell.  A wide glyph's second column holds ``char=""``."""

    char: str = " "
    style: Style = DEFAULT_STYLE

    @property
    def is_continuation(self) -> bool:
        return self.char == ""


BLANK = Cell()


class Frame:
    """An immutable ``height x width`` grid of cells."""

    __slots__ = ("width", "height", "rows")

    def __init__(self, width: int, height: int, rows: tuple[tuple[Cell, ...], ...]) -> None:
        self.width = width
        self.height = height
        self.rows = rows

    @classmethod
    def blank(cls, width: int, height: int) -> Frame:
        row = (BLANK,) * width
        return cls(width, height, (row,) * height)

    def cell(self, x: int, y: int) -> Cell:
        return self.rows[y][x]

    def __iter__(self) -> Iterator[tuple[Cell, ...]]:
        return iter(self.rows)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Frame):
            return NotImplemented
        return (
            self.width == other.width
            and self.height == other.height
            and self.rows == other.rows
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Frame({self.width}x{self.height})"

    def to_lines(self, styled: bool = False) -> list[str]:
        """Render each row, with trailing blank cells dropped."""
        lines = []
        for row in self.rows:
            end = len(row)
            while end > 0 and row[end - 1] == BLANK:
                end -= 1
            if not styled:
                lines.append("".join(cell.char for cell in row[:end]))
                continue
            parts: list[str] = []
            current = DEFAULT_STYLE
            for cell in row[:end]:
                if cell.style != current:
                    parts.append(sgr(cell.style))
                    current = cell.style
                parts.append(cell.char)
            if current != DEFAULT_STYLE:
                parts.append("\x1b[0m")
            lines.append("".join(parts))
        return lines

    def to_string(self, styled: bool = False) -> str:
        """Join the rows with newlines, dropping trailing blank lines."""
        lines = self.to_lines(styled)
        while lines and not lines[-1]:
            lines.pop()
        return "\n".join(lines)


class Canvas:
    """Mutable cell grid that painting writes into.

    Every write is clipped to the canvas and to an optional clip rect.  Wide
    glyphs are kept whole: one that does not fit is not drawn, and
    overwriting half of an existing wide glyph blanks its other half.
    """

    def __init__(self, width: int, height: int) -> None:
        self.width = max(0, width)
        self.height = max(0, height)
        self._rows = [[BLANK] * self.width for _ in range(self.height)]

    @property
    def bounds(self) -> Rect:
        return Rect(0, 0, self.width, self.height)

    def get(self, x: int, y: int) -> Cell:
        return self._rows[y][x]

    def _put(self, x: int, y: int, cell: Cell) -> None:
        row = self._rows[y]
        old = row[x]
        if old.char == "" and x > 0 and cell.char != "":
            lead = row[x - 1]
            row[x - 1] = Cell(" ", lead.style)
        if x + 1 < self.width and row[x + 1].char == "" and old.char != "":
            follower = row[x + 1]
            row[x + 1] = Cell(" ", follower.style)
        row[x] = cell

    def fill(self, rect: Rect, bg: Optional[Color], clip: Optional[Rect] = None) -> None:
        area = rect.intersect(self.bounds)
        if clip is not None:
            area = area.intersect(clip)
        cell = Cell(" ", Style(bg=bg))
        for y in range(area.y, area.bottom):
            for x in range(area.x, area.right):
                self._put(x, y, cell)

    def write(
        self,
        x: int,
        y: int,
        text: str,
        style: Style = DEFAULT_STYLE,
        clip: Optional[Rect] = None,
    ) -> int:
        """Write *text* at ``(x, y)`` and return the column after the last glyph.

        Cells keep their existing background when *style* has none.
        """
        area = self.bounds if clip is None else self.bounds.intersect(clip)
        if not (area.y <= y < area.bottom):
            return x
        col = x
        for glyph, width in clusters(text):
            if width == 0:
                continue
            if col + width > area.right:
                break
            if col >= area.x:
                self._write_glyph(col, y, glyph, width, style)
            col += width
        return col

    def _write_glyph(self, x: int, y: int, glyph: str, width: int, style: Style) -> None:
        under = self._rows[y][x]
        cell_style = style if style.bg is not None else style.with_bg(under.style.bg)
        self._put(x, y, Cell(glyph, cell_style))
        if width == 2:
            self._put(x + 1, y, Cell("", cell_style))

    def to_frame(self) -> Frame:
        return Frame(self.width, self.height, tuple(tuple(row) for row in self._rows))
