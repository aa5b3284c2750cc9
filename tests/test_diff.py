"""Tests for cellflow.diff -- frame diffing and escape encoding."""

from __future__ import annotations

from cellflow.diff import CLEAR_SCREEN, ClearScreen, Differ, WriteRun, diff, encode_ops
from cellflow.frame import BLANK, Canvas, Cell, Frame
from cellflow.styles import Attr, Style, parse_color


def frame_of(*lines: str, width: int = 6) -> Frame:
    canvas = Canvas(width, len(lines))
    for y, line in enumerate(lines):
        canvas.write(0, y, line)
    return canvas.to_frame()


def cells(text: str, style: Style = Style()) -> tuple[Cell, ...]:
    return tuple(Cell(ch, style) for ch in text)


# ---------------------------------------------------------------------------
# diff
# ---------------------------------------------------------------------------


class TestDiff:
    """Only changed cells are written."""

    def test_bootstrap_clears_and_writes_non_blank_cells(self) -> None:
        canvas = Canvas(4, 2)
        canvas.write(0, 0, "ab")
        canvas.write(1, 1, "c")
        assert diff(None, canvas.to_frame()) == [
            ClearScreen(),
            WriteRun(0, 0, cells("ab")),
            WriteRun(1, 1, cells("c")),
        ]

    def test_identical_frames_produce_no_ops(self) -> None:
        assert diff(frame_of("hello"), frame_of("hello")) == []

    def test_single_changed_cell(self) -> None:
        assert diff(frame_of("abc"), frame_of("abd")) == [WriteRun(2, 0, cells("d"))]

    def test_changes_confined_to_changed_rows(self) -> None:
        ops = diff(frame_of("one", "two"), frame_of("one", "tWo"))
        assert ops == [WriteRun(1, 1, cells("W"))]

    def test_separate_changes_make_separate_runs(self) -> None:
        ops = diff(frame_of("abcd"), frame_of("xbcy"))
        assert ops == [WriteRun(0, 0, cells("x")), WriteRun(3, 0, cells("y"))]

    def test_max_gap_coalesces_nearby_changes(self) -> None:
        ops = diff(frame_of("abcd"), frame_of("xbcy"), max_gap=2)
        assert ops == [WriteRun(0, 0, cells("xbcy"))]

    def test_size_change_forces_full_redraw(self) -> None:
        ops = diff(frame_of("ab", width=4), frame_of("ab", width=5))
        assert isinstance(ops[0], ClearScreen)

    def test_erased_cells_are_written_as_blanks(self) -> None:
        ops = diff(frame_of("abc"), frame_of("a"))
        assert ops == [WriteRun(1, 0, (BLANK, BLANK))]

    def test_run_widened_to_include_continuation(self) -> None:
        red = Style(fg=parse_color("red"))
        previous = Frame(3, 1, ((Cell("日"), Cell(""), BLANK),))
        current = Frame(3, 1, ((Cell("日", red), Cell(""), BLANK),))
        assert diff(previous, current) == [
            WriteRun(0, 0, (Cell("日", red), Cell(""))),
        ]

    def test_run_starting_on_continuation_moves_to_lead(self) -> None:
        red = Style(fg=parse_color("red"))
        previous = Frame(3, 1, ((Cell("日"), Cell(""), BLANK),))
        current = Frame(3, 1, ((Cell("日"), Cell("", red), BLANK),))
        [run] = diff(previous, current)
        assert run.x == 0
        assert len(run.cells) == 2


# ---------------------------------------------------------------------------
# encode_ops
# ---------------------------------------------------------------------------


class TestEncodeOps:
    """Runs become cursor moves plus SGR switches, ending with a reset."""

    def test_no_ops_encode_to_nothing(self) -> None:
        assert encode_ops([]) == ""

    def test_single_run(self) -> None:
        assert encode_ops([WriteRun(2, 0, cells("d"))]) == "\x1b[1;3H\x1b[0md\x1b[0m"

    def test_clear_screen_alone_has_no_trailing_reset(self) -> None:
        assert encode_ops([ClearScreen()]) == CLEAR_SCREEN

    def test_style_switches_only_on_change(self) -> None:
        bold = Style(attrs=Attr.BOLD)
        run = WriteRun(0, 0, cells("ab", bold) + cells("c"))
        assert encode_ops([run]) == "\x1b[1;1H\x1b[0;1mab\x1b[0mc\x1b[0m"

    def test_continuation_cells_are_not_emitted(self) -> None:
        run = WriteRun(0, 0, (Cell("日"), Cell("")))
        assert encode_ops([run]) == "\x1b[1;1H\x1b[0m日\x1b[0m"


# ---------------------------------------------------------------------------
# Differ
# ---------------------------------------------------------------------------


class TestDiffer:
    """The differ remembers the last frame it rendered."""

    def test_first_frame_is_a_full_redraw(self) -> None:
        differ = Differ()
        assert not differ.has_previous
        output = differ.render(frame_of("hi"))
        assert output.startswith(CLEAR_SCREEN)
        assert differ.stats.full_redraws == 1
        assert differ.has_previous

    def test_unchanged_frame_writes_nothing(self) -> None:
        differ = Differ()
        differ.render(frame_of("hi"))
        assert differ.render(frame_of("hi")) == ""
        assert differ.stats.frames == 2
        assert differ.stats.last_op_count == 0

    def test_reset_forces_full_redraw(self) -> None:
        differ = Differ()
        differ.render(frame_of("hi"))
        differ.reset()
        assert differ.render(frame_of("hi")).startswith(CLEAR_SCREEN)
        assert differ.stats.full_redraws == 2

    def test_stats_count_written_cells(self) -> None:
        differ = Differ(max_gap=1)
        differ.render(frame_of("abc"))
        differ.diff(frame_of("xbz"))
        assert differ.stats.last_op_count == 1
        assert differ.stats.last_cell_count == 3
