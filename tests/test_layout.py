"""Tests for cellflow.layout -- flexbox layout on the character grid."""

from __future__ import annotations

from cellflow.layout import (
    LayoutBox,
    Rect,
    distribute,
    height_for_width,
    layout,
    natural_width,
)
from cellflow.nodes import Box, Fragment, Spacer, Text


def xs(box: LayoutBox) -> list[int]:
    return [child.x for child in box.children]


def widths(box: LayoutBox) -> list[int]:
    return [child.width for child in box.children]


# ---------------------------------------------------------------------------
# Largest-remainder distribution
# ---------------------------------------------------------------------------


class TestDistribute:
    """Integer shares always sum to the total."""

    def test_equal_weights_favour_earlier_items(self) -> None:
        assert distribute(10, [1, 1, 1]) == [4, 3, 3]

    def test_largest_remainder_wins(self) -> None:
        assert distribute(10, [1, 2, 3]) == [2, 3, 5]

    def test_zero_weights_get_nothing(self) -> None:
        assert distribute(5, [0, 0]) == [0, 0]

    def test_nothing_to_split(self) -> None:
        assert distribute(0, [1, 1]) == [0, 0]
        assert distribute(4, []) == []

    def test_shares_sum_to_total(self) -> None:
        for total in range(0, 30):
            assert sum(distribute(total, [1, 3, 7, 2])) == total


# ---------------------------------------------------------------------------
# Measurement
# ---------------------------------------------------------------------------


class TestMeasurement:
    def test_row_natural_width_sums_children_and_gaps(self) -> None:
        row = Box("abc", "de", flex_direction="row", gap=1)
        assert natural_width(row, None) == 6

    def test_column_natural_width_is_widest_child(self) -> None:
        assert natural_width(Box("abc", "abcdef"), None) == 6

    def test_natural_width_includes_padding_and_border(self) -> None:
        box = Box("ab", padding_x=1, border_style="single")
        assert natural_width(box, None) == 6

    def test_text_height_follows_wrapping(self) -> None:
        assert height_for_width(Text("hello world"), 5) == 2
        assert height_for_width(Text("hello world"), 20) == 1

    def test_hidden_box_measures_zero(self) -> None:
        hidden = Box("abc", display="none")
        assert natural_width(hidden, None) == 0
        assert height_for_width(hidden, 10) == 0


# ---------------------------------------------------------------------------
# Main axis
# ---------------------------------------------------------------------------


class TestFlexGrowShrink:
    """Free space is split by grow factors, overflow by shrink * basis."""

    def test_equal_grow_splits_with_remainder_first(self) -> None:
        root = layout(
            Box(Box(flex_grow=1), Box(flex_grow=1), flex_direction="row"), 11
        )
        assert widths(root) == [6, 5]
        assert xs(root) == [0, 6]

    def test_weighted_grow(self) -> None:
        root = layout(
            Box(
                Box(flex_grow=1),
                Box(flex_grow=2),
                Box(flex_grow=3),
                flex_direction="row",
            ),
            10,
        )
        assert widths(root) == [2, 3, 5]

    def test_shrink_in_proportion_to_basis(self) -> None:
        root = layout(Box(Box(width=8), Box(width=8), flex_direction="row"), 10)
        assert widths(root) == [5, 5]

    def test_shrink_respects_min_width_and_clips_overflow(self) -> None:
        root = layout(
            Box(Box(width=8, min_width=7), Box(width=8), flex_direction="row"), 10
        )
        assert widths(root) == [7, 3]
        assert xs(root) == [0, 7]

    def test_flex_shrink_zero_keeps_basis(self) -> None:
        root = layout(
            Box(Box(width=8, flex_shrink=0), Box(width=8), flex_direction="row"), 10
        )
        assert widths(root) == [8, 2]

    def test_spacer_pushes_siblings_apart(self) -> None:
        root = layout(Box("a", Spacer(), "b", flex_direction="row"), 5)
        assert xs(root) == [0, 1, 4]
        assert widths(root) == [1, 3, 1]

    def test_grow_child_takes_exactly_the_space_left(self) -> None:
        root = layout(
            Box(Box(width=10), Text("x" * 50, flex_grow=1), flex_direction="row"), 40
        )
        assert widths(root) == [10, 30]

    def test_wide_grow_child_does_not_shrink_fixed_siblings(self) -> None:
        root = layout(
            Box(
                Box(width=4),
                Box(width=6),
                Box(Text("y" * 80), flex_grow=1),
                flex_direction="row",
            ),
            40,
        )
        assert widths(root) == [4, 6, 30]
        assert xs(root) == [0, 4, 10]

    def test_percentage_width(self) -> None:
        root = layout(Box(Box(width="50%"), flex_direction="row"), 20)
        assert widths(root) == [10]

    def test_flex_basis(self) -> None:
        root = layout(Box(Box(flex_basis=4), "ab", flex_direction="row"), 20)
        assert widths(root) == [4, 2]


class TestJustifyContent:
    """Leftover main-axis space is placed per ``justify_content``."""

    def test_center(self) -> None:
        root = layout(Box("ab", flex_direction="row", justify_content="center"), 10)
        assert xs(root) == [4]

    def test_flex_end(self) -> None:
        root = layout(Box("ab", flex_direction="row", justify_content="flex-end"), 10)
        assert xs(root) == [8]

    def test_space_between(self) -> None:
        root = layout(
            Box("a", "a", "a", flex_direction="row", justify_content="space-between"), 7
        )
        assert xs(root) == [0, 3, 6]

    def test_space_evenly(self) -> None:
        root = layout(
            Box("a", "a", flex_direction="row", justify_content="space-evenly"), 7
        )
        assert xs(root) == [2, 5]

    def test_unknown_mode_falls_back_to_start(self) -> None:
        root = layout(Box("a", flex_direction="row", justify_content="sideways"), 7)
        assert xs(root) == [0]

    def test_gap(self) -> None:
        root = layout(Box("a", "b", flex_direction="row", gap=2), 10)
        assert xs(root) == [0, 3]

    def test_row_reverse_mirrors_positions(self) -> None:
        root = layout(Box("a", "b", flex_direction="row-reverse"), 5)
        assert xs(root) == [4, 3]


# ---------------------------------------------------------------------------
# Cross axis
# ---------------------------------------------------------------------------


class TestCrossAxis:
    def test_column_children_stretch_to_width(self) -> None:
        root = layout(Box("a", "bb"), 10)
        assert widths(root) == [10, 10]
        assert [child.y for child in root.children] == [0, 1]

    def test_align_items_center(self) -> None:
        root = layout(
            Box(Text("a"), flex_direction="row", height=5, align_items="center"), 10
        )
        assert root.children[0].y == 2
        assert root.children[0].height == 1

    def test_align_self_overrides_align_items(self) -> None:
        root = layout(
            Box(
                Text("a"),
                Text("b", align_self="flex-end"),
                flex_direction="row",
                height=4,
                align_items="flex-start",
            ),
            10,
        )
        assert [child.y for child in root.children] == [0, 3]

    def test_row_children_stretch_to_line_height(self) -> None:
        root = layout(Box(Text("a"), Text("b\nc"), flex_direction="row"), 10)
        assert root.height == 2
        assert [child.height for child in root.children] == [2, 2]

    def test_text_wraps_at_its_final_width(self) -> None:
        root = layout(Box(Text("hello world")), 5)
        assert root.height == 2
        assert root.children[0].lines == ("hello", "world")


# ---------------------------------------------------------------------------
# Box model
# ---------------------------------------------------------------------------


class TestBoxModel:
    def test_padding_and_border_shrink_content(self) -> None:
        root = layout(Box("x", padding=1, border_style="single"), 10)
        assert root.height == 5
        assert root.content == Rect(2, 2, 6, 1)
        child = root.children[0]
        assert (child.x, child.y, child.width, child.height) == (2, 2, 6, 1)

    def test_margins_offset_child(self) -> None:
        root = layout(Box(Text("x", margin_left=2, margin_top=1)), 10)
        child = root.children[0]
        assert (child.x, child.y, child.width) == (2, 1, 8)
        assert root.height == 2

    def test_display_none_takes_no_space(self) -> None:
        root = layout(Box("a", Box("b", display="none"), "c"), 10)
        hidden = root.children[1]
        assert (hidden.width, hidden.height) == (0, 0)
        assert root.children[2].y == 1

    def test_children_clipped_to_content_box(self) -> None:
        root = layout(Box(Box(width=20)), 10)
        assert root.children[0].width == 10

    def test_percentage_height_of_unbounded_parent_is_ignored(self) -> None:
        root = layout(Box(Box(height="50%")), 20)
        assert root.children[0].height == 0

    def test_truncated_text(self) -> None:
        root = layout(Text("hello world", wrap="truncate"), 8)
        assert root.lines == ("hello w…",)


# ---------------------------------------------------------------------------
# Root sizing
# ---------------------------------------------------------------------------


class TestRoot:
    def test_root_fills_viewport_width(self) -> None:
        assert layout(Box("a"), 30).width == 30

    def test_explicit_root_width(self) -> None:
        assert layout(Box(width=4), 30).width == 4

    def test_root_height_clamped_to_viewport(self) -> None:
        root = layout(Box(*["x"] * 5), 10, 3)
        assert root.height == 3

    def test_fragment_root_is_a_column(self) -> None:
        root = layout(Fragment("a", "b"), 5)
        assert [child.y for child in root.children] == [0, 1]

    def test_negative_viewport_clamped(self) -> None:
        root = layout(Text("a"), -3)
        assert root.width == 0

    def test_walk_is_depth_first(self) -> None:
        inner = Box("b")
        root = layout(Box("a", inner), 5)
        nodes = [box.node for box in root.walk()]
        assert len(nodes) == 4
        assert nodes[2] == inner


class TestRect:
    def test_contains_is_half_open(self) -> None:
        rect = Rect(1, 1, 2, 2)
        assert rect.contains(1, 1)
        assert rect.contains(2, 2)
        assert not rect.contains(3, 1)

    def test_intersect(self) -> None:
        assert Rect(0, 0, 4, 4).intersect(Rect(2, 2, 4, 4)) == Rect(2, 2, 2, 2)
        assert Rect(0, 0, 1, 1).intersect(Rect(5, 5, 1, 1)).width == 0
