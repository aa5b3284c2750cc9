"""Flexbox-style layout on an integer character grid.

``layout(node, width, height)`` is a pure function from a node tree and a
viewport size to a tree of ``LayoutBox`` objects carrying absolute cell
geometry.  Every fractional split (grow, shrink, justify spacing) goes
through largest-remainder rounding, so integer shares always add up to the
amount being split, and every child is clipped to its parent's content box.

Sizing works per container in two steps:

1. **Main axis.**  Each child gets a base size: explicit size, then
   ``flex_basis``, then its intrinsic size.  Positive free space is handed
   out by ``flex_grow``; negative free space is taken back in proportion to
   ``flex_shrink * base``, never below ``min_*``.
2. **Cross axis.**  Explicit size, or ``stretch`` to the line, or the
   intrinsic size measured at the final main size (so text wraps at the
   width it actually got).

Bad geometry (negative sizes, unknown alignment keywords, percentages of an
unbounded extent) is clamped or ignored and logged at DEBUG; layout never
raises for it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterator, Mapping, NamedTuple, Optional

from cellflow.nodes import (
    BoxNode,
    FragmentNode,
    NewlineNode,
    Node,
    SpacerNode,
    TextNode,
)
from cellflow.styles import has_border
from cellflow.utils import fit_text, visible_width

logger = logging.getLogger(__name__)

_NO_PROPS: Mapping[str, Any] = MappingProxyType({})


# ---------------------------------------------------------------------------
# Geometry types
# ---------------------------------------------------------------------------


class Rect(NamedTuple):
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def contains(self, x: int, y: int) -> bool:
        return self.x <= x < self.right and self.y <= y < self.bottom

    def intersect(self, other: Rect) -> Rect:
        x = max(self.x, other.x)
        y = max(self.y, other.y)
        right = min(self.right, other.right)
        bottom = min(self.bottom, other.bottom)
        return Rect(x, y, max(0, right - x), max(0, bottom - y))


@dataclass(frozen=True)
class LayoutBox:
    """Absolute geometry for one node.

    ``content`` is the area inside border and padding.  Text boxes carry
    their wrapped ``lines``; other boxes carry ``children``.
    """

    node: Node
    x: int
    y: int
    width: int
    height: int
    content: Rect
    children: tuple[LayoutBox, ...] = ()
    lines: tuple[str, ...] = ()

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    def walk(self) -> Iterator[LayoutBox]:
        """Yield this box and its descendants depth-first, in paint order."""
        yield self
        for child in self.children:
            yield from child.walk()


# ---------------------------------------------------------------------------
# Prop helpers
# ---------------------------------------------------------------------------


def _props(node: Node) -> Mapping[str, Any]:
    return getattr(node, "props", _NO_PROPS)


def _dim(value: Any, parent: Optional[int]) -> Optional[int]:
    """Resolve a size prop: an ``int`` or a ``"NN%"`` of *parent*."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        size = int(value)
        if size < 0:
            logger.debug("Negative size %r clamped to 0", value)
            return 0
        return size
    if isinstance(value, str):
        text = value.strip()
        if text == "auto":
            return None
        if text.endswith("%"):
            if parent is None:
                return None
            try:
                pct = float(text[:-1])
            except ValueError:
                logger.debug("Ignoring malformed percentage %r", value)
                return None
            return max(0, int(parent * pct / 100))
    logger.debug("Ignoring unsupported size value %r", value)
    return None


def _clamp(value: int, low: int, high: Optional[int]) -> int:
    if high is not None and value > high:
        value = high
    return max(value, low, 0)


def _edge(value: Any) -> Optional[int]:
    if value is None:
        return None
    if value == "auto":
        return 0
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if value < 0:
            logger.debug("Negative spacing %r clamped to 0", value)
            return 0
        return int(value)
    logger.debug("Ignoring unsupported spacing value %r", value)
    return 0


def _edges(props: Mapping[str, Any], prefix: str) -> tuple[int, int, int, int]:
    """Return ``(top, right, bottom, left)`` for ``padding`` or ``margin``."""
    base = _edge(props.get(prefix))
    x = _edge(props.get(f"{prefix}_x"))
    y = _edge(props.get(f"{prefix}_y"))

    def side(name: str, axis: Optional[int]) -> int:
        value = _edge(props.get(f"{prefix}_{name}"))
        for candidate in (value, axis, base):
            if candidate is not None:
                return candidate
        return 0

    return side("top", y), side("right", x), side("bottom", y), side("left", x)


def _frame(props: Mapping[str, Any]) -> tuple[int, int, int, int]:
    """Border plus padding on each side, ``(top, right, bottom, left)``."""
    b = 1 if has_border(props) else 0
    top, right, bottom, left = _edges(props, "padding")
    return top + b, right + b, bottom + b, left + b


def _direction(props: Mapping[str, Any]) -> tuple[bool, bool]:
    direction = props.get("flex_direction", "column")
    if direction not in ("row", "row-reverse", "column", "column-reverse"):
        logger.debug("Unknown flex_direction %r, using 'column'", direction)
        direction = "column"
    return direction.startswith("row"), direction.endswith("-reverse")


def _gap(props: Mapping[str, Any], row: bool) -> int:
    value = props.get("column_gap" if row else "row_gap")
    if value is None:
        value = props.get("gap")
    return _edge(value) or 0


_ALIGN = {
    "flex-start": "start",
    "start": "start",
    "center": "center",
    "flex-end": "end",
    "end": "end",
    "stretch": "stretch",
}


def _align(value: Any, default: str) -> str:
    if value is None or value == "auto":
        return default
    align = _ALIGN.get(value)
    if align is None:
        logger.debug("Unknown alignment %r, using %r", value, default)
        return default
    return align


def _factor(value: Any, default: float) -> float:
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)) and value >= 0:
        return float(value)
    logger.debug("Ignoring invalid flex factor %r", value)
    return default


def _splice(children: tuple[Node, ...]) -> list[Node]:
    """Inline fragment children into their parent's child list."""
    out: list[Node] = []
    for child in children:
        if isinstance(child, FragmentNode):
            out.extend(_splice(child.children))
        else:
            out.append(child)
    return out


def _hidden(node: Node) -> bool:
    return _props(node).get("display") == "none"


# ---------------------------------------------------------------------------
# Largest-remainder distribution
# ---------------------------------------------------------------------------


def distribute(total: int, weights: list[float]) -> list[int]:
    """Split *total* cells across *weights* so the integer shares sum exactly.

    Each share is floored first; leftover cells go to the largest
    fractional remainders, earlier index first on ties.
    """
    count = len(weights)
    weight_sum = sum(weights)
    if total <= 0 or count == 0 or weight_sum <= 0:
        return [0] * count
    raw = [total * w / weight_sum for w in weights]
    shares = [int(r) for r in raw]
    leftover = total - sum(shares)
    order = sorted(range(count), key=lambda i: (-(raw[i] - shares[i]), i))
    for i in order[:leftover]:
        shares[i] += 1
    return shares


def _justify(mode: Any, free: int, count: int) -> tuple[int, list[int]]:
    """Return the leading offset and the extra spacing after each item."""
    between = [0] * max(0, count - 1)
    if free <= 0 or count == 0:
        return 0, between
    if mode in ("flex-start", "start", None):
        return 0, between
    if mode == "center":
        return free // 2, between
    if mode in ("flex-end", "end"):
        return free, between
    if mode == "space-between":
        if count == 1:
            return 0, between
        return 0, distribute(free, [1.0] * (count - 1))
    if mode == "space-around":
        shares = distribute(free, [1.0] + [2.0] * (count - 1) + [1.0])
        return shares[0], shares[1:count]
    if mode == "space-evenly":
        shares = distribute(free, [1.0] * (count + 1))
        return shares[0], shares[1:count]
    logger.debug("Unknown justify_content %r, using 'flex-start'", mode)
    return 0, between


# ---------------------------------------------------------------------------
# Intrinsic measurement
# ---------------------------------------------------------------------------


def _text_lines(node: TextNode, width: Optional[int]) -> list[str]:
    if not node.content:
        return []
    if width is None:
        return node.content.split("\n")
    return fit_text(node.content, width, node.props.get("wrap", "wrap"))


def natural_width(node: Node, avail: Optional[int]) -> int:
    """Width *node* wants when offered at most *avail* columns."""
    if isinstance(node, TextNode):
        return max((visible_width(line) for line in _text_lines(node, avail)), default=0)
    if isinstance(node, NewlineNode):
        return 0
    if isinstance(node, SpacerNode):
        return _dim(node.props.get("width"), avail) or 0
    if isinstance(node, FragmentNode):
        return natural_width(BoxNode(_NO_PROPS, node.children), avail)
    if isinstance(node, BoxNode):
        props = node.props
        if props.get("display") == "none":
            return 0
        min_w = _dim(props.get("min_width"), avail) or 0
        max_w = _dim(props.get("max_width"), avail)
        width = _dim(props.get("width"), avail)
        if width is not None:
            return _clamp(width, min_w, max_w)
        top, right, bottom, left = _frame(props)
        inner = None if avail is None else max(0, avail - left - right)
        row, _ = _direction(props)
        widths = []
        for child in _splice(node.children):
            if _hidden(child):
                continue
            _, mr, _, ml = _edges(_props(child), "margin")
            child_avail = None if inner is None else max(0, inner - ml - mr)
            widths.append(natural_width(child, child_avail) + ml + mr)
        if row:
            content = sum(widths) + _gap(props, True) * max(0, len(widths) - 1)
        else:
            content = max(widths, default=0)
        width = _clamp(content + left + right, min_w, max_w)
        return width if avail is None else min(width, avail)
    raise TypeError(f"Unknown node type: {type(node).__name__}")


def height_for_width(node: Node, width: int, parent_height: Optional[int] = None) -> int:
    """Height *node* needs when laid out exactly *width* columns wide."""
    if isinstance(node, TextNode):
        return len(_text_lines(node, width))
    if isinstance(node, NewlineNode):
        return node.count
    if isinstance(node, SpacerNode):
        return _dim(node.props.get("height"), parent_height) or 0
    if isinstance(node, FragmentNode):
        return height_for_width(BoxNode(_NO_PROPS, node.children), width, parent_height)
    if isinstance(node, BoxNode):
        props = node.props
        if props.get("display") == "none":
            return 0
        min_h = _dim(props.get("min_height"), parent_height) or 0
        max_h = _dim(props.get("max_height"), parent_height)
        height = _dim(props.get("height"), parent_height)
        if height is None:
            top, right, bottom, left = _frame(props)
            arranged = _arrange(props, node.children, max(0, width - left - right), None)
            height = arranged.content_height + top + bottom
        return _clamp(height, min_h, max_h)
    raise TypeError(f"Unknown node type: {type(node).__name__}")


# ---------------------------------------------------------------------------
# Flex line arrangement
# ---------------------------------------------------------------------------


class _Item:
    __slots__ = (
        "node",
        "hidden",
        "margin_before",
        "margin_after",
        "cross_before",
        "cross_after",
        "grow",
        "shrink",
        "basis",
        "min_main",
        "max_main",
        "min_cross",
        "max_cross",
        "explicit_cross",
        "align",
        "main",
        "cross",
        "pos",
        "cross_pos",
    )

    def __init__(self, node: Node, hidden: bool = False) -> None:
        self.node = node
        self.hidden = hidden
        self.main = 0
        self.cross = 0
        self.pos = 0
        self.cross_pos = 0

    @property
    def main_margins(self) -> int:
        return self.margin_before + self.margin_after

    @property
    def cross_margins(self) -> int:
        return self.cross_before + self.cross_after


class _Arranged(NamedTuple):
    # (node, rel_x, rel_y, width, height, hidden) in child order
    placements: list[tuple[Node, int, int, int, int, bool]]
    content_width: int
    content_height: int


def _arrange(
    props: Mapping[str, Any],
    children: tuple[Node, ...],
    width: int,
    height: Optional[int],
) -> _Arranged:
    """Size and position *children* inside a ``width x height`` content box.

    *height* may be ``None`` (unbounded) while measuring.
    """
    row, reverse = _direction(props)
    gap = _gap(props, row)
    main_size = width if row else height
    cross_size = height if row else width
    align_items = _align(props.get("align_items"), "stretch")

    slots: list[_Item] = []
    items: list[_Item] = []
    for child in _splice(children):
        if _hidden(child):
            slots.append(_Item(child, hidden=True))
            continue
        item = _make_item(child, row, width, height, main_size, cross_size, align_items)
        slots.append(item)
        items.append(item)

    count = len(items)
    gaps = gap * max(0, count - 1)

    # Main axis: grow or shrink from the base sizes
    for item in items:
        item.main = item.basis
    if main_size is not None and count:
        free = main_size - sum(i.basis + i.main_margins for i in items) - gaps
        if free > 0:
            shares = distribute(free, [i.grow for i in items])
            for item, share in zip(items, shares):
                item.main = _clamp(item.basis + share, item.min_main, item.max_main)
        elif free < 0:
            shares = distribute(-free, [i.shrink * i.basis for i in items])
            for item, share in zip(items, shares):
                item.main = _clamp(item.basis - share, item.min_main, item.max_main)

    # Cross axis
    if row:
        naturals = []
        for item in items:
            if item.explicit_cross is not None:
                natural = item.explicit_cross
            else:
                natural = height_for_width(item.node, item.main, height)
            naturals.append(_clamp(natural, item.min_cross, item.max_cross))
        line = cross_size
        if line is None:
            line = max((n + i.cross_margins for n, i in zip(naturals, items)), default=0)
        for item, natural in zip(items, naturals):
            if item.explicit_cross is None and item.align == "stretch":
                item.cross = _clamp(line - item.cross_margins, item.min_cross, item.max_cross)
            else:
                item.cross = natural
    else:
        line = width
    for item in items:
        room = max(0, line - item.cross_margins)
        spare = max(0, room - item.cross)
        if item.align == "center":
            offset = spare // 2
        elif item.align == "end":
            offset = spare
        else:
            offset = 0
        item.cross_pos = item.cross_before + offset

    # Main axis positions
    used = sum(i.main + i.main_margins for i in items) + gaps
    extent = main_size if main_size is not None else used
    lead, spacing = _justify(props.get("justify_content", "flex-start"), extent - used, count)
    pos = lead
    for index, item in enumerate(items):
        pos += item.margin_before
        item.pos = pos
        pos += item.main + item.margin_after + gap
        if index < count - 1:
            pos += spacing[index]
    if reverse:
        for item in items:
            item.pos = extent - item.pos - item.main

    # Clip to the content box
    for item in items:
        item.pos = min(max(item.pos, 0), extent)
        item.main = max(0, min(item.main, extent - item.pos))
        item.cross_pos = min(max(item.cross_pos, 0), line)
        item.cross = max(0, min(item.cross, line - item.cross_pos))

    placements = []
    for item in slots:
        if item.hidden:
            placements.append((item.node, 0, 0, 0, 0, True))
        elif row:
            placements.append((item.node, item.pos, item.cross_pos, item.main, item.cross, False))
        else:
            placements.append((item.node, item.cross_pos, item.pos, item.cross, item.main, False))

    if row:
        return _Arranged(placements, width, line)
    return _Arranged(placements, width, extent)


def _make_item(
    child: Node,
    row: bool,
    width: int,
    height: Optional[int],
    main_size: Optional[int],
    cross_size: Optional[int],
    align_items: str,
) -> _Item:
    props = _props(child)
    item = _Item(child)
    m_top, m_right, m_bottom, m_left = _edges(props, "margin")
    if row:
        item.margin_before, item.margin_after = m_left, m_right
        item.cross_before, item.cross_after = m_top, m_bottom
    else:
        item.margin_before, item.margin_after = m_top, m_bottom
        item.cross_before, item.cross_after = m_left, m_right
    item.grow = _factor(props.get("flex_grow"), 0.0)
    item.shrink = _factor(props.get("flex_shrink"), 1.0)
    item.align = _align(props.get("align_self"), align_items)

    w_prop = _dim(props.get("width"), width)
    h_prop = _dim(props.get("height"), height)
    min_w = _dim(props.get("min_width"), width) or 0
    max_w = _dim(props.get("max_width"), width)
    min_h = _dim(props.get("min_height"), height) or 0
    max_h = _dim(props.get("max_height"), height)
    flex_basis = _dim(props.get("flex_basis"), main_size)

    if row:
        item.min_main, item.max_main = min_w, max_w
        item.min_cross, item.max_cross = min_h, max_h
        item.explicit_cross = h_prop
        if w_prop is not None:
            basis = w_prop
        elif flex_basis is not None:
            basis = flex_basis
        else:
            avail = None if main_size is None else max(0, main_size - item.main_margins)
            basis = natural_width(child, avail)
    else:
        item.min_main, item.max_main = min_h, max_h
        item.min_cross, item.max_cross = min_w, max_w
        item.explicit_cross = w_prop
        room = max(0, (cross_size or 0) - item.cross_margins)
        if w_prop is not None:
            cross = w_prop
        elif item.align == "stretch":
            cross = room
        else:
            cross = min(natural_width(child, room), room)
        item.cross = _clamp(cross, min_w, max_w)
        if h_prop is not None:
            basis = h_prop
        elif flex_basis is not None:
            basis = flex_basis
        else:
            basis = height_for_width(child, item.cross, height)
    explicit_main = w_prop if row else h_prop
    if item.grow > 0 and main_size is not None and explicit_main is None and flex_basis is None:
        # Flexible items only get what the fixed ones leave over
        basis = 0
    item.basis = _clamp(basis, item.min_main, item.max_main)
    return item


# ---------------------------------------------------------------------------
# Placement
# ---------------------------------------------------------------------------


def _place(node: Node, x: int, y: int, width: int, height: int) -> LayoutBox:
    if isinstance(node, TextNode):
        lines = _text_lines(node, width)[:height]
        return LayoutBox(node, x, y, width, height, Rect(x, y, width, height), (), tuple(lines))
    if isinstance(node, (SpacerNode, NewlineNode)):
        return LayoutBox(node, x, y, width, height, Rect(x, y, width, height))
    if isinstance(node, FragmentNode):
        return _place(BoxNode(_NO_PROPS, node.children), x, y, width, height)
    if isinstance(node, BoxNode):
        top, right, bottom, left = _frame(node.props)
        content = Rect(
            x + left,
            y + top,
            max(0, width - left - right),
            max(0, height - top - bottom),
        )
        arranged = _arrange(node.props, node.children, content.width, content.height)
        children = []
        for child, rel_x, rel_y, w, h, hidden in arranged.placements:
            cx, cy = content.x + rel_x, content.y + rel_y
            if hidden:
                children.append(LayoutBox(child, cx, cy, 0, 0, Rect(cx, cy, 0, 0)))
            else:
                children.append(_place(child, cx, cy, w, h))
        return LayoutBox(node, x, y, width, height, content, tuple(children))
    raise TypeError(f"Unknown node type: {type(node).__name__}")


def layout(node: Node, width: int, height: Optional[int] = None) -> LayoutBox:
    """Lay *node* out on a ``width x height`` viewport.

    The root fills the viewport width unless it sets ``width``.  Its height
    is ``height`` if set, otherwise its content height clamped to the
    viewport height (when one is given).
    """
    if width < 0:
        logger.debug("Negative viewport width %d clamped to 0", width)
        width = 0
    if height is not None and height < 0:
        logger.debug("Negative viewport height %d clamped to 0", height)
        height = 0
    if isinstance(node, FragmentNode):
        node = BoxNode(_NO_PROPS, node.children)

    props = _props(node)
    if props.get("display") == "none":
        return LayoutBox(node, 0, 0, 0, 0, Rect(0, 0, 0, 0))

    m_top, m_right, m_bottom, m_left = _edges(props, "margin")
    avail_w = max(0, width - m_left - m_right)
    avail_h = None if height is None else max(0, height - m_top - m_bottom)

    root_w = _dim(props.get("width"), avail_w)
    if root_w is None:
        root_w = avail_w
    root_w = min(
        _clamp(
            root_w,
            _dim(props.get("min_width"), avail_w) or 0,
            _dim(props.get("max_width"), avail_w),
        ),
        avail_w,
    )

    root_h = _dim(props.get("height"), avail_h)
    if root_h is None:
        root_h = height_for_width(node, root_w, avail_h)
    else:
        root_h = _clamp(
            root_h,
            _dim(props.get("min_height"), avail_h) or 0,
            _dim(props.get("max_height"), avail_h),
        )
    if avail_h is not None:
        root_h = min(root_h, avail_h)

    return _place(node, m_left, m_top, root_w, root_h)
