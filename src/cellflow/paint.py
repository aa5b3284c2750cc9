"""Paint a ``LayoutBox`` tree into an immutable ``Frame``."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from cellflow.frame import Canvas, Frame
from cellflow.layout import LayoutBox, Rect
from cellflow.nodes import BoxNode, FragmentNode, NewlineNode, SpacerNode, TextNode
from cellflow.styles import Attr, Style, border_chars, has_border, parse_color, text_style

logger = logging.getLogger(__name__)

# (transform, top row of the box that applies it), innermost last
Transforms = tuple[tuple[Callable[[str, int], str], int], ...]


def paint(root: LayoutBox, width: Optional[int] = None, height: Optional[int] = None) -> Frame:
    """Paint *root* onto a fresh ``width x height`` canvas.

    The canvas defaults to the extent of the root box.  Anything outside it
    is clipped.
    """
    if width is None:
        width = root.x + root.width
    if height is None:
        height = root.y + root.height
    canvas = Canvas(width, height)
    _paint(canvas, root, canvas.bounds)
    return canvas.to_frame()


def _paint(canvas: Canvas, box: LayoutBox, clip: Rect, transforms: Transforms = ()) -> None:
    node = box.node
    if isinstance(node, TextNode):
        _paint_text(canvas, box, clip, transforms)
    elif isinstance(node, BoxNode):
        _paint_box(canvas, box, clip, transforms)
    elif isinstance(node, (SpacerNode, NewlineNode)):
        pass
    elif isinstance(node, FragmentNode):
        for child in box.children:
            _paint(canvas, child, clip, transforms)
    else:
        raise TypeError(f"Unknown node type: {type(node).__name__}")


def _paint_box(canvas: Canvas, box: LayoutBox, clip: Rect, transforms: Transforms) -> None:
    props = box.node.props
    if props.get("display") == "none" or box.width == 0 or box.height == 0:
        return
    bg = parse_color(props.get("background_color"))
    if bg is not None:
        canvas.fill(box.rect, bg, clip)
    if has_border(props):
        _paint_border(canvas, box, clip)
    if props.get("overflow") == "hidden":
        clip = clip.intersect(box.content)
    transform = props.get("transform")
    if transform is not None:
        transforms = transforms + ((transform, box.y),)
    for child in box.children:
        _paint(canvas, child, clip, transforms)


def _paint_border(canvas: Canvas, box: LayoutBox, clip: Rect) -> None:
    props = box.node.props
    chars = border_chars(props.get("border_style"))
    style = Style(
        fg=parse_color(props.get("border_color")),
        attrs=Attr.DIM if props.get("border_dim") else Attr.NONE,
    )
    x, y, w, h = box.x, box.y, box.width, box.height
    right, bottom = x + w - 1, y + h - 1
    inner = max(0, w - 2)

    canvas.write(x, y, chars.top_left, style, clip)
    canvas.write(x + 1, y, chars.top * inner, style, clip)
    if w > 1:
        canvas.write(right, y, chars.top_right, style, clip)
    if h > 1:
        canvas.write(x, bottom, chars.bottom_left, style, clip)
        canvas.write(x + 1, bottom, chars.bottom * inner, style, clip)
        if w > 1:
            canvas.write(right, bottom, chars.bottom_right, style, clip)
    for row in range(y + 1, bottom):
        canvas.write(x, row, chars.left, style, clip)
        if w > 1:
            canvas.write(right, row, chars.right, style, clip)


def _paint_text(canvas: Canvas, box: LayoutBox, clip: Rect, transforms: Transforms) -> None:
    clip = clip.intersect(box.rect)
    if clip.width == 0 or clip.height == 0:
        return
    style = text_style(box.node.props)
    for offset, line in enumerate(box.lines):
        row = box.y + offset
        for transform, top in reversed(transforms):
            line = transform(line, row - top)
        canvas.write(box.x, row, line, style, clip)
