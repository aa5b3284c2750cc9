"""Map screen cells back to the boxes that want mouse events."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

from cellflow.events import Modifiers, MouseAction, MouseButton, MouseEvent
from cellflow.layout import LayoutBox, Rect
from cellflow.nodes import BoxNode
from cellflow.signals import Runtime, get_runtime

logger = logging.getLogger(__name__)

HANDLER_PROPS = ("on_click", "on_double_click", "on_scroll")


@dataclass(frozen=True)
class MouseEventData:
    """What a mouse handler receives.  ``x``/``y`` are relative to the box."""

    x: int
    y: int
    absolute_x: int
    absolute_y: int
    button: MouseButton = MouseButton.LEFT
    action: MouseAction = MouseAction.CLICK
    modifiers: Modifiers = field(default_factory=Modifiers)


@dataclass(frozen=True)
class HitEntry:
    rect: Rect
    box: LayoutBox

    @property
    def props(self) -> Mapping[str, Any]:
        return self.box.node.props


def _handler_prop(event: MouseEvent) -> tuple[str, ...]:
    if event.is_scroll:
        return ("on_scroll",)
    if event.action == MouseAction.DOUBLE_CLICK:
        return ("on_double_click", "on_click")
    if event.action == MouseAction.CLICK:
        return ("on_click",)
    return ()


class HitTestRegistry:
    """Interactive boxes from the latest layout pass, in paint order."""

    def __init__(self) -> None:
        self._entries: list[HitEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> tuple[HitEntry, ...]:
        return tuple(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def rebuild(self, root: LayoutBox) -> None:
        """Replace all entries with the interactive boxes under *root*."""
        self.clear()
        self._collect(root, Rect(0, 0, root.x + root.width, root.y + root.height))

    def _collect(self, box: LayoutBox, clip: Rect) -> None:
        node = box.node
        if not isinstance(node, BoxNode):
            return
        rect = box.rect.intersect(clip)
        if rect.width and rect.height and any(node.props.get(p) for p in HANDLER_PROPS):
            self._entries.append(HitEntry(rect, box))
        if node.props.get("overflow") == "hidden":
            clip = clip.intersect(box.content)
        for child in box.children:
            self._collect(child, clip)

    def hit_test(self, x: int, y: int, props: tuple[str, ...] = HANDLER_PROPS) -> Optional[HitEntry]:
        """Return the last registered entry containing ``(x, y)``.

        Only entries carrying one of *props* are considered.
        """
        for entry in reversed(self._entries):
            if entry.rect.contains(x, y) and any(entry.props.get(p) for p in props):
                return entry
        return None

    def dispatch(self, event: MouseEvent, runtime: Optional[Runtime] = None) -> bool:
        """Invoke the matching handler inside a batch.  Return whether one ran."""
        props = _handler_prop(event)
        if not props:
            return False
        entry = self.hit_test(event.x, event.y, props)
        if entry is None:
            return False
        handler: Optional[Callable[[MouseEventData], Any]] = None
        for prop in props:
            handler = entry.props.get(prop)
            if handler:
                break
        data = MouseEventData(
            x=event.x - entry.box.x,
            y=event.y - entry.box.y,
            absolute_x=event.x,
            absolute_y=event.y,
            button=event.button,
            action=event.action,
            modifiers=event.modifiers,
        )
        logger.debug("Dispatching %s at (%d, %d)", event.action.value, event.x, event.y)
        with (runtime or get_runtime()).batching():
            handler(data)
        return True
