"""Immutable UI node types and the factories that build them.

A render returns a fresh tree of these nodes every time.  The set of node
types is closed: layout and paint dispatch over exactly these five classes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, TypeVar, Union

T = TypeVar("T")

_EMPTY: Mapping[str, Any] = MappingProxyType({})


@dataclass(frozen=True)
class BoxNode:
    props: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)
    children: tuple[Node, ...] = ()


@dataclass(frozen=True)
class TextNode:
    props: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)
    content: str = ""


@dataclass(frozen=True)
class SpacerNode:
    props: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)


@dataclass(frozen=True)
class NewlineNode:
    count: int = 1


@dataclass(frozen=True)
class FragmentNode:
    children: tuple[Node, ...] = ()


Node = Union[BoxNode, TextNode, SpacerNode, NewlineNode, FragmentNode]

NODE_TYPES = (BoxNode, TextNode, SpacerNode, NewlineNode, FragmentNode)


# ---------------------------------------------------------------------------
# Child normalisation
# ---------------------------------------------------------------------------


def _freeze(props: Mapping[str, Any]) -> Mapping[str, Any]:
    if not props:
        return _EMPTY
    return MappingProxyType(dict(props))


def normalize_children(children: Iterable[Any]) -> tuple[Node, ...]:
    """Flatten *children* into a tuple of nodes.

    ``None`` and booleans vanish (so ``cond and Box()`` works), lists, tuples
    and generators are flattened, and strings and numbers become ``Text``.
    """
    out: list[Node] = []
    _collect(children, out)
    return tuple(out)


def _collect(children: Iterable[Any], out: list[Node]) -> None:
    for child in children:
        if child is None or isinstance(child, bool):
            continue
        if isinstance(child, NODE_TYPES):
            out.append(child)
        elif isinstance(child, str):
            out.append(TextNode(_EMPTY, child))
        elif isinstance(child, (int, float)):
            out.append(TextNode(_EMPTY, str(child)))
        elif isinstance(child, (list, tuple)) or hasattr(child, "__next__"):
            _collect(child, out)
        else:
            raise TypeError(f"Cannot render {type(child).__name__!r} as a node")


def _text_content(parts: Iterable[Any]) -> str:
    pieces: list[str] = []
    for part in parts:
        if part is None or isinstance(part, bool):
            continue
        if isinstance(part, TextNode):
            pieces.append(part.content)
        elif isinstance(part, (list, tuple)):
            pieces.append(_text_content(part))
        else:
            pieces.append(str(part))
    return "".join(pieces)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def Box(*children: Any, **props: Any) -> BoxNode:
    return BoxNode(_freeze(props), normalize_children(children))


def Text(*content: Any, **props: Any) -> TextNode:
    """A run of text.  Parts are concatenated; nested ``Text`` contributes
    its content only."""
    return TextNode(_freeze(props), _text_content(content))


def Spacer(**props: Any) -> SpacerNode:
    props.setdefault("flex_grow", 1)
    return SpacerNode(_freeze(props))


def Newline(count: int = 1) -> NewlineNode:
    return NewlineNode(max(0, count))


def Fragment(*children: Any) -> FragmentNode:
    return FragmentNode(normalize_children(children))


def When(condition: Any, *children: Any) -> FragmentNode:
    """Render *children* only if *condition* (or its result, if callable) is truthy."""
    if callable(condition):
        condition = condition()
    if not condition:
        return FragmentNode()
    return FragmentNode(normalize_children(children))


def Each(items: Iterable[T], render: Callable[[T, int], Any]) -> FragmentNode:
    """Render ``render(item, index)`` for every item."""
    return FragmentNode(
        normalize_children([render(item, index) for index, item in enumerate(items)])
    )


def Transform(*children: Any, transform: Callable[[str, int], str], **props: Any) -> BoxNode:
    """A box whose descendants' text lines pass through ``transform(line, row)``.

    *row* counts from the top of the box.  The result is painted in place of
    the line and clipped to the text's own box, so a transform should keep
    the line's width.
    """
    props["transform"] = transform
    return BoxNode(_freeze(props), normalize_children(children))


def Static(items: Iterable[T], render: Callable[[T, int], Any], **style: Any) -> BoxNode:
    """A column of ``render(item, index)`` results, marked ``static``.

    Static boxes are laid out and painted like any other column.
    """
    props = dict(style, flex_direction="column", static=True)
    return BoxNode(
        _freeze(props),
        normalize_children([render(item, index) for index, item in enumerate(items)]),
    )
