"""Text utilities: grapheme-aware width measurement, wrapping and truncation.

Every measurement here is in terminal columns.  Grapheme clusters come from
``grapheme`` and per-codepoint widths from ``wcwidth``; escape sequences are
stripped before measuring, so they never count towards a width.
"""

from __future__ import annotations

import re
import unicodedata
from functools import lru_cache

import grapheme
import wcwidth as _wcwidth

# ---------------------------------------------------------------------------
# Escape-sequence stripping
# ---------------------------------------------------------------------------

_STRIP_RE = re.compile(
    r"\x1b\[[0-9;?]*[A-Za-z]"             # CSI
    r"|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)"  # OSC
    r"|\x1b_[^\x07\x1b]*(?:\x07|\x1b\\)"   # APC
)

TAB = "   "

ELLIPSIS = "…"


def strip_ansi(text: str) -> str:
    """Remove CSI/OSC/APC escape sequences from *text*."""
    if "\x1b" not in text:
        return text
    return _STRIP_RE.sub("", text)


# ---------------------------------------------------------------------------
# Grapheme width
# ---------------------------------------------------------------------------


def _grapheme_width(g: str) -> int:
    """Return the terminal display width of a single grapheme cluster.

    Control characters and lone combining marks are zero width; emoji
    sequences (VS16, ZWJ, skin tones, regional indicators) are two wide;
    everything else is whatever ``wcwidth`` reports for the base codepoint.
    """
    if not g:
        return 0

    if len(g) == 1:
        cp = ord(g)
        if cp < 0x20 or (0x7F <= cp <= 0x9F):
            return 0
        return max(_wcwidth.wcwidth(g), 0)

    for ch in g:
        cp = ord(ch)
        if cp in (0xFE0F, 0x200D):
            return 2
        if 0x1F3FB <= cp <= 0x1F3FF or 0x1F1E6 <= cp <= 0x1F1FF:
            return 2

    first = g[0]
    first_cp = ord(first)
    if first_cp >= 0x1F000 or 0x2600 <= first_cp <= 0x27BF:
        return 2

    cat = unicodedata.category(first)
    if cat.startswith("M") or cat == "Cf":
        return 0
    return max(_wcwidth.wcwidth(first), 0)


@lru_cache(maxsize=512)
def _clusters_cached(text: str) -> tuple[tuple[str, int], ...]:
    return tuple((g, _grapheme_width(g)) for g in grapheme.graphemes(text))


def clusters(text: str) -> tuple[tuple[str, int], ...]:
    """Split *text* into ``(grapheme, width)`` pairs.

    Tabs expand to three spaces and escape sequences are dropped.
    """
    text = strip_ansi(text).replace("\t", TAB)
    if text.isascii():
        return tuple((ch, 1 if " " <= ch <= "~" else 0) for ch in text)
    return _clusters_cached(text)


def visible_width(text: str) -> int:
    """Calculate the visible terminal width of *text*."""
    if not text:
        return 0
    stripped = strip_ansi(text).replace("\t", TAB)
    if stripped.isascii() and stripped.isprintable():
        return len(stripped)
    return sum(w for _, w in clusters(stripped))


def measure_text(text: str) -> tuple[int, int]:
    """Return ``(width, height)`` of *text* without any wrapping."""
    lines = text.split("\n")
    return max((visible_width(line) for line in lines), default=0), len(lines)


# ---------------------------------------------------------------------------
# Wrapping
# ---------------------------------------------------------------------------


def wrap_text(text: str, width: int) -> list[str]:
    """Word-wrap *text* so that no line is wider than *width* columns.

    Embedded newlines are honoured.  Lines break after the last space that
    fits; a word longer than *width* is broken mid-word.  Leading spaces of
    continuation lines are dropped.
    """
    if width <= 0:
        return ["" for _ in text.split("\n")]
    result: list[str] = []
    for physical in text.split("\n"):
        result.extend(_wrap_line(physical, width))
    return result


def _wrap_line(line: str, width: int) -> list[str]:
    cells = clusters(line)
    if sum(w for _, w in cells) <= width:
        return ["".join(g for g, _ in cells)]

    lines: list[str] = []
    current: list[tuple[str, int]] = []
    current_width = 0

    for g, w in cells:
        if current_width + w > width and current:
            if g == " ":
                lines.append("".join(c for c, _ in current).rstrip(" "))
                current = []
                current_width = 0
                continue
            split = _last_space(current)
            if split > 0:
                head, tail = current[:split], current[split + 1 :]
                lines.append("".join(c for c, _ in head).rstrip(" "))
                while tail and tail[0][0] == " ":
                    tail = tail[1:]
                current = list(tail)
                current_width = sum(cw for _, cw in current)
            else:
                lines.append("".join(c for c, _ in current))
                current = []
                current_width = 0
            # Another break may still be needed if the carried tail is full
            if current_width + w > width and current:
                lines.append("".join(c for c, _ in current))
                current = []
                current_width = 0
        if g == " " and not current and lines:
            continue
        current.append((g, w))
        current_width += w

    lines.append("".join(c for c, _ in current))
    return lines


def _last_space(cells: list[tuple[str, int]]) -> int:
    for i in range(len(cells) - 1, -1, -1):
        if cells[i][0] == " ":
            return i
    return -1


# ---------------------------------------------------------------------------
# Truncation
# ---------------------------------------------------------------------------


def _take_columns(cells: tuple[tuple[str, int], ...], max_cols: int) -> str:
    out: list[str] = []
    cols = 0
    for g, w in cells:
        if cols + w > max_cols:
            break
        out.append(g)
        cols += w
    return "".join(out)


def _take_columns_from_end(cells: tuple[tuple[str, int], ...], max_cols: int) -> str:
    out: list[str] = []
    cols = 0
    for g, w in reversed(cells):
        if cols + w > max_cols:
            break
        out.append(g)
        cols += w
    return "".join(reversed(out))


def truncate_to_width(
    text: str,
    max_width: int,
    ellipsis: str = ELLIPSIS,
    pad: bool = False,
) -> str:
    """Truncate *text* at the end to fit within *max_width* columns.

    The ellipsis counts towards the width.  With *pad* the result is
    right-padded with spaces to exactly *max_width*.
    """
    if max_width <= 0:
        return ""
    text_width = visible_width(text)
    if text_width <= max_width:
        return text + " " * (max_width - text_width) if pad else text

    target = max_width - visible_width(ellipsis)
    if target <= 0:
        return _take_columns(clusters(ellipsis), max_width)
    result = _take_columns(clusters(text), target) + ellipsis
    if pad:
        result += " " * (max_width - visible_width(result))
    return result


def truncate_start(text: str, max_width: int, ellipsis: str = ELLIPSIS) -> str:
    """Keep the tail of *text*, replacing the cut head with *ellipsis*."""
    if max_width <= 0:
        return ""
    if visible_width(text) <= max_width:
        return text
    target = max_width - visible_width(ellipsis)
    if target <= 0:
        return _take_columns(clusters(ellipsis), max_width)
    return ellipsis + _take_columns_from_end(clusters(text), target)


def truncate_middle(text: str, max_width: int, ellipsis: str = ELLIPSIS) -> str:
    """Keep both ends of *text*, replacing the middle with *ellipsis*."""
    if max_width <= 0:
        return ""
    if visible_width(text) <= max_width:
        return text
    available = max_width - visible_width(ellipsis)
    if available <= 0:
        return _take_columns(clusters(ellipsis), max_width)
    cells = clusters(text)
    head = (available + 1) // 2
    tail = available // 2
    return _take_columns(cells, head) + ellipsis + _take_columns_from_end(cells, tail)


def fit_text(text: str, width: int, mode: str = "wrap") -> list[str]:
    """Lay *text* out into lines no wider than *width* per overflow *mode*.

    *mode* is ``wrap`` (default), ``truncate``/``truncate-end``,
    ``truncate-start`` or ``truncate-middle``.  Unknown modes wrap.
    """
    if mode in ("truncate", "truncate-end"):
        return [truncate_to_width(line, width) for line in text.split("\n")]
    if mode == "truncate-start":
        return [truncate_start(line, width) for line in text.split("\n")]
    if mode == "truncate-middle":
        return [truncate_middle(line, width) for line in text.split("\n")]
    return wrap_text(text, width)
