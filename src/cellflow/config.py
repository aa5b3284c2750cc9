"""Runtime configuration, with defaults taken from ``CELLFLOW_*`` variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in _TRUTHY


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass
class Config:
    """Settings shared by the runtime and the live ``App``."""

    # Flush passes allowed before ``TooManyUpdatesError``
    max_update_depth: int = field(
        default_factory=lambda: _env_int("CELLFLOW_MAX_UPDATE_DEPTH", 100)
    )
    alternate_screen: bool = field(
        default_factory=lambda: _env_flag("CELLFLOW_ALT_SCREEN", True)
    )
    hide_cursor: bool = True
    exit_on_ctrl_c: bool = True
    # Tab and Shift+Tab cycle focus between ``use_focus`` components
    tab_focus: bool = True
    mouse: bool = field(default_factory=lambda: _env_flag("CELLFLOW_MOUSE", True))
    # Unchanged cells tolerated inside one coalesced write run
    diff_max_gap: int = field(
        default_factory=lambda: _env_int("CELLFLOW_DIFF_MAX_GAP", 0)
    )
    # Append every terminal write to this file (debugging aid)
    write_log: str = field(
        default_factory=lambda: os.environ.get("CELLFLOW_WRITE_LOG", "")
    )
