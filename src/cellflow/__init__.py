"""cellflow: reactive terminal UI runtime with flexbox layout and cell diffing."""

# Render entry points
from cellflow.app import App, AppContext, render, render_to_string

# Configuration
from cellflow.config import Config

# Context
from cellflow.context import Context, create_context, has_context, provide, use_context

# Frame diffing
from cellflow.diff import ClearScreen, DiffStats, Differ, WriteRun, diff, encode_ops

# Errors
from cellflow.errors import (
    CellflowError,
    DisposedError,
    HookOrderError,
    InvalidHookCallError,
    TooManyUpdatesError,
)

# Input events
from cellflow.events import Key, KeyEvent, Modifiers, MouseAction, MouseButton, MouseEvent

# Focus
from cellflow.focus import FocusManager

# Frames
from cellflow.frame import Canvas, Cell, Frame

# Hit testing
from cellflow.hit_test import HitTestRegistry, MouseEventData

# Hotkeys
from cellflow.hotkeys import Hotkey, matches_hotkey, parse_hotkey, parse_hotkeys

# Hooks
from cellflow.hooks import (
    ComponentInstance,
    FocusState,
    HookSlotTable,
    component,
    use_app,
    use_callback,
    use_effect,
    use_focus,
    use_focus_manager,
    use_hotkey_scope,
    use_hotkeys,
    use_id,
    use_input,
    use_memo,
    use_mouse,
    use_reducer,
    use_ref,
    use_state,
)

# Layout
from cellflow.layout import LayoutBox, Rect, layout

# Nodes
from cellflow.nodes import (
    Box,
    BoxNode,
    Each,
    Fragment,
    FragmentNode,
    Newline,
    NewlineNode,
    Node,
    Spacer,
    SpacerNode,
    Static,
    Text,
    TextNode,
    Transform,
    When,
)

# Painting
from cellflow.paint import paint

# Reactive primitives
from cellflow.signals import (
    Effect,
    Memo,
    Ref,
    Runtime,
    Signal,
    batch,
    batching,
    create_debounced,
    create_deferred,
    create_effect,
    create_memo,
    create_previous,
    create_reducer,
    create_ref,
    create_signal,
    create_throttled,
    get_runtime,
    on_cleanup,
    signal,
    untrack,
)

# Styles
from cellflow.styles import BORDER_STYLES, Attr, Color, Style, parse_color

# Terminal
from cellflow.terminal import ProcessTerminal, Terminal

# Text utilities
from cellflow.utils import fit_text, truncate_to_width, visible_width, wrap_text

__all__ = [
    # Render entry points
    "App",
    "AppContext",
    "render",
    "render_to_string",
    # Configuration
    "Config",
    # Context
    "Context",
    "create_context",
    "has_context",
    "provide",
    "use_context",
    # Frame diffing
    "ClearScreen",
    "DiffStats",
    "Differ",
    "WriteRun",
    "diff",
    "encode_ops",
    # Errors
    "CellflowError",
    "DisposedError",
    "HookOrderError",
    "InvalidHookCallError",
    "TooManyUpdatesError",
    # Input events
    "Key",
    "KeyEvent",
    "Modifiers",
    "MouseAction",
    "MouseButton",
    "MouseEvent",
    # Focus
    "FocusManager",
    # Frames
    "Canvas",
    "Cell",
    "Frame",
    # Hit testing
    "HitTestRegistry",
    "MouseEventData",
    # Hotkeys
    "Hotkey",
    "matches_hotkey",
    "parse_hotkey",
    "parse_hotkeys",
    # Hooks
    "ComponentInstance",
    "FocusState",
    "HookSlotTable",
    "component",
    "use_app",
    "use_callback",
    "use_effect",
    "use_focus",
    "use_focus_manager",
    "use_hotkey_scope",
    "use_hotkeys",
    "use_id",
    "use_input",
    "use_memo",
    "use_mouse",
    "use_reducer",
    "use_ref",
    "use_state",
    # Layout
    "LayoutBox",
    "Rect",
    "layout",
    # Nodes
    "Box",
    "BoxNode",
    "Each",
    "Fragment",
    "FragmentNode",
    "Newline",
    "NewlineNode",
    "Node",
    "Spacer",
    "SpacerNode",
    "Static",
    "Text",
    "TextNode",
    "Transform",
    "When",
    # Painting
    "paint",
    # Reactive primitives
    "Effect",
    "Memo",
    "Ref",
    "Runtime",
    "Signal",
    "batch",
    "batching",
    "create_debounced",
    "create_deferred",
    "create_effect",
    "create_memo",
    "create_previous",
    "create_reducer",
    "create_ref",
    "create_signal",
    "create_throttled",
    "get_runtime",
    "on_cleanup",
    "signal",
    "untrack",
    # Styles
    "BORDER_STYLES",
    "Attr",
    "Color",
    "Style",
    "parse_color",
    # Terminal
    "ProcessTerminal",
    "Terminal",
    # Text utilities
    "fit_text",
    "truncate_to_width",
    "visible_width",
    "wrap_text",
]
