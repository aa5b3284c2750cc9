"""Render entry points and the live ``App``.

``render_to_string`` is a one-shot layout and paint.  ``render`` mounts a
component on a terminal: a single root effect re-renders the component tree
whenever a signal it read changes, and each new tree is laid out, painted
and diffed against the previous frame so only changed cells are written.

Frames are coalesced: ``request_frame`` schedules one render on the running
asyncio loop (``call_soon``), or renders synchronously when no loop runs.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Iterable, Optional, Union

from cellflow.config import Config
from cellflow.diff import Differ
from cellflow.events import Key, KeyEvent, MouseEvent
from cellflow.focus import FOCUS_CONTEXT, FocusManager
from cellflow.hit_test import HitTestRegistry
from cellflow.hotkeys import GLOBAL_SCOPE
from cellflow.hooks import APP_CONTEXT, ComponentInstance
from cellflow.layout import LayoutBox, layout
from cellflow.nodes import NODE_TYPES, Fragment, Node
from cellflow.paint import paint
from cellflow.signals import Effect, Runtime, Signal
from cellflow.terminal import ProcessTerminal, Terminal

logger = logging.getLogger(__name__)

Decoder = Callable[[str], Iterable[Union[KeyEvent, MouseEvent]]]

_CTRL_C = "\x03"


def _as_node(value: Any) -> Node:
    if isinstance(value, NODE_TYPES):
        return value
    return Fragment(value)


def render_to_string(
    node: Union[Node, Callable[[], Any]],
    width: int,
    height: Optional[int] = None,
    *,
    styled: bool = False,
) -> str:
    """Lay out and paint *node* once and return the text.

    *node* may also be a component function, rendered with throwaway state.
    Trailing spaces and blank trailing lines are trimmed.
    """
    if callable(node) and not isinstance(node, NODE_TYPES):
        node = node()
    box = layout(_as_node(node), width, height)
    frame = paint(box, max(0, width), box.y + box.height if height is None else max(0, height))
    return frame.to_string(styled=styled)


# ---------------------------------------------------------------------------
# App context
# ---------------------------------------------------------------------------


class AppContext:
    """Handle returned by ``use_app()``."""

    def __init__(self, app: App) -> None:
        self._app = app

    @property
    def runtime(self) -> Runtime:
        return self._app.runtime

    @property
    def focus(self) -> FocusManager:
        return self._app.focus

    @property
    def hotkey_scope(self) -> Signal[str]:
        return self._app.hotkey_scope

    def exit(self, error: Optional[BaseException] = None) -> None:
        self._app.exit(error)

    def columns(self) -> int:
        return self._app.viewport.get()[0]

    def rows(self) -> int:
        return self._app.viewport.get()[1]

    def request_frame(self) -> None:
        self._app.request_frame()

    def add_input_handler(self, handler: Callable[[str, Key], Any]) -> Callable[[], None]:
        return self._app.add_input_handler(handler)

    def add_mouse_handler(self, handler: Callable[[MouseEvent], Any]) -> Callable[[], None]:
        return self._app.add_mouse_handler(handler)


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------


class App:
    """A component mounted on a terminal.

    Created by ``render``; call ``wait_until_exit`` to block until the app
    exits, and ``exit``/``unmount`` to tear it down.
    """

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def __init__(
        self,
        component: Callable[..., Any],
        terminal: Terminal,
        runtime: Runtime,
        config: Config,
        decoder: Optional[Decoder] = None,
    ) -> None:
        self.component = component
        self.terminal = terminal
        self.runtime = runtime
        self.config = config
        self.decoder = decoder

        self.differ = Differ(config.diff_max_gap)
        self.hit_test = HitTestRegistry()
        self.context = AppContext(self)

        with runtime.detached():
            self.viewport: Signal[tuple[int, int]] = runtime.signal(
                (terminal.columns, terminal.rows)
            )
            self.hotkey_scope: Signal[str] = runtime.signal(GLOBAL_SCOPE)
        self.focus = FocusManager(runtime)

        self._root: Optional[ComponentInstance] = None
        self._root_effect: Optional[Effect] = None
        self._tree: Optional[Node] = None
        self.last_layout: Optional[LayoutBox] = None

        self._input_handlers: list[Callable[[str, Key], Any]] = []
        self._mouse_handlers: list[Callable[[MouseEvent], Any]] = []

        # Render scheduling
        self._frame_requested: bool = False
        self.frame_count: int = 0

        # Terminal modes we switched on and must undo
        self._alternate_screen: bool = False
        self._cursor_hidden: bool = False
        self._mouse_enabled: bool = False

        # Lifecycle
        self._started: bool = False
        self._exited: bool = False
        self._error: Optional[BaseException] = None
        self._waiters: list[asyncio.Future[None]] = []

    @property
    def exited(self) -> bool:
        return self._exited

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def mount(self) -> None:
        """Start the terminal and run the first render."""
        if self._started:
            return
        self._started = True
        self.terminal.start(self.handle_input, self.resize)
        if self.config.alternate_screen:
            self.terminal.enter_alternate_screen()
            self._alternate_screen = True
        if self.config.hide_cursor:
            self.terminal.hide_cursor()
            self._cursor_hidden = True

        self._root = ComponentInstance(self.component, self.runtime)
        try:
            with self.runtime.activate(), self.runtime.detached():
                self._root_effect = self.runtime.effect(self._render_root)
        except BaseException:
            self._exited = True
            self._teardown()
            raise
        self.runtime.scheduler.on_overflow = self._on_overflow
        columns, rows = self.viewport.peek()
        logger.info("App mounted at %dx%d", columns, rows)

    def _render_root(self) -> None:
        assert self._root is not None
        if not self._root.mounted:
            # Teardown writes (focus release) may wake the root effect
            return
        try:
            with APP_CONTEXT.provide(self.context, self.runtime), FOCUS_CONTEXT.provide(
                self.focus, self.runtime
            ):
                tree = self._root.render()
        except Exception as exc:
            if self._root_effect is None:
                # First render; mount() tears down and re-raises
                raise
            logger.exception("Render failed")
            self.exit(exc)
            return
        self._tree = _as_node(tree)
        self.request_frame()

    def _on_overflow(self, error: BaseException) -> None:
        logger.error("Update loop aborted: %s", error)
        self.exit(error)

    def exit(self, error: Optional[BaseException] = None) -> None:
        """Unmount the tree, restore the terminal and release waiters.

        A non-``None`` *error* is re-raised by ``wait_until_exit``.
        """
        if self._exited:
            return
        self._exited = True
        self._error = error
        if error is not None:
            logger.info("App exiting with error: %r", error)
        else:
            logger.info("App exiting")
        try:
            self._teardown()
        finally:
            for waiter in self._waiters:
                if not waiter.done():
                    waiter.set_result(None)
            self._waiters.clear()

    def unmount(self) -> None:
        self.exit()

    def _teardown(self) -> None:
        if self.runtime.scheduler.on_overflow == self._on_overflow:
            self.runtime.scheduler.on_overflow = None
        try:
            with self.runtime.activate():
                if self._root is not None:
                    self._root.unmount()
                if self._root_effect is not None:
                    self._root_effect.dispose()
        finally:
            if self._mouse_enabled:
                self.terminal.disable_mouse()
                self._mouse_enabled = False
            if self._cursor_hidden:
                self.terminal.show_cursor()
                self._cursor_hidden = False
            if self._alternate_screen:
                self.terminal.exit_alternate_screen()
                self._alternate_screen = False
            self.terminal.stop()

    async def wait_until_exit(self) -> None:
        """Wait until the app exits, re-raising the error it exited with."""
        if not self._exited:
            waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
            self._waiters.append(waiter)
            await waiter
        if self._error is not None:
            raise self._error

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def request_frame(self) -> None:
        """Schedule a frame on the next event-loop tick.

        Multiple calls coalesce into a single frame.  Without a running loop
        the frame renders synchronously.
        """
        if self._frame_requested or self._exited:
            return
        self._frame_requested = True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No running event loop -- render synchronously
            self._frame_tick()
            return
        loop.call_soon(self._frame_tick)

    def _frame_tick(self) -> None:
        self._frame_requested = False
        if self._exited:
            return
        try:
            self.render_frame()
        except Exception as exc:
            logger.exception("Frame failed")
            self.exit(exc)

    def render_frame(self) -> None:
        """Lay out, paint and diff the current tree, writing what changed."""
        if self._tree is None:
            return
        columns, rows = self.viewport.peek()
        box = layout(self._tree, columns, rows)
        frame = paint(box, columns, rows)
        output = self.differ.render(frame)
        self.last_layout = box
        self.hit_test.rebuild(box)
        self._sync_mouse()
        if output:
            self.terminal.write(output)
        self.frame_count += 1

    def _sync_mouse(self) -> None:
        if self._mouse_enabled or not self.config.mouse:
            return
        if len(self.hit_test) or self._mouse_handlers:
            self.terminal.enable_mouse()
            self._mouse_enabled = True

    def resize(self) -> None:
        """Pick up the terminal's new size and force a full repaint."""
        size = (self.terminal.columns, self.terminal.rows)
        logger.debug("Resize to %dx%d", *size)
        self.differ.reset()
        with self.runtime.activate():
            self.viewport.set(size)
        self.request_frame()

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def add_input_handler(self, handler: Callable[[str, Key], Any]) -> Callable[[], None]:
        self._input_handlers.append(handler)
        return lambda: self._remove(self._input_handlers, handler)

    def add_mouse_handler(self, handler: Callable[[MouseEvent], Any]) -> Callable[[], None]:
        self._mouse_handlers.append(handler)
        return lambda: self._remove(self._mouse_handlers, handler)

    @staticmethod
    def _remove(handlers: list[Any], handler: Any) -> None:
        if handler in handlers:
            handlers.remove(handler)

    def handle_input(self, data: str) -> None:
        """Decode raw terminal input and dispatch the events.

        Any error raised while handling input exits the app with that error.
        """
        if self._exited:
            return
        try:
            if self.decoder is None:
                if data == _CTRL_C and self.config.exit_on_ctrl_c:
                    self.exit()
                else:
                    logger.debug("No decoder configured; dropped %d chars", len(data))
                return
            for event in self.decoder(data):
                if isinstance(event, KeyEvent):
                    self.dispatch_key(event)
                elif isinstance(event, MouseEvent):
                    self.dispatch_mouse(event)
                else:
                    logger.debug("Ignoring decoded event %r", event)
                if self._exited:
                    break
        except Exception as exc:
            self.exit(exc)

    def dispatch_key(self, event: KeyEvent) -> None:
        """Deliver *event* to every ``use_input`` handler in one batch.

        Tab and Shift+Tab also move focus when anything is focusable.
        """
        if self._exited:
            return
        if self.config.exit_on_ctrl_c and event.key.ctrl and event.char == "c":
            self.exit()
            return
        with self.runtime.activate(), self.runtime.batching():
            if event.key.tab and self.config.tab_focus and len(self.focus):
                if event.key.shift:
                    self.focus.focus_previous()
                else:
                    self.focus.focus_next()
            for handler in list(self._input_handlers):
                handler(event.char, event.key)

    def dispatch_mouse(self, event: MouseEvent) -> bool:
        """Route *event* to the hit box and ``use_mouse`` handlers.

        Returns whether a box handler ran.
        """
        if self._exited:
            return False
        with self.runtime.activate():
            handled = self.hit_test.dispatch(event, self.runtime)
            if self._mouse_handlers:
                with self.runtime.batching():
                    for handler in list(self._mouse_handlers):
                        handler(event)
        return handled


def render(
    component: Union[Callable[..., Any], Node],
    *,
    terminal: Optional[Terminal] = None,
    runtime: Optional[Runtime] = None,
    config: Optional[Config] = None,
    decoder: Optional[Decoder] = None,
) -> App:
    """Mount *component* on *terminal* (stdin/stdout by default)."""
    config = config or Config()
    runtime = runtime or Runtime(config.max_update_depth)
    terminal = terminal or ProcessTerminal(config.write_log)
    if isinstance(component, NODE_TYPES):
        node = component
        component = lambda: node  # noqa: E731
    app = App(component, terminal=terminal, runtime=runtime, config=config, decoder=decoder)
    app.mount()
    return app
