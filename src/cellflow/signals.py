"""Fine-grained reactive primitives: signals, memos and effects.

All reactive nodes live in an arena owned by a ``Runtime`` and are addressed
by integer ids handed out in creation order.  Handles (``Signal``, ``Memo``,
``Effect``) are thin ``(runtime, id)`` pairs, so nothing holds a Python
reference cycle through the graph.

Propagation uses three colours.  A signal write marks its observers DIRTY;
memos pass CHECK further down and effects are queued on the scheduler.  A
CHECK node refreshes its memo sources first and only re-runs if one of them
actually produced a new value, so an unchanged memo stops the wave.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterator, Optional, TypeVar, Union

from cellflow.config import Config
from cellflow.errors import CellflowError, DisposedError
from cellflow.scheduler import Scheduler

logger = logging.getLogger(__name__)

T = TypeVar("T")

EqualsFn = Callable[[Any, Any], bool]
Cleanup = Callable[[], None]

CLEAN = 0
CHECK = 1
DIRTY = 2

SIGNAL = "signal"
MEMO = "memo"
EFFECT = "effect"

_UNSET: Any = object()


def default_equals(a: Any, b: Any) -> bool:
    return a is b or a == b


def _resolve_equals(equals: Union[EqualsFn, bool, None]) -> Optional[EqualsFn]:
    if equals is False:
        return None
    if equals is None or equals is True:
        return default_equals
    return equals


class _Node:
    __slots__ = (
        "id",
        "kind",
        "value",
        "fn",
        "equals",
        "state",
        "observers",
        "sources",
        "cleanups",
        "owned",
        "running",
    )

    def __init__(
        self,
        node_id: int,
        kind: str,
        value: Any = _UNSET,
        fn: Optional[Callable[[], Any]] = None,
        equals: Optional[EqualsFn] = None,
    ) -> None:
        self.id = node_id
        self.kind = kind
        self.value = value
        self.fn = fn
        self.equals = equals
        self.state = CLEAN if kind == SIGNAL else DIRTY
        self.observers: dict[int, None] = {}
        self.sources: dict[int, None] = {}
        self.cleanups: list[Cleanup] = []
        self.owned: list[int] = []
        self.running = False


# ---------------------------------------------------------------------------
# Runtime
# ---------------------------------------------------------------------------


class Runtime:
    """An isolated reactive graph with its own scheduler.

    Besides the node arena the runtime carries the per-render state the hook
    and context layers need: ``render_stack`` (component instances currently
    rendering) and ``contexts`` (provider stacks keyed by context).
    """

    def __init__(self, max_update_depth: Optional[int] = None) -> None:
        if max_update_depth is None:
            max_update_depth = Config().max_update_depth
        self._nodes: dict[int, _Node] = {}
        self._ids = itertools.count(1)
        self._observer: Optional[_Node] = None
        self._owner: Optional[_Node] = None
        self.scheduler = Scheduler(self._run_queued, max_update_depth)
        self.render_stack: list[Any] = []
        self.contexts: dict[Any, list[Any]] = {}

    # ------------------------------------------------------------------
    # Activation
    # ------------------------------------------------------------------

    @contextmanager
    def activate(self) -> Iterator[Runtime]:
        """Make this runtime current for the duration of the ``with`` block."""
        token = _current_runtime.set(self)
        try:
            yield self
        finally:
            _current_runtime.reset(token)

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    def is_alive(self, node_id: int) -> bool:
        return node_id in self._nodes

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def _register(self, node: _Node) -> _Node:
        self._nodes[node.id] = node
        if self._owner is not None:
            self._owner.owned.append(node.id)
        return node

    def signal(self, initial: T, *, equals: Union[EqualsFn, bool, None] = None) -> Signal[T]:
        node = self._register(
            _Node(next(self._ids), SIGNAL, initial, equals=_resolve_equals(equals))
        )
        return Signal(self, node.id)

    def memo(
        self, fn: Callable[[], T], *, equals: Union[EqualsFn, bool, None] = None
    ) -> Memo[T]:
        node = self._register(
            _Node(next(self._ids), MEMO, fn=fn, equals=_resolve_equals(equals))
        )
        return Memo(self, node.id)

    def effect(self, fn: Callable[[], Any], *, defer: bool = False) -> Effect:
        """Create an effect.

        The body runs immediately inside a batch, or, with *defer*, is queued
        for the current (or next) flush instead.
        """
        node = self._register(_Node(next(self._ids), EFFECT, fn=fn))
        if defer:
            self.scheduler.enqueue(node.id)
            self.scheduler.request_flush()
        else:
            with self.batching():
                self._update(node)
        return Effect(self, node.id)

    # ------------------------------------------------------------------
    # Ownership / tracking scopes
    # ------------------------------------------------------------------

    @contextmanager
    def detached(self) -> Iterator[None]:
        """Create nodes without attaching them to the running effect."""
        prev = self._owner
        self._owner = None
        try:
            yield
        finally:
            self._owner = prev

    def untrack(self, fn: Callable[[], T]) -> T:
        prev = self._observer
        self._observer = None
        try:
            return fn()
        finally:
            self._observer = prev

    def on_cleanup(self, fn: Cleanup) -> None:
        if self._owner is None:
            logger.debug("on_cleanup called outside an effect; ignoring %r", fn)
            return
        self._owner.cleanups.append(fn)

    # ------------------------------------------------------------------
    # Batching
    # ------------------------------------------------------------------

    def batching(self):
        return self.scheduler.batch()

    def batch(self, fn: Callable[[], T]) -> T:
        with self.scheduler.batch():
            return fn()

    # ------------------------------------------------------------------
    # Reads / writes
    # ------------------------------------------------------------------

    def _get(self, node_id: int) -> _Node:
        node = self._nodes.get(node_id)
        if node is None:
            raise DisposedError(f"reactive node {node_id} has been disposed")
        return node

    def read(self, node_id: int) -> Any:
        node = self._get(node_id)
        if node.kind == MEMO:
            self._update(node)
        observer = self._observer
        if observer is not None and observer is not node:
            node.observers[observer.id] = None
            observer.sources[node.id] = None
        return node.value

    def peek(self, node_id: int) -> Any:
        node = self._get(node_id)
        if node.kind == MEMO:
            self._update(node)
        return node.value

    def write(self, node_id: int, value: Any) -> None:
        node = self._get(node_id)
        if node.kind != SIGNAL:
            raise CellflowError(f"cannot write to a {node.kind}")
        if node.equals is not None and node.equals(node.value, value):
            return
        node.value = value
        for observer_id in list(node.observers):
            observer = self._nodes.get(observer_id)
            if observer is not None:
                self._mark(observer, DIRTY)
        self.scheduler.request_flush()

    def invalidate(self, node_id: int, *, notify: bool = True) -> None:
        """Force a memo or effect to recompute on its next update.

        With *notify* false a memo is only marked stale; its observers are
        left alone (used when the observer is the one about to read it).
        """
        node = self._get(node_id)
        if node.kind == SIGNAL:
            return
        if notify or node.kind == EFFECT:
            self._mark(node, DIRTY)
            self.scheduler.request_flush()
        else:
            node.state = DIRTY

    # ------------------------------------------------------------------
    # Propagation
    # ------------------------------------------------------------------

    def _mark(self, node: _Node, state: int) -> None:
        if state > node.state:
            node.state = state
        if node.kind == EFFECT:
            self.scheduler.enqueue(node.id)
        elif node.kind == MEMO:
            for observer_id in list(node.observers):
                observer = self._nodes.get(observer_id)
                if observer is not None:
                    self._mark(observer, CHECK)

    def _run_queued(self, node_id: int) -> None:
        node = self._nodes.get(node_id)
        if node is not None:
            self._update(node)

    def _update(self, node: _Node) -> None:
        if node.running:
            raise CellflowError(f"{node.kind} {node.id} depends on itself")
        if node.state == CHECK:
            for source_id in list(node.sources):
                source = self._nodes.get(source_id)
                if source is not None and source.kind == MEMO:
                    self._update(source)
                    if node.state == DIRTY:
                        break
        if node.state == DIRTY:
            self._execute(node)
        else:
            node.state = CLEAN

    def _execute(self, node: _Node) -> None:
        if node.running:
            raise CellflowError(f"{node.kind} {node.id} depends on itself")
        self._reset(node)
        prev_observer, prev_owner = self._observer, self._owner
        self._observer = self._owner = node
        node.running = True
        node.state = CLEAN
        token = _current_runtime.set(self)
        try:
            result = node.fn()
        finally:
            _current_runtime.reset(token)
            node.running = False
            self._observer, self._owner = prev_observer, prev_owner

        if node.kind == EFFECT:
            if callable(result):
                if node.id in self._nodes:
                    node.cleanups.append(result)
                else:
                    # Disposed itself while running
                    result()
            return
        old = node.value
        if old is _UNSET or node.equals is None or not node.equals(old, result):
            node.value = result
            for observer_id in node.observers:
                observer = self._nodes.get(observer_id)
                if observer is not None:
                    observer.state = DIRTY

    def _reset(self, node: _Node) -> None:
        """Run cleanups, dispose owned nodes and drop dependency edges."""
        self._run_cleanups(node)
        owned, node.owned = node.owned, []
        for child_id in reversed(owned):
            self.dispose(child_id)
        for source_id in node.sources:
            source = self._nodes.get(source_id)
            if source is not None:
                source.observers.pop(node.id, None)
        node.sources.clear()

    @staticmethod
    def _run_cleanups(node: _Node) -> None:
        cleanups, node.cleanups = node.cleanups, []
        error: Optional[BaseException] = None
        for cleanup in reversed(cleanups):
            try:
                cleanup()
            except Exception as exc:
                if error is None:
                    error = exc
                else:
                    logger.debug("Additional cleanup error: %r", exc)
        if error is not None:
            raise error

    # ------------------------------------------------------------------
    # Disposal
    # ------------------------------------------------------------------

    def dispose(self, node_id: int) -> None:
        """Dispose a node and everything it owns.  Disposing twice is a no-op."""
        node = self._nodes.pop(node_id, None)
        if node is None:
            return
        self.scheduler.discard(node_id)
        for observer_id in node.observers:
            observer = self._nodes.get(observer_id)
            if observer is not None:
                observer.sources.pop(node_id, None)
        node.observers.clear()
        self._reset(node)


# ---------------------------------------------------------------------------
# Handles
# ---------------------------------------------------------------------------


class Signal(Generic[T]):
    """A writable reactive cell."""

    __slots__ = ("runtime", "id")

    def __init__(self, runtime: Runtime, node_id: int) -> None:
        self.runtime = runtime
        self.id = node_id

    def get(self) -> T:
        return self.runtime.read(self.id)

    __call__ = get

    def peek(self) -> T:
        return self.runtime.peek(self.id)

    def set(self, value: Union[T, Callable[[T], T]]) -> None:
        """Store *value*; a callable is treated as an updater of the old value."""
        if callable(value):
            value = value(self.runtime.peek(self.id))
        self.runtime.write(self.id, value)

    def update(self, fn: Callable[[T], T]) -> None:
        self.runtime.write(self.id, fn(self.runtime.peek(self.id)))

    @property
    def value(self) -> T:
        return self.get()

    @value.setter
    def value(self, value: T) -> None:
        self.runtime.write(self.id, value)

    def dispose(self) -> None:
        self.runtime.dispose(self.id)

    def __repr__(self) -> str:
        return f"Signal(id={self.id})"


class Memo(Generic[T]):
    """A lazily recomputed derived value."""

    __slots__ = ("runtime", "id")

    def __init__(self, runtime: Runtime, node_id: int) -> None:
        self.runtime = runtime
        self.id = node_id

    def get(self) -> T:
        return self.runtime.read(self.id)

    __call__ = get

    def peek(self) -> T:
        return self.runtime.peek(self.id)

    def invalidate(self) -> None:
        self.runtime.invalidate(self.id)

    def dispose(self) -> None:
        self.runtime.dispose(self.id)

    def __repr__(self) -> str:
        return f"Memo(id={self.id})"


class Effect:
    """Handle to a running effect; calling it disposes the effect."""

    __slots__ = ("runtime", "id")

    def __init__(self, runtime: Runtime, node_id: int) -> None:
        self.runtime = runtime
        self.id = node_id

    @property
    def disposed(self) -> bool:
        return not self.runtime.is_alive(self.id)

    def invalidate(self) -> None:
        self.runtime.invalidate(self.id)

    def dispose(self) -> None:
        self.runtime.dispose(self.id)

    __call__ = dispose

    def __repr__(self) -> str:
        return f"Effect(id={self.id})"


@dataclass
class Ref(Generic[T]):
    """A plain mutable box; writing ``current`` notifies nobody."""

    current: T


# ---------------------------------------------------------------------------
# Current runtime
# ---------------------------------------------------------------------------

_current_runtime: ContextVar[Optional[Runtime]] = ContextVar(
    "cellflow_runtime", default=None
)
_default_runtime: Optional[Runtime] = None


def get_runtime() -> Runtime:
    """Return the active runtime, creating a process default on first use."""
    global _default_runtime
    runtime = _current_runtime.get()
    if runtime is not None:
        return runtime
    if _default_runtime is None:
        _default_runtime = Runtime()
    return _default_runtime


# ---------------------------------------------------------------------------
# Module-level API
# ---------------------------------------------------------------------------


def signal(initial: T, *, equals: Union[EqualsFn, bool, None] = None) -> Signal[T]:
    return get_runtime().signal(initial, equals=equals)


def create_signal(
    initial: T, *, equals: Union[EqualsFn, bool, None] = None
) -> tuple[Callable[[], T], Callable[[Any], None]]:
    """Create a signal and return its ``(getter, setter)`` pair."""
    sig = get_runtime().signal(initial, equals=equals)
    return sig.get, sig.set


def create_memo(
    fn: Callable[[], T], *, equals: Union[EqualsFn, bool, None] = None
) -> Memo[T]:
    return get_runtime().memo(fn, equals=equals)


def create_effect(fn: Callable[[], Any]) -> Effect:
    """Run *fn* now and again whenever a signal it read changes.

    *fn* may return a cleanup callable, invoked before the next run and on
    disposal.  The returned handle disposes the effect when called.
    """
    return get_runtime().effect(fn)


def create_reducer(
    reducer: Callable[[T, Any], T], initial: T
) -> tuple[Callable[[], T], Callable[[Any], None]]:
    sig = get_runtime().signal(initial)

    def dispatch(action: Any) -> None:
        sig.update(lambda state: reducer(state, action))

    return sig.get, dispatch


def create_ref(value: T) -> Ref[T]:
    return Ref(value)


def create_previous(source: Callable[[], T]) -> Callable[[], Optional[T]]:
    """Track the value *source* held before its most recent change."""
    runtime = get_runtime()
    previous: Signal[Optional[T]] = runtime.signal(None, equals=False)
    last = Ref(_UNSET)

    def track() -> None:
        value = source()
        old = last.current
        last.current = value
        if old is not _UNSET and not default_equals(old, value):
            runtime.write(previous.id, old)

    runtime.effect(track)
    return previous.get


def untrack(fn: Callable[[], T]) -> T:
    return get_runtime().untrack(fn)


def batch(fn: Callable[[], T]) -> T:
    """Run *fn* with flushing suppressed, then flush once."""
    return get_runtime().batch(fn)


def batching():
    return get_runtime().batching()


def on_cleanup(fn: Cleanup) -> None:
    get_runtime().on_cleanup(fn)


# ---------------------------------------------------------------------------
# Time-based derived signals
# ---------------------------------------------------------------------------


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


def _timed_signal(
    runtime: Runtime, source: Callable[[], T]
) -> tuple[Signal[T], Callable[[T], None]]:
    out: Signal[T] = runtime.signal(runtime.untrack(source))

    def publish(value: T) -> None:
        if runtime.is_alive(out.id):
            runtime.write(out.id, value)

    return out, publish


def create_deferred(source: Callable[[], T]) -> Callable[[], T]:
    """Follow *source* one event-loop turn behind.

    Without a running loop the value is passed through immediately.
    """
    runtime = get_runtime()
    deferred, publish = _timed_signal(runtime, source)

    def track() -> None:
        value = source()
        loop = _running_loop()
        if loop is None:
            publish(value)
            return
        handle = loop.call_soon(publish, value)
        runtime.on_cleanup(handle.cancel)

    runtime.effect(track)
    return deferred.get


def create_throttled(source: Callable[[], T], delay: float) -> Callable[[], T]:
    """Follow *source*, publishing at most once every *delay* seconds.

    A change inside the window is held back and the latest value is
    published when the window closes.
    """
    runtime = get_runtime()
    throttled, publish = _timed_signal(runtime, source)
    state: dict[str, Any] = {"last": None, "pending": None, "latest": _UNSET}

    def flush_pending() -> None:
        state["pending"] = None
        state["last"] = time.monotonic()
        publish(state["latest"])

    def track() -> None:
        value = source()
        # A re-run cancels the timer; a change still inside the window re-arms it
        runtime.on_cleanup(stop)
        if state["latest"] is _UNSET:
            state["latest"] = value
            return
        state["latest"] = value
        now = time.monotonic()
        last = state["last"]
        if last is None or now - last >= delay:
            state["last"] = now
            publish(value)
            return
        loop = _running_loop()
        if loop is None:
            publish(value)
        else:
            state["pending"] = loop.call_later(delay - (now - last), flush_pending)

    def stop() -> None:
        if state["pending"] is not None:
            state["pending"].cancel()
            state["pending"] = None

    runtime.effect(track)
    return throttled.get


def create_debounced(source: Callable[[], T], delay: float) -> Callable[[], T]:
    """Follow *source* once it has stopped changing for *delay* seconds."""
    runtime = get_runtime()
    debounced, publish = _timed_signal(runtime, source)
    first = Ref(True)

    def track() -> None:
        value = source()
        if first.current:
            first.current = False
            return
        loop = _running_loop()
        if loop is None:
            publish(value)
            return
        handle = loop.call_later(delay, publish, value)
        # Re-running the effect cancels the previous timer
        runtime.on_cleanup(handle.cancel)

    runtime.effect(track)
    return debounced.get
