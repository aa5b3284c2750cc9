"""Component instances and call-order hooks.

Every ``@component`` function called during a render gets a
``ComponentInstance``, found again on the next render by its function and
``key`` (or its position among calls to the same function).  The instance
owns a ``HookSlotTable``; hooks claim slots in call order, so a component
must call the same hooks in the same order on every render.  Breaking that
raises ``HookOrderError`` instead of silently handing one hook another's
state.

Reactive nodes created by hooks are detached from the effect that happens to
be rendering and are owned by their slot instead.  Unmounting an instance
unmounts its children first, then runs slot disposers newest first.
"""

from __future__ import annotations

import functools
import itertools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence, TypeVar, Union

from cellflow.context import Context, create_context
from cellflow.errors import CellflowError, HookOrderError, InvalidHookCallError
from cellflow.events import Key, MouseEvent
from cellflow.focus import FOCUS_CONTEXT, FocusManager
from cellflow.hotkeys import GLOBAL_SCOPE, matches_hotkey, parse_hotkeys
from cellflow.signals import Ref, Runtime, default_equals, get_runtime

logger = logging.getLogger(__name__)

T = TypeVar("T")

_hook_ids = itertools.count(1)

# Provided by the running App; see ``cellflow.app.AppContext``
APP_CONTEXT: Context[Any] = create_context(None, "App")


# ---------------------------------------------------------------------------
# Slot table
# ---------------------------------------------------------------------------


@dataclass
class HookSlot:
    kind: str
    value: Any
    dispose: Optional[Callable[[], None]] = None


class HookSlotTable:
    """Per-instance hook state, addressed by call position."""

    def __init__(self) -> None:
        self.slots: list[HookSlot] = []
        self.cursor = 0
        self.committed = False

    def __len__(self) -> int:
        return len(self.slots)

    def begin(self) -> None:
        self.cursor = 0

    def next(self, kind: str) -> Optional[HookSlot]:
        """Claim the next slot, or return ``None`` if it has to be created."""
        index = self.cursor
        if index < len(self.slots):
            slot = self.slots[index]
            if slot.kind != kind:
                raise HookOrderError(
                    f"hook #{index} was {slot.kind!r} on the previous render "
                    f"but is {kind!r} now"
                )
            self.cursor += 1
            return slot
        if self.committed:
            raise HookOrderError(
                f"rendered more hooks than the previous render ({len(self.slots)})"
            )
        return None

    def add(self, kind: str, value: Any, dispose: Optional[Callable[[], None]] = None) -> HookSlot:
        slot = HookSlot(kind, value, dispose)
        self.slots.append(slot)
        self.cursor += 1
        return slot

    def end(self) -> None:
        if self.committed and self.cursor != len(self.slots):
            raise HookOrderError(
                f"rendered {self.cursor} hooks, previous render used {len(self.slots)}"
            )
        self.committed = True

    def dispose(self) -> None:
        """Run every slot disposer once, newest first."""
        slots, self.slots = self.slots, []
        error: Optional[BaseException] = None
        for slot in reversed(slots):
            if slot.dispose is None:
                continue
            try:
                slot.dispose()
            except Exception as exc:
                if error is None:
                    error = exc
                else:
                    logger.debug("Additional dispose error: %r", exc)
        if error is not None:
            raise error


# ---------------------------------------------------------------------------
# Component instances
# ---------------------------------------------------------------------------


class ComponentInstance:
    def __init__(
        self,
        fn: Callable[..., Any],
        runtime: Runtime,
        key: Any = None,
        parent: Optional[ComponentInstance] = None,
    ) -> None:
        self.fn = getattr(fn, "__cellflow_render__", fn)
        self.runtime = runtime
        self.key = key
        self.parent = parent
        self.hooks = HookSlotTable()
        self.children: dict[tuple[Any, ...], ComponentInstance] = {}
        self.mounted = True
        self._seen: set[tuple[Any, ...]] = set()
        self._occurrences: dict[tuple[Any, ...], int] = {}
        self.render_count = 0

    def __repr__(self) -> str:
        name = getattr(self.fn, "__name__", "component")
        return f"<ComponentInstance {name} key={self.key!r}>"

    def render(self, *args: Any, **kwargs: Any) -> Any:
        if not self.mounted:
            raise CellflowError(f"{self!r} has been unmounted")
        self.hooks.begin()
        self._seen = set()
        self._occurrences = {}
        self.runtime.render_stack.append(self)
        try:
            result = self.fn(*args, **kwargs)
        except Exception:
            if not self.hooks.committed:
                # No render ever completed; the next one starts with no slots
                self.hooks.dispose()
            raise
        finally:
            self.runtime.render_stack.pop()
        self.hooks.end()
        self.render_count += 1
        for ident in [i for i in self.children if i not in self._seen]:
            self.children.pop(ident).unmount()
        return result

    def child(self, fn: Callable[..., Any], key: Any = None) -> ComponentInstance:
        """Find or create the child instance for this call of *fn*."""
        base = (fn, key)
        occurrence = self._occurrences.get(base, 0)
        self._occurrences[base] = occurrence + 1
        ident = (fn, key, occurrence)
        self._seen.add(ident)
        instance = self.children.get(ident)
        if instance is None:
            instance = ComponentInstance(fn, self.runtime, key, parent=self)
            self.children[ident] = instance
        return instance

    def unmount(self) -> None:
        if not self.mounted:
            return
        self.mounted = False
        children, self.children = self.children, {}
        for child in reversed(list(children.values())):
            child.unmount()
        self.hooks.dispose()


def component(fn: Callable[..., T]) -> Callable[..., T]:
    """Give *fn* its own hook state when it is called during a render.

    A ``key=`` keyword identifies the instance among siblings; without it
    instances are matched by call position.  Called outside any render, the
    component renders once with throwaway state.
    """

    @functools.wraps(fn)
    def wrapper(*args: Any, key: Any = None, **kwargs: Any) -> T:
        runtime = get_runtime()
        if runtime.render_stack:
            instance = runtime.render_stack[-1].child(fn, key)
            return instance.render(*args, **kwargs)
        instance = ComponentInstance(fn, runtime, key)
        with runtime.batching():
            try:
                with runtime.detached():
                    return instance.render(*args, **kwargs)
            finally:
                instance.unmount()

    wrapper.__cellflow_render__ = fn  # type: ignore[attr-defined]
    return wrapper


def current_instance(hook: str = "hook") -> ComponentInstance:
    runtime = get_runtime()
    if not runtime.render_stack:
        raise InvalidHookCallError(
            f"{hook}() can only be called while a component is rendering"
        )
    return runtime.render_stack[-1]


def _deps_changed(old: Optional[tuple[Any, ...]], new: Optional[Sequence[Any]]) -> bool:
    if old is None or new is None:
        return True
    if len(old) != len(new):
        return True
    return any(not default_equals(a, b) for a, b in zip(old, new))


# ---------------------------------------------------------------------------
# State hooks
# ---------------------------------------------------------------------------


def use_state(initial: Any) -> tuple[Callable[[], Any], Callable[[Any], None]]:
    """Persistent ``(getter, setter)``.  *initial* may be a zero-arg factory."""
    instance = current_instance("use_state")
    slot = instance.hooks.next("state")
    if slot is None:
        if callable(initial):
            initial = initial()
        with instance.runtime.detached():
            sig = instance.runtime.signal(initial)
        slot = instance.hooks.add("state", sig, sig.dispose)
    sig = slot.value
    return sig.get, sig.set


def use_reducer(
    reducer: Callable[[Any, Any], Any], initial: Any
) -> tuple[Callable[[], Any], Callable[[Any], None]]:
    instance = current_instance("use_reducer")
    slot = instance.hooks.next("reducer")
    if slot is None:
        with instance.runtime.detached():
            sig = instance.runtime.signal(initial)
        record = {"signal": sig, "reducer": reducer}

        def dispatch(action: Any) -> None:
            sig.update(lambda state: record["reducer"](state, action))

        record["dispatch"] = dispatch
        slot = instance.hooks.add("reducer", record, sig.dispose)
    record = slot.value
    record["reducer"] = reducer
    return record["signal"].get, record["dispatch"]


def use_ref(initial: Any = None) -> Ref[Any]:
    instance = current_instance("use_ref")
    slot = instance.hooks.next("ref")
    if slot is None:
        slot = instance.hooks.add("ref", Ref(initial))
    return slot.value


def use_id(prefix: str = "cf") -> str:
    """An id string unique to this hook call and stable across renders."""
    instance = current_instance("use_id")
    slot = instance.hooks.next("id")
    if slot is None:
        slot = instance.hooks.add("id", f"{prefix}-{next(_hook_ids)}")
    return slot.value


# ---------------------------------------------------------------------------
# Effects and memos
# ---------------------------------------------------------------------------


@dataclass
class _Callback:
    fn: Callable[..., Any]
    deps: Optional[tuple[Any, ...]]


def use_effect(fn: Callable[[], Any], deps: Optional[Sequence[Any]] = None) -> None:
    """Run *fn* after the render that first calls it.

    Without *deps* the effect re-runs whenever a signal it read changes.
    With *deps* its reads are untracked and it re-runs only when a render
    passes different deps.  *fn* may return a cleanup.
    """
    instance = current_instance("use_effect")
    runtime = instance.runtime
    slot = instance.hooks.next("effect")
    if slot is None:
        record = _Callback(fn, None if deps is None else tuple(deps))

        def body() -> Any:
            if record.deps is None:
                return record.fn()
            return runtime.untrack(record.fn)

        with runtime.detached():
            effect = runtime.effect(body, defer=True)
        instance.hooks.add("effect", (record, effect), effect.dispose)
        return
    record, effect = slot.value
    record.fn = fn
    if deps is None:
        record.deps = None
    elif _deps_changed(record.deps, deps):
        record.deps = tuple(deps)
        effect.invalidate()


def use_memo(fn: Callable[[], T], deps: Optional[Sequence[Any]] = None) -> T:
    """Cached ``fn()``, recomputed when its signals (or *deps*) change."""
    instance = current_instance("use_memo")
    runtime = instance.runtime
    slot = instance.hooks.next("memo")
    if slot is None:
        record = _Callback(fn, None if deps is None else tuple(deps))

        def compute() -> Any:
            if record.deps is None:
                return record.fn()
            return runtime.untrack(record.fn)

        with runtime.detached():
            memo = runtime.memo(compute)
        slot = instance.hooks.add("memo", (record, memo), memo.dispose)
    else:
        record, memo = slot.value
        record.fn = fn
        if deps is None:
            record.deps = None
        elif _deps_changed(record.deps, deps):
            record.deps = tuple(deps)
            runtime.invalidate(memo.id, notify=False)
    return slot.value[1].get()


def use_callback(fn: Callable[..., T], deps: Optional[Sequence[Any]] = None) -> Callable[..., T]:
    """A stable function identity that always calls the latest *fn*."""
    instance = current_instance("use_callback")
    slot = instance.hooks.next("callback")
    if slot is None:
        record = _Callback(fn, None)

        def stable(*args: Any, **kwargs: Any) -> T:
            return record.fn(*args, **kwargs)

        slot = instance.hooks.add("callback", (record, stable))
    record, stable = slot.value
    record.fn = fn
    return stable


# ---------------------------------------------------------------------------
# App-bound hooks
# ---------------------------------------------------------------------------


def use_app() -> Any:
    """Return the ``AppContext`` of the App rendering this component."""
    current_instance("use_app")
    app = APP_CONTEXT.get()
    if app is None:
        raise CellflowError("use_app() requires a component rendered by render()")
    return app


def _use_handler(kind: str, handler: Callable[..., Any], is_active: bool, register: str) -> None:
    instance = current_instance(f"use_{kind}")
    slot = instance.hooks.next(kind)
    if slot is None:
        record = {"handler": handler, "active": is_active}

        def dispatch(*args: Any) -> None:
            if record["active"]:
                record["handler"](*args)

        app = APP_CONTEXT.get()
        remove = None
        if app is None:
            logger.debug("use_%s outside an App; handler will never fire", kind)
        else:
            remove = getattr(app, register)(dispatch)
        slot = instance.hooks.add(kind, record, remove)
    slot.value["handler"] = handler
    slot.value["active"] = is_active


def use_input(handler: Callable[[str, Key], Any], is_active: bool = True) -> None:
    """Call ``handler(char, key)`` for each key event while mounted."""
    _use_handler("input", handler, is_active, "add_input_handler")


def use_mouse(handler: Callable[[MouseEvent], Any], is_active: bool = True) -> None:
    """Call ``handler(event)`` for every mouse event while mounted."""
    _use_handler("mouse", handler, is_active, "add_mouse_handler")


def use_hotkeys(
    keys: Union[str, Sequence[str]],
    handler: Callable[[], Any],
    scope: str = GLOBAL_SCOPE,
    is_active: bool = True,
) -> None:
    """Call *handler* when a key event matches one of *keys*.

    A hotkey with a *scope* other than ``"global"`` only fires while the
    App's hotkey scope (see ``use_hotkey_scope``) equals it.
    """
    bindings = parse_hotkeys(keys)
    app = APP_CONTEXT.get()

    def on_key(char: str, key: Key) -> None:
        if scope != GLOBAL_SCOPE and (app is None or app.hotkey_scope.peek() != scope):
            return
        for binding in bindings:
            if matches_hotkey(char, key, binding):
                handler()
                return

    use_input(on_key, is_active)


def use_hotkey_scope() -> tuple[Callable[[], str], Callable[[str], None]]:
    """``(getter, setter)`` for the App's active hotkey scope."""
    scope = use_app().hotkey_scope
    return scope.get, scope.set


# ---------------------------------------------------------------------------
# Focus
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FocusState:
    id: str
    is_focused: bool
    focus: Callable[[], None]


def _focus_manager(hook: str) -> FocusManager:
    manager = FOCUS_CONTEXT.get()
    if manager is None:
        raise CellflowError(f"{hook}() requires a component rendered by render()")
    return manager


def use_focus(
    auto_focus: bool = False, is_active: bool = True, id: Optional[str] = None
) -> FocusState:
    """Make this component focusable.

    The component joins the App's focus order when first rendered and leaves
    it on unmount.  With *auto_focus* it takes focus after that render if
    nothing else holds it.
    """
    instance = current_instance("use_focus")
    runtime = instance.runtime
    manager = _focus_manager("use_focus")
    slot = instance.hooks.next("focus")
    if slot is None:
        focus_id = id if id is not None else f"focus-{next(_hook_ids)}"
        manager.register(focus_id, is_active)
        cleanups: list[Callable[[], None]] = []
        if auto_focus:

            def claim() -> None:
                if runtime.untrack(lambda: manager.active_id) is None:
                    manager.focus(focus_id)

            with runtime.detached():
                cleanups.append(runtime.effect(claim, defer=True).dispose)

        def release() -> None:
            for cleanup in cleanups:
                cleanup()
            manager.unregister(focus_id)

        slot = instance.hooks.add("focus", focus_id, release)
    focus_id = slot.value
    manager.set_active(focus_id, is_active)
    return FocusState(focus_id, manager.is_focused(focus_id), lambda: manager.focus(focus_id))


def use_focus_manager() -> FocusManager:
    """The App's ``FocusManager``, for moving focus programmatically."""
    current_instance("use_focus_manager")
    return _focus_manager("use_focus_manager")
