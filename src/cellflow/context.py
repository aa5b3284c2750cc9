"""Scoped values passed down the component tree without prop threading."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Generic, Iterator, Optional, TypeVar

from cellflow.signals import Runtime, get_runtime

T = TypeVar("T")
R = TypeVar("R")


class Context(Generic[T]):
    """A key whose value is whatever the innermost ``provide`` set.

    Provider stacks live on the runtime, so two runtimes never see each
    other's values.
    """

    def __init__(self, default: T, name: Optional[str] = None) -> None:
        self.default = default
        self.name = name or "Context"

    def _stack(self, runtime: Runtime) -> list[Any]:
        return runtime.contexts.setdefault(self, [])

    @contextmanager
    def provide(self, value: T, runtime: Optional[Runtime] = None) -> Iterator[T]:
        stack = self._stack(runtime or get_runtime())
        stack.append(value)
        depth = len(stack)
        try:
            yield value
        finally:
            # Drop anything a failed inner provider left behind
            del stack[depth - 1 :]

    def get(self, runtime: Optional[Runtime] = None) -> T:
        stack = (runtime or get_runtime()).contexts.get(self)
        if stack:
            return stack[-1]
        return self.default

    def is_provided(self, runtime: Optional[Runtime] = None) -> bool:
        return bool((runtime or get_runtime()).contexts.get(self))

    def __repr__(self) -> str:
        return f"Context({self.name!r})"


def create_context(default: T, name: Optional[str] = None) -> Context[T]:
    return Context(default, name)


def provide(context: Context[T], value: T, render_fn: Callable[[], R]) -> R:
    """Call *render_fn* with *context* set to *value*."""
    with context.provide(value):
        return render_fn()


def use_context(context: Context[T]) -> T:
    return context.get()


def has_context(context: Context[Any]) -> bool:
    return context.is_provided()
