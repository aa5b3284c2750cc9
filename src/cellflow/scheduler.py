"""Batching and flush ordering for the reactive runtime.

The scheduler owns the dirty-effect queue.  Writes made while a batch is open
(or while a flush is already running) only enqueue; the outermost batch exit
drains the queue in passes.  Each pass runs the snapshot of queued effects in
ascending id order, which is creation order, so a parent effect always runs
before effects it created.  Anything dirtied during a pass is picked up by the
next pass of the same flush.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from cellflow.errors import TooManyUpdatesError

logger = logging.getLogger(__name__)


class Scheduler:
    """Coalesces writes into flushes and bounds how long a flush may loop."""

    def __init__(
        self,
        run: Callable[[int], None],
        max_update_depth: int = 100,
    ) -> None:
        self._run = run
        self.max_update_depth = max(1, max_update_depth)
        self._queue: dict[int, None] = {}
        self._batch_depth = 0
        self._flushing = False
        self.flush_count = 0
        # Told about an aborted flush before the error propagates to the writer
        self.on_overflow: Optional[Callable[[TooManyUpdatesError], None]] = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def is_batching(self) -> bool:
        return self._batch_depth > 0

    @property
    def is_flushing(self) -> bool:
        return self._flushing

    @property
    def pending(self) -> int:
        """Number of effects waiting for the next flush pass."""
        return len(self._queue)

    def enqueue(self, node_id: int) -> None:
        self._queue[node_id] = None

    def discard(self, node_id: int) -> None:
        self._queue.pop(node_id, None)

    # ------------------------------------------------------------------
    # Batching
    # ------------------------------------------------------------------

    @contextmanager
    def batch(self) -> Iterator[None]:
        """Suppress flushes until the outermost ``batch`` exits.

        If the body raises, queued effects stay queued for the next flush
        rather than running against half-applied state.
        """
        self._batch_depth += 1
        try:
            yield
        finally:
            self._batch_depth -= 1
        if self._batch_depth == 0:
            self.request_flush()

    def request_flush(self) -> None:
        """Flush now unless a batch is open or a flush is already running."""
        if self._batch_depth > 0 or self._flushing:
            return
        if self._queue:
            self.flush()

    # ------------------------------------------------------------------
    # Flushing
    # ------------------------------------------------------------------

    def flush(self) -> None:
        if self._flushing:
            return
        self._flushing = True
        self.flush_count += 1
        passes = 0
        try:
            while self._queue:
                passes += 1
                if passes > self.max_update_depth:
                    dropped = len(self._queue)
                    self._queue.clear()
                    logger.debug(
                        "Flush aborted after %d passes, dropped %d effects",
                        self.max_update_depth,
                        dropped,
                    )
                    error = TooManyUpdatesError(self.max_update_depth)
                    if self.on_overflow is not None:
                        self.on_overflow(error)
                    raise error
                pending = sorted(self._queue)
                self._queue.clear()
                for index, node_id in enumerate(pending):
                    try:
                        self._run(node_id)
                    except BaseException:
                        # Effects not yet reached this pass stay queued
                        for rest in pending[index + 1 :]:
                            self._queue[rest] = None
                        raise
        finally:
            self._flushing = False
