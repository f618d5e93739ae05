"""Cooperative single-threaded event loop.

Page-side notifications (mutation batches, animation frames, color-scheme
changes) arrive from Playwright's dispatcher and are queued here, so sync
logic never runs re-entrantly inside a Playwright call.
"""
from __future__ import annotations

import heapq
import itertools
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, List, Tuple

logger = logging.getLogger(__name__)


@dataclass
class TimerHandle:
    deadline: float
    callback: Callable[[], Any]
    cancelled: bool = field(default=False)

    def cancel(self) -> None:
        self.cancelled = True


class EventLoop:
    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._ready: Deque[Callable[[], Any]] = deque()
        self._timers: List[Tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> None:
        if args:
            self._ready.append(lambda: callback(*args))
        else:
            self._ready.append(callback)

    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle:
        handle = TimerHandle(deadline=self._clock() + max(0.0, delay), callback=callback)
        heapq.heappush(self._timers, (handle.deadline, next(self._seq), handle))
        return handle

    def pending(self) -> int:
        live_timers = sum(1 for _, _, h in self._timers if not h.cancelled)
        return len(self._ready) + live_timers

    def run_pending(self) -> int:
        """Run due timers and every queued callback. Returns how many ran.

        Callbacks queued while draining run in the same call; a callback that
        raises is logged and does not stop the rest.
        """
        now = self._clock()
        while self._timers and self._timers[0][0] <= now:
            _, _, handle = heapq.heappop(self._timers)
            if not handle.cancelled:
                self._ready.append(handle.callback)

        ran = 0
        while self._ready:
            callback = self._ready.popleft()
            ran += 1
            try:
                callback()
            except Exception:  # noqa: BLE001
                logger.exception("queued callback failed")
        return ran
