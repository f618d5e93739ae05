"""Wait for a selector to match, driven by DOM mutations instead of sleeps."""
from __future__ import annotations

import logging
from typing import Callable, Optional

from .dom import Document
from .loop import TimerHandle

logger = logging.getLogger(__name__)


class Watch:
    """Handle for one pending ``wait_for_appearance`` call.

    ``on_ready`` fires at most once. ``cancel()`` stops observing without
    firing anything.
    """

    def __init__(self, document: Document, selector: str, on_ready: Callable[[], None]) -> None:
        self.document = document
        self.selector = selector
        self._on_ready = on_ready
        self._on_timeout: Optional[Callable[[], None]] = None
        self._disconnect: Optional[Callable[[], None]] = None
        self._timer: Optional[TimerHandle] = None
        self.fired = False
        self.cancelled = False
        self.timed_out = False

    @property
    def done(self) -> bool:
        return self.fired or self.cancelled or self.timed_out

    @property
    def observing(self) -> bool:
        return self._disconnect is not None

    def _teardown(self) -> None:
        if self._disconnect is not None:
            disconnect, self._disconnect = self._disconnect, None
            disconnect()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self) -> None:
        if self.done:
            return
        self.fired = True
        self._teardown()
        self._on_ready()

    def _check(self) -> bool:
        if self.done:
            return True
        if self.document.count(self.selector) > 0:
            self._fire()
            return True
        return False

    def _observe(self) -> None:
        if self._check():
            return
        disconnect = self.document.observe_mutations(self._check)
        if self.done:
            disconnect()
            return
        self._disconnect = disconnect
        # The page keeps running between the check and the observer setup;
        # a match that landed in that gap produces no further mutation.
        self._check()

    def _expire(self) -> None:
        if self.done:
            return
        self.timed_out = True
        self._timer = None
        self._teardown()
        logger.info("gave up waiting for %s", self.selector)
        if self._on_timeout is not None:
            self._on_timeout()

    def cancel(self) -> None:
        if self.done:
            return
        self.cancelled = True
        self._teardown()


def wait_for_appearance(
    document: Document,
    selector: str,
    on_ready: Callable[[], None],
    *,
    timeout: Optional[float] = None,
    on_timeout: Optional[Callable[[], None]] = None,
) -> Watch:
    """Call ``on_ready`` once ``selector`` matches at least one element.

    Fires synchronously when the selector already matches. Otherwise observes
    body mutations (deferring until load when there is no body yet) and fires
    on the first batch after which the selector matches. With ``timeout=None``
    the wait is unbounded.
    """
    watch = Watch(document, selector, on_ready)
    watch._on_timeout = on_timeout

    if document.count(selector) > 0:
        watch._fire()
        return watch

    if timeout is not None:
        watch._timer = document.call_later(timeout, watch._expire)

    if document.has_body():
        watch._observe()
    else:
        logger.debug("no body yet; deferring watch on %s until load", selector)
        document.on_load(lambda: None if watch.done else watch._observe())
    return watch
