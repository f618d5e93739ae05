"""Wire page loads and system theme changes to reconciliation passes."""
from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional

from .config import SyncConfig
from .dom import Document
from .loop import EventLoop
from .reconciler import ThemeReconciler
from .system_theme import SystemThemeSignal
from .watcher import Watch, wait_for_appearance

logger = logging.getLogger(__name__)


class ThemeSyncSession:
    """One sync session over one page.

    Subscriptions are made once in ``start()`` and dropped in ``close()``.
    Each trigger (load, system change) waits for the lab button and then runs
    a reconciliation pass. Passes are not serialized unless the config asks
    for it.
    """

    def __init__(
        self,
        document: Document,
        system_signal: SystemThemeSignal,
        config: SyncConfig,
        loop: EventLoop,
        reconciler: Optional[ThemeReconciler] = None,
    ) -> None:
        self.document = document
        self.system_signal = system_signal
        self.config = config
        self.loop = loop
        self.reconciler = reconciler or ThemeReconciler(document, system_signal, config)
        self.outcomes: List[str] = []
        self._unsubscribers: List[Callable[[], None]] = []
        self._watches: List[Watch] = []
        self.started = False

    @property
    def sequencer(self):
        return self.reconciler.sequencer

    def start(self) -> None:
        if self.started:
            return
        self.started = True
        self._unsubscribers.append(self.document.on_every_load(self._on_load))
        self._unsubscribers.append(self.system_signal.subscribe(self._on_system_change))
        if self.document.ready_state() == "complete":
            # Attached after the load event already fired.
            self.schedule_pass("initial")

    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self._cancel_watches()
        self.sequencer.reset()
        self.started = False

    def _cancel_watches(self) -> None:
        watches, self._watches = self._watches, []
        for watch in watches:
            watch.cancel()

    def _on_load(self) -> None:
        # Waits started in the previous document lost their observers.
        self._cancel_watches()
        self.sequencer.reset()
        self.schedule_pass("load")

    def _on_system_change(self, dark: bool) -> None:
        self.schedule_pass("system-" + ("dark" if dark else "light"))

    def schedule_pass(self, reason: str) -> Watch:
        logger.debug("pass requested (%s)", reason)
        self._watches = [w for w in self._watches if not w.done]
        watch = wait_for_appearance(
            self.document,
            self.config.trigger_selector,
            self._reconcile,
            timeout=self.config.wait_timeout_seconds,
        )
        if not watch.done:
            self._watches.append(watch)
        return watch

    def _reconcile(self) -> None:
        outcome = self.reconciler.reconcile()
        self.outcomes.append(outcome)

    @property
    def settled(self) -> bool:
        return not self.sequencer.in_flight and not any(not w.done for w in self._watches)

    def run(self, wait: Callable[[int], None], keep_running: Callable[[], bool] = lambda: True) -> None:
        """Pump the loop until ``keep_running()`` turns false.

        ``wait`` blocks for the given milliseconds while letting the browser
        deliver events (``page.wait_for_timeout``).
        """
        self.start()
        while keep_running():
            self.loop.run_pending()
            wait(self.config.poll_interval_ms)
        self.loop.run_pending()

    def run_once(self, wait: Callable[[int], None], settle_seconds: float = 10.0) -> Optional[str]:
        """One pass: wait for the trigger, reconcile, pump until the sequence settles.

        Returns the pass outcome, or None when the trigger never appeared in time.
        """
        before = len(self.outcomes)
        self.schedule_pass("check")
        deadline = time.monotonic() + settle_seconds
        while True:
            self.loop.run_pending()
            if len(self.outcomes) > before and self.settled:
                break
            if time.monotonic() >= deadline:
                logger.warning("pass did not settle within %.1fs", settle_seconds)
                break
            wait(self.config.poll_interval_ms)
        self._cancel_watches()
        return self.outcomes[before] if len(self.outcomes) > before else None
