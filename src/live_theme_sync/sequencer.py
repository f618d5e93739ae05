"""Open the lab menu, flip the theme switch, close the menu."""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from .config import SyncConfig
from .dom import Document, Element
from .watcher import Watch, wait_for_appearance

logger = logging.getLogger(__name__)


def select_theme_switch(
    switches: Sequence[Element], index: int = 1, minimum: int = 2
) -> Optional[Element]:
    """Pick the theme switch out of the menu's switch collection.

    The host menu renders its switches in a fixed order and the theme switch
    is the second one. Nothing on the element itself identifies it.
    """
    if len(switches) < max(minimum, index + 1):
        return None
    return switches[index]


class InteractionSequencer:
    def __init__(self, document: Document, config: SyncConfig) -> None:
        self.document = document
        self.config = config
        self.in_flight = False
        self._watches: List[Watch] = []
        self._epoch = 0

    def run(self, trigger: Element) -> bool:
        """Start one open/toggle/close sequence. Returns False if refused.

        Only refuses when ``serialize_sequences`` is on and another sequence
        has not finished yet.
        """
        if self.config.serialize_sequences and self.in_flight:
            logger.info("sequence already in flight; skipping")
            return False

        self.in_flight = True
        epoch = self._epoch
        logger.info("opening menu via %s", self.config.trigger_selector)
        trigger.click()
        watch = wait_for_appearance(
            self.document,
            self.config.switch_selector,
            lambda: self._on_switches(trigger, epoch),
            timeout=self.config.wait_timeout_seconds,
            on_timeout=self._release,
        )
        if not watch.done:
            self._watches.append(watch)
        return True

    def reset(self) -> None:
        """Abandon every unfinished sequence.

        Called when the document they were clicking in goes away: its
        observers and pending frames died with it and will never report.
        """
        self._epoch += 1
        watches, self._watches = self._watches, []
        for watch in watches:
            watch.cancel()
        if self.in_flight:
            logger.info("document replaced mid-sequence; abandoning it")
        self._release()

    def _release(self) -> None:
        self._watches = [w for w in self._watches if not w.done]
        self.in_flight = False

    def _on_switches(self, trigger: Element, epoch: int) -> None:
        if epoch != self._epoch:
            return
        # Re-query: the menu may have re-created its switches since opening.
        switches = self.document.query_all(self.config.switch_selector)
        target = select_theme_switch(
            switches, self.config.switch_index, self.config.min_switches
        )
        if target is None:
            logger.info(
                "menu shows %d switch(es), need %d; leaving it alone",
                len(switches),
                self.config.min_switches,
            )
            self._release()
            return

        target.click()
        self.document.request_animation_frame(lambda: self._close(trigger, epoch))

    def _close(self, trigger: Element, epoch: int) -> None:
        if epoch != self._epoch:
            return
        try:
            trigger.click()
            logger.info("theme toggled; menu closed")
        finally:
            self._release()
