"""Compare the system preference with the page theme and correct a mismatch."""
from __future__ import annotations

import logging
from typing import Optional

from .config import SyncConfig
from .dom import Document
from .sequencer import InteractionSequencer
from .system_theme import SystemThemeSignal

logger = logging.getLogger(__name__)

NO_TRIGGER = "no_trigger"
IN_SYNC = "in_sync"
CORRECTED = "corrected"
BUSY = "busy"


def page_is_dark(document: Document, attribute: str = "lab-style", marker: str = "dark") -> bool:
    value: Optional[str] = document.root_attribute(attribute)
    if value is None:
        return False
    return marker in value


class ThemeReconciler:
    def __init__(
        self,
        document: Document,
        system_signal: SystemThemeSignal,
        config: SyncConfig,
        sequencer: Optional[InteractionSequencer] = None,
    ) -> None:
        self.document = document
        self.system_signal = system_signal
        self.config = config
        self.sequencer = sequencer or InteractionSequencer(document, config)

    def page_is_dark(self) -> bool:
        return page_is_dark(self.document, self.config.theme_attribute, self.config.dark_marker)

    def reconcile(self) -> str:
        trigger = self.document.query(self.config.trigger_selector)
        if trigger is None:
            logger.debug("trigger %s not rendered; nothing to do", self.config.trigger_selector)
            return NO_TRIGGER

        system_dark = self.system_signal.is_dark()
        page_dark = self.page_is_dark()
        if system_dark == page_dark:
            logger.debug("page already %s", "dark" if page_dark else "light")
            return IN_SYNC

        logger.info(
            "system is %s but page is %s; switching",
            "dark" if system_dark else "light",
            "dark" if page_dark else "light",
        )
        if not self.sequencer.run(trigger):
            return BUSY
        return CORRECTED
