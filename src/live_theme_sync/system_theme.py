"""System color-scheme preference, as the browser reports it."""
from __future__ import annotations

import logging
from typing import Callable, List

from .dom import BINDING_NAME, PlaywrightDocument

logger = logging.getLogger(__name__)

DARK_QUERY = "(prefers-color-scheme: dark)"
SCHEME_CHANNEL = "color-scheme"

_LISTENER_JS = """(() => {
    if (window.__liveThemeSyncScheme) return;
    window.__liveThemeSyncScheme = true;
    const query = window.matchMedia(%(query)r);
    query.addEventListener('change', (event) => {
        window[%(binding)r](%(channel)r, event.matches);
    });
})()"""


class SystemThemeSignal:
    def is_dark(self) -> bool:
        raise NotImplementedError

    def subscribe(self, callback: Callable[[bool], None]) -> Callable[[], None]:
        """Call ``callback(is_dark)`` on every preference change; returns an unsubscribe function."""
        raise NotImplementedError


class MediaQuerySignal(SystemThemeSignal):
    """``matchMedia('(prefers-color-scheme: dark)')`` in the synced page.

    The page must not have its color scheme emulated (attach to a real
    browser, or launch with ``color_scheme="no-override"``), otherwise this
    reports the emulated value instead of the OS preference.
    """

    def __init__(self, document: PlaywrightDocument) -> None:
        self.document = document
        self._callbacks: List[Callable[[bool], None]] = []
        self._unsubscribe: Callable[[], None] | None = None

    def is_dark(self) -> bool:
        return bool(
            self.document.page.evaluate("q => window.matchMedia(q).matches", DARK_QUERY)
        )

    def _listener_script(self) -> str:
        return _LISTENER_JS % {
            "query": DARK_QUERY,
            "binding": BINDING_NAME,
            "channel": SCHEME_CHANNEL,
        }

    def _start(self) -> None:
        self.document.install()
        self._unsubscribe = self.document.subscribe(SCHEME_CHANNEL, self._notify)
        script = self._listener_script()
        # Future documents get the listener at creation; the current one now.
        self.document.page.add_init_script(script)
        self.document.page.evaluate(script)

    def _notify(self, payload) -> None:
        dark = bool(payload)
        logger.info("system color scheme changed to %s", "dark" if dark else "light")
        for callback in list(self._callbacks):
            callback(dark)

    def subscribe(self, callback: Callable[[bool], None]) -> Callable[[], None]:
        if self._unsubscribe is None:
            self._start()
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)
            if not self._callbacks and self._unsubscribe is not None:
                self._unsubscribe()
                self._unsubscribe = None

        return unsubscribe
