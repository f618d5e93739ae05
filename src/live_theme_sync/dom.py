"""Document surface the sync core talks to, and its Playwright implementation.

The core only needs a handful of DOM operations: count/query by selector,
read a root attribute, click, observe body mutations, wait for load and for
the next animation frame. ``PlaywrightDocument`` runs the observing parts
inside the page and reports back through a single exposed binding; every
report is queued on the ``EventLoop`` rather than handled in place.
"""
from __future__ import annotations

import itertools
import logging
from typing import Any, Callable, Dict, List, Optional

from .loop import EventLoop, TimerHandle

logger = logging.getLogger(__name__)

BINDING_NAME = "__liveThemeSync"

_OBSERVE_JS = """([binding, channel]) => {
    const registry = (window.__liveThemeSyncObservers = window.__liveThemeSyncObservers || {});
    const observer = new MutationObserver(() => window[binding](channel, null));
    observer.observe(document.body, { childList: true, subtree: true });
    registry[channel] = observer;
}"""

_DISCONNECT_JS = """(channel) => {
    const registry = window.__liveThemeSyncObservers || {};
    if (registry[channel]) {
        registry[channel].disconnect();
        delete registry[channel];
    }
}"""

_FRAME_JS = """([binding, channel]) => {
    requestAnimationFrame(() => window[binding](channel, null));
}"""


class Element:
    def click(self) -> None:
        raise NotImplementedError


class Document:
    """Abstract DOM access used by the watcher, reconciler and sequencer."""

    def count(self, selector: str) -> int:
        raise NotImplementedError

    def query(self, selector: str) -> Optional[Element]:
        raise NotImplementedError

    def query_all(self, selector: str) -> List[Element]:
        raise NotImplementedError

    def root_attribute(self, name: str) -> Optional[str]:
        raise NotImplementedError

    def has_body(self) -> bool:
        raise NotImplementedError

    def ready_state(self) -> str:
        raise NotImplementedError

    def observe_mutations(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Observe child-list/subtree changes on the body; returns a disconnect function."""
        raise NotImplementedError

    def on_load(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` once, when the current document finishes loading."""
        raise NotImplementedError

    def on_every_load(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Run ``callback`` after each document load; returns an unsubscribe function."""
        raise NotImplementedError

    def request_animation_frame(self, callback: Callable[[], None]) -> None:
        raise NotImplementedError

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        raise NotImplementedError


class PlaywrightElement(Element):
    def __init__(self, handle) -> None:
        self.handle = handle

    def click(self) -> None:
        # HTMLElement.click(): the page sees a plain activation, no pointer
        # sequence or actionability checks.
        self.handle.evaluate("el => el.click()")


class PlaywrightDocument(Document):
    def __init__(self, page, loop: EventLoop) -> None:
        self.page = page
        self.loop = loop
        self._channels: Dict[str, Callable[[Any], None]] = {}
        self._ids = itertools.count(1)
        self._installed = False

    def install(self) -> None:
        if self._installed:
            return
        self.page.expose_binding(BINDING_NAME, self._on_binding)
        self._installed = True

    def _on_binding(self, source, channel: str, payload: Any = None) -> None:
        # Runs inside Playwright's dispatcher; defer to the loop.
        self.loop.call_soon(self._dispatch, channel, payload)

    def _dispatch(self, channel: str, payload: Any) -> None:
        callback = self._channels.get(channel)
        if callback is None:
            logger.debug("dropping notification for closed channel %s", channel)
            return
        callback(payload)

    def _new_channel(self, prefix: str) -> str:
        return f"{prefix}:{next(self._ids)}"

    def subscribe(self, channel: str, callback: Callable[[Any], None]) -> Callable[[], None]:
        self._channels[channel] = callback

        def unsubscribe() -> None:
            self._channels.pop(channel, None)

        return unsubscribe

    def count(self, selector: str) -> int:
        return self.page.locator(selector).count()

    def query(self, selector: str) -> Optional[Element]:
        handle = self.page.query_selector(selector)
        if handle is None:
            return None
        return PlaywrightElement(handle)

    def query_all(self, selector: str) -> List[Element]:
        return [PlaywrightElement(h) for h in self.page.query_selector_all(selector)]

    def root_attribute(self, name: str) -> Optional[str]:
        return self.page.evaluate("name => document.documentElement.getAttribute(name)", name)

    def has_body(self) -> bool:
        return bool(self.page.evaluate("() => document.body !== null"))

    def ready_state(self) -> str:
        return str(self.page.evaluate("() => document.readyState"))

    def observe_mutations(self, callback: Callable[[], None]) -> Callable[[], None]:
        self.install()
        channel = self._new_channel("mutation")
        unsubscribe = self.subscribe(channel, lambda _payload: callback())
        self.page.evaluate(_OBSERVE_JS, [BINDING_NAME, channel])

        def disconnect() -> None:
            unsubscribe()
            try:
                self.page.evaluate(_DISCONNECT_JS, channel)
            except Exception as exc:  # noqa: BLE001
                # The document may already be gone; its observer went with it.
                logger.debug("observer %s disconnect failed: %s", channel, exc)

        return disconnect

    def on_load(self, callback: Callable[[], None]) -> None:
        self.page.once("load", lambda *_: self.loop.call_soon(callback))

    def on_every_load(self, callback: Callable[[], None]) -> Callable[[], None]:
        def handler(*_: Any) -> None:
            self.loop.call_soon(callback)

        self.page.on("load", handler)
        return lambda: self.page.remove_listener("load", handler)

    def request_animation_frame(self, callback: Callable[[], None]) -> None:
        self.install()
        channel = self._new_channel("frame")

        def fire(_payload: Any) -> None:
            self._channels.pop(channel, None)
            callback()

        self.subscribe(channel, fire)
        self.page.evaluate(_FRAME_JS, [BINDING_NAME, channel])

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return self.loop.call_later(delay, callback)
