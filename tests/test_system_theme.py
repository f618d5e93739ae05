from __future__ import annotations

from typing import Any, List

from live_theme_sync.dom import PlaywrightDocument
from live_theme_sync.loop import EventLoop
from live_theme_sync.system_theme import DARK_QUERY, SCHEME_CHANNEL, MediaQuerySignal


class _FakePage:
    def __init__(self, dark: bool) -> None:
        self.dark = dark
        self.binding = None
        self.init_scripts: List[str] = []
        self.evaluated: List[Any] = []

    def expose_binding(self, name: str, callback) -> None:
        self.binding = callback

    def add_init_script(self, script: str) -> None:
        self.init_scripts.append(script)

    def evaluate(self, script: str, arg: Any = None) -> Any:
        self.evaluated.append((script, arg))
        if arg == DARK_QUERY:
            return self.dark
        return None


def test_is_dark_reads_media_query() -> None:
    page = _FakePage(dark=True)
    signal = MediaQuerySignal(PlaywrightDocument(page, EventLoop()))
    assert signal.is_dark() is True
    page.dark = False
    assert signal.is_dark() is False


def test_subscribe_installs_listener_for_current_and_future_documents() -> None:
    page = _FakePage(dark=False)
    loop = EventLoop()
    signal = MediaQuerySignal(PlaywrightDocument(page, loop))
    changes = []

    unsubscribe = signal.subscribe(changes.append)
    signal.subscribe(lambda dark: None)

    assert len(page.init_scripts) == 1
    assert "prefers-color-scheme: dark" in page.init_scripts[0]
    assert page.evaluated[-1][0] == page.init_scripts[0]

    page.binding({}, SCHEME_CHANNEL, True)
    loop.run_pending()
    assert changes == [True]

    unsubscribe()
    page.binding({}, SCHEME_CHANNEL, False)
    loop.run_pending()
    assert changes == [True]
