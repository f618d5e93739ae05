from __future__ import annotations

from fakes import TRIGGER, FakeDocument, FakeSignal, install_lab_menu
from live_theme_sync.config import SyncConfig
from live_theme_sync.reconciler import CORRECTED, IN_SYNC
from live_theme_sync.session import ThemeSyncSession


def _session(document: FakeDocument, signal: FakeSignal, config: SyncConfig = None) -> ThemeSyncSession:
    return ThemeSyncSession(document, signal, config or SyncConfig(), document.loop)


def test_initial_pass_when_already_loaded(document: FakeDocument) -> None:
    install_lab_menu(document)
    session = _session(document, FakeSignal(dark=True))

    session.start()
    document.flush_frame()

    assert session.outcomes == [CORRECTED]
    assert document.clicks == ["trigger", "switch-1", "trigger"]


def test_load_event_waits_for_trigger() -> None:
    document = FakeDocument(body=False, ready_state="loading")
    session = _session(document, FakeSignal(dark=True))
    session.start()
    assert session.outcomes == []

    document.fire_load()
    assert session.outcomes == []

    install_lab_menu(document)
    document.mutate()
    document.flush_frame()

    assert session.outcomes == [CORRECTED]
    assert document.attributes["lab-style"] == "dark"


def test_system_change_triggers_pass(document: FakeDocument) -> None:
    install_lab_menu(document)
    signal = FakeSignal(dark=False)
    session = _session(document, signal)
    session.start()
    assert session.outcomes == [IN_SYNC]

    signal.set_dark(True)
    document.flush_frame()
    assert session.outcomes == [IN_SYNC, CORRECTED]
    assert document.attributes["lab-style"] == "dark"

    signal.set_dark(False)
    document.flush_frame()
    assert session.outcomes[-1] == CORRECTED
    assert document.attributes["lab-style"] == ""


def test_close_drops_subscriptions_and_pending_waits(document: FakeDocument) -> None:
    signal = FakeSignal(dark=True)
    session = _session(document, signal)
    session.start()
    assert document.observers

    session.close()
    assert signal.callbacks == []
    assert document.load_every == []
    assert document.observers == []

    document.add(TRIGGER, "trigger")
    assert session.outcomes == []


def test_run_pumps_until_stopped(document: FakeDocument) -> None:
    install_lab_menu(document)
    signal = FakeSignal(dark=True)
    session = _session(document, signal)
    waits = []

    def wait(ms: int) -> None:
        waits.append(ms)
        document.flush_frame()

    session.run(wait, keep_running=lambda: len(waits) < 3)

    assert waits == [50, 50, 50]
    assert document.clicks == ["trigger", "switch-1", "trigger"]


def test_run_once_returns_outcome_after_settling(document: FakeDocument) -> None:
    install_lab_menu(document)
    session = _session(document, FakeSignal(dark=True))

    outcome = session.run_once(lambda ms: document.flush_frame(), settle_seconds=5)

    assert outcome == CORRECTED
    assert session.settled
    assert document.clicks == ["trigger", "switch-1", "trigger"]


def test_run_once_gives_up_without_trigger(document: FakeDocument) -> None:
    session = _session(document, FakeSignal(dark=True))

    outcome = session.run_once(lambda ms: None, settle_seconds=0)

    assert outcome is None
    assert document.observers == []


def _reload(document: FakeDocument) -> None:
    # A new document: the old observers and menu are gone.
    document.observers.clear()
    document.elements.clear()
    document.fire_load()


def test_reload_mid_serialized_sequence_does_not_wedge() -> None:
    document = FakeDocument()
    install_lab_menu(document, render_on_click=False)
    session = _session(document, FakeSignal(dark=True), SyncConfig(serialize_sequences=True))
    session.start()
    assert session.outcomes == [CORRECTED]
    assert session.sequencer.in_flight

    _reload(document)
    assert session.sequencer.in_flight is False

    install_lab_menu(document)
    document.mutate()
    document.flush_frame()

    assert session.outcomes == [CORRECTED, CORRECTED]
    assert document.clicks == ["trigger", "trigger", "switch-1", "trigger"]
    assert document.attributes["lab-style"] == "dark"


def test_reload_drops_trigger_waits_from_old_document(document: FakeDocument) -> None:
    signal = FakeSignal(dark=True)
    session = _session(document, signal)
    session.start()
    signal.set_dark(False)
    assert len(session._watches) == 2

    _reload(document)

    assert len(session._watches) == 1
    assert not session.settled
    document.add(TRIGGER, "trigger")
    assert session.outcomes == [IN_SYNC]
    assert session.settled


def test_close_abandons_sequence_in_flight(document: FakeDocument) -> None:
    install_lab_menu(document, render_on_click=False)
    session = _session(document, FakeSignal(dark=True))
    session.start()
    assert session.sequencer.in_flight

    session.close()

    assert session.sequencer.in_flight is False
    assert document.observers == []
