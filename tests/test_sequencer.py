from __future__ import annotations

from fakes import SWITCH, TRIGGER, FakeDocument, install_lab_menu
from live_theme_sync.config import SyncConfig
from live_theme_sync.sequencer import InteractionSequencer, select_theme_switch


def test_select_theme_switch_takes_second() -> None:
    assert select_theme_switch(["a", "b", "c"]) == "b"
    assert select_theme_switch(["a", "b"]) == "b"


def test_select_theme_switch_needs_two() -> None:
    assert select_theme_switch([]) is None
    assert select_theme_switch(["a"]) is None


def test_select_theme_switch_custom_index() -> None:
    assert select_theme_switch(["a", "b", "c"], index=2, minimum=2) == "c"
    assert select_theme_switch(["a", "b"], index=2, minimum=2) is None


def test_sequence_aborts_when_first_render_is_short(document: FakeDocument, config: SyncConfig) -> None:
    trigger = document.add(TRIGGER, "trigger", notify=False)
    sequencer = InteractionSequencer(document, config)

    assert sequencer.run(trigger) is True
    assert document.clicks == ["trigger"]
    assert sequencer.in_flight

    document.add(SWITCH, "switch-0")
    # the watch fires on the first match and finds a single switch
    assert document.clicks == ["trigger"]
    assert sequencer.in_flight is False

    document.add(SWITCH, "switch-1")
    assert document.clicks == ["trigger"]
    assert document.frames == []


def test_sequence_order_with_async_render(document: FakeDocument, config: SyncConfig) -> None:
    trigger = document.add(TRIGGER, "trigger", notify=False)
    sequencer = InteractionSequencer(document, config)
    sequencer.run(trigger)

    document.add(SWITCH, "switch-0", notify=False)
    document.add(SWITCH, "switch-1", notify=False)
    document.mutate()

    assert document.clicks == ["trigger", "switch-1"]
    assert sequencer.in_flight

    document.flush_frame()
    assert document.clicks == ["trigger", "switch-1", "trigger"]
    assert sequencer.in_flight is False


def test_switches_requeried_after_wait(document: FakeDocument, config: SyncConfig) -> None:
    def rerender() -> None:
        document.remove_all(SWITCH, notify=False)
        document.add(SWITCH, "fresh-0", notify=False)
        document.add(SWITCH, "fresh-1", notify=False)
        document.mutate()

    document.add(SWITCH, "stale-0", notify=False)
    document.add(SWITCH, "stale-1", notify=False)
    trigger = document.add(TRIGGER, "trigger", on_click=rerender, notify=False)

    InteractionSequencer(document, config).run(trigger)

    assert document.clicks == ["trigger", "fresh-1"]


def test_insufficient_switches_leaves_menu_open(document: FakeDocument, config: SyncConfig) -> None:
    trigger = install_lab_menu(document, switch_count=1)
    sequencer = InteractionSequencer(document, config)

    sequencer.run(trigger)
    document.flush_frame()

    assert document.clicks == ["trigger"]
    assert sequencer.in_flight is False


def test_interleaving_allowed_by_default(document: FakeDocument, config: SyncConfig) -> None:
    trigger = document.add(TRIGGER, "trigger", notify=False)
    sequencer = InteractionSequencer(document, config)

    assert sequencer.run(trigger) is True
    assert sequencer.run(trigger) is True

    document.add(SWITCH, "switch-0", notify=False)
    document.add(SWITCH, "switch-1")
    assert document.clicks == ["trigger", "trigger", "switch-1", "switch-1"]


def test_serialized_guard_released_after_timeout(document: FakeDocument) -> None:
    config = SyncConfig(serialize_sequences=True, wait_timeout_seconds=2)
    trigger = document.add(TRIGGER, "trigger", notify=False)
    sequencer = InteractionSequencer(document, config)

    assert sequencer.run(trigger) is True
    assert sequencer.run(trigger) is False

    document.advance(3)
    assert sequencer.in_flight is False
    assert sequencer.run(trigger) is True
    assert document.clicks == ["trigger", "trigger"]


def test_reset_abandons_pending_sequence(document: FakeDocument) -> None:
    config = SyncConfig(serialize_sequences=True)
    trigger = document.add(TRIGGER, "trigger", notify=False)
    sequencer = InteractionSequencer(document, config)
    sequencer.run(trigger)
    assert sequencer.run(trigger) is False

    sequencer.reset()

    assert sequencer.in_flight is False
    assert document.observers == []
    document.add(SWITCH, "switch-0", notify=False)
    document.add(SWITCH, "switch-1")
    assert document.clicks == ["trigger"]


def test_reset_drops_pending_close(document: FakeDocument, config: SyncConfig) -> None:
    trigger = install_lab_menu(document)
    sequencer = InteractionSequencer(document, config)
    sequencer.run(trigger)
    assert document.clicks == ["trigger", "switch-1"]

    sequencer.reset()
    document.flush_frame()

    assert document.clicks == ["trigger", "switch-1"]
    assert sequencer.in_flight is False
