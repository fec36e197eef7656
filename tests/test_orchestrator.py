from core.events import InputEvent
from core.macro import Macro, MacroMode
from core.store import MacroStore
from orchestrator import AutoChooser, AutoDecision, Orchestrator

RECORD = InputEvent.press(0, 5)


def _orch(tmp_path, device, clock, **kw):
    return Orchestrator(MacroStore(tmp_path / "macros"), AutoChooser(), device, [0],
                        record_trigger=RECORD, clock=clock, **kw)


def test_dispatch_matches_any_occurrence(tmp_path, device, clock):
    orch = _orch(tmp_path, device, clock)
    seen = []
    orch.bind_button(0, 2, seen.append)
    device.set_button(0, 2)
    orch.teleop_tick()
    assert seen == [InputEvent.press(0, 2)]
    assert seen[0].timestamp_ms == clock()


def test_unbound_event_is_ignored(tmp_path, device, clock):
    orch = _orch(tmp_path, device, clock)
    assert orch.dispatch(InputEvent.press(0, 7)) is False


def test_failing_handler_does_not_break_tick(tmp_path, device, clock):
    orch = _orch(tmp_path, device, clock)
    seen = []

    def boom(event):
        raise RuntimeError("boom")

    orch.bind_button(0, 1, boom)
    orch.bind_button(0, 2, seen.append)
    device.set_button(0, 1)
    device.set_button(0, 2)
    orch.teleop_tick()
    assert seen == [InputEvent.press(0, 2)]


def test_trigger_toggles_recording_and_saves(tmp_path, device, clock):
    orch = _orch(tmp_path, device, clock)
    device.set_button(0, 5)
    orch.teleop_tick()
    macro = orch.current_macro
    assert macro is not None and macro.is_recording

    clock.advance(20)
    device.set_button(0, 5, False)
    device.set_button(0, 3)
    orch.teleop_tick()

    clock.advance(100)
    device.set_button(0, 3, False)
    orch.teleop_tick()

    clock.advance(100)
    device.set_button(0, 5)
    orch.teleop_tick()
    assert orch.current_macro is None

    store = MacroStore(tmp_path / "macros")
    assert store.numbers() == [0]
    assert orch.chooser.options == {"Macro 0": "macro0"}
    saved = store.load(0)
    # neither edge of the trigger is part of the recording
    assert RECORD not in saved.events
    assert InputEvent.release(0, 5) not in saved.events
    assert InputEvent.press(0, 3) in saved.events
    assert InputEvent.release(0, 3) in saved.events


def test_trigger_tick_events_are_recorded_around_the_toggle(tmp_path, device, clock):
    orch = _orch(tmp_path, device, clock)
    # button 3 is diffed before the trigger, button 7 after it; both count
    # for the starting tick, only button 3 for the stopping one
    device.set_button(0, 3)
    device.set_button(0, 5)
    device.set_button(0, 7)
    orch.teleop_tick()
    assert orch.current_macro.is_recording

    clock.advance(50)
    device.set_button(0, 5, False)
    orch.teleop_tick()

    clock.advance(50)
    device.set_button(0, 3, False)
    device.set_button(0, 5)
    device.set_button(0, 7, False)
    orch.teleop_tick()
    assert orch.current_macro is None

    saved = MacroStore(tmp_path / "macros").load(0)
    assert [(e, e.timestamp_ms) for e in saved.events] == [
        (InputEvent.press(0, 3), 0),
        (InputEvent.press(0, 7), 0),
        (InputEvent.release(0, 3), 100),
    ]


def test_save_failure_is_contained(tmp_path, device, clock):
    blocker = tmp_path / "macros"
    blocker.write_text("not a directory")
    orch = _orch(tmp_path, device, clock)
    assert orch.toggle_recording() is True
    clock.advance(50)
    assert orch.toggle_recording() is False
    assert orch.current_macro is None
    assert orch.chooser.options == {}


def test_record_save_reload_replay_scenario(tmp_path, device, clock):
    # record: press button 3 at 0, again at 120ms, release at 200ms
    store = MacroStore(tmp_path / "macros")
    orch = _orch(tmp_path, device, clock)
    orch.toggle_recording()
    start = clock()

    device.set_button(0, 3)
    orch.teleop_tick()
    clock.advance(120)
    orch.teleop_tick()  # still held: no repeat press
    clock.advance(80)
    device.set_button(0, 3, False)
    orch.teleop_tick()
    assert clock() - start == 200
    orch.toggle_recording()

    # reload from text and replay through the autonomous path
    orch2 = _orch(tmp_path, device, clock)
    orch2.add_existing_macros()
    orch2.chooser.select("macro0")
    replayed = []
    orch2.bind_button(0, 3, replayed.append)
    orch2.bind(InputEvent.release(0, 3), replayed.append)

    play_start = clock()
    decisions = []
    while True:
        decision = orch2.autonomous_tick()
        decisions.append(decision)
        if decision is AutoDecision.STOP:
            break
        clock.advance(20)

    assert [(e.kind.tag, e.timestamp_ms) for e in replayed] == [("press", 0), ("release", 200)]
    assert clock() - play_start == 200
    assert decisions[-1] is AutoDecision.STOP
    assert set(decisions[:-1]) == {AutoDecision.RUN}
    assert store.numbers() == [0]


def test_replay_device_holds_values_during_playback(tmp_path, device, clock):
    store = MacroStore(tmp_path / "macros")
    store.save(Macro([0], [InputEvent.axis_change(0, 1, 0.5, 0), InputEvent.press(0, 2, 100)]))
    orch = _orch(tmp_path, device, clock)
    orch.chooser.select("macro0")

    assert orch.autonomous_tick() is AutoDecision.RUN
    assert orch.input is orch.replay
    assert orch.input.get_axis(0, 1) == 0.5
    assert not orch.input.is_button_pressed(0, 2)

    clock.advance(100)
    assert orch.autonomous_tick() is AutoDecision.STOP
    assert orch.replay.is_button_pressed(0, 2)
    assert orch.input is device


def test_stop_callback_runs_once(tmp_path, device, clock):
    store = MacroStore(tmp_path / "macros")
    store.save(Macro([0], [InputEvent.press(0, 1, 0)]))
    stops = []
    orch = _orch(tmp_path, device, clock, on_stop=lambda: stops.append(clock()))
    orch.chooser.select("macro0")
    assert orch.autonomous_tick() is AutoDecision.STOP
    clock.advance(20)
    assert orch.autonomous_tick() is AutoDecision.STOP
    assert len(stops) == 1


def test_missing_macro_falls_back(tmp_path, device, clock):
    orch = _orch(tmp_path, device, clock)
    orch.chooser.select("macro4")
    assert orch.autonomous_tick() is AutoDecision.NONE
    assert orch.current_macro is None
    assert orch.autonomous_tick() is AutoDecision.NONE


def test_builtin_auto_mode_runs_each_tick(tmp_path, device, clock):
    orch = _orch(tmp_path, device, clock)
    runs = []
    orch.add_auto_mode("example", lambda: runs.append(clock()))
    orch.chooser.select("example")
    orch.autonomous_tick()
    clock.advance(20)
    orch.autonomous_tick()
    assert len(runs) == 2
    assert orch.chooser.options["example"] == "example"


def test_no_selection_is_none(tmp_path, device, clock):
    orch = _orch(tmp_path, device, clock)
    assert orch.autonomous_tick() is AutoDecision.NONE


def test_end_autonomous_aborts_playback(tmp_path, device, clock):
    store = MacroStore(tmp_path / "macros")
    store.save(Macro([0], [InputEvent.press(0, 1, 0), InputEvent.press(0, 2, 500)]))
    orch = _orch(tmp_path, device, clock)
    orch.chooser.select("macro0")
    assert orch.autonomous_tick() is AutoDecision.RUN
    macro = orch.current_macro
    orch.end_autonomous()
    assert macro.mode is MacroMode.IDLE
    assert orch.current_macro is None
    assert orch.input is device


def test_autonomous_finishes_recording_first(tmp_path, device, clock):
    store = MacroStore(tmp_path / "macros")
    store.save(Macro([0], [InputEvent.press(0, 1, 0), InputEvent.press(0, 2, 100)]))
    orch = _orch(tmp_path, device, clock)
    orch.toggle_recording()
    orch.chooser.select("macro0")
    assert orch.autonomous_tick() is AutoDecision.RUN
    assert store.numbers() == [0, 1]
    assert orch.current_macro.mode is MacroMode.PLAYING


def test_add_existing_macros(tmp_path, device, clock):
    store = MacroStore(tmp_path / "macros")
    store.save(Macro([0]))
    store.save(Macro([0]))
    orch = _orch(tmp_path, device, clock)
    assert orch.add_existing_macros() == ["macro0", "macro1"]
    assert orch.chooser.options == {"Macro 0": "macro0", "Macro 1": "macro1"}


def test_slot_is_free_after_playback(tmp_path, device, clock):
    store = MacroStore(tmp_path / "macros")
    store.save(Macro([0], [InputEvent.press(0, 1, 0), InputEvent.release(0, 1, 40)]))
    orch = _orch(tmp_path, device, clock)
    orch.chooser.select("macro0")
    assert orch.autonomous_tick() is AutoDecision.RUN
    clock.advance(40)
    assert orch.autonomous_tick() is AutoDecision.STOP
    assert orch.current_macro is None
    assert orch.autonomous_tick() is AutoDecision.STOP

    # the trigger works again without waiting for end_autonomous
    assert orch.toggle_recording() is True
    assert orch.current_macro.is_recording
    orch.end_autonomous()
    assert orch.current_macro.is_recording
