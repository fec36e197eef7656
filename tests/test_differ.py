from core.differ import StateDiffer
from core.events import EventKind, InputEvent


def test_no_events_when_nothing_changes(device):
    differ = StateDiffer(0)
    assert differ.poll(device, 0) == []
    assert differ.poll(device, 20) == []


def test_press_then_release(device):
    differ = StateDiffer(0)
    device.set_button(0, 3)
    events = differ.poll(device, 100)
    assert events == [InputEvent.press(0, 3)]
    assert events[0].timestamp_ms == 100

    # held: no repeat
    assert differ.poll(device, 120) == []

    device.set_button(0, 3, False)
    assert differ.poll(device, 140) == [InputEvent.release(0, 3)]


def test_axis_deadband(device):
    differ = StateDiffer(0, deadband=0.05)
    device.set_axis(0, 1, 0.04)
    assert differ.poll(device, 0) == []

    device.set_axis(0, 1, 0.5)
    assert differ.poll(device, 20) == [InputEvent.axis_change(0, 1, 0.5)]

    device.set_axis(0, 1, 0.52)
    assert differ.poll(device, 40) == []


def test_snapshot_updates_even_without_event(device):
    differ = StateDiffer(0, deadband=0.05)
    device.set_axis(0, 0, 0.03)
    differ.poll(device, 0)
    assert differ.snapshot.axes[0] == 0.03
    # 0.03 -> 0.07 is inside the deadband relative to the latest sample
    device.set_axis(0, 0, 0.07)
    assert differ.poll(device, 20) == []


def test_pov_change(device):
    differ = StateDiffer(2)
    device.set_pov(2, 90)
    events = differ.poll(device, 0)
    assert events == [InputEvent.pov_change(2, 90)]
    assert differ.poll(device, 20) == []
    device.set_pov(2, -1)
    assert differ.poll(device, 40) == [InputEvent.pov_change(2, -1)]


def test_ordering_buttons_then_axes_then_pov(device):
    differ = StateDiffer(0)
    device.set_pov(0, 180)
    device.set_axis(0, 2, -1.0)
    device.set_axis(0, 0, 1.0)
    device.set_button(0, 5)
    device.set_button(0, 1)
    kinds = [(e.kind, e.slot) for e in differ.poll(device, 0)]
    assert kinds == [
        (EventKind.PRESS, 1),
        (EventKind.PRESS, 5),
        (EventKind.AXIS, 0),
        (EventKind.AXIS, 2),
        (EventKind.POV, 0),
    ]


def test_exactly_one_event_per_transition(device):
    differ = StateDiffer(0)
    device.set_button(0, 0)
    device.set_button(0, 2)
    differ.poll(device, 0)

    device.set_button(0, 0, False)
    device.set_button(0, 4)
    device.set_axis(0, 3, 0.9)
    events = differ.poll(device, 20)
    assert events == [
        InputEvent.release(0, 0),
        InputEvent.press(0, 4),
        InputEvent.axis_change(0, 3, 0.9),
    ]


def test_only_reads_own_device(device):
    differ = StateDiffer(0)
    device.set_button(1, 2)
    assert differ.poll(device, 0) == []


def test_reset_forgets_state(device):
    differ = StateDiffer(0)
    device.set_button(0, 1)
    differ.poll(device, 0)
    differ.reset()
    assert differ.poll(device, 20) == [InputEvent.press(0, 1)]
