"""Turn per-tick joystick samples into edge-triggered events"""
import logging
from typing import List, Optional

from core.events import InputEvent, now_ms
from core.reader import Device
from core.state import DeviceSnapshot

LOG = logging.getLogger("joymacro.differ")

DEFAULT_DEADBAND = 0.01


class StateDiffer:
    """Tracks the last observed state of one joystick.

    Each ``poll`` reads the device, compares it with the stored snapshot and
    returns the changes as events: buttons ascending, then axes ascending, then
    the POV hat. The snapshot is replaced by the new sample every time, even
    when a change stayed inside the deadband.
    """

    def __init__(self, device_id: int, deadband: float = DEFAULT_DEADBAND):
        self.device_id = device_id
        self.deadband = deadband
        self.snapshot = DeviceSnapshot(device_id)

    def reset(self):
        self.snapshot.clear()

    def poll(self, device: Device, now: Optional[int] = None) -> List[InputEvent]:
        if now is None:
            now = now_ms()
        dev = self.device_id
        prev = self.snapshot
        events = []

        buttons = {i: bool(device.is_button_pressed(dev, i)) for i in range(device.button_count(dev))}
        axes = {i: float(device.get_axis(dev, i)) for i in range(device.axis_count(dev))}
        pov = int(device.get_pov(dev))

        for i, pressed in buttons.items():
            was = prev.button(i)
            if pressed and not was:
                events.append(InputEvent.press(dev, i, now))
            elif was and not pressed:
                events.append(InputEvent.release(dev, i, now))

        for i, val in axes.items():
            if abs(val - prev.axis(i)) > self.deadband:
                events.append(InputEvent.axis_change(dev, i, val, now))

        if pov != prev.pov:
            events.append(InputEvent.pov_change(dev, pov, now))

        prev.buttons = buttons
        prev.axes = axes
        prev.pov = pov

        if events:
            LOG.debug("device %d produced %d event(s): %s", dev, len(events), events)
        return events
