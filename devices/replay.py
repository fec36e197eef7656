"""Device that reports the state implied by replayed events"""
import logging

from core.events import EventKind, InputEvent
from core.reader import Device
from core.state import DeviceSnapshot

LOG = logging.getLogger("joymacro.replay")


class ReplayDevice(Device):
    """Holds the last replayed value of every button, axis and hat.

    Values stay constant between events; there is no interpolation.
    """

    def __init__(self):
        self._snapshots = {}

    def _snapshot(self, device_id: int) -> DeviceSnapshot:
        snap = self._snapshots.get(device_id)
        if snap is None:
            snap = self._snapshots[device_id] = DeviceSnapshot(device_id)
        return snap

    def apply(self, event: InputEvent):
        snap = self._snapshot(event.device_id)
        if event.kind is EventKind.PRESS:
            snap.buttons[event.slot] = True
        elif event.kind is EventKind.RELEASE:
            snap.buttons[event.slot] = False
        elif event.kind is EventKind.AXIS:
            snap.axes[event.slot] = event.value
        else:
            snap.pov = event.value

    def reset(self):
        LOG.debug("clearing replayed state for devices %s", sorted(self._snapshots))
        self._snapshots.clear()

    def button_count(self, device_id: int) -> int:
        snap = self._snapshots.get(device_id)
        return max(snap.buttons) + 1 if snap and snap.buttons else 0

    def axis_count(self, device_id: int) -> int:
        snap = self._snapshots.get(device_id)
        return max(snap.axes) + 1 if snap and snap.axes else 0

    def is_button_pressed(self, device_id: int, index: int) -> bool:
        return self._snapshot(device_id).button(index)

    def get_axis(self, device_id: int, index: int) -> float:
        return self._snapshot(device_id).axis(index)

    def get_pov(self, device_id: int) -> int:
        return self._snapshot(device_id).pov
