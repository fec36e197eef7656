"""Per-device input snapshot"""
from dataclasses import dataclass, field
from typing import Dict

from core.events import POV_CENTERED


@dataclass
class DeviceSnapshot:
    device_id: int
    buttons: Dict[int, bool] = field(default_factory=dict)  # button index -> pressed
    axes: Dict[int, float] = field(default_factory=dict)  # axis index -> last value
    pov: int = POV_CENTERED  # degrees or -1 when centered

    def button(self, index: int) -> bool:
        return self.buttons.get(index, False)

    def axis(self, index: int) -> float:
        return self.axes.get(index, 0.0)

    def clear(self):
        self.buttons.clear()
        self.axes.clear()
        self.pov = POV_CENTERED
