import pytest

from core.reader import Device


class FakeDevice(Device):
    """Scripted joysticks: tests set values, the differ reads them."""

    def __init__(self, buttons=8, axes=4):
        self._buttons = buttons
        self._axes = axes
        self.state = {}
        self.pumps = 0

    def _dev(self, device_id):
        if device_id not in self.state:
            self.state[device_id] = {
                "buttons": [False] * self._buttons,
                "axes": [0.0] * self._axes,
                "pov": -1,
            }
        return self.state[device_id]

    def set_button(self, device_id, index, pressed=True):
        self._dev(device_id)["buttons"][index] = pressed

    def set_axis(self, device_id, index, value):
        self._dev(device_id)["axes"][index] = value

    def set_pov(self, device_id, value):
        self._dev(device_id)["pov"] = value

    def pump(self):
        self.pumps += 1

    def button_count(self, device_id):
        return self._buttons

    def axis_count(self, device_id):
        return self._axes

    def is_button_pressed(self, device_id, index):
        return self._dev(device_id)["buttons"][index]

    def get_axis(self, device_id, index):
        return self._dev(device_id)["axes"][index]

    def get_pov(self, device_id):
        return self._dev(device_id)["pov"]


class FakeClock:
    def __init__(self, start=1_000_000):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms
        return self.now


@pytest.fixture
def device():
    return FakeDevice()


@pytest.fixture
def clock():
    return FakeClock()
