"""Joystick device using DirectInput/SDL via pygame.joystick

``JoystickDevice`` exposes every attached (or selected) joystick through the
polled ``Device`` interface. Device ids are pygame joystick indices.
"""
import logging

from core.events import POV_CENTERED
from core.reader import Device

try:
    import pygame
except Exception:
    pygame = None

LOG = logging.getLogger("joymacro.joystick")

# pygame hat tuples (x, y) -> degrees clockwise from up, -1 centered
HAT_DEGREES = {
    (0, 0): POV_CENTERED,
    (0, 1): 0,
    (1, 1): 45,
    (1, 0): 90,
    (1, -1): 135,
    (0, -1): 180,
    (-1, -1): 225,
    (-1, 0): 270,
    (-1, 1): 315,
}


def hat_to_degrees(hat) -> int:
    return HAT_DEGREES.get(tuple(hat), POV_CENTERED)


class JoystickDevice(Device):
    """Reads joysticks via pygame.joystick, one pump per tick.

    Joysticks that are missing or fail to read report no buttons or axes and a
    centered hat, so a StateDiffer polling them simply sees no changes.
    """

    def __init__(self, indices=None):
        self._indices = indices
        self._sticks = {}
        self._open()

    def _open(self):
        if pygame is None:
            LOG.warning("pygame not available — JoystickDevice disabled")
            return
        pygame.init()
        pygame.joystick.init()
        count = pygame.joystick.get_count()
        wanted = range(count) if self._indices is None else self._indices
        for i in wanted:
            if i >= count:
                LOG.warning("joystick %d requested but only %d attached", i, count)
                continue
            js = pygame.joystick.Joystick(i)
            js.init()
            LOG.info(f"Found joystick: {js.get_name()} (index {i}, axes={js.get_numaxes()}, buttons={js.get_numbuttons()}, hats={js.get_numhats()})")
            self._sticks[i] = js
        if not self._sticks:
            LOG.warning("No joysticks found via pygame")

    @property
    def device_ids(self):
        return sorted(self._sticks)

    def pump(self):
        if pygame is None:
            return
        try:
            pygame.event.pump()
        except Exception:
            LOG.exception("error pumping pygame events")

    def button_count(self, device_id: int) -> int:
        js = self._sticks.get(device_id)
        return js.get_numbuttons() if js else 0

    def axis_count(self, device_id: int) -> int:
        js = self._sticks.get(device_id)
        return js.get_numaxes() if js else 0

    def is_button_pressed(self, device_id: int, index: int) -> bool:
        return bool(self._sticks[device_id].get_button(index))

    def get_axis(self, device_id: int, index: int) -> float:
        return float(self._sticks[device_id].get_axis(index))

    def get_pov(self, device_id: int) -> int:
        js = self._sticks.get(device_id)
        if js is None or js.get_numhats() == 0:
            return POV_CENTERED
        return hat_to_degrees(js.get_hat(0))

    def close(self):
        for js in self._sticks.values():
            try:
                js.quit()
            except Exception:
                LOG.debug("joystick quit failed", exc_info=True)
        self._sticks.clear()
