"""Polled device abstraction"""
import abc


class Device(abc.ABC):
    """Source of raw joystick values, read once per tick.

    One instance may serve several joysticks; every call names the device id.
    """

    def pump(self):
        """Refresh the underlying input state before a tick's reads."""

    @abc.abstractmethod
    def button_count(self, device_id: int) -> int:
        raise NotImplementedError

    @abc.abstractmethod
    def axis_count(self, device_id: int) -> int:
        raise NotImplementedError

    @abc.abstractmethod
    def is_button_pressed(self, device_id: int, index: int) -> bool:
        raise NotImplementedError

    @abc.abstractmethod
    def get_axis(self, device_id: int, index: int) -> float:
        raise NotImplementedError

    @abc.abstractmethod
    def get_pov(self, device_id: int) -> int:
        raise NotImplementedError
