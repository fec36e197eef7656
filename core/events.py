"""Discrete input events and their one-line text form"""
import enum
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union

from core.errors import ParseFailure

POV_CENTERED = -1
POV_SLOT = 0


def now_ms() -> int:
    """Wall-clock time in whole milliseconds."""
    return int(time.time() * 1000)


class EventKind(enum.Enum):
    PRESS = "press"
    RELEASE = "release"
    AXIS = "axis"
    POV = "POV"

    @property
    def tag(self) -> str:
        return self.value

    @property
    def has_value(self) -> bool:
        return self in (EventKind.AXIS, EventKind.POV)

    @classmethod
    def from_tag(cls, tag: str) -> "EventKind":
        for kind in cls:
            if kind.value == tag:
                return kind
        raise ParseFailure(f"unknown event tag {tag!r}")


@dataclass(frozen=True)
class InputEvent:
    """A single change on a joystick and when it happened.

    Equality and hashing ignore ``timestamp_ms`` so an event built once as a
    template matches every later occurrence of the same change.
    """
    kind: EventKind
    device_id: int
    slot: int
    value: Optional[Union[float, int]] = None
    timestamp_ms: int = field(default=0, compare=False)

    def __post_init__(self):
        if self.kind.has_value and self.value is None:
            raise ValueError(f"{self.kind.name} event requires a value")
        if not self.kind.has_value and self.value is not None:
            raise ValueError(f"{self.kind.name} event cannot carry a value")

    @classmethod
    def press(cls, device_id: int, button: int, timestamp_ms: int = 0) -> "InputEvent":
        return cls(EventKind.PRESS, device_id, button, None, timestamp_ms)

    @classmethod
    def release(cls, device_id: int, button: int, timestamp_ms: int = 0) -> "InputEvent":
        return cls(EventKind.RELEASE, device_id, button, None, timestamp_ms)

    @classmethod
    def axis_change(cls, device_id: int, axis: int, value: float, timestamp_ms: int = 0) -> "InputEvent":
        return cls(EventKind.AXIS, device_id, axis, float(value), timestamp_ms)

    @classmethod
    def pov_change(cls, device_id: int, value: int, timestamp_ms: int = 0) -> "InputEvent":
        return cls(EventKind.POV, device_id, POV_SLOT, int(value), timestamp_ms)

    # Kind-specific accessors return None for the other kinds; the raw
    # fields stay available regardless.
    @property
    def button(self) -> Optional[int]:
        return self.slot if self.kind in (EventKind.PRESS, EventKind.RELEASE) else None

    @property
    def axis(self) -> Optional[int]:
        return self.slot if self.kind is EventKind.AXIS else None

    @property
    def pov(self) -> Optional[int]:
        return self.value if self.kind is EventKind.POV else None

    def to_line(self) -> str:
        line = f"{self.timestamp_ms}:{self.kind.tag},{self.device_id},{self.slot},"
        if self.kind.has_value:
            line += f"{self.value!r},"
        return line + "\n"

    @classmethod
    def from_line(cls, line: str) -> "InputEvent":
        text = line.strip()
        if ":" not in text:
            raise ParseFailure(f"missing timestamp separator in {text!r}", line=line)
        stamp, _, body = text.partition(":")
        fields = body.split(",")
        # trailing comma leaves an empty last field
        if fields and fields[-1] == "":
            fields.pop()
        if not fields:
            raise ParseFailure(f"empty event body in {text!r}", line=line)
        kind = EventKind.from_tag(fields[0])
        expected = 4 if kind.has_value else 3
        if len(fields) != expected:
            raise ParseFailure(
                f"{kind.tag} expects {expected - 1} fields, got {len(fields) - 1} in {text!r}", line=line)
        try:
            timestamp = int(stamp)
            device_id = int(fields[1])
            slot = int(fields[2])
            value = None
            if kind is EventKind.AXIS:
                value = float(fields[3])
            elif kind is EventKind.POV:
                value = int(fields[3])
        except ValueError as e:
            raise ParseFailure(f"bad number in {text!r}: {e}", line=line) from e
        return cls(kind, device_id, slot, value, timestamp)

    def readable(self) -> str:
        """Human readable description, used for logging."""
        when = datetime.fromtimestamp(self.timestamp_ms / 1000.0).strftime("%m/%d/%Y %I:%M:%S")
        if self.kind is EventKind.PRESS:
            what = f"Button {self.slot} pressed."
        elif self.kind is EventKind.RELEASE:
            what = f"Button {self.slot} released."
        elif self.kind is EventKind.AXIS:
            what = f"Axis {self.slot} set to {self.value}"
        else:
            what = f"POV set to {self.value}"
        return f"{when}: Joystick {self.device_id}'s {what}"
