"""Macro recording and playback state machine"""
import logging
from dataclasses import replace
from enum import Enum
from typing import Callable, Iterable, List, Optional

from core.errors import MacroError, NoActiveSession
from core.events import InputEvent, now_ms

LOG = logging.getLogger("joymacro.macro")


class MacroMode(Enum):
    """Macro state machine states."""
    IDLE = "idle"
    RECORDING = "recording"
    PLAYING = "playing"


class Macro:
    """A recorded stream of joystick events with relative timestamps.

    While recording, captured events are rebased onto the moment recording
    started. While playing, ``poll`` hands back every event that has come due
    since the previous call, so the caller can treat it like a live
    ``StateDiffer``. An event is never skipped: a late tick only delays it.
    """

    def __init__(self, device_ids: Optional[Iterable[int]] = None,
                 events: Optional[Iterable[InputEvent]] = None,
                 clock: Callable[[], int] = now_ms):
        # loaded or hand-built events may be out of order; ties keep their order
        self._events: List[InputEvent] = sorted(events or [], key=lambda e: e.timestamp_ms)
        if device_ids is None:
            device_ids = {e.device_id for e in self._events}
        self.device_ids = frozenset(device_ids)
        self.mode = MacroMode.IDLE
        self.started_at: Optional[int] = None
        self._cursor = 0
        self._clock = clock

    def __len__(self):
        return len(self._events)

    def __str__(self):
        return "".join(e.to_line() for e in self._events)

    def __repr__(self):
        return (f"Macro(mode={self.mode.value}, devices={sorted(self.device_ids)}, "
                f"events={len(self._events)}, length_ms={self.length_ms})")

    @property
    def events(self) -> List[InputEvent]:
        return list(self._events)

    @property
    def length_ms(self) -> int:
        """Relative time of the last event, i.e. how long playback lasts."""
        return self._events[-1].timestamp_ms if self._events else 0

    @property
    def is_recording(self) -> bool:
        return self.mode is MacroMode.RECORDING

    def _now(self, now: Optional[int]) -> int:
        return self._clock() if now is None else now

    def _elapsed(self, now: Optional[int]) -> int:
        return self._now(now) - self.started_at

    # recording

    def start_recording(self, now: Optional[int] = None):
        if self.mode is not MacroMode.IDLE:
            raise MacroError(f"cannot start recording while {self.mode.value}")
        self._events = []
        self._cursor = 0
        self.started_at = self._now(now)
        self.mode = MacroMode.RECORDING
        LOG.info("recording started on devices %s", sorted(self.device_ids))

    def capture(self, events: Iterable[InputEvent], now: Optional[int] = None) -> int:
        """Append events from the recorded devices; returns how many were kept."""
        if self.mode is not MacroMode.RECORDING:
            raise NoActiveSession("capture requires an active recording")
        kept = 0
        for event in events:
            if event.device_id not in self.device_ids:
                continue
            stamp = event.timestamp_ms if now is None else now
            # events stamped before the session began count as its start
            self._events.append(replace(event, timestamp_ms=max(0, stamp - self.started_at)))
            kept += 1
        return kept

    def stop_recording(self, now: Optional[int] = None):
        if self.mode is not MacroMode.RECORDING:
            raise NoActiveSession("no recording in progress")
        self.mode = MacroMode.IDLE
        LOG.info("recording stopped after %d ms with %d event(s)",
                 self._elapsed(now), len(self._events))

    # playback

    def start_playing(self, now: Optional[int] = None):
        if self.mode is MacroMode.RECORDING:
            raise MacroError("cannot play while recording")
        self.started_at = self._now(now)
        self._cursor = 0
        self.mode = MacroMode.PLAYING
        LOG.info("playback started: %d event(s) over %d ms", len(self._events), self.length_ms)

    def poll(self, device=None, now: Optional[int] = None) -> List[InputEvent]:
        """Return the events due since the previous poll and advance past them.

        ``device`` is accepted and ignored so a playing macro can be polled
        exactly like a ``StateDiffer``.
        """
        if self.mode is not MacroMode.PLAYING:
            raise NoActiveSession("macro is not playing")
        elapsed = self._elapsed(now)
        start = self._cursor
        while self._cursor < len(self._events) and self._events[self._cursor].timestamp_ms <= elapsed:
            self._cursor += 1
        due = self._events[start:self._cursor]
        if self._cursor >= len(self._events) and elapsed >= self.length_ms:
            self.mode = MacroMode.IDLE
            LOG.info("playback complete after %d ms", elapsed)
        return due

    def is_playing(self, now: Optional[int] = None) -> bool:
        if self.mode is not MacroMode.PLAYING:
            return False
        return self._elapsed(now) < self.length_ms

    def abort(self):
        if self.mode is not MacroMode.PLAYING:
            raise NoActiveSession("macro is not playing")
        LOG.info("playback aborted with %d event(s) undelivered", len(self._events) - self._cursor)
        self._cursor = len(self._events)
        self.mode = MacroMode.IDLE
