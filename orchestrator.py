"""Record/replay orchestration for a periodically ticked control loop

The orchestrator owns the single current macro. In teleop it diffs the live
joysticks, records while a recording is active and dispatches each event to
its registered handler; a designated trigger event starts and stops
recordings. In autonomous it decides once whether to replay the selected
stored macro or run a built-in routine, and then feeds the replayed events
through the same handlers.
"""
import logging
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from core.differ import DEFAULT_DEADBAND, StateDiffer
from core.errors import MacroError
from core.events import EventKind, InputEvent, now_ms
from core.macro import Macro, MacroMode
from core.reader import Device
from core.store import MacroStore, is_macro_tag, number_to_tag
from devices.replay import ReplayDevice

LOG = logging.getLogger("joymacro.orchestrator")

Handler = Callable[[InputEvent], None]


class AutoDecision(Enum):
    RUN = "run"  # a macro is replaying; run the usual control logic
    STOP = "stop"  # the macro is over; stop the actuators
    NONE = "none"  # no macro selected; a built-in routine is in charge


class AutoChooser:
    """In-memory list of autonomous options and the current selection."""

    def __init__(self, default: Optional[str] = None):
        self.options: Dict[str, str] = {}  # label -> tag
        self.default = default
        self._selected = None

    def add_option(self, label: str, tag: str):
        self.options[label] = tag

    def select(self, tag: Optional[str]):
        if tag is not None and tag not in self.options.values():
            LOG.warning("selected %r is not a registered option", tag)
        self._selected = tag

    @property
    def selected(self) -> Optional[str]:
        return self._selected if self._selected is not None else self.default


class Orchestrator:
    def __init__(self, store: MacroStore, chooser: AutoChooser, device: Device,
                 device_ids: Iterable[int], record_trigger: Optional[InputEvent] = None,
                 deadband: float = DEFAULT_DEADBAND, clock: Callable[[], int] = now_ms,
                 debug: bool = False, on_stop: Optional[Callable[[], None]] = None):
        self.store = store
        self.chooser = chooser
        self.device = device
        self.device_ids = tuple(device_ids)
        self.record_trigger = record_trigger
        self.debug = debug
        self.on_stop = on_stop
        self.replay = ReplayDevice()
        self._clock = clock
        self._differs = {d: StateDiffer(d, deadband) for d in self.device_ids}
        self._handlers: Dict[InputEvent, Handler] = {}
        self._auto_modes: Dict[str, Callable[[], None]] = {}
        self._macro: Optional[Macro] = None
        self._auto_started = False
        self._auto_selected = None
        self._auto_macro = False
        self._stop_sent = False
        self._trigger_buttons: Set[Tuple[int, int]] = set()
        if record_trigger is not None:
            self.bind_record_trigger(record_trigger)

    @property
    def current_macro(self) -> Optional[Macro]:
        return self._macro

    @property
    def input(self) -> Device:
        """Where control logic should read joystick values this tick."""
        if self._macro is not None and self._macro.mode is MacroMode.PLAYING:
            return self.replay
        return self.device

    def _now(self, now: Optional[int]) -> int:
        return self._clock() if now is None else now

    def _report(self, message: str, exc: BaseException):
        if self.debug:
            LOG.error("%s: %s", message, exc, exc_info=exc)
        else:
            LOG.error("%s: %s", message, exc)

    # handlers

    def bind(self, template: InputEvent, handler: Handler):
        if template in self._handlers:
            LOG.debug("replacing handler for %s", template)
        self._handlers[template] = handler

    def bind_button(self, device_id: int, button: int, handler: Handler, kind: EventKind = EventKind.PRESS):
        self.bind(InputEvent(kind, device_id, button), handler)

    def bind_record_trigger(self, template: InputEvent):
        """Make ``template`` toggle recording.

        Neither edge of the trigger button is ever recorded, so replaying a
        macro cannot toggle recording.
        """
        self._trigger_buttons.add((template.device_id, template.slot))
        self.bind(template, lambda e: self.toggle_recording(e.timestamp_ms))

    def is_trigger_edge(self, event: InputEvent) -> bool:
        return event.button is not None and (event.device_id, event.slot) in self._trigger_buttons

    def dispatch(self, event: InputEvent) -> bool:
        handler = self._handlers.get(event)
        if handler is None:
            return False
        try:
            handler(event)
        except Exception:
            LOG.exception("handler for %s failed", event)
        return True

    # auto modes

    def add_existing_macros(self) -> List[str]:
        try:
            numbers = self.store.numbers()
        except MacroError as e:
            self._report(f"could not list macros in {self.store.directory}", e)
            return []
        for n in numbers:
            self.chooser.add_option(f"Macro {n}", number_to_tag(n))
        return [number_to_tag(n) for n in numbers]

    def add_auto_mode(self, name: str, routine: Callable[[], None]):
        if is_macro_tag(name):
            raise ValueError(f"auto mode name {name!r} collides with macro tags")
        self._auto_modes[name] = routine
        self.chooser.add_option(name, name)

    # teleop

    def toggle_recording(self, now: Optional[int] = None) -> bool:
        """Start a recording, or stop and save the current one.

        Returns whether a recording is running afterwards.
        """
        now = self._now(now)
        macro = self._macro
        if macro is None:
            macro = Macro(self.device_ids, clock=self._clock)
            macro.start_recording(now)
            self._macro = macro
            LOG.info("Recording...")
            return True
        if not macro.is_recording:
            LOG.warning("macro is %s; not toggling recording", macro.mode.value)
            return False
        macro.stop_recording(now)
        self._macro = None
        LOG.info("Stopped recording.")
        try:
            number = self.store.save(macro)
        except MacroError as e:
            self._report(f"could not save macro to {self.store.directory}", e)
            return False
        self.chooser.add_option(f"Macro {number}", number_to_tag(number))
        return False

    def teleop_tick(self, now: Optional[int] = None) -> List[InputEvent]:
        now = self._now(now)
        self.device.pump()
        events = []
        for differ in self._differs.values():
            events.extend(differ.poll(self.device, now))
        # a recording started this tick keeps the whole tick; one stopped this
        # tick keeps only what was diffed before the trigger
        held = []
        for event in events:
            macro = self._macro
            recording = macro is not None and macro.is_recording
            if not self.is_trigger_edge(event):
                if recording:
                    macro.capture([event])
                else:
                    held.append(event)
            self.dispatch(event)
            if not recording and self._macro is not None and self._macro.is_recording:
                self._macro.capture(held)
                held = []
        return events

    # autonomous

    def _begin_autonomous(self, now: int):
        tag = self.chooser.selected
        self._auto_selected = tag
        if not is_macro_tag(tag):
            LOG.info("autonomous mode %r selected", tag)
            return
        if self._macro is not None and self._macro.is_recording:
            LOG.warning("finishing the recording in progress before autonomous")
            self.toggle_recording(now)
        try:
            macro = self.store.load(tag)
        except (MacroError, ValueError) as e:
            self._report(f"Could not load macro {tag}", e)
            return
        macro.start_playing(now)
        self._macro = macro
        self._auto_macro = True
        self.replay.reset()
        LOG.info("Macro length: %.3f seconds", macro.length_ms / 1000.0)

    def _stop(self) -> AutoDecision:
        if not self._stop_sent:
            self._stop_sent = True
            if self.on_stop is not None:
                try:
                    self.on_stop()
                except Exception:
                    LOG.exception("stop callback failed")
        return AutoDecision.STOP

    def autonomous_tick(self, now: Optional[int] = None) -> AutoDecision:
        now = self._now(now)
        if not self._auto_started:
            self._auto_started = True
            self._begin_autonomous(now)
        if self._auto_macro:
            macro = self._macro
            if macro is None or macro.mode is not MacroMode.PLAYING:
                return self._stop()
            for event in macro.poll(now=now):
                self.replay.apply(event)
                self.dispatch(event)
            if macro.is_playing(now):
                return AutoDecision.RUN
            # free the slot so the trigger can record again
            self._macro = None
            return self._stop()
        routine = self._auto_modes.get(self._auto_selected)
        if routine is not None:
            try:
                routine()
            except Exception:
                LOG.exception("autonomous mode %r failed", self._auto_selected)
        return AutoDecision.NONE

    def end_autonomous(self):
        macro = self._macro
        if self._auto_macro and macro is not None and not macro.is_recording:
            if macro.mode is MacroMode.PLAYING:
                macro.abort()
            self._macro = None
        self.replay.reset()
        self._auto_started = False
        self._auto_selected = None
        self._auto_macro = False
        self._stop_sent = False
