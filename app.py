"""Entry point for joymacro

Polls the joysticks at a fixed rate and either drives teleop (with pedal-style
record toggling) or runs an autonomous session from a stored macro.
"""
import argparse
import logging
import sys
import time

from config import Config
from core.errors import MacroError
from core.events import EventKind, InputEvent
from core.store import MacroStore
from devices.joystick import JoystickDevice
from orchestrator import AutoChooser, AutoDecision, Orchestrator

LOG = logging.getLogger("joymacro")


def build_orchestrator(cfg: Config, device, chooser=None, on_stop=None) -> Orchestrator:
    trigger = InputEvent.press(cfg.record_device, cfg.record_button)
    orch = Orchestrator(
        MacroStore(cfg.macro_dir),
        chooser or AutoChooser(),
        device,
        cfg.devices,
        record_trigger=trigger,
        deadband=cfg.deadband,
        debug=cfg.debug,
        on_stop=on_stop,
    )
    for b in cfg.bindings:
        kind = EventKind.RELEASE if b.get("event") == "release" else EventKind.PRESS
        template = InputEvent(kind, int(b.get("device", 0)), int(b["button"]))
        if b["action"] == "record":
            orch.bind_record_trigger(template)
        else:
            orch.bind(template, lambda e: LOG.info(e.readable()))
    for name in cfg.auto_modes:
        orch.add_auto_mode(name, lambda name=name: LOG.debug("auto mode %s tick", name))
    orch.add_existing_macros()
    return orch


def run_loop(orch: Orchestrator, period: float, auto: bool, duration=None):
    deadline = time.monotonic() + duration if duration else None
    next_tick = time.monotonic()
    while True:
        try:
            if auto:
                if orch.autonomous_tick() is AutoDecision.STOP:
                    LOG.info("macro finished")
                    return
            else:
                orch.teleop_tick()
        except Exception:
            LOG.exception("error in tick loop")
        if deadline is not None and time.monotonic() >= deadline:
            return
        next_tick += period
        delay = next_tick - time.monotonic()
        if delay > 0:
            time.sleep(delay)
        else:
            # overran; resync instead of bursting to catch up
            next_tick = time.monotonic()


def main(argv=None):
    parser = argparse.ArgumentParser(description="joymacro: record and replay joystick sessions")
    parser.add_argument("--config", help="YAML config file")
    parser.add_argument("--macro-dir", help="directory holding recorded macros")
    parser.add_argument("--hz", type=int, help="tick frequency")
    parser.add_argument("--mode", choices=["teleop", "auto"], default="teleop",
                        help="teleop records on the trigger button; auto replays the selection")
    parser.add_argument("--select", help="autonomous selection, e.g. 'macro0' or a built-in mode")
    parser.add_argument("--duration", type=float, help="stop after this many seconds")
    parser.add_argument("--list", action="store_true", help="list stored macros and exit")
    parser.add_argument("--write-config", metavar="PATH", help="write the effective config and exit")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        help="Logging level (default: INFO)")
    parser.add_argument("--log-format", default="%(levelname)s:%(name)s:%(message)s",
                        help="Logging format string (default: %(levelname)s:%(name)s:%(message)s)")
    parser.add_argument("--debug-modules", nargs="*", default=[],
                        help="Modules to set to DEBUG level (e.g., 'differ', 'macro', 'store', 'orchestrator')")
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level), format=args.log_format)
    for module in args.debug_modules:
        logging.getLogger(f"joymacro.{module}").setLevel(logging.DEBUG)

    try:
        cfg = Config.load(args.config) if args.config else Config()
    except MacroError as e:
        LOG.error("%s", e)
        return 1
    if args.macro_dir:
        cfg.macro_dir = args.macro_dir
    if args.hz:
        cfg.hz = args.hz

    if args.write_config:
        try:
            cfg.save(args.write_config)
        except MacroError as e:
            LOG.error("%s", e)
            return 1
        return 0

    if args.list:
        store = MacroStore(cfg.macro_dir)
        for n in store.numbers():
            try:
                macro = store.load(n)
            except MacroError as e:
                print(f"Macro {n}: unreadable ({e})")
                continue
            print(f"Macro {n} (macro{n}): {len(macro)} events, {macro.length_ms / 1000.0:.1f}s, "
                  f"devices {sorted(macro.device_ids)}")
        return 0

    joysticks = JoystickDevice(cfg.devices)
    chooser = AutoChooser()
    orch = build_orchestrator(cfg, joysticks, chooser,
                              on_stop=lambda: LOG.info("autonomous finished; stop actuators"))
    if args.select:
        chooser.select(args.select)

    auto = args.mode == "auto"
    try:
        LOG.info("joymacro running (%s) — press Ctrl+C to stop", args.mode)
        run_loop(orch, cfg.period, auto, args.duration)
    except KeyboardInterrupt:
        LOG.info("shutdown requested")
    finally:
        if auto:
            orch.end_autonomous()
        elif orch.current_macro is not None and orch.current_macro.is_recording:
            orch.toggle_recording()
        joysticks.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
