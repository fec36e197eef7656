"""YAML configuration: macro directory, devices, record trigger and bindings

Example::

    macro_dir: /home/lvuser/macros
    hz: 50
    deadband: 0.01
    devices: [0, 1]
    record_device: 0
    record_button: 5
    debug: false
    auto_modes: [example]
    bindings:
      - {event: press, device: 1, button: 2, action: log}
"""
import logging
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List

import yaml

from core.errors import IOFailure, ParseFailure

LOG = logging.getLogger("joymacro.config")

BINDING_EVENTS = ("press", "release")
BINDING_ACTIONS = ("log", "record")


@dataclass
class Config:
    macro_dir: str = "macros"
    hz: int = 50
    deadband: float = 0.01
    devices: List[int] = field(default_factory=lambda: [0])
    record_device: int = 0
    record_button: int = 5
    debug: bool = False
    bindings: List[Dict[str, Any]] = field(default_factory=list)
    auto_modes: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ParseFailure(f"config must be a mapping, got {type(data).__name__}")
        known = {f.name for f in fields(cls)}
        for key in data:
            if key not in known:
                LOG.warning("ignoring unknown config key %r", key)
        cfg = cls(**{k: v for k, v in data.items() if k in known})
        cfg._validate()
        return cfg

    def _validate(self):
        try:
            self.hz = int(self.hz)
            self.deadband = float(self.deadband)
            self.devices = [int(d) for d in self.devices]
            self.record_device = int(self.record_device)
            self.record_button = int(self.record_button)
        except (TypeError, ValueError) as e:
            raise ParseFailure(f"invalid config value: {e}") from e
        if self.hz <= 0:
            raise ParseFailure(f"hz must be positive, got {self.hz}")
        for b in self.bindings:
            if not isinstance(b, dict):
                raise ParseFailure(f"binding must be a mapping: {b!r}")
            if b.get("event", "press") not in BINDING_EVENTS:
                raise ParseFailure(f"unsupported binding event in {b!r}")
            if b.get("action") not in BINDING_ACTIONS:
                raise ParseFailure(f"unsupported binding action in {b!r}")
            if "button" not in b:
                raise ParseFailure(f"binding without a button: {b!r}")

    @property
    def period(self) -> float:
        return 1.0 / float(self.hz)

    @classmethod
    def load(cls, path: str) -> "Config":
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise IOFailure(f"could not read config at {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ParseFailure(f"malformed config at {path}: {e}") from e
        cfg = cls.from_dict(data)
        LOG.info("loaded config from %s", path)
        return cfg

    def save(self, path: str):
        try:
            with open(path, "w", encoding="utf-8") as f:
                yaml.safe_dump(asdict(self), f, sort_keys=False)
        except OSError as e:
            raise IOFailure(f"could not update config at {path}: {e}") from e
        LOG.info("wrote config to %s", path)
