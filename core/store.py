"""Macro text format and numbered file storage

A macro file holds one event per line in chronological order:

    <timestamp_ms>:<press|release|axis|POV>,<device>,<slot>,[<value>,]

There is no header; the set of recorded devices is the union of the device
ids found on the lines. Files are named by the lowest unused integer in the
macro directory and selected in the chooser as ``"macro" + number``.
"""
import logging
import os
from pathlib import Path
from typing import FrozenSet, Iterable, List, Optional, Tuple, Union

from core.errors import IOFailure, ParseFailure
from core.events import InputEvent
from core.macro import Macro

LOG = logging.getLogger("joymacro.store")

MACRO_TAG_PREFIX = "macro"


def is_macro_tag(tag: Optional[str]) -> bool:
    return bool(tag) and tag.startswith(MACRO_TAG_PREFIX)


def tag_to_number(tag: str) -> int:
    if not is_macro_tag(tag):
        raise ValueError(f"not a macro tag: {tag!r}")
    try:
        return int(tag[len(MACRO_TAG_PREFIX):])
    except ValueError as e:
        raise ValueError(f"macro tag without a number: {tag!r}") from e


def is_number_name(name: str) -> bool:
    """True for file names the store itself writes: ``"0"``, ``"12"``, never ``"007"``."""
    return name.isascii() and name.isdigit() and name == str(int(name))


def number_to_tag(number: int) -> str:
    return f"{MACRO_TAG_PREFIX}{number}"


def dumps(events: Iterable[InputEvent]) -> str:
    return "".join(e.to_line() for e in events)


def loads(text: Union[str, Iterable[str]], strict: bool = False) -> Tuple[List[InputEvent], FrozenSet[int]]:
    """Parse serialized events, returning them with the devices they cover.

    Blank lines are ignored. A malformed line is logged and skipped, unless
    ``strict`` is set, in which case the first one raises ``ParseFailure``.
    """
    lines = text.splitlines() if isinstance(text, str) else text
    events = []
    skipped = 0
    for lineno, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            events.append(InputEvent.from_line(line))
        except ParseFailure as e:
            e.lineno = lineno
            if strict:
                raise
            skipped += 1
            LOG.warning("skipping malformed line %d: %s", lineno, e)
    if skipped:
        LOG.warning("loaded %d event(s), skipped %d malformed line(s)", len(events), skipped)
    # stable, so same-tick events keep their diff order
    events.sort(key=lambda e: e.timestamp_ms)
    return events, frozenset(e.device_id for e in events)


class MacroStore:
    """Reads and writes macros as numbered files in one directory."""

    def __init__(self, directory: Union[str, Path], strict: bool = False):
        self.directory = Path(directory)
        self.strict = strict

    def __repr__(self):
        return f"MacroStore({str(self.directory)!r})"

    @staticmethod
    def read_whole(path: Union[str, Path]) -> List[str]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read().splitlines()
        except OSError as e:
            raise IOFailure(f"could not read {path}: {e}") from e

    @staticmethod
    def write_whole(path: Union[str, Path], text: str):
        """Write ``text`` to a temp file beside ``path`` and rename it into place."""
        path = Path(path)
        tmp = path.with_name(f".tmp_{path.name}")
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp, path)
        except OSError as e:
            try:
                tmp.unlink()
            except OSError:
                pass
            raise IOFailure(f"could not write {path}: {e}") from e

    def path_for(self, number: int) -> Path:
        return self.directory / str(number)

    def numbers(self) -> List[int]:
        if not self.directory.is_dir():
            return []
        try:
            paths = [p for p in self.directory.iterdir() if p.is_file()]
        except OSError as e:
            raise IOFailure(f"could not list {self.directory}: {e}") from e
        return sorted(int(p.name) for p in paths if is_number_name(p.name))

    def tags(self) -> List[str]:
        return [number_to_tag(n) for n in self.numbers()]

    def exists(self, number: int) -> bool:
        return self.path_for(number).is_file()

    def next_number(self) -> int:
        """Lowest integer that is not already a file name."""
        taken = set(self.numbers())
        number = 0
        while number in taken:
            number += 1
        return number

    def save(self, macro: Macro) -> int:
        if self.directory.exists() and not self.directory.is_dir():
            raise IOFailure(f"macro directory {self.directory} is not a folder")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IOFailure(f"could not create {self.directory}: {e}") from e
        number = self.next_number()
        self.write_whole(self.path_for(number), dumps(macro.events))
        LOG.info("saved macro %d (%d event(s), %d ms) to %s",
                 number, len(macro), macro.length_ms, self.path_for(number))
        return number

    def load(self, which: Union[int, str], device_ids: Optional[Iterable[int]] = None) -> Macro:
        """Load a macro by file number or ``macroN`` tag."""
        number = tag_to_number(which) if isinstance(which, str) else which
        lines = self.read_whole(self.path_for(number))
        events, found = loads(lines, strict=self.strict)
        macro = Macro(device_ids if device_ids is not None else found, events)
        LOG.info("loaded macro %d: %d event(s) on devices %s, %d ms",
                 number, len(macro), sorted(macro.device_ids), macro.length_ms)
        return macro
