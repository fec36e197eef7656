"""Error types raised by the macro core"""


class MacroError(Exception):
    """Base class for recording/playback failures."""


class IOFailure(MacroError, OSError):
    """A macro or config file is missing, unreadable or unwritable."""


class ParseFailure(MacroError, ValueError):
    """A serialized line or config document could not be parsed."""

    def __init__(self, message, line=None, lineno=None):
        super().__init__(message)
        self.line = line
        self.lineno = lineno


class NoActiveSession(MacroError):
    """Stop/poll/abort was requested while no matching session is running."""
