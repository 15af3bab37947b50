"""Error taxonomy for proctop.

Every error carries an :class:`ErrorKind` so callers can decide between
recovering in place and shutting the monitor down without inspecting messages.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """The kinds of failure the monitor distinguishes."""

    RECORD_UNREADABLE = "record_unreadable"
    ENUMERATION_FAILED = "enumeration_failed"
    TERMINAL_INIT = "terminal_init"
    TERMINAL_IO = "terminal_io"
    INVALID_COMMAND = "invalid_command"

    @property
    def fatal(self) -> bool:
        """Whether this kind ends the program."""
        return self in (ErrorKind.ENUMERATION_FAILED, ErrorKind.TERMINAL_INIT, ErrorKind.TERMINAL_IO)


class MonitorError(Exception):
    """Base class for proctop errors."""

    kind: ErrorKind

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class RecordReadError(MonitorError):
    """A single process could not be read (it exited or access was denied)."""

    kind = ErrorKind.RECORD_UNREADABLE

    def __init__(self, pid: int, reason: str) -> None:
        super().__init__(f"cannot read process {pid}: {reason}")
        self.pid = pid


class EnumerationError(MonitorError):
    """The process table itself could not be listed."""

    kind = ErrorKind.ENUMERATION_FAILED


class TerminalInitError(MonitorError):
    """The terminal could not be set up."""

    kind = ErrorKind.TERMINAL_INIT


class TerminalIOError(MonitorError):
    """Rendering or input failed while the monitor was running."""

    kind = ErrorKind.TERMINAL_IO


class CommandError(MonitorError):
    """A typed command could not be applied; shown to the user, never fatal."""

    kind = ErrorKind.INVALID_COMMAND
