"""Parser for the commands typed into the monitor's input line."""

from __future__ import annotations

import re
from dataclasses import dataclass

from proctop.models import ProcessState, SortKey

SORT_KEYWORDS: dict[str, SortKey] = {
    "cpu": SortKey.CPU,
    "memory": SortKey.MEMORY,
    "ppid": SortKey.PPID,
    "state": SortKey.STATE,
    "start_time": SortKey.START_TIME,
    "priority": SortKey.PRIORITY,
    "none": SortKey.NONE,
}

FILTER_LETTERS: dict[str, ProcessState] = {
    "I": ProcessState.IDLE,
    "S": ProcessState.SLEEPING,
    "R": ProcessState.RUNNING,
    "Z": ProcessState.ZOMBIE,
}

CLEAR_FILTER_KEYWORD = "all"

_PID_PATTERN = re.compile(r"[+-]?\d+")


@dataclass(slots=True, frozen=True)
class SetSort:
    key: SortKey


@dataclass(slots=True, frozen=True)
class SetFilter:
    states: frozenset[ProcessState]


@dataclass(slots=True, frozen=True)
class ClearFilter:
    pass


@dataclass(slots=True, frozen=True)
class Inspect:
    pid: int


@dataclass(slots=True, frozen=True)
class Invalid:
    """Text that is not a command; ``reason`` is shown to the user."""

    text: str
    reason: str = "Unrecognized command"


Command = SetSort | SetFilter | ClearFilter | Inspect | Invalid


def parse(line: str) -> Command:
    """
    Parse one line of input into a Command.

    Never raises: anything that is not a sort keyword, a filter expression,
    ``all`` or an integer pid comes back as Invalid.

    Examples:
        >>> parse("CPU")
        SetSort(key=<SortKey.CPU: 'cpu'>)
        >>> parse("42")
        Inspect(pid=42)
    """
    text = line.strip()
    lowered = text.lower()

    if lowered in SORT_KEYWORDS:
        return SetSort(SORT_KEYWORDS[lowered])

    if lowered == CLEAR_FILTER_KEYWORD:
        return ClearFilter()

    if text.startswith("/"):
        return _parse_filter(line, text[1:])

    if _PID_PATTERN.fullmatch(text):
        try:
            return Inspect(int(text))
        except ValueError:
            # past the interpreter's integer string conversion limit
            return Invalid(line, reason=f"PID out of range: {text[:20]}...")

    return Invalid(
        line,
        reason=(
            f"Unrecognized command {text!r}: try cpu, memory, ppid, state, "
            "start_time, priority, none, /R,Z, all or a PID"
        ),
    )


def _parse_filter(line: str, body: str) -> SetFilter | Invalid:
    """Parse ``I,S,R,Z``-style letters; one bad token rejects the whole list."""
    states: set[ProcessState] = set()
    for token in body.split(","):
        letter = token.strip().upper()
        if letter not in FILTER_LETTERS:
            return Invalid(
                line,
                reason=(
                    f"Invalid filter {line.strip()!r}: use comma-separated states "
                    "I (idle), S (sleeping), R (running), Z (zombie), e.g. /R,Z"
                ),
            )
        states.add(FILTER_LETTERS[letter])
    return SetFilter(frozenset(states))
