"""
Interaction state machine for proctop.

The loop state is a single immutable :class:`UIState` value. Every key press
is a pure transition ``advance(state, event, snapshot) -> UIState``; the
side effects (collecting a snapshot and drawing) live in
:class:`MonitorSession` and the front end that drives it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum

from proctop.commands import ClearFilter, Command, Inspect, Invalid, SetFilter, SetSort, parse
from proctop.config import MonitorConfig
from proctop.errors import CommandError
from proctop.metrics import derive_row, format_bytes, memory_of, state_label
from proctop.models import ProcessRow, ProcessState, Snapshot, SortKey
from proctop.monitor import SnapshotCollector
from proctop.table import ProcessTableModel

logger = logging.getLogger(__name__)

SORT_LABELS: dict[SortKey, str] = {
    SortKey.NONE: "none (enumeration order)",
    SortKey.CPU: "CPU usage, highest first",
    SortKey.MEMORY: "memory usage, highest first",
    SortKey.PPID: "parent PID",
    SortKey.STATE: "state",
    SortKey.START_TIME: "start time",
    SortKey.PRIORITY: "priority",
}


class KeyKind(Enum):
    """Classes of key press the state machine distinguishes."""

    CHAR = "char"
    BACKSPACE = "backspace"
    ENTER = "enter"
    UP = "up"
    DOWN = "down"
    OTHER = "other"


@dataclass(slots=True, frozen=True)
class KeyEvent:
    kind: KeyKind
    char: str = ""

    @classmethod
    def of_char(cls, char: str) -> KeyEvent:
        return cls(KeyKind.CHAR, char)

    @property
    def printable(self) -> bool:
        return self.kind is KeyKind.CHAR and len(self.char) == 1 and self.char.isprintable()


@dataclass(slots=True, frozen=True)
class UIState:
    """Everything about the screen that survives a refresh."""

    scroll_offset: int = 0
    input_buffer: str = ""
    last_output: str = ""
    sort_key: SortKey = SortKey.NONE
    filter_set: frozenset[ProcessState] = field(default_factory=frozenset)
    terminated: bool = False

    @property
    def editing(self) -> bool:
        """True while a command is being typed."""
        return bool(self.input_buffer)


@dataclass(slots=True, frozen=True)
class ViewModel:
    """Logical content of one frame, handed to the renderer."""

    rows: tuple[ProcessRow, ...]
    header: str
    input_buffer: str
    last_output: str
    scroll_offset: int
    total_rows: int
    viewport_height: int


def clamp_scroll(offset: int, view_length: int, viewport_height: int) -> int:
    """Clamp a scroll offset to ``[0, max(0, view_length - viewport_height)]``."""
    return max(0, min(offset, max(0, view_length - viewport_height)))


def advance(state: UIState, event: KeyEvent, snapshot: Snapshot) -> UIState:
    """
    Apply one key press to the UI state.

    While the input buffer is empty, ``j``/``k`` and the arrows scroll and
    ``q`` quits. Once typing has started every printable character, ``q``
    included, goes into the buffer until Enter dispatches it.
    """
    if event.kind is KeyKind.DOWN:
        return replace(state, scroll_offset=state.scroll_offset + 1)
    if event.kind is KeyKind.UP:
        return replace(state, scroll_offset=max(0, state.scroll_offset - 1))

    if not state.editing:
        if not event.printable:
            return state
        if event.char == "j":
            return replace(state, scroll_offset=state.scroll_offset + 1)
        if event.char == "k":
            return replace(state, scroll_offset=max(0, state.scroll_offset - 1))
        if event.char == "q":
            return replace(state, terminated=True)
        return replace(state, input_buffer=event.char)

    if event.printable:
        return replace(state, input_buffer=state.input_buffer + event.char)
    if event.kind is KeyKind.BACKSPACE:
        return replace(state, input_buffer=state.input_buffer[:-1])
    if event.kind is KeyKind.ENTER:
        command = parse(state.input_buffer)
        return dispatch(replace(state, input_buffer=""), command, snapshot)
    return state


def dispatch(state: UIState, command: Command, snapshot: Snapshot) -> UIState:
    """Apply a parsed command. Errors only ever change ``last_output``."""
    try:
        if isinstance(command, SetSort):
            return replace(
                state,
                sort_key=command.key,
                last_output=f"Sorted by {SORT_LABELS[command.key]}",
            )
        if isinstance(command, SetFilter):
            return replace(
                state,
                filter_set=command.states,
                last_output=f"Filtering by state: {describe_filter(command.states)}",
            )
        if isinstance(command, ClearFilter):
            return replace(state, filter_set=frozenset(), last_output="Filter cleared")
        if isinstance(command, Inspect):
            return replace(state, last_output=describe_process(snapshot, command.pid))
        if isinstance(command, Invalid):
            raise CommandError(command.reason)
        raise CommandError(f"Unsupported command: {command!r}")
    except CommandError as err:
        logger.debug("Command rejected: %s", err)
        return replace(state, last_output=f"Error: {err.message}")


def describe_filter(states: frozenset[ProcessState]) -> str:
    if not states:
        return "all"
    return ", ".join(state_label(s) for s in sorted(states, key=lambda s: s.code))


def describe_process(snapshot: Snapshot, pid: int) -> str:
    """Detail block for one pid of the full snapshot (the filter does not apply)."""
    record = snapshot.find(pid)
    if record is None:
        raise CommandError(f"No process with PID {pid}")
    row = derive_row(record, snapshot)
    memory_bytes = memory_of(record, snapshot.memory_basis)
    return "\n".join(
        [
            f"PID: {record.pid}  PPID: {record.ppid}",
            f"Command: {record.name}",
            f"State: {state_label(record.state)} ({record.state.code})",
            f"Priority: {record.priority} ({row.priority_bucket.value})",
            f"CPU Usage: {record.cpu_ticks} ticks ({row.cpu_percent:.2f}%)",
            f"Memory Usage: {format_bytes(memory_bytes).strip()} {snapshot.memory_basis.value}"
            f" ({row.memory_percent:.2f}%)",
            f"Virtual: {format_bytes(record.virtual_memory_bytes).strip()}"
            f"  Resident: {format_bytes(record.resident_memory_bytes).strip()}",
            f"Started: {record.start_ticks} ticks after boot",
        ]
    )


def summarize(snapshot: Snapshot, shown: int, state: UIState) -> str:
    """Header line describing the current view."""
    letters = ",".join(sorted(s.code for s in state.filter_set)) or "all"
    return (
        f"Processes: {shown} shown / {len(snapshot)} sampled | "
        f"Sort: {state.sort_key.value} | Filter: {letters} | "
        f"CPU ticks: {snapshot.total_cpu_ticks} | "
        f"Sampled {snapshot.memory_basis.value} memory: "
        f"{format_bytes(snapshot.total_sampled_memory).strip()}"
    )


class MonitorSession:
    """
    One monitor run: the collector, the table model and the UI state.

    A loop iteration is ``refresh()`` then ``frame()``; key presses go
    through ``handle()``. Everything runs on the caller's thread.
    """

    def __init__(self, collector: SnapshotCollector, config: MonitorConfig | None = None) -> None:
        """
        Initialize the MonitorSession.

        Args:
            collector: Source of snapshots.
            config: Run settings; only ``initial_sort`` is used here.
        """
        config = config if config is not None else MonitorConfig()
        self._collector = collector
        self._state = UIState(sort_key=config.initial_sort)
        self._model = ProcessTableModel(
            Snapshot.empty(collector.memory_basis), sort_key=config.initial_sort
        )

    @property
    def state(self) -> UIState:
        return self._state

    @property
    def snapshot(self) -> Snapshot:
        return self._model.snapshot

    @property
    def model(self) -> ProcessTableModel:
        return self._model

    @property
    def terminated(self) -> bool:
        return self._state.terminated

    def refresh(self) -> Snapshot:
        """Collect a new snapshot. EnumerationError propagates to the caller."""
        snapshot = self._collector.collect()
        self._model.apply(snapshot)
        return snapshot

    def handle(self, event: KeyEvent) -> UIState:
        """Advance the state by one key press and sync the table model."""
        self._state = advance(self._state, event, self._model.snapshot)
        self._model.configure(self._state.sort_key, self._state.filter_set)
        return self._state

    def frame(self, viewport_height: int) -> ViewModel:
        """Build the view for this iteration, clamping the scroll offset."""
        viewport_height = max(1, viewport_height)
        rows = self._model.view()
        offset = clamp_scroll(self._state.scroll_offset, len(rows), viewport_height)
        if offset != self._state.scroll_offset:
            self._state = replace(self._state, scroll_offset=offset)
        return ViewModel(
            rows=tuple(rows[offset : offset + viewport_height]),
            header=summarize(self._model.snapshot, len(rows), self._state),
            input_buffer=self._state.input_buffer,
            last_output=self._state.last_output,
            scroll_offset=offset,
            total_rows=len(rows),
            viewport_height=viewport_height,
        )

    def step(self, event: KeyEvent | None, viewport_height: int) -> ViewModel:
        """
        Run one loop iteration: refresh, apply the polled key if any, build the frame.

        ``event`` is None when the input poll timed out.
        """
        self.refresh()
        if event is not None:
            self.handle(event)
        return self.frame(viewport_height)
