"""Sorted, filtered view over the latest process snapshot."""

from collections.abc import Callable, Iterable
from typing import Any

from proctop.metrics import derive_row
from proctop.models import ProcessRecord, ProcessRow, ProcessState, Snapshot, SortKey

# Every key ends with the pid so equal metrics always come out in the same order
SORT_KEYS: dict[SortKey, Callable[[ProcessRow], tuple[Any, ...]]] = {
    SortKey.CPU: lambda r: (-r.cpu_percent, r.record.pid),
    SortKey.MEMORY: lambda r: (-r.memory_percent, r.record.pid),
    SortKey.PPID: lambda r: (r.record.ppid, r.record.pid),
    SortKey.STATE: lambda r: (r.record.state.code, r.record.pid),
    SortKey.START_TIME: lambda r: (r.record.start_ticks, r.record.pid),
    SortKey.PRIORITY: lambda r: (r.record.priority, r.record.pid),
}


class ProcessTableModel:
    """Holds the current snapshot and the active sort key and state filter."""

    def __init__(
        self,
        snapshot: Snapshot | None = None,
        sort_key: SortKey = SortKey.NONE,
        filter_set: Iterable[ProcessState] = (),
    ) -> None:
        self._snapshot = snapshot if snapshot is not None else Snapshot.empty()
        self._sort_key = sort_key
        self._filter_set = frozenset(filter_set)

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def sort_key(self) -> SortKey:
        """Get current sort key."""
        return self._sort_key

    @sort_key.setter
    def sort_key(self, value: SortKey) -> None:
        self._sort_key = value

    @property
    def filter_set(self) -> frozenset[ProcessState]:
        """States a row must be in to be shown; empty shows everything."""
        return self._filter_set

    @filter_set.setter
    def filter_set(self, value: Iterable[ProcessState]) -> None:
        self._filter_set = frozenset(value)

    def apply(self, snapshot: Snapshot) -> None:
        """Replace the held snapshot, keeping sort key and filter."""
        self._snapshot = snapshot

    def configure(self, sort_key: SortKey, filter_set: Iterable[ProcessState]) -> None:
        self.sort_key = sort_key
        self.filter_set = filter_set

    def view(self) -> list[ProcessRow]:
        """
        Return the filtered, sorted rows of the current snapshot.

        Usage metrics (CPU, memory) sort highest first; the other keys sort
        ascending. With no sort key the snapshot's enumeration order is kept.
        """
        snapshot = self._snapshot
        rows = [
            derive_row(record, snapshot)
            for record in snapshot.records
            if not self._filter_set or record.state in self._filter_set
        ]
        if self._sort_key is SortKey.NONE:
            return rows
        return sorted(rows, key=SORT_KEYS[self._sort_key])

    def lookup(self, pid: int) -> ProcessRecord | None:
        """Find a pid in the full snapshot, ignoring the filter."""
        return self._snapshot.find(pid)
