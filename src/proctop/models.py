"""Data models for proctop."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum


class ProcessState(Enum):
    """Scheduler state of a process, keyed by its single-letter OS code."""

    RUNNING = "R"
    SLEEPING = "S"
    DISK_SLEEP = "D"
    ZOMBIE = "Z"
    STOPPED = "T"
    IDLE = "I"
    UNKNOWN = "?"

    @classmethod
    def from_code(cls, code: str) -> ProcessState:
        """Map a single-letter state code; unmapped codes become UNKNOWN."""
        if code == "t":  # tracing stop
            return cls.STOPPED
        try:
            return cls(code)
        except ValueError:
            return cls.UNKNOWN

    @property
    def code(self) -> str:
        return self.value


class SortKey(Enum):
    """Sort keys for the process table."""

    NONE = "none"
    CPU = "cpu"
    MEMORY = "memory"
    PPID = "ppid"
    STATE = "state"
    START_TIME = "start_time"
    PRIORITY = "priority"


class PriorityBucket(Enum):
    """Coarse classification of a scheduling priority."""

    HIGH = "High"
    NORMAL = "Normal"
    LOW = "Low"


class MemoryBasis(Enum):
    """Which memory footprint is summed into a snapshot's memory total."""

    VIRTUAL = "virtual"
    RESIDENT = "resident"


@dataclass(slots=True, frozen=True)
class ProcessRecord:
    """Immutable record of one process within a snapshot."""

    pid: int
    ppid: int
    name: str
    state: ProcessState
    cpu_ticks: int  # Lifetime total (user + system), not a rate
    virtual_memory_bytes: int
    resident_memory_bytes: int
    priority: int
    start_ticks: int  # Clock ticks since boot


@dataclass(slots=True, frozen=True)
class Snapshot:
    """Point-in-time capture of all sampled processes plus aggregate totals.

    ``total_sampled_memory`` is the sum of the chosen footprint over exactly
    the records held here, not the host's physical memory.
    """

    records: tuple[ProcessRecord, ...]
    total_cpu_ticks: int
    total_sampled_memory: int
    memory_basis: MemoryBasis = MemoryBasis.VIRTUAL

    @classmethod
    def from_records(
        cls,
        records: Iterable[ProcessRecord],
        total_cpu_ticks: int,
        memory_basis: MemoryBasis = MemoryBasis.VIRTUAL,
    ) -> Snapshot:
        """Build a snapshot, recomputing the memory total from the records."""
        records = tuple(records)
        if memory_basis is MemoryBasis.RESIDENT:
            total = sum(r.resident_memory_bytes for r in records)
        else:
            total = sum(r.virtual_memory_bytes for r in records)
        return cls(
            records=records,
            total_cpu_ticks=total_cpu_ticks,
            total_sampled_memory=total,
            memory_basis=memory_basis,
        )

    @classmethod
    def empty(cls, memory_basis: MemoryBasis = MemoryBasis.VIRTUAL) -> Snapshot:
        return cls(records=(), total_cpu_ticks=0, total_sampled_memory=0, memory_basis=memory_basis)

    def find(self, pid: int) -> ProcessRecord | None:
        """Return the record with the given pid, or None."""
        for record in self.records:
            if record.pid == pid:
                return record
        return None

    def __len__(self) -> int:
        return len(self.records)


@dataclass(slots=True, frozen=True)
class ProcessRow:
    """A process record together with its derived metrics."""

    record: ProcessRecord
    cpu_percent: float
    memory_percent: float
    priority_bucket: PriorityBucket
