"""Process sampling engine for proctop."""

import logging
import os
from dataclasses import dataclass
from typing import Protocol

import psutil

from proctop.errors import EnumerationError, RecordReadError
from proctop.models import MemoryBasis, ProcessRecord, ProcessState, Snapshot

logger = logging.getLogger(__name__)

# psutil status strings -> single-letter codes as found in /proc/<pid>/stat
STATUS_CODES: dict[str, str] = {
    psutil.STATUS_RUNNING: "R",
    psutil.STATUS_SLEEPING: "S",
    psutil.STATUS_DISK_SLEEP: "D",
    psutil.STATUS_STOPPED: "T",
    psutil.STATUS_TRACING_STOP: "t",
    psutil.STATUS_ZOMBIE: "Z",
    psutil.STATUS_DEAD: "X",
    psutil.STATUS_WAKING: "W",
    psutil.STATUS_IDLE: "I",
}

# Kernel priority of a normal (non real-time) task is 20 + nice
PRIORITY_BASE = 20


def clock_ticks_per_second() -> int:
    """Return the kernel clock rate used for tick counters (USER_HZ)."""
    try:
        return os.sysconf("SC_CLK_TCK")
    except (AttributeError, ValueError, OSError):
        return 100


@dataclass(slots=True, frozen=True)
class RawProcessStat:
    """Raw per-process counters as read from the operating system."""

    pid: int
    ppid: int
    name: str
    state_code: str
    cpu_ticks: int
    virtual_memory_bytes: int
    resident_memory_bytes: int
    priority: int
    start_ticks: int


class ProcessSource(Protocol):
    """Boundary to the operating system's process table."""

    def pids(self) -> list[int]:
        """List visible pids. Raises EnumerationError if the table is unreadable."""
        ...

    def read(self, pid: int) -> RawProcessStat:
        """Read one process. Raises RecordReadError if it cannot be read."""
        ...

    def read_total_cpu_ticks(self) -> int:
        """Return the system-wide cumulative tick counter."""
        ...


class PsutilProcessSource:
    """ProcessSource backed by psutil."""

    def __init__(self) -> None:
        self._hz = clock_ticks_per_second()
        self._boot_time = psutil.boot_time()

    def pids(self) -> list[int]:
        try:
            return psutil.pids()
        except (OSError, psutil.Error) as err:
            raise EnumerationError(f"cannot list processes: {err}") from err

    def read(self, pid: int) -> RawProcessStat:
        """
        Read one process's counters.

        Uses the oneshot() context manager so the stat files are parsed once.
        """
        try:
            proc = psutil.Process(pid)
            with proc.oneshot():
                cpu = proc.cpu_times()
                mem = proc.memory_info()
                return RawProcessStat(
                    pid=proc.pid,
                    ppid=proc.ppid(),
                    name=proc.name(),
                    state_code=STATUS_CODES.get(proc.status(), "?"),
                    cpu_ticks=round((cpu.user + cpu.system) * self._hz),
                    virtual_memory_bytes=mem.vms,
                    resident_memory_bytes=mem.rss,
                    priority=PRIORITY_BASE + proc.nice(),
                    start_ticks=max(0, round((proc.create_time() - self._boot_time) * self._hz)),
                )
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess) as err:
            # Handle processes that died mid-poll, access denied, or zombies
            raise RecordReadError(pid, type(err).__name__) from err
        except OSError as err:
            raise RecordReadError(pid, str(err)) from err

    def read_total_cpu_ticks(self) -> int:
        try:
            times = psutil.cpu_times()
        except (OSError, psutil.Error):
            return 0
        return round(sum(times) * self._hz)


class SnapshotCollector:
    """
    Builds immutable Snapshots from a ProcessSource.

    A process that exits or denies access between enumeration and reading is
    an expected race: with ``skip_unreadable_records`` on (the default) its
    record is dropped and collection continues. Failure to enumerate at all
    propagates as EnumerationError.
    """

    def __init__(
        self,
        source: ProcessSource | None = None,
        memory_basis: MemoryBasis = MemoryBasis.VIRTUAL,
        skip_unreadable_records: bool = True,
    ) -> None:
        """
        Initialize the SnapshotCollector.

        Args:
            source: Where process data comes from. Defaults to psutil.
            memory_basis: Which footprint is summed into the snapshot total.
            skip_unreadable_records: Drop records that fail to read instead of raising.
        """
        self._source = source if source is not None else PsutilProcessSource()
        self._memory_basis = memory_basis
        self._skip_unreadable_records = skip_unreadable_records

    @property
    def memory_basis(self) -> MemoryBasis:
        return self._memory_basis

    @property
    def skip_unreadable_records(self) -> bool:
        return self._skip_unreadable_records

    def collect(self) -> Snapshot:
        """Collect a snapshot of the current process table."""
        records: list[ProcessRecord] = []
        skipped = 0

        for pid in self._source.pids():
            try:
                raw = self._source.read(pid)
            except RecordReadError:
                if not self._skip_unreadable_records:
                    raise
                skipped += 1
                continue
            records.append(to_record(raw))

        if skipped:
            logger.debug("Skipped %d unreadable process records", skipped)

        return Snapshot.from_records(records, self.total_cpu_ticks(), self._memory_basis)

    def total_cpu_ticks(self) -> int:
        """Read the system-wide tick counter; 0 when it is unavailable."""
        try:
            ticks = int(self._source.read_total_cpu_ticks())
        except (OSError, ValueError, TypeError):
            return 0
        return max(0, ticks)


def to_record(raw: RawProcessStat) -> ProcessRecord:
    """Convert raw counters into a ProcessRecord."""
    return ProcessRecord(
        pid=raw.pid,
        ppid=raw.ppid,
        name=raw.name,
        state=ProcessState.from_code(raw.state_code),
        cpu_ticks=raw.cpu_ticks,
        virtual_memory_bytes=raw.virtual_memory_bytes,
        resident_memory_bytes=raw.resident_memory_bytes,
        priority=raw.priority,
        start_ticks=raw.start_ticks,
    )
