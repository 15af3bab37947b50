"""Shared fixtures for the proctop test suite."""

import pytest

from proctop.errors import EnumerationError, RecordReadError
from proctop.models import MemoryBasis, ProcessRecord, ProcessState, Snapshot
from proctop.monitor import RawProcessStat, SnapshotCollector


def make_record(
    pid: int,
    *,
    ppid: int = 1,
    name: str = "proc",
    state: ProcessState = ProcessState.SLEEPING,
    cpu_ticks: int = 0,
    virtual_memory_bytes: int = 0,
    resident_memory_bytes: int = 0,
    priority: int = 20,
    start_ticks: int = 0,
) -> ProcessRecord:
    """Build a ProcessRecord with defaults for the fields a test does not care about."""
    return ProcessRecord(
        pid=pid,
        ppid=ppid,
        name=name,
        state=state,
        cpu_ticks=cpu_ticks,
        virtual_memory_bytes=virtual_memory_bytes,
        resident_memory_bytes=resident_memory_bytes,
        priority=priority,
        start_ticks=start_ticks,
    )


def make_stat(pid: int, state_code: str = "S", **fields) -> RawProcessStat:
    values = {
        "ppid": 1,
        "name": f"proc{pid}",
        "cpu_ticks": 0,
        "virtual_memory_bytes": 1000,
        "resident_memory_bytes": 100,
        "priority": 20,
        "start_ticks": 0,
    }
    values.update(fields)
    return RawProcessStat(pid=pid, state_code=state_code, **values)


class FakeProcessSource:
    """In-memory ProcessSource."""

    def __init__(
        self,
        stats: list[RawProcessStat] | None = None,
        total_cpu_ticks: int = 1000,
        unreadable: set[int] | None = None,
        broken: bool = False,
    ) -> None:
        self.stats = list(stats or [])
        self.total_cpu_ticks = total_cpu_ticks
        self.unreadable = set(unreadable or ())
        self.broken = broken
        self.collections = 0

    def pids(self) -> list[int]:
        if self.broken:
            raise EnumerationError("cannot list processes: /proc is gone")
        self.collections += 1
        return [stat.pid for stat in self.stats]

    def read(self, pid: int) -> RawProcessStat:
        if pid in self.unreadable:
            raise RecordReadError(pid, "NoSuchProcess")
        for stat in self.stats:
            if stat.pid == pid:
                return stat
        raise RecordReadError(pid, "NoSuchProcess")

    def read_total_cpu_ticks(self) -> int:
        return self.total_cpu_ticks


@pytest.fixture
def sample_stats():
    """Five processes covering every filterable state."""
    return [
        make_stat(1, "S", name="init", ppid=0, cpu_ticks=300, virtual_memory_bytes=4000, start_ticks=1),
        make_stat(42, "R", name="python", cpu_ticks=100, virtual_memory_bytes=3000, priority=10),
        make_stat(7, "Z", name="defunct", cpu_ticks=0, virtual_memory_bytes=0, priority=25),
        make_stat(300, "I", name="kworker", ppid=2, cpu_ticks=50, virtual_memory_bytes=2000, priority=0),
        make_stat(12, "S", name="sshd", cpu_ticks=50, virtual_memory_bytes=1000, start_ticks=5),
    ]


@pytest.fixture
def fake_source(sample_stats):
    return FakeProcessSource(sample_stats, total_cpu_ticks=1000)


@pytest.fixture
def collector(fake_source):
    return SnapshotCollector(fake_source, memory_basis=MemoryBasis.VIRTUAL)


@pytest.fixture
def snapshot(collector) -> Snapshot:
    return collector.collect()
