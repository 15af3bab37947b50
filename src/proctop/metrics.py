"""Derived metrics for process records."""

from proctop.models import (
    MemoryBasis,
    PriorityBucket,
    ProcessRecord,
    ProcessRow,
    ProcessState,
    Snapshot,
)

STATE_LABELS: dict[ProcessState, str] = {
    ProcessState.RUNNING: "Running",
    ProcessState.SLEEPING: "Sleeping",
    ProcessState.DISK_SLEEP: "Disk Sleep",
    ProcessState.ZOMBIE: "Zombie",
    ProcessState.STOPPED: "Stopped",
    ProcessState.IDLE: "Idle",
    ProcessState.UNKNOWN: "Unknown",
}


def cpu_percent(ticks: int, total_ticks: int) -> float:
    """
    Share of the system-wide tick counter consumed by a process.

    Both counters are cumulative, so this is the average utilization since
    the process started rather than its current load.
    """
    if total_ticks == 0:
        return 0.0
    return ticks / total_ticks * 100.0


def memory_percent(size: int, total_size: int) -> float:
    """Share of the sampled processes' combined memory, not of host RAM."""
    if total_size == 0:
        return 0.0
    return size / total_size * 100.0


def priority_bucket(priority: int) -> PriorityBucket:
    """Classify a scheduling priority (lower is more important)."""
    if priority <= 0:
        return PriorityBucket.HIGH
    if priority <= 20:
        return PriorityBucket.NORMAL
    return PriorityBucket.LOW


def state_label(state: ProcessState) -> str:
    """Human-readable name for a process state."""
    return STATE_LABELS.get(state, "Unknown")


def memory_of(record: ProcessRecord, basis: MemoryBasis) -> int:
    """The footprint of a record that counts towards the given basis."""
    if basis is MemoryBasis.RESIDENT:
        return record.resident_memory_bytes
    return record.virtual_memory_bytes


def derive_row(record: ProcessRecord, snapshot: Snapshot) -> ProcessRow:
    """Attach the metrics of a record relative to its snapshot."""
    return ProcessRow(
        record=record,
        cpu_percent=cpu_percent(record.cpu_ticks, snapshot.total_cpu_ticks),
        memory_percent=memory_percent(
            memory_of(record, snapshot.memory_basis), snapshot.total_sampled_memory
        ),
        priority_bucket=priority_bucket(record.priority),
    )


def format_bytes(size: int) -> str:
    """Format bytes as human-readable string."""
    for unit in ["B", "K", "M", "G", "T"]:
        if size < 1024:
            return f"{size:5.1f}{unit}" if unit != "B" else f"{size:5d}{unit}"
        size = size / 1024
    return f"{size:.1f}P"
