"""Verification Test: Load Test - many dummy processes.

The loop re-enumerates the whole process table on every iteration, so one
collection plus one frame must stay well inside the refresh period even with
a crowded table.

Note: In CI environments, spawning thousands of processes is often limited by
system resources. We use a scaled-down approach that validates the same behavior.
"""

import multiprocessing
import os
import time

import pytest

from proctop.models import SortKey
from proctop.monitor import SnapshotCollector
from proctop.session import MonitorSession
from proctop.table import ProcessTableModel


def dummy_worker(duration: float = 30.0) -> None:
    """A dummy worker process that sleeps for a given duration."""
    try:
        time.sleep(duration)
    except (KeyboardInterrupt, SystemExit):
        pass


@pytest.fixture
def dummy_processes():
    """
    Fixture to spawn dummy processes for testing.

    In CI environments, we scale down the number of processes to avoid
    resource exhaustion while still validating the behavior with many processes.
    """
    is_ci = os.environ.get("CI", "false").lower() == "true"
    num_processes = 50 if is_ci else 200

    processes = []
    try:
        for _ in range(num_processes):
            p = multiprocessing.Process(target=dummy_worker, args=(30.0,))
            p.start()
            processes.append(p)
        yield processes
    finally:
        # Clean up all processes
        for p in processes:
            if p.is_alive():
                p.terminate()
        for p in processes:
            p.join(timeout=1.0)


class TestLoadTest:
    """Load test verification suite tests."""

    def test_collector_sees_many_processes(self, dummy_processes):
        """
        Test that a snapshot includes the spawned processes.
        """
        snapshot = SnapshotCollector().collect()

        pids = {r.pid for r in snapshot.records}
        seen = sum(1 for p in dummy_processes if p.pid in pids)
        assert seen >= len(dummy_processes) // 2, (
            f"Expected at least {len(dummy_processes) // 2} dummy processes, got {seen}"
        )

        for record in snapshot.records[:10]:
            assert record.pid >= 0
            assert isinstance(record.name, str)

    def test_collection_time_under_threshold(self, dummy_processes):
        """
        Test that collection completes within acceptable time.

        2 seconds is generous to account for CI variability.
        """
        collector = SnapshotCollector()

        start_time = time.perf_counter()
        snapshot = collector.collect()
        collection_time = time.perf_counter() - start_time

        assert collection_time < 2.0, f"Collection took {collection_time:.2f}s, expected < 2.0s"
        assert len(snapshot) >= len(dummy_processes) // 2

    def test_sorting_large_view(self, dummy_processes):
        """
        Test every sort key over a crowded snapshot stays deterministic.
        """
        model = ProcessTableModel(SnapshotCollector().collect())

        for key in SortKey:
            model.sort_key = key
            start_time = time.perf_counter()
            first = model.view()
            elapsed = time.perf_counter() - start_time
            assert elapsed < 1.0
            assert [r.record.pid for r in first] == [r.record.pid for r in model.view()]

    def test_multiple_iterations_with_load(self, dummy_processes):
        """
        Test that the session completes multiple loop iterations under load.
        """
        session = MonitorSession(SnapshotCollector())

        start_time = time.time()
        for _ in range(5):
            frame = session.step(None, viewport_height=40)
            assert frame.total_rows >= len(dummy_processes) // 2
            assert len(frame.rows) == 40
        assert time.time() - start_time < 10.0
