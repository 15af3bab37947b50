"""Verification Test: Chaos Monkey - Random process termination resilience.

Processes exit between enumeration and reading all the time. Collection must
skip them silently and keep producing snapshots, and an inspected pid that has
gone away must only produce an error line.
"""

import multiprocessing
import random
import time

import pytest

from proctop.config import MonitorConfig
from proctop.models import ProcessState, SortKey
from proctop.monitor import SnapshotCollector
from proctop.session import KeyEvent, KeyKind, MonitorSession


def dummy_worker(duration: float = 60.0) -> None:
    """A dummy worker process that sleeps for a given duration."""
    try:
        time.sleep(duration)
    except (KeyboardInterrupt, SystemExit):
        pass


def stop_all(processes) -> None:
    for p in processes:
        if p.is_alive():
            p.terminate()
    for p in processes:
        p.join(timeout=1.0)


class TestChaosMonkey:
    """Chaos Monkey verification suite tests."""

    def test_collector_survives_process_termination(self):
        """
        Test that collection doesn't fail when processes die mid-poll.

        This simulates the real-world scenario where processes can terminate
        at any time during monitoring.
        """
        processes = []
        for _ in range(30):
            p = multiprocessing.Process(target=dummy_worker, args=(60.0,))
            p.start()
            processes.append(p)

        collector = SnapshotCollector()

        try:
            before = collector.collect()
            assert {p.pid for p in processes} <= {r.pid for r in before.records}

            # Randomly terminate processes between collections
            for p in random.sample(processes, 15):
                p.terminate()
                collector.collect()

            snapshots_after_chaos = 0
            for _ in range(5):
                snapshot = collector.collect()
                snapshots_after_chaos += 1
                assert snapshot.total_sampled_memory == sum(
                    r.virtual_memory_bytes for r in snapshot.records
                )

            assert snapshots_after_chaos == 5

        finally:
            stop_all(processes)

    def test_rapid_process_creation_and_termination(self):
        """
        Test collector stability during rapid process churn.

        Processes are created and destroyed while the loop keeps refreshing.
        """
        session = MonitorSession(SnapshotCollector(), MonitorConfig(initial_sort=SortKey.CPU))
        processes = []

        try:
            start_time = time.time()
            iterations = 0

            while time.time() - start_time < 3.0:
                for _ in range(5):
                    p = multiprocessing.Process(target=dummy_worker, args=(10.0,))
                    p.start()
                    processes.append(p)

                alive = [p for p in processes if p.is_alive()]
                if len(alive) > 10:
                    for p in random.sample(alive, 3):
                        p.terminate()

                frame = session.step(None, viewport_height=20)
                iterations += 1
                assert len(frame.rows) <= 20

            assert iterations >= 3
            assert not session.terminated

        finally:
            stop_all(processes)

    def test_collect_handles_terminated_process(self):
        """
        Test that a process that is already gone is simply absent.
        """
        p = multiprocessing.Process(target=dummy_worker, args=(60.0,))
        p.start()
        time.sleep(0.1)
        pid = p.pid

        p.terminate()
        p.join(timeout=1.0)

        try:
            snapshot = SnapshotCollector().collect()
        except Exception as e:
            pytest.fail(f"collect() raised an exception: {e}")

        assert snapshot.find(pid) is None

    def test_zombie_process_handling(self):
        """
        Test that zombie processes are reported, not fatal.

        A child that has exited but not been joined is a zombie until reaped.
        """
        p = multiprocessing.Process(target=dummy_worker, args=(0.1,))
        p.start()
        time.sleep(0.5)

        try:
            snapshot = SnapshotCollector().collect()
            record = snapshot.find(p.pid)
            if record is not None:
                assert record.state in (ProcessState.ZOMBIE, ProcessState.UNKNOWN, ProcessState.SLEEPING)
        finally:
            p.join(timeout=1.0)

    def test_inspect_after_exit_is_an_error_line(self):
        """
        Test inspecting a pid that exited between refreshes.
        """
        p = multiprocessing.Process(target=dummy_worker, args=(60.0,))
        p.start()
        time.sleep(0.1)
        session = MonitorSession(SnapshotCollector())

        try:
            p.terminate()
            p.join(timeout=1.0)
            session.refresh()

            for char in str(p.pid):
                session.handle(KeyEvent.of_char(char))
            state = session.handle(KeyEvent(KeyKind.ENTER))

            assert state.last_output == f"Error: No process with PID {p.pid}"
            assert not state.terminated
        finally:
            stop_all([p])
