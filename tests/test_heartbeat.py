"""
Tests for the cancellable periodic task loop.
"""

import threading
import time

import pytest

from vectorkv.core.heartbeat import Heartbeat, run_task, should_run_task


@pytest.fixture
def heartbeat():
    hb = Heartbeat(name="test-heartbeat")
    yield hb
    hb.stop(timeout=2.0)


class TestHeartbeatRegistration:
    """Test task registration functionality."""

    def test_register_task_valid(self, heartbeat):
        heartbeat.register_task("test_task", 30, lambda: None)

        assert heartbeat.list_tasks() == ["test_task"]

    def test_register_task_invalid_func(self, heartbeat):
        with pytest.raises(ValueError, match="Task function must be callable"):
            heartbeat.register_task("bad_task", 30, "not_callable")

    def test_register_task_invalid_interval(self, heartbeat):
        with pytest.raises(ValueError, match="Interval must be > 0"):
            heartbeat.register_task("bad_task", 0, lambda: None)

    def test_register_duplicate_task(self, heartbeat):
        """Registering an existing name replaces it."""
        heartbeat.register_task("duplicate", 30, lambda: None)
        heartbeat.register_task("duplicate", 60, lambda: None)

        assert len(heartbeat.list_tasks()) == 1
        assert heartbeat.tasks["duplicate"]["interval"] == 60

    def test_unregister_task(self, heartbeat):
        heartbeat.register_task("test_task", 30, lambda: None)
        heartbeat.unregister_task("test_task")
        heartbeat.unregister_task("nonexistent")

        assert heartbeat.list_tasks() == []


class TestHeartbeatScheduling:
    """Test task scheduling logic."""

    def test_should_run_first_time(self):
        assert should_run_task({"last_run": None, "interval": 30}) is True

    def test_should_run_when_due(self):
        assert should_run_task({"last_run": time.monotonic() - 35, "interval": 30}) is True

    def test_should_not_run_too_soon(self):
        assert should_run_task({"last_run": time.monotonic() - 10, "interval": 30}) is False

    def test_seconds_until_next(self, heartbeat):
        assert heartbeat.seconds_until_next() is None

        heartbeat.register_task("a", 30, lambda: None)
        assert heartbeat.seconds_until_next() == 0.0

        heartbeat.tasks["a"]["last_run"] = time.monotonic()
        assert 29 < heartbeat.seconds_until_next() <= 30

    def test_seconds_until_next_during_registration(self, heartbeat):
        """Registering from another thread must not break the wait computation."""
        heartbeat.register_task("base", 30, lambda: None)
        heartbeat.tasks["base"]["last_run"] = time.monotonic()
        done = threading.Event()
        errors = []

        def churn():
            i = 0
            while not done.is_set():
                heartbeat.register_task(f"t{i % 50}", 30, lambda: None)
                heartbeat.unregister_task(f"t{i % 50}")
                i += 1

        worker = threading.Thread(target=churn)
        worker.start()
        try:
            for _ in range(2000):
                try:
                    heartbeat.seconds_until_next()
                except RuntimeError as e:
                    errors.append(e)
        finally:
            done.set()
            worker.join(timeout=5.0)

        assert errors == []
        assert heartbeat.list_tasks() == ["base"]


class TestHeartbeatExecution:
    """Test task execution and the loop thread."""

    def test_run_task_records_last_run(self):
        calls = []
        task_info = {"func": lambda: calls.append(1), "interval": 10, "last_run": None}

        run_task("t", task_info)

        assert calls == [1]
        assert task_info["last_run"] is not None

    def test_failed_task_still_waits_full_interval(self):
        def failing():
            raise RuntimeError("boom")

        task_info = {"func": failing, "interval": 10, "last_run": None}

        with pytest.raises(RuntimeError, match="Task 't' failed"):
            run_task("t", task_info)

        assert task_info["last_run"] is not None
        assert should_run_task(task_info) is False

    def test_first_run_waits_one_interval(self, heartbeat):
        ran = threading.Event()
        heartbeat.register_task("slow", 60, ran.set)

        heartbeat.start()

        assert not ran.wait(0.3)

    def test_run_immediately(self, heartbeat):
        ran = threading.Event()
        heartbeat.register_task("eager", 60, ran.set, run_immediately=True)

        heartbeat.start()

        assert ran.wait(2.0)

    def test_runs_repeatedly(self, heartbeat):
        count = []
        done = threading.Event()

        def task():
            count.append(1)
            if len(count) >= 3:
                done.set()

        heartbeat.register_task("fast", 0.02, task)
        heartbeat.start()

        assert done.wait(5.0)

    def test_failing_task_does_not_kill_loop(self, heartbeat):
        count = []
        done = threading.Event()

        def task():
            count.append(1)
            if len(count) >= 2:
                done.set()
            raise RuntimeError("always fails")

        heartbeat.register_task("flaky", 0.02, task)
        heartbeat.start()

        assert done.wait(5.0)
        assert heartbeat.running

    def test_stop_interrupts_long_wait(self, heartbeat):
        """stop() returns promptly even when the next tick is far away."""
        heartbeat.register_task("hourly", 3600, lambda: None)
        heartbeat.start()

        started = time.monotonic()
        heartbeat.stop(timeout=2.0)

        assert time.monotonic() - started < 1.0
        assert not heartbeat.running

    def test_start_twice_raises(self, heartbeat):
        heartbeat.register_task("t", 3600, lambda: None)
        heartbeat.start()

        with pytest.raises(RuntimeError, match="already running"):
            heartbeat.start()

    def test_restart_after_stop(self, heartbeat):
        ran = threading.Event()
        heartbeat.register_task("t", 60, ran.set, run_immediately=True)
        heartbeat.start()
        heartbeat.stop()

        ran.clear()
        heartbeat.reset_task("t")
        heartbeat.start()

        assert ran.wait(2.0)

    def test_stop_when_not_running(self, heartbeat):
        heartbeat.stop()
        assert not heartbeat.running

    def test_get_status(self, heartbeat):
        heartbeat.register_task("t", 3600, lambda: None)

        assert heartbeat.get_status()["status"] == "stopped"
        heartbeat.start()
        status = heartbeat.get_status()

        assert status["status"] == "running"
        assert status["tasks"]["t"]["interval_sec"] == 3600
        assert status["tasks"]["t"]["next_run"] is not None
