"""
Cancellable periodic task loop.

Runs registered tasks on their own intervals in a background thread. The
wait between ticks is a wait on the shutdown event, so stop() wakes the loop
immediately instead of leaving it asleep until the next tick.
"""

import time
import threading
from typing import Callable, Dict, Optional

from util.logging import logger


class Heartbeat:
    """Background scheduler for periodic tasks."""

    def __init__(self, name: str = "heartbeat"):
        self.name = name
        self.tasks: Dict[str, Dict] = {}  # task_name -> {func, interval, last_run, run_immediately}
        self.running = False
        self.shutdown_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def register_task(self, name: str, interval_sec: float, func: Callable, run_immediately: bool = False):
        """
        Register a task to be executed periodically.

        Args:
            name: Unique task identifier
            interval_sec: How often to run this task in seconds
            func: Function to call
            run_immediately: Run once as soon as the loop starts instead of
                waiting a full interval first
        """
        if not callable(func):
            raise ValueError(f"Task function must be callable: {func}")

        if interval_sec <= 0:
            raise ValueError(f"Interval must be > 0 seconds: {interval_sec}")

        self.tasks[name] = {
            "func": func,
            "interval": interval_sec,
            "last_run": None,
            "run_immediately": run_immediately
        }

        logger.info(f"Registered heartbeat task '{name}' (every {interval_sec}s)")

    def unregister_task(self, name: str):
        """Remove a task from the registry."""
        if name in self.tasks:
            del self.tasks[name]
            logger.info(f"Unregistered heartbeat task '{name}'")

    def list_tasks(self):
        """Return list of registered task names."""
        return list(self.tasks.keys())

    def start(self):
        """Start the loop in a daemon thread."""
        if self.running:
            raise RuntimeError("Heartbeat already running")

        now = time.monotonic()
        for task_info in self.tasks.values():
            if task_info["last_run"] is None and not task_info["run_immediately"]:
                task_info["last_run"] = now

        self.shutdown_event.clear()
        self.running = True
        self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()

        logger.info(f"Started heartbeat '{self.name}' with tasks {self.list_tasks()}")

    def _loop(self):
        try:
            while not self.shutdown_event.is_set():
                for name, task_info in list(self.tasks.items()):
                    if self.shutdown_event.is_set():
                        break
                    if should_run_task(task_info):
                        try:
                            run_task(name, task_info)
                        except Exception as e:
                            # Error isolation - log error but continue loop
                            logger.error(f"Heartbeat task '{name}' failed: {e}")

                # Timer or shutdown, whichever comes first
                self.shutdown_event.wait(self.seconds_until_next())
        finally:
            self.running = False

    def stop(self, timeout: float = 5.0):
        """Signal shutdown and wait for the loop thread to exit."""
        if not self.running and self._thread is None:
            return

        self.shutdown_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning(f"Heartbeat '{self.name}' did not stop within {timeout}s")
                return
            self._thread = None

        self.running = False
        logger.info(f"Stopped heartbeat '{self.name}'")

    def seconds_until_next(self) -> Optional[float]:
        """Seconds until the earliest task is due, None with no tasks."""
        if not self.tasks:
            return None

        now = time.monotonic()
        waits = []
        for task_info in list(self.tasks.values()):
            if task_info["last_run"] is None:
                return 0.0
            waits.append(task_info["last_run"] + task_info["interval"] - now)
        return max(0.0, min(waits))

    def reset_task(self, name: str):
        """Reset a task's last_run time to force immediate execution."""
        if name in self.tasks:
            self.tasks[name]["last_run"] = None

    def get_status(self):
        """Return current heartbeat status for monitoring."""
        return {
            "status": "running" if self.running else "stopped",
            "tasks": {
                name: {
                    "interval_sec": info["interval"],
                    "last_run": info["last_run"],
                    "next_run": info["last_run"] + info["interval"] if info["last_run"] else None
                }
                for name, info in self.tasks.items()
            }
        }


def should_run_task(task_info: Dict) -> bool:
    """Check if a task should run this cycle."""
    if task_info["last_run"] is None:
        return True  # Run immediately if never run

    elapsed = time.monotonic() - task_info["last_run"]
    return elapsed >= task_info["interval"]


def run_task(name: str, task_info: Dict):
    """Execute a task and record timing. A failed run still waits a full interval."""
    start_time = time.monotonic()

    try:
        task_info["func"]()
    except Exception as e:
        end_time = time.monotonic()
        logger.log_heartbeat_task(name, start_time, end_time, "failed", {"error": str(e)})
        raise RuntimeError(f"Task '{name}' failed after {end_time - start_time:.2f}s: {e}") from e
    else:
        end_time = time.monotonic()
        logger.log_heartbeat_task(name, start_time, end_time)
    finally:
        task_info["last_run"] = time.monotonic()
