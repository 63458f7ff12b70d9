"""
Background space reclamation.

Overwritten records leave free pages behind in the SQLite file. Each tick of
the maintenance task asks the store to reclaim them, repeating immediately
while the store reports that it freed something, up to a fixed number of
passes per tick.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from dataclasses import dataclass

from .config import (
    get_discard_ratio,
    get_maintenance_interval,
    get_max_passes,
    is_maintenance_enabled,
)
from .db import KVStore
from .errors import StoreError
from .heartbeat import Heartbeat
from util.logging import logger


@dataclass
class MaintenanceReport:
    """Outcome of one reclamation cycle."""
    operation: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    passes: int = 0
    pages_reclaimed: int = 0
    exhausted: bool = False
    errors: List[str] = None
    metadata: Dict[str, Any] = None

    def __post_init__(self):
        if self.errors is None:
            self.errors = []
        if self.metadata is None:
            self.metadata = {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert report to dictionary for serialization."""
        data = {
            "operation": self.operation,
            "started_at": self.started_at.isoformat(),
            "passes": self.passes,
            "pages_reclaimed": self.pages_reclaimed,
            "exhausted": self.exhausted,
            "errors": self.errors,
            "metadata": self.metadata
        }
        if self.completed_at:
            data["completed_at"] = self.completed_at.isoformat()
        return data


class MaintenanceError(Exception):
    """Invalid maintenance configuration."""
    pass


def _validate(discard_ratio: float, max_passes: int, interval_sec: float = None):
    if not 0 < discard_ratio < 1:
        raise MaintenanceError(f"discard_ratio must be between 0 and 1 (exclusive): {discard_ratio}")
    if max_passes < 1:
        raise MaintenanceError(f"max_passes must be >= 1: {max_passes}")
    if interval_sec is not None and interval_sec <= 0:
        raise MaintenanceError(f"interval_sec must be > 0: {interval_sec}")


def run_value_log_gc(store: KVStore, discard_ratio: float = None, max_passes: int = None) -> MaintenanceReport:
    """
    Run one reclamation cycle against the store.

    Calls store.reclaim_space() until it reports no more work or max_passes
    productive passes have run. Store failures are recorded in the report and
    logged, never raised.

    Returns:
        MaintenanceReport: passes run, pages reclaimed, whether the cap was hit
    """
    discard_ratio = get_discard_ratio() if discard_ratio is None else discard_ratio
    max_passes = get_max_passes() if max_passes is None else max_passes
    _validate(discard_ratio, max_passes)

    report = MaintenanceReport(
        operation="value_log_gc",
        started_at=datetime.now(),
        metadata={"discard_ratio": discard_ratio, "max_passes": max_passes}
    )

    try:
        before = store.stats()["freelist_count"]

        for _ in range(max_passes):
            if not store.reclaim_space(discard_ratio):
                break
            report.passes += 1
        else:
            report.exhausted = True

        after = store.stats()["freelist_count"]
        report.pages_reclaimed = max(0, before - after)
        report.metadata["freelist_remaining"] = after
    except StoreError as e:
        report.errors.append(str(e))

    report.completed_at = datetime.now()

    if report.errors:
        logger.log_maintenance_pass(report.operation, report.passes, "failed", {"errors": report.errors})
    else:
        if report.exhausted:
            logger.warning(f"Reclamation stopped at the {max_passes}-pass cap with work remaining")
        logger.log_maintenance_pass(report.operation, report.passes, details={
            "pages_reclaimed": report.pages_reclaimed,
            "exhausted": report.exhausted
        })

    return report


class MaintenanceTask:
    """
    Periodic reclamation for the lifetime of a store.

    Usage:
        with MaintenanceTask(store):
            ...  # foreground reads and writes
    """

    TASK_NAME = "value_log_gc"

    def __init__(self, store: KVStore, interval_sec: float = None, discard_ratio: float = None,
                 max_passes: int = None, heartbeat: Heartbeat = None):
        self.store = store
        self.interval_sec = get_maintenance_interval() if interval_sec is None else interval_sec
        self.discard_ratio = get_discard_ratio() if discard_ratio is None else discard_ratio
        self.max_passes = get_max_passes() if max_passes is None else max_passes
        _validate(self.discard_ratio, self.max_passes, self.interval_sec)

        self.last_report: Optional[MaintenanceReport] = None
        self.heartbeat = heartbeat or Heartbeat(name="maintenance")
        self.heartbeat.register_task(self.TASK_NAME, self.interval_sec, self.tick)

    def tick(self) -> MaintenanceReport:
        """Run one reclamation cycle now."""
        self.last_report = run_value_log_gc(self.store, self.discard_ratio, self.max_passes)
        return self.last_report

    def start(self) -> bool:
        """Start the background loop. Returns False when maintenance is disabled."""
        if not is_maintenance_enabled():
            logger.info("Maintenance disabled (MAINTENANCE_ENABLED=false). Skipping start.")
            return False

        self.heartbeat.start()
        return True

    def stop(self, timeout: float = 5.0):
        """Request shutdown and wait for the current cycle to finish."""
        self.heartbeat.stop(timeout)

    @property
    def running(self) -> bool:
        return self.heartbeat.running

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False
