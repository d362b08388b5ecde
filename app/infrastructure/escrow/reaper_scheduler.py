"""
Background scheduler for the trade expiry reaper.

Uses APScheduler to run ExpiryReaper.sweep() on a fixed interval,
independent of any single trade's TTL. Overlapping runs are coalesced
and at most one sweep runs at a time.

Usage:
    scheduler = ReaperScheduler(reaper, interval_seconds=30)
    scheduler.start()       # begin periodic sweeps
    scheduler.run_now()     # sweep immediately (blocking)
    scheduler.stop()        # graceful shutdown
"""

import logging
import threading
from typing import Any

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.application.escrow.dtos import SweepResult
from app.application.escrow.expire_sessions import ExpiryReaper

logger = logging.getLogger(__name__)

JOB_ID = "trade_expiry_sweep"


class ReaperScheduler:
    """Runs the expiry sweep periodically in a background thread."""

    def __init__(
        self,
        reaper: ExpiryReaper,
        interval_seconds: float = 30.0,
        max_history: int = 50,
    ) -> None:
        self._reaper = reaper
        self._interval = interval_seconds
        self._max_history = max_history
        self._history: list[SweepResult] = []
        self._lock = threading.Lock()
        self._scheduler: BackgroundScheduler | None = None

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None

    @property
    def history(self) -> list[SweepResult]:
        with self._lock:
            return list(self._history)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start periodic sweeps."""
        if self._scheduler is not None:
            logger.warning("Reaper scheduler already running.")
            return

        self._scheduler = BackgroundScheduler(
            timezone="UTC",
            job_defaults={"coalesce": True, "max_instances": 1},
        )
        self._scheduler.add_job(
            self.run_now,
            IntervalTrigger(seconds=self._interval),
            id=JOB_ID,
            name="Trade expiry sweep",
        )
        self._scheduler.start()
        logger.info("Reaper scheduler started (every %.0fs).", self._interval)

    def stop(self) -> None:
        """Stop the scheduler without waiting for a running sweep."""
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Reaper scheduler stopped.")

    def run_now(self) -> SweepResult:
        """Run one sweep immediately (blocking) and record its result."""
        result = self._reaper.sweep()
        with self._lock:
            self._history.append(result)
            if len(self._history) > self._max_history:
                self._history = self._history[-self._max_history:]
        return result

    # ------------------------------------------------------------------
    # Status & introspection
    # ------------------------------------------------------------------

    def get_status(self) -> dict[str, Any]:
        """Return a status summary for monitoring."""
        next_run = None
        if self._scheduler is not None:
            job = self._scheduler.get_job(JOB_ID)
            if job is not None and job.next_run_time is not None:
                next_run = job.next_run_time.isoformat()

        recent = self.history[-10:]
        return {
            "running": self.is_running,
            "interval_seconds": self._interval,
            "next_run": next_run,
            "recent_sweeps": [
                {
                    "started_at": r.started_at.isoformat(),
                    "scanned": r.scanned,
                    "expired": len(r.expired),
                    "failed": len(r.failed),
                }
                for r in recent
            ],
        }
