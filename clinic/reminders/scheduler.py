"""
In-process reminder scheduler.

Runs the dispatch and cleanup sweeps on independent timers as two asyncio
tasks. The sweeps themselves are blocking database work, so each run is
pushed to a worker thread and the event loop keeps serving requests.
"""

import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from clinic.booking.policy import BookingPolicy
from clinic.db.session import SessionLocal
from clinic.schemas.reminder import ManualReminderResult, ReminderStats
from clinic.services.email_service import email_service

from .config import settings
from .sweeps import (
    CleanupResult,
    SweepResult,
    reminder_stats,
    run_cleanup_sweep,
    run_reminder_sweep,
    send_manual_reminder,
)

logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class ReminderScheduler:
    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        notifier=None,
        policy: Optional[BookingPolicy] = None,
        scan_interval: Optional[float] = None,
        cleanup_interval: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.notifier = notifier if notifier is not None else email_service
        self.policy = policy or BookingPolicy.from_settings()
        self.scan_interval = scan_interval or settings.SCAN_INTERVAL_SECONDS
        self.cleanup_interval = cleanup_interval or settings.CLEANUP_INTERVAL_SECONDS
        self.state = SchedulerState.IDLE
        self._tasks: List[asyncio.Task] = []

    @property
    def is_running(self) -> bool:
        return self.state == SchedulerState.RUNNING

    async def start(self) -> None:
        """Start both sweep loops. Calling start on a running scheduler is a no-op."""
        if self.is_running:
            return
        self.state = SchedulerState.RUNNING
        self._tasks = [
            asyncio.create_task(self._run_periodically("reminder", self.scan_interval, self.run_reminder_sweep)),
            asyncio.create_task(self._run_periodically("cleanup", self.cleanup_interval, self.run_cleanup)),
        ]
        logger.info(
            f"Reminder scheduler started (scan every {self.scan_interval}s, cleanup every {self.cleanup_interval}s)"
        )

    async def stop(self) -> None:
        if not self.is_running:
            return
        self.state = SchedulerState.IDLE
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Reminder scheduler stopped")

    async def _run_periodically(self, name: str, interval: float, sweep: Callable[[], object]) -> None:
        try:
            while self.is_running:
                await asyncio.sleep(interval)
                try:
                    await asyncio.to_thread(sweep)
                except Exception as e:
                    logger.error(f"Error in {name} sweep: {e}", exc_info=True)
        except asyncio.CancelledError:
            pass

    # --- sweep entry points, each on its own session ---

    def run_reminder_sweep(self, now: Optional[datetime] = None) -> SweepResult:
        db = self.session_factory()
        try:
            return run_reminder_sweep(db, self.notifier, now=now)
        finally:
            db.close()

    def run_cleanup(self, now: Optional[datetime] = None) -> CleanupResult:
        db = self.session_factory()
        try:
            return run_cleanup_sweep(db, self.policy, now=now)
        finally:
            db.close()

    def send_manual_reminder(
        self, db: Session, appointment_id: int, now: Optional[datetime] = None, notifier=None
    ) -> ManualReminderResult:
        notifier = notifier if notifier is not None else self.notifier
        return send_manual_reminder(db, appointment_id, notifier, now=now)

    def get_stats(self, db: Session, now: Optional[datetime] = None) -> ReminderStats:
        return reminder_stats(db, self.is_running, now=now)
