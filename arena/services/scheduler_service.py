import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session

from arena.core.config import settings
from arena.database import SessionLocal
from arena.services.cleanup_service import CleanupService, cleanup_service

logger = logging.getLogger(__name__)

EXPIRY_SWEEP = "expiry_sweep"
TTL_BACKFILL = "ttl_backfill"
MIN_PARTICIPANTS_CHECK = "min_participants_check"
AGGRESSIVE_CLEANUP = "aggressive_cleanup"


class SchedulerService:
    """
    Runs the maintenance jobs on fixed intervals.

    Jobs can also be driven by hand with tick(), which is how tests run
    them. stop() sets the stop token so passes already running finish
    their current tournament and return.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        cleanup: Optional[CleanupService] = None,
        scheduler=None
    ):
        self.session_factory = session_factory
        self.cleanup = cleanup or cleanup_service
        self.stop_event = threading.Event()
        self.scheduler = scheduler or self._create_scheduler()
        self._jobs: Dict[str, Callable[[Session], int]] = {
            EXPIRY_SWEEP: lambda db: self.cleanup.sweep_expired(db, self.stop_event),
            TTL_BACKFILL: lambda db: self.cleanup.backfill_ttl(db, self.stop_event),
            MIN_PARTICIPANTS_CHECK: lambda db: self.cleanup.check_min_participants(db, self.stop_event),
        }
        self._aggressive_started_at: Optional[datetime] = None
        self._aggressive_empty_sweeps = 0

    def _create_scheduler(self) -> AsyncIOScheduler:
        """Initialize the APScheduler instance."""
        return AsyncIOScheduler(
            jobstores={'default': MemoryJobStore()},
            executors={'default': ThreadPoolExecutor(4)},
            job_defaults={'coalesce': True, 'max_instances': 1}
        )

    def start(self):
        """Start the scheduler."""
        if self.scheduler.running:
            return
        self.stop_event.clear()
        self._setup_recurring_jobs()
        self.scheduler.start()
        logger.info("Scheduler service started")

    def stop(self):
        """Signal running jobs to stop and shut the scheduler down."""
        self.stop_event.set()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler service stopped")

    def _setup_recurring_jobs(self):
        intervals = {
            EXPIRY_SWEEP: settings.EXPIRY_SWEEP_INTERVAL_SECONDS,
            TTL_BACKFILL: settings.TTL_BACKFILL_INTERVAL_SECONDS,
            MIN_PARTICIPANTS_CHECK: settings.MIN_PARTICIPANTS_CHECK_INTERVAL_SECONDS,
        }
        for name, seconds in intervals.items():
            self.scheduler.add_job(
                func=self.tick,
                trigger=IntervalTrigger(seconds=seconds),
                args=[name],
                id=name,
                name=name.replace("_", " ").title(),
                replace_existing=True
            )
        logger.info("Recurring maintenance jobs scheduled")

    def tick(self, job_name: str) -> int:
        """Run one pass of a job in its own session. Returns the number of tournaments affected."""
        if self.stop_event.is_set():
            return 0
        job = self._jobs[job_name]
        db = self.session_factory()
        try:
            return job(db)
        except Exception as e:
            # Keep the interval job alive; the next pass retries
            logger.error(f"Scheduled job {job_name} failed: {e}", exc_info=True)
            return 0
        finally:
            db.close()

    # Aggressive cleanup

    @property
    def aggressive_cleanup_active(self) -> bool:
        return self._aggressive_started_at is not None

    def start_aggressive_cleanup(self):
        """Sweep at a short interval until nothing expires for a while"""
        self._aggressive_started_at = self.cleanup.clock()
        self._aggressive_empty_sweeps = 0
        self.scheduler.add_job(
            func=self.aggressive_tick,
            trigger=IntervalTrigger(seconds=settings.AGGRESSIVE_CLEANUP_INTERVAL_SECONDS),
            id=AGGRESSIVE_CLEANUP,
            name="Aggressive Cleanup",
            replace_existing=True
        )
        logger.info("Aggressive cleanup mode started")

    def stop_aggressive_cleanup(self, reason: str = "stopped"):
        if not self.aggressive_cleanup_active:
            return
        self._aggressive_started_at = None
        if self.scheduler.get_job(AGGRESSIVE_CLEANUP):
            self.scheduler.remove_job(AGGRESSIVE_CLEANUP)
        logger.info(f"Aggressive cleanup mode ended: {reason}")

    def aggressive_tick(self) -> int:
        if not self.aggressive_cleanup_active:
            return 0
        deleted = self.tick(EXPIRY_SWEEP)
        if deleted:
            self._aggressive_empty_sweeps = 0
        else:
            self._aggressive_empty_sweeps += 1

        elapsed = self.cleanup.clock() - self._aggressive_started_at
        if self._aggressive_empty_sweeps >= settings.AGGRESSIVE_CLEANUP_MAX_EMPTY_SWEEPS:
            self.stop_aggressive_cleanup(f"{self._aggressive_empty_sweeps} consecutive empty sweeps")
        elif elapsed >= timedelta(minutes=settings.AGGRESSIVE_CLEANUP_MAX_MINUTES):
            self.stop_aggressive_cleanup("time limit reached")
        return deleted

    def get_scheduled_jobs(self) -> List[Dict[str, Any]]:
        """Get list of all scheduled jobs."""
        jobs = []
        for job in self.scheduler.get_jobs():
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run_time": job.next_run_time.isoformat() if getattr(job, "next_run_time", None) else None,
                "trigger": str(job.trigger)
            })
        return jobs


scheduler_service = SchedulerService()
