"""
Periodic tournament maintenance: expiry sweep, TTL backfill and the
minimum-participants check. Each pass is idempotent.
"""
import logging
import threading
from datetime import timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from arena.core.config import settings
from arena.core.errors import ArenaError
from arena.models.tournament import Tournament, TournamentStatus
from arena.services.document_store import UpdateOutcome, document_store
from arena.services.lifecycle_service import LifecycleService, lifecycle_service

logger = logging.getLogger(__name__)


class CleanupService:
    """Service for scheduled tournament maintenance"""

    def __init__(self, lifecycle: Optional[LifecycleService] = None):
        self.lifecycle = lifecycle or lifecycle_service

    @property
    def clock(self):
        return self.lifecycle.clock

    def find_expired(self, db: Session, limit: int) -> List[str]:
        now = self.clock()
        expired = [
            row.id for row in db.query(Tournament.id).filter(
                Tournament.ttl.isnot(None),
                Tournament.ttl <= now
            ).order_by(Tournament.ttl).limit(limit)
        ]
        if len(expired) < limit:
            # Ended tournaments that never got a TTL
            cutoff = now - timedelta(minutes=settings.ENDED_WITHOUT_TTL_EXPIRY_MINUTES)
            expired.extend(row.id for row in db.query(Tournament.id).filter(
                Tournament.ttl.is_(None),
                Tournament.status == TournamentStatus.ENDED.value,
                Tournament.ended_at <= cutoff
            ).limit(limit - len(expired)))
        return expired

    def sweep_expired(self, db: Session, stop_event: Optional[threading.Event] = None) -> int:
        """Delete one batch of expired tournaments. Returns how many were deleted."""
        deleted = 0
        for tournament_id in self.find_expired(db, settings.EXPIRY_BATCH_SIZE):
            if stop_event is not None and stop_event.is_set():
                logger.info("Expiry sweep interrupted by shutdown")
                break
            try:
                outcome = self.lifecycle.expire_tournament(db, tournament_id)
            except ArenaError as e:
                # Extended by a concurrent transition between query and delete
                logger.info(f"Skipping tournament {tournament_id}: {e.message}")
                continue
            if outcome == UpdateOutcome.APPLIED:
                deleted += 1
            elif outcome == UpdateOutcome.CONFLICT:
                logger.warning(f"Tournament {tournament_id} changed during expiry, retrying next pass")

        if deleted:
            logger.info(f"Expiry sweep deleted {deleted} tournaments")
        return deleted

    def backfill_ttl(self, db: Session, stop_event: Optional[threading.Event] = None) -> int:
        """Give active tournaments past their scheduled start a TTL even if the host never starts them"""
        now = self.clock()
        candidates = [
            row.id for row in db.query(Tournament.id).filter(
                Tournament.status == TournamentStatus.ACTIVE.value,
                Tournament.ttl.is_(None),
                Tournament.start_date <= now
            ).limit(settings.EXPIRY_BATCH_SIZE)
        ]

        def set_ttl(tournament: Tournament) -> None:
            if tournament.ttl is None:
                tournament.ttl = tournament.start_date + timedelta(hours=settings.START_TTL_HOURS)

        updated = 0
        for tournament_id in candidates:
            if stop_event is not None and stop_event.is_set():
                break
            result = document_store.atomic_update(db, Tournament, tournament_id, lambda t: None, set_ttl)
            if result.applied:
                updated += 1

        if updated:
            logger.info(f"TTL backfill set expiry on {updated} tournaments")
        return updated

    def check_min_participants(self, db: Session, stop_event: Optional[threading.Event] = None) -> int:
        """Cancel, with refunds, tournaments that just reached their start without enough players"""
        now = self.clock()
        window_start = now - timedelta(minutes=settings.MIN_PARTICIPANTS_LOOKBACK_MINUTES)
        candidates = [
            row.id for row in db.query(Tournament.id).filter(
                Tournament.status == TournamentStatus.ACTIVE.value,
                Tournament.min_participants.isnot(None),
                Tournament.filled_spots < Tournament.min_participants,
                Tournament.start_date <= now,
                Tournament.start_date > window_start
            )
        ]

        cancelled = 0
        for tournament_id in candidates:
            if stop_event is not None and stop_event.is_set():
                break
            try:
                self.lifecycle.cancel_tournament(db, tournament_id, actor_id=None, system=True)
                cancelled += 1
            except ArenaError as e:
                logger.warning(f"Could not auto-cancel tournament {tournament_id}: {e.message}")

        if cancelled:
            logger.info(f"Cancelled {cancelled} tournaments below minimum participants")
        return cancelled


cleanup_service = CleanupService()
