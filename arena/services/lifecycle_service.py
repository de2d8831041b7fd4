"""
Tournament lifecycle: start, end, cancel and expiry.

active -> ongoing -> ended, with cancelled reachable from active and
ongoing. Every transition is a conditional write against the version that
was validated, so the same transition can never be applied twice.
"""
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session

from arena.core.config import settings
from arena.core.errors import (
    ArenaError,
    AuthorizationError,
    ConcurrencyError,
    NotFoundError,
    StateError,
    TooEarlyError,
)
from arena.models.notification import NotificationKind
from arena.models.participant import load_participants
from arena.models.tournament import Team, Tournament, TournamentStatus
from arena.models.wallet import TransactionType, WalletType
from arena.schemas.tournament import TransitionCheck
from arena.services.document_store import UpdateOutcome, document_store
from arena.services.ledger_service import ledger_service
from arena.services.notification_service import NotificationSink, notification_service
from arena.utils.time_utils import minutes_until, utc_now

logger = logging.getLogger(__name__)

CANCELLABLE_STATUSES = (TournamentStatus.ACTIVE.value, TournamentStatus.ONGOING.value)


def _require_host(tournament: Tournament, actor_id: Optional[str], action: str) -> None:
    if not actor_id or tournament.host_id != actor_id:
        raise AuthorizationError(f"Only the tournament host can {action} the tournament")


class LifecycleService:
    """Service for tournament status transitions"""

    def __init__(
        self,
        clock: Callable[[], datetime] = utc_now,
        notifier: Optional[NotificationSink] = None
    ):
        self.clock = clock
        self.notifier = notifier or notification_service

    # Checks

    def _check_start(self, tournament: Tournament, actor_id: Optional[str], now: datetime) -> None:
        _require_host(tournament, actor_id, "start")
        if tournament.status != TournamentStatus.ACTIVE.value:
            raise StateError(f"Tournament cannot be started. Current status: {tournament.status}")

        window_opens = tournament.start_date - timedelta(minutes=settings.START_WINDOW_MINUTES)
        if now < window_opens:
            minutes = minutes_until(now, window_opens)
            raise TooEarlyError(
                f"Tournament can only be started {settings.START_WINDOW_MINUTES} minutes before "
                f"scheduled time. You can start it in {minutes} minutes.",
                minutes_remaining=minutes
            )

    def _check_end(self, tournament: Tournament, actor_id: Optional[str]) -> None:
        _require_host(tournament, actor_id, "end")
        if tournament.status != TournamentStatus.ONGOING.value:
            raise StateError(f"Tournament cannot be ended. Current status: {tournament.status}")

    def can_start(self, tournament: Tournament, actor_id: Optional[str]) -> TransitionCheck:
        """Preview for the host UI; never writes"""
        try:
            self._check_start(tournament, actor_id, self.clock())
        except TooEarlyError as e:
            return TransitionCheck(allowed=False, reason=e.message, minutes_remaining=e.minutes_remaining)
        except ArenaError as e:
            return TransitionCheck(allowed=False, reason=e.message)
        return TransitionCheck(allowed=True, reason="Tournament is ready to start")

    def can_end(self, tournament: Tournament, actor_id: Optional[str]) -> TransitionCheck:
        try:
            self._check_end(tournament, actor_id)
        except ArenaError as e:
            return TransitionCheck(allowed=False, reason=e.message)
        return TransitionCheck(allowed=True, reason="Tournament is ready to be ended")

    # Transitions

    def _transition(self, db: Session, tournament_id: str, precondition, mutator) -> Tournament:
        result = document_store.atomic_update(db, Tournament, tournament_id, precondition, mutator)
        if result.outcome == UpdateOutcome.MISSING:
            raise NotFoundError("Tournament not found")
        if result.outcome == UpdateOutcome.CONFLICT:
            raise ConcurrencyError("Tournament was updated by someone else. Please try again.")
        return result.document

    def start_tournament(self, db: Session, tournament_id: str, actor_id: str) -> Tournament:
        now = self.clock()

        def mutate(tournament: Tournament) -> None:
            tournament.status = TournamentStatus.ONGOING.value
            tournament.started_at = now
            if tournament.ttl is None:
                tournament.ttl = tournament.start_date + timedelta(hours=settings.START_TTL_HOURS)

        tournament = self._transition(
            db, tournament_id, lambda t: self._check_start(t, actor_id, now), mutate
        )
        logger.info(f"Tournament {tournament_id} started; expires at {tournament.ttl}")

        self.notifier.notify(NotificationKind.TOURNAMENT_STARTED, {
            "tournament_id": tournament.id,
            "tournament_name": tournament.name,
        })
        return tournament

    def end_tournament(self, db: Session, tournament_id: str, actor_id: str) -> Tournament:
        now = self.clock()

        def mutate(tournament: Tournament) -> None:
            tournament.status = TournamentStatus.ENDED.value
            tournament.ended_at = now
            # Grace window for prize distribution before deletion
            tournament.ttl = now + timedelta(minutes=settings.END_GRACE_MINUTES)

        tournament = self._transition(
            db, tournament_id, lambda t: self._check_end(t, actor_id), mutate
        )
        logger.info(f"Tournament {tournament_id} ended; expires at {tournament.ttl}")

        self.notifier.notify(NotificationKind.TOURNAMENT_ENDED, {
            "tournament_id": tournament.id,
            "tournament_name": tournament.name,
        })
        return tournament

    def cancel_tournament(
        self,
        db: Session,
        tournament_id: str,
        actor_id: Optional[str],
        system: bool = False
    ) -> Tournament:
        """
        Refund every participant and mark the tournament cancelled.

        Refunds go to whoever paid: the player for Solo, the team leader for
        Duo/Squad. A host-funded manual pool goes back to the host's
        hostCredits. system=True is used by scheduled jobs and skips the
        host check.
        """
        now = self.clock()
        refunded = []

        def cancel() -> Tournament:
            refunded.clear()
            tournament = document_store.get(db, Tournament, tournament_id)
            if tournament is None:
                raise NotFoundError("Tournament not found")
            if not system:
                _require_host(tournament, actor_id, "cancel")
            if tournament.status not in CANCELLABLE_STATUSES:
                raise StateError(f"Tournament cannot be cancelled. Current status: {tournament.status}")

            entry_fee = tournament.entry_fee or 0
            details = {"tournamentId": tournament.id, "tournamentName": tournament.name}
            if entry_fee > 0:
                for participant in load_participants(tournament.participants):
                    ledger_service.credit(
                        db, participant.payer_id, WalletType.TOURNAMENT_CREDITS, entry_fee,
                        TransactionType.TOURNAMENT_CANCELLATION_REFUND,
                        f"Refund for cancelled tournament: {tournament.name}",
                        details,
                    )
                    refunded.append(participant.payer_id)
            elif (tournament.current_prize_pool or 0) > 0:
                ledger_service.credit(
                    db, tournament.host_id, WalletType.HOST_CREDITS, tournament.current_prize_pool,
                    TransactionType.MANUAL_PRIZE_POOL_REFUND,
                    f"Prize pool returned for cancelled tournament: {tournament.name}",
                    details,
                )

            tournament.current_prize_pool = 0
            tournament.status = TournamentStatus.CANCELLED.value
            tournament.cancelled_at = now
            tournament.ttl = now + timedelta(minutes=settings.CANCEL_GRACE_MINUTES)
            return tournament

        tournament = document_store.run_atomically(db, cancel, label="Cancelling tournament")
        logger.info(
            f"Tournament {tournament_id} cancelled by {'system' if system else actor_id}; "
            f"{len(refunded)} participants refunded"
        )

        self.notifier.notify(NotificationKind.TOURNAMENT_CANCELLED, {
            "tournament_id": tournament.id,
            "tournament_name": tournament.name,
            "refunded_count": len(refunded),
        })
        return tournament

    # Expiry

    def is_expired(self, tournament: Tournament, now: datetime) -> bool:
        if tournament.ttl is not None:
            return tournament.ttl <= now
        if tournament.status == TournamentStatus.ENDED.value and tournament.ended_at is not None:
            grace = timedelta(minutes=settings.ENDED_WITHOUT_TTL_EXPIRY_MINUTES)
            return tournament.ended_at + grace <= now
        return False

    def expire_tournament(self, db: Session, tournament_id: str) -> UpdateOutcome:
        """Delete an expired tournament and its teams, whatever its status"""
        now = self.clock()

        def precondition(tournament: Tournament) -> None:
            if not self.is_expired(tournament, now):
                raise StateError(f"Tournament {tournament.id} has not expired yet")

        def delete_teams(session: Session, tournament: Tournament) -> None:
            session.query(Team).filter(Team.tournament_id == tournament.id).delete(
                synchronize_session=False
            )

        result = document_store.atomic_delete(db, Tournament, tournament_id, precondition, delete_teams)
        if result.applied:
            logger.info(f"Deleted expired tournament {tournament_id}")
        return result.outcome


lifecycle_service = LifecycleService()
