"""
Prize distribution: winner assignment, payout and host earnings
"""
import logging
from collections import defaultdict
from datetime import datetime
from typing import Callable, Dict, Optional, Tuple

from sqlalchemy.orm import Session

from arena.core.config import settings
from arena.core.errors import (
    AuthorizationError,
    DuplicateWinnerError,
    NotFoundError,
    StaleCalculationError,
    StateError,
    ValidationError,
)
from arena.models.notification import NotificationKind
from arena.models.participant import load_participants
from arena.models.tournament import Tournament, TournamentStatus
from arena.models.wallet import TransactionType, WalletType
from arena.schemas.tournament import (
    HostEarningsResponse,
    WinnerConfirmRequest,
    WinnerPreview,
    WinnerRecord,
)
from arena.services import prize_calculator
from arena.services.document_store import document_store
from arena.services.ledger_service import ledger_service
from arena.services.notification_service import NotificationSink, notification_service
from arena.utils.time_utils import utc_now

logger = logging.getLogger(__name__)


def _load_ended_tournament(db: Session, tournament_id: str, actor_id: str) -> Tournament:
    tournament = document_store.get(db, Tournament, tournament_id)
    if tournament is None:
        raise NotFoundError("Tournament not found")
    if tournament.host_id != actor_id:
        raise AuthorizationError("Only the tournament host can distribute prizes")
    if tournament.status != TournamentStatus.ENDED.value:
        raise StateError(f"Prizes can only be distributed after the tournament has ended. Current status: {tournament.status}")
    return tournament


def find_winner(tournament: Tournament, uid: str, ign: str):
    """Exact (uid, ign) match; in team tournaments only the leader's identity counts"""
    for participant in load_participants(tournament.participants):
        if participant.winner_uid == uid and participant.winner_ign == ign:
            return participant
    if tournament.is_team_mode:
        raise NotFoundError(f"No team leader with UID {uid} and IGN {ign} in this tournament")
    raise NotFoundError(f"No participant with UID {uid} and IGN {ign} in this tournament")


def check_unique_winners(
    saved_winners: Dict[str, dict],
    submitted: Dict[str, Tuple[str, str]]
) -> None:
    """Reject any (uid, ign) combination that would win more than one position"""
    positions_by_combination = defaultdict(set)
    for position, record in (saved_winners or {}).items():
        positions_by_combination[(record["uid"], record["ign"])].add(position)
    for position, combination in submitted.items():
        positions_by_combination[combination].add(position)

    for (uid, ign), positions in positions_by_combination.items():
        if len(positions) > 1:
            raise DuplicateWinnerError(
                f"The same UID and IGN combination ({uid} / {ign}) cannot be used for "
                f"multiple positions: {', '.join(sorted(positions))}"
            )


def _check_position_open(tournament: Tournament, position: str) -> None:
    record = (tournament.winners or {}).get(position)
    if record and record.get("prize_distributed"):
        raise StateError(f"Prize for position '{position}' has already been distributed")


class DistributionService:
    """Service for paying tournament winners and hosts"""

    def __init__(
        self,
        clock: Callable[[], datetime] = utc_now,
        notifier: Optional[NotificationSink] = None
    ):
        self.clock = clock
        self.notifier = notifier or notification_service

    def assign_winner(
        self,
        db: Session,
        tournament_id: str,
        position: str,
        uid: str,
        ign: str,
        actor_id: str
    ) -> WinnerPreview:
        """Validate a winner and compute the prize for confirmation; nothing is written"""
        tournament = _load_ended_tournament(db, tournament_id, actor_id)
        amount = prize_calculator.position_amount(tournament, position)
        _check_position_open(tournament, position)
        check_unique_winners(tournament.winners, {position: (uid, ign)})
        participant = find_winner(tournament, uid, ign)

        return WinnerPreview(
            tournament_id=tournament.id,
            position=position,
            uid=uid,
            ign=ign,
            auth_uid=participant.payer_id,
            amount=amount
        )

    def confirm_distribution(
        self,
        db: Session,
        tournament_id: str,
        confirm_data: WinnerConfirmRequest,
        actor_id: str
    ) -> WinnerRecord:
        """
        Pay one position: credit the winner's earnings, take the amount out of
        the pool and record the winner, all in one transaction.
        """
        position = confirm_data.position
        payout = {}

        def distribute() -> WinnerRecord:
            tournament = _load_ended_tournament(db, tournament_id, actor_id)
            participant = find_winner(tournament, confirm_data.uid, confirm_data.ign)

            amount = prize_calculator.position_amount(tournament, position)
            if abs(amount - confirm_data.amount) > settings.PRIZE_TOLERANCE_CREDITS:
                raise StaleCalculationError(
                    f"Prize for position '{position}' is now {amount} credits, not "
                    f"{confirm_data.amount}. Please review and confirm again.",
                    expected=amount
                )

            _check_position_open(tournament, position)
            submitted = {
                other: (entry.uid, entry.ign)
                for other, entry in confirm_data.other_inputs.items()
                if other != position
            }
            submitted[position] = (confirm_data.uid, confirm_data.ign)
            check_unique_winners(tournament.winners, submitted)

            pool_before = tournament.current_prize_pool or 0
            if pool_before < amount:
                raise ValidationError(
                    f"Insufficient prize pool. Available: {pool_before}, Required: {amount}"
                )

            if amount > 0:
                ledger_service.credit(
                    db, participant.payer_id, WalletType.EARNINGS, amount,
                    TransactionType.TOURNAMENT_WIN,
                    f"Won {amount} credits - {position} place in {tournament.name}",
                    {
                        "tournamentId": tournament.id,
                        "tournamentName": tournament.name,
                        "position": position,
                        "hostUid": tournament.host_id,
                        "prizePoolBefore": pool_before,
                        "prizePoolAfter": pool_before - amount,
                    },
                )

            record = WinnerRecord(
                uid=confirm_data.uid,
                ign=confirm_data.ign,
                auth_uid=participant.payer_id,
                prize_distributed=True,
                prize_amount=amount
            )
            winners = dict(tournament.winners or {})
            winners[position] = record.model_dump()
            tournament.winners = winners
            tournament.current_prize_pool = pool_before - amount
            tournament.total_prizes_distributed = (tournament.total_prizes_distributed or 0) + amount

            payout.update(tournament_name=tournament.name, pool_after=tournament.current_prize_pool)
            return record

        record = document_store.run_atomically(db, distribute, label="Prize distribution")
        logger.info(
            f"Tournament {tournament_id}: paid {record.prize_amount} to {record.auth_uid} "
            f"for {position}; pool now {payout['pool_after']}"
        )

        self.notifier.notify(NotificationKind.PRIZE_WON, {
            "user_id": record.auth_uid,
            "tournament_id": tournament_id,
            "tournament_name": payout["tournament_name"],
            "position": position,
            "amount": record.prize_amount,
        })
        return record

    def collect_host_earnings(self, db: Session, tournament_id: str, actor_id: str) -> HostEarningsResponse:
        """Pay the host whatever is left in the pool once every prize position is paid"""

        def collect() -> Tournament:
            tournament = _load_ended_tournament(db, tournament_id, actor_id)
            if tournament.is_manual_pool:
                raise ValidationError("Host earnings only apply to tournaments with an entry fee")
            if tournament.host_earnings_distributed:
                raise StateError("Host earnings have already been collected")

            winners = tournament.winners or {}
            pending = [
                position for position in prize_calculator.prize_positions(tournament)
                if not (winners.get(position) or {}).get("prize_distributed")
            ]
            if pending:
                raise StateError(
                    f"All prizes must be distributed before collecting host earnings. "
                    f"Pending: {', '.join(sorted(pending))}"
                )

            amount = tournament.current_prize_pool or 0
            if amount <= 0:
                raise ValidationError("Tournament has no host earnings to collect")

            ledger_service.credit(
                db, tournament.host_id, WalletType.EARNINGS, amount,
                TransactionType.TOURNAMENT_HOST_EARNINGS,
                f"Host earnings from {tournament.name}",
                {"tournamentId": tournament.id, "tournamentName": tournament.name},
            )
            tournament.host_earnings_distributed = True
            tournament.host_earnings_amount = amount
            tournament.current_prize_pool = 0
            return tournament

        tournament = document_store.run_atomically(db, collect, label="Host earnings collection")
        logger.info(f"Tournament {tournament_id}: host {tournament.host_id} collected {tournament.host_earnings_amount}")

        self.notifier.notify(NotificationKind.HOST_EARNINGS, {
            "user_id": tournament.host_id,
            "tournament_id": tournament.id,
            "tournament_name": tournament.name,
            "amount": tournament.host_earnings_amount,
        })
        return HostEarningsResponse(
            tournament_id=tournament.id,
            amount=tournament.host_earnings_amount,
            host_id=tournament.host_id
        )


distribution_service = DistributionService()
