"""
Registration service: joining tournaments, capacity and participant dedupe
"""
import logging
from datetime import datetime
from typing import Callable, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from arena.core.config import settings
from arena.core.errors import (
    CapacityError,
    DuplicateParticipantError,
    NotFoundError,
    StateError,
    ValidationError,
)
from arena.models.notification import NotificationKind
from arena.models.participant import (
    IndividualParticipant,
    TeamParticipant,
    dump_participants,
    load_participants,
)
from arena.models.tournament import Team, Tournament, TournamentStatus
from arena.models.wallet import TransactionType, WalletType
from arena.schemas.tournament import TournamentJoinRequest
from arena.services.document_store import document_store
from arena.services.ledger_service import ledger_service
from arena.services.notification_service import NotificationSink, notification_service
from arena.services.tournament_service import build_team_members, registered_game_uids
from arena.utils.time_utils import utc_now

logger = logging.getLogger(__name__)


class RegistrationService:
    """Service for tournament registration"""

    def __init__(
        self,
        clock: Callable[[], datetime] = utc_now,
        notifier: Optional[NotificationSink] = None
    ):
        self.clock = clock
        self.notifier = notifier or notification_service

    def join_tournament(
        self,
        db: Session,
        tournament_id: str,
        user_id: str,
        join_data: TournamentJoinRequest
    ) -> Tournament:
        """
        Register a player (Solo) or a team led by the player (Duo/Squad).

        The entry fee debit, ledger entry, team row and tournament update are
        written in one transaction. A conflicting concurrent write restarts
        the whole attempt from a fresh read.
        """
        if not user_id:
            raise ValidationError("You must be logged in to join a tournament")

        def attempt() -> Tournament:
            tournament = document_store.get(db, Tournament, tournament_id)
            if tournament is None:
                raise NotFoundError("Tournament not found")

            self._check_can_join(tournament, user_id)
            participants = load_participants(tournament.participants)
            taken_uids = registered_game_uids(participants)

            if tournament.is_team_mode:
                if join_data.team is None:
                    raise ValidationError(f"Team details are required to join a {tournament.mode} tournament")
                members = build_team_members(
                    tournament.mode, user_id, join_data.ign, join_data.uid, join_data.team.members
                )
                new_uids = {member.uid for member in members}
            else:
                new_uids = {join_data.uid}

            clashing = new_uids & taken_uids
            if clashing:
                raise DuplicateParticipantError(
                    f"Game UID {sorted(clashing)[0]} is already registered in this tournament"
                )

            entry_fee = tournament.entry_fee or 0
            if entry_fee > 0:
                ledger_service.debit(
                    db, user_id, WalletType.TOURNAMENT_CREDITS, entry_fee,
                    TransactionType.TOURNAMENT_JOIN,
                    f"Joined tournament: {tournament.name}",
                    {"tournamentId": tournament.id, "tournamentName": tournament.name},
                )

            if tournament.is_team_mode:
                team = Team(
                    id=str(uuid4()),
                    tournament_id=tournament.id,
                    leader_id=user_id,
                    name=join_data.team.name,
                    tag=join_data.team.tag,
                    members=[m.model_dump(mode="json") for m in members],
                    created_at=self.clock(),
                    updated_at=self.clock(),
                )
                db.add(team)
                participants.append(TeamParticipant(
                    team_id=team.id,
                    leader_id=user_id,
                    team_name=team.name,
                    members=members,
                ))
            else:
                participants.append(IndividualParticipant(
                    custom_uid=join_data.uid,
                    ign=join_data.ign,
                    auth_uid=user_id,
                ))

            tournament.participants = dump_participants(participants)
            tournament.participant_uids = list(tournament.participant_uids or []) + [user_id]
            tournament.filled_spots = (tournament.filled_spots or 0) + 1
            tournament.current_prize_pool = (tournament.current_prize_pool or 0) + entry_fee
            return tournament

        tournament = document_store.run_atomically(
            db, attempt, retries=settings.JOIN_MAX_RETRIES, label="Joining tournament"
        )
        logger.info(
            f"User {user_id} joined tournament {tournament.id} "
            f"({tournament.filled_spots}/{tournament.max_players})"
        )

        self.notifier.notify(NotificationKind.TOURNAMENT_JOINED, {
            "user_id": user_id,
            "tournament_id": tournament.id,
            "tournament_name": tournament.name,
            "entry_fee": tournament.entry_fee,
        })
        return tournament

    def _check_can_join(self, tournament: Tournament, user_id: str) -> None:
        if tournament.status != TournamentStatus.ACTIVE.value:
            raise StateError(f"Cannot join tournament with status: {tournament.status}")
        if (tournament.filled_spots or 0) >= tournament.max_players:
            raise CapacityError("Tournament is full")
        if tournament.host_id == user_id:
            raise ValidationError("You cannot join your own tournament as you are the host")
        if user_id in (tournament.participant_uids or []):
            raise DuplicateParticipantError("You have already joined this tournament")


registration_service = RegistrationService()
