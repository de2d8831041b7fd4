"""
Tournament service for creating, reading and editing tournaments and teams
"""
import logging
from datetime import datetime
from typing import Callable, Iterable, List, Optional
from uuid import uuid4

from sqlalchemy import desc
from sqlalchemy.orm import Session

from arena.core.config import settings
from arena.core.errors import (
    AuthorizationError,
    DuplicateParticipantError,
    NotFoundError,
    StateError,
    ValidationError,
)
from arena.models.participant import (
    MemberRole,
    TeamMember,
    TeamParticipant,
    dump_participants,
    load_participants,
)
from arena.models.tournament import TEAM_SIZE_RULES, Team, Tournament, TournamentMode, TournamentStatus
from arena.models.wallet import TransactionType, WalletType
from arena.schemas.tournament import TeamUpdate, TeammateInput, TournamentCreate, TournamentListResponse, TournamentResponse
from arena.services.document_store import document_store
from arena.services.ledger_service import ledger_service
from arena.utils.time_utils import as_naive_utc, utc_now

logger = logging.getLogger(__name__)


def validate_team_size(mode: str, member_count: int) -> None:
    """Member count includes the leader"""
    low, high = TEAM_SIZE_RULES[TournamentMode(mode)]
    if not low <= member_count <= high:
        if low == high:
            expected = f"exactly {low}"
        else:
            expected = f"between {low} and {high}"
        raise ValidationError(
            f"{mode} teams must have {expected} players including the leader, got {member_count}"
        )


def build_team_members(
    mode: str,
    leader_id: str,
    leader_ign: str,
    leader_uid: str,
    teammates: List[TeammateInput]
) -> List[TeamMember]:
    members = [TeamMember(user_id=leader_id, ign=leader_ign, uid=leader_uid, role=MemberRole.LEADER)]
    members.extend(TeamMember(ign=mate.ign, uid=mate.uid) for mate in teammates)
    validate_team_size(mode, len(members))

    uids = [member.uid for member in members]
    if len(set(uids)) != len(uids):
        raise ValidationError("Each team member must have a different game UID")
    return members


def registered_game_uids(participants: Iterable) -> set:
    """Every in-game UID already entered in the tournament"""
    uids = set()
    for participant in participants:
        if isinstance(participant, TeamParticipant):
            uids.update(member.uid for member in participant.members)
        else:
            uids.add(participant.custom_uid)
    return uids


class TournamentService:
    """Service for tournament operations"""

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self.clock = clock

    def create_tournament(
        self,
        db: Session,
        host_id: str,
        tournament_data: TournamentCreate
    ) -> Tournament:
        """Create a new tournament; free tournaments are funded from the host's hostCredits"""
        if not host_id:
            raise AuthorizationError("You must be logged in to create a tournament")
        if tournament_data.min_participants and tournament_data.min_participants > tournament_data.max_players:
            raise ValidationError("Minimum participants cannot exceed the maximum number of players")

        if tournament_data.entry_fee > 0:
            if not tournament_data.prize_distribution:
                raise ValidationError("Prize distribution is required for tournaments with an entry fee")
            if tournament_data.manual_prize_pool:
                raise ValidationError("A manual prize pool can only be used for free tournaments")
        elif tournament_data.prize_distribution:
            raise ValidationError("Percentage prizes require an entry fee; use a manual prize pool instead")

        manual_total = sum(tournament_data.manual_prize_pool.values())
        tournament_id = str(uuid4())

        def create() -> Tournament:
            if manual_total > 0:
                ledger_service.debit(
                    db, host_id, WalletType.HOST_CREDITS, manual_total,
                    TransactionType.MANUAL_PRIZE_POOL_FUNDING,
                    f"Prize pool for tournament {tournament_data.name}",
                    {"tournamentId": tournament_id, "prizePool": tournament_data.manual_prize_pool},
                )
            tournament = Tournament(
                id=tournament_id,
                name=tournament_data.name,
                description=tournament_data.description,
                mode=tournament_data.mode.value,
                max_players=tournament_data.max_players,
                filled_spots=0,
                min_participants=tournament_data.min_participants,
                entry_fee=tournament_data.entry_fee,
                prize_distribution=dict(tournament_data.prize_distribution),
                manual_prize_pool=dict(tournament_data.manual_prize_pool),
                current_prize_pool=manual_total,
                status=TournamentStatus.ACTIVE.value,
                host_id=host_id,
                start_date=as_naive_utc(tournament_data.start_date),
                participants=[],
                participant_uids=[],
                winners={},
                created_at=self.clock(),
            )
            db.add(tournament)
            db.flush()
            return tournament

        tournament = document_store.run_atomically(db, create, label="Tournament creation")
        logger.info(f"Tournament {tournament.id} created by host {host_id} ({tournament.mode}, fee {tournament.entry_fee})")
        return tournament

    def get_tournament(self, db: Session, tournament_id: str) -> Tournament:
        tournament = document_store.get(db, Tournament, tournament_id)
        if not tournament:
            raise NotFoundError("Tournament not found")
        return tournament

    def list_tournaments(
        self,
        db: Session,
        status: Optional[str] = None,
        host_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> TournamentListResponse:
        """List tournaments with optional filters"""
        query = db.query(Tournament)

        if status:
            query = query.filter(Tournament.status == status)
        if host_id:
            query = query.filter(Tournament.host_id == host_id)

        total = query.count()
        tournaments = query.order_by(desc(Tournament.start_date)).offset(offset).limit(limit).all()

        return TournamentListResponse(
            tournaments=[TournamentResponse.model_validate(t) for t in tournaments],
            total_count=total
        )

    def get_team(self, db: Session, team_id: str) -> Team:
        team = document_store.get(db, Team, team_id)
        if not team:
            raise NotFoundError("Team not found")
        return team

    def update_team(
        self,
        db: Session,
        team_id: str,
        actor_id: str,
        team_data: TeamUpdate
    ) -> Team:
        """Leader-only edit while registration is still open"""

        def update() -> Team:
            team = self.get_team(db, team_id)
            if team.leader_id != actor_id:
                raise AuthorizationError("Only the team leader can edit the team")

            tournament = self.get_tournament(db, team.tournament_id)
            if tournament.status != TournamentStatus.ACTIVE.value:
                raise StateError(f"Teams cannot be edited once the tournament is {tournament.status}")

            if team_data.name is not None:
                team.name = team_data.name
            if team_data.tag is not None:
                team.tag = team_data.tag
            participants = load_participants(tournament.participants)
            if team_data.members is not None:
                leader = TeamMember.model_validate(
                    next(m for m in team.members if m["role"] == MemberRole.LEADER.value)
                )
                members = build_team_members(
                    tournament.mode, team.leader_id, leader.ign, leader.uid, team_data.members
                )
                taken_uids = registered_game_uids(
                    p for p in participants
                    if not (isinstance(p, TeamParticipant) and p.team_id == team.id)
                )
                clashing = {member.uid for member in members} & taken_uids
                if clashing:
                    raise DuplicateParticipantError(
                        f"Game UID {sorted(clashing)[0]} is already registered in this tournament"
                    )
                team.members = [m.model_dump(mode="json") for m in members]
            team.updated_at = self.clock()

            for index, participant in enumerate(participants):
                if isinstance(participant, TeamParticipant) and participant.team_id == team.id:
                    participants[index] = TeamParticipant(
                        team_id=team.id,
                        leader_id=team.leader_id,
                        team_name=team.name,
                        members=[TeamMember.model_validate(m) for m in team.members],
                    )
            # The tournament keeps its own copy of the team
            tournament.participants = dump_participants(participants)
            return team

        team = document_store.run_atomically(
            db, update, retries=settings.JOIN_MAX_RETRIES, label="Team update"
        )
        logger.info(f"Team {team_id} updated by leader {actor_id}")
        return team


tournament_service = TournamentService()
