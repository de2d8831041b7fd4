"""
Tournament system models
"""
from enum import Enum
from uuid import uuid4
from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from arena.database import Base
from arena.models.types import JSONType
from arena.utils.time_utils import utc_now


class TournamentMode(str, Enum):
    SOLO = "Solo"
    DUO = "Duo"
    SQUAD = "Squad"


class TournamentStatus(str, Enum):
    ACTIVE = "active"
    ONGOING = "ongoing"
    ENDED = "ended"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# (min, max) members per entry, leader included
TEAM_SIZE_RULES = {
    TournamentMode.SOLO: (1, 1),
    TournamentMode.DUO: (2, 2),
    TournamentMode.SQUAD: (2, 4),
}


def _new_id() -> str:
    return str(uuid4())


class Tournament(Base):
    """Tournament definition and live state"""
    __tablename__ = "tournaments"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    # Format
    mode = Column(String(20), nullable=False, default=TournamentMode.SOLO.value)
    max_players = Column(Integer, nullable=False)
    filled_spots = Column(Integer, nullable=False, default=0)
    min_participants = Column(Integer, nullable=True)

    # Money
    entry_fee = Column(Integer, nullable=False, default=0)  # In tournament credits
    prize_distribution = Column(JSONType, default=dict)  # position -> percentage
    manual_prize_pool = Column(JSONType, default=dict)  # position -> fixed credits
    current_prize_pool = Column(Integer, nullable=False, default=0)
    total_prizes_distributed = Column(Integer, nullable=False, default=0)
    host_earnings_distributed = Column(Boolean, nullable=False, default=False)
    host_earnings_amount = Column(Integer, nullable=False, default=0)

    # Lifecycle
    status = Column(String(20), nullable=False, default=TournamentStatus.ACTIVE.value, index=True)
    host_id = Column(String(128), nullable=False, index=True)
    start_date = Column(DateTime, nullable=False, index=True)  # Scheduled start
    started_at = Column(DateTime, nullable=True)
    ended_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    ttl = Column(DateTime, nullable=True, index=True)  # Absolute expiry instant

    # Participants (list of IndividualParticipant / TeamParticipant dicts)
    participants = Column(JSONType, default=list)
    participant_uids = Column(JSONType, default=list)  # authUids of paying users
    winners = Column(JSONType, default=dict)  # position -> winner record

    # Timestamps
    created_at = Column(DateTime, default=utc_now)

    # Optimistic concurrency: every UPDATE is conditional on this value
    version = Column(Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        CheckConstraint("current_prize_pool >= 0", name="ck_tournaments_pool_non_negative"),
        CheckConstraint("filled_spots <= max_players", name="ck_tournaments_capacity"),
    )

    @property
    def is_team_mode(self) -> bool:
        return self.mode != TournamentMode.SOLO.value

    @property
    def is_manual_pool(self) -> bool:
        return (self.entry_fee or 0) == 0


class Team(Base):
    """Team created by its leader when joining a Duo/Squad tournament"""
    __tablename__ = "teams"

    id = Column(String(36), primary_key=True, default=_new_id)
    tournament_id = Column(String(36), ForeignKey("tournaments.id", ondelete="CASCADE"), index=True)
    leader_id = Column(String(128), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    tag = Column(String(20), nullable=False)
    members = Column(JSONType, default=list)  # [{user_id, ign, uid, role}]

    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    tournament = relationship("Tournament")
