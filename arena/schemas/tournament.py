"""
Tournament schemas
"""
from datetime import datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field, field_validator

from arena.models.tournament import TournamentMode, TournamentStatus

GAME_UID_PATTERN = r"^[0-9]{8,12}$"


class TournamentCreate(BaseModel):
    """Schema for creating tournaments (host)"""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    mode: TournamentMode = TournamentMode.SOLO
    max_players: int = Field(..., ge=1)
    min_participants: Optional[int] = Field(None, ge=1)
    start_date: datetime
    entry_fee: int = Field(0, ge=0)
    prize_distribution: Dict[str, float] = Field(default_factory=dict)
    manual_prize_pool: Dict[str, int] = Field(default_factory=dict)

    @field_validator("prize_distribution")
    @classmethod
    def _percentages_in_range(cls, value: Dict[str, float]) -> Dict[str, float]:
        if any(pct < 0 for pct in value.values()):
            raise ValueError("Prize percentages cannot be negative")
        if sum(value.values()) > 100:
            raise ValueError("Prize percentages cannot add up to more than 100")
        return value

    @field_validator("manual_prize_pool")
    @classmethod
    def _manual_amounts_non_negative(cls, value: Dict[str, int]) -> Dict[str, int]:
        if any(amount < 0 for amount in value.values()):
            raise ValueError("Prize amounts cannot be negative")
        return value


class TeammateInput(BaseModel):
    ign: str = Field(..., min_length=1)
    uid: str = Field(..., pattern=GAME_UID_PATTERN)


class TeamJoinRequest(BaseModel):
    """Team details supplied by the leader when joining a Duo/Squad tournament"""
    name: str = Field(..., min_length=1, max_length=100)
    tag: str = Field(..., min_length=1, max_length=20)
    members: List[TeammateInput] = Field(default_factory=list)


class TournamentJoinRequest(BaseModel):
    """Join request; ign/uid are the caller's in-game identity"""
    ign: str = Field(..., min_length=3)
    uid: str = Field(..., pattern=GAME_UID_PATTERN)
    team: Optional[TeamJoinRequest] = None


class TeamUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    tag: Optional[str] = Field(None, min_length=1, max_length=20)
    members: Optional[List[TeammateInput]] = None


class TeamResponse(BaseModel):
    id: str
    tournament_id: str
    leader_id: str
    name: str
    tag: str
    members: List[Dict[str, Any]]

    model_config = ConfigDict(from_attributes=True)


class TournamentResponse(BaseModel):
    """Tournament response schema"""
    id: str
    name: str
    description: Optional[str] = None
    mode: TournamentMode
    max_players: int
    filled_spots: int
    min_participants: Optional[int] = None
    entry_fee: int
    prize_distribution: Dict[str, float] = {}
    manual_prize_pool: Dict[str, int] = {}
    current_prize_pool: int
    total_prizes_distributed: int
    host_earnings_distributed: bool
    host_earnings_amount: int
    status: TournamentStatus
    host_id: str
    start_date: datetime
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    ttl: Optional[datetime] = None
    participants: List[Dict[str, Any]] = []
    winners: Dict[str, Any] = {}
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TournamentListResponse(BaseModel):
    """List of tournaments"""
    tournaments: List[TournamentResponse]
    total_count: int


class TransitionCheck(BaseModel):
    """Non-mutating preview of a host action"""
    allowed: bool
    reason: str
    minutes_remaining: Optional[int] = None


class WinnerInput(BaseModel):
    uid: str = Field(..., min_length=1)
    ign: str = Field(..., min_length=1)


class WinnerAssignRequest(WinnerInput):
    position: str = Field(..., min_length=1)


class WinnerConfirmRequest(WinnerAssignRequest):
    amount: int = Field(..., ge=0)
    # Other positions being submitted in the same form, for the cross-position check
    other_inputs: Dict[str, WinnerInput] = Field(default_factory=dict)


class WinnerPreview(BaseModel):
    """Prize amount computed for a winner before confirmation"""
    tournament_id: str
    position: str
    uid: str
    ign: str
    auth_uid: str
    amount: int


class WinnerRecord(BaseModel):
    uid: str
    ign: str
    auth_uid: str
    prize_distributed: bool
    prize_amount: int


class PrizeBreakdown(BaseModel):
    """Deterministic prize figures for a tournament state"""
    mode: str  # "percentage" | "manual"
    pool_basis: int
    positions: Dict[str, int]
    host_share: int
    remaining_pool: int


class HostEarningsResponse(BaseModel):
    tournament_id: str
    amount: int
    host_id: str
