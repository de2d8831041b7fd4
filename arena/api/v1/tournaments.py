"""
Tournament API endpoints
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from arena.api.errors import unwrap_or_raise
from arena.core.dependencies import get_current_user_id, get_operations
from arena.database import get_db
from arena.schemas.tournament import (
    HostEarningsResponse,
    PrizeBreakdown,
    TeamResponse,
    TeamUpdate,
    TournamentCreate,
    TournamentJoinRequest,
    TournamentListResponse,
    TournamentResponse,
    TransitionCheck,
    WinnerAssignRequest,
    WinnerConfirmRequest,
    WinnerPreview,
    WinnerRecord,
)
from arena.services.operations import TournamentOperations

router = APIRouter(prefix="/tournaments", tags=["tournaments"])


@router.get("", response_model=TournamentListResponse)
async def list_tournaments(
    status: Optional[str] = Query(None, description="Filter by status"),
    host_id: Optional[str] = Query(None, description="Filter by host"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    ops: TournamentOperations = Depends(get_operations),
    user_id: str = Depends(get_current_user_id)
):
    """List tournaments"""
    return ops.tournaments.list_tournaments(db, status, host_id, limit, offset)


@router.post("", response_model=TournamentResponse, status_code=status.HTTP_201_CREATED)
async def create_tournament(
    tournament_data: TournamentCreate,
    db: Session = Depends(get_db),
    ops: TournamentOperations = Depends(get_operations),
    user_id: str = Depends(get_current_user_id)
):
    """Create a tournament hosted by the current user"""
    return unwrap_or_raise(ops.create_tournament(db, user_id, tournament_data))


@router.patch("/teams/{team_id}", response_model=TeamResponse)
async def update_team(
    team_id: str,
    team_data: TeamUpdate,
    db: Session = Depends(get_db),
    ops: TournamentOperations = Depends(get_operations),
    user_id: str = Depends(get_current_user_id)
):
    """Edit a team (leader only, before the tournament starts)"""
    return unwrap_or_raise(ops.update_team(db, team_id, user_id, team_data))


@router.get("/{tournament_id}", response_model=TournamentResponse)
async def get_tournament(
    tournament_id: str,
    db: Session = Depends(get_db),
    ops: TournamentOperations = Depends(get_operations),
    user_id: str = Depends(get_current_user_id)
):
    """Get tournament details"""
    return unwrap_or_raise(ops.get_tournament(db, tournament_id))


@router.get("/{tournament_id}/prizes", response_model=PrizeBreakdown)
async def get_prize_breakdown(
    tournament_id: str,
    db: Session = Depends(get_db),
    ops: TournamentOperations = Depends(get_operations),
    user_id: str = Depends(get_current_user_id)
):
    """Current prize amount per position and the host share"""
    return unwrap_or_raise(ops.prize_breakdown(db, tournament_id))


@router.post("/{tournament_id}/join", response_model=TournamentResponse)
async def join_tournament(
    tournament_id: str,
    join_data: TournamentJoinRequest,
    db: Session = Depends(get_db),
    ops: TournamentOperations = Depends(get_operations),
    user_id: str = Depends(get_current_user_id)
):
    """Join a tournament, paying the entry fee from tournament credits"""
    return unwrap_or_raise(ops.join_tournament(db, tournament_id, user_id, join_data))


@router.get("/{tournament_id}/can-start", response_model=TransitionCheck)
async def can_start_tournament(
    tournament_id: str,
    db: Session = Depends(get_db),
    ops: TournamentOperations = Depends(get_operations),
    user_id: str = Depends(get_current_user_id)
):
    return unwrap_or_raise(ops.can_start(db, tournament_id, user_id))


@router.post("/{tournament_id}/start", response_model=TournamentResponse)
async def start_tournament(
    tournament_id: str,
    db: Session = Depends(get_db),
    ops: TournamentOperations = Depends(get_operations),
    user_id: str = Depends(get_current_user_id)
):
    """Start a tournament (host only, from 20 minutes before the scheduled start)"""
    return unwrap_or_raise(ops.start_tournament(db, tournament_id, user_id))


@router.get("/{tournament_id}/can-end", response_model=TransitionCheck)
async def can_end_tournament(
    tournament_id: str,
    db: Session = Depends(get_db),
    ops: TournamentOperations = Depends(get_operations),
    user_id: str = Depends(get_current_user_id)
):
    return unwrap_or_raise(ops.can_end(db, tournament_id, user_id))


@router.post("/{tournament_id}/end", response_model=TournamentResponse)
async def end_tournament(
    tournament_id: str,
    db: Session = Depends(get_db),
    ops: TournamentOperations = Depends(get_operations),
    user_id: str = Depends(get_current_user_id)
):
    """End a running tournament (host only)"""
    return unwrap_or_raise(ops.end_tournament(db, tournament_id, user_id))


@router.post("/{tournament_id}/cancel", response_model=TournamentResponse)
async def cancel_tournament(
    tournament_id: str,
    db: Session = Depends(get_db),
    ops: TournamentOperations = Depends(get_operations),
    user_id: str = Depends(get_current_user_id)
):
    """Cancel a tournament and refund every participant (host only)"""
    return unwrap_or_raise(ops.cancel_tournament(db, tournament_id, user_id))


@router.post("/{tournament_id}/winners/preview", response_model=WinnerPreview)
async def preview_winner(
    tournament_id: str,
    winner: WinnerAssignRequest,
    db: Session = Depends(get_db),
    ops: TournamentOperations = Depends(get_operations),
    user_id: str = Depends(get_current_user_id)
):
    """Validate a winner and show the prize before paying it"""
    return unwrap_or_raise(
        ops.assign_winner(db, tournament_id, winner.position, winner.uid, winner.ign, user_id)
    )


@router.post("/{tournament_id}/winners/confirm", response_model=WinnerRecord)
async def confirm_winner(
    tournament_id: str,
    confirm_data: WinnerConfirmRequest,
    db: Session = Depends(get_db),
    ops: TournamentOperations = Depends(get_operations),
    user_id: str = Depends(get_current_user_id)
):
    """Pay the prize for one position"""
    return unwrap_or_raise(ops.confirm_distribution(db, tournament_id, confirm_data, user_id))


@router.post("/{tournament_id}/host-earnings", response_model=HostEarningsResponse)
async def collect_host_earnings(
    tournament_id: str,
    db: Session = Depends(get_db),
    ops: TournamentOperations = Depends(get_operations),
    user_id: str = Depends(get_current_user_id)
):
    """Collect the host's share once all prizes are paid"""
    return unwrap_or_raise(ops.collect_host_earnings(db, tournament_id, user_id))
