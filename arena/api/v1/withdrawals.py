"""
Withdrawal API endpoints
"""
from typing import List, Optional
from fastapi import APIRouter, Body, Depends, Query, Request, status
from sqlalchemy.orm import Session

from arena.api.errors import unwrap_or_raise
from arena.core.dependencies import get_current_user_id, get_operations, require_admin
from arena.core.rate_limit import limiter
from arena.database import get_db
from arena.models.withdrawal import WithdrawalStatus
from arena.schemas.wallet import WithdrawalCreate, WithdrawalResponse
from arena.services.operations import TournamentOperations

router = APIRouter(prefix="/withdrawals", tags=["withdrawals"])


@router.post("", response_model=WithdrawalResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
async def request_withdrawal(
    request: Request,
    withdrawal: WithdrawalCreate,
    db: Session = Depends(get_db),
    ops: TournamentOperations = Depends(get_operations),
    user_id: str = Depends(get_current_user_id)
):
    """Withdraw earnings to a UPI id; a 4% commission is taken from the amount"""
    return unwrap_or_raise(ops.request_withdrawal(db, user_id, withdrawal.amount, withdrawal.upi_id))


@router.get("", response_model=List[WithdrawalResponse])
async def list_my_withdrawals(
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db),
    ops: TournamentOperations = Depends(get_operations),
    user_id: str = Depends(get_current_user_id)
):
    return ops.withdrawals.list_withdrawals(db, user_id=user_id, limit=limit)


@router.get("/pending", response_model=List[WithdrawalResponse])
async def list_pending_withdrawals(
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db),
    ops: TournamentOperations = Depends(get_operations),
    admin_id: str = Depends(require_admin)
):
    """Requests awaiting settlement (admin)"""
    return ops.withdrawals.list_withdrawals(db, status=WithdrawalStatus.PENDING.value, limit=limit)


@router.post("/{request_id}/done", response_model=WithdrawalResponse)
async def mark_withdrawal_done(
    request_id: str,
    notes: Optional[str] = Body(None, embed=True),
    db: Session = Depends(get_db),
    ops: TournamentOperations = Depends(get_operations),
    admin_id: str = Depends(require_admin)
):
    """Record that the payout was settled (admin)"""
    return unwrap_or_raise(ops.mark_withdrawal_done(db, request_id, notes))
