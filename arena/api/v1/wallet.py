"""
Wallet API endpoints
"""
from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from arena.api.errors import unwrap_or_raise
from arena.core.dependencies import get_current_user_id, get_operations, require_admin
from arena.database import get_db
from arena.schemas.wallet import (
    CreditConversionRequest,
    CreditTransactionResponse,
    LedgerAudit,
    WalletBalance,
)
from arena.services.operations import TournamentOperations

router = APIRouter(prefix="/wallet", tags=["wallet"])


@router.get("", response_model=WalletBalance)
async def get_wallet(
    db: Session = Depends(get_db),
    ops: TournamentOperations = Depends(get_operations),
    user_id: str = Depends(get_current_user_id)
):
    """Current balances of the caller's three wallets"""
    return unwrap_or_raise(ops.get_wallet_balance(db, user_id))


@router.get("/transactions", response_model=List[CreditTransactionResponse])
async def list_transactions(
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    ops: TournamentOperations = Depends(get_operations),
    user_id: str = Depends(get_current_user_id)
):
    """Most recent ledger entries first"""
    return unwrap_or_raise(ops.list_transactions(db, user_id, limit))


@router.post("/convert", response_model=WalletBalance)
async def convert_credits(
    conversion: CreditConversionRequest,
    db: Session = Depends(get_db),
    ops: TournamentOperations = Depends(get_operations),
    user_id: str = Depends(get_current_user_id)
):
    """Move tournament credits to withdrawable earnings (1:1)"""
    return unwrap_or_raise(ops.convert_credits_to_earnings(db, user_id, conversion.credits))


@router.get("/{user_id}/audit", response_model=LedgerAudit)
async def audit_wallet(
    user_id: str,
    db: Session = Depends(get_db),
    ops: TournamentOperations = Depends(get_operations),
    admin_id: str = Depends(require_admin)
):
    """Replay a user's ledger against the stored balances (admin)"""
    return unwrap_or_raise(ops.verify_ledger(db, user_id))
