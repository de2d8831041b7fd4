"""
Wallet, ledger, withdrawal and payment schemas
"""
from datetime import datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field


class WalletBalance(BaseModel):
    user_id: str
    tournament_credits: int
    host_credits: int
    earnings: int

    model_config = ConfigDict(from_attributes=True)


class CreditTransactionResponse(BaseModel):
    id: int
    user_id: str
    type: str
    amount: int
    balance_before: int
    balance_after: int
    wallet_type: str
    description: Optional[str] = None
    transaction_details: Dict[str, Any] = {}
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LedgerMismatch(BaseModel):
    wallet_type: str
    stored_balance: int
    replayed_balance: int


class LedgerAudit(BaseModel):
    """Result of replaying a user's ledger against the stored wallet"""
    user_id: str
    consistent: bool
    transaction_count: int
    mismatches: List[LedgerMismatch] = []


class CreditConversionRequest(BaseModel):
    credits: int = Field(..., gt=0)


class WithdrawalCreate(BaseModel):
    amount: int = Field(..., gt=0)
    upi_id: str = Field(..., min_length=3, max_length=255)


class WithdrawalResponse(BaseModel):
    id: str
    user_id: str
    amount: int
    commission: int
    final_amount: int
    upi_id: str
    status: str
    notes: Optional[str] = None
    requested_at: datetime
    processed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class FundsReceivedEvent(BaseModel):
    """Deposit confirmed by the payment gateway"""
    user_id: str
    package_type: str = Field(..., pattern="^(tournament|host)$")
    credits_amount: int = Field(..., gt=0)
    payment_id: str = Field(..., min_length=1)
    order_id: str = Field(..., min_length=1)


class FundsReceivedResponse(BaseModel):
    order_id: str
    user_id: str
    credited: bool  # False when the order was already processed
    balance: WalletBalance
