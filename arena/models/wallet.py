"""
Wallet ledger models
"""
from enum import Enum
from sqlalchemy import Column, String, Integer, DateTime, Text, CheckConstraint
from arena.database import Base
from arena.models.types import JSONType
from arena.utils.time_utils import utc_now


class WalletType(str, Enum):
    TOURNAMENT_CREDITS = "tournamentCredits"
    HOST_CREDITS = "hostCredits"
    EARNINGS = "earnings"


class TransactionType(str, Enum):
    TOURNAMENT_CREDIT_PURCHASE = "tournament_credit_purchase"
    HOST_CREDIT_PURCHASE = "host_credit_purchase"
    TOURNAMENT_JOIN = "tournament_join"
    TOURNAMENT_WIN = "tournament_win"
    TOURNAMENT_HOST_EARNINGS = "tournament_host_earnings"
    TOURNAMENT_CANCELLATION_REFUND = "tournament_cancellation_refund"
    MANUAL_PRIZE_POOL_FUNDING = "manual_prize_pool_funding"
    MANUAL_PRIZE_POOL_REFUND = "manual_prize_pool_refund"
    TOURNAMENT_CREDIT_CONVERSION = "tournament_credit_conversion"
    WITHDRAWAL = "withdrawal"


# Wallet attribute backing each wallet type
BALANCE_COLUMNS = {
    WalletType.TOURNAMENT_CREDITS: "tournament_credits",
    WalletType.HOST_CREDITS: "host_credits",
    WalletType.EARNINGS: "earnings",
}


class Wallet(Base):
    """Per-user balances; only the ledger service writes these"""
    __tablename__ = "wallets"

    user_id = Column(String(128), primary_key=True)
    tournament_credits = Column(Integer, nullable=False, default=0)
    host_credits = Column(Integer, nullable=False, default=0)
    earnings = Column(Integer, nullable=False, default=0)

    total_purchased_tournament_credits = Column(Integer, nullable=False, default=0)
    total_purchased_host_credits = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    version = Column(Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        CheckConstraint(
            "tournament_credits >= 0 AND host_credits >= 0 AND earnings >= 0",
            name="ck_wallets_non_negative"
        ),
    )

    def balance_of(self, wallet_type: WalletType) -> int:
        return getattr(self, BALANCE_COLUMNS[WalletType(wallet_type)]) or 0


class CreditTransaction(Base):
    """Append-only ledger entry"""
    __tablename__ = "credit_transactions"

    # Autoincrement id doubles as the replay order
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(128), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    amount = Column(Integer, nullable=False)  # Signed
    balance_before = Column(Integer, nullable=False)
    balance_after = Column(Integer, nullable=False)
    wallet_type = Column(String(30), nullable=False)
    description = Column(Text, nullable=True)
    transaction_details = Column(JSONType, default=dict)
    created_at = Column(DateTime, default=utc_now, index=True)
