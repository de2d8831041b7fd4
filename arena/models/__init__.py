"""
Database models for Tournament Arena Backend

All models should be imported here for Alembic to detect them.
"""
from arena.models.tournament import Tournament, Team, TournamentMode, TournamentStatus
from arena.models.wallet import Wallet, CreditTransaction, WalletType, TransactionType
from arena.models.withdrawal import WithdrawalRequest, WithdrawalStatus, PaymentDeposit

__all__ = [
    # Tournament
    "Tournament",
    "Team",
    "TournamentMode",
    "TournamentStatus",
    # Wallet
    "Wallet",
    "CreditTransaction",
    "WalletType",
    "TransactionType",
    # Withdrawal / payments
    "WithdrawalRequest",
    "WithdrawalStatus",
    "PaymentDeposit",
]
