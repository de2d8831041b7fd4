"""
Wallet ledger: the only code that changes wallet balances.

Every movement appends one immutable CreditTransaction whose balance_after
becomes the wallet's stored balance. debit/credit do not commit; they join
the caller's unit of work so a failure anywhere rolls the movement back.
"""
import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from arena.core.errors import InsufficientFundsError, NotFoundError, ValidationError, WriteConflict
from arena.models.wallet import (
    BALANCE_COLUMNS,
    CreditTransaction,
    TransactionType,
    Wallet,
    WalletType,
)
from arena.schemas.wallet import LedgerAudit, LedgerMismatch, WalletBalance
from arena.services.document_store import document_store

logger = logging.getLogger(__name__)

WALLET_LABELS = {
    WalletType.TOURNAMENT_CREDITS: "tournament credits",
    WalletType.HOST_CREDITS: "host credits",
    WalletType.EARNINGS: "earnings",
}


class LedgerService:
    """Service for wallet balances and the credit transaction log"""

    def get_or_create_wallet(self, db: Session, user_id: str) -> Wallet:
        """Wallets are created lazily on first access"""
        if not user_id:
            raise ValidationError("User id is required")
        wallet = document_store.get(db, Wallet, user_id)
        if wallet is not None:
            return wallet

        wallet = Wallet(user_id=user_id)
        db.add(wallet)
        try:
            db.flush()
        except IntegrityError as e:
            # Created concurrently by another request; the caller retries from the read
            raise WriteConflict(f"Wallet for user {user_id} was created concurrently") from e
        logger.info(f"Created wallet for user {user_id}")
        return wallet

    def get_wallet_balance(self, db: Session, user_id: str) -> WalletBalance:
        wallet = document_store.run_atomically(
            db, lambda: self.get_or_create_wallet(db, user_id), retries=1, label="Wallet read"
        )
        return WalletBalance.model_validate(wallet)

    def debit(
        self,
        db: Session,
        user_id: str,
        wallet_type: WalletType,
        amount: int,
        reason: TransactionType,
        description: str = "",
        details: Optional[Dict[str, Any]] = None
    ) -> CreditTransaction:
        """Remove credits from a wallet; fails before writing if the balance is short"""
        self._validate_amount(amount)
        wallet = self.get_or_create_wallet(db, user_id)
        balance = wallet.balance_of(wallet_type)
        if balance < amount:
            raise InsufficientFundsError(
                f"Insufficient {WALLET_LABELS[WalletType(wallet_type)]}. "
                f"Required: {amount}, Available: {balance}"
            )
        return self._append(db, wallet, wallet_type, -amount, reason, description, details)

    def credit(
        self,
        db: Session,
        user_id: str,
        wallet_type: WalletType,
        amount: int,
        reason: TransactionType,
        description: str = "",
        details: Optional[Dict[str, Any]] = None
    ) -> CreditTransaction:
        """Add credits to a wallet"""
        self._validate_amount(amount)
        wallet = self.get_or_create_wallet(db, user_id)
        return self._append(db, wallet, wallet_type, amount, reason, description, details)

    def _validate_amount(self, amount: int) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise ValidationError("Amount must be a whole number of credits")
        if amount < 0:
            raise ValidationError("Amount cannot be negative")

    def _append(
        self,
        db: Session,
        wallet: Wallet,
        wallet_type: WalletType,
        signed_amount: int,
        reason: TransactionType,
        description: str,
        details: Optional[Dict[str, Any]]
    ) -> CreditTransaction:
        wallet_type = WalletType(wallet_type)
        balance_before = wallet.balance_of(wallet_type)
        balance_after = balance_before + signed_amount

        setattr(wallet, BALANCE_COLUMNS[wallet_type], balance_after)
        if reason == TransactionType.TOURNAMENT_CREDIT_PURCHASE:
            wallet.total_purchased_tournament_credits += signed_amount
        elif reason == TransactionType.HOST_CREDIT_PURCHASE:
            wallet.total_purchased_host_credits += signed_amount

        entry = CreditTransaction(
            user_id=wallet.user_id,
            type=TransactionType(reason).value,
            amount=signed_amount,
            balance_before=balance_before,
            balance_after=balance_after,
            wallet_type=wallet_type.value,
            description=description,
            transaction_details=dict(details or {}),
        )
        db.add(entry)
        # Flush now so the wallet version check happens inside the caller's transaction
        db.flush()

        logger.info(
            f"Ledger {entry.type}: user={wallet.user_id} wallet={wallet_type.value} "
            f"amount={signed_amount} balance {balance_before}->{balance_after}"
        )
        return entry

    def convert_credits_to_earnings(self, db: Session, user_id: str, credits: int) -> WalletBalance:
        """Move tournament credits to withdrawable earnings at a 1:1 rate"""
        self._validate_amount(credits)
        if credits == 0:
            raise ValidationError("Amount must be greater than 0")

        def convert() -> Wallet:
            self.debit(
                db, user_id, WalletType.TOURNAMENT_CREDITS, credits,
                TransactionType.TOURNAMENT_CREDIT_CONVERSION,
                f"Converted {credits} tournament credits to earnings",
                {"conversionRate": 1, "earningsAmount": credits},
            )
            self.credit(
                db, user_id, WalletType.EARNINGS, credits,
                TransactionType.TOURNAMENT_CREDIT_CONVERSION,
                f"Received {credits} from tournament credit conversion",
                {"conversionRate": 1, "creditsAmount": credits},
            )
            return self.get_or_create_wallet(db, user_id)

        wallet = document_store.run_atomically(db, convert, label="Credit conversion")
        return WalletBalance.model_validate(wallet)

    def list_transactions(
        self,
        db: Session,
        user_id: str,
        limit: int = 50,
        wallet_type: Optional[WalletType] = None
    ) -> List[CreditTransaction]:
        """Most recent transactions first"""
        query = db.query(CreditTransaction).filter(CreditTransaction.user_id == user_id)
        if wallet_type:
            query = query.filter(CreditTransaction.wallet_type == WalletType(wallet_type).value)
        return query.order_by(CreditTransaction.id.desc()).limit(limit).all()

    def verify_ledger(self, db: Session, user_id: str) -> LedgerAudit:
        """Replay the user's transactions in order and compare with the stored balances"""
        wallet = document_store.get(db, Wallet, user_id)
        if wallet is None:
            raise NotFoundError(f"Wallet for user {user_id} not found")

        entries = db.query(CreditTransaction).filter(
            CreditTransaction.user_id == user_id
        ).order_by(CreditTransaction.id.asc()).all()

        replayed = defaultdict(int)
        for entry in entries:
            replayed[entry.wallet_type] += entry.amount

        mismatches = []
        for wallet_type in WalletType:
            stored = wallet.balance_of(wallet_type)
            if replayed[wallet_type.value] != stored:
                mismatches.append(LedgerMismatch(
                    wallet_type=wallet_type.value,
                    stored_balance=stored,
                    replayed_balance=replayed[wallet_type.value]
                ))

        if mismatches:
            logger.error(f"Ledger mismatch for user {user_id}: {mismatches}")

        return LedgerAudit(
            user_id=user_id,
            consistent=not mismatches,
            transaction_count=len(entries),
            mismatches=mismatches
        )


ledger_service = LedgerService()
