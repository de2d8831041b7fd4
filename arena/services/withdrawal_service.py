"""
Earnings withdrawals
"""
import logging
from datetime import datetime
from decimal import Decimal, ROUND_DOWN
from typing import Callable, List, Optional, Tuple
from uuid import uuid4

from sqlalchemy import desc
from sqlalchemy.orm import Session

from arena.core.config import settings
from arena.core.errors import NotFoundError, ValidationError
from arena.models.notification import NotificationKind
from arena.models.wallet import TransactionType, WalletType
from arena.models.withdrawal import WithdrawalRequest, WithdrawalStatus
from arena.services.document_store import document_store, unit_of_work
from arena.services.ledger_service import ledger_service
from arena.services.notification_service import NotificationSink, notification_service
from arena.utils.time_utils import utc_now

logger = logging.getLogger(__name__)


def calculate_commission(amount: int) -> Tuple[int, int]:
    """Returns (commission, final_amount); the commission is taken out of the requested sum"""
    rate = Decimal(str(settings.WITHDRAWAL_COMMISSION_RATE))
    commission = int((Decimal(amount) * rate).quantize(Decimal("1"), rounding=ROUND_DOWN))
    return commission, amount - commission


class WithdrawalService:
    """Service for withdrawal requests"""

    def __init__(
        self,
        clock: Callable[[], datetime] = utc_now,
        notifier: Optional[NotificationSink] = None
    ):
        self.clock = clock
        self.notifier = notifier or notification_service

    def request_withdrawal(
        self,
        db: Session,
        user_id: str,
        amount: int,
        upi_id: str
    ) -> WithdrawalRequest:
        """Debit the net amount from earnings and queue the request for settlement"""
        if amount < settings.MIN_WITHDRAWAL_AMOUNT:
            raise ValidationError(f"Minimum withdrawal amount is {settings.MIN_WITHDRAWAL_AMOUNT} credits")
        upi_id = (upi_id or "").strip()
        if not upi_id:
            raise ValidationError("UPI ID is required for withdrawals")

        commission, final_amount = calculate_commission(amount)
        request_id = str(uuid4())

        def withdraw() -> WithdrawalRequest:
            ledger_service.debit(
                db, user_id, WalletType.EARNINGS, final_amount,
                TransactionType.WITHDRAWAL,
                f"Withdrawal of {final_amount} to {upi_id}",
                {
                    "withdrawalRequestId": request_id,
                    "requestedAmount": amount,
                    "commission": commission,
                    "finalAmount": final_amount,
                    "upiId": upi_id,
                },
            )
            request = WithdrawalRequest(
                id=request_id,
                user_id=user_id,
                amount=amount,
                commission=commission,
                final_amount=final_amount,
                upi_id=upi_id,
                status=WithdrawalStatus.PENDING.value,
                requested_at=self.clock(),
            )
            db.add(request)
            return request

        request = document_store.run_atomically(db, withdraw, label="Withdrawal")
        logger.info(
            f"Withdrawal {request.id} requested by {user_id}: amount={amount} "
            f"commission={commission} final={final_amount}"
        )

        self.notifier.notify(NotificationKind.WITHDRAWAL_REQUESTED, {
            "user_id": user_id,
            "withdrawal_id": request.id,
            "amount": amount,
            "final_amount": final_amount,
            "upi_id": upi_id,
        })
        return request

    def mark_withdrawal_done(
        self,
        db: Session,
        request_id: str,
        notes: Optional[str] = None
    ) -> WithdrawalRequest:
        """Record off-platform settlement. Moves no funds; repeating it is a no-op."""
        with unit_of_work(db):
            request = document_store.get(db, WithdrawalRequest, request_id)
            if request is None:
                raise NotFoundError("Withdrawal request not found")
            if request.status == WithdrawalStatus.DONE.value:
                return request
            request.status = WithdrawalStatus.DONE.value
            request.processed_at = self.clock()
            if notes:
                request.notes = notes

        logger.info(f"Withdrawal {request_id} marked as done")
        self.notifier.notify(NotificationKind.WITHDRAWAL_DONE, {
            "user_id": request.user_id,
            "withdrawal_id": request.id,
            "final_amount": request.final_amount,
        })
        return request

    def list_withdrawals(
        self,
        db: Session,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 50
    ) -> List[WithdrawalRequest]:
        query = db.query(WithdrawalRequest)
        if user_id:
            query = query.filter(WithdrawalRequest.user_id == user_id)
        if status:
            query = query.filter(WithdrawalRequest.status == status)
        return query.order_by(desc(WithdrawalRequest.requested_at)).limit(limit).all()


withdrawal_service = WithdrawalService()
