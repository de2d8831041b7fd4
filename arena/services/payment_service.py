"""
Payment gateway deposits
"""
import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from arena.core.errors import WriteConflict
from arena.models.notification import NotificationKind
from arena.models.wallet import TransactionType, WalletType
from arena.models.withdrawal import PaymentDeposit
from arena.schemas.wallet import FundsReceivedEvent, FundsReceivedResponse, WalletBalance
from arena.services.document_store import document_store
from arena.services.ledger_service import ledger_service
from arena.services.notification_service import NotificationSink, notification_service
from arena.utils.time_utils import utc_now

logger = logging.getLogger(__name__)

# Package type -> (wallet credited, ledger transaction type)
PACKAGE_WALLETS = {
    "tournament": (WalletType.TOURNAMENT_CREDITS, TransactionType.TOURNAMENT_CREDIT_PURCHASE),
    "host": (WalletType.HOST_CREDITS, TransactionType.HOST_CREDIT_PURCHASE),
}


class PaymentService:
    """Service for crediting confirmed deposits"""

    def __init__(
        self,
        clock: Callable[[], datetime] = utc_now,
        notifier: Optional[NotificationSink] = None
    ):
        self.clock = clock
        self.notifier = notifier or notification_service

    def on_funds_received(self, db: Session, event: FundsReceivedEvent) -> FundsReceivedResponse:
        """
        Credit a confirmed deposit exactly once per gateway order.

        Gateways redeliver webhooks, so a repeated order id returns the
        current balance without crediting again.
        """
        wallet_type, transaction_type = PACKAGE_WALLETS[event.package_type]

        def deposit() -> bool:
            if document_store.get(db, PaymentDeposit, event.order_id) is not None:
                return False

            entry = ledger_service.credit(
                db, event.user_id, wallet_type, event.credits_amount, transaction_type,
                f"Purchased {event.credits_amount} {event.package_type} credits",
                {"paymentId": event.payment_id, "orderId": event.order_id},
            )
            db.add(PaymentDeposit(
                order_id=event.order_id,
                user_id=event.user_id,
                package_type=event.package_type,
                credits_amount=event.credits_amount,
                payment_id=event.payment_id,
                transaction_id=entry.id,
                created_at=self.clock(),
            ))
            try:
                db.flush()
            except IntegrityError as e:
                # Same order delivered concurrently; the retry sees it as processed
                raise WriteConflict(f"Deposit {event.order_id} recorded concurrently") from e
            return True

        credited = document_store.run_atomically(db, deposit, retries=1, label="Deposit")
        if credited:
            logger.info(
                f"Deposit {event.order_id}: credited {event.credits_amount} "
                f"{wallet_type.value} to {event.user_id}"
            )
            self.notifier.notify(NotificationKind.FUNDS_RECEIVED, {
                "user_id": event.user_id,
                "credits_amount": event.credits_amount,
                "package_type": event.package_type,
            })
        else:
            logger.info(f"Deposit {event.order_id} already processed, skipping")

        return FundsReceivedResponse(
            order_id=event.order_id,
            user_id=event.user_id,
            credited=credited,
            balance=ledger_service.get_wallet_balance(db, event.user_id)
        )


payment_service = PaymentService()
