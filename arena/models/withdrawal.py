"""
Withdrawal and payment deposit records
"""
from enum import Enum
from uuid import uuid4
from sqlalchemy import Column, String, Integer, DateTime, Text
from arena.database import Base
from arena.utils.time_utils import utc_now


class WithdrawalStatus(str, Enum):
    PENDING = "pending"
    DONE = "done"


class WithdrawalRequest(Base):
    """Earnings withdrawal awaiting off-platform settlement"""
    __tablename__ = "withdrawal_requests"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(128), nullable=False, index=True)

    amount = Column(Integer, nullable=False)  # Requested, before commission
    commission = Column(Integer, nullable=False)
    final_amount = Column(Integer, nullable=False)  # Debited from earnings
    upi_id = Column(String(255), nullable=False)

    status = Column(String(20), nullable=False, default=WithdrawalStatus.PENDING.value, index=True)
    notes = Column(Text, nullable=True)

    requested_at = Column(DateTime, default=utc_now)
    processed_at = Column(DateTime, nullable=True)


class PaymentDeposit(Base):
    """Processed gateway deposit, keyed by gateway order id for idempotency"""
    __tablename__ = "payment_deposits"

    order_id = Column(String(255), primary_key=True)
    user_id = Column(String(128), nullable=False, index=True)
    package_type = Column(String(20), nullable=False)
    credits_amount = Column(Integer, nullable=False)
    payment_id = Column(String(255), nullable=True)
    transaction_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utc_now)
