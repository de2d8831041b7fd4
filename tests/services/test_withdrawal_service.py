import pytest

from arena.core.errors import ErrorKind, InsufficientFundsError
from arena.models.notification import NotificationKind
from arena.models.wallet import CreditTransaction, TransactionType
from arena.models.withdrawal import WithdrawalRequest, WithdrawalStatus
from arena.services.withdrawal_service import calculate_commission
from tests.conftest import balances, fund


@pytest.mark.parametrize("amount,expected", [
    (1000, (40, 960)),
    (100, (4, 96)),
    (149, (5, 144)),
    (2525, (101, 2424)),
])
def test_commission_rounds_down(amount, expected):
    assert calculate_commission(amount) == expected


class TestWithdrawals:

    def test_debits_final_amount_only(self, db, ops, sink):
        fund(db, "user-1", earnings=1000)

        request = ops.request_withdrawal(db, "user-1", 1000, "player@upi").unwrap()

        assert request.commission == 40
        assert request.final_amount == 960
        assert request.status == WithdrawalStatus.PENDING.value
        assert balances(db, "user-1") == (0, 0, 40)
        row = db.query(CreditTransaction).filter_by(type=TransactionType.WITHDRAWAL.value).one()
        assert row.amount == -960
        assert row.transaction_details["commission"] == 40
        assert sink.kinds() == [NotificationKind.WITHDRAWAL_REQUESTED]

    def test_insufficient_earnings_writes_nothing(self, db, ops):
        fund(db, "user-1", earnings=500)

        with pytest.raises(InsufficientFundsError):
            ops.withdrawals.request_withdrawal(db, "user-1", 1000, "player@upi")

        assert balances(db, "user-1") == (0, 0, 500)
        assert db.query(WithdrawalRequest).count() == 0

    def test_tournament_credits_cannot_be_withdrawn(self, db, ops):
        fund(db, "user-1", tournament=1000)

        result = ops.request_withdrawal(db, "user-1", 500, "player@upi")

        assert result.error == ErrorKind.INSUFFICIENT_FUNDS

    def test_minimum_amount(self, db, ops):
        fund(db, "user-1", earnings=1000)

        result = ops.request_withdrawal(db, "user-1", 99, "player@upi")

        assert result.error == ErrorKind.VALIDATION
        assert "100" in result.message

    def test_upi_id_required(self, db, ops):
        fund(db, "user-1", earnings=1000)

        result = ops.request_withdrawal(db, "user-1", 500, "   ")

        assert result.error == ErrorKind.VALIDATION
        assert balances(db, "user-1") == (0, 0, 1000)

    def test_mark_done_is_idempotent(self, db, ops, sink, clock):
        fund(db, "user-1", earnings=1000)
        request = ops.request_withdrawal(db, "user-1", 500, "player@upi").unwrap()
        clock.advance(hours=3)

        done = ops.mark_withdrawal_done(db, request.id, notes="Paid via UPI").unwrap()
        processed_at = done.processed_at
        clock.advance(hours=1)
        again = ops.mark_withdrawal_done(db, request.id).unwrap()

        assert again.status == WithdrawalStatus.DONE.value
        assert again.processed_at == processed_at
        assert again.notes == "Paid via UPI"
        assert sink.kinds().count(NotificationKind.WITHDRAWAL_DONE) == 1
        assert balances(db, "user-1") == (0, 0, 520)

    def test_mark_unknown_request(self, db, ops):
        assert ops.mark_withdrawal_done(db, "missing").error == ErrorKind.NOT_FOUND

    def test_list_pending(self, db, ops):
        fund(db, "user-1", earnings=1000)
        fund(db, "user-2", earnings=1000)
        first = ops.request_withdrawal(db, "user-1", 200, "one@upi").unwrap()
        ops.request_withdrawal(db, "user-2", 300, "two@upi").unwrap()
        ops.mark_withdrawal_done(db, first.id).unwrap()

        pending = ops.withdrawals.list_withdrawals(db, status=WithdrawalStatus.PENDING.value)

        assert [w.user_id for w in pending] == ["user-2"]
        assert len(ops.withdrawals.list_withdrawals(db, user_id="user-1")) == 1
