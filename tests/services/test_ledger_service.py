import pytest

from arena.core.errors import InsufficientFundsError, NotFoundError, ValidationError
from arena.models.wallet import CreditTransaction, TransactionType, WalletType
from arena.services.document_store import unit_of_work
from arena.services.ledger_service import ledger_service
from tests.conftest import balances, fund


class TestLedgerService:

    def test_wallet_created_lazily_with_zero_balances(self, db):
        assert balances(db, "newcomer") == (0, 0, 0)
        assert db.query(CreditTransaction).count() == 0

    def test_credit_and_debit_record_before_and_after(self, db):
        fund(db, "user-1", tournament=500)
        with unit_of_work(db):
            entry = ledger_service.debit(
                db, "user-1", WalletType.TOURNAMENT_CREDITS, 120,
                TransactionType.TOURNAMENT_JOIN, "join"
            )

        assert entry.amount == -120
        assert entry.balance_before == 500
        assert entry.balance_after == 380
        assert balances(db, "user-1") == (380, 0, 0)

    def test_debit_more_than_balance_writes_nothing(self, db):
        fund(db, "user-1", tournament=50)

        with pytest.raises(InsufficientFundsError):
            with unit_of_work(db):
                ledger_service.debit(
                    db, "user-1", WalletType.TOURNAMENT_CREDITS, 100,
                    TransactionType.TOURNAMENT_JOIN, "join"
                )

        assert balances(db, "user-1") == (50, 0, 0)
        assert db.query(CreditTransaction).count() == 1

    def test_negative_amount_rejected(self, db):
        with pytest.raises(ValidationError):
            with unit_of_work(db):
                ledger_service.credit(
                    db, "user-1", WalletType.EARNINGS, -5, TransactionType.TOURNAMENT_WIN, "bad"
                )

    def test_purchase_updates_lifetime_totals(self, db):
        fund(db, "user-1", tournament=300, host=200)
        wallet = ledger_service.get_or_create_wallet(db, "user-1")
        assert wallet.total_purchased_tournament_credits == 300
        assert wallet.total_purchased_host_credits == 200

    def test_convert_credits_to_earnings(self, db):
        fund(db, "user-1", tournament=300)

        balance = ledger_service.convert_credits_to_earnings(db, "user-1", 120)

        assert (balance.tournament_credits, balance.earnings) == (180, 120)
        types = [t.type for t in ledger_service.list_transactions(db, "user-1")]
        assert types.count(TransactionType.TOURNAMENT_CREDIT_CONVERSION.value) == 2

    def test_convert_more_than_balance_fails_without_partial_write(self, db):
        fund(db, "user-1", tournament=100)

        with pytest.raises(InsufficientFundsError):
            ledger_service.convert_credits_to_earnings(db, "user-1", 150)

        assert balances(db, "user-1") == (100, 0, 0)

    def test_list_transactions_newest_first_and_filtered(self, db):
        fund(db, "user-1", tournament=100, host=50)

        entries = ledger_service.list_transactions(db, "user-1")
        assert [e.wallet_type for e in entries] == ["hostCredits", "tournamentCredits"]

        host_only = ledger_service.list_transactions(db, "user-1", wallet_type=WalletType.HOST_CREDITS)
        assert len(host_only) == 1

    def test_verify_ledger_consistent_after_movements(self, db):
        fund(db, "user-1", tournament=500, host=100, earnings=40)
        ledger_service.convert_credits_to_earnings(db, "user-1", 60)

        audit = ledger_service.verify_ledger(db, "user-1")

        assert audit.consistent
        assert audit.transaction_count == 5
        assert audit.mismatches == []

    def test_verify_ledger_reports_tampered_balance(self, db):
        fund(db, "user-1", tournament=500)
        with unit_of_work(db):
            wallet = ledger_service.get_or_create_wallet(db, "user-1")
            wallet.tournament_credits = 900

        audit = ledger_service.verify_ledger(db, "user-1")

        assert not audit.consistent
        assert audit.mismatches[0].wallet_type == "tournamentCredits"
        assert audit.mismatches[0].stored_balance == 900
        assert audit.mismatches[0].replayed_balance == 500

    def test_verify_ledger_unknown_user(self, db):
        with pytest.raises(NotFoundError):
            ledger_service.verify_ledger(db, "ghost")
