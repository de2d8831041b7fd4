"""
Caller-facing tournament and wallet operations.

Each operation returns an OperationResult: the payload on success, or the
error kind and message when a business rule rejects the request.
Unexpected failures still raise.
"""
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from arena.core.result import OperationResult, capture
from arena.schemas.tournament import (
    TeamUpdate,
    TournamentCreate,
    TournamentJoinRequest,
    WinnerConfirmRequest,
)
from arena.schemas.wallet import FundsReceivedEvent
from arena.services.distribution_service import DistributionService
from arena.services.ledger_service import ledger_service
from arena.services.lifecycle_service import LifecycleService
from arena.services.notification_service import NotificationSink, notification_service
from arena.services.payment_service import PaymentService
from arena.services.prize_calculator import breakdown
from arena.services.registration_service import RegistrationService
from arena.services.tournament_service import TournamentService
from arena.services.withdrawal_service import WithdrawalService
from arena.utils.time_utils import utc_now


class TournamentOperations:
    def __init__(
        self,
        clock: Callable[[], datetime] = utc_now,
        notifier: Optional[NotificationSink] = None
    ):
        notifier = notifier or notification_service
        self.tournaments = TournamentService(clock)
        self.registration = RegistrationService(clock, notifier)
        self.lifecycle = LifecycleService(clock, notifier)
        self.distribution = DistributionService(clock, notifier)
        self.withdrawals = WithdrawalService(clock, notifier)
        self.payments = PaymentService(clock, notifier)
        self.ledger = ledger_service

    # Tournaments

    def create_tournament(self, db: Session, host_id: str, data: TournamentCreate) -> OperationResult:
        return capture(self.tournaments.create_tournament, db, host_id, data)

    def get_tournament(self, db: Session, tournament_id: str) -> OperationResult:
        return capture(self.tournaments.get_tournament, db, tournament_id)

    def join_tournament(
        self, db: Session, tournament_id: str, user_id: str, data: TournamentJoinRequest
    ) -> OperationResult:
        return capture(self.registration.join_tournament, db, tournament_id, user_id, data)

    def update_team(self, db: Session, team_id: str, actor_id: str, data: TeamUpdate) -> OperationResult:
        return capture(self.tournaments.update_team, db, team_id, actor_id, data)

    def start_tournament(self, db: Session, tournament_id: str, actor_id: str) -> OperationResult:
        return capture(self.lifecycle.start_tournament, db, tournament_id, actor_id)

    def end_tournament(self, db: Session, tournament_id: str, actor_id: str) -> OperationResult:
        return capture(self.lifecycle.end_tournament, db, tournament_id, actor_id)

    def cancel_tournament(self, db: Session, tournament_id: str, actor_id: str) -> OperationResult:
        return capture(self.lifecycle.cancel_tournament, db, tournament_id, actor_id)

    def can_start(self, db: Session, tournament_id: str, actor_id: str) -> OperationResult:
        def check():
            return self.lifecycle.can_start(self.tournaments.get_tournament(db, tournament_id), actor_id)
        return capture(check)

    def can_end(self, db: Session, tournament_id: str, actor_id: str) -> OperationResult:
        def check():
            return self.lifecycle.can_end(self.tournaments.get_tournament(db, tournament_id), actor_id)
        return capture(check)

    # Prizes

    def prize_breakdown(self, db: Session, tournament_id: str) -> OperationResult:
        return capture(lambda: breakdown(self.tournaments.get_tournament(db, tournament_id)))

    def assign_winner(
        self, db: Session, tournament_id: str, position: str, uid: str, ign: str, actor_id: str
    ) -> OperationResult:
        return capture(self.distribution.assign_winner, db, tournament_id, position, uid, ign, actor_id)

    def confirm_distribution(
        self, db: Session, tournament_id: str, data: WinnerConfirmRequest, actor_id: str
    ) -> OperationResult:
        return capture(self.distribution.confirm_distribution, db, tournament_id, data, actor_id)

    def collect_host_earnings(self, db: Session, tournament_id: str, actor_id: str) -> OperationResult:
        return capture(self.distribution.collect_host_earnings, db, tournament_id, actor_id)

    # Wallet

    def get_wallet_balance(self, db: Session, user_id: str) -> OperationResult:
        return capture(self.ledger.get_wallet_balance, db, user_id)

    def list_transactions(self, db: Session, user_id: str, limit: int = 50) -> OperationResult:
        return capture(self.ledger.list_transactions, db, user_id, limit)

    def verify_ledger(self, db: Session, user_id: str) -> OperationResult:
        return capture(self.ledger.verify_ledger, db, user_id)

    def convert_credits_to_earnings(self, db: Session, user_id: str, credits: int) -> OperationResult:
        return capture(self.ledger.convert_credits_to_earnings, db, user_id, credits)

    def request_withdrawal(self, db: Session, user_id: str, amount: int, upi_id: str) -> OperationResult:
        return capture(self.withdrawals.request_withdrawal, db, user_id, amount, upi_id)

    def mark_withdrawal_done(self, db: Session, request_id: str, notes: Optional[str] = None) -> OperationResult:
        return capture(self.withdrawals.mark_withdrawal_done, db, request_id, notes)

    def on_funds_received(self, db: Session, event: FundsReceivedEvent) -> OperationResult:
        return capture(self.payments.on_funds_received, db, event)


operations = TournamentOperations()
