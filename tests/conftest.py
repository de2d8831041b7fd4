import os

# Must be set before arena.core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timedelta
from typing import Any, Dict, List, Tuple

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from arena.database import Base
import arena.models  # noqa: F401
from arena.models.notification import NotificationKind
from arena.models.tournament import TournamentMode
from arena.models.wallet import TransactionType, WalletType
from arena.schemas.tournament import (
    TeamJoinRequest,
    TeammateInput,
    TournamentCreate,
    TournamentJoinRequest,
)
from arena.services.document_store import unit_of_work
from arena.services.ledger_service import ledger_service
from arena.services.operations import TournamentOperations

START = datetime(2026, 3, 1, 18, 0, 0)
HOST_ID = "host-1"


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)

    def set(self, value: datetime):
        self.now = value


class RecordingNotificationSink:
    """Collects notifications instead of sending them"""

    def __init__(self):
        self.sent: List[Tuple[NotificationKind, Dict[str, Any]]] = []

    def notify(self, kind: NotificationKind, payload: Dict[str, Any]) -> None:
        self.sent.append((kind, payload))

    def kinds(self) -> List[NotificationKind]:
        return [kind for kind, _ in self.sent]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    # Two hours before the scheduled start of the default tournament
    return FakeClock(START - timedelta(hours=2))


@pytest.fixture
def sink():
    return RecordingNotificationSink()


@pytest.fixture
def ops(clock, sink):
    return TournamentOperations(clock=clock, notifier=sink)


def fund(db, user_id: str, tournament: int = 0, host: int = 0, earnings: int = 0):
    """Give a user credits through the ledger so replays stay consistent"""
    with unit_of_work(db):
        if tournament:
            ledger_service.credit(
                db, user_id, WalletType.TOURNAMENT_CREDITS, tournament,
                TransactionType.TOURNAMENT_CREDIT_PURCHASE, "test purchase"
            )
        if host:
            ledger_service.credit(
                db, user_id, WalletType.HOST_CREDITS, host,
                TransactionType.HOST_CREDIT_PURCHASE, "test purchase"
            )
        if earnings:
            ledger_service.credit(
                db, user_id, WalletType.EARNINGS, earnings,
                TransactionType.TOURNAMENT_WIN, "test winnings"
            )


def balances(db, user_id: str) -> Tuple[int, int, int]:
    """(tournament credits, host credits, earnings)"""
    wallet = ledger_service.get_wallet_balance(db, user_id)
    return wallet.tournament_credits, wallet.host_credits, wallet.earnings


def make_tournament_data(**overrides) -> TournamentCreate:
    data = {
        "name": "Friday Night Clash",
        "mode": TournamentMode.SOLO,
        "max_players": 10,
        "start_date": START,
        "entry_fee": 100,
        "prize_distribution": {"first": 70, "second": 20, "third": 10},
    }
    data.update(overrides)
    return TournamentCreate(**data)


def player_uid(index: int) -> str:
    return f"{10000000 + index}"


def player_ign(index: int) -> str:
    return f"player_{index}"


def solo_join(index: int) -> TournamentJoinRequest:
    return TournamentJoinRequest(ign=player_ign(index), uid=player_uid(index))


def team_join(index: int, teammates: int, name: str = "Night Owls") -> TournamentJoinRequest:
    members = [
        TeammateInput(ign=f"mate_{index}_{n}", uid=f"{20000000 + index * 10 + n}")
        for n in range(teammates)
    ]
    return TournamentJoinRequest(
        ign=player_ign(index),
        uid=player_uid(index),
        team=TeamJoinRequest(name=name, tag=f"T{index}", members=members),
    )


@pytest.fixture
def create_tournament(db, ops):
    def _create(host_id: str = HOST_ID, **overrides):
        return ops.create_tournament(db, host_id, make_tournament_data(**overrides)).unwrap()
    return _create


@pytest.fixture
def join_players(db, ops):
    """Fund and join players 1..count; returns their user ids"""
    def _join(tournament_id: str, count: int, start: int = 1, credits: int = 1000):
        user_ids = []
        for index in range(start, start + count):
            user_id = f"user-{index}"
            fund(db, user_id, tournament=credits)
            ops.join_tournament(db, tournament_id, user_id, solo_join(index)).unwrap()
            user_ids.append(user_id)
        return user_ids
    return _join
