"""
Races between two sessions on a file-backed database, so each session has
its own connection and commits independently.
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from arena.core.errors import CapacityError, ErrorKind
from arena.database import Base
from arena.models.tournament import Tournament
from arena.models.wallet import Wallet
from arena.services.document_store import UpdateOutcome, document_store
from tests.conftest import HOST_ID, balances, fund, make_tournament_data, solo_join


@pytest.fixture
def file_sessions(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'arena.db'}")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    first, second = factory(), factory()
    yield first, second
    first.close()
    second.close()
    engine.dispose()


class TestConcurrentWrites:

    def test_two_joins_race_for_last_slot(self, file_sessions, ops, monkeypatch):
        db, competitor_db = file_sessions
        tournament = ops.create_tournament(db, HOST_ID, make_tournament_data(max_players=1)).unwrap()
        tournament_id = tournament.id
        fund(db, "user-1", tournament=300)
        fund(db, "user-2", tournament=300)

        original_get = document_store.get
        raced = {"done": False}

        def racing_get(session, model, ident):
            document = original_get(session, model, ident)
            if model is Tournament and session is db and not raced["done"]:
                # user-2 takes the last slot after user-1 has read the tournament
                raced["done"] = True
                ops.join_tournament(competitor_db, tournament_id, "user-2", solo_join(2)).unwrap()
            return document

        monkeypatch.setattr(document_store, "get", racing_get)

        with pytest.raises(CapacityError):
            ops.registration.join_tournament(db, tournament_id, "user-1", solo_join(1))
        monkeypatch.undo()

        final = document_store.get(db, Tournament, tournament_id)
        assert final.filled_spots == 1
        assert final.participant_uids == ["user-2"]
        assert final.current_prize_pool == 100
        assert balances(db, "user-1") == (300, 0, 0)
        assert balances(db, "user-2") == (200, 0, 0)

    def test_atomic_update_reports_conflict(self, file_sessions, ops):
        db, other_db = file_sessions
        tournament_id = ops.create_tournament(db, HOST_ID, make_tournament_data()).unwrap().id

        def rename_elsewhere(tournament):
            other = document_store.get(other_db, Tournament, tournament_id)
            other.name = "Renamed elsewhere"
            other_db.commit()

        def rename(tournament):
            tournament.name = "Renamed here"

        result = document_store.atomic_update(db, Tournament, tournament_id, rename_elsewhere, rename)

        assert result.outcome == UpdateOutcome.CONFLICT
        assert document_store.get(db, Tournament, tournament_id).name == "Renamed elsewhere"

    def test_atomic_update_missing_document(self, file_sessions):
        db, _ = file_sessions
        result = document_store.atomic_update(db, Tournament, "missing", lambda t: None, lambda t: None)
        assert result.outcome == UpdateOutcome.MISSING

    def test_wallet_created_concurrently_is_reread(self, file_sessions, ops, monkeypatch):
        db, competitor_db = file_sessions
        original_get = document_store.get
        raced = {"done": False}

        def racing_get(session, model, ident):
            document = original_get(session, model, ident)
            if model is Wallet and session is db and not raced["done"]:
                # The first deposit creates the wallet after this read saw none
                raced["done"] = True
                fund(competitor_db, "newcomer", tournament=300)
            return document

        monkeypatch.setattr(document_store, "get", racing_get)

        balance = ops.get_wallet_balance(db, "newcomer").unwrap()

        assert balance.tournament_credits == 300
        assert competitor_db.query(Wallet).count() == 1

    def test_wallet_read_gives_up_after_retry(self, file_sessions, ops, monkeypatch):
        db, competitor_db = file_sessions
        fund(competitor_db, "newcomer", tournament=300)
        original_get = document_store.get

        def stale_get(session, model, ident):
            if model is Wallet and session is db:
                return None
            return original_get(session, model, ident)

        monkeypatch.setattr(document_store, "get", stale_get)

        result = ops.get_wallet_balance(db, "newcomer")

        assert not result.success
        assert result.error == ErrorKind.CONCURRENCY
