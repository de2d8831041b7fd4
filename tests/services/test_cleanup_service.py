import threading
from datetime import timedelta

import pytest

from arena.models.tournament import Team, Tournament, TournamentMode, TournamentStatus
from arena.services.cleanup_service import CleanupService
from arena.services.document_store import document_store
from tests.conftest import HOST_ID, START, balances, fund, team_join


def set_ttl(db, tournament_id, ttl):
    document_store.atomic_update(
        db, Tournament, tournament_id, lambda t: None, lambda t: setattr(t, "ttl", ttl)
    )


@pytest.fixture
def cleanup(ops):
    return CleanupService(ops.lifecycle)


class TestExpirySweep:

    def test_deletes_in_batches(self, db, clock, cleanup, create_tournament):
        for index in range(55):
            tournament = create_tournament(name=f"Cup {index}")
            set_ttl(db, tournament.id, clock() - timedelta(minutes=1))

        assert cleanup.sweep_expired(db) == 50
        assert db.query(Tournament).count() == 5
        assert cleanup.sweep_expired(db) == 5
        assert cleanup.sweep_expired(db) == 0

    def test_keeps_tournaments_with_future_ttl(self, db, clock, cleanup, create_tournament):
        keep = create_tournament()
        set_ttl(db, keep.id, clock() + timedelta(seconds=1))
        untouched = create_tournament()

        assert cleanup.sweep_expired(db) == 0
        assert document_store.get(db, Tournament, keep.id) is not None
        assert document_store.get(db, Tournament, untouched.id) is not None

    def test_deletes_teams_of_expired_tournament(self, db, ops, clock, cleanup, create_tournament):
        tournament = create_tournament(mode=TournamentMode.SQUAD)
        fund(db, "user-1", tournament=100)
        ops.join_tournament(db, tournament.id, "user-1", team_join(1, teammates=2)).unwrap()
        ops.cancel_tournament(db, tournament.id, HOST_ID).unwrap()
        clock.advance(minutes=16)

        assert cleanup.sweep_expired(db) == 1
        assert db.query(Team).count() == 0

    def test_ended_without_ttl_expires_after_fallback(self, db, ops, clock, cleanup, create_tournament):
        tournament = create_tournament()
        clock.set(START)
        ops.start_tournament(db, tournament.id, HOST_ID).unwrap()
        ops.end_tournament(db, tournament.id, HOST_ID).unwrap()
        set_ttl(db, tournament.id, None)

        clock.advance(minutes=29)
        assert cleanup.sweep_expired(db) == 0

        clock.advance(minutes=1)
        assert cleanup.sweep_expired(db) == 1
        assert document_store.get(db, Tournament, tournament.id) is None

    def test_stop_token_interrupts_sweep(self, db, clock, cleanup, create_tournament):
        tournament = create_tournament()
        set_ttl(db, tournament.id, clock())
        stop_event = threading.Event()
        stop_event.set()

        assert cleanup.sweep_expired(db, stop_event) == 0
        assert document_store.get(db, Tournament, tournament.id) is not None


class TestTtlBackfill:

    def test_sets_ttl_on_started_window(self, db, clock, cleanup, create_tournament):
        due = create_tournament()
        later = create_tournament(start_date=START + timedelta(days=1))
        clock.set(START + timedelta(minutes=1))

        assert cleanup.backfill_ttl(db) == 1
        assert document_store.get(db, Tournament, due.id).ttl == START + timedelta(hours=2)
        assert document_store.get(db, Tournament, later.id).ttl is None
        assert cleanup.backfill_ttl(db) == 0


class TestMinParticipants:

    def test_cancels_and_refunds_when_short(self, db, ops, clock, sink, cleanup, create_tournament, join_players):
        tournament = create_tournament(min_participants=5)
        user_ids = join_players(tournament.id, 3)
        clock.set(START + timedelta(minutes=2))

        assert cleanup.check_min_participants(db) == 1

        cancelled = document_store.get(db, Tournament, tournament.id)
        assert cancelled.status == TournamentStatus.CANCELLED.value
        assert cancelled.ttl == clock() + timedelta(minutes=15)
        for user_id in user_ids:
            assert balances(db, user_id) == (1000, 0, 0)
        assert cleanup.check_min_participants(db) == 0

    def test_enough_players_is_left_alone(self, db, clock, cleanup, create_tournament, join_players):
        tournament = create_tournament(min_participants=3)
        join_players(tournament.id, 3)
        clock.set(START + timedelta(minutes=1))

        assert cleanup.check_min_participants(db) == 0
        assert document_store.get(db, Tournament, tournament.id).status == TournamentStatus.ACTIVE.value

    def test_outside_lookback_window(self, db, clock, cleanup, create_tournament):
        tournament = create_tournament(min_participants=2)

        clock.set(START - timedelta(minutes=1))
        assert cleanup.check_min_participants(db) == 0
        clock.set(START + timedelta(minutes=6))
        assert cleanup.check_min_participants(db) == 0
        assert document_store.get(db, Tournament, tournament.id).status == TournamentStatus.ACTIVE.value
