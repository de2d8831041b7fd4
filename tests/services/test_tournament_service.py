from datetime import timedelta

import pytest
from pydantic import ValidationError as SchemaValidationError

from arena.core.errors import ErrorKind, InsufficientFundsError, ValidationError
from arena.models.participant import load_participants
from arena.models.tournament import Team, Tournament, TournamentMode, TournamentStatus
from arena.models.wallet import CreditTransaction, TransactionType
from arena.schemas.tournament import TeamUpdate, TeammateInput
from arena.services.document_store import document_store
from tests.conftest import HOST_ID, START, balances, fund, make_tournament_data, player_uid, team_join


class TestCreateTournament:

    def test_create_paid_tournament(self, db, ops, clock, create_tournament):
        tournament = create_tournament()

        assert tournament.status == TournamentStatus.ACTIVE.value
        assert tournament.host_id == HOST_ID
        assert tournament.filled_spots == 0
        assert tournament.current_prize_pool == 0
        assert tournament.ttl is None
        assert tournament.created_at == clock()

    def test_fee_requires_distribution(self, db, ops):
        result = ops.create_tournament(db, HOST_ID, make_tournament_data(prize_distribution={}))

        assert result.error == ErrorKind.VALIDATION

    def test_free_tournament_rejects_percentages(self, db, ops):
        result = ops.create_tournament(db, HOST_ID, make_tournament_data(entry_fee=0))

        assert result.error == ErrorKind.VALIDATION

    def test_manual_pool_only_for_free_tournaments(self, db, ops):
        result = ops.create_tournament(
            db, HOST_ID, make_tournament_data(manual_prize_pool={"first": 100})
        )

        assert result.error == ErrorKind.VALIDATION

    def test_min_participants_above_capacity(self, db, ops):
        result = ops.create_tournament(db, HOST_ID, make_tournament_data(min_participants=11))

        assert result.error == ErrorKind.VALIDATION

    def test_percentages_over_100_rejected_by_schema(self):
        with pytest.raises(SchemaValidationError):
            make_tournament_data(prize_distribution={"first": 80, "second": 30})

    def test_manual_pool_is_funded_from_host_credits(self, db, ops):
        fund(db, HOST_ID, host=1000)

        tournament = ops.create_tournament(db, HOST_ID, make_tournament_data(
            entry_fee=0, prize_distribution={}, manual_prize_pool={"first": 500, "second": 250}
        )).unwrap()

        assert tournament.current_prize_pool == 750
        assert balances(db, HOST_ID) == (0, 250, 0)
        row = db.query(CreditTransaction).filter_by(
            type=TransactionType.MANUAL_PRIZE_POOL_FUNDING.value
        ).one()
        assert row.amount == -750
        assert row.transaction_details["tournamentId"] == tournament.id

    def test_unfunded_manual_pool_creates_nothing(self, db, ops):
        fund(db, HOST_ID, host=100)

        with pytest.raises(InsufficientFundsError):
            ops.tournaments.create_tournament(db, HOST_ID, make_tournament_data(
                entry_fee=0, prize_distribution={}, manual_prize_pool={"first": 500}
            ))

        assert db.query(Tournament).count() == 0
        assert balances(db, HOST_ID) == (0, 100, 0)

    def test_list_filters_by_status_and_host(self, db, ops, create_tournament):
        create_tournament()
        create_tournament(start_date=START + timedelta(days=1))
        other = create_tournament(host_id="host-2")
        ops.cancel_tournament(db, other.id, "host-2").unwrap()

        active = ops.tournaments.list_tournaments(db, status=TournamentStatus.ACTIVE.value)
        mine = ops.tournaments.list_tournaments(db, host_id=HOST_ID)

        assert active.total_count == 2
        assert active.tournaments[0].start_date == START + timedelta(days=1)
        assert mine.total_count == 2

    def test_get_missing_tournament(self, db, ops):
        assert ops.get_tournament(db, "missing").error == ErrorKind.NOT_FOUND


class TestUpdateTeam:

    @pytest.fixture
    def squad(self, db, ops, create_tournament):
        tournament = create_tournament(mode=TournamentMode.SQUAD)
        fund(db, "user-1", tournament=100)
        ops.join_tournament(db, tournament.id, "user-1", team_join(1, teammates=1)).unwrap()
        team = db.query(Team).one()
        return tournament, team

    def test_leader_renames_and_adds_members(self, db, ops, squad):
        tournament, team = squad
        members = [TeammateInput(ign=f"recruit_{n}", uid=f"3000000{n}") for n in range(3)]

        updated = ops.update_team(
            db, team.id, "user-1", TeamUpdate(name="Day Walkers", members=members)
        ).unwrap()

        assert updated.name == "Day Walkers"
        assert len(updated.members) == 4
        participant = load_participants(document_store.get(db, Tournament, tournament.id).participants)[0]
        assert participant.team_name == "Day Walkers"
        assert [m.ign for m in participant.members][1:] == ["recruit_0", "recruit_1", "recruit_2"]
        assert participant.winner_uid == team.members[0]["uid"]

    def test_cannot_add_game_uid_registered_by_another_team(self, db, ops, squad):
        tournament, team = squad
        fund(db, "user-2", tournament=100)
        ops.join_tournament(db, tournament.id, "user-2", team_join(2, teammates=1, name="Early Birds")).unwrap()
        rival = db.query(Team).filter(Team.leader_id == "user-2").one()
        taken_uid = rival.members[1]["uid"]

        result = ops.update_team(
            db, team.id, "user-1", TeamUpdate(members=[TeammateInput(ign="impostor", uid=taken_uid)])
        )

        assert result.error == ErrorKind.DUPLICATE_PARTICIPANT
        unchanged = document_store.get(db, Team, team.id)
        assert [m["uid"] for m in unchanged.members] == [player_uid(1), "20000010"]

    def test_keeping_own_members_is_not_a_duplicate(self, db, ops, squad):
        _, team = squad
        own_mate = TeammateInput(ign="mate_renamed", uid=team.members[1]["uid"])

        updated = ops.update_team(db, team.id, "user-1", TeamUpdate(members=[own_mate])).unwrap()

        assert updated.members[1]["ign"] == "mate_renamed"

    def test_only_leader_can_edit(self, db, ops, squad):
        _, team = squad

        result = ops.update_team(db, team.id, "user-2", TeamUpdate(name="Hijacked"))

        assert result.error == ErrorKind.AUTHORIZATION

    def test_size_rule_applies(self, db, ops, squad):
        _, team = squad
        members = [TeammateInput(ign=f"recruit_{n}", uid=f"3000000{n}") for n in range(4)]

        with pytest.raises(ValidationError):
            ops.tournaments.update_team(db, team.id, "user-1", TeamUpdate(members=members))

    def test_locked_after_start(self, db, ops, clock, squad):
        tournament, team = squad
        clock.set(START)
        ops.start_tournament(db, tournament.id, HOST_ID).unwrap()

        result = ops.update_team(db, team.id, "user-1", TeamUpdate(tag="NEW"))

        assert result.error == ErrorKind.STATE
