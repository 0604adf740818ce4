"""
Integration tests for pick submission and deletion.

Every test runs on both storage backends.
"""

from datetime import timedelta

import pytest

from pickem.errors import (
    AccessDenied,
    DuplicateSurvivorTeam,
    GameAlreadyStarted,
    GameNotFound,
    NotParticipant,
    PickNotFound,
    PoolNotFound,
    RepositoryError,
    TeamNotInGame,
    ValidationError,
)

from conftest import NOW


@pytest.fixture
def world(seed):
    """A season with three teams and games in weeks one and two"""
    season = seed.season()
    kc, buf, phi = seed.teams("KC", "BUF", "PHI")
    owner = seed.user("Owner")
    player = seed.user("Player")
    return {
        "season": season,
        "kc": kc,
        "buf": buf,
        "phi": phi,
        "owner": owner,
        "player": player,
        "game1": seed.game(season, 1, kc, buf),
        "game1b": seed.game(season, 1, phi, buf, start_time=NOW + timedelta(hours=8)),
        "game2": seed.game(season, 2, kc, phi),
    }


@pytest.fixture
def weekly(seed, world):
    pool = seed.pool(world["owner"])
    seed.join(pool, world["player"])
    return pool


@pytest.fixture
def survivor(seed, world):
    pool = seed.pool(world["owner"], mode="survivor", name="Last One Standing")
    seed.join(pool, world["player"])
    return pool


class TestWeeklyPicks:
    def test_create_then_update(self, services, world, weekly):
        picks = services.picks
        first = picks.submit_pick(
            world["player"], weekly["id"], world["game1"]["id"], world["kc"]["id"], now=NOW
        )
        second = picks.submit_pick(
            world["player"],
            weekly["id"],
            world["game1"]["id"],
            world["buf"]["id"],
            tiebreaker=45,
            now=NOW,
        )

        assert first.created is True
        assert second.created is False
        assert second.pick["id"] == first.pick["id"]
        assert second.pick["team_id"] == world["buf"]["id"]
        assert second.pick["tiebreaker"] == 45
        assert services.repositories.picks.count(pool_id=weekly["id"]) == 1

    def test_pick_denormalizes_week_and_season(self, seed, world, weekly):
        pick = seed.pick(world["player"], weekly, world["game2"], world["phi"])

        assert pick["week"] == 2
        assert pick["season_id"] == world["season"]["id"]
        assert pick["is_correct"] is None

    def test_kickoff_is_the_deadline(self, services, world, weekly):
        kickoff = world["game1"]["start_time"]
        args = (world["player"], weekly["id"], world["game1"]["id"], world["kc"]["id"])

        assert services.picks.submit_pick(*args, now=kickoff - timedelta(seconds=1)).created
        with pytest.raises(GameAlreadyStarted):
            services.picks.submit_pick(*args, now=kickoff)

    def test_team_must_play_in_game(self, services, world, weekly):
        with pytest.raises(TeamNotInGame):
            services.picks.submit_pick(
                world["player"], weekly["id"], world["game1"]["id"], world["phi"]["id"], now=NOW
            )

    def test_unknown_pool_and_game(self, services, world, weekly):
        with pytest.raises(PoolNotFound):
            services.picks.submit_pick(
                world["player"], "missing", world["game1"]["id"], world["kc"]["id"], now=NOW
            )
        with pytest.raises(GameNotFound):
            services.picks.submit_pick(
                world["player"], weekly["id"], "missing", world["kc"]["id"], now=NOW
            )

    def test_only_participants_pick(self, seed, services, world, weekly):
        outsider = seed.user("Outsider")
        admin = seed.user("Admin", admin=True)

        for user in (outsider, admin):
            with pytest.raises(NotParticipant):
                services.picks.submit_pick(
                    user, weekly["id"], world["game1"]["id"], world["kc"]["id"], now=NOW
                )

    def test_game_must_belong_to_pool_season(self, seed, services, world, weekly):
        other = seed.season("2026", current=False)
        game = seed.game(other, 1, world["kc"], world["buf"])

        with pytest.raises(ValidationError):
            services.picks.submit_pick(
                world["player"], weekly["id"], game["id"], world["kc"]["id"], now=NOW
            )

    @pytest.mark.parametrize("tiebreaker", [-1, "many", True])
    def test_invalid_tiebreaker(self, services, world, weekly, tiebreaker):
        with pytest.raises(ValidationError):
            services.picks.submit_pick(
                world["player"],
                weekly["id"],
                world["game1"]["id"],
                world["kc"]["id"],
                tiebreaker=tiebreaker,
                now=NOW,
            )

    def test_weekly_pool_allows_team_reuse(self, seed, world, weekly):
        seed.pick(world["player"], weekly, world["game1"], world["kc"])
        pick = seed.pick(world["player"], weekly, world["game2"], world["kc"])

        assert pick["week"] == 2


class TestSurvivorPicks:
    def test_team_cannot_be_reused_in_another_week(self, seed, services, world, survivor):
        seed.pick(world["player"], survivor, world["game1"], world["kc"])

        with pytest.raises(DuplicateSurvivorTeam):
            services.picks.submit_pick(
                world["player"], survivor["id"], world["game2"]["id"], world["kc"]["id"], now=NOW
            )

        other = services.picks.submit_pick(
            world["player"], survivor["id"], world["game2"]["id"], world["phi"]["id"], now=NOW
        )
        assert other.created

    def test_other_players_keep_their_own_teams(self, seed, world, survivor):
        seed.pick(world["player"], survivor, world["game1"], world["kc"])
        pick = seed.pick(world["owner"], survivor, world["game2"], world["kc"])

        assert pick["team_id"] == world["kc"]["id"]

    def test_changing_team_on_same_game(self, seed, services, world, survivor):
        first = seed.pick(world["player"], survivor, world["game1"], world["kc"])

        result = services.picks.submit_pick(
            world["player"], survivor["id"], world["game1"]["id"], world["buf"]["id"], now=NOW
        )

        assert result.created is False
        assert result.pick["id"] == first["id"]
        assert result.replaced_pick_id is None

    def test_repick_another_game_replaces_week_pick(self, seed, services, world, survivor):
        first = seed.pick(world["player"], survivor, world["game1"], world["kc"])

        result = services.picks.submit_pick(
            world["player"], survivor["id"], world["game1b"]["id"], world["phi"]["id"], now=NOW
        )

        assert result.created is True
        assert result.replaced_pick_id == first["id"]
        week_picks = services.repositories.picks.list(
            pool_id=survivor["id"], user_id=world["player"]["id"], week=1
        )
        assert [p["id"] for p in week_picks] == [result.pick["id"]]
        # The replaced team is free again
        assert services.picks.used_teams(survivor["id"], world["player"]) == [world["phi"]["id"]]

    def test_failed_repick_keeps_week_pick(self, seed, services, world, survivor, monkeypatch):
        first = seed.pick(world["player"], survivor, world["game1"], world["kc"])

        def failing_create(data):
            raise RepositoryError("write failed")

        monkeypatch.setattr(services.repositories.picks, "create", failing_create)
        with pytest.raises(RepositoryError):
            services.picks.submit_pick(
                world["player"], survivor["id"], world["game1b"]["id"], world["phi"]["id"], now=NOW
            )

        assert services.repositories.picks.get(first["id"])["team_id"] == world["kc"]["id"]

    def test_repick_refused_once_old_game_started(self, seed, services, world, survivor):
        seed.pick(world["player"], survivor, world["game1"], world["kc"])
        between = world["game1"]["start_time"] + timedelta(minutes=30)

        with pytest.raises(GameAlreadyStarted):
            services.picks.submit_pick(
                world["player"],
                survivor["id"],
                world["game1b"]["id"],
                world["phi"]["id"],
                now=between,
            )


class TestDeletePick:
    def test_owner_deletes_before_kickoff(self, seed, services, world, weekly):
        pick = seed.pick(world["player"], weekly, world["game1"], world["kc"])

        services.picks.delete_pick(pick["id"], world["player"], now=NOW)

        assert services.repositories.picks.get(pick["id"]) is None

    def test_admin_may_delete_others(self, seed, services, world, weekly):
        pick = seed.pick(world["player"], weekly, world["game1"], world["kc"])
        admin = seed.user("Admin", admin=True)

        services.picks.delete_pick(pick["id"], admin, now=NOW)

        assert services.repositories.picks.get(pick["id"]) is None

    def test_other_users_cannot_delete(self, seed, services, world, weekly):
        pick = seed.pick(world["player"], weekly, world["game1"], world["kc"])

        with pytest.raises(AccessDenied):
            services.picks.delete_pick(pick["id"], world["owner"], now=NOW)

    def test_locked_after_kickoff(self, seed, services, world, weekly):
        pick = seed.pick(world["player"], weekly, world["game1"], world["kc"])

        with pytest.raises(GameAlreadyStarted):
            services.picks.delete_pick(
                pick["id"], world["player"], now=world["game1"]["start_time"]
            )

    def test_missing_pick(self, services, world):
        with pytest.raises(PickNotFound):
            services.picks.delete_pick("missing", world["player"], now=NOW)


class TestListPicks:
    def test_enriched_and_in_kickoff_order(self, seed, services, world, weekly):
        seed.pick(world["player"], weekly, world["game2"], world["phi"])
        seed.pick(world["player"], weekly, world["game1"], world["kc"])

        rows = services.picks.list_picks(world["player"], pool_id=weekly["id"])

        assert [row["week"] for row in rows] == [1, 2]
        assert rows[0]["pick_team_code"] == "KC"
        assert rows[0]["home_team_code"] == "KC"
        assert rows[0]["away_team_code"] == "BUF"
        assert rows[0]["game_status"] == "STATUS_SCHEDULED"

    def test_week_filter(self, seed, services, world, weekly):
        seed.pick(world["player"], weekly, world["game1"], world["kc"])
        seed.pick(world["player"], weekly, world["game2"], world["phi"])

        rows = services.picks.list_picks(world["player"], pool_id=weekly["id"], week=2)

        assert [row["pick_team_code"] for row in rows] == ["PHI"]

    def test_fellow_participant_may_look(self, seed, services, world, weekly):
        seed.pick(world["player"], weekly, world["game1"], world["kc"])

        rows = services.picks.list_picks(
            world["owner"], pool_id=weekly["id"], user_id=world["player"]["id"]
        )

        assert len(rows) == 1

    def test_strangers_may_not_look(self, seed, services, world, weekly):
        outsider = seed.user("Outsider")

        with pytest.raises(AccessDenied):
            services.picks.list_picks(outsider, user_id=world["player"]["id"])
        with pytest.raises(NotParticipant):
            services.picks.list_picks(
                outsider, pool_id=weekly["id"], user_id=world["player"]["id"]
            )

    def test_team_stats(self, seed, services, world, survivor):
        seed.pick(world["player"], survivor, world["game1"], world["kc"])
        seed.pick(world["owner"], survivor, world["game1"], world["kc"])

        stats = services.picks.team_stats(survivor["id"], world["owner"], week=1)

        assert stats == [
            {
                "team_id": world["kc"]["id"],
                "team_code": "KC",
                "team_name": "Team KC",
                "pick_count": 2,
                "percentage": 100.0,
            }
        ]
