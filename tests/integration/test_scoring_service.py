"""
Integration tests for the scoring pass and the standings built on it.

Every test runs on both storage backends.
"""

import pytest

from pickem.errors import NotParticipant, ValidationError


@pytest.fixture
def league(seed):
    """
    Week one: KC beats BUF, PHI ties DAL. Week two: KC vs PHI, not played.
    Ann, Bob and Cy play in a weekly pool owned by Ann.
    """
    season = seed.season()
    kc, buf, phi, dal = seed.teams("KC", "BUF", "PHI", "DAL")
    ann = seed.user("Ann")
    bob = seed.user("Bob")
    cy = seed.user("Cy")
    pool = seed.pool(ann)
    seed.join(pool, bob)
    seed.join(pool, cy)
    return {
        "season": season,
        "kc": kc,
        "buf": buf,
        "phi": phi,
        "dal": dal,
        "ann": ann,
        "bob": bob,
        "cy": cy,
        "pool": pool,
        "win": seed.game(season, 1, kc, buf),
        "tie": seed.game(season, 1, phi, dal),
        "later": seed.game(season, 2, kc, phi),
    }


def _flags(services, pool):
    return {
        (p["user_id"], p["scheduled_game_id"]): p["is_correct"]
        for p in services.repositories.picks.list(pool_id=pool["id"])
    }


class TestScoreWeek:
    def test_marks_picks_on_final_games(self, seed, services, league):
        ann_pick = seed.pick(league["ann"], league["pool"], league["win"], league["kc"])
        bob_pick = seed.pick(league["bob"], league["pool"], league["win"], league["buf"])
        later = seed.pick(league["ann"], league["pool"], league["later"], league["kc"])
        seed.finish(league["win"], 31, 17)

        summary = services.scoring.score_week(league["season"]["id"], 1)

        assert summary.updated_picks == 2
        assert summary.completed_games == 1
        picks = services.repositories.picks
        assert picks.get(ann_pick["id"])["is_correct"] is True
        assert picks.get(bob_pick["id"])["is_correct"] is False
        assert picks.get(later["id"])["is_correct"] is None

    def test_rerun_is_idempotent(self, seed, services, league):
        seed.pick(league["ann"], league["pool"], league["win"], league["kc"])
        seed.pick(league["bob"], league["pool"], league["win"], league["buf"])
        seed.finish(league["win"], 31, 17)

        first = services.scoring.score_week(league["season"]["id"], 1)
        flags = _flags(services, league["pool"])
        second = services.scoring.score_week(league["season"]["id"], 1)

        assert second.to_dict() == first.to_dict()
        assert _flags(services, league["pool"]) == flags

    def test_tie_leaves_picks_unresolved(self, seed, services, league):
        pick = seed.pick(league["ann"], league["pool"], league["tie"], league["phi"])
        seed.finish(league["tie"], 20, 20)

        summary = services.scoring.score_week(league["season"]["id"], 1)

        assert summary.completed_games == 1
        assert services.repositories.picks.get(pick["id"])["is_correct"] is None

    def test_score_correction_flips_result(self, seed, services, league):
        pick = seed.pick(league["ann"], league["pool"], league["win"], league["kc"])
        seed.finish(league["win"], 31, 17)
        services.scoring.score_week(league["season"]["id"], 1)

        seed.finish(league["win"], 17, 31)
        services.scoring.score_week(league["season"]["id"], 1)

        assert services.repositories.picks.get(pick["id"])["is_correct"] is False

    def test_pool_filter(self, seed, services, league):
        other = seed.pool(league["bob"], name="Other")
        seed.pick(league["ann"], league["pool"], league["win"], league["kc"])
        mine = seed.pick(league["bob"], other, league["win"], league["kc"])
        seed.finish(league["win"], 31, 17)

        summary = services.scoring.score_week(
            league["season"]["id"], 1, pool_id=other["id"]
        )

        assert summary.updated_picks == 1
        assert services.repositories.picks.get(mine["id"])["is_correct"] is True

    def test_score_weeks_skips_invalid_weeks(self, seed, services, league):
        seed.finish(league["win"], 31, 17)

        result = services.scoring.score_weeks(league["season"]["id"], [0, 1, 2])

        assert [summary.week for summary in result["results"]] == [1, 2]
        assert result["errors"] == []


class TestPoolStandings:
    def test_ordering_and_pending_picks(self, seed, services, league):
        pool = league["pool"]
        # Ann: 1 correct of 2 (one pending); Bob: 1 of 1; Cy: no picks
        seed.pick(league["ann"], pool, league["win"], league["kc"])
        seed.pick(league["ann"], pool, league["later"], league["kc"])
        seed.pick(league["bob"], pool, league["win"], league["kc"])
        seed.finish(league["win"], 31, 17)
        services.scoring.score_week(league["season"]["id"], 1)

        rows = services.scoring.pool_standings(pool["id"], league["cy"])

        assert [row["first_name"] for row in rows] == ["Bob", "Ann", "Cy"]
        ann = rows[1]
        assert ann["total_picks"] == 2
        assert ann["pending_picks"] == 1
        assert ann["pick_percentage"] == 50.0
        assert rows[2]["pick_percentage"] == 0.0

    def test_week_window(self, seed, services, league):
        seed.pick(league["ann"], league["pool"], league["win"], league["kc"])
        seed.pick(league["ann"], league["pool"], league["later"], league["kc"])

        rows = services.scoring.pool_standings(league["pool"]["id"], league["ann"], week=2)

        assert rows[0]["total_picks"] == 1

    def test_requires_membership(self, seed, services, league):
        with pytest.raises(NotParticipant):
            services.scoring.pool_standings(league["pool"]["id"], seed.user("Stranger"))

    def test_weekly_pool_has_no_survivor_view(self, services, league):
        with pytest.raises(ValidationError):
            services.scoring.survivor_standings(league["pool"]["id"], league["ann"])


class TestSurvivorStandings:
    @pytest.fixture
    def survivor(self, seed, league):
        pool = seed.pool(league["ann"], mode="survivor", name="Survivor")
        seed.join(pool, league["bob"])
        seed.join(pool, league["cy"])
        return pool

    def test_everyone_alive_until_a_game_is_final(self, seed, services, league, survivor):
        seed.pick(league["bob"], survivor, league["win"], league["buf"])

        rows = services.scoring.survivor_standings(survivor["id"], league["ann"])

        assert {row["status"] for row in rows} == {"alive"}
        assert all(row["elimination_week"] is None for row in rows)

    def test_losers_eliminated_and_listed_last(self, seed, services, league, survivor):
        seed.pick(league["ann"], survivor, league["win"], league["kc"])
        seed.pick(league["bob"], survivor, league["win"], league["buf"])
        seed.pick(league["cy"], survivor, league["tie"], league["phi"])
        seed.finish(league["win"], 31, 17)
        seed.finish(league["tie"], 10, 10)
        services.scoring.score_week(league["season"]["id"], 1)

        rows = services.scoring.survivor_standings(survivor["id"], league["ann"])

        assert [(row["first_name"], row["status"]) for row in rows] == [
            ("Ann", "alive"),
            ("Cy", "alive"),
            ("Bob", "eliminated"),
        ]
        assert rows[2]["elimination_week"] == 1

    def test_pool_standings_carry_survivor_columns(self, seed, services, league, survivor):
        rows = services.scoring.pool_standings(survivor["id"], league["ann"])

        assert all("status" in row and "elimination_week" in row for row in rows)


class TestWeeklyStandings:
    def _play_week_one(self, seed, services, league):
        pool = league["pool"]
        seed.pick(league["ann"], pool, league["win"], league["kc"], tiebreaker=40)
        seed.pick(league["bob"], pool, league["win"], league["kc"], tiebreaker=44)
        seed.pick(league["cy"], pool, league["win"], league["buf"])
        seed.finish(league["win"], 31, 17)
        services.scoring.score_week(league["season"]["id"], 1)

    def test_refresh_writes_ranked_rows(self, seed, services, league):
        self._play_week_one(seed, services, league)

        written = services.scoring.refresh_weekly_standings(league["season"]["id"], 1)
        rows = services.scoring.weekly_standings(league["pool"]["id"], league["ann"], week=1)

        assert written == 3
        assert [(row["first_name"], row["rank"]) for row in rows] == [
            ("Ann", 1),
            ("Bob", 1),
            ("Cy", 3),
        ]
        assert rows[0]["tiebreaker"] == 40
        assert rows[2]["tiebreaker"] is None
        assert rows[2]["pick_percentage"] == 0.0

    def test_refresh_overwrites(self, seed, services, league):
        self._play_week_one(seed, services, league)
        services.scoring.refresh_weekly_standings(league["season"]["id"], 1)

        seed.finish(league["win"], 17, 31)
        services.scoring.score_week(league["season"]["id"], 1)
        services.scoring.refresh_weekly_standings(league["season"]["id"], 1)

        rows = services.scoring.weekly_standings(league["pool"]["id"], league["ann"], week=1)
        assert len(rows) == 3
        assert rows[0]["first_name"] == "Cy"
        assert rows[0]["correct_picks"] == 1

    def test_pick_stats(self, seed, services, league):
        self._play_week_one(seed, services, league)

        stats = services.scoring.picks_stats(league["pool"]["id"], week=1)

        assert stats["total_picks"] == 3
        assert stats["correct_picks"] == 2
        assert stats["incorrect_picks"] == 1


class TestSurvivorWeekOne:
    def test_two_winners_stay_alive(self, seed, services):
        season = seed.season()
        a, b, c, d = seed.teams("AAA", "BBB", "CCC", "DDD")
        g1 = seed.game(season, 1, a, b)
        g2 = seed.game(season, 1, d, c)
        u1 = seed.user("Uno")
        u2 = seed.user("Dos")
        pool = seed.pool(u1, mode="survivor")
        seed.join(pool, u2)
        p1 = seed.pick(u1, pool, g1, a)
        p2 = seed.pick(u2, pool, g2, d)
        seed.finish(g1, 24, 10)
        seed.finish(g2, 17, 14)

        summary = services.scoring.score_week(season["id"], 1)

        assert summary.updated_picks == 2
        picks = services.repositories.picks
        assert picks.get(p1["id"])["is_correct"] is True
        assert picks.get(p2["id"])["is_correct"] is True

        rows = services.scoring.pool_standings(pool["id"], u1, season_id=season["id"], week=1)
        summary_rows = [
            (
                row["first_name"],
                row["correct_picks"],
                row["total_picks"],
                row["pick_percentage"],
                row["status"],
            )
            for row in rows
        ]
        assert summary_rows == [("Uno", 1, 1, 100.0, "alive"), ("Dos", 1, 1, 100.0, "alive")]
