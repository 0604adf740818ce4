"""
Unit tests for the score sync scheduler.

Ticks are driven by hand with an explicit ``now``; the APScheduler job
itself is never started.
"""

from datetime import datetime, timezone

import pytest

from pickem import cache
from pickem.errors import ScoreProviderError
from pickem.services import ScoreUpdate, StaticScoreProvider, get_services

# Sunday 2025-09-07, 17:00 in New York
IN_WINDOW = datetime(2025, 9, 7, 21, 0, tzinfo=timezone.utc)


class BrokenProvider:
    def fetch_scores(self, season, week):
        raise ScoreProviderError("feed down")


@pytest.fixture
def scheduler(kv_app):
    return get_services().scheduler


@pytest.fixture
def cached_client(kv_app):
    """Test client on an app whose route cache actually stores responses"""
    cache.init_app(kv_app, config={"CACHE_TYPE": "SimpleCache"})
    return kv_app.test_client()


@pytest.fixture
def week_one(kv_seed):
    """One pool, one player and a pending pick on a week-one game"""
    season = kv_seed.season()
    home, away = kv_seed.teams("KC", "BUF")
    game = kv_seed.game(
        season,
        1,
        home,
        away,
        start_time=datetime(2025, 9, 7, 17, 0, tzinfo=timezone.utc),
        external_id="401",
    )
    owner = kv_seed.user("Ann")
    pool = kv_seed.pool(owner)
    pick = kv_seed.pick(owner, pool, game, home)
    return {"season": season, "game": game, "pick": pick, "pool": pool}


class TestGameWindow:
    @pytest.mark.parametrize(
        "moment",
        [
            IN_WINDOW,
            datetime(2025, 9, 8, 17, 0, tzinfo=timezone.utc),  # Monday 13:00 ET
            datetime(2026, 1, 4, 23, 30, tzinfo=timezone.utc),  # January Sunday
        ],
    )
    def test_inside(self, scheduler, moment):
        assert scheduler.is_game_window(moment)

    @pytest.mark.parametrize(
        "moment",
        [
            datetime(2025, 9, 9, 21, 0, tzinfo=timezone.utc),  # Tuesday
            datetime(2025, 9, 7, 15, 0, tzinfo=timezone.utc),  # Sunday 11:00 ET
            datetime(2025, 7, 6, 21, 0, tzinfo=timezone.utc),  # July
        ],
    )
    def test_outside(self, scheduler, moment):
        assert not scheduler.is_game_window(moment)


class TestTick:
    def test_outside_window_does_nothing(self, scheduler):
        result = scheduler.run_tick(now=datetime(2025, 9, 9, 21, 0, tzinfo=timezone.utc))

        assert result == {"status": "outside_window"}
        assert scheduler.stats["total_ticks"] == 0

    def test_skips_while_previous_tick_runs(self, scheduler):
        scheduler._tick_lock.acquire()
        try:
            result = scheduler.run_tick(now=IN_WINDOW)
        finally:
            scheduler._tick_lock.release()

        assert result == {"status": "skipped"}
        assert scheduler.stats["skipped_ticks"] == 1

    def test_no_current_season(self, scheduler):
        result = scheduler.run_tick(now=IN_WINDOW)

        assert result == {"status": "no_season"}
        assert scheduler.stats["total_ticks"] == 1

    def test_syncs_scores_and_scores_picks(self, scheduler, week_one):
        scheduler.score_provider = StaticScoreProvider(
            {
                1: [
                    ScoreUpdate(
                        external_id="401", home_score=27, away_score=20, status="STATUS_FINAL"
                    )
                ]
            }
        )

        result = scheduler.run_tick(now=IN_WINDOW)

        assert result["status"] == "ok"
        assert result["week"] == 1
        assert result["games_updated"] == 1
        assert result["picks_updated"] == 1
        assert result["standings_written"] == 1
        assert result["errors"] == []

        repositories = get_services().repositories
        assert repositories.picks.get(week_one["pick"]["id"])["is_correct"] is True
        standing = repositories.standings.get_by(pool_id=week_one["pool"]["id"], week=1)
        assert standing["correct_picks"] == 1
        assert standing["rank"] == 1

    def test_tick_refreshes_cached_schedule(self, scheduler, week_one, cached_client):
        url = f"/api/seasons/{week_one['season']['id']}/games?week=1"
        before = cached_client.get(url).get_json()
        scheduler.score_provider = StaticScoreProvider(
            {
                1: [
                    ScoreUpdate(
                        external_id="401", home_score=24, away_score=10, status="STATUS_FINAL"
                    )
                ]
            }
        )

        scheduler.run_tick(now=IN_WINDOW)
        after = cached_client.get(url).get_json()

        assert before[0]["status"] == "STATUS_SCHEDULED"
        assert (after[0]["status"], after[0]["home_score"]) == ("STATUS_FINAL", 24)

    def test_forced_tick_runs_outside_window(self, scheduler, week_one):
        scheduler.score_provider = StaticScoreProvider()

        result = scheduler.run_tick(
            now=datetime(2025, 9, 9, 21, 0, tzinfo=timezone.utc), force=True
        )

        assert result["status"] == "ok"
        assert result["games_updated"] == 0

    def test_failures_are_counted_not_raised(self, scheduler, week_one):
        scheduler.score_provider = BrokenProvider()

        result = scheduler.run_tick(now=IN_WINDOW)

        assert result["status"] == "failed"
        assert scheduler.stats["failed_ticks"] == 1
        assert "feed down" in scheduler.stats["last_error"]

    def test_status_report(self, scheduler):
        status = scheduler.get_status()

        assert status["is_running"] is False
        assert status["jobs"] == []
        assert set(status["stats"]) >= {"total_ticks", "skipped_ticks", "failed_ticks"}
