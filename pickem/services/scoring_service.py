"""
Scoring pass and standings

``score_week`` writes pick correctness from final game results; the
standings methods aggregate those flags per pool. Writes happen only in the
scoring pass and in the weekly standings refresh.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Optional

from pickem.errors import PickemError, RepositoryError, ValidationError
from pickem.services.access import load_pool, require_participant
from pickem.utils.scoring import (
    aggregate_standings,
    determine_winner,
    is_final_status,
    latest_tiebreaker,
    rank_standings,
    sort_survivor_standings,
    summarize_picks,
)

logger = logging.getLogger(__name__)


@dataclass
class ScoringSummary:
    updated_picks: int
    completed_games: int
    week: Optional[int] = None

    def to_dict(self):
        return asdict(self)


class ScoringService:
    def __init__(self, repositories):
        self.games = repositories.games
        self.picks = repositories.picks
        self.pools = repositories.pools
        self.participants = repositories.participants
        self.standings = repositories.standings
        self.users = repositories.users

    def score_week(self, season_id, week=None, pool_id=None):
        """
        Write ``is_correct`` on every pick whose game is final.

        Re-running on unchanged scores writes the same flags again. A pick
        that fails to save is logged and skipped.
        """
        games = self.games.list_for_week(season_id, week)
        completed = [game for game in games if is_final_status(game.get("status"))]

        updated = 0
        for game in completed:
            winner = determine_winner(game)
            if winner is None:
                logger.info(f"Game {game['id']} ended tied, picks stay unresolved")

            criteria = {"scheduled_game_id": game["id"]}
            if pool_id:
                criteria["pool_id"] = pool_id

            for pick in self.picks.list(**criteria):
                is_correct = None if winner is None else pick["team_id"] == winner
                try:
                    self.picks.update(pick["id"], {"is_correct": is_correct})
                    updated += 1
                except RepositoryError as e:
                    logger.error(f"Failed to score pick {pick['id']}: {e}")

        logger.info(
            f"Scored season {season_id} week {week if week is not None else 'all'}: "
            f"{updated} picks across {len(completed)} completed games"
        )
        return ScoringSummary(updated_picks=updated, completed_games=len(completed), week=week)

    def score_weeks(self, season_id, weeks, pool_id=None):
        """
        Score several weeks; a failing week is recorded and the rest still run.

        Returns:
            dict: ``results`` (one summary per scored week) and ``errors``
        """
        results = []
        errors = []
        for week in weeks:
            if week is None or week < 1:
                continue
            try:
                results.append(self.score_week(season_id, week, pool_id=pool_id))
            except PickemError as e:
                logger.error(f"Scoring week {week} of season {season_id} failed: {e}")
                errors.append({"week": week, "error": str(e)})
        return {"results": results, "errors": errors}

    def _window(self, pool, season_id=None, week=None):
        """Picks and games in a pool's evaluation window"""
        season_id = season_id or pool["season_id"]
        criteria = {"pool_id": pool["id"], "season_id": season_id}
        if week is not None:
            criteria["week"] = week
        picks = self.picks.list(**criteria)
        games = self.games.list_for_week(season_id, week)
        return picks, games

    def _users(self, participants):
        if not participants:
            return {}
        ids = list({p["user_id"] for p in participants})
        return {user["id"]: user for user in self.users.list(id=ids)}

    def pool_standings(self, pool_id, user, season_id=None, week=None):
        """
        One row per participant, most correct picks first. Survivor pools
        also report ``status`` and ``elimination_week``.
        """
        pool = load_pool(self.pools, pool_id)
        require_participant(self.participants, pool, user)
        return self._standings(pool, season_id, week)

    def _standings(self, pool, season_id=None, week=None):
        picks, games = self._window(pool, season_id, week)
        participants = self.participants.list(pool_id=pool["id"])
        survivor = pool["mode"] == "survivor"
        return aggregate_standings(
            participants,
            self._users(participants),
            picks,
            survivor=survivor,
            evaluation_started=any(is_final_status(g.get("status")) for g in games),
        )

    def survivor_standings(self, pool_id, user, week=None):
        """Alive players first, then eliminated players, latest elimination first"""
        pool = load_pool(self.pools, pool_id)
        require_participant(self.participants, pool, user)
        if pool["mode"] != "survivor":
            raise ValidationError("This pool is not a survivor pool")
        return sort_survivor_standings(self._standings(pool, week=week))

    def refresh_weekly_standings(self, season_id, week, pool_id=None):
        """
        Recompute the cached standings of one week for every pool in a
        season (or just ``pool_id``).

        Returns:
            int: standing rows written
        """
        pools = [self.pools.get(pool_id)] if pool_id else self.pools.list(season_id=season_id)
        written = 0
        for pool in pools:
            if pool is None:
                continue
            participants = self.participants.list(pool_id=pool["id"])
            picks = self.picks.list(pool_id=pool["id"], season_id=season_id, week=week)
            picks_by_user = {}
            for pick in picks:
                picks_by_user.setdefault(pick["user_id"], []).append(pick)

            rows = aggregate_standings(participants, {}, picks)
            for row in rank_standings(rows):
                self.standings.upsert(
                    row["user_id"],
                    pool["id"],
                    season_id,
                    week,
                    {
                        "correct_picks": row["correct_picks"],
                        "total_picks": row["total_picks"],
                        "pick_percentage": row["pick_percentage"],
                        "rank": row["rank"],
                        "tiebreaker": latest_tiebreaker(picks_by_user.get(row["user_id"], [])),
                    },
                )
                written += 1

        logger.info(f"Refreshed {written} weekly standings for season {season_id} week {week}")
        return written

    def weekly_standings(self, pool_id, user, season_id=None, week=None):
        """Cached standings rows with user names, by week then rank"""
        pool = load_pool(self.pools, pool_id)
        require_participant(self.participants, pool, user)

        criteria = {"pool_id": pool_id, "season_id": season_id or pool["season_id"]}
        if week is not None:
            criteria["week"] = week
        rows = self.standings.list(**criteria)
        users = self._users(rows)

        result = []
        for row in rows:
            member = users.get(row["user_id"]) or {}
            result.append(
                dict(row, first_name=member.get("first_name"), last_name=member.get("last_name"))
            )
        return sorted(result, key=lambda r: (r["week"], r["rank"] or 0))

    def picks_stats(self, pool_id, season_id=None, week=None):
        """Pool-wide pick counts (used by the admin scoring report)"""
        pool = load_pool(self.pools, pool_id)
        picks, _ = self._window(pool, season_id, week)
        return summarize_picks(picks)
