"""
Pick submission, deletion and pick listings

Every write checks, in order: the pool, the caller's membership, the
scheduled game, kickoff time and the chosen team; survivor pools also
forbid reusing a team from another week.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from pickem.errors import (
    AccessDenied,
    DuplicateRecord,
    DuplicateSurvivorTeam,
    GameAlreadyStarted,
    GameNotFound,
    PickNotFound,
    TeamNotInGame,
    ValidationError,
)
from pickem.services.access import is_admin, load_pool, require_participant
from pickem.utils.scoring import team_pick_stats, team_used_in_other_week, used_teams
from pickem.utils.timezone_utils import get_utc_time

logger = logging.getLogger(__name__)


@dataclass
class PickResult:
    pick: dict
    created: bool
    replaced_pick_id: Optional[str] = None


def _validate_tiebreaker(tiebreaker):
    if tiebreaker is None or tiebreaker == "":
        return None
    if isinstance(tiebreaker, bool):
        raise ValidationError("Tiebreaker must be a whole number")
    try:
        value = int(tiebreaker)
    except (TypeError, ValueError):
        raise ValidationError("Tiebreaker must be a whole number")
    if value < 0:
        raise ValidationError("Tiebreaker cannot be negative")
    return value


class PickService:
    def __init__(self, repositories):
        self.pools = repositories.pools
        self.participants = repositories.participants
        self.games = repositories.games
        self.picks = repositories.picks
        self.teams = repositories.teams

    def _ensure_not_started(self, game, now):
        if now >= game["start_time"]:
            raise GameAlreadyStarted()

    def submit_pick(self, user, pool_id, scheduled_game_id, team_id, tiebreaker=None, now=None):
        """
        Create or update the caller's pick for one scheduled game.

        Returns:
            PickResult: the stored pick, whether it was created, and the id of
            a same-week survivor pick it replaced
        """
        now = now or get_utc_time()
        tiebreaker = _validate_tiebreaker(tiebreaker)
        if not team_id:
            raise ValidationError("team_id is required")

        pool = load_pool(self.pools, pool_id)
        require_participant(self.participants, pool, user, allow_admin=False)

        game = self.games.get(scheduled_game_id) if scheduled_game_id else None
        if game is None:
            raise GameNotFound()
        if game["season_id"] != pool["season_id"]:
            raise ValidationError("This game is not part of the pool's season")

        self._ensure_not_started(game, now)

        if team_id not in (game["home_team_id"], game["away_team_id"]):
            raise TeamNotInGame()

        if pool["mode"] == "survivor":
            return self._submit_survivor(user, pool, game, team_id, tiebreaker, now)
        return self._submit_weekly(user, pool, game, team_id, tiebreaker)

    def _new_pick(self, user, pool, game, team_id, tiebreaker):
        return {
            "user_id": user["id"],
            "pool_id": pool["id"],
            "season_id": game["season_id"],
            "week": game["week"],
            "scheduled_game_id": game["id"],
            "team_id": team_id,
            "tiebreaker": tiebreaker,
        }

    def _submit_weekly(self, user, pool, game, team_id, tiebreaker):
        existing = self.picks.get_for_game(user["id"], pool["id"], game["id"])
        if existing is None:
            try:
                pick = self.picks.create(self._new_pick(user, pool, game, team_id, tiebreaker))
                logger.info(f"User {user['id']} picked {team_id} for game {game['id']}")
                return PickResult(pick=pick, created=True)
            except DuplicateRecord:
                # Same pick submitted twice at once; the later write wins
                existing = self.picks.get_for_game(user["id"], pool["id"], game["id"])
                if existing is None:
                    raise

        pick = self.picks.update(existing["id"], {"team_id": team_id, "tiebreaker": tiebreaker})
        logger.info(f"User {user['id']} changed pick for game {game['id']} to {team_id}")
        return PickResult(pick=pick, created=False)

    def _submit_survivor(self, user, pool, game, team_id, tiebreaker, now):
        season_picks = self.picks.list(
            user_id=user["id"], pool_id=pool["id"], season_id=pool["season_id"]
        )
        if team_used_in_other_week(season_picks, team_id, game["week"]):
            raise DuplicateSurvivorTeam()

        week_picks = [p for p in season_picks if p["week"] == game["week"]]
        same_game = next((p for p in week_picks if p["scheduled_game_id"] == game["id"]), None)
        if same_game is not None:
            pick = self.picks.update(
                same_game["id"], {"team_id": team_id, "tiebreaker": tiebreaker}
            )
            return PickResult(pick=pick, created=False)

        # Re-pick on another game of the same week: the old game must still be open
        replaced_pick_id = None
        for old_pick in week_picks:
            old_game = self.games.get(old_pick["scheduled_game_id"])
            if old_game is not None:
                self._ensure_not_started(old_game, now)

        # The old pick stays if the create fails
        pick = self.picks.create(self._new_pick(user, pool, game, team_id, tiebreaker))
        for old_pick in week_picks:
            self.picks.delete(old_pick["id"])
            replaced_pick_id = old_pick["id"]

        logger.info(
            f"User {user['id']} picked {team_id} for survivor week {game['week']}"
            + (f" replacing {replaced_pick_id}" if replaced_pick_id else "")
        )
        return PickResult(pick=pick, created=True, replaced_pick_id=replaced_pick_id)

    def delete_pick(self, pick_id, user, now=None):
        """Delete a pick; its owner or an admin only, and only before kickoff"""
        now = now or get_utc_time()
        pick = self.picks.get(pick_id)
        if pick is None:
            raise PickNotFound()
        if pick["user_id"] != user["id"] and not is_admin(user):
            raise AccessDenied("You can only delete your own picks")

        game = self.games.get(pick["scheduled_game_id"])
        if game is not None:
            self._ensure_not_started(game, now)

        self.picks.delete(pick_id)
        logger.info(f"Pick {pick_id} deleted by {user['id']}")

    def list_picks(self, user, pool_id=None, season_id=None, week=None, user_id=None):
        """
        Picks of one user joined with their game and team details, in
        kickoff order. Looking at someone else's picks needs a shared pool
        or admin rights.
        """
        target_user_id = user_id or user["id"]
        if pool_id:
            pool = load_pool(self.pools, pool_id)
            require_participant(self.participants, pool, user)
            if target_user_id != user["id"] and not is_admin(user):
                if self.participants.get_membership(pool_id, target_user_id) is None:
                    raise AccessDenied()
        elif target_user_id != user["id"] and not is_admin(user):
            raise AccessDenied()

        criteria = {"user_id": target_user_id}
        if pool_id:
            criteria["pool_id"] = pool_id
        if season_id:
            criteria["season_id"] = season_id
        if week is not None:
            criteria["week"] = week

        return self._enrich(self.picks.list(**criteria))

    def _enrich(self, picks):
        if not picks:
            return []
        games = {g["id"]: g for g in self.games.list(id=list({p["scheduled_game_id"] for p in picks}))}
        teams = {t["id"]: t for t in self.teams.list()}

        rows = []
        for pick in picks:
            try:
                game = games[pick["scheduled_game_id"]]
                home, away, chosen = (
                    teams[game["home_team_id"]],
                    teams[game["away_team_id"]],
                    teams[pick["team_id"]],
                )
            except KeyError as e:
                logger.warning(f"Skipping pick {pick['id']} with missing reference {e}")
                continue

            row = dict(pick)
            row.update(
                start_time=game["start_time"],
                game_status=game["status"],
                home_team_code=home["team_code"],
                home_team_name=home["team_name"],
                away_team_code=away["team_code"],
                away_team_name=away["team_name"],
                pick_team_code=chosen["team_code"],
                pick_team_name=chosen["team_name"],
            )
            rows.append(row)
        return sorted(rows, key=lambda r: (r["week"], r["start_time"]))

    def used_teams(self, pool_id, user):
        """Teams the caller can no longer pick in a survivor pool"""
        pool = load_pool(self.pools, pool_id)
        require_participant(self.participants, pool, user, allow_admin=False)
        picks = self.picks.list(user_id=user["id"], pool_id=pool_id, season_id=pool["season_id"])
        return used_teams(picks)

    def team_stats(self, pool_id, user, season_id=None, week=None):
        """How often each team was picked in a pool (survivor pick percentages)"""
        pool = load_pool(self.pools, pool_id)
        require_participant(self.participants, pool, user)

        criteria = {"pool_id": pool_id, "season_id": season_id or pool["season_id"]}
        if week is not None:
            criteria["week"] = week
        teams = {t["id"]: t for t in self.teams.list()}
        return team_pick_stats(self.picks.list(**criteria), teams)
