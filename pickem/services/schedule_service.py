"""
Seasons, teams and the game schedule, plus the current-season pointer
and score writes coming from the feed.
"""

import logging
from datetime import timedelta

from pickem.errors import (
    GameNotFound,
    SeasonNotFound,
    TeamNotFound,
    ValidationError,
)
from pickem.utils.scoring import is_final_status
from pickem.utils.timezone_utils import get_utc_time, parse_datetime

logger = logging.getLogger(__name__)

# How far ahead of a week's first kickoff that week becomes current
WEEK_LOOKAHEAD = timedelta(days=3)


def _as_int(value, field, minimum=None):
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer")
    if minimum is not None and number < minimum:
        raise ValidationError(f"{field} must be at least {minimum}")
    return number


def _as_datetime(value, field):
    try:
        parsed = parse_datetime(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an ISO 8601 datetime")
    if parsed is None:
        raise ValidationError(f"{field} is required")
    return parsed


class ScheduleService:
    def __init__(self, repositories):
        self.seasons = repositories.seasons
        self.teams = repositories.teams
        self.games = repositories.games
        self.pools = repositories.pools

    # Seasons

    def _with_current_flag(self, season, current_id=None):
        if current_id is None:
            current_id = self.seasons.get_current_id()
        return dict(season, is_current=season["id"] == current_id)

    def create_season(self, label):
        label = str(label or "").strip()
        if not label:
            raise ValidationError("Season label is required")

        season = self.seasons.create({"season": label})
        logger.info(f"Created season {label} ({season['id']})")
        return self._with_current_flag(season)

    def list_seasons(self):
        """All seasons, newest label first"""
        current_id = self.seasons.get_current_id()
        seasons = [self._with_current_flag(s, current_id) for s in self.seasons.list()]
        return sorted(seasons, key=lambda s: s["season"], reverse=True)

    def get_season(self, season_id, required=True):
        season = self.seasons.get(season_id)
        if season is None:
            if required:
                raise SeasonNotFound()
            return None
        return self._with_current_flag(season)

    def get_season_by_label(self, label):
        season = self.seasons.get_by_label(label)
        if season is None:
            raise SeasonNotFound(f"Season {label} not found")
        return self._with_current_flag(season)

    def delete_season(self, season_id):
        """Delete a season and its schedule; refused while pools use it"""
        season = self.get_season(season_id)
        if self.pools.count(season_id=season_id):
            raise ValidationError("Cannot delete a season that still has pools")

        removed_games = self.games.delete_where(season_id=season_id)
        if season["is_current"]:
            self.seasons.clear_current()
        self.seasons.delete(season_id)
        logger.info(f"Deleted season {season['season']} and {removed_games} games")

    def set_current_season(self, season_id):
        season = self.get_season(season_id)
        self.seasons.set_current_id(season["id"])
        logger.info(f"Current season is now {season['season']}")
        return dict(season, is_current=True)

    def get_current_season(self):
        """Current season record, or ``None`` when no pointer is set"""
        season = self.seasons.get_current()
        return dict(season, is_current=True) if season else None

    # Teams

    def create_team(self, data):
        team_code = str(data.get("team_code") or "").strip().upper()
        team_name = str(data.get("team_name") or "").strip()
        if not team_code or not team_name:
            raise ValidationError("team_code and team_name are required")

        allowed = {
            "team_city",
            "conference",
            "division",
            "primary_color",
            "secondary_color",
            "logo",
        }
        record = {key: value for key, value in data.items() if key in allowed}
        record.update(team_code=team_code, team_name=team_name)
        team = self.teams.create(record)
        logger.info(f"Created team {team_code}")
        return team

    def list_teams(self):
        return sorted(self.teams.list(), key=lambda t: t["team_code"])

    def get_team(self, team_id, required=True):
        team = self.teams.get(team_id)
        if team is None and required:
            raise TeamNotFound()
        return team

    # Scheduled games

    def create_game(
        self,
        season_id,
        week,
        home_team_id,
        away_team_id,
        start_time,
        external_id=None,
        status=None,
    ):
        self.get_season(season_id)
        week = _as_int(week, "week", minimum=1)
        start_time = _as_datetime(start_time, "start_time")

        if home_team_id == away_team_id:
            raise ValidationError("Home and away teams must differ")
        self.get_team(home_team_id)
        self.get_team(away_team_id)

        record = {
            "season_id": season_id,
            "week": week,
            "home_team_id": home_team_id,
            "away_team_id": away_team_id,
            "start_time": start_time,
            "external_id": str(external_id) if external_id else None,
        }
        if status:
            record["status"] = status
        game = self.games.create(record)
        logger.info(f"Created game {game['id']} for week {week}")
        return game

    def list_games(self, season_id, week=None):
        """Games of a season (or one week of it) in kickoff order"""
        if week is not None:
            week = _as_int(week, "week", minimum=1)
        games = self.games.list_for_week(season_id, week)
        return sorted(games, key=lambda g: (g["week"], g["start_time"]))

    def get_game(self, game_id, required=True):
        game = self.games.get(game_id)
        if game is None and required:
            raise GameNotFound()
        return game

    def update_game_score(self, game_id, home_score=None, away_score=None, status=None):
        """Write one game's result by hand"""
        self.get_game(game_id)
        changes = {"scores_updated_at": get_utc_time()}
        if home_score is not None:
            changes["home_score"] = _as_int(home_score, "home_score", minimum=0)
        if away_score is not None:
            changes["away_score"] = _as_int(away_score, "away_score", minimum=0)
        if status:
            changes["status"] = str(status)
        return self.games.update(game_id, changes)

    def apply_score_updates(self, updates):
        """
        Write feed results onto scheduled games.

        Each update is matched by ``scheduled_game_id`` when present,
        otherwise by ``external_id``; unmatched updates are logged and
        skipped.

        Returns:
            int: number of games written
        """
        written = 0
        now = get_utc_time()
        for update in updates:
            update = update if isinstance(update, dict) else update.to_dict()
            game = None
            if update.get("scheduled_game_id"):
                game = self.games.get(update["scheduled_game_id"])
            elif update.get("external_id"):
                game = self.games.get_by_external_id(update["external_id"])

            if game is None:
                logger.warning(f"No scheduled game matches score update {update}")
                continue

            changes = {"scores_updated_at": now}
            try:
                for field in ("home_score", "away_score"):
                    if update.get(field) is not None:
                        changes[field] = _as_int(update[field], field, minimum=0)
            except ValidationError as e:
                logger.warning(f"Skipping score update for game {game['id']}: {e.message}")
                continue
            if update.get("status"):
                changes["status"] = str(update["status"])
            self.games.update(game["id"], changes)
            written += 1

        logger.info(f"Applied {written} of {len(updates)} score updates")
        return written

    def current_week(self, season_id, now=None):
        """
        Week that picks currently target.

        The earliest week whose games are still in progress or unfinished;
        a future week counts once its first kickoff is within three days.
        Before the season that is week one, after it the last week.
        """
        now = now or get_utc_time()
        games = self.games.list(season_id=season_id)
        if not games:
            return 1

        weeks = {}
        for game in games:
            weeks.setdefault(game["week"], []).append(game)

        previous_week = None
        for week in sorted(weeks):
            week_games = weeks[week]
            first_kickoff = min(g["start_time"] for g in week_games)
            last_kickoff = max(g["start_time"] for g in week_games)

            if now < first_kickoff:
                if first_kickoff - now <= WEEK_LOOKAHEAD or previous_week is None:
                    return week
                return previous_week

            if now <= last_kickoff:
                return week

            if any(not is_final_status(g.get("status")) for g in week_games):
                return week

            previous_week = week

        return max(weeks)
