"""
Score feed collaborators

``ScoreProvider.fetch_scores(season, week)`` returns the latest known
result of every game in one week. ``EspnScoreProvider`` reads the public
ESPN scoreboard; ``StaticScoreProvider`` replays preset updates.
"""

import logging
import time
from dataclasses import asdict, dataclass
from functools import wraps
from typing import Optional

import requests

from pickem.errors import ScoreProviderError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://site.api.espn.com/apis/site/v2/sports/football/nfl"
REGULAR_SEASON_WEEKS = 18


@dataclass
class ScoreUpdate:
    external_id: Optional[str] = None
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    status: Optional[str] = None
    scheduled_game_id: Optional[str] = None

    def to_dict(self):
        return asdict(self)


def retry_on_failure(max_retries=3, base_delay=1.0, backoff_factor=2.0):
    """
    Decorator retrying feed requests with exponential backoff on
    connection errors, 429 and 5xx responses
    """

    def decorator(func):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            for attempt in range(max_retries):
                delay = base_delay * (backoff_factor**attempt)
                try:
                    response = func(self, *args, **kwargs)
                except requests.exceptions.RequestException as e:
                    if attempt == max_retries - 1:
                        raise ScoreProviderError(f"Score feed request failed: {e}") from e
                    logger.warning(
                        f"Request failed: {e}. Waiting {delay}s before retry "
                        f"{attempt + 1}/{max_retries}"
                    )
                    time.sleep(delay)
                    continue

                if response.status_code == 429 or response.status_code >= 500:
                    logger.warning(
                        f"Score feed answered {response.status_code}. Waiting {delay}s "
                        f"before retry {attempt + 1}/{max_retries}"
                    )
                    time.sleep(delay)
                    continue

                return response

            raise ScoreProviderError(f"Max retries ({max_retries}) exceeded")

        return wrapper

    return decorator


class ScoreProvider:
    """Interface for anything that can report game results"""

    def fetch_scores(self, season, week):
        raise NotImplementedError


class EspnScoreProvider(ScoreProvider):
    def __init__(self, base_url=None, timeout=15):
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": "Pickem-Pools/1.0"})

    @retry_on_failure(max_retries=3, base_delay=1.0)
    def _get(self, url, params=None):
        return self.session.get(url, params=params, timeout=self.timeout)

    def fetch_scores(self, season, week):
        """
        Results for one week of a season.

        Args:
            season: season record; its label is sent as the feed year
            week: week number, weeks past the regular season map to playoffs
        """
        params = {
            "seasontype": 2 if week <= REGULAR_SEASON_WEEKS else 3,
            "week": week if week <= REGULAR_SEASON_WEEKS else week - REGULAR_SEASON_WEEKS,
            "dates": season["season"],
        }
        response = self._get(f"{self.base_url}/scoreboard", params=params)
        try:
            response.raise_for_status()
            data = response.json()
        except (requests.exceptions.HTTPError, ValueError) as e:
            raise ScoreProviderError(f"Unreadable score feed response: {e}") from e

        updates = []
        for event in data.get("events", []):
            update = self._parse_event(event)
            if update is not None:
                updates.append(update)

        logger.info(f"Fetched {len(updates)} results for season {season['season']} week {week}")
        return updates

    def _parse_event(self, event):
        competitions = event.get("competitions") or []
        if not competitions or not event.get("id"):
            return None
        competition = competitions[0]

        scores = {}
        for competitor in competition.get("competitors", []):
            side = competitor.get("homeAway")
            score = competitor.get("score")
            if side in ("home", "away"):
                try:
                    scores[side] = int(score) if score not in (None, "") else None
                except (TypeError, ValueError):
                    logger.warning(f"Bad score {score!r} in event {event['id']}")
                    scores[side] = None

        status = (competition.get("status") or event.get("status") or {}).get("type", {})
        return ScoreUpdate(
            external_id=str(event["id"]),
            home_score=scores.get("home"),
            away_score=scores.get("away"),
            status=status.get("name"),
        )


class StaticScoreProvider(ScoreProvider):
    """Preset updates keyed by week"""

    def __init__(self, updates=None):
        self.updates = updates or {}

    def set_week(self, week, updates):
        self.updates[week] = list(updates)

    def fetch_scores(self, season, week):
        return list(self.updates.get(week, []))
