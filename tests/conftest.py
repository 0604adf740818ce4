"""
Pytest configuration and fixtures.

This file is automatically loaded by pytest and provides
shared fixtures for all tests.

Application fixtures run every test twice: once against the in-memory
SQLite database and once against the key-value backend on fakeredis.
"""

from datetime import datetime, timedelta, timezone

import fakeredis
import pytest

from pickem import create_app, db
from pickem.services import get_services
from pickem.utils.auth import generate_token

# Sunday of week one; kickoffs in tests are placed around it
NOW = datetime(2025, 9, 7, 12, 0, tzinfo=timezone.utc)
PASSWORD = "password123"


def _build_app(config_name):
    kv_client = None
    if config_name == "testing_kv":
        kv_client = fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
    return create_app(config_name, kv_client=kv_client)


@pytest.fixture(params=["testing", "testing_kv"], ids=["sql", "kv"])
def app(request):
    """
    Application with a fresh, empty store.

    The app context stays pushed for the whole test so services can be
    used directly.
    """
    app = _build_app(request.param)
    with app.app_context():
        yield app
        if request.param == "testing":
            db.session.remove()
            db.drop_all()


@pytest.fixture
def kv_app():
    """Application on the key-value backend only"""
    app = _build_app("testing_kv")
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    return get_services()


@pytest.fixture
def seed(services):
    return Seed(services)


@pytest.fixture
def kv_seed(kv_app):
    return Seed(get_services())


def auth_headers(user):
    return {"Authorization": f"Bearer {generate_token(user['id'])}"}


class Seed:
    """Builders for the records most tests need"""

    def __init__(self, services):
        self.services = services
        self.repositories = services.repositories
        self._emails = 0

    def user(self, first_name="Player", admin=False, email=None):
        self._emails += 1
        email = email or f"{first_name.lower()}{self._emails}@example.com"
        user = self.services.users.register(email, PASSWORD, first_name=first_name)
        if admin:
            user = self.repositories.users.update(user["id"], {"is_admin": True})
        return user

    def season(self, label="2025", current=True):
        season = self.services.schedule.create_season(label)
        if current:
            season = self.services.schedule.set_current_season(season["id"])
        return season

    def team(self, code, name=None):
        return self.services.schedule.create_team(
            {"team_code": code, "team_name": name or f"Team {code}"}
        )

    def teams(self, *codes):
        return [self.team(code) for code in codes]

    def game(self, season, week, home, away, start_time=None, external_id=None):
        return self.services.schedule.create_game(
            season_id=season["id"],
            week=week,
            home_team_id=home["id"],
            away_team_id=away["id"],
            start_time=start_time or NOW + timedelta(hours=5 + 24 * 7 * (week - 1)),
            external_id=external_id,
        )

    def finish(self, game, home_score, away_score, status="STATUS_FINAL"):
        return self.services.schedule.update_game_score(
            game["id"], home_score=home_score, away_score=away_score, status=status
        )

    def pool(self, owner, mode="weekly", name="Office Pool", season=None):
        return self.services.pools.create_pool(
            owner, name, mode=mode, season_id=season["id"] if season else None
        )

    def join(self, pool, user):
        return self.repositories.participants.create(
            {"pool_id": pool["id"], "user_id": user["id"], "role": "player"}
        )

    def pick(self, user, pool, game, team, tiebreaker=None, now=NOW):
        return self.services.picks.submit_pick(
            user, pool["id"], game["id"], team["id"], tiebreaker=tiebreaker, now=now
        ).pick
