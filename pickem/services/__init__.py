"""
Service wiring.

``build_services`` is called once by the app factory; routes and the CLI
reach the result through ``get_services()``.
"""

from dataclasses import dataclass

from flask import current_app

from .invitation_service import InvitationService
from .pick_service import PickResult, PickService
from .pool_service import PoolService
from .schedule_service import ScheduleService
from .scheduler_service import SchedulerService
from .score_provider import EspnScoreProvider, ScoreProvider, ScoreUpdate, StaticScoreProvider
from .scoring_service import ScoringService, ScoringSummary
from .user_service import UserService

__all__ = [
    "Services",
    "build_services",
    "get_services",
    "PickResult",
    "ScoringSummary",
    "ScoreProvider",
    "ScoreUpdate",
    "EspnScoreProvider",
    "StaticScoreProvider",
]


@dataclass
class Services:
    users: UserService
    schedule: ScheduleService
    pools: PoolService
    invitations: InvitationService
    picks: PickService
    scoring: ScoringService
    scheduler: SchedulerService
    repositories: object = None


def build_services(app, repositories, score_provider=None):
    if score_provider is None:
        score_provider = EspnScoreProvider(
            base_url=app.config.get("SCORE_PROVIDER_URL"),
            timeout=app.config.get("SCORE_PROVIDER_TIMEOUT", 15),
        )

    invitations = InvitationService(
        repositories, expiry_hours=app.config.get("INVITE_TOKEN_EXPIRY", 168)
    )
    schedule = ScheduleService(repositories)
    scoring = ScoringService(repositories)
    return Services(
        users=UserService(repositories, invitations=invitations),
        schedule=schedule,
        pools=PoolService(repositories, invitations),
        invitations=invitations,
        picks=PickService(repositories),
        scoring=scoring,
        scheduler=SchedulerService(app, schedule, scoring, score_provider),
        repositories=repositories,
    )


def get_services():
    """Services of the running application"""
    return current_app.extensions["pickem_services"]
