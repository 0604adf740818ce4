"""
Repository wiring.

``build_repositories`` picks the storage backend once, from
``STORAGE_BACKEND``, and returns one repository per entity. The result is
kept on ``app.extensions`` by the app factory.
"""

import logging
from dataclasses import dataclass

import redis

from .base import (
    InvitationRepository,
    ParticipantRepository,
    PickRepository,
    PoolRepository,
    ScheduledGameRepository,
    SeasonRepository,
    TeamRepository,
    UserRepository,
    WeeklyStandingRepository,
)

logger = logging.getLogger(__name__)

BACKENDS = ("sql", "kv")


@dataclass
class Repositories:
    users: UserRepository
    teams: TeamRepository
    seasons: SeasonRepository
    games: ScheduledGameRepository
    pools: PoolRepository
    participants: ParticipantRepository
    picks: PickRepository
    standings: WeeklyStandingRepository
    invitations: InvitationRepository
    backend: str = "sql"


def build_repositories(app, kv_client=None):
    """Construct the repositories for the configured backend"""
    backend = app.config.get("STORAGE_BACKEND", "sql")
    if backend not in BACKENDS:
        raise ValueError(f"Unknown STORAGE_BACKEND '{backend}', expected one of {BACKENDS}")

    if backend == "kv":
        from . import kv

        client = kv_client
        if client is None:
            client = redis.Redis.from_url(app.config["KV_REDIS_URL"], decode_responses=True)
        prefix = app.config.get("KV_KEY_PREFIX", "pickem")
        logger.info(f"Using key-value repositories with prefix '{prefix}'")
        return Repositories(
            users=kv.KvUserRepository(client, prefix),
            teams=kv.KvTeamRepository(client, prefix),
            seasons=kv.KvSeasonRepository(client, prefix),
            games=kv.KvScheduledGameRepository(client, prefix),
            pools=kv.KvPoolRepository(client, prefix),
            participants=kv.KvParticipantRepository(client, prefix),
            picks=kv.KvPickRepository(client, prefix),
            standings=kv.KvWeeklyStandingRepository(client, prefix),
            invitations=kv.KvInvitationRepository(client, prefix),
            backend="kv",
        )

    from . import sql

    logger.info("Using relational repositories")
    return Repositories(
        users=sql.SqlUserRepository(),
        teams=sql.SqlTeamRepository(),
        seasons=sql.SqlSeasonRepository(),
        games=sql.SqlScheduledGameRepository(),
        pools=sql.SqlPoolRepository(),
        participants=sql.SqlParticipantRepository(),
        picks=sql.SqlPickRepository(),
        standings=sql.SqlWeeklyStandingRepository(),
        invitations=sql.SqlInvitationRepository(),
        backend="sql",
    )
