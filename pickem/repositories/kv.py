"""
Key-value repositories backed by redis.

Layout per entity, with ``<prefix>`` from ``KV_KEY_PREFIX``:

    <prefix>:<entity>                       hash, id -> JSON document
    <prefix>:<entity>:idx:<attr>:<value>    set of ids with that value

Index sets exist only for the attributes a repository declares in
``indexes`` and are written in the same MULTI/EXEC pipeline as the
document. Lookups whose criteria touch an indexed attribute read just
those ids; anything else scans the whole hash and filters in memory.
"""

import json
import logging
from datetime import datetime

from redis.exceptions import RedisError, WatchError

from pickem.errors import DuplicateRecord, RepositoryError
from pickem.utils.timezone_utils import as_utc, parse_datetime

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
    insertion_order,
    matches,
)

logger = logging.getLogger(__name__)


def _json_default(value):
    if isinstance(value, datetime):
        return as_utc(value).isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _index_value(value):
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


class KeyValueRepository:
    """Generic CRUD over one redis hash plus its index sets"""

    indexes = ()

    def __init__(self, client, prefix="pickem"):
        self.client = client
        self.prefix = prefix

    @property
    def key(self):
        return f"{self.prefix}:{self.entity}"

    def _index_key(self, attr, value):
        return f"{self.key}:idx:{attr}:{_index_value(value)}"

    def _encode(self, record):
        return json.dumps(record, default=_json_default)

    def _decode(self, raw):
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        record = json.loads(raw)
        for field in self.datetime_fields:
            if record.get(field):
                record[field] = parse_datetime(record[field])
        return record

    def _candidate_ids(self, client, criteria):
        """Ids narrowed by index sets, or ``None`` when a full scan is needed"""
        ids = None
        for attr, value in criteria.items():
            if attr not in self.indexes or value is None:
                continue
            if isinstance(value, (list, tuple, set, frozenset)):
                found = set()
                for item in value:
                    found |= set(client.smembers(self._index_key(attr, item)))
            else:
                found = set(client.smembers(self._index_key(attr, value)))
            ids = found if ids is None else ids & found
        if ids is None:
            return None
        return {i.decode("utf-8") if isinstance(i, bytes) else i for i in ids}

    def _load(self, criteria, client=None):
        client = client or self.client
        ids = self._candidate_ids(client, criteria)
        if ids is None:
            raw_records = client.hvals(self.key)
        elif ids:
            raw_records = client.hmget(self.key, sorted(ids))
        else:
            raw_records = []
        records = [self._decode(raw) for raw in raw_records if raw is not None]
        records = [record for record in records if matches(record, criteria)]
        return sorted(records, key=insertion_order)

    def _check_unique(self, client, record):
        for group in self.unique_together:
            values = {attr: record.get(attr) for attr in group}
            if any(value is None for value in values.values()):
                continue
            clashes = [
                other for other in self._load(values, client) if other["id"] != record["id"]
            ]
            if clashes:
                raise DuplicateRecord(
                    f"{self.entity} record with {', '.join(group)} already exists"
                )

    def _write(self, record, previous=None):
        """Store ``record`` and move its index entries in one transaction"""
        watched = [
            self._index_key(attr, record[attr])
            for group in self.unique_together
            for attr in group
            if record.get(attr) is not None
        ]
        with self.client.pipeline() as pipe:
            while True:
                try:
                    if watched:
                        pipe.watch(*watched)
                        self._check_unique(pipe, record)
                    pipe.multi()
                    pipe.hset(self.key, record["id"], self._encode(record))
                    for attr in self.indexes:
                        old = previous.get(attr) if previous else None
                        new = record.get(attr)
                        if previous and old == new:
                            continue
                        if old is not None:
                            pipe.srem(self._index_key(attr, old), record["id"])
                        if new is not None:
                            pipe.sadd(self._index_key(attr, new), record["id"])
                    pipe.execute()
                    return record
                except WatchError:
                    logger.debug(f"Concurrent write on {self.entity} {record['id']}, retrying")
                    continue

    def _remove(self, records):
        if not records:
            return
        with self.client.pipeline() as pipe:
            for record in records:
                pipe.hdel(self.key, record["id"])
                for attr in self.indexes:
                    if record.get(attr) is not None:
                        pipe.srem(self._index_key(attr, record[attr]), record["id"])
            pipe.execute()

    def _fail(self, action, error):
        logger.error(f"Failed to {action} {self.entity}: {error}")
        return RepositoryError(f"Failed to {action} {self.entity}")

    def create(self, data):
        record = self._new_record(data)
        try:
            return self._write(record)
        except RedisError as e:
            raise self._fail("create", e) from e

    def get(self, record_id):
        if record_id is None:
            return None
        try:
            return self._decode(self.client.hget(self.key, record_id))
        except RedisError as e:
            raise self._fail("load", e) from e

    def list(self, **criteria):
        try:
            return self._load(self._criteria(criteria))
        except RedisError as e:
            raise self._fail("list", e) from e

    def update(self, record_id, changes):
        previous = self.get(record_id)
        if previous is None:
            return None
        record = dict(previous, **self._changes(changes))
        try:
            return self._write(record, previous=previous)
        except RedisError as e:
            raise self._fail("update", e) from e

    def delete(self, record_id):
        record = self.get(record_id)
        if record is None:
            return False
        try:
            self._remove([record])
        except RedisError as e:
            raise self._fail("delete", e) from e
        return True

    def delete_where(self, **criteria):
        records = self.list(**criteria)
        try:
            self._remove(records)
        except RedisError as e:
            raise self._fail("delete", e) from e
        return len(records)


class KvUserRepository(KeyValueRepository, UserRepository):
    indexes = ("email",)


class KvTeamRepository(KeyValueRepository, TeamRepository):
    indexes = ("team_code",)


class KvSeasonRepository(KeyValueRepository, SeasonRepository):
    indexes = ("season",)

    @property
    def current_key(self):
        return f"{self.prefix}:settings:current_season_id"

    def get_current_id(self):
        try:
            value = self.client.get(self.current_key)
        except RedisError as e:
            raise self._fail("load current", e) from e
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value or None

    def set_current_id(self, season_id):
        try:
            self.client.set(self.current_key, season_id)
        except RedisError as e:
            raise self._fail("set current", e) from e

    def clear_current(self):
        try:
            self.client.delete(self.current_key)
        except RedisError as e:
            raise self._fail("clear current", e) from e


class KvScheduledGameRepository(KeyValueRepository, ScheduledGameRepository):
    indexes = ("season_id", "week", "external_id")


class KvPoolRepository(KeyValueRepository, PoolRepository):
    indexes = ("slug", "owner_id", "season_id")


class KvParticipantRepository(KeyValueRepository, ParticipantRepository):
    indexes = ("pool_id", "user_id")


class KvPickRepository(KeyValueRepository, PickRepository):
    indexes = ("user_id", "pool_id", "scheduled_game_id", "week")


class KvWeeklyStandingRepository(KeyValueRepository, WeeklyStandingRepository):
    indexes = ("user_id", "pool_id", "season_id", "week")


class KvInvitationRepository(KeyValueRepository, InvitationRepository):
    indexes = ("pool_id", "email", "token")
