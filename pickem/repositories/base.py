"""
Storage-agnostic repository interfaces.

A repository moves plain ``dict`` records in and out of one storage backend.
Concrete classes live in ``sql.py`` (Flask-SQLAlchemy) and ``kv.py`` (redis);
the per-entity interfaces below hold everything the two have in common: the
field list, defaults, natural keys and the uniqueness rules.

Criteria passed to ``get_by``/``list``/``count``/``delete_where`` are
equality matches. A list, tuple or set value means "one of" and ``None``
means "is null".
"""

from datetime import datetime, timezone

from pickem.errors import ValidationError
from pickem.models.base import new_id
from pickem.utils.timezone_utils import as_utc, get_utc_time, parse_datetime


def matches(record, criteria):
    """In-memory predicate used by full scans"""
    for field, expected in criteria.items():
        actual = record.get(field)
        if expected is None:
            if actual is not None:
                return False
        elif isinstance(expected, (list, tuple, set, frozenset)):
            if actual not in expected:
                return False
        elif actual != expected:
            return False
    return True


def insertion_order(record):
    """Sort key giving list results in insertion order"""
    created_at = record.get("created_at") or datetime.min.replace(tzinfo=timezone.utc)
    return (created_at, record.get("id") or "")


class Repository:
    """CRUD contract every entity repository fulfils"""

    entity = None
    fields = ()
    datetime_fields = ("created_at",)
    defaults = {}
    # Tuples of fields that must be unique together
    unique_together = ()

    def create(self, data):
        raise NotImplementedError

    def get(self, record_id):
        raise NotImplementedError

    def list(self, **criteria):
        raise NotImplementedError

    def update(self, record_id, changes):
        raise NotImplementedError

    def delete(self, record_id):
        raise NotImplementedError

    def delete_where(self, **criteria):
        raise NotImplementedError

    def get_by(self, **criteria):
        """First record matching ``criteria`` or ``None``"""
        records = self.list(**criteria)
        return records[0] if records else None

    def count(self, **criteria):
        return len(self.list(**criteria))

    # Shared record shaping

    def _check_fields(self, data):
        unknown = set(data) - set(self.fields)
        if unknown:
            raise ValidationError(
                f"Unknown {self.entity} field(s): {', '.join(sorted(unknown))}"
            )

    def _normalize(self, data):
        record = dict(data)
        for field in self.datetime_fields:
            if field in record:
                record[field] = parse_datetime(record[field])
        return record

    def _new_record(self, data):
        self._check_fields(data)
        now = get_utc_time()
        record = {field: None for field in self.fields}
        record.update(self.defaults)
        record.update(self._normalize(data))
        if not record.get("id"):
            record["id"] = new_id()
        for stamp in ("created_at", "updated_at"):
            if stamp in self.fields and record.get(stamp) is None:
                record[stamp] = now
        return record

    def _changes(self, changes):
        self._check_fields(changes)
        changes = self._normalize(changes)
        changes.pop("id", None)
        if "updated_at" in self.fields and "updated_at" not in changes:
            changes["updated_at"] = get_utc_time()
        return changes

    def _criteria(self, criteria):
        self._check_fields(criteria)
        normalized = {}
        for field, value in criteria.items():
            if field in self.datetime_fields and isinstance(value, datetime):
                value = as_utc(value)
            normalized[field] = value
        return normalized


class UserRepository(Repository):
    entity = "users"
    fields = (
        "id",
        "email",
        "password_hash",
        "first_name",
        "last_name",
        "favorite_team_id",
        "is_admin",
        "email_verified",
        "email_verification_token",
        "password_reset_token",
        "password_reset_expires",
        "last_login",
        "created_at",
        "updated_at",
    )
    datetime_fields = ("password_reset_expires", "last_login", "created_at", "updated_at")
    defaults = {"is_admin": False, "email_verified": False}
    unique_together = (("email",),)

    def get_by_email(self, email):
        if not email:
            return None
        return self.get_by(email=email.strip().lower())


class TeamRepository(Repository):
    entity = "teams"
    fields = (
        "id",
        "team_code",
        "team_name",
        "team_city",
        "conference",
        "division",
        "primary_color",
        "secondary_color",
        "logo",
        "created_at",
    )
    unique_together = (("team_code",),)

    def get_by_code(self, team_code):
        return self.get_by(team_code=team_code.upper())


class SeasonRepository(Repository):
    """Seasons plus the single current-season pointer"""

    entity = "seasons"
    fields = ("id", "season", "created_at")
    unique_together = (("season",),)

    def get_by_label(self, label):
        return self.get_by(season=str(label))

    def get_current_id(self):
        raise NotImplementedError

    def set_current_id(self, season_id):
        raise NotImplementedError

    def clear_current(self):
        raise NotImplementedError

    def get_current(self):
        season_id = self.get_current_id()
        return self.get(season_id) if season_id else None


class ScheduledGameRepository(Repository):
    entity = "scheduled_games"
    fields = (
        "id",
        "season_id",
        "week",
        "home_team_id",
        "away_team_id",
        "start_time",
        "status",
        "home_score",
        "away_score",
        "scores_updated_at",
        "external_id",
        "created_at",
    )
    datetime_fields = ("start_time", "scores_updated_at", "created_at")
    defaults = {"status": "STATUS_SCHEDULED"}
    unique_together = (("external_id",),)

    def get_by_external_id(self, external_id):
        return self.get_by(external_id=str(external_id))

    def list_for_week(self, season_id, week=None):
        criteria = {"season_id": season_id}
        if week is not None:
            criteria["week"] = week
        return self.list(**criteria)


class PoolRepository(Repository):
    entity = "pools"
    fields = (
        "id",
        "name",
        "mode",
        "owner_id",
        "season_id",
        "slug",
        "is_active",
        "created_at",
        "updated_at",
    )
    datetime_fields = ("created_at", "updated_at")
    defaults = {"mode": "weekly", "is_active": True}
    unique_together = (("slug",),)

    def get_by_slug(self, slug):
        return self.get_by(slug=slug)


class ParticipantRepository(Repository):
    entity = "pool_participants"
    fields = ("id", "pool_id", "user_id", "role", "created_at")
    defaults = {"role": "player"}
    unique_together = (("pool_id", "user_id"),)

    def get_membership(self, pool_id, user_id):
        return self.get_by(pool_id=pool_id, user_id=user_id)


class PickRepository(Repository):
    entity = "picks"
    fields = (
        "id",
        "user_id",
        "pool_id",
        "season_id",
        "week",
        "scheduled_game_id",
        "team_id",
        "tiebreaker",
        "is_correct",
        "created_at",
        "updated_at",
    )
    datetime_fields = ("created_at", "updated_at")
    unique_together = (("user_id", "pool_id", "scheduled_game_id"),)

    def get_for_game(self, user_id, pool_id, scheduled_game_id):
        return self.get_by(
            user_id=user_id, pool_id=pool_id, scheduled_game_id=scheduled_game_id
        )


class WeeklyStandingRepository(Repository):
    entity = "weekly_standings"
    fields = (
        "id",
        "user_id",
        "pool_id",
        "season_id",
        "week",
        "correct_picks",
        "total_picks",
        "pick_percentage",
        "rank",
        "tiebreaker",
        "created_at",
        "updated_at",
    )
    datetime_fields = ("created_at", "updated_at")
    defaults = {"correct_picks": 0, "total_picks": 0, "pick_percentage": 0.0}
    unique_together = (("user_id", "pool_id", "season_id", "week"),)

    def upsert(self, user_id, pool_id, season_id, week, values):
        """Create or overwrite the standing row for one participant and week"""
        existing = self.get_by(
            user_id=user_id, pool_id=pool_id, season_id=season_id, week=week
        )
        if existing:
            return self.update(existing["id"], values)
        return self.create(
            dict(values, user_id=user_id, pool_id=pool_id, season_id=season_id, week=week)
        )


class InvitationRepository(Repository):
    entity = "pool_invitations"
    fields = (
        "id",
        "pool_id",
        "email",
        "inviter_id",
        "token",
        "status",
        "expires_at",
        "created_at",
    )
    datetime_fields = ("expires_at", "created_at")
    defaults = {"status": "pending"}
    unique_together = (("token",),)

    def get_by_token(self, token):
        return self.get_by(token=token)
