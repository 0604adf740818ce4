"""
Relational repositories backed by Flask-SQLAlchemy.

Every write is one session commit; failures roll the session back and
surface as ``RepositoryError`` (or ``DuplicateRecord`` for unique-key
violations).
"""

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from pickem import db
from pickem.errors import DuplicateRecord, RepositoryError
from pickem.models import (
    Invitation,
    Participant,
    Pick,
    Pool,
    ScheduledGame,
    Season,
    SystemSetting,
    Team,
    User,
    WeeklyStanding,
)

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

CURRENT_SEASON_KEY = "current_season_id"


class SqlRepository:
    """Generic CRUD over one Flask-SQLAlchemy model"""

    model = None

    def _query(self, criteria):
        query = self.model.query
        for field, value in self._criteria(criteria).items():
            column = getattr(self.model, field)
            if value is None:
                query = query.filter(column.is_(None))
            elif isinstance(value, (list, tuple, set, frozenset)):
                query = query.filter(column.in_(list(value)))
            else:
                query = query.filter(column == value)
        return query.order_by(self.model.created_at, self.model.id)

    def _commit(self, action):
        try:
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            logger.warning(f"Duplicate {self.entity} on {action}: {e.orig}")
            raise DuplicateRecord(f"{self.entity} record already exists") from e
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to {action} {self.entity}: {e}")
            raise RepositoryError(f"Failed to {action} {self.entity}") from e

    def _fetch(self, record_id):
        try:
            return db.session.get(self.model, record_id)
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to load {self.entity} {record_id}: {e}")
            raise RepositoryError(f"Failed to load {self.entity}") from e

    def create(self, data):
        record = self._new_record(data)
        obj = self.model(**record)
        db.session.add(obj)
        self._commit("create")
        return obj.to_dict()

    def get(self, record_id):
        if record_id is None:
            return None
        obj = self._fetch(record_id)
        return obj.to_dict() if obj else None

    def list(self, **criteria):
        try:
            return [obj.to_dict() for obj in self._query(criteria).all()]
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to list {self.entity}: {e}")
            raise RepositoryError(f"Failed to list {self.entity}") from e

    def count(self, **criteria):
        try:
            return self._query(criteria).order_by(None).count()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to count {self.entity}: {e}")
            raise RepositoryError(f"Failed to count {self.entity}") from e

    def update(self, record_id, changes):
        obj = self._fetch(record_id)
        if obj is None:
            return None
        for field, value in self._changes(changes).items():
            setattr(obj, field, value)
        self._commit("update")
        return obj.to_dict()

    def delete(self, record_id):
        obj = self._fetch(record_id)
        if obj is None:
            return False
        db.session.delete(obj)
        self._commit("delete")
        return True

    def delete_where(self, **criteria):
        try:
            deleted = self._query(criteria).order_by(None).delete(
                synchronize_session=False
            )
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to delete {self.entity}: {e}")
            raise RepositoryError(f"Failed to delete {self.entity}") from e
        self._commit("delete")
        return deleted


class SqlUserRepository(SqlRepository, UserRepository):
    model = User


class SqlTeamRepository(SqlRepository, TeamRepository):
    model = Team


class SqlSeasonRepository(SqlRepository, SeasonRepository):
    model = Season

    def get_current_id(self):
        setting = db.session.get(SystemSetting, CURRENT_SEASON_KEY)
        return setting.value if setting and setting.value else None

    def set_current_id(self, season_id):
        # One row holds the pointer, so moving it is a single-row write
        setting = db.session.get(SystemSetting, CURRENT_SEASON_KEY)
        if setting is None:
            setting = SystemSetting(key=CURRENT_SEASON_KEY)
            db.session.add(setting)
        setting.value = season_id
        self._commit("set current")

    def clear_current(self):
        setting = db.session.get(SystemSetting, CURRENT_SEASON_KEY)
        if setting is not None:
            db.session.delete(setting)
            self._commit("clear current")


class SqlScheduledGameRepository(SqlRepository, ScheduledGameRepository):
    model = ScheduledGame


class SqlPoolRepository(SqlRepository, PoolRepository):
    model = Pool


class SqlParticipantRepository(SqlRepository, ParticipantRepository):
    model = Participant


class SqlPickRepository(SqlRepository, PickRepository):
    model = Pick


class SqlWeeklyStandingRepository(SqlRepository, WeeklyStandingRepository):
    model = WeeklyStanding


class SqlInvitationRepository(SqlRepository, InvitationRepository):
    model = Invitation
