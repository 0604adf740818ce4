import uuid
from datetime import datetime

from pickem.utils.timezone_utils import as_utc, get_utc_time


def new_id():
    """Primary keys are UUID4 strings so both storage backends agree"""
    return str(uuid.uuid4())


def utc_now():
    return get_utc_time()


class RecordMixin:
    """Plain-dict conversion shared by every model"""

    def to_dict(self):
        record = {}
        for column in self.__table__.columns:
            value = getattr(self, column.name)
            if isinstance(value, datetime):
                value = as_utc(value)
            record[column.name] = value
        return record
