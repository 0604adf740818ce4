"""
JSON shaping helpers for API responses
"""

from datetime import date, datetime

from pickem.utils.timezone_utils import as_utc

# Fields that never leave the server
PRIVATE_USER_FIELDS = (
    "password_hash",
    "email_verification_token",
    "password_reset_token",
    "password_reset_expires",
)


def serialize(value):
    """Recursively convert records into JSON friendly values"""
    if isinstance(value, datetime):
        return as_utc(value).isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: serialize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize(item) for item in value]
    return value


def public_user(user):
    """User record without credentials or tokens"""
    if user is None:
        return None
    return serialize(
        {key: value for key, value in user.items() if key not in PRIVATE_USER_FIELDS}
    )
