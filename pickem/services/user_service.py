"""
Accounts: registration, password checks, profile and admin flag
"""

import logging
import re

from werkzeug.security import check_password_hash, generate_password_hash

from pickem.errors import (
    AdminRequired,
    DuplicateRecord,
    EmailAlreadyRegistered,
    InvalidCredentials,
    UserNotFound,
    ValidationError,
)
from pickem.services.access import is_admin
from pickem.utils.timezone_utils import get_utc_time

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 8
PROFILE_FIELDS = ("first_name", "last_name", "favorite_team_id")


def normalize_email(email):
    email = str(email or "").strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("A valid email address is required")
    return email


class UserService:
    def __init__(self, repositories, invitations=None):
        self.users = repositories.users
        self.teams = repositories.teams
        self.invitations = invitations

    def register(self, email, password, first_name=None, last_name=None, invite_token=None):
        """
        Create an account.

        When ``invite_token`` is given the invitation is accepted for the new
        user in the same call.
        """
        email = normalize_email(email)
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
            )
        if self.users.get_by_email(email):
            raise EmailAlreadyRegistered()

        invitation = None
        if invite_token:
            invitation = self.invitations.get_valid(invite_token, email=email)

        try:
            user = self.users.create(
                {
                    "email": email,
                    "password_hash": generate_password_hash(password),
                    "first_name": (first_name or "").strip() or None,
                    "last_name": (last_name or "").strip() or None,
                    "email_verified": invitation is not None,
                }
            )
        except DuplicateRecord:
            raise EmailAlreadyRegistered()

        logger.info(f"Registered user {email}")

        if invitation is not None:
            self.invitations.accept(invite_token, user)
        return user

    def authenticate(self, email, password):
        """User record for valid credentials; stamps ``last_login``"""
        user = self.users.get_by_email(str(email or "").strip().lower())
        if not user or not user.get("password_hash"):
            raise InvalidCredentials()
        if not check_password_hash(user["password_hash"], password or ""):
            logger.info(f"Failed login for {user['email']}")
            raise InvalidCredentials()

        return self.users.update(user["id"], {"last_login": get_utc_time()})

    def get_user(self, user_id, required=True):
        user = self.users.get(user_id)
        if user is None and required:
            raise UserNotFound()
        return user

    def update_profile(self, user, changes):
        updates = {key: changes[key] for key in PROFILE_FIELDS if key in changes}
        if updates.get("favorite_team_id") and not self.teams.get(updates["favorite_team_id"]):
            raise ValidationError("Unknown favorite team")
        if not updates:
            return user
        return self.users.update(user["id"], updates)

    def set_admin(self, acting_user, user_id, admin_flag):
        if not is_admin(acting_user):
            raise AdminRequired()
        self.get_user(user_id)
        user = self.users.update(user_id, {"is_admin": bool(admin_flag)})
        logger.info(
            f"{acting_user['email']} set admin={bool(admin_flag)} for {user['email']}"
        )
        return user

    def create_admin(self, email, password, first_name=None, last_name=None):
        """Register an account and grant it admin rights (management CLI)"""
        user = self.register(email, password, first_name=first_name, last_name=last_name)
        return self.users.update(user["id"], {"is_admin": True, "email_verified": True})
