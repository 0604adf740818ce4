"""
Bearer-token authentication glue

Tokens are itsdangerous-signed user ids. Flask-Login's request loader turns
an ``Authorization: Bearer <token>`` header into ``current_user``.
"""

import logging
from functools import wraps

from flask import current_app, jsonify, request
from flask_login import UserMixin, current_user
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from pickem import login_manager
from pickem.errors import AdminRequired

logger = logging.getLogger(__name__)

TOKEN_SALT = "pickem-auth-token"


class AuthenticatedUser(UserMixin):
    """Flask-Login wrapper around a user record"""

    def __init__(self, record):
        self.record = record
        self.id = record["id"]

    @property
    def is_admin(self):
        return bool(self.record.get("is_admin"))

    @property
    def email(self):
        return self.record.get("email")

    def __repr__(self):
        return f"<AuthenticatedUser {self.email}>"


def _serializer():
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=TOKEN_SALT)


def generate_token(user_id):
    """Signed bearer token for ``user_id``"""
    return _serializer().dumps(user_id)


def verify_token(token):
    """User id carried by ``token``, or ``None`` when it is invalid or expired"""
    max_age = current_app.config.get("TOKEN_MAX_AGE", 86400)
    try:
        return _serializer().loads(token, max_age=max_age)
    except SignatureExpired:
        logger.info("Rejected expired auth token")
    except BadSignature:
        logger.warning("Rejected auth token with bad signature")
    return None


def current_user_record():
    """User record of the authenticated caller"""
    return current_user.record


def init_auth(app):
    """Install the token request loader and JSON unauthorized handler"""

    @login_manager.request_loader
    def load_user_from_request(req):
        header = req.headers.get("Authorization", "")
        if not header.startswith("Bearer "):
            return None

        user_id = verify_token(header[len("Bearer ") :].strip())
        if not user_id:
            return None

        from pickem.services import get_services

        record = get_services().users.get_user(user_id, required=False)
        return AuthenticatedUser(record) if record else None

    @login_manager.unauthorized_handler
    def unauthorized():
        logger.info(f"Unauthenticated request to {request.path}")
        return jsonify({"error": "Authentication required", "reason": "unauthorized"}), 401


def admin_required(f):
    """Restrict a view to authenticated admins; use below ``login_required``"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return login_manager.unauthorized()
        if not current_user.is_admin:
            raise AdminRequired()
        return f(*args, **kwargs)

    return decorated_function
