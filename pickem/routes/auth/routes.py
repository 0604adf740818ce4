import logging

from flask import jsonify, request
from flask_login import login_required

from pickem import limiter
from pickem.routes.auth import bp
from pickem.services import get_services
from pickem.utils.auth import current_user_record, generate_token
from pickem.utils.serializers import public_user

logger = logging.getLogger(__name__)


@bp.route("/register", methods=["POST"])
@limiter.limit("5 per hour")
def register():
    """Create an account, optionally accepting a pool invitation"""
    data = request.get_json(silent=True) or {}
    user = get_services().users.register(
        email=data.get("email"),
        password=data.get("password"),
        first_name=data.get("first_name"),
        last_name=data.get("last_name"),
        invite_token=data.get("invite_token"),
    )
    return jsonify({"user": public_user(user), "token": generate_token(user["id"])}), 201


@bp.route("/login", methods=["POST"])
@limiter.limit("10 per minute")
def login():
    data = request.get_json(silent=True) or {}
    user = get_services().users.authenticate(data.get("email"), data.get("password"))
    return jsonify({"user": public_user(user), "token": generate_token(user["id"])})


@bp.route("/me")
@login_required
def me():
    return jsonify({"user": public_user(current_user_record())})


@bp.route("/me", methods=["PUT"])
@login_required
def update_me():
    """Update first/last name and favorite team"""
    data = request.get_json(silent=True) or {}
    user = get_services().users.update_profile(current_user_record(), data)
    return jsonify({"user": public_user(user)})
