import logging

from flask import jsonify, request
from flask_login import login_required

from pickem.routes.pools import bp
from pickem.services import get_services
from pickem.utils.auth import current_user_record
from pickem.utils.serializers import serialize

logger = logging.getLogger(__name__)


@bp.route("/")
@login_required
def list_pools():
    """Pools the caller takes part in"""
    pools = get_services().pools.list_pools_for_user(current_user_record())
    return jsonify({"pools": serialize(pools)})


@bp.route("/", methods=["POST"])
@login_required
def create_pool():
    data = request.get_json(silent=True) or {}
    pool = get_services().pools.create_pool(
        current_user_record(),
        name=data.get("name"),
        mode=data.get("mode", "weekly"),
        season_id=data.get("season_id"),
    )
    return jsonify({"pool": serialize(pool)}), 201


@bp.route("/<pool_id>")
@login_required
def pool_detail(pool_id):
    services = get_services()
    user = current_user_record()
    pool = services.pools.get_pool(pool_id, user)
    return jsonify(
        {"pool": serialize(pool), "can_manage": services.pools.can_manage(pool, user)}
    )


@bp.route("/by-slug/<slug>")
@login_required
def pool_by_slug(slug):
    """Public pool summary for share links"""
    pool = get_services().pools.get_pool_by_slug(slug)
    return jsonify(
        {
            "pool": {
                "id": pool["id"],
                "name": pool["name"],
                "mode": pool["mode"],
                "slug": pool["slug"],
                "is_active": pool["is_active"],
            }
        }
    )


@bp.route("/<pool_id>", methods=["PUT"])
@login_required
def update_pool(pool_id):
    data = request.get_json(silent=True) or {}
    pool = get_services().pools.update_pool(pool_id, current_user_record(), data)
    return jsonify({"pool": serialize(pool)})


@bp.route("/<pool_id>", methods=["DELETE"])
@login_required
def delete_pool(pool_id):
    get_services().pools.delete_pool(pool_id, current_user_record())
    return jsonify({"message": "Pool deleted"})


@bp.route("/<pool_id>/participants")
@login_required
def participants(pool_id):
    rows = get_services().pools.list_participants(pool_id, current_user_record())
    return jsonify({"participants": serialize(rows)})


@bp.route("/<pool_id>/players", methods=["POST"])
@login_required
def add_player(pool_id):
    """Add a registered user directly, or invite an unknown email"""
    data = request.get_json(silent=True) or {}
    result = get_services().pools.add_player(pool_id, current_user_record(), data.get("email"))
    if result["status"] == "invited":
        invitation = {k: v for k, v in result["invitation"].items() if k != "token"}
        return jsonify({"status": "invited", "invitation": serialize(invitation)}), 201
    return jsonify({"status": "added", "participant": serialize(result["participant"])}), 201


@bp.route("/<pool_id>/players/<user_id>", methods=["DELETE"])
@login_required
def remove_player(pool_id, user_id):
    get_services().pools.remove_player(pool_id, current_user_record(), user_id)
    return jsonify({"message": "Player removed"})


@bp.route("/<pool_id>/invitations")
@login_required
def invitations(pool_id):
    rows = get_services().pools.list_invitations(pool_id, current_user_record())
    return jsonify({"invitations": serialize(rows)})


@bp.route("/<pool_id>/invitations/<invitation_id>", methods=["DELETE"])
@login_required
def cancel_invitation(pool_id, invitation_id):
    get_services().pools.cancel_invitation(pool_id, invitation_id, current_user_record())
    return jsonify({"message": "Invitation cancelled"})


@bp.route("/invitations/<token>/accept", methods=["POST"])
@login_required
def accept_invitation(token):
    pool, participant = get_services().invitations.accept(token, current_user_record())
    return jsonify({"pool": serialize(pool), "participant": serialize(participant)})


@bp.route("/<pool_id>/standings")
@login_required
def standings(pool_id):
    """Picks summary per participant"""
    rows = get_services().scoring.pool_standings(
        pool_id,
        current_user_record(),
        season_id=request.args.get("season_id"),
        week=request.args.get("week", type=int),
    )
    return jsonify({"standings": rows})


@bp.route("/<pool_id>/survivor/standings")
@login_required
def survivor_standings(pool_id):
    rows = get_services().scoring.survivor_standings(
        pool_id, current_user_record(), week=request.args.get("week", type=int)
    )
    return jsonify({"standings": rows})


@bp.route("/<pool_id>/survivor/team-stats")
@login_required
def survivor_team_stats(pool_id):
    """How often each team was picked"""
    stats = get_services().picks.team_stats(
        pool_id,
        current_user_record(),
        season_id=request.args.get("season_id"),
        week=request.args.get("week", type=int),
    )
    return jsonify({"team_stats": stats})


@bp.route("/<pool_id>/survivor/used-teams")
@login_required
def survivor_used_teams(pool_id):
    """Teams the caller has already used this season"""
    team_ids = get_services().picks.used_teams(pool_id, current_user_record())
    return jsonify({"used_team_ids": team_ids})


@bp.route("/<pool_id>/weekly-standings")
@login_required
def weekly_standings(pool_id):
    rows = get_services().scoring.weekly_standings(
        pool_id,
        current_user_record(),
        season_id=request.args.get("season_id"),
        week=request.args.get("week", type=int),
    )
    return jsonify({"standings": serialize(rows)})
