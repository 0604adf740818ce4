from flask import current_app, jsonify, request
from flask_login import login_required

from pickem import limiter
from pickem.routes.api import bp
from pickem.services import get_services
from pickem.utils.auth import current_user_record
from pickem.utils.cache_utils import cached_route
from pickem.utils.serializers import serialize


def pick_rate_limit():
    return current_app.config.get("PICK_RATE_LIMIT", "60 per minute")


@bp.route("/teams")
@cached_route(timeout=3600, key_prefix="teams")  # Cache for 1 hour
def teams():
    """Get all teams"""
    return serialize(get_services().schedule.list_teams())


@bp.route("/teams/<team_id>")
def team_detail(team_id):
    return jsonify(serialize(get_services().schedule.get_team(team_id)))


@bp.route("/seasons")
@cached_route(timeout=3600, key_prefix="seasons")  # Cache for 1 hour
def seasons():
    """Get all seasons"""
    return serialize(get_services().schedule.list_seasons())


@bp.route("/seasons/current")
def current_season():
    """Get the current season"""
    season = get_services().schedule.get_current_season()
    if season:
        return jsonify(serialize(season))
    return jsonify({"error": "No current season", "reason": "no_current_season"}), 404


@bp.route("/seasons/<season_id>/games")
@cached_route(timeout=300, key_prefix="season_games")  # Shorter due to live updates
def season_games(season_id):
    """Get games for a season, or one week of it with ?week="""
    services = get_services()
    services.schedule.get_season(season_id)
    week = request.args.get("week", type=int)
    return serialize(services.schedule.list_games(season_id, week))


@bp.route("/games/<game_id>")
def game_detail(game_id):
    return jsonify(serialize(get_services().schedule.get_game(game_id)))


@bp.route("/picks")
@login_required
def list_picks():
    """Picks of the caller (or, with ?user_id=, of a fellow participant)"""
    picks = get_services().picks.list_picks(
        current_user_record(),
        pool_id=request.args.get("pool_id"),
        season_id=request.args.get("season_id"),
        week=request.args.get("week", type=int),
        user_id=request.args.get("user_id"),
    )
    return jsonify({"picks": serialize(picks)})


@bp.route("/picks", methods=["POST"])
@login_required
@limiter.limit(pick_rate_limit)
def submit_pick():
    """Create or update a pick; 201 when created, 200 when updated"""
    data = request.get_json(silent=True) or {}
    result = get_services().picks.submit_pick(
        current_user_record(),
        pool_id=data.get("pool_id"),
        scheduled_game_id=data.get("scheduled_game_id"),
        team_id=data.get("team_id"),
        tiebreaker=data.get("tiebreaker"),
    )
    body = {
        "pick": serialize(result.pick),
        "created": result.created,
        "replaced_pick_id": result.replaced_pick_id,
    }
    return jsonify(body), 201 if result.created else 200


@bp.route("/picks/<pick_id>", methods=["DELETE"])
@login_required
def delete_pick(pick_id):
    get_services().picks.delete_pick(pick_id, current_user_record())
    return jsonify({"message": "Pick deleted"})
