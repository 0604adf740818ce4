import logging

from flask import jsonify, request
from flask_login import login_required

from pickem.errors import ValidationError
from pickem.routes.admin import bp
from pickem.services import get_services
from pickem.utils.auth import admin_required, current_user_record
from pickem.utils.cache_utils import invalidate_model_cache
from pickem.utils.serializers import public_user, serialize

logger = logging.getLogger(__name__)

SCHEDULER_ACTIONS = ("start", "stop", "tick")


@bp.route("/seasons", methods=["POST"])
@login_required
@admin_required
def create_season():
    data = request.get_json(silent=True) or {}
    services = get_services()
    season = services.schedule.create_season(data.get("season"))
    if data.get("is_current"):
        season = services.schedule.set_current_season(season["id"])
    invalidate_model_cache("Season")
    return jsonify({"season": serialize(season)}), 201


@bp.route("/seasons/<season_id>/current", methods=["PUT"])
@login_required
@admin_required
def set_current_season(season_id):
    season = get_services().schedule.set_current_season(season_id)
    invalidate_model_cache("Season")
    return jsonify({"season": serialize(season)})


@bp.route("/seasons/<season_id>", methods=["DELETE"])
@login_required
@admin_required
def delete_season(season_id):
    get_services().schedule.delete_season(season_id)
    invalidate_model_cache("Season")
    return jsonify({"message": "Season deleted"})


@bp.route("/teams", methods=["POST"])
@login_required
@admin_required
def create_team():
    data = request.get_json(silent=True) or {}
    team = get_services().schedule.create_team(data)
    invalidate_model_cache("Team")
    return jsonify({"team": serialize(team)}), 201


@bp.route("/games", methods=["POST"])
@login_required
@admin_required
def create_game():
    data = request.get_json(silent=True) or {}
    game = get_services().schedule.create_game(
        season_id=data.get("season_id"),
        week=data.get("week"),
        home_team_id=data.get("home_team_id"),
        away_team_id=data.get("away_team_id"),
        start_time=data.get("start_time"),
        external_id=data.get("external_id"),
        status=data.get("status"),
    )
    invalidate_model_cache("Game")
    return jsonify({"game": serialize(game)}), 201


@bp.route("/games/<game_id>/score", methods=["PUT"])
@login_required
@admin_required
def update_game_score(game_id):
    """Record a result by hand; rescore with ?rescore=true"""
    data = request.get_json(silent=True) or {}
    services = get_services()
    game = services.schedule.update_game_score(
        game_id,
        home_score=data.get("home_score"),
        away_score=data.get("away_score"),
        status=data.get("status"),
    )
    invalidate_model_cache("Game")

    body = {"game": serialize(game)}
    if request.args.get("rescore", "false").lower() == "true":
        summary = services.scoring.score_week(game["season_id"], game["week"])
        body["scoring"] = summary.to_dict()
    return jsonify(body)


@bp.route("/scoring/run", methods=["POST"])
@login_required
@admin_required
def run_scoring():
    """Score a season (or one week / one pool of it) and refresh cached standings"""
    data = request.get_json(silent=True) or {}
    services = get_services()

    season_id = data.get("season_id")
    if not season_id:
        season = services.schedule.get_current_season()
        if season is None:
            raise ValidationError("season_id is required when no current season is set")
        season_id = season["id"]
    else:
        services.schedule.get_season(season_id)

    week = data.get("week")
    if week is not None:
        try:
            week = int(week)
        except (TypeError, ValueError):
            raise ValidationError("week must be an integer")
    pool_id = data.get("pool_id")
    summary = services.scoring.score_week(season_id, week, pool_id=pool_id)

    body = {"season_id": season_id, "scoring": summary.to_dict()}
    if week is not None:
        body["standings_written"] = services.scoring.refresh_weekly_standings(
            season_id, week, pool_id=pool_id
        )
    if pool_id:
        body["pick_stats"] = services.scoring.picks_stats(pool_id, season_id, week)

    logger.info(f"{current_user_record()['email']} ran scoring for season {season_id}")
    return jsonify(body)


@bp.route("/scheduler")
@login_required
@admin_required
def scheduler_status():
    return jsonify(get_services().scheduler.get_status())


@bp.route("/scheduler/<action>", methods=["POST"])
@login_required
@admin_required
def scheduler_action(action):
    """Start, stop or run one tick of the background scheduler"""
    if action not in SCHEDULER_ACTIONS:
        raise ValidationError(f"Unknown scheduler action '{action}'")

    scheduler = get_services().scheduler
    if action == "start":
        scheduler.start()
        return jsonify({"message": "Scheduler started successfully"})

    if action == "stop":
        scheduler.stop()
        return jsonify({"message": "Scheduler stopped successfully"})

    result = scheduler.run_tick(force=True)
    return jsonify({"message": "Tick finished", "result": result})


@bp.route("/users/<user_id>/admin", methods=["PUT"])
@login_required
@admin_required
def set_user_admin(user_id):
    data = request.get_json(silent=True) or {}
    if "is_admin" not in data:
        raise ValidationError("is_admin is required")
    user = get_services().users.set_admin(current_user_record(), user_id, data["is_admin"])
    return jsonify({"user": public_user(user)})
