import logging
import os

from flask import Flask, jsonify, request
from flask_caching import Cache
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

from config import config

logger = logging.getLogger(__name__)

db = SQLAlchemy()
login_manager = LoginManager()
cache = Cache()
migrate = Migrate()


def get_real_ip():
    """
    Get the real client IP address, accounting for reverse proxies.
    Checks X-Forwarded-For, X-Real-IP, and falls back to remote_addr.
    """
    # X-Forwarded-For: client, proxy1, proxy2, ...
    if request.headers.get("X-Forwarded-For"):
        return request.headers.get("X-Forwarded-For").split(",")[0].strip()
    if request.headers.get("X-Real-IP"):
        return request.headers.get("X-Real-IP")
    return get_remote_address()


# Use Redis for rate limiting when it is reachable so limits are shared
# across workers
limiter_storage_uri = "memory://"
redis_url = os.environ.get("REDIS_URL") or os.environ.get("CACHE_REDIS_URL")
if redis_url:
    try:
        import redis

        redis_client = redis.Redis.from_url(redis_url)
        redis_client.ping()
        limiter_storage_uri = redis_url
        logger.info(f"Rate limiter using Redis storage at {redis_url}")
    except (ImportError, redis.exceptions.ConnectionError) as e:
        logger.warning(f"Redis not available for rate limiter, using memory storage: {e}")

limiter = Limiter(
    key_func=get_real_ip,
    default_limits=["10000 per day", "1000 per hour"],
    storage_uri=limiter_storage_uri,
)


def create_app(config_name=None, kv_client=None):
    """
    Build the application.

    Args:
        config_name: key into ``config.config``; defaults to $FLASK_CONFIG
        kv_client: redis client to use for the key-value backend instead of
            one built from ``KV_REDIS_URL``
    """
    app = Flask(__name__)

    # Determine configuration
    if config_name is None:
        config_name = os.environ.get("FLASK_CONFIG", "default")

    app.config.from_object(config[config_name]())
    app.json.sort_keys = False

    # Initialize extensions
    db.init_app(app)
    login_manager.init_app(app)
    cache.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    # Setup logging
    from pickem.utils.logging_config import setup_logging

    setup_logging(app)

    # Wire the storage backend and the services on top of it
    from pickem.repositories import build_repositories
    from pickem.services import build_services

    with app.app_context():
        if app.config["STORAGE_BACKEND"] == "sql":
            db.create_all()
        repositories = build_repositories(app, kv_client=kv_client)

    app.extensions["pickem_repositories"] = repositories
    app.extensions["pickem_services"] = build_services(app, repositories)

    # Bearer token authentication
    from pickem.utils.auth import init_auth

    init_auth(app)

    # Import and register blueprints
    from pickem.routes.auth import bp as auth_bp

    app.register_blueprint(auth_bp, url_prefix="/api/auth")

    from pickem.routes.api import bp as api_bp

    app.register_blueprint(api_bp, url_prefix="/api")

    from pickem.routes.pools import bp as pools_bp

    app.register_blueprint(pools_bp, url_prefix="/api/pools")

    from pickem.routes.admin import bp as admin_bp

    app.register_blueprint(admin_bp, url_prefix="/api/admin")

    # Register error handlers
    register_error_handlers(app)

    show_config_info(app)

    # Start background scheduler
    if app.config.get("SCHEDULER_ENABLED", False) and not app.config.get("TESTING"):
        app.extensions["pickem_services"].scheduler.start()

    return app


def show_config_info(app):
    """Log the storage configuration the app started with"""
    backend = app.config["STORAGE_BACKEND"]
    if backend == "kv":
        logger.info(f"Pick'em using key-value storage at {app.config['KV_REDIS_URL']}")
        return

    db_url = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if "sqlite" in db_url:
        logger.info("Pick'em using SQLite database")
    elif "postgresql" in db_url:
        logger.info("Pick'em using PostgreSQL database")
    else:
        logger.info(
            f"Pick'em using database: {db_url.split('://')[0] if '://' in db_url else 'Unknown'}"
        )


def register_error_handlers(app):
    """Register global error handlers"""
    from pickem.errors import PickemError, RepositoryError

    @app.after_request
    def after_request(response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if not app.config.get("DEBUG"):
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response

    @app.errorhandler(PickemError)
    def handle_pickem_error(error):
        if isinstance(error, RepositoryError):
            _rollback()
            app.logger.error(f"Storage failure on {request.path}: {error}")
            return jsonify({"error": "Internal server error", "reason": error.reason}), 500
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({"error": "Resource not found", "reason": "not_found"}), 404

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        return jsonify({"error": "Method not allowed", "reason": "method_not_allowed"}), 405

    @app.errorhandler(400)
    def bad_request_error(error):
        app.logger.warning(
            f"400 Bad Request: {str(error)} - Path: {request.path} - Method: {request.method}"
        )
        return jsonify({"error": "Bad request", "reason": "bad_request"}), 400

    @app.errorhandler(429)
    def too_many_requests_error(error):
        return jsonify({"error": "Too many requests", "reason": "rate_limited"}), 429

    @app.errorhandler(Exception)
    def unhandled_error(error):
        from werkzeug.exceptions import HTTPException

        if isinstance(error, HTTPException):
            return jsonify({"error": error.description, "reason": "http_error"}), error.code
        _rollback()
        app.logger.exception(f"Unhandled error on {request.method} {request.path}")
        return jsonify({"error": "Internal server error", "reason": "internal_error"}), 500


def _rollback():
    try:
        db.session.rollback()
    except Exception as e:
        logger.error(f"Session rollback failed: {e}")


from pickem import models  # noqa: F401, E402 - imported for model registration
