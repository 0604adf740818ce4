import os
import secrets
import warnings

from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(basedir, ".env"))


def _env_list(name, default):
    """Read a comma separated list of ints from the environment"""
    raw = os.environ.get(name)
    if not raw:
        return default
    return [int(part) for part in raw.split(",") if part.strip()]


class Config:
    # Generate a secure key if not provided (with a warning)
    _secret_key = os.environ.get("SECRET_KEY")

    if not _secret_key:
        _secret_key = secrets.token_urlsafe(32)
        warnings.warn(
            "SECRET_KEY not set! Using auto-generated key. "
            "Issued bearer tokens will stop working on app restart. "
            "Run 'python3 generate_secrets.py' to generate a secure key.",
            UserWarning,
        )

    SECRET_KEY = _secret_key

    # Database configuration - built from environment at initialization
    def __init__(self):
        """Initialize configuration with dynamic database URI"""
        self.SQLALCHEMY_DATABASE_URI = self._build_database_uri()

    def _build_database_uri(self):
        """Build database URI from environment variables"""
        database_url = os.environ.get("DATABASE_URL")

        if database_url:
            return database_url

        db_type = os.environ.get("DB_TYPE", "sqlite")

        if db_type.lower() == "postgresql":
            db_host = os.environ.get("DB_HOST") or "localhost"
            db_port = os.environ.get("DB_PORT") or "5432"
            db_name = os.environ.get("DB_NAME") or "pickem_db"
            db_user = os.environ.get("DB_USER") or "pickem_user"
            db_password = os.environ.get("DB_PASSWORD") or "pickem_password"

            return f"postgresql+psycopg://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"
        else:
            # Default to SQLite for development
            return "sqlite:///" + os.path.join(basedir, "pickem.db")

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Storage backend: "sql" (SQLAlchemy) or "kv" (redis documents)
    STORAGE_BACKEND = os.environ.get("STORAGE_BACKEND", "sql").lower()
    KV_REDIS_URL = os.environ.get("KV_REDIS_URL", "redis://localhost:6379/1")
    KV_KEY_PREFIX = os.environ.get("KV_KEY_PREFIX", "pickem")

    # Score feed configuration
    SCORE_PROVIDER_URL = (
        os.environ.get("SCORE_PROVIDER_URL")
        or "https://site.api.espn.com/apis/site/v2/sports/football/nfl"
    )
    SCORE_PROVIDER_TIMEOUT = float(os.environ.get("SCORE_PROVIDER_TIMEOUT") or 15)

    # Application settings
    TOKEN_MAX_AGE = int(os.environ.get("TOKEN_MAX_AGE") or 7 * 24 * 3600)  # seconds
    INVITE_TOKEN_EXPIRY = int(os.environ.get("INVITE_TOKEN_EXPIRY") or 168)  # hours

    # Caching configuration
    CACHE_TYPE = os.environ.get("CACHE_TYPE", "RedisCache")
    CACHE_DEFAULT_TIMEOUT = int(
        os.environ.get("CACHE_DEFAULT_TIMEOUT", 300)
    )  # 5 minutes
    CACHE_REDIS_URL = os.environ.get("CACHE_REDIS_URL", "redis://localhost:6379/0")
    CACHE_KEY_PREFIX = "pickem:cache:"

    # Rate limiting
    RATELIMIT_ENABLED = os.environ.get("RATELIMIT_ENABLED", "True").lower() == "true"
    PICK_RATE_LIMIT = os.environ.get("PICK_RATE_LIMIT", "60 per minute")

    # Scheduler configuration
    SCHEDULER_ENABLED = os.environ.get("SCHEDULER_ENABLED", "True").lower() == "true"
    SCHEDULER_INTERVAL_SECONDS = int(os.environ.get("SCHEDULER_INTERVAL_SECONDS") or 300)
    SCHEDULER_TIMEZONE = os.environ.get("SCHEDULER_TIMEZONE", "America/New_York")
    # Python weekday numbers: Monday=0 ... Sunday=6
    SCHEDULER_GAME_DAYS = _env_list("SCHEDULER_GAME_DAYS", [0, 3, 5, 6])
    SCHEDULER_ACTIVE_HOURS = _env_list("SCHEDULER_ACTIVE_HOURS", [13, 23])
    SCHEDULER_SEASON_MONTHS = _env_list("SCHEDULER_SEASON_MONTHS", [9, 10, 11, 12, 1, 2])

    # Logging configuration
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_TO_CONSOLE = os.environ.get("LOG_TO_CONSOLE", "True").lower() == "true"
    LOG_TO_FILE = os.environ.get("LOG_TO_FILE", "True").lower() == "true"
    LOG_DIR = os.environ.get("LOG_DIR", "logs")

    # Environment detection
    FLASK_ENV = os.environ.get("FLASK_ENV", "development")
    DEBUG = FLASK_ENV == "development"
    TESTING = False


class DevelopmentConfig(Config):
    """Development configuration with helpful defaults"""

    DEBUG = True
    SQLALCHEMY_ECHO = os.environ.get("SQLALCHEMY_ECHO", "False").lower() == "true"

    def __init__(self):
        super().__init__()
        # Fallback to SimpleCache if Redis isn't available in development
        try:
            import redis

            redis_client = redis.Redis.from_url(self.CACHE_REDIS_URL)
            redis_client.ping()
        except (ImportError, redis.exceptions.ConnectionError):
            self.CACHE_TYPE = "SimpleCache"
            warnings.warn(
                "Redis not available, falling back to SimpleCache for development.",
                UserWarning,
            )


class ProductionConfig(Config):
    """Production configuration with security focus"""

    DEBUG = False

    # In production, require explicit environment variables
    def __init__(self):
        super().__init__()  # Call parent __init__ to build database URI

        if not os.environ.get("SECRET_KEY"):
            warnings.warn(
                "PRODUCTION WARNING: SECRET_KEY not explicitly set! "
                "Using auto-generated key is not recommended for production.",
                UserWarning,
            )


class TestingConfig(Config):
    """Testing configuration"""

    TESTING = True
    DEBUG = False
    STORAGE_BACKEND = "sql"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    CACHE_TYPE = "NullCache"
    RATELIMIT_ENABLED = False
    SCHEDULER_ENABLED = False
    LOG_TO_FILE = False
    LOG_LEVEL = "WARNING"
    SECRET_KEY = "testing-secret-key"

    def __init__(self):
        # Keep the in-memory database regardless of the environment
        pass


class KvTestingConfig(TestingConfig):
    """Testing against the key-value backend"""

    STORAGE_BACKEND = "kv"
    KV_KEY_PREFIX = "pickem-test"


# Configuration mapping
config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "testing_kv": KvTestingConfig,
    "default": DevelopmentConfig,
}
