import os

from dotenv import load_dotenv

load_dotenv()

_TRUTHY = ('true', '1', 'yes', 'on')


def env_flag(name, default):
    """Read a boolean switch such as ``BEANBASE_AUDIT_ENABLED=off``."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


def env_int(name, default):
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def database_uri(env_name, fallback):
    uri = os.getenv(env_name, fallback)
    # SQLAlchemy dropped the postgres:// alias
    if uri.startswith("postgres://"):
        uri = "postgresql://" + uri[len("postgres://"):]
    return uri


class Config:
    """Settings shared by every environment."""

    DEBUG = env_flag("DEBUG", False)
    TESTING = False

    SQLALCHEMY_DATABASE_URI = database_uri("DATABASE_URI", "sqlite:///beanbase.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {'pool_pre_ping': True}

    # Bean helpers
    BEANBASE_AUDIT_ENABLED = env_flag("BEANBASE_AUDIT_ENABLED", True)
    BEANBASE_ATOMIC_RELATIONS = env_flag("BEANBASE_ATOMIC_RELATIONS", True)
    BEANBASE_TIMESTAMP_FORMAT = os.getenv("BEANBASE_TIMESTAMP_FORMAT", "%Y-%m-%d %H:%M:%S")

    # Flask app logger
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("LOG_FILE", "/tmp/beanbase_logs/beanbase.log")
    LOG_MAX_BYTES = env_int("LOG_MAX_BYTES", 10 * 1024 * 1024)
    LOG_BACKUP_COUNT = env_int("LOG_BACKUP_COUNT", 5)

    # crud/relation/validation/store/audit category files
    LOGGING_BASE_DIR = os.getenv("LOGGING_BASE_DIR", "/tmp/beanbase_logs")
    LOGGING_ROTATION_WHEN = os.getenv("LOGGING_ROTATION_WHEN", "midnight")
    LOGGING_ROTATION_BACKUP_COUNT = env_int("LOGGING_ROTATION_BACKUP_COUNT", 7)
    LOGGING_DEFAULT_LEVEL = os.getenv("LOGGING_DEFAULT_LEVEL", "INFO")
    LOGGING_CONSOLE_ENABLED = env_flag("LOGGING_CONSOLE_ENABLED", True)
    LOGGING_JSON_FORMAT = env_flag("LOGGING_JSON_FORMAT", False)

    @staticmethod
    def init_app(app):
        os.makedirs(app.config["LOGGING_BASE_DIR"], exist_ok=True)


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = database_uri("DEVELOPMENT_DATABASE_URI", "sqlite:///beanbase-dev.db")
    LOG_LEVEL = os.getenv("DEV_LOG_LEVEL", "DEBUG")
    LOGGING_DEFAULT_LEVEL = LOG_LEVEL


class TestingConfig(Config):
    """In-memory SQLite, no console mirror."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URI", "sqlite:///:memory:")
    SQLALCHEMY_ENGINE_OPTIONS = {}
    LOGGING_CONSOLE_ENABLED = False


class ProductionConfig(Config):
    SQLALCHEMY_DATABASE_URI = database_uri("DATABASE_URI", "postgresql://beanbase@localhost/beanbase")
    LOG_LEVEL = os.getenv("PROD_LOG_LEVEL", "WARNING")


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': ProductionConfig,
}
