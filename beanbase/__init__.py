import logging
import os
from logging.handlers import RotatingFileHandler

from dotenv import load_dotenv
from flask import Flask

from beanbase.utils.logging_utils import get_logger, init_logger

# Load environment variables from .env file
load_dotenv()

from .config import config, Config
from .extensions import db, ma
from .models import *
from .errors import ArgumentError, BeanBaseError, CrudError, RelationError, ValidationError
from .facade import BeanBase, get_beanbase
from .orm import BeanStore, SQLAlchemyBeanStore
from .commands import bean_cli, drop_db_command, init_db_command

__version__ = "0.3.0"


def configure_logging(app):
    log_file = app.config.get('LOG_FILE', '/tmp/beanbase_logs/beanbase.log')
    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    if not app.logger.handlers:
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=app.config.get('LOG_MAX_BYTES', 10485760),  # 10MB default
            backupCount=app.config.get('LOG_BACKUP_COUNT', 5)
        )
        formatter = logging.Formatter(
            "[%(asctime)s] %(levelname)s in %(module)s: %(message)s"
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(getattr(logging, app.config.get('LOG_LEVEL', 'INFO')))
        app.logger.addHandler(file_handler)

    app.logger.setLevel(getattr(logging, app.config.get('LOG_LEVEL', 'INFO')))
    app.logger.info("Logging configured with level: %s", app.config.get('LOG_LEVEL', 'INFO'))

    # Categorised loggers share the same application config.
    init_logger(app)

    # SQLAlchemy's own loggers follow APP_LOG_LEVEL_SQLALCHEMY=DEBUG|INFO|...
    sqlalchemy_level = os.getenv('APP_LOG_LEVEL_SQLALCHEMY', '').strip().upper()
    if sqlalchemy_level in ('CRITICAL', 'ERROR', 'WARNING', 'INFO', 'DEBUG'):
        logging.getLogger('sqlalchemy.engine').setLevel(getattr(logging, sqlalchemy_level))


def create_app(config_name=None, **overrides):
    # Determine configuration based on environment variable or parameter
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'default')

    config_class = config.get(config_name, Config)

    app = Flask(__name__)
    app.config.from_object(config_class)
    app.config.update(overrides)

    config_class.init_app(app)

    configure_logging(app)
    app.logger.info("Using config: %s", config_class.__name__)
    get_logger("app").info("Application startup with config %s", config_class.__name__)

    db.init_app(app)
    ma.init_app(app)

    app.extensions["beanbase"] = BeanBase(
        SQLAlchemyBeanStore(audit=app.config.get("BEANBASE_AUDIT_ENABLED", True)),
        atomic=app.config.get("BEANBASE_ATOMIC_RELATIONS", True),
        timestamp_format=app.config.get("BEANBASE_TIMESTAMP_FORMAT", "%Y-%m-%d %H:%M:%S"),
    )

    app.cli.add_command(init_db_command)
    app.cli.add_command(drop_db_command)
    app.cli.add_command(bean_cli)

    return app
