"""
ModRepo - Mod Version Catalog API
Application factory and startup
"""
import os
import sys
import logging

import flask.cli
flask.cli.show_server_banner = lambda *args: None

from flask import Flask
import structlog

from constants import ALEMBIC_DIR, BUILD_VERSION
from db import db, migrate, init_db
from exceptions import register_exception_handlers
from metrics import init_metrics
from rate_limiter import limiter
from routes.versions import versions_bp
from services.version_service import build_version_service
from settings import load_settings, merge_settings, verify_settings
from utils import ColoredFormatter, FilterRemoveDateFromWerkzeugLogs, sanitize_sensitive_data


def configure_logging(level=None, log_format=None):
    """
    Colored stdlib console logging with structlog on top.

    LOG_LEVEL=debug enables debug output, LOG_FORMAT=json renders structlog
    events as JSON lines.
    """
    level = level or os.environ.get('LOG_LEVEL', 'info')
    log_format = log_format or os.environ.get('LOG_FORMAT', 'console')

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ColoredFormatter(
        '[%(asctime)s.%(msecs)03d] %(levelname)s (%(module)s) %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    ))
    logging.basicConfig(level=logging.DEBUG if level == 'debug' else logging.INFO, handlers=[handler])

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer() if log_format == 'json' else structlog.dev.ConsoleRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Hide dates already printed by the formatter from http access logs
    logging.getLogger('werkzeug').addFilter(FilterRemoveDateFromWerkzeugLogs())
    logging.getLogger('alembic.runtime.migration').setLevel(logging.WARNING)


configure_logging()
logger = structlog.get_logger('main')


def create_app(settings=None, config=None, **services):
    """
    Application factory

    Args:
        settings: Settings dict merged over the defaults, read from the YAML file when None
        config: Extra Flask config values
        **services: Collaborators handed to build_version_service (cache, rate_limiter, storage, clock)
    """
    settings = merge_settings(settings) if settings is not None else load_settings()
    valid, errors = verify_settings(settings)
    if not valid:
        raise ValueError(f"Invalid settings: {errors}")

    app = Flask(__name__)
    app.config["SQLALCHEMY_DATABASE_URI"] = settings["database"]["url"]
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config["RATELIMIT_STORAGE_URI"] = settings["limits"]["http_storage_uri"]
    app.config["RATELIMIT_DEFAULT"] = "; ".join(settings["limits"]["http_default"])
    app.config["MODREPO_SETTINGS"] = settings
    if config:
        app.config.update(config)

    logger.info("Loaded settings", settings=sanitize_sensitive_data(settings))

    # Initialize components
    db.init_app(app)
    migrate.init_app(app, db, directory=ALEMBIC_DIR)
    limiter.init_app(app)

    # Register exception handlers
    register_exception_handlers(app)

    # Register blueprints
    app.register_blueprint(versions_bp)

    # Initialize metrics
    init_metrics(app)

    # One service, and so one query cache, per application
    app.extensions["version_service"] = build_version_service(settings, **services)

    init_db(app, auto_create=settings["database"].get("auto_create", True))

    return app


if __name__ == '__main__':
    app = create_app()
    logger.info(f'Build Version: {BUILD_VERSION}')
    logger.info('Starting server on port 8080...')
    app.run(debug=False, use_reloader=False, host="0.0.0.0", port=8080)
