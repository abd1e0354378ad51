from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate, upgrade
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import event, inspect
import logging

from constants import ALEMBIC_CONF, ALEMBIC_DIR

# Retrieve main logger
logger = logging.getLogger("main")

db = SQLAlchemy()
migrate = Migrate()


# Alembic functions
def get_alembic_cfg():
    cfg = Config(ALEMBIC_CONF)
    cfg.set_main_option("script_location", ALEMBIC_DIR)
    return cfg


def get_current_db_version():
    with db.engine.connect() as connection:
        context = MigrationContext.configure(connection)
        return context.get_current_revision() or "0"


def is_migration_needed():
    latest_revision = ScriptDirectory.from_config(get_alembic_cfg()).get_current_head()
    current_revision = get_current_db_version()
    if current_revision != latest_revision:
        logger.info(f"Database migration needed, from {current_revision} to {latest_revision}")
        return True
    logger.info(f"Database version is up to date ({current_revision})")
    return False


def to_dict(db_results, skip=()):
    return {
        attr.columns[0].name: getattr(db_results, attr.key)
        for attr in db_results.__mapper__.column_attrs
        if attr.key not in skip
    }


def is_postgres():
    """True when the bound engine speaks PostgreSQL (full text search, partial indexes)."""
    return db.engine.dialect.name == "postgresql"


def init_db(app, auto_create=True):
    """
    Prepare the database of an app.

    With auto_create the tables are created from the models (development and
    tests); otherwise pending Alembic migrations are applied.
    """
    with app.app_context():
        # Ensure foreign keys are enforced when a SQLite connection is opened
        @event.listens_for(db.engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            import sqlite3
            if not isinstance(dbapi_connection, sqlite3.Connection):
                return

            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON;")
            cursor.execute("PRAGMA busy_timeout=30000;")
            cursor.close()

        if auto_create:
            if not inspect(db.engine).has_table("versions"):
                logger.info("Initializing database tables...")
            db.create_all()
            return

        if is_migration_needed():
            upgrade(directory=ALEMBIC_DIR)
            logger.info("Database migration applied successfully.")
