"""Opening the database connection and creating its tables."""

from __future__ import annotations

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import SQLAlchemyError

from shortlink.config import Config, ConfigError, DatabaseConfig, get_config
from shortlink.entities import Base

logger = logging.getLogger(__name__)

_SQLITE_DRIVERS = frozenset({"sqlite", "sqlite3"})


def build_url(database: DatabaseConfig) -> URL:
    """Build the connection URL for *database*.

    PostgreSQL is used unless the driver names SQLite, in which case the
    database name is the file path.
    """
    if database.driver.lower() in _SQLITE_DRIVERS:
        return URL.create("sqlite", database=database.name or None)
    query: dict[str, str] = {}
    if database.ssl_mode:
        query["sslmode"] = database.ssl_mode
    if database.timezone:
        query["options"] = f"-c TimeZone={database.timezone}"
    return URL.create(
        "postgresql",
        username=database.username or None,
        password=database.password or None,
        host=database.host or None,
        port=database.port or None,
        database=database.name or None,
        query=query,
    )


def open_connection(config: Config | None = None) -> Engine:
    """Create an engine for the configured database and check that it connects."""
    if config is None:
        config = get_config()
    if config.database is None:
        raise ConfigError("database configuration is missing")
    url = build_url(config.database)
    logger.info("Connecting to database with DSN: %s", url.render_as_string(hide_password=True))
    try:
        engine = create_engine(url)
        with engine.connect():
            pass
    except (SQLAlchemyError, ImportError) as exc:
        logger.error("Failed to connect to database: %s", exc)
        raise
    logger.info("Database connection established successfully")
    return engine


def run_migration(engine: Engine | None = None) -> None:
    """Create any missing tables."""
    if engine is None:
        engine = open_connection()
    try:
        Base.metadata.create_all(engine)
    except SQLAlchemyError as exc:
        logger.error("Failed to migrate database: %s", exc)
        raise
    logger.info("Database migration completed successfully!")