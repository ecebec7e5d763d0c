# app/core/database.py
"""Connection provider: one engine per process, one session per request."""

import logging
from typing import Iterator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.core.config import DatabaseConfig, create_schema_on_startup
from app.core.exceptions import DatabaseConnectionError

logger = logging.getLogger(__name__)

Base = declarative_base()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False)

_engine: Optional[Engine] = None


def _set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def enable_sqlite_foreign_keys(engine: Engine) -> None:
    """SQLite only enforces FOREIGN KEY constraints when asked to, per connection."""
    event.listen(engine, "connect", _set_sqlite_pragma)


def acquire(config: DatabaseConfig) -> Engine:
    """Create the engine for ``config`` and prove the store is reachable.

    Raises DatabaseConnectionError for an unreachable host, rejected credentials
    or a missing database. There is no retry.
    """
    url = config.sqlalchemy_url
    connect_args = {"check_same_thread": False} if config.is_sqlite else {}
    try:
        engine = create_engine(url, connect_args=connect_args, pool_pre_ping=not config.is_sqlite)
        if config.is_sqlite:
            enable_sqlite_foreign_keys(engine)
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("Database connection error for %s: %s", config.host, e)
        raise DatabaseConnectionError(
            "Database connection failed. Please ensure the database server is running "
            f"and the {config.name} database exists."
        ) from e
    return engine


def configure_engine(engine: Engine) -> Engine:
    """Install ``engine`` as the process-wide engine and bind the session factory to it."""
    global _engine
    _engine = engine
    SessionLocal.configure(bind=engine)
    return engine


def get_engine() -> Engine:
    """Return the process-wide engine, acquiring it from the environment on first use."""
    if _engine is None:
        configure_engine(acquire(DatabaseConfig.from_env()))
    return _engine


def get_db() -> Iterator[Session]:
    """Get a database session for one request."""
    get_engine()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_all_tables(engine: Engine) -> None:
    """Create the CF_Tracker tables that do not exist yet."""
    # Import models to ensure they're registered with Base
    from app.crowdfunding import models  # noqa: F401
    from app.logging.models import QueryLog  # noqa: F401

    Base.metadata.create_all(bind=engine)


def init_db(engine: Optional[Engine] = None, config: Optional[DatabaseConfig] = None) -> Engine:
    """Acquire (or adopt) the engine at startup and create the schema when configured to."""
    config = config or DatabaseConfig.from_env()
    if engine is None:
        engine = acquire(config)
    configure_engine(engine)

    if engine.dialect.name == "sqlite" or create_schema_on_startup(config):
        create_all_tables(engine)
        logger.info("Database schema ready on %s", engine.dialect.name)
    return engine
