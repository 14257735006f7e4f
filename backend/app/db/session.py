"""Database session management."""

import logging
from collections.abc import Generator
from typing import Annotated

from fastapi import Depends
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import settings
from app.core.exceptions import ConflictError

logger = logging.getLogger(__name__)


def build_engine(database_url: str, **overrides) -> Engine:
    """Create an engine with pool settings suited to the backend."""
    connect_args = {}
    pool_config = {}

    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        pool_config = {
            "pool_pre_ping": True,
            "pool_recycle": 1800,  # Recycle connections every 30 minutes
        }
    else:
        pool_config = {
            "pool_size": settings.db_pool_size,
            "max_overflow": settings.db_max_overflow,
            "pool_pre_ping": True,
            "pool_recycle": 3600,
        }
    pool_config.update(overrides.pop("pool_config", {}))
    connect_args.update(overrides.pop("connect_args", {}))

    new_engine = create_engine(
        database_url,
        connect_args=connect_args,
        echo=overrides.pop("echo", False),
        **pool_config,
        **overrides,
    )

    # Enable foreign key enforcement for SQLite
    if database_url.startswith("sqlite"):
        @event.listens_for(new_engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return new_engine


engine = build_engine(settings.database_url, echo=settings.debug and settings.log_level == "DEBUG")

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Get database session dependency.

    Anything left uncommitted when the request ends is rolled back.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def commit_or_conflict(db: Session, what: str) -> None:
    """Commit; a uniqueness race surfaces as CONFLICT and is safe to retry."""
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Integrity error while saving {what}: {e.orig}")
        raise ConflictError(
            f"Could not save {what} due to a concurrent update, please retry"
        ) from e


def dispose_engine() -> None:
    """Release pooled connections (called on application shutdown)."""
    engine.dispose()
    logger.info("Database connection pool disposed")


# Type alias for dependency injection
DbSession = Annotated[Session, Depends(get_db)]
