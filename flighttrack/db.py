"""Database configuration and helpers for the flighttrack engine."""

from __future__ import annotations

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from flighttrack.config import settings

DATABASE_URL = settings.database_url

logger = logging.getLogger("flighttrack.db")


def make_engine(url: str) -> Engine:
    """Create an engine, allowing SQLite connections to cross worker threads."""

    return create_engine(
        url,
        connect_args={"check_same_thread": False} if url.startswith("sqlite") else {},
    )


engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def init_db(bind: Engine | None = None) -> None:
    """Create database tables if they do not exist."""

    import flighttrack.db_models  # noqa: F401 - models are imported for side effects

    target = bind or engine
    logger.debug("Ensuring tables exist on %s", target.url)
    Base.metadata.create_all(bind=target)
