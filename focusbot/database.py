"""
Database wiring.
Builds engines and session factories; nothing here holds a process-wide connection.
"""
import logging
import os
from contextlib import contextmanager
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from focusbot.constants import DEFAULT_DATABASE_URL
from focusbot.exceptions import StorageFailure

logger = logging.getLogger("focusbot.database")

Base = declarative_base()


def get_database_url() -> str:
    return os.getenv("FOCUSBOT_DATABASE_URL", DEFAULT_DATABASE_URL)


def make_engine(url: str) -> Engine:
    """Create an engine; SQLite URLs get the options needed for threaded use"""
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # A single shared connection, otherwise each session sees an empty DB
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url, pool_pre_ping=True)


def make_session_factory(url: str = None) -> sessionmaker:
    """
    Create a session factory bound to a fresh engine and make sure tables exist.

    Args:
        url: Database URL (defaults to FOCUSBOT_DATABASE_URL)

    Returns:
        sessionmaker producing independent sessions
    """
    from focusbot import models  # noqa: F401  register tables with Base

    engine = make_engine(url or get_database_url())
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def unit_of_work(db: Session, operation: str) -> Iterator[Session]:
    """
    Run a block as one transaction.

    Commits on success. Any error rolls everything back; SQLAlchemy errors
    are re-raised as StorageFailure, domain errors pass through unchanged.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Storage failure during {operation}: {e}")
        raise StorageFailure(operation, str(e)) from e
    except Exception:
        db.rollback()
        raise


def get_db(request: Request) -> Iterator[Session]:
    """FastAPI dependency: one session per request from the app's factory"""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
