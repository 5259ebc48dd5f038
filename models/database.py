"""
Database configuration and session management.

This module sets up the SQLAlchemy engine from the `DATABASE_URL` setting (a
local SQLite file by default).  Every clinic record (queue, sessions, notes,
activity feed, procurement) lives in this one store.

`get_db` is the FastAPI dependency.  Service functions commit their own writes.
"""

from __future__ import annotations

import uuid
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from config import DATABASE_URL

# The `check_same_thread` argument is needed for SQLite in multithreaded FastAPI applications.
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for declarative class definitions.
Base = declarative_base()


def new_id() -> str:
    """Primary key factory; records are keyed by UUID strings."""
    return str(uuid.uuid4())


def get_db() -> Generator[Session, None, None]:
    """Yield a session for one request and close it afterwards.

    Service functions commit their own writes, so nothing is committed here.
    """
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()
