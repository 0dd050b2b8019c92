"""Database connection and session management."""

from typing import Generator

from sqlalchemy import create_engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.config.settings import get_settings

# Get database URL from environment (.env or DATABASE_URL) with SQLite default
DATABASE_URL = get_settings().database_url

# Create engine. Only an in-memory SQLite database shares one connection (StaticPool);
# a file database needs a connection, and so a transaction, per session.
if DATABASE_URL.startswith("sqlite"):
    if make_url(DATABASE_URL).database in (None, "", ":memory:"):
        engine = create_engine(
            DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(
            DATABASE_URL,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
else:
    engine = create_engine(DATABASE_URL, pool_pre_ping=True)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


__all__ = [
    "engine",
    "SessionLocal",
    "get_db",
]
