"""Database connection and session management."""

import logging

from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .. import config
from .models import Base

logger = logging.getLogger(__name__)


def create_db_engine(database_url: str):
    """Build an engine for the configured URL.

    SQLite connections are shared across FastAPI's worker threads, and an
    in-memory SQLite database must live on a single connection or every
    session would see its own empty database.
    """
    url = make_url(database_url)

    if url.get_backend_name() == "sqlite":
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, echo=False, **kwargs)

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
    )


engine = create_db_engine(config.DATABASE_URL)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def _describe_url(database_url: str) -> str:
    """Database location for log lines, without credentials."""
    return make_url(database_url).render_as_string(hide_password=True)


def init_database():
    """Create all tables if they don't exist."""
    Base.metadata.create_all(bind=engine)
    logger.info(f"Database initialized at {_describe_url(config.DATABASE_URL)}")


def check_database() -> bool:
    """Run a trivial query to confirm the database is reachable."""
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return True


def get_db_dependency():
    """FastAPI dependency for database sessions.

    Usage in FastAPI:
        @app.get("/something")
        def something(db: Session = Depends(get_db_dependency)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
