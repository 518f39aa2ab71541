"""
Database configuration and session management.
Uses SQLAlchemy; SQLite for development and tests, PostgreSQL for production.

Engines and session factories are built explicitly and handed to the
services that need them (see wa_gateway.wiring).
"""

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker

from wa_gateway.config import config

# Base class for all models
Base = declarative_base()


def build_engine(database_url: str = None) -> Engine:
    """Create a database engine for the given URL (defaults to config.DATABASE_URL)."""
    url = database_url or config.DATABASE_URL

    if url.startswith("sqlite"):
        return create_engine(
            url,
            # Slot holds are issued from worker threads.
            connect_args={"check_same_thread": False, "timeout": 15},
        )

    # PostgreSQL
    return create_engine(
        url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=10,
        max_overflow=20,
        echo=config.DEBUG,
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    """Create the session factory used by the stores."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine):
    """
    Initialize database - create all tables.
    Called on application startup and by scripts/bootstrap_tables.py.
    """
    # Register the models on Base.metadata before creating tables.
    from wa_gateway import db_models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def ping(engine: Engine) -> bool:
    """Run a trivial query; used by the readiness probe."""
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return True
