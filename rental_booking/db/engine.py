"""
SQLAlchemy engine singleton.

PostgreSQL gets a pooled engine sized for concurrent booking requests.
SQLite (local development and tests) gets a plain engine that may be shared
across threads.
"""

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from rental_booking.config import DATABASE_URL

if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL is not set.")


def build_engine(url: str) -> Engine:
    """
    Create an engine for ``url`` with settings appropriate to its backend.

    Args:
        url: SQLAlchemy database URL

    Returns:
        Engine: Configured engine
    """
    if url.startswith("sqlite"):
        return create_engine(
            url,
            future=True,
            connect_args={"check_same_thread": False, "timeout": 30},
            echo=False,
        )

    return create_engine(
        url,
        future=True,
        pool_size=10,  # Number of connections to maintain in the pool
        max_overflow=20,  # Additional connections when pool is exhausted
        pool_pre_ping=True,  # Detect stale connections before use
        pool_recycle=3600,
        echo=False,
    )


engine: Engine = build_engine(DATABASE_URL)


def check_engine_health(target: Engine = engine) -> bool:
    """
    Check if the database is reachable.

    Used by the /ready endpoint before the service accepts traffic.

    Returns:
        bool: True if a trivial query succeeds, False otherwise
    """
    try:
        with target.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
