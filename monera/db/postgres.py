"""
Engine, sessions and raw SQL.

DATABASE_URL may point at PostgreSQL (production) or SQLite (tests).
"""

import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker

from monera.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def _build_engine(url: str):
    # Hosted providers still hand out postgres:// URLs
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)

    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False}, echo=settings.debug)

    # 5 pooled connections, 10 more under load
    return create_engine(url, pool_size=5, max_overflow=10, pool_pre_ping=True, echo=settings.debug)


engine = _build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_db_session():
    """
    One unit of work: commits when the block exits cleanly, rolls back on error.

        with get_db_session() as session:
            session.execute(text("SELECT 1"))
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def test_postgres_connection() -> bool:
    """True when a trivial query succeeds."""
    try:
        with get_db_session() as session:
            return session.execute(text("SELECT 1")).scalar() == 1
    except Exception as e:
        logger.error("Database connection failed: %s", e)
        return False


def execute_raw_sql(sql: str, params: dict = None) -> list:
    """Run a query and return rows as dicts. Used for joined listings the repository can't express."""
    with get_db_session() as session:
        result = session.execute(text(sql), params or {})
        return [dict(row._mapping) for row in result]


def in_clause(prefix: str, values) -> tuple:
    """
    Build an IN (...) fragment with one bind parameter per value.

    Returns (sql_fragment, params), e.g. ("(:sid0, :sid1)", {"sid0": .., "sid1": ..}).
    """
    values = list(values)
    params = {f"{prefix}{i}": v for i, v in enumerate(values)}
    fragment = "(" + ", ".join(f":{name}" for name in params) + ")"
    return fragment, params
