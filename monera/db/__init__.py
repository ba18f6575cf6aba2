"""
Database module - SQLAlchemy engine, table definitions and repositories.
"""
from monera.db.postgres import get_db_session, execute_raw_sql, test_postgres_connection
from monera.db.repository import db
from monera.db.schema import init_schema, utcnow

__all__ = [
    "db",
    "get_db_session",
    "execute_raw_sql",
    "init_schema",
    "test_postgres_connection",
    "utcnow",
]
