"""
PostgreSQL connection helper.

`database.py` picks the backend from DATABASE_URL; when that URL points at
Postgres it asks this module for a thread-safe pool so each request borrows
its own connection.
"""

from psycopg2.extras import RealDictCursor
from psycopg2.pool import ThreadedConnectionPool


def normalize_pg_url(database_url):
    """Render and Heroku hand out postgres://; psycopg2 expects postgresql://"""
    if database_url.startswith("postgres://"):
        return database_url.replace("postgres://", "postgresql://", 1)
    return database_url


def get_pg_pool(database_url, minconn=1, maxconn=10):
    """
    Return a psycopg2 connection pool for the given DATABASE_URL.

    Connections hand out RealDictCursor cursors so rows can be read by
    column name, the same as sqlite3.Row on the SQLite side.

    Raises:
        psycopg2.OperationalError: if the database is unreachable.
    """
    return ThreadedConnectionPool(
        minconn,
        maxconn,
        normalize_pg_url(database_url),
        cursor_factory=RealDictCursor,
    )
