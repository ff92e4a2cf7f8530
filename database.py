import logging
import sqlite3
import threading
from contextlib import contextmanager
from urllib.parse import urlsplit, urlunsplit

import psycopg2

from database_pg import get_pg_pool
from models.customer import Customer

logger = logging.getLogger(__name__)

DEFAULT_SQLITE_PATH = 'customers.db'
DEFAULT_POOL_SIZE = 10

# Driver exceptions that handlers turn into a 500 with the raw message
DB_ERRORS = (sqlite3.Error, psycopg2.Error)


class DatabaseConfigError(RuntimeError):
    """Raised when DATABASE_URL cannot be used to open a database."""


def describe_database_url(database_url):
    """Return DATABASE_URL with the password masked, for logging"""
    if not database_url:
        return '<unset>'
    parts = urlsplit(database_url)
    if not parts.password:
        return database_url
    netloc = parts.netloc.replace(f":{parts.password}@", ":****@", 1)
    return urlunsplit(parts._replace(netloc=netloc))


def parse_database_url(database_url):
    """
    Work out which backend a DATABASE_URL points at.

    Returns a (backend, target) tuple: ('postgres', url) or ('sqlite', path).
    An empty URL falls back to the local SQLite file.
    """
    if not database_url:
        return 'sqlite', DEFAULT_SQLITE_PATH

    if database_url.startswith(('postgres://', 'postgresql://')):
        return 'postgres', database_url

    if database_url.startswith('sqlite://'):
        path = database_url[len('sqlite://'):]
        if path.startswith('/'):
            path = path[1:]
        if not path:
            raise DatabaseConfigError(f'No SQLite path in DATABASE_URL: {database_url}')
        return 'sqlite', path

    raise DatabaseConfigError(
        f'Unsupported DATABASE_URL scheme: {describe_database_url(database_url)}'
    )


class Database:
    """
    Storage handle for the customers table.

    Built once at startup and handed to the Flask app. PostgreSQL requests
    borrow a connection from a pool; SQLite shares a single connection and
    serializes access to it.
    """

    def __init__(self, database_url=None, pool_size=DEFAULT_POOL_SIZE):
        self.database_url = database_url
        self.pool_size = pool_size
        self.backend, self._target = parse_database_url(database_url)
        self.placeholder = '%s' if self.backend == 'postgres' else '?'
        self._pool = None
        self._conn = None
        self._lock = threading.Lock()
        # psycopg2 pools raise instead of waiting once every connection is out
        self._pool_slots = threading.BoundedSemaphore(pool_size)

    @property
    def is_postgres(self):
        return self.backend == 'postgres'

    def connect(self):
        """Open the connection and make sure the customers table exists"""
        if self.is_postgres:
            self._pool = get_pg_pool(self._target, maxconn=self.pool_size)
        else:
            self._conn = sqlite3.connect(self._target, timeout=20.0, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
        self.init_schema()
        logger.info("Connected to %s database at %s", self.backend,
                    describe_database_url(self.database_url) if self.database_url else self._target)
        return self

    def close(self):
        if self._pool is not None:
            self._pool.closeall()
            self._pool = None
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self.connect()

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @contextmanager
    def _cursor(self):
        """Yield a cursor; commit when the block succeeds, roll back when it raises"""
        if self.is_postgres:
            if self._pool is None:
                raise DatabaseConfigError('Database is not connected')
            with self._pool_slots:
                conn = self._pool.getconn()
                try:
                    with conn.cursor() as cursor:
                        yield cursor
                    conn.commit()
                except Exception:
                    conn.rollback()
                    raise
                finally:
                    self._pool.putconn(conn)
        else:
            if self._conn is None:
                raise DatabaseConfigError('Database is not connected')
            with self._lock:
                cursor = self._conn.cursor()
                try:
                    yield cursor
                    self._conn.commit()
                except Exception:
                    self._conn.rollback()
                    raise
                finally:
                    cursor.close()

    def _sql(self, statement):
        return statement.replace('?', self.placeholder)

    def init_schema(self):
        """Create the customers table if it is missing"""
        id_column = 'SERIAL PRIMARY KEY' if self.is_postgres else 'INTEGER PRIMARY KEY AUTOINCREMENT'
        with self._cursor() as cursor:
            cursor.execute(f'''
                CREATE TABLE IF NOT EXISTS customers (
                    id {id_column},
                    name TEXT,
                    email TEXT,
                    status TEXT
                )
            ''')

    # ==================== CUSTOMER FUNCTIONS ====================

    def add_customer(self, name, email, status):
        """Insert a customer and return the id the database assigned"""
        with self._cursor() as cursor:
            if self.is_postgres:
                cursor.execute(
                    'INSERT INTO customers (name, email, status) VALUES (%s, %s, %s) RETURNING id',
                    (name, email, status)
                )
                return cursor.fetchone()['id']
            cursor.execute(
                'INSERT INTO customers (name, email, status) VALUES (?, ?, ?)',
                (name, email, status)
            )
            return cursor.lastrowid

    def get_all_customers(self):
        with self._cursor() as cursor:
            cursor.execute('SELECT id, name, email, status FROM customers ORDER BY id')
            return [Customer.from_row(row) for row in cursor.fetchall()]

    def get_customer_by_id(self, customer_id):
        """Return the customer with this id, or None when no row matches"""
        with self._cursor() as cursor:
            cursor.execute(
                self._sql('SELECT id, name, email, status FROM customers WHERE id = ?'),
                (customer_id,)
            )
            row = cursor.fetchone()
        return Customer.from_row(row) if row else None

    def update_customer(self, customer_id, name, email, status):
        with self._cursor() as cursor:
            cursor.execute(
                self._sql('UPDATE customers SET name = ?, email = ?, status = ? WHERE id = ?'),
                (name, email, status, customer_id)
            )
            return cursor.rowcount > 0

    def delete_customer(self, customer_id):
        with self._cursor() as cursor:
            cursor.execute(self._sql('DELETE FROM customers WHERE id = ?'), (customer_id,))
            return cursor.rowcount > 0
