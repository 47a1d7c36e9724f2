"""
db/connection.py
----------------
PostgreSQL connections for the document store.

Repositories borrow short-lived connections from a shared pool; the change
listener owns one long-lived autocommit connection outside the pool.
"""

import psycopg2
from psycopg2 import extensions, pool

from config import DATABASE_URL
from utils.logger import get_logger

logger = get_logger(__name__)

_pool: pool.ThreadedConnectionPool | None = None


def init_pool(min_conn: int = 1, max_conn: int = 5, dsn: str = DATABASE_URL) -> None:
    """
    Open the shared pool. Calling it again while the pool is open is a no-op.

    Raises:
        psycopg2.OperationalError: If the database is unreachable.
    """
    global _pool
    if _pool is not None:
        return
    try:
        _pool = pool.ThreadedConnectionPool(min_conn, max_conn, dsn)
    except psycopg2.OperationalError as e:
        logger.error(f"Cannot reach the document store: {e}")
        raise
    logger.info(f"Document store pool ready ({min_conn}-{max_conn} connections).")


def get_connection():
    """
    Borrow a pooled connection; hand it back with release_connection().

    Raises:
        RuntimeError: If init_pool() has not run.
    """
    if _pool is None:
        raise RuntimeError("Database pool not initialized. Call init_pool() first.")
    return _pool.getconn()


def release_connection(conn) -> None:
    if _pool is not None:
        _pool.putconn(conn)


def open_listen_connection(dsn: str = DATABASE_URL):
    """A dedicated autocommit connection; LISTEN only delivers outside a transaction."""
    conn = psycopg2.connect(dsn)
    conn.set_isolation_level(extensions.ISOLATION_LEVEL_AUTOCOMMIT)
    return conn


def close_pool() -> None:
    global _pool
    if _pool is None:
        return
    _pool.closeall()
    _pool = None
    logger.info("Document store pool closed.")
