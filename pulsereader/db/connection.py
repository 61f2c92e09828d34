"""Database connection management."""

import logging
from contextlib import contextmanager
from typing import Dict, Generator, Iterator

import psycopg
from psycopg import errors as pg_errors
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool, PoolTimeout

from ..config import DatabaseSettings
from ..errors import DuplicateArticleError, StoreError, StoreUnavailableError

logger = logging.getLogger(__name__)

_connection_pools: Dict[DatabaseSettings, ConnectionPool] = {}


def get_connection_pool(settings: DatabaseSettings) -> ConnectionPool:
    """Get or create the connection pool for these settings."""
    pool = _connection_pools.get(settings)
    if pool is None:
        pool = ConnectionPool(
            settings.conninfo,
            min_size=1,
            max_size=4,
            timeout=10.0,
            kwargs={"row_factory": dict_row},
            open=True,
        )
        _connection_pools[settings] = pool
    return pool


@contextmanager
def get_connection(settings: DatabaseSettings) -> Generator[psycopg.Connection, None, None]:
    """Get a database connection from the pool."""
    try:
        pool = get_connection_pool(settings)
        with pool.connection() as conn:
            yield conn
    except PoolTimeout as e:
        raise StoreUnavailableError(f"Database unavailable: {e}")
    except (psycopg.OperationalError, psycopg.InterfaceError) as e:
        raise StoreUnavailableError(f"Database unavailable: {e}")


@contextmanager
def translate_errors(conn: psycopg.Connection, action: str) -> Iterator[None]:
    """Map psycopg exceptions onto the store error hierarchy.

    The open transaction is rolled back so the connection stays usable.
    """
    try:
        yield
    except psycopg.Error as e:
        if not conn.closed:
            conn.rollback()
        error = e
    else:
        return

    if isinstance(error, pg_errors.UniqueViolation):
        raise DuplicateArticleError(f"{action}: {error.diag.message_primary or error}") from error
    if isinstance(error, (psycopg.OperationalError, psycopg.InterfaceError)):
        raise StoreUnavailableError(f"{action}: {error}") from error
    logger.debug("%s failed", action, exc_info=error)
    raise StoreError(f"{action}: {error}") from error
