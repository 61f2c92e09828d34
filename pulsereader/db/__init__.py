"""Database management for PulseReader."""

from .articles import PostgresArticleStore
from .connection import get_connection, get_connection_pool, translate_errors
from .init import init_database, validate_connection
from .runs import RunManager
from .sources import PostgresSourceRegistry
from .topics import PostgresTopicStore

__all__ = [
    "PostgresArticleStore",
    "PostgresSourceRegistry",
    "PostgresTopicStore",
    "RunManager",
    "get_connection",
    "get_connection_pool",
    "init_database",
    "translate_errors",
    "validate_connection",
]
