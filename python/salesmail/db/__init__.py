"""Database module for salesmail.

Provides engine creation, readiness probing, session management and
transaction helpers.
"""

from salesmail.db.engine import create_db_engine, ping, wait_for_database
from salesmail.db.session import create_session_factory, get_db, transaction

__all__ = [
    "create_db_engine",
    "create_session_factory",
    "get_db",
    "ping",
    "transaction",
    "wait_for_database",
]
