"""Database package for the email store."""

from .engine import create_database_engine, create_session_factory, check_database_connection, close_database_engine
from .models import Base, Email, EmailSection
from .store import EmailStore, SqlEmailStore

__all__ = [
    "create_database_engine",
    "create_session_factory",
    "check_database_connection",
    "close_database_engine",
    "Base",
    "Email",
    "EmailSection",
    "EmailStore",
    "SqlEmailStore",
]
