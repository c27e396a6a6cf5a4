"""Database access for Activity Dashboard."""

from .connection import DatabaseManager, db_manager, get_db_connection

__all__ = ["DatabaseManager", "db_manager", "get_db_connection"]
