"""Database infrastructure.

This module provides:
- Database: a configured aiosqlite connection wrapper
- DatabaseManager: centralized database access
- Schemas: table definitions
"""

from milestones.core.database.manager import (
    Database,
    DatabaseManager,
    get_db_manager,
    init_databases,
    shutdown_databases,
)

__all__ = [
    "Database",
    "DatabaseManager",
    "get_db_manager",
    "init_databases",
    "shutdown_databases",
]
