"""
Data layer for the opportunity engine.

Provides database connections, data models, and repository classes
for data access throughout the application.

Submodules:
- database: MongoDB connection management and transactions
- models: Pydantic data models/schemas
- repositories: Database operations and queries
"""

from .database import (
    DatabaseManager,
    create_indexes,
    get_database_manager,
    get_sync_db,
)

__all__ = [
    "DatabaseManager",
    "create_indexes",
    "get_database_manager",
    "get_sync_db",
]
