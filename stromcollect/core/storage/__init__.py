"""
Storage backends for collection data.

Provides pluggable storage implementations:
- InMemoryStorage: process-local store (tests, scratch sessions)
- SQLiteStorage: SQLAlchemy-backed SQLite file (offline field use)

All backends implement the CollectionStorage protocol.

Usage:
    from stromcollect.core.storage import SQLiteStorage, create_storage

    # Direct instantiation
    storage = SQLiteStorage(Path("./data/collections.db"))

    # Factory with config
    storage = create_storage("sqlite", {"path": "./data/collections.db"})
"""

from pathlib import Path

from .memory_storage import InMemoryStorage
from .sqlite_storage import SQLiteStorage

__all__ = [
    "InMemoryStorage",
    "SQLiteStorage",
    "create_storage",
]


def create_storage(backend: str, config: dict):
    """Factory function to create storage backend.

    Args:
        backend: Storage type ("memory", "sqlite")
        config: Backend-specific configuration

    Returns:
        Storage instance implementing CollectionStorage protocol

    Raises:
        ValueError: If backend type is unknown
    """
    if backend == "memory":
        return InMemoryStorage()
    elif backend == "sqlite":
        return SQLiteStorage(
            db_path=Path(config.get("path", "./data/collections.db")),
        )
    else:
        raise ValueError(f"Unknown storage backend: {backend}")
