"""
Record Store Factory
Creates the record store selected by configuration
"""
from typing import Dict, Optional, Type

import structlog

from challengehub.core.config import STORAGE_BACKEND, MONGODB_TRANSACTIONS
from challengehub.services.store.base import RecordStore
from challengehub.services.store.memory import InMemoryRecordStore
from challengehub.services.store.mongo import MongoRecordStore

logger = structlog.get_logger(__name__)


class RecordStoreFactory:
    """
    Factory for record store instances.
    Keeps one store per backend for the lifetime of the process.
    """

    # Registry of available backends
    _stores: Dict[str, Type[RecordStore]] = {
        "mongo": MongoRecordStore,
        "memory": InMemoryRecordStore,
    }

    # Cached store instances
    _instances: Dict[str, RecordStore] = {}

    @classmethod
    def get_available_backends(cls) -> list:
        """Get list of available backend IDs"""
        return list(cls._stores.keys())

    @classmethod
    def get_store(cls, backend: Optional[str] = None) -> RecordStore:
        """
        Get the record store for a backend.

        Args:
            backend: Backend identifier ("mongo" or "memory"), defaults to STORAGE_BACKEND

        Returns:
            Record store instance

        Raises:
            ValueError: If backend is not registered
        """
        backend = backend or STORAGE_BACKEND
        if backend not in cls._stores:
            raise ValueError(f"Unknown storage backend: {backend}. Available: {cls.get_available_backends()}")

        if backend in cls._instances:
            return cls._instances[backend]

        if backend == "mongo":
            # Imported here so the memory backend never touches the driver setup
            from challengehub.database import Database

            instance = MongoRecordStore(Database.get_db(), use_transactions=MONGODB_TRANSACTIONS)
        else:
            instance = InMemoryRecordStore()

        cls._instances[backend] = instance
        logger.info("record_store_created", backend=backend)
        return instance

    @classmethod
    def clear_cache(cls):
        """Drop cached instances (used on shutdown)"""
        cls._instances.clear()


def get_record_store() -> RecordStore:
    """Dependency to get the configured record store"""
    return RecordStoreFactory.get_store()
