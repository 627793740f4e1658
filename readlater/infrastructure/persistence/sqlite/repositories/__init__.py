"""SQLite repository adapters.

Repository adapters implementing the persistence ports with SQLite/Peewee.
"""

from readlater.infrastructure.persistence.sqlite.repositories.integration_repository import (
    SqliteIntegrationRepositoryAdapter,
)

__all__ = ["SqliteIntegrationRepositoryAdapter"]
