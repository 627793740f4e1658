from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import peewee

from readlater.db.models import ALL_MODELS, database_proxy


@dataclass
class DatabaseSessionManager:
    """Owns the SQLite database and binds it to the model proxy.

    Args:
        path: Database file path, or ``:memory:``
        timeout: Seconds a statement waits on a locked database before
            failing with ``OperationalError``
    """

    path: str
    timeout: float = 5.0
    _logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))
    _database: peewee.SqliteDatabase = field(init=False)

    def __post_init__(self) -> None:
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        self._database = peewee.SqliteDatabase(
            self.path,
            pragmas={
                "journal_mode": "wal",
                "synchronous": "normal",
                "foreign_keys": 1,
            },
            check_same_thread=False,
            timeout=self.timeout,
        )
        database_proxy.initialize(self._database)

    @property
    def database(self) -> peewee.SqliteDatabase:
        return self._database

    def connection_context(self) -> Any:
        """Return a connection context manager."""
        return self._database.connection_context()

    def migrate(self) -> None:
        """Create tables if they do not exist yet."""
        with self._database.connection_context():
            self._database.create_tables(ALL_MODELS, safe=True)
        self._logger.info("db_migrated", extra={"path": Path(self.path).name})

    def close(self) -> None:
        if not self._database.is_closed():
            self._database.close()
