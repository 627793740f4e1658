"""Protocol definitions (ports) for the sync core.

The reconciler and the lifecycle coordinator only talk to these contracts,
which keeps them independent of the concrete HTTP, Redis and SQLite adapters.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from readlater.domain.models.integration import Integration
    from readlater.domain.models.library_item import LibraryItem


class QueryPage(Protocol):
    """One page of library results."""

    @property
    def items(self) -> Sequence[LibraryItem]: ...

    @property
    def next_cursor(self) -> str | None: ...


class RemoteQueryService(Protocol):
    """Remote library search.

    May raise ``TransientIOError``; callers treat that as "no result".
    """

    async def query(self, text: str, cursor: str | None) -> QueryPage: ...


class ItemMutationService(Protocol):
    """Server-side mutations fired after an optimistic list removal."""

    async def archive_item(self, item_id: str, *, archived: bool) -> None: ...

    async def delete_item(self, item_id: str) -> None: ...


class IntegrationRepository(Protocol):
    """Persistence for integration records."""

    async def find_one(self, integration_id: str) -> Integration | None:
        """Return the record or None if it does not exist."""
        ...

    async def find_by_owner(self, owner_id: str) -> list[Integration]: ...

    async def save(self, integration: Integration) -> Integration:
        """Insert a new record and return it with its id assigned."""
        ...

    async def update(self, integration_id: str, changes: dict[str, Any]) -> None:
        """Apply a partial update.

        Raises:
            ResourceNotFoundError: If the record does not exist.
        """
        ...

    async def remove(self, integration_id: str) -> None: ...


class CancelOutcome(str, Enum):
    """Result of a task cancellation request."""

    CANCELLED = "cancelled"
    NOT_FOUND = "not_found"


class TaskQueue(Protocol):
    """Background sync task scheduling."""

    async def enqueue(self, owner_id: str, integration_type: str) -> str:
        """Schedule a sync task and return its name."""
        ...

    async def cancel(self, task_name: str) -> CancelOutcome: ...


class TokenValidator(Protocol):
    """Per-provider credential check."""

    async def validate(self, token: str) -> bool: ...
