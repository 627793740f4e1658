"""Domain events for integration lifecycle changes.

Events describe what happened to an integration record and its sync task;
they are returned to callers in operation outcomes.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class DomainEvent:
    """Base class for all domain events."""

    occurred_at: datetime
    aggregate_id: str | None = None

    def __post_init__(self) -> None:
        """Validate event data after initialization."""
        if not isinstance(self.occurred_at, datetime):
            raise TypeError("occurred_at must be a datetime")


@dataclass(frozen=True)
class IntegrationCreated(DomainEvent):
    """Event raised when an integration record is persisted."""

    owner_id: str = ""
    name: str = ""


@dataclass(frozen=True)
class IntegrationEnabled(DomainEvent):
    """Event raised when a sync task is provisioned for an integration."""

    task_name: str = ""

    def __post_init__(self) -> None:
        super().__post_init__()
        if not self.task_name:
            raise ValueError("task_name must not be empty")


@dataclass(frozen=True)
class IntegrationDisabled(DomainEvent):
    """Event raised when an integration is disabled."""

    cancelled_task_name: str | None = None


@dataclass(frozen=True)
class IntegrationDeleted(DomainEvent):
    """Event raised when an integration record is removed."""

    cancelled_task_name: str | None = None
