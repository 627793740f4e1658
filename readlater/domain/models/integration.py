"""Integration domain model.

An integration links a user's library to a third-party provider (Readwise,
Karakeep, ...). While enabled, a background sync task identified by
``task_name`` keeps the two sides in sync.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from readlater.core.time_utils import utc_now
from readlater.domain.exceptions.domain_exceptions import InvalidStateTransitionError


class IntegrationType(str, Enum):
    """Direction of data flow for an integration."""

    EXPORT = "EXPORT"
    IMPORT = "IMPORT"


class IntegrationState(str, Enum):
    """Lifecycle state derived from the enabled flag and task reference."""

    PENDING_CREATE = "pending_create"
    ENABLED = "enabled"
    DISABLED = "disabled"
    PENDING_DELETE = "pending_delete"
    INCONSISTENT = "inconsistent"


@dataclass
class Integration:
    """Domain model for a third-party integration record.

    ``name`` and ``type`` are fixed at creation. ``task_name`` is set only
    once the sync task has been provisioned for an enabled integration.
    """

    owner_id: str
    name: str
    type: IntegrationType = IntegrationType.EXPORT
    token: str = ""
    enabled: bool = True
    task_name: str | None = None
    id: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    pending_delete: bool = False

    def __post_init__(self) -> None:
        if not self.owner_id:
            raise ValueError("owner_id must not be empty")
        if not self.name or not self.name.strip():
            raise ValueError("name must not be empty")
        self.name = self.name.strip().upper()
        if not isinstance(self.type, IntegrationType):
            self.type = IntegrationType(str(self.type).upper())

    @property
    def state(self) -> IntegrationState:
        if self.pending_delete:
            return IntegrationState.PENDING_DELETE
        if self.enabled:
            if self.task_name:
                return IntegrationState.ENABLED
            return IntegrationState.PENDING_CREATE
        if self.task_name:
            return IntegrationState.INCONSISTENT
        return IntegrationState.DISABLED

    def is_owned_by(self, owner_id: str) -> bool:
        return self.owner_id == owner_id

    def needs_provisioning(self) -> bool:
        """Enabled but no task yet: provisioning failed or was never run."""
        return self.enabled and not self.task_name

    def attach_task(self, task_name: str) -> None:
        """Record a provisioned sync task.

        Raises:
            ValueError: If ``task_name`` is empty.
            InvalidStateTransitionError: If the integration is disabled or already
                has a task.
        """
        if not task_name:
            raise ValueError("task_name must not be empty")
        if not self.enabled:
            raise InvalidStateTransitionError(
                "Cannot attach a sync task to a disabled integration",
                details={"integration_id": self.id, "task_name": task_name},
            )
        if self.task_name:
            raise InvalidStateTransitionError(
                f"Integration already has sync task {self.task_name}",
                details={"integration_id": self.id, "task_name": self.task_name},
            )
        self.task_name = task_name
        self.updated_at = utc_now()

    def detach_task(self) -> None:
        self.task_name = None
        self.updated_at = utc_now()

    def enable(self) -> None:
        self.enabled = True
        self.updated_at = utc_now()

    def disable(self) -> None:
        """Mark the integration disabled.

        Raises:
            InvalidStateTransitionError: If a sync task is still attached; cancel
                it first.
        """
        if self.task_name:
            raise InvalidStateTransitionError(
                f"Cannot disable integration while sync task {self.task_name} is attached",
                details={"integration_id": self.id, "task_name": self.task_name},
            )
        self.enabled = False
        self.updated_at = utc_now()

    def mark_pending_delete(self) -> None:
        self.pending_delete = True
