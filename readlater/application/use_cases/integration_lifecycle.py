"""Use cases for the integration lifecycle.

An integration record and its background sync task are two pieces of state
in two different stores that must agree: ``task_name`` is set only while the
integration is enabled and the task exists. Every transition here writes
both, in an order chosen so that a failure half-way leaves a state the next
call can repair:

- destructive transitions (disable, delete) touch the task queue first, so
  an enabled record never points at a task that was already torn down
  without the caller hearing about it;
- constructive transitions (create, enable) touch the record first, so a
  task is never scheduled for a record that does not exist.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from readlater.application.dto.integration_dto import IntegrationOutcome
from readlater.application.services.record_locks import RecordLocks
from readlater.core.async_utils import with_timeout
from readlater.core.logging_utils import generate_correlation_id
from readlater.core.time_utils import utc_now
from readlater.domain.events.integration_events import (
    IntegrationCreated,
    IntegrationDeleted,
    IntegrationDisabled,
    IntegrationEnabled,
)
from readlater.domain.exceptions.domain_exceptions import (
    DomainException,
    InconsistentStateError,
    InvalidTokenError,
    ResourceNotFoundError,
    TransientIOError,
    UnauthorizedError,
    ValidationError,
)
from readlater.domain.models.integration import Integration, IntegrationType

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from readlater.adapters.integrations.token_validators import TokenValidatorRegistry
    from readlater.domain.events.integration_events import DomainEvent
    from readlater.protocols import IntegrationRepository, TaskQueue

logger = logging.getLogger(__name__)


class TransitionOrdering(str, Enum):
    """Which store a transition writes first."""

    TASK_FIRST = "task_first"
    RECORD_FIRST = "record_first"


DESTRUCTIVE_TASK_FIRST = TransitionOrdering.TASK_FIRST
CONSTRUCTIVE_RECORD_FIRST = TransitionOrdering.RECORD_FIRST

TRANSITION_ORDERING: dict[str, TransitionOrdering] = {
    "create": CONSTRUCTIVE_RECORD_FIRST,
    "enable": CONSTRUCTIVE_RECORD_FIRST,
    "disable": DESTRUCTIVE_TASK_FIRST,
    "delete": DESTRUCTIVE_TASK_FIRST,
}


def _require(value: str, field_name: str) -> str:
    if not value or not value.strip():
        msg = f"{field_name} must not be empty"
        raise ValidationError(msg, details={"field": field_name})
    return value.strip()


@dataclass
class CreateIntegrationCommand:
    owner_id: str
    name: str
    token: str
    type: IntegrationType = IntegrationType.EXPORT

    def __post_init__(self) -> None:
        self.owner_id = _require(self.owner_id, "owner_id")
        self.name = _require(self.name, "name").upper()
        self.token = _require(self.token, "token")
        if not isinstance(self.type, IntegrationType):
            try:
                self.type = IntegrationType(str(self.type).upper())
            except ValueError as exc:
                msg = f"Unknown integration type: {self.type}"
                raise ValidationError(msg, details={"field": "type"}) from exc


@dataclass
class UpdateIntegrationCommand:
    """Change the enabled flag and/or the token. ``None`` leaves a field as is."""

    owner_id: str
    integration_id: str
    enabled: bool | None = None
    token: str | None = None

    def __post_init__(self) -> None:
        self.owner_id = _require(self.owner_id, "owner_id")
        self.integration_id = _require(self.integration_id, "integration_id")
        if self.token is not None:
            self.token = _require(self.token, "token")
        if self.enabled is None and self.token is None:
            msg = "Nothing to update: set enabled and/or token"
            raise ValidationError(msg)


@dataclass
class DeleteIntegrationCommand:
    owner_id: str
    integration_id: str

    def __post_init__(self) -> None:
        self.owner_id = _require(self.owner_id, "owner_id")
        self.integration_id = _require(self.integration_id, "integration_id")


class IntegrationLifecycleCoordinator:
    """Create, update and delete integrations together with their sync tasks.

    Operations on the same integration id are serialized for their whole
    duration; different integrations proceed in parallel. Repository reads,
    task queue calls and token validation run under their own timeout, and a
    timeout is reported as ``TransientIOError``. Repository writes are never
    abandoned: the repository enforces their deadline and either commits or
    raises, so a failed write is known not to have happened.

    Example:
        ```python
        coordinator = IntegrationLifecycleCoordinator(repo, queue, registry)
        outcome = await coordinator.create(
            CreateIntegrationCommand(owner_id="u1", name="READWISE", token=token)
        )
        if outcome.partial:
            ...  # saved, but the sync task must be provisioned again later
        ```
    """

    def __init__(
        self,
        repository: IntegrationRepository,
        task_queue: TaskQueue,
        validators: TokenValidatorRegistry,
        *,
        persistence_timeout: float = 5.0,
        task_queue_timeout: float = 10.0,
        validator_timeout: float = 10.0,
        locks: RecordLocks | None = None,
    ) -> None:
        self._repo = repository
        self._queue = task_queue
        self._validators = validators
        self._persistence_timeout = persistence_timeout
        self._task_queue_timeout = task_queue_timeout
        self._validator_timeout = validator_timeout
        self._locks = locks or RecordLocks()

    async def list_integrations(self, owner_id: str) -> list[Integration]:
        owner_id = _require(owner_id, "owner_id")
        return await self._read(self._repo.find_by_owner(owner_id), "find_by_owner")

    async def create(self, command: CreateIntegrationCommand) -> IntegrationOutcome:
        """Validate the token, save the record, then provision its sync task.

        Raises:
            UnsupportedIntegrationError: No validator is registered for the name.
            InvalidTokenError: The provider rejected the token.
            ValidationError: The owner already has an integration with this name.
            TransientIOError: Validation or the initial save failed; nothing was written.
            InconsistentStateError: An orphan task could not be cleaned up.
        """
        correlation_id = generate_correlation_id()
        await self._check_token(command.name, command.token, correlation_id)

        record = await self._repo.save(
            Integration(
                owner_id=command.owner_id,
                name=command.name,
                type=command.type,
                token=command.token,
                enabled=True,
            )
        )
        events: list[DomainEvent] = [
            IntegrationCreated(
                occurred_at=utc_now(),
                aggregate_id=record.id,
                owner_id=record.owner_id,
                name=record.name,
            )
        ]
        self._log_transition("create", record, correlation_id)

        async with self._locks.hold(str(record.id)):
            return await self._provision(record, events, correlation_id)

    async def update(self, command: UpdateIntegrationCommand) -> IntegrationOutcome:
        """Apply an enabled flag and/or token change.

        Raises:
            ResourceNotFoundError: The integration does not exist.
            UnauthorizedError: The integration belongs to someone else.
            InvalidTokenError: The provider rejected the new token.
            TransientIOError: A call failed before anything was changed.
            InconsistentStateError: The task was cancelled but the record still
                references it.
        """
        correlation_id = generate_correlation_id()
        async with self._locks.hold(command.integration_id):
            record = await self._load_owned(command.owner_id, command.integration_id)

            changes: dict[str, Any] = {}
            if command.token is not None and command.token != record.token:
                await self._check_token(record.name, command.token, correlation_id)
                changes["token"] = command.token

            enabled = record.enabled if command.enabled is None else command.enabled
            if enabled:
                return await self._enable(record, changes, correlation_id)
            return await self._disable(record, changes, correlation_id)

    async def delete(self, command: DeleteIntegrationCommand) -> IntegrationOutcome:
        """Cancel the sync task (if any), then remove the record.

        Raises:
            ResourceNotFoundError: The integration does not exist.
            UnauthorizedError: The integration belongs to someone else.
            TransientIOError: Cancellation failed (nothing changed) or removal
                failed after cancellation (safe to retry).
        """
        correlation_id = generate_correlation_id()
        async with self._locks.hold(command.integration_id):
            record = await self._load_owned(command.owner_id, command.integration_id)
            record.mark_pending_delete()
            self._log_transition("delete", record, correlation_id)

            cancelled = await self._cancel_task(record, correlation_id)
            try:
                await self._repo.remove(str(record.id))
            except TransientIOError as exc:
                if cancelled is None:
                    raise
                # A retry will see NOT_FOUND from the queue and finish the removal.
                msg = "Sync task was cancelled but the integration could not be removed"
                raise TransientIOError(
                    msg,
                    details={
                        "integration_id": record.id,
                        "cancelled_task_name": cancelled,
                        "cause": exc.message,
                    },
                ) from exc

            logger.info(
                "integration_deleted",
                extra={
                    "correlation_id": correlation_id,
                    "integration_id": record.id,
                    "owner_id": record.owner_id,
                    "task_name": cancelled,
                },
            )
            return IntegrationOutcome(
                integration=record,
                events=[
                    IntegrationDeleted(
                        occurred_at=utc_now(),
                        aggregate_id=record.id,
                        cancelled_task_name=cancelled,
                    )
                ],
            )

    async def _enable(
        self, record: Integration, changes: dict[str, Any], correlation_id: str
    ) -> IntegrationOutcome:
        was_enabled = record.enabled
        if not was_enabled:
            changes["enabled"] = True
        if changes:
            await self._repo.update(str(record.id), changes)
            self._apply(record, changes)

        if not record.needs_provisioning():
            return IntegrationOutcome(integration=record)

        self._log_transition("enable", record, correlation_id)
        return await self._provision(record, [], correlation_id)

    async def _disable(
        self, record: Integration, changes: dict[str, Any], correlation_id: str
    ) -> IntegrationOutcome:
        if not record.enabled and not record.task_name:
            if changes:
                await self._repo.update(str(record.id), changes)
                self._apply(record, changes)
            return IntegrationOutcome(integration=record)

        self._log_transition("disable", record, correlation_id)
        cancelled = await self._cancel_task(record, correlation_id)

        changes.update({"enabled": False, "task_name": None})
        try:
            await self._repo.update(str(record.id), changes)
        except DomainException as exc:
            if cancelled is None:
                raise
            logger.error(
                "integration_disable_inconsistent",
                extra={
                    "correlation_id": correlation_id,
                    "integration_id": record.id,
                    "task_name": cancelled,
                    "error": exc.message,
                },
            )
            msg = "Sync task was cancelled but the integration still references it"
            raise InconsistentStateError(
                msg,
                details={
                    "integration_id": record.id,
                    "task_name": cancelled,
                    "cause": exc.message,
                },
            ) from exc

        self._apply(record, changes)
        return IntegrationOutcome(
            integration=record,
            events=[
                IntegrationDisabled(
                    occurred_at=utc_now(),
                    aggregate_id=record.id,
                    cancelled_task_name=cancelled,
                )
            ],
        )

    async def _provision(
        self, record: Integration, events: list[DomainEvent], correlation_id: str
    ) -> IntegrationOutcome:
        """Enqueue the sync task for a saved, enabled record and store its name.

        A transient enqueue failure leaves the record enabled and task-less
        and is reported as a partial success.
        """
        try:
            task_name = await self._call_queue(
                self._queue.enqueue(record.owner_id, record.name), "enqueue"
            )
        except TransientIOError as exc:
            logger.warning(
                "integration_provisioning_failed",
                extra={
                    "correlation_id": correlation_id,
                    "integration_id": record.id,
                    "owner_id": record.owner_id,
                    "state": record.state.value,
                    "error": exc.message,
                },
            )
            return IntegrationOutcome(integration=record, events=events, partial=True, error=exc)

        try:
            await self._repo.update(str(record.id), {"task_name": task_name})
        except DomainException as exc:
            await self._compensate_orphan(record, task_name, exc, correlation_id)
            return IntegrationOutcome(integration=record, events=events, partial=True, error=exc)

        record.attach_task(task_name)
        events.append(
            IntegrationEnabled(occurred_at=utc_now(), aggregate_id=record.id, task_name=task_name)
        )
        logger.info(
            "integration_enabled",
            extra={
                "correlation_id": correlation_id,
                "integration_id": record.id,
                "owner_id": record.owner_id,
                "task_name": task_name,
                "state": record.state.value,
            },
        )
        return IntegrationOutcome(integration=record, events=events)

    async def _compensate_orphan(
        self,
        record: Integration,
        task_name: str,
        cause: DomainException,
        correlation_id: str,
    ) -> None:
        """Cancel a task whose name could not be stored on its record."""
        logger.warning(
            "integration_task_orphaned",
            extra={
                "correlation_id": correlation_id,
                "integration_id": record.id,
                "task_name": task_name,
                "error": cause.message,
            },
        )
        try:
            await self._call_queue(self._queue.cancel(task_name), "cancel")
        except TransientIOError as exc:
            logger.error(
                "integration_orphan_cancel_failed",
                extra={
                    "correlation_id": correlation_id,
                    "integration_id": record.id,
                    "task_name": task_name,
                    "error": exc.message,
                },
            )
            msg = f"Sync task {task_name} is running without a record referencing it"
            raise InconsistentStateError(
                msg,
                details={
                    "integration_id": record.id,
                    "orphan_task_name": task_name,
                    "cause": cause.message,
                },
            ) from exc

    async def _cancel_task(self, record: Integration, correlation_id: str) -> str | None:
        """Cancel the record's task; return its name, or None if it had none.

        A task the queue no longer knows about counts as cancelled.
        """
        task_name = record.task_name
        if not task_name:
            return None
        outcome = await self._call_queue(self._queue.cancel(task_name), "cancel")
        logger.info(
            "integration_task_cancelled",
            extra={
                "correlation_id": correlation_id,
                "integration_id": record.id,
                "task_name": task_name,
                "outcome": outcome.value,
            },
        )
        return task_name

    async def _load_owned(self, owner_id: str, integration_id: str) -> Integration:
        record = await self._read(self._repo.find_one(integration_id), "find_one")
        if record is None:
            msg = f"Integration {integration_id} not found"
            raise ResourceNotFoundError(msg, details={"integration_id": integration_id})
        if not record.is_owned_by(owner_id):
            msg = "Integration belongs to another owner"
            raise UnauthorizedError(msg, details={"integration_id": integration_id})
        return record

    async def _check_token(self, name: str, token: str, correlation_id: str) -> None:
        validator = self._validators.get(name)
        valid = await with_timeout(
            validator.validate(token), self._validator_timeout, operation="validate_token"
        )
        if not valid:
            logger.info(
                "integration_token_rejected",
                extra={"correlation_id": correlation_id, "provider": name},
            )
            msg = f"{name} rejected the integration token"
            raise InvalidTokenError(msg, details={"name": name})

    async def _read(self, awaitable: Awaitable[Any], operation: str) -> Any:
        return await with_timeout(
            awaitable, self._persistence_timeout, operation=f"repository.{operation}"
        )

    async def _call_queue(self, awaitable: Awaitable[Any], operation: str) -> Any:
        return await with_timeout(
            awaitable, self._task_queue_timeout, operation=f"task_queue.{operation}"
        )

    @staticmethod
    def _apply(record: Integration, changes: dict[str, Any]) -> None:
        if "token" in changes:
            record.token = changes["token"]
        if "task_name" in changes and changes["task_name"] is None:
            record.detach_task()
        if changes.get("enabled") is True:
            record.enable()
        elif changes.get("enabled") is False:
            record.disable()

    @staticmethod
    def _log_transition(transition: str, record: Integration, correlation_id: str) -> None:
        logger.info(
            "integration_transition",
            extra={
                "correlation_id": correlation_id,
                "integration_id": record.id,
                "owner_id": record.owner_id,
                "transition": transition,
                "ordering": TRANSITION_ORDERING[transition].value,
                "state": record.state.value,
            },
        )
