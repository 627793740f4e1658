"""In-memory collaborators for lifecycle coordinator tests.

Each fake appends ``(component, operation)`` to a shared call log so tests
can assert the order in which the stores were touched, and can be told to
fail a given operation once.
"""

from __future__ import annotations

import dataclasses
from typing import Any
from unittest.mock import AsyncMock

import pytest

from readlater.adapters.integrations.token_validators import TokenValidatorRegistry
from readlater.application.use_cases.integration_lifecycle import (
    IntegrationLifecycleCoordinator,
)
from readlater.domain.exceptions.domain_exceptions import ResourceNotFoundError, ValidationError
from readlater.protocols import CancelOutcome


class _FailureInjection:
    def __init__(self, calls: list[tuple[str, str]], component: str) -> None:
        self.calls = calls
        self.component = component
        self.failures: dict[str, list[BaseException]] = {}

    def fail_next(self, operation: str, exc: BaseException) -> None:
        self.failures.setdefault(operation, []).append(exc)

    def _enter(self, operation: str) -> None:
        self.calls.append((self.component, operation))
        pending = self.failures.get(operation)
        if pending:
            raise pending.pop(0)


class InMemoryIntegrationRepository(_FailureInjection):
    def __init__(self, calls: list[tuple[str, str]]) -> None:
        super().__init__(calls, "repo")
        self.records: dict[str, Any] = {}
        self._next_id = 0

    async def find_one(self, integration_id: str):
        self._enter("find_one")
        record = self.records.get(integration_id)
        return dataclasses.replace(record) if record else None

    async def find_by_owner(self, owner_id: str):
        self._enter("find_by_owner")
        return [dataclasses.replace(r) for r in self.records.values() if r.owner_id == owner_id]

    async def save(self, integration):
        self._enter("save")
        for record in self.records.values():
            if record.owner_id == integration.owner_id and record.name == integration.name:
                raise ValidationError("duplicate integration")
        self._next_id += 1
        stored = dataclasses.replace(integration, id=f"int-{self._next_id}")
        self.records[stored.id] = stored
        return dataclasses.replace(stored)

    async def update(self, integration_id: str, changes: dict[str, Any]) -> None:
        self._enter("update")
        record = self.records.get(integration_id)
        if record is None:
            raise ResourceNotFoundError(f"Integration {integration_id} not found")
        for key, value in changes.items():
            setattr(record, key, value)

    async def remove(self, integration_id: str) -> None:
        self._enter("remove")
        self.records.pop(integration_id, None)


class InMemoryTaskQueue(_FailureInjection):
    def __init__(self, calls: list[tuple[str, str]]) -> None:
        super().__init__(calls, "queue")
        self.tasks: dict[str, tuple[str, str]] = {}
        self._next_id = 0

    async def enqueue(self, owner_id: str, integration_type: str) -> str:
        self._enter("enqueue")
        self._next_id += 1
        task_name = f"t{self._next_id}"
        self.tasks[task_name] = (owner_id, integration_type)
        return task_name

    async def cancel(self, task_name: str) -> CancelOutcome:
        self._enter("cancel")
        if self.tasks.pop(task_name, None) is None:
            return CancelOutcome.NOT_FOUND
        return CancelOutcome.CANCELLED


@pytest.fixture
def calls() -> list[tuple[str, str]]:
    return []


@pytest.fixture
def repository(calls) -> InMemoryIntegrationRepository:
    return InMemoryIntegrationRepository(calls)


@pytest.fixture
def task_queue(calls) -> InMemoryTaskQueue:
    return InMemoryTaskQueue(calls)


@pytest.fixture
def readwise_validator() -> AsyncMock:
    validator = AsyncMock()
    validator.validate = AsyncMock(return_value=True)
    return validator


@pytest.fixture
def coordinator(repository, task_queue, readwise_validator) -> IntegrationLifecycleCoordinator:
    registry = TokenValidatorRegistry({"READWISE": readwise_validator})
    return IntegrationLifecycleCoordinator(
        repository,
        task_queue,
        registry,
        persistence_timeout=1.0,
        task_queue_timeout=1.0,
        validator_timeout=1.0,
    )
