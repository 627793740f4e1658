"""SQLite implementation of the integration repository."""

from __future__ import annotations

import datetime as _dt
import logging
from typing import Any

import peewee

from readlater.core.time_utils import UTC, utc_now
from readlater.db.models import IntegrationModel
from readlater.domain.exceptions.domain_exceptions import (
    ResourceNotFoundError,
    TransientIOError,
    ValidationError,
)
from readlater.domain.models.integration import Integration, IntegrationType
from readlater.infrastructure.persistence.sqlite.base import SqliteBaseRepository

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = frozenset({"token", "enabled", "task_name"})


def _as_utc(value: Any) -> _dt.datetime:
    if isinstance(value, str):
        value = _dt.datetime.fromisoformat(value)
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class SqliteIntegrationRepositoryAdapter(SqliteBaseRepository):
    """Adapter for IntegrationModel operations.

    Unique-constraint violations surface as ``ValidationError``; every other
    database error, a locked file included, as ``TransientIOError``.
    """

    @staticmethod
    def _to_domain(row: IntegrationModel) -> Integration:
        return Integration(
            id=row.id,
            owner_id=row.owner_id,
            name=row.name,
            type=IntegrationType(row.type),
            token=row.token,
            enabled=bool(row.enabled),
            task_name=row.task_name,
            created_at=_as_utc(row.created_at),
            updated_at=_as_utc(row.updated_at),
        )

    async def _run(self, operation: Any, *, operation_name: str) -> Any:
        try:
            return await self._execute(operation, operation_name=operation_name)
        except peewee.IntegrityError as exc:
            msg = f"Integration constraint violated during {operation_name}"
            raise ValidationError(msg, details={"operation": operation_name}) from exc
        except peewee.DatabaseError as exc:
            logger.warning(
                "integration_repository_unavailable",
                extra={"operation": operation_name, "error": str(exc)},
            )
            msg = f"Integration database unavailable during {operation_name}"
            raise TransientIOError(msg, details={"operation": operation_name}) from exc

    async def find_one(self, integration_id: str) -> Integration | None:
        def _query() -> Integration | None:
            row = IntegrationModel.get_or_none(IntegrationModel.id == integration_id)
            return self._to_domain(row) if row else None

        return await self._run(_query, operation_name="find_integration")

    async def find_by_owner(self, owner_id: str) -> list[Integration]:
        def _query() -> list[Integration]:
            rows = (
                IntegrationModel.select()
                .where(IntegrationModel.owner_id == owner_id)
                .order_by(IntegrationModel.created_at, IntegrationModel.name)
            )
            return [self._to_domain(row) for row in rows]

        return await self._run(_query, operation_name="find_integrations_by_owner")

    async def save(self, integration: Integration) -> Integration:
        """Insert ``integration`` and return it with its id assigned.

        Raises:
            ValidationError: If the owner already has an integration with this name.
        """

        def _insert() -> Integration:
            fields: dict[str, Any] = {
                "owner_id": integration.owner_id,
                "name": integration.name,
                "type": integration.type.value,
                "token": integration.token,
                "enabled": integration.enabled,
                "task_name": integration.task_name,
                "created_at": integration.created_at,
                "updated_at": integration.updated_at,
            }
            if integration.id:
                fields["id"] = integration.id
            row = IntegrationModel.create(**fields)
            return self._to_domain(row)

        saved = await self._run(_insert, operation_name="save_integration")
        logger.debug(
            "integration_saved",
            extra={"integration_id": saved.id, "owner_id": saved.owner_id, "name": saved.name},
        )
        return saved

    async def update(self, integration_id: str, changes: dict[str, Any]) -> None:
        """Apply ``changes`` to the record.

        Raises:
            ValidationError: If ``changes`` touches a field that cannot change.
            ResourceNotFoundError: If the record does not exist.
        """
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            msg = f"Cannot update integration fields: {sorted(unknown)}"
            raise ValidationError(msg, details={"fields": sorted(unknown)})

        def _update() -> int:
            values = {getattr(IntegrationModel, key): value for key, value in changes.items()}
            values[IntegrationModel.updated_at] = utc_now()
            return (
                IntegrationModel.update(values)
                .where(IntegrationModel.id == integration_id)
                .execute()
            )

        updated = await self._run(_update, operation_name="update_integration")
        if not updated:
            msg = f"Integration {integration_id} not found"
            raise ResourceNotFoundError(msg, details={"integration_id": integration_id})

    async def remove(self, integration_id: str) -> None:
        def _delete() -> int:
            return (
                IntegrationModel.delete().where(IntegrationModel.id == integration_id).execute()
            )

        await self._run(_delete, operation_name="remove_integration")
