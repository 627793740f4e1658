"""Peewee ORM models for the integrations database."""

from __future__ import annotations

import datetime as _dt
import uuid
from typing import Any

import peewee

from readlater.core.time_utils import utc_now

# A proxy that will be initialised with the concrete database instance at runtime.
database_proxy: peewee.Database = peewee.DatabaseProxy()


def _utcnow() -> _dt.datetime:
    return utc_now()


def _new_id() -> str:
    return uuid.uuid4().hex


class BaseModel(peewee.Model):
    """Base Peewee model bound to the lazily initialised database proxy."""

    def save(self, *args: Any, **kwargs: Any) -> int:
        if hasattr(self, "updated_at"):
            self.updated_at = _utcnow()
        return super().save(*args, **kwargs)

    class Meta:
        database = database_proxy
        legacy_table_names = False


class IntegrationModel(BaseModel):
    """One owner's connection to a third-party provider."""

    id = peewee.TextField(primary_key=True, default=_new_id)
    owner_id = peewee.TextField(index=True)
    name = peewee.TextField()
    type = peewee.TextField()
    token = peewee.TextField()
    enabled = peewee.BooleanField(default=True)
    task_name = peewee.TextField(null=True)
    created_at = peewee.DateTimeField(default=_utcnow)
    updated_at = peewee.DateTimeField(default=_utcnow)

    class Meta:
        table_name = "integrations"
        indexes = ((("owner_id", "name"), True),)


ALL_MODELS: tuple[type[BaseModel], ...] = (IntegrationModel,)
