from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from ._validators import _parse_http_url, _parse_positive_float


class IntegrationsConfig(BaseModel):
    """Provider endpoints and collaborator timeouts for the lifecycle coordinator."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    readwise_api_url: str = Field(
        default="https://readwise.io/api/v2",
        validation_alias="READWISE_API_URL",
    )
    karakeep_api_url: str = Field(
        default="http://localhost:3000/api/v1",
        validation_alias="KARAKEEP_API_URL",
    )
    validator_timeout_sec: float = Field(
        default=10.0,
        validation_alias="INTEGRATION_VALIDATOR_TIMEOUT_SEC",
        description="Timeout for provider token validation calls",
    )
    persistence_timeout_sec: float = Field(
        default=5.0,
        validation_alias="INTEGRATION_PERSISTENCE_TIMEOUT_SEC",
        description="Repository read timeout and SQLite busy timeout for writes",
    )
    task_queue_timeout_sec: float = Field(
        default=10.0,
        validation_alias="INTEGRATION_TASK_QUEUE_TIMEOUT_SEC",
        description="Timeout for each task enqueue/cancel call",
    )
    sync_service_path: str = Field(
        default="/svc/integrations",
        validation_alias="INTEGRATION_SYNC_SERVICE_PATH",
        description="Path prefix of the worker endpoint that runs sync tasks",
    )

    @field_validator("readwise_api_url", mode="before")
    @classmethod
    def _validate_readwise_url(cls, value: Any) -> str:
        return _parse_http_url(value, name="Readwise API", default="https://readwise.io/api/v2")

    @field_validator("karakeep_api_url", mode="before")
    @classmethod
    def _validate_karakeep_url(cls, value: Any) -> str:
        return _parse_http_url(
            value, name="Karakeep API", default="http://localhost:3000/api/v1"
        )

    @field_validator(
        "validator_timeout_sec",
        "persistence_timeout_sec",
        "task_queue_timeout_sec",
        mode="before",
    )
    @classmethod
    def _validate_timeouts(cls, value: Any, info: ValidationInfo) -> float:
        default = cls.model_fields[info.field_name].default
        return _parse_positive_float(
            value, name=info.field_name.replace("_", " "), default=default, maximum=300.0
        )

    @field_validator("sync_service_path", mode="before")
    @classmethod
    def _validate_service_path(cls, value: Any) -> str:
        path = str(value or "/svc/integrations").strip()
        if not path.startswith("/"):
            msg = "Sync service path must start with '/'"
            raise ValueError(msg)
        return path.rstrip("/")
