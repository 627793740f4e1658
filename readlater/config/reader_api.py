from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ._validators import _ensure_token, _parse_http_url, _parse_positive_float


class ReaderApiConfig(BaseModel):
    """Client-side settings for the reader GraphQL API."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    api_url: str = Field(default="http://localhost:4000/api", validation_alias="READER_API_URL")
    api_token: str = Field(default="", validation_alias="READER_API_TOKEN")
    request_timeout_sec: float = Field(
        default=30.0, validation_alias="READER_REQUEST_TIMEOUT_SEC"
    )
    page_size: int = Field(default=15, validation_alias="READER_PAGE_SIZE")
    max_retries: int = Field(default=3, validation_alias="READER_MAX_RETRIES")

    @field_validator("api_url", mode="before")
    @classmethod
    def _validate_api_url(cls, value: Any) -> str:
        return _parse_http_url(value, name="Reader API", default="http://localhost:4000/api")

    @field_validator("api_token", mode="before")
    @classmethod
    def _validate_api_token(cls, value: Any) -> str:
        return _ensure_token(value, name="Reader API")

    @field_validator("request_timeout_sec", mode="before")
    @classmethod
    def _validate_timeout(cls, value: Any) -> float:
        return _parse_positive_float(
            value, name="Reader request timeout", default=30.0, maximum=300.0
        )

    @field_validator("page_size", mode="before")
    @classmethod
    def _validate_page_size(cls, value: Any) -> int:
        try:
            parsed = int(str(value if value not in (None, "") else 15))
        except ValueError as exc:
            msg = "Reader page size must be a valid integer"
            raise ValueError(msg) from exc
        if parsed < 1 or parsed > 100:
            msg = "Reader page size must be between 1 and 100"
            raise ValueError(msg)
        return parsed

    @field_validator("max_retries", mode="before")
    @classmethod
    def _validate_max_retries(cls, value: Any) -> int:
        try:
            parsed = int(str(value if value not in (None, "") else 3))
        except ValueError as exc:
            msg = "Reader max retries must be a valid integer"
            raise ValueError(msg) from exc
        if parsed < 0 or parsed > 10:
            msg = "Reader max retries must be between 0 and 10"
            raise ValueError(msg)
        return parsed
