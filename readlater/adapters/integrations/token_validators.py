"""Credential validators for third-party integration providers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, ClassVar

import httpx

from readlater.domain.exceptions.domain_exceptions import (
    TransientIOError,
    UnsupportedIntegrationError,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from readlater.config import IntegrationsConfig
    from readlater.protocols import TokenValidator

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}


class HttpTokenValidator:
    """Validate a token by calling an authenticated provider endpoint.

    Subclasses set the endpoint, the status that means "valid" and how the
    token is presented.
    """

    provider: ClassVar[str] = ""
    endpoint: ClassVar[str] = ""
    valid_status: ClassVar[int] = 200

    def __init__(
        self,
        api_url: str,
        timeout: float = 10.0,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def auth_headers(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    async def validate(self, token: str) -> bool:
        """Return True if the provider accepts ``token``.

        Raises:
            TransientIOError: If the provider could not be reached or answered 5xx.
        """
        if not token or not token.strip():
            return False

        try:
            async with httpx.AsyncClient(
                base_url=self.api_url, timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.get(self.endpoint, headers=self.auth_headers(token.strip()))
        except httpx.TransportError as exc:
            msg = f"{self.provider} token validation failed: {exc}"
            raise TransientIOError(msg, details={"provider": self.provider}) from exc

        status = response.status_code
        if status in RETRYABLE_STATUS_CODES:
            msg = f"{self.provider} token validation returned HTTP {status}"
            raise TransientIOError(msg, details={"provider": self.provider, "status_code": status})

        valid = status == self.valid_status
        logger.info(
            "integration_token_validated",
            extra={"provider": self.provider, "status_code": status, "valid": valid},
        )
        return valid


class ReadwiseTokenValidator(HttpTokenValidator):
    """Readwise answers ``204 No Content`` on its auth endpoint for a good token."""

    provider = "READWISE"
    endpoint = "/auth/"
    valid_status = 204

    def auth_headers(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Token {token}"}


class KarakeepTokenValidator(HttpTokenValidator):
    provider = "KARAKEEP"
    endpoint = "/users/me"
    valid_status = 200


class TokenValidatorRegistry:
    """Validators indexed by provider name (case-insensitive)."""

    def __init__(self, validators: Mapping[str, TokenValidator] | None = None) -> None:
        self._validators: dict[str, TokenValidator] = {}
        for name, validator in (validators or {}).items():
            self.register(name, validator)

    def register(self, name: str, validator: TokenValidator) -> None:
        self._validators[name.strip().upper()] = validator

    def get(self, name: str) -> TokenValidator:
        """Return the validator for ``name``.

        Raises:
            UnsupportedIntegrationError: If no provider is registered under ``name``.
        """
        key = (name or "").strip().upper()
        try:
            return self._validators[key]
        except KeyError:
            msg = f"Unsupported integration: {name}"
            raise UnsupportedIntegrationError(
                msg, details={"name": name, "supported": self.names()}
            ) from None

    def names(self) -> list[str]:
        return sorted(self._validators)


def build_default_registry(cfg: IntegrationsConfig) -> TokenValidatorRegistry:
    timeout = cfg.validator_timeout_sec
    return TokenValidatorRegistry(
        {
            ReadwiseTokenValidator.provider: ReadwiseTokenValidator(
                cfg.readwise_api_url, timeout=timeout
            ),
            KarakeepTokenValidator.provider: KarakeepTokenValidator(
                cfg.karakeep_api_url, timeout=timeout
            ),
        }
    )
