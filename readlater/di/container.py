"""Dependency injection container for wiring components."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from readlater.adapters.integrations.token_validators import (
    TokenValidatorRegistry,
    build_default_registry,
)
from readlater.adapters.reader_api.client import ReaderApiClient
from readlater.application.use_cases.integration_lifecycle import (
    IntegrationLifecycleCoordinator,
)
from readlater.client.home_feed import HomeFeed
from readlater.infrastructure.persistence.sqlite.repositories.integration_repository import (
    SqliteIntegrationRepositoryAdapter,
)
from readlater.infrastructure.task_queue.redis_task_queue import RedisTaskQueue

if TYPE_CHECKING:
    import httpx
    import redis.asyncio as aioredis

    from readlater.config import AppConfig


class Container:
    """Dependency injection container for the server-side lifecycle components.

    Example:
        ```python
        session = DatabaseSessionManager(
            cfg.runtime.db_path, timeout=cfg.integrations.persistence_timeout_sec
        )
        session.migrate()
        container = Container(cfg, session, await get_redis(cfg.redis))
        coordinator = container.integration_coordinator()
        ```
    """

    def __init__(
        self,
        cfg: AppConfig,
        database: Any,
        redis: aioredis.Redis,
        *,
        validators: TokenValidatorRegistry | None = None,
    ) -> None:
        """Initialize the container.

        Args:
            cfg: Loaded application configuration.
            database: Session manager (or anything with ``connection_context()``).
            redis: Redis client used by the task queue.
            validators: Optional validator registry; defaults to the HTTP validators.
        """
        self._cfg = cfg
        self._database = database
        self._redis = redis
        self._validators = validators

        self._integration_repo: SqliteIntegrationRepositoryAdapter | None = None
        self._task_queue: RedisTaskQueue | None = None
        self._coordinator: IntegrationLifecycleCoordinator | None = None

    def integration_repository(self) -> SqliteIntegrationRepositoryAdapter:
        if self._integration_repo is None:
            self._integration_repo = SqliteIntegrationRepositoryAdapter(self._database)
        return self._integration_repo

    def task_queue(self) -> RedisTaskQueue:
        if self._task_queue is None:
            self._task_queue = RedisTaskQueue(
                self._redis,
                prefix=self._cfg.redis.prefix,
                service_path=self._cfg.integrations.sync_service_path,
            )
        return self._task_queue

    def token_validators(self) -> TokenValidatorRegistry:
        if self._validators is None:
            self._validators = build_default_registry(self._cfg.integrations)
        return self._validators

    def integration_coordinator(self) -> IntegrationLifecycleCoordinator:
        """Get or create the coordinator.

        There must be a single instance per process so that its per-record
        locks actually serialize concurrent calls.
        """
        if self._coordinator is None:
            integrations = self._cfg.integrations
            self._coordinator = IntegrationLifecycleCoordinator(
                self.integration_repository(),
                self.task_queue(),
                self.token_validators(),
                persistence_timeout=integrations.persistence_timeout_sec,
                task_queue_timeout=integrations.task_queue_timeout_sec,
                validator_timeout=integrations.validator_timeout_sec,
            )
        return self._coordinator


def build_reader_client(
    cfg: AppConfig, *, transport: httpx.AsyncBaseTransport | None = None
) -> ReaderApiClient:
    api = cfg.reader_api
    return ReaderApiClient(
        api.api_url,
        api.api_token,
        api.request_timeout_sec,
        page_size=api.page_size,
        max_retries=api.max_retries,
        transport=transport,
    )


def build_home_feed(cfg: AppConfig, client: ReaderApiClient | None = None) -> HomeFeed:
    """Build the client-side home feed.

    The reader client must be opened (``async with``) before the feed queries.
    """
    client = client or build_reader_client(cfg)
    return HomeFeed(client, client)
