"""Tests for dependency wiring."""

from __future__ import annotations

import fakeredis
import fakeredis.aioredis
import httpx
import pytest

from readlater.adapters.integrations.token_validators import TokenValidatorRegistry
from readlater.application.use_cases.integration_lifecycle import (
    CreateIntegrationCommand,
    IntegrationLifecycleCoordinator,
)
from readlater.config import load_config
from readlater.db.session import DatabaseSessionManager
from readlater.di.container import Container, build_home_feed, build_reader_client


@pytest.fixture
def cfg(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return load_config(
        runtime={"db_path": str(tmp_path / "app.db")},
        redis={"prefix": "wired"},
        integrations={"readwise_api_url": "https://readwise.test/api/v2"},
    )


def test_container_returns_singletons(cfg) -> None:
    session = DatabaseSessionManager(cfg.runtime.db_path)
    redis = fakeredis.aioredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
    container = Container(cfg, session, redis)

    coordinator = container.integration_coordinator()

    assert isinstance(coordinator, IntegrationLifecycleCoordinator)
    assert container.integration_coordinator() is coordinator
    assert container.task_queue() is container.task_queue()
    assert container.token_validators().names() == ["KARAKEEP", "READWISE"]


@pytest.mark.asyncio
async def test_wired_coordinator_end_to_end(cfg) -> None:
    class AcceptAll:
        async def validate(self, token: str) -> bool:
            return True

    session = DatabaseSessionManager(cfg.runtime.db_path)
    session.migrate()
    redis = fakeredis.aioredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
    container = Container(
        cfg, session, redis, validators=TokenValidatorRegistry({"READWISE": AcceptAll()})
    )

    outcome = await container.integration_coordinator().create(
        CreateIntegrationCommand(owner_id="u1", name="READWISE", token="tok")
    )

    assert not outcome.partial
    task = await container.task_queue().get_task(outcome.integration.task_name)
    assert task["payload"]["owner_id"] == "u1"
    assert await redis.zcard("wired:tasks") == 1
    stored = await container.integration_repository().find_one(outcome.integration.id)
    assert stored.task_name == outcome.integration.task_name
    session.close()


@pytest.mark.asyncio
async def test_build_home_feed_queries_reader_api(cfg) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "data": {
                    "search": {
                        "edges": [{"node": {"id": "a1", "title": "Saved"}}],
                        "pageInfo": {"hasNextPage": False},
                    }
                }
            },
        )

    async with build_reader_client(cfg, transport=httpx.MockTransport(handler)) as client:
        feed = build_home_feed(cfg, client)
        await feed.refresh()

    assert [item.id for item in feed.items] == ["a1"]
