"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from readlater.adapters.reader_api.models import SearchPage
from readlater.domain.models.library_item import LibraryItem


def make_items(*ids: str) -> list[LibraryItem]:
    return [LibraryItem(id=item_id, title=f"Title {item_id}") for item_id in ids]


async def settle(rounds: int = 5) -> None:
    """Let scheduled tasks run until they block again."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class ControlledQueryService:
    """Remote query service whose answers are released by the test, in any order."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str | None, asyncio.Future[Any]]] = []

    async def query(self, text: str, cursor: str | None) -> SearchPage:
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self.calls.append((text, cursor, future))
        return await future

    def resolve(self, index: int, ids: list[str], next_cursor: str | None = None) -> None:
        self.calls[index][2].set_result(SearchPage(items=make_items(*ids), next_cursor=next_cursor))

    def fail(self, index: int, exc: Exception) -> None:
        self.calls[index][2].set_exception(exc)


@pytest.fixture
def query_service() -> ControlledQueryService:
    return ControlledQueryService()


@pytest.fixture
def items():
    return make_items


@pytest.fixture
def drain():
    return settle
