"""Tests for the reader GraphQL client using httpx.MockTransport."""

from __future__ import annotations

import json
from datetime import UTC, datetime

import httpx
import pytest

from readlater.adapters.reader_api.client import (
    BASE_SEARCH_QUERY,
    ReaderApiClient,
    ReaderApiError,
    compose_search_query,
)
from readlater.domain.exceptions.domain_exceptions import TransientIOError


def _search_payload(*ids: str, has_next: bool = False, end_cursor: str | None = None) -> dict:
    return {
        "data": {
            "search": {
                "edges": [
                    {
                        "cursor": item_id,
                        "node": {
                            "id": item_id,
                            "title": f"Article {item_id}",
                            "slug": f"article-{item_id}",
                            "url": f"https://example.com/{item_id}",
                            "savedAt": "2024-05-01T10:00:00Z",
                            "isArchived": False,
                        },
                    }
                    for item_id in ids
                ],
                "pageInfo": {"hasNextPage": has_next, "endCursor": end_cursor},
            }
        }
    }


def _client(handler, **kwargs) -> ReaderApiClient:
    return ReaderApiClient(
        "https://reader.test/api",
        "api-token",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestComposeSearchQuery:
    def test_empty_text_uses_inbox_query(self) -> None:
        assert compose_search_query("  ") == BASE_SEARCH_QUERY

    def test_text_is_appended(self) -> None:
        assert compose_search_query(" python ") == "in:inbox sort:saved python"


class TestReaderApiClient:
    @pytest.mark.asyncio
    async def test_query_sends_pagination_variables(self) -> None:
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/graphql"
            assert request.headers["Authorization"] == "api-token"
            seen.append(json.loads(request.content))
            return httpx.Response(200, json=_search_payload("1", "2", has_next=True, end_cursor="c2"))

        async with _client(handler, page_size=2) as client:
            page = await client.query("rust", "c0")

        variables = seen[0]["variables"]
        assert variables == {"after": "c0", "first": 2, "query": "in:inbox sort:saved rust"}
        assert [item.id for item in page.items] == ["1", "2"]
        assert page.items[0].saved_at == datetime(2024, 5, 1, 10, 0, tzinfo=UTC)
        assert page.next_cursor == "c2"

    @pytest.mark.asyncio
    async def test_last_page_has_no_cursor(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=_search_payload("9", has_next=False, end_cursor="c9"))

        async with _client(handler) as client:
            page = await client.query("", None)

        assert page.next_cursor is None

    @pytest.mark.asyncio
    async def test_server_error_is_transient(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        async with _client(handler) as client:
            with pytest.raises(TransientIOError):
                await client.query("", None)

    @pytest.mark.asyncio
    async def test_network_error_is_transient(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(TransientIOError):
                await client.query("", None)

    @pytest.mark.asyncio
    async def test_search_error_codes_raise(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": {"search": {"errorCodes": ["QUERY_ERROR"]}}})

        async with _client(handler) as client:
            with pytest.raises(ReaderApiError) as exc_info:
                await client.query("", None)

        assert exc_info.value.details["error_codes"] == ["QUERY_ERROR"]

    @pytest.mark.asyncio
    async def test_unauthorized_is_not_retried(self) -> None:
        attempts = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal attempts
            attempts += 1
            return httpx.Response(401)

        async with _client(handler, max_retries=3) as client:
            with pytest.raises(ReaderApiError):
                await client.delete_item("1")

        assert attempts == 1

    @pytest.mark.asyncio
    async def test_archive_retries_transient_failures(self, monkeypatch) -> None:
        monkeypatch.setattr("readlater.utils.retry_utils.calculate_delay", lambda *args: 0.0)
        responses = [
            httpx.Response(502),
            httpx.Response(200, json={"data": {"setLinkArchived": {"linkId": "1"}}}),
        ]
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return responses.pop(0)

        async with _client(handler, max_retries=2) as client:
            await client.archive_item("1", archived=True)

        assert len(bodies) == 2
        assert bodies[-1]["variables"] == {"input": {"linkId": "1", "archived": True}}

    @pytest.mark.asyncio
    async def test_delete_sends_unbookmark(self) -> None:
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(
                200, json={"data": {"setBookmarkArticle": {"bookmarkedArticle": {"id": "7"}}}}
            )

        async with _client(handler) as client:
            await client.delete_item("7")

        assert bodies[0]["variables"] == {"input": {"articleID": "7", "bookmark": False}}

    @pytest.mark.asyncio
    async def test_client_requires_context_manager(self) -> None:
        client = ReaderApiClient("https://reader.test/api", "api-token")

        with pytest.raises(ReaderApiError, match="Client not initialized"):
            await client.query("", None)
