"""Reader GraphQL API client."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from readlater.adapters.reader_api.models import SearchPage, SearchSuccess
from readlater.domain.exceptions.domain_exceptions import DomainException, TransientIOError
from readlater.utils.retry_utils import retry_with_backoff

if TYPE_CHECKING:
    from typing import Self

logger = logging.getLogger(__name__)

# Every library listing is scoped to the inbox, newest saves first
BASE_SEARCH_QUERY = "in:inbox sort:saved"

# HTTP status codes that indicate a transient server-side problem
RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}

SEARCH_QUERY = """
query Search($after: String, $first: Int, $query: String) {
  search(first: $first, after: $after, query: $query) {
    ... on SearchSuccess {
      edges {
        cursor
        node { id title slug url author description image savedAt isArchived }
      }
      pageInfo { hasNextPage endCursor }
    }
    ... on SearchError { errorCodes }
  }
}
"""

SET_LINK_ARCHIVED_MUTATION = """
mutation SetLinkArchived($input: ArchiveLinkInput!) {
  setLinkArchived(input: $input) {
    ... on ArchiveLinkSuccess { linkId message }
    ... on ArchiveLinkError { errorCodes message }
  }
}
"""

DELETE_ITEM_MUTATION = """
mutation SetBookmarkArticle($input: SetBookmarkArticleInput!) {
  setBookmarkArticle(input: $input) {
    ... on SetBookmarkArticleSuccess { bookmarkedArticle { id } }
    ... on SetBookmarkArticleError { errorCodes }
  }
}
"""


class ReaderApiError(DomainException):
    """Non-retryable error reported by the reader API."""


def compose_search_query(text: str) -> str:
    """Build the search expression for the user's search text."""
    text = text.strip()
    if not text:
        return BASE_SEARCH_QUERY
    return f"{BASE_SEARCH_QUERY} {text}"


class ReaderApiClient:
    """Async GraphQL client for the reader backend.

    Implements the remote query service used by the client-side reconciler
    and the item mutations fired after optimistic list updates.
    """

    def __init__(
        self,
        api_url: str,
        api_token: str,
        timeout: float = 30.0,
        *,
        page_size: int = 15,
        max_retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_url: Base URL of the API (the GraphQL endpoint is ``/graphql``)
            api_token: Auth token sent in the ``Authorization`` header
            timeout: Request timeout in seconds
            page_size: Number of items requested per search page
            max_retries: Retries for mutations; searches are never retried
            transport: Optional custom httpx transport
        """
        self.api_url = api_url.rstrip("/")
        self.api_token = api_token
        self.timeout = timeout
        self.page_size = page_size
        self.max_retries = max_retries
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> Self:
        self._client = httpx.AsyncClient(
            base_url=self.api_url,
            headers={
                "Authorization": self.api_token,
                "Content-Type": "application/json",
            },
            timeout=self.timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise ReaderApiError("Client not initialized. Use async context manager.")
        return self._client

    async def _post(self, operation: str, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self.client.post(
                "/graphql", json={"query": query, "variables": variables}
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            msg = f"{operation} failed with HTTP {status}"
            if status in RETRYABLE_STATUS_CODES:
                raise TransientIOError(msg, details={"status_code": status}) from exc
            raise ReaderApiError(msg, details={"status_code": status}) from exc
        except httpx.TransportError as exc:
            msg = f"{operation} failed: {exc}"
            raise TransientIOError(msg) from exc

        payload = response.json()
        if payload.get("errors"):
            msg = f"{operation} returned GraphQL errors"
            raise ReaderApiError(msg, details={"errors": payload["errors"]})
        return payload.get("data") or {}

    async def query(self, text: str, cursor: str | None) -> SearchPage:
        """Fetch one page of the library for ``text``.

        Raises:
            TransientIOError: On network failures, timeouts and 5xx responses.
            ReaderApiError: If the API rejected the search.
        """
        data = await self._post(
            "search",
            SEARCH_QUERY,
            {"after": cursor, "first": self.page_size, "query": compose_search_query(text)},
        )
        result = data.get("search") or {}
        if result.get("errorCodes"):
            raise ReaderApiError(
                "search rejected", details={"error_codes": result["errorCodes"]}
            )
        page = SearchPage.from_success(SearchSuccess.model_validate(result))
        logger.debug(
            "reader_search_page",
            extra={"item_count": len(page.items), "has_more": page.next_cursor is not None},
        )
        return page

    async def archive_item(self, item_id: str, *, archived: bool) -> None:
        async def _archive() -> None:
            data = await self._post(
                "set_link_archived",
                SET_LINK_ARCHIVED_MUTATION,
                {"input": {"linkId": item_id, "archived": archived}},
            )
            result = data.get("setLinkArchived") or {}
            if result.get("errorCodes"):
                raise ReaderApiError(
                    "archive rejected",
                    details={"item_id": item_id, "error_codes": result["errorCodes"]},
                )

        await retry_with_backoff(
            _archive, max_retries=self.max_retries, operation_name=f"archive_item({item_id})"
        )
        logger.info("reader_item_archived", extra={"item_id": item_id, "archived": archived})

    async def delete_item(self, item_id: str) -> None:
        async def _delete() -> None:
            data = await self._post(
                "set_bookmark_article",
                DELETE_ITEM_MUTATION,
                {"input": {"articleID": item_id, "bookmark": False}},
            )
            result = data.get("setBookmarkArticle") or {}
            if result.get("errorCodes"):
                raise ReaderApiError(
                    "delete rejected",
                    details={"item_id": item_id, "error_codes": result["errorCodes"]},
                )

        await retry_with_backoff(
            _delete, max_retries=self.max_retries, operation_name=f"delete_item({item_id})"
        )
        logger.info("reader_item_deleted", extra={"item_id": item_id})
