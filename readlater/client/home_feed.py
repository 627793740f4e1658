"""Home screen view model: inbox browsing, search-as-you-type and item actions."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING

from readlater.application.dto.query_dto import QueryStream
from readlater.core.async_utils import raise_if_cancelled
from readlater.client.query_reconciler import QueryReconciler

if TYPE_CHECKING:
    from collections.abc import Callable

    from readlater.domain.models.library_item import LibraryItem
    from readlater.protocols import ItemMutationService, RemoteQueryService

logger = logging.getLogger(__name__)


class ItemAction(str, Enum):
    DELETE = "delete"
    ARCHIVE = "archive"
    UNARCHIVE = "unarchive"


class HomeFeed:
    """Drives a ``QueryReconciler`` from user interactions.

    Example:
        ```python
        async with ReaderApiClient(url, token) as api:
            feed = HomeFeed(api, api)
            feed.subscribe(render)
            await feed.refresh()
            feed.update_search_text("python")
        ```
    """

    def __init__(
        self,
        service: RemoteQueryService,
        mutations: ItemMutationService,
        *,
        reconciler: QueryReconciler | None = None,
    ) -> None:
        self._mutations = mutations
        self._reconciler = reconciler or QueryReconciler(service)
        self._reconciler.set_listener(self._handle_change)
        self._listeners: list[Callable[[list[LibraryItem]], None]] = []
        self._mutation_tasks: set[asyncio.Task[None]] = set()
        self.search_text = ""
        self.items: list[LibraryItem] = []
        self.is_refreshing = False
        self._refresh_seq: int | None = None

    @property
    def reconciler(self) -> QueryReconciler:
        return self._reconciler

    def subscribe(self, listener: Callable[[list[LibraryItem]], None]) -> None:
        self._listeners.append(listener)

    def update_search_text(self, text: str) -> int | None:
        """React to the search box changing.

        Returns:
            The issued sequence number, or None if no query was needed.
        """
        self.search_text = text.strip()
        if not self.search_text:
            self._reconciler.clear_search()
            if self._reconciler.is_loaded(QueryStream.BASE):
                return None
            return self._reconciler.issue_query("", None, reset=True)
        return self._reconciler.issue_query(self.search_text, None, reset=True)

    async def refresh(self) -> None:
        """Reload the current stream from the first page."""
        self.is_refreshing = True
        try:
            self._refresh_seq = self._reconciler.issue_query(self.search_text, None, reset=True)
            await self._reconciler.wait_idle()
        finally:
            self._refresh_seq = None
            self.is_refreshing = False

    def load_more(self) -> int | None:
        """Request the next page of the current stream.

        Returns:
            The issued sequence number, or None once the stream is exhausted.
        """
        stream = self._reconciler.active_stream
        if not self._reconciler.is_loaded(stream):
            return self._reconciler.issue_query(self.search_text, None, reset=True)
        cursor = self._reconciler.cursor_for(stream)
        if cursor is None:
            return None
        return self._reconciler.issue_query(self.search_text, cursor, reset=False)

    def handle_item_action(self, item_id: str, action: ItemAction) -> asyncio.Task[None]:
        """Remove the item from the list now and send the mutation in the background."""
        self._reconciler.remove_item(item_id)
        task = asyncio.get_running_loop().create_task(self._send_mutation(item_id, action))
        self._mutation_tasks.add(task)
        task.add_done_callback(self._mutation_tasks.discard)
        return task

    async def _send_mutation(self, item_id: str, action: ItemAction) -> None:
        try:
            if action is ItemAction.DELETE:
                await self._mutations.delete_item(item_id)
            else:
                await self._mutations.archive_item(
                    item_id, archived=action is ItemAction.ARCHIVE
                )
        except Exception as exc:
            raise_if_cancelled(exc)
            logger.warning(
                "library_item_action_failed",
                extra={"item_id": item_id, "action": action.value, "error": str(exc)},
            )

    def _handle_change(self, visible: list[LibraryItem]) -> None:
        self.items = visible
        # Optimistic removals also emit; only an accepted page ends a refresh.
        if (
            self._refresh_seq is not None
            and self._reconciler.state.last_accepted_seq >= self._refresh_seq
        ):
            self.is_refreshing = False
        for listener in list(self._listeners):
            listener(visible)
