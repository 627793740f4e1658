"""Sequence-ordered reconciliation of asynchronous library queries.

Search results are not guaranteed to come back in the order they were
requested: while the user types ``Canucks`` the backend often answers the
query for ``C`` after the one for ``Canucks`` because it takes much longer to
compute. Every query therefore gets a sequence number at issuance and a
result is only applied if nothing newer has been applied before it.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import threading
from typing import TYPE_CHECKING

from readlater.application.dto.query_dto import (
    QueryRequest,
    QueryResult,
    QueryStream,
    ReconcilerState,
)
from readlater.core.async_utils import raise_if_cancelled

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from readlater.domain.models.library_item import LibraryItem
    from readlater.protocols import RemoteQueryService

logger = logging.getLogger(__name__)


def _dedupe(items: Iterable[LibraryItem]) -> list[LibraryItem]:
    seen: set[str] = set()
    unique: list[LibraryItem] = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        unique.append(item)
    return unique


class QueryReconciler:
    """Owns the list state of one client session.

    ``issue_query`` never blocks on the network: it schedules the call on the
    running event loop and returns the allocated sequence number. Results are
    applied by ``on_result`` under a lock, so concurrent completions cannot
    interleave their read-modify-write of the state.

    Superseded queries are not cancelled, their results are dropped on arrival.
    """

    def __init__(
        self,
        service: RemoteQueryService,
        *,
        on_change: Callable[[list[LibraryItem]], None] | None = None,
    ) -> None:
        self._service = service
        self._on_change = on_change
        self._state = ReconcilerState()
        self._pending: dict[int, QueryRequest] = {}
        # item id -> last issued seq at the time it was removed
        self._removed: dict[str, int] = {}
        self._lock = threading.Lock()
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def state(self) -> ReconcilerState:
        """Copy of the current state."""
        with self._lock:
            return dataclasses.replace(
                self._state,
                base_list=list(self._state.base_list),
                search_list=list(self._state.search_list),
            )

    @property
    def active_stream(self) -> QueryStream:
        with self._lock:
            return self._active_stream_locked()

    @property
    def visible_items(self) -> list[LibraryItem]:
        with self._lock:
            return list(self._state.list_for(self._active_stream_locked()))

    def cursor_for(self, stream: QueryStream) -> str | None:
        with self._lock:
            return self._state.cursor_for(stream)

    def is_loaded(self, stream: QueryStream) -> bool:
        with self._lock:
            if stream is QueryStream.SEARCH:
                return self._state.search_loaded
            return self._state.base_loaded

    def set_listener(self, on_change: Callable[[list[LibraryItem]], None] | None) -> None:
        self._on_change = on_change

    def issue_query(self, text: str, cursor: str | None = None, reset: bool = False) -> int:
        """Allocate the next sequence number and dispatch the query.

        Must be called from a running event loop. Non-empty ``text`` feeds the
        search stream and becomes the active query; empty text feeds the base
        stream.
        """
        loop = asyncio.get_running_loop()
        with self._lock:
            self._state.last_issued_seq += 1
            request = QueryRequest(
                seq=self._state.last_issued_seq,
                text=text.strip(),
                cursor=cursor,
                reset=reset,
            )
            self._pending[request.seq] = request
            if request.stream is QueryStream.SEARCH:
                self._state.active_query = request.text

        logger.debug(
            "library_query_issued",
            extra={
                "seq": request.seq,
                "stream": request.stream.value,
                "reset": reset,
                "has_cursor": cursor is not None,
            },
        )
        task = loop.create_task(self._dispatch(request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return request.seq

    async def _dispatch(self, request: QueryRequest) -> None:
        try:
            page = await self._service.query(request.text, request.cursor)
        except Exception as exc:
            raise_if_cancelled(exc)
            # A failed query is the same as no result; the caller may reissue.
            with self._lock:
                self._pending.pop(request.seq, None)
            logger.warning(
                "library_query_failed",
                extra={"seq": request.seq, "stream": request.stream.value, "error": str(exc)},
            )
            return

        self.on_result(
            request.seq,
            QueryResult(seq=request.seq, items=tuple(page.items), next_cursor=page.next_cursor),
        )

    def on_result(self, seq: int, result: QueryResult) -> bool:
        """Apply a completed query if it has not been superseded.

        Returns:
            True if the result changed the state, False if it was discarded.
        """
        with self._lock:
            request = self._pending.pop(seq, None)
            if request is None:
                logger.debug("library_result_unknown_seq", extra={"seq": seq})
                return False
            if seq < self._state.last_accepted_seq:
                logger.debug(
                    "library_result_superseded",
                    extra={"seq": seq, "last_accepted_seq": self._state.last_accepted_seq},
                )
                return False

            self._state.last_accepted_seq = seq
            stream = request.stream
            incoming = [item for item in result.items if not self._removed_before(item.id, seq)]
            current = [] if request.reset else self._state.list_for(stream)
            merged = _dedupe([*current, *incoming])

            if stream is QueryStream.SEARCH:
                self._state.search_list = merged
                self._state.search_cursor = result.next_cursor
                self._state.search_loaded = True
            else:
                self._state.base_list = merged
                self._state.base_cursor = result.next_cursor
                self._state.base_loaded = True

            self._prune_removed()
            visible = list(self._state.list_for(self._active_stream_locked()))

        logger.debug(
            "library_result_applied",
            extra={
                "seq": seq,
                "stream": stream.value,
                "reset": request.reset,
                "item_count": len(merged),
            },
        )
        self._emit(visible)
        return True

    def clear_search(self) -> list[LibraryItem]:
        """Return to the base list.

        In-flight search queries are forgotten; base-stream items, cursor and
        in-flight base queries are kept.
        """
        with self._lock:
            self._state.active_query = ""
            self._state.search_list = []
            self._state.search_cursor = None
            self._state.search_loaded = False
            for seq in [
                seq
                for seq, request in self._pending.items()
                if request.stream is QueryStream.SEARCH
            ]:
                del self._pending[seq]
            visible = list(self._state.base_list)

        self._emit(visible)
        return visible

    def remove_item(self, item_id: str) -> bool:
        """Optimistically drop an item from every held list.

        Results of queries issued before the removal will not bring it back.
        """
        with self._lock:
            self._removed[item_id] = self._state.last_issued_seq
            before = len(self._state.base_list) + len(self._state.search_list)
            self._state.base_list = [i for i in self._state.base_list if i.id != item_id]
            self._state.search_list = [i for i in self._state.search_list if i.id != item_id]
            changed = before != len(self._state.base_list) + len(self._state.search_list)
            visible = list(self._state.list_for(self._active_stream_locked()))

        if changed:
            self._emit(visible)
        return changed

    async def wait_idle(self) -> None:
        """Wait until every dispatched query has completed."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _active_stream_locked(self) -> QueryStream:
        return QueryStream.SEARCH if self._state.active_query else QueryStream.BASE

    def _removed_before(self, item_id: str, seq: int) -> bool:
        removed_at = self._removed.get(item_id)
        return removed_at is not None and seq <= removed_at

    def _prune_removed(self) -> None:
        # Anything issued at or before last_accepted_seq can no longer be applied
        accepted = self._state.last_accepted_seq
        for item_id in [i for i, at in self._removed.items() if at <= accepted]:
            del self._removed[item_id]

    def _emit(self, visible: list[LibraryItem]) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(visible)
        except Exception:
            logger.exception("library_listener_failed")
