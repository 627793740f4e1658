"""Data transfer objects for the library query stream."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from readlater.domain.models.library_item import LibraryItem


class QueryStream(str, Enum):
    """Which list a query feeds: plain browsing or an active search."""

    BASE = "base"
    SEARCH = "search"


@dataclass(frozen=True)
class QueryRequest:
    """A query as issued, kept until its result arrives."""

    seq: int
    text: str
    cursor: str | None = None
    reset: bool = False

    @property
    def stream(self) -> QueryStream:
        return QueryStream.SEARCH if self.text else QueryStream.BASE


@dataclass(frozen=True)
class QueryResult:
    """The answer to the request with the same ``seq``."""

    seq: int
    items: tuple[LibraryItem, ...] = ()
    next_cursor: str | None = None


@dataclass
class ReconcilerState:
    """Mutable list state owned by one reconciler instance."""

    last_issued_seq: int = 0
    last_accepted_seq: int = 0
    base_list: list[LibraryItem] = field(default_factory=list)
    search_list: list[LibraryItem] = field(default_factory=list)
    active_query: str = ""
    base_cursor: str | None = None
    search_cursor: str | None = None
    base_loaded: bool = False
    search_loaded: bool = False

    def list_for(self, stream: QueryStream) -> list[LibraryItem]:
        return self.search_list if stream is QueryStream.SEARCH else self.base_list

    def cursor_for(self, stream: QueryStream) -> str | None:
        return self.search_cursor if stream is QueryStream.SEARCH else self.base_cursor
