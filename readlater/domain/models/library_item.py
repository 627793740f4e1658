"""Library item domain model.

A saved article as shown in the client's list. Identity is immutable; the
client only ever changes whether an item is part of the visible list.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class LibraryItem:
    """A saved link in the user's library."""

    id: str
    title: str = ""
    url: str | None = None
    slug: str | None = None
    author: str | None = None
    description: str | None = None
    image_url: str | None = None
    saved_at: datetime | None = None
    is_archived: bool = False

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("id must not be empty")
