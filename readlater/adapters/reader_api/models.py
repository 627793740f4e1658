"""Pydantic models for the reader GraphQL API."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - Pydantic needs this at runtime

from pydantic import BaseModel, Field

from readlater.domain.models.library_item import LibraryItem


class SearchNode(BaseModel):
    """A library item as returned by the ``search`` query."""

    id: str
    title: str = ""
    slug: str | None = None
    url: str | None = None
    author: str | None = None
    description: str | None = None
    image: str | None = None
    saved_at: datetime | None = Field(default=None, alias="savedAt")
    is_archived: bool = Field(default=False, alias="isArchived")

    model_config = {"populate_by_name": True, "extra": "ignore"}

    def to_domain(self) -> LibraryItem:
        return LibraryItem(
            id=self.id,
            title=self.title,
            url=self.url,
            slug=self.slug,
            author=self.author,
            description=self.description,
            image_url=self.image,
            saved_at=self.saved_at,
            is_archived=self.is_archived,
        )


class SearchEdge(BaseModel):
    cursor: str | None = None
    node: SearchNode


class PageInfo(BaseModel):
    has_next_page: bool = Field(default=False, alias="hasNextPage")
    end_cursor: str | None = Field(default=None, alias="endCursor")

    model_config = {"populate_by_name": True, "extra": "ignore"}


class SearchSuccess(BaseModel):
    """``SearchSuccess`` branch of the search union."""

    edges: list[SearchEdge] = Field(default_factory=list)
    page_info: PageInfo = Field(default_factory=PageInfo, alias="pageInfo")

    model_config = {"populate_by_name": True, "extra": "ignore"}


class SearchPage(BaseModel):
    """One page of library items plus the cursor for the next one."""

    items: list[LibraryItem] = Field(default_factory=list)
    next_cursor: str | None = None

    @classmethod
    def from_success(cls, success: SearchSuccess) -> SearchPage:
        next_cursor = success.page_info.end_cursor if success.page_info.has_next_page else None
        return cls(
            items=[edge.node.to_domain() for edge in success.edges],
            next_cursor=next_cursor,
        )
