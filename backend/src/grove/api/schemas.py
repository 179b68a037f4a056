"""Pydantic schemas for API requests and responses."""

from typing import Any

from pydantic import BaseModel, Field


class PageSummary(BaseModel):
    """A document as listed in trees and collections."""

    path: str
    route: str
    slug: str
    title: str
    template: str
    visible: bool
    routable: bool
    published: bool
    modular: bool
    date: int
    modified: int


class PageNode(PageSummary):
    """A document with its ordered children."""

    children: list["PageNode"] = Field(default_factory=list)


class PageDetail(PageSummary):
    """A dispatched document with everything a renderer needs."""

    header: dict[str, Any]
    content: str
    taxonomy: dict[str, list[str]]
    cache_key: str
    checksum: str


class DispatchResponse(BaseModel):
    """Outcome of dispatching a route."""

    route: str
    page: PageDetail | None = None
    redirect: str | None = None


class CollectionRequest(BaseModel):
    """Collection definition, as found under a page's ``content`` header."""

    params: dict[str, Any] = Field(..., description="Collection definition (items, filter, order)")
    self_route: str | None = Field(None, description="Route of the page @self refers to")
    page: int | None = Field(None, ge=1, description="Page number for pagination")


class CollectionResponse(BaseModel):
    """Resolved collection."""

    total: int
    pages: list[PageSummary]


class RebuildResponse(BaseModel):
    """Result of rebuilding the index."""

    cache_id: str
    documents: int
    routes: int
    last_modified: int
