"""Page index endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from grove.api.deps import get_page_index
from grove.api.schemas import (
    CollectionRequest,
    CollectionResponse,
    DispatchResponse,
    PageDetail,
    PageNode,
    PageSummary,
    RebuildResponse,
)
from grove.errors import PageIndexError, RewriteLoopError
from grove.pages.document import Document
from grove.pages.service import PageIndex

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/pages", tags=["pages"])


def _summary_fields(document: Document) -> dict:
    return {
        "path": document.path,
        "route": document.route,
        "slug": document.slug,
        "title": document.title,
        "template": document.template,
        "visible": document.visible,
        "routable": document.routable,
        "published": document.published,
        "modular": document.modular,
        "date": document.date,
        "modified": document.modified,
    }


def _node(index: PageIndex, document: Document) -> PageNode:
    return PageNode(
        **_summary_fields(document),
        children=[_node(index, child) for child in index.children(document.path)],
    )


@router.get("/tree", response_model=PageNode)
async def get_tree(index: PageIndex = Depends(get_page_index)) -> PageNode:
    """Get the document tree in display order."""
    return _node(index, index.root())


@router.get("/routes", response_model=dict[str, str])
async def get_routes(index: PageIndex = Depends(get_page_index)) -> dict[str, str]:
    """Get the route -> storage path table."""
    return index.route_index.to_dict()


@router.get("/dispatch", response_model=DispatchResponse)
async def dispatch_route(
    route: str = Query(..., description="Request route, e.g. /blog/hello"),
    index: PageIndex = Depends(get_page_index),
) -> DispatchResponse:
    """Resolve a route to a page or a redirect."""
    try:
        result = index.dispatch(route)
    except RewriteLoopError as e:
        logger.error(str(e))
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e)) from e

    if result.redirect:
        return DispatchResponse(route=route, redirect=result.redirect)
    if not result.found:
        raise HTTPException(status_code=404, detail=f"Page not found: {route}")

    document = result.document
    assert document is not None
    return DispatchResponse(
        route=route,
        page=PageDetail(
            **_summary_fields(document),
            header=document.header,
            content=document.content,
            taxonomy=document.taxonomy,
            cache_key=document.cache_key,
            checksum=document.checksum,
        ),
    )


@router.post("/collection", response_model=CollectionResponse)
async def get_collection(
    request: CollectionRequest,
    index: PageIndex = Depends(get_page_index),
) -> CollectionResponse:
    """Run a collection definition."""
    self_document = None
    if request.self_route is not None:
        self_document = index.find(request.self_route)
        if self_document is None:
            raise HTTPException(status_code=404, detail=f"Page not found: {request.self_route}")

    collection = index.collection(request.params, self_document, request.page)
    pages = [PageSummary(**_summary_fields(document)) for document in collection]
    return CollectionResponse(total=len(pages), pages=pages)


@router.post("/rebuild", response_model=RebuildResponse)
def rebuild_index(
    force: bool = Query(False, description="Ignore the cached snapshot"),
    index: PageIndex = Depends(get_page_index),
) -> RebuildResponse:
    """Rebuild the index (from cache unless forced)."""
    try:
        state = index.rebuild(force=force)
    except PageIndexError as e:
        logger.error(f"Page index rebuild failed: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e)) from e

    return RebuildResponse(
        cache_id=state.cache_id,
        documents=len(state.instances),
        routes=len(state.routes),
        last_modified=state.last_modified,
    )
