import asyncio
import logging
from typing import AsyncIterator

from fastapi import HTTPException, Request

from app.core.config import settings
from app.schemas.query import PaginatedQuery
from app.services.query_service import CancellationToken, QueryService

_LOG = logging.getLogger("app.api")


async def _cancel_on_disconnect(request: Request, token: CancellationToken) -> None:
    while not token.is_cancelled:
        if await request.is_disconnected():
            _LOG.info("client disconnected from %s %s; cancelling query", request.method, request.url.path)
            token.cancel()
            return
        await asyncio.sleep(settings.DISCONNECT_POLL_SECONDS)


async def get_cancellation(request: Request) -> AsyncIterator[CancellationToken]:
    """Token cancelled as soon as the client disconnects; the watcher stops with the request."""
    token = CancellationToken()
    watcher = asyncio.create_task(_cancel_on_disconnect(request, token))
    try:
        yield token
    finally:
        watcher.cancel()


def validate_query(service: QueryService, request: PaginatedQuery) -> None:
    """Reject filters the entity does not support and oversized pages with 400."""
    for query_filter in request.filtering.query_filters:
        if not service.supports_filter(query_filter):
            raise HTTPException(
                status_code=400,
                detail=f"Filter {query_filter.name} is not supported for {service.model.__name__}",
            )
    if request.pagination.page_size > settings.MAX_PAGE_SIZE:
        raise HTTPException(status_code=400, detail=f"page_size must not exceed {settings.MAX_PAGE_SIZE}")


def not_found(entity: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{entity} not found")
