"""FastAPI route definitions for the URL shortener REST API.

API Endpoint Overview
=====================
::
    GET    /health
        └─ HealthResponse (200)

    POST   /api/shorten
        ├─ LinkCreate (request body)
        └─ LinkResponse (201) or 422/500

    DELETE /api/links?url=<original_url>
        └─ DeleteResponse (200) or 404/500

    GET    /api/stats/:short_code
        └─ LinkResponse (200) or 404

    GET    /:short_code
        └─ 308 (cache hit) / 307 (database) Redirect or 404

Request Flow Diagram
====================
::
    ┌─────────────┐
    │  HTTP       │
    │  Request    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Validate &  │
    │ Parse       │
    │ (Pydantic)  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Inject      │
    │ Registry /  │
    │ Resolver    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Component   │──── ShortenerError ──▶ exception handler (app.main)
    │ call        │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ HTTP        │
    │ Response    │
    └─────────────┘

Key Behaviours
===============
- Domain errors propagate to the handlers registered in ``app.main``:
  ``NotFoundError`` becomes 404, anything else 500.
- Delete answers an unknown URL with ``{"success": false}`` and 404.
- Stats are read from the database so ``click_count`` is never stale.
"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, RedirectResponse

from app.dependencies import (
    RequestContext,
    ServiceManager,
    get_link_registry,
    get_request_context,
    get_resolver,
    get_service_manager,
)
from app.enums import HealthStatus
from app.errors import CacheError, NotFoundError, StoreError
from app.models import ShortLink
from app.registry import LinkRegistry
from app.resolver import Resolver
from app.schemas import DeleteResponse, HealthResponse, LinkCreate, LinkResponse

__all__ = ["router"]

router = APIRouter()


def _to_response(link: ShortLink, ctx: RequestContext) -> LinkResponse:
    return LinkResponse(
        id=link.id,
        short_code=link.short_code,
        original_url=link.original_url,
        short_url=f"{ctx.settings.BASE_URL}/{link.short_code}",
        click_count=link.click_count,
        created_at=link.created_at,
    )


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(
    ctx: RequestContext = Depends(get_request_context),
    manager: ServiceManager = Depends(get_service_manager),
) -> HealthResponse:
    db_status = HealthStatus.HEALTHY
    cache_status = HealthStatus.HEALTHY

    try:
        await manager.store.ping()
    except StoreError as e:
        ctx.logger.error(f"Database health check failed: {e}")
        db_status = HealthStatus.UNHEALTHY

    try:
        await manager.cache.ping()
    except CacheError as e:
        ctx.logger.error(f"Cache health check failed: {e}")
        cache_status = HealthStatus.UNHEALTHY

    status = (
        HealthStatus.HEALTHY
        if db_status is HealthStatus.HEALTHY and cache_status is HealthStatus.HEALTHY
        else HealthStatus.UNHEALTHY
    )
    ctx.logger.debug(f"Health check completed: {status.value}")
    return HealthResponse(status=status, database=db_status, cache=cache_status)


@router.post("/api/shorten", response_model=LinkResponse, status_code=201, tags=["links"])
async def shorten_url(
    payload: LinkCreate,
    ctx: RequestContext = Depends(get_request_context),
    registry: LinkRegistry = Depends(get_link_registry),
) -> LinkResponse:
    ctx.logger.info(
        f"URL shortening requested: {payload.url}",
        extra={"operation": "create_short_link", "target_url": payload.url},
    )

    link = await registry.create(payload.url)

    ctx.logger.info(
        f"URL shortened successfully: {link.short_code}",
        extra={
            "operation": "create_short_link",
            "short_code": link.short_code,
            "link_id": link.id,
            "duration_ms": ctx.get_duration(),
        },
    )
    return _to_response(link, ctx)


@router.delete("/api/links", response_model=DeleteResponse, tags=["links"])
async def delete_links(
    url: str = Query(..., min_length=1, description="Original URL whose short links should be removed"),
    ctx: RequestContext = Depends(get_request_context),
    registry: LinkRegistry = Depends(get_link_registry),
):
    try:
        await registry.delete(url)
    except NotFoundError as exc:
        return JSONResponse(
            status_code=404,
            content=DeleteResponse(success=False, detail=str(exc)).model_dump(),
        )

    ctx.logger.info(
        f"Short links deleted for {url}",
        extra={"operation": "delete_short_links", "target_url": url, "duration_ms": ctx.get_duration()},
    )
    return DeleteResponse(success=True)


@router.get("/api/stats/{short_code}", response_model=LinkResponse, tags=["links"])
async def get_stats(
    short_code: str,
    ctx: RequestContext = Depends(get_request_context),
    registry: LinkRegistry = Depends(get_link_registry),
) -> LinkResponse:
    ctx.logger.info(f"Stats requested for short code: {short_code}")
    link = await registry.get_link(short_code)
    return _to_response(link, ctx)


@router.get("/{short_code}", tags=["redirect"])
async def redirect_to_url(
    short_code: str,
    ctx: RequestContext = Depends(get_request_context),
    resolver: Resolver = Depends(get_resolver),
) -> RedirectResponse:
    target = await resolver.resolve(short_code)

    ctx.logger.info(
        f"Redirect successful: {short_code} -> {target.url}",
        extra={
            "operation": "redirect",
            "short_code": short_code,
            "target_url": target.url,
            "redirect_kind": target.kind.value,
            "duration_ms": ctx.get_duration(),
        },
    )
    return RedirectResponse(url=target.url, status_code=target.status_code)
