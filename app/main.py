"""FastAPI application entry point for the URL shortener service.

Application Lifecycle Diagram
=============================
::
    ┌──────────────┐
    │  uvicorn     │
    │  startup     │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ lifespan()   │
    │ startup:     │
    │ init_db()    │
    │ ServiceMgr   │
    │ (redis,kafka)│
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ Serve HTTP   │
    │ requests     │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ lifespan()   │
    │ shutdown:    │
    │ flush clicks │
    │ close redis  │
    │ close_db()   │
    └──────────────┘

How to Use
===========
**Step 1 — Run with uvicorn**::
    uvicorn app.main:app --host 0.0.0.0 --port 4000

**Step 2 — Run the click aggregator**::
    python -m services.click_aggregator.worker

**Step 3 — Make API calls**::
    curl -X POST http://localhost:4000/api/shorten \
         -H "Content-Type: application/json" \
         -d '{"url": "https://example.com"}'
    curl -i http://localhost:4000/<short_code>
    curl -X DELETE "http://localhost:4000/api/links?url=https://example.com"

Key Behaviours
===============
- Database tables are created automatically on startup.
- Only ``NotFoundError`` maps to 404; every other service error is a generic 500.
- Pending click events are flushed before the Kafka producer is stopped.
"""

__all__ = ["app"]

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from app.config import get_settings
from app.database import close_db, init_db
from app.dependencies import _service_manager
from app.errors import NotFoundError, ShortenerError
from app.routes import router

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    await init_db()
    await _service_manager.initialize()
    yield
    # Shutdown
    await _service_manager.cleanup()
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="URL shortener with cache-aside redirects and asynchronous click analytics",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": "Short URL not found"})


@app.exception_handler(ShortenerError)
async def internal_error_handler(request: Request, exc: ShortenerError) -> JSONResponse:
    # Store and cache internals are never exposed to clients.
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=False,
    should_respect_env_var=False,
).instrument(app).expose(app)

app.include_router(router)
