"""Pydantic schemas for request/response validation and the click event payload.

Schema Hierarchy
=================
::
    LinkCreate (Input)
    └─ url: str (validated URL)

    LinkResponse (Output)
    ├─ id: int
    ├─ short_code: str
    ├─ original_url: str
    ├─ short_url: str (computed)
    ├─ click_count: int
    └─ created_at: datetime

    DeleteResponse (Output)
    ├─ success: bool
    └─ detail: str | None

    HealthResponse (Output)
    ├─ status: HealthStatus
    ├─ database: HealthStatus
    └─ cache: HealthStatus

    ClickEvent (Kafka payload)
    ├─ slug: str
    └─ timestamp: str (ISO-8601, UTC)

    ClickPayload (Kafka payload, consumer side)
    └─ slug: str

Key Behaviours
===============
- URL validation uses the validators library for RFC compliance.
- ClickEvent is serialized as UTF-8 JSON and keyed by slug on Kafka.
"""

import datetime

import validators
from pydantic import BaseModel, Field, field_validator

from app.enums import HealthStatus

__all__ = [
    "ClickEvent",
    "ClickPayload",
    "DeleteResponse",
    "HealthResponse",
    "LinkCreate",
    "LinkResponse",
]


class LinkCreate(BaseModel):
    url: str

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not validators.url(v):
            raise ValueError("Invalid URL provided")
        return v


class LinkResponse(BaseModel):
    id: int
    short_code: str
    original_url: str
    short_url: str
    click_count: int
    created_at: datetime.datetime

    model_config = {"from_attributes": True}


class DeleteResponse(BaseModel):
    success: bool
    detail: str | None = None


class HealthResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus
    cache: HealthStatus


class ClickEvent(BaseModel):
    """Kafka click event payload, keyed by slug for partition locality."""

    slug: str = Field(..., min_length=1, description="Short code that was resolved, e.g. 'ab3F9'")
    timestamp: str = Field(..., description="UTC time of the resolution in ISO-8601 format.")

    @classmethod
    def now(cls, slug: str) -> "ClickEvent":
        return cls(slug=slug, timestamp=datetime.datetime.now(datetime.timezone.utc).isoformat())


class ClickPayload(BaseModel):
    """Consumer-side view of a click event: only ``slug`` is required, other fields are ignored."""

    slug: str = Field(..., min_length=1)
