"""Pydantic schemas for validation, caching and serialization in the shortlink service.

Schema Hierarchy
=================
::
    ShortenRequest (Input)
    └─ url: str (absolute, well-formed URL)

    ShortLinkRecord (Internal, cached in Redis)
    ├─ id: UUID
    ├─ long_url: str
    ├─ code: str
    ├─ short_url: str
    └─ created_at: datetime

    ShortLinkResponse (Output)
    └─ Same fields as ShortLinkRecord

    HealthResponse (Output)
    ├─ status: HealthStatus
    ├─ database: HealthStatus
    └─ cache: HealthStatus

How to Use
===========
**Step 1 - Input validation**::
    @router.post("/api/shorten")
    async def shorten(payload: ShortenRequest):
        # payload.url is already validated
        ...

**Step 2 - Cache round trip**::
    raw = record.model_dump_json()
    record = ShortLinkRecord.model_validate_json(raw)

Key Behaviours
===============
- URL validation uses the validators library plus an absolute-URI check.
- ShortLinkRecord is immutable; it is what the store returns and the cache holds.
- All datetime fields are timezone-aware.
"""

import datetime
import uuid
from urllib.parse import urlsplit

import validators
from pydantic import BaseModel, ConfigDict, field_validator

from shortlink.enums import HealthStatus

__all__ = [
    "is_valid_long_url",
    "ShortenRequest",
    "ShortLinkRecord",
    "ShortLinkResponse",
    "HealthResponse",
]


def is_valid_long_url(value: object) -> bool:
    """Return True when ``value`` is an absolute, syntactically valid URL."""
    if not isinstance(value, str) or not value:
        return False
    # single-label hosts (localhost, intranet) and bare query keys (?flag) are valid
    if not validators.url(value, simple_host=True, strict_query=False):
        return False
    parts = urlsplit(value)
    return bool(parts.scheme and parts.netloc)


class ShortenRequest(BaseModel):
    url: str

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not is_valid_long_url(v):
            raise ValueError("Invalid URL provided")
        return v


class ShortLinkRecord(BaseModel):
    """A persisted code → long URL mapping."""

    id: uuid.UUID
    long_url: str
    code: str
    short_url: str
    created_at: datetime.datetime

    model_config = ConfigDict(from_attributes=True, frozen=True)


class ShortLinkResponse(BaseModel):
    id: uuid.UUID
    long_url: str
    code: str
    short_url: str
    created_at: datetime.datetime

    model_config = ConfigDict(from_attributes=True)


class HealthResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus
    cache: HealthStatus
