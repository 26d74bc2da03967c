"""SQLAlchemy ORM models for the shortlink service.

Data Model Layout
=================
::
    short_links table
    ├─ id (UUID PRIMARY KEY)
    ├─ long_url (TEXT NOT NULL)
    ├─ code (VARCHAR(n) UNIQUE, INDEXED)
    ├─ short_url (TEXT NOT NULL)
    └─ created_at (TIMESTAMPTZ, DEFAULT NOW())

How to Use
===========
**Step 1 - Build from a record**::
    row = ShortLink.from_record(record)
    db.add(row)
    await db.commit()

**Step 2 - Query by code**::
    result = await db.execute(select(ShortLink).where(ShortLink.code == "Ab3dE9x"))
    row = result.scalar_one_or_none()

Key Behaviours
===============
- The unique index on ``code`` is the authoritative uniqueness guarantee.
- Rows are written once and never updated.
- ``long_url`` is stored verbatim so resolution returns it byte-for-byte.

Classes:
    ShortLink:  A code → long URL mapping.
"""

import datetime
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from shortlink.config import get_settings
from shortlink.database import Base

if TYPE_CHECKING:
    from shortlink.schemas import ShortLinkRecord

__all__ = ["ShortLink"]

settings = get_settings()


class ShortLink(Base):
    __tablename__ = "short_links"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    long_url: Mapped[str] = mapped_column(Text, nullable=False)
    code: Mapped[str] = mapped_column(
        String(settings.SHORT_CODE_LENGTH), unique=True, index=True, nullable=False
    )
    short_url: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    @classmethod
    def from_record(cls, record: "ShortLinkRecord") -> "ShortLink":
        return cls(
            id=record.id,
            long_url=record.long_url,
            code=record.code,
            short_url=record.short_url,
            created_at=record.created_at,
        )

    def __repr__(self) -> str:
        return f"<ShortLink(id={self.id}, code='{self.code}')>"
