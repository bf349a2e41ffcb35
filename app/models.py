"""SQLAlchemy ORM models for the URL shortener.

Data Model Layout
=================
::
    urls table
    ├─ id (SERIAL PRIMARY KEY)
    ├─ original_url (TEXT NOT NULL)
    ├─ short_code (VARCHAR(16) NOT NULL, UNIQUE INDEX)
    ├─ click_count (INTEGER NOT NULL DEFAULT 0)
    └─ created_at (TIMESTAMPTZ NOT NULL DEFAULT NOW())

Key Behaviours
===============
- short_code uniqueness is enforced by the database, not by the application.
- click_count only ever grows, through ``click_count = click_count + 1``.
- original_url and short_code are never updated after insertion.

Classes:
    ShortLink:  A short code mapped to its redirect target with a click counter.
"""

import datetime

from sqlalchemy import DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base

__all__ = ["ShortLink"]


class ShortLink(Base):
    __tablename__ = "urls"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    original_url: Mapped[str] = mapped_column(Text, nullable=False)
    short_code: Mapped[str] = mapped_column(String(16), unique=True, index=True, nullable=False)
    click_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<ShortLink(id={self.id}, short_code='{self.short_code}', click_count={self.click_count})>"
