from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    Index,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# --- SQLAlchemy base ---------------------------------------------------------

class Base(DeclarativeBase):
    """Declarative base for all models."""
    pass


# --- Models ------------------------------------------------------------------

class CachedJob(Base):
    """One freshness-cache entry; ``id`` is the posting's identity hash."""

    __tablename__ = "cached_jobs"
    __table_args__ = (
        Index("ix_cached_jobs_cached_at", "cached_at"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    company: Mapped[Optional[str]] = mapped_column(String(200))
    location: Mapped[Optional[str]] = mapped_column(String(200))
    snippet: Mapped[Optional[str]] = mapped_column(String(400))
    description: Mapped[Optional[str]] = mapped_column(Text)
    url: Mapped[Optional[str]] = mapped_column(String(600))
    source: Mapped[str] = mapped_column(String(120), nullable=False)
    posted_date: Mapped[Optional[datetime]] = mapped_column(DateTime)
    salary: Mapped[Optional[str]] = mapped_column(String(120))
    employment_type: Mapped[Optional[str]] = mapped_column(String(20))
    keywords: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    synthetic: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Epoch milliseconds of the last put(); freshness is derived from it on read
    cached_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<CachedJob id={self.id} source={self.source!r} title={self.title!r}>"


__all__ = [
    "Base",
    "CachedJob",
]
