"""SQLAlchemy ORM models for the flighttrack engine."""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, Float, String
from sqlalchemy.orm import Mapped, mapped_column

from flighttrack.db import Base


class CacheEntryRecord(Base):
    """Persisted enrichment cache entry."""

    __tablename__ = "enrichment_cache"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    payload: Mapped[Any] = mapped_column(JSON, nullable=True)
    timestamp: Mapped[float] = mapped_column(Float, nullable=False)
    ttl: Mapped[float] = mapped_column(Float, nullable=False)
