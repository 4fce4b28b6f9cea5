"""Database tables for short URL mappings and their clicks."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _UtcDateTime(TypeDecorator[datetime]):
    """Timestamps stored in UTC and always returned timezone-aware."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    """Declarative base for all tables."""


class UrlMapping(Base):
    """A short code and the long URL it points to."""

    __tablename__ = "url_mappings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    short_code: Mapped[str] = mapped_column(
        String(16), nullable=False, unique=True, index=True
    )
    long_url: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        _UtcDateTime(), nullable=False, default=_utcnow
    )
    expires_at: Mapped[Optional[datetime]] = mapped_column(_UtcDateTime(), nullable=True)


class UrlClick(Base):
    """One visit to a short URL."""

    __tablename__ = "url_clicks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    mapping_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    clicked_at: Mapped[datetime] = mapped_column(
        _UtcDateTime(), nullable=False, default=_utcnow
    )
    ip_address: Mapped[str] = mapped_column(String(45), nullable=True, default="")
    user_agent: Mapped[str] = mapped_column(Text, nullable=True, default="")