"""Storage of short URL mappings and the clicks made on them."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from shortlink.entities import UrlClick, UrlMapping

logger = logging.getLogger(__name__)


class ShortUrlNotFound(LookupError):
    """No usable mapping exists for the requested short code."""


class ShortUrlExpired(LookupError):
    """The mapping for the requested short code has passed its expiry time."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class UrlMappingRepository:
    """Reads and writes rows of the ``url_mappings`` table."""

    def __init__(self, engine: Engine) -> None:
        self._sessions = sessionmaker(bind=engine, expire_on_commit=False)

    def create_short_url(
        self, long_url: str, short_code: str, expires_at: datetime | None = None
    ) -> UrlMapping:
        """Store a new mapping and return it with its id assigned."""
        mapping = UrlMapping(
            short_code=short_code,
            long_url=long_url,
            created_at=_now(),
            expires_at=_as_utc(expires_at),
        )
        with self._sessions.begin() as session:
            session.add(mapping)
        return mapping

    def _first(self, *conditions) -> UrlMapping | None:
        statement = select(UrlMapping).where(*conditions).order_by(UrlMapping.id).limit(1)
        with self._sessions() as session:
            return session.scalars(statement).first()

    def get_by_short_code(self, short_code: str) -> UrlMapping:
        """Return the mapping for *short_code*.

        Raises ShortUrlNotFound when there is none and ShortUrlExpired when it
        has expired.
        """
        mapping = self._first(UrlMapping.short_code == short_code)
        if mapping is None:
            raise ShortUrlNotFound("short URL not found")
        expires_at = _as_utc(mapping.expires_at)
        if expires_at is not None and expires_at < _now():
            raise ShortUrlExpired("short URL has expired")
        return mapping

    def get_by_long_url(self, long_url: str) -> UrlMapping | None:
        """Return the oldest mapping for *long_url*, or None when there is none."""
        return self._first(UrlMapping.long_url == long_url)

    def get_valid_by_short_code(self, short_code: str) -> UrlMapping:
        """Return the unexpired mapping for *short_code*, or raise ShortUrlNotFound."""
        mapping = self._first(
            UrlMapping.short_code == short_code,
            or_(UrlMapping.expires_at.is_(None), UrlMapping.expires_at > _now()),
        )
        if mapping is None:
            raise ShortUrlNotFound("short URL not found or expired")
        return mapping


class UrlClickRepository:
    """Records visits in the ``url_clicks`` table."""

    def __init__(self, engine: Engine) -> None:
        self._sessions = sessionmaker(bind=engine, expire_on_commit=False)

    def log_click(self, mapping_id: int, ip_address: str, user_agent: str) -> UrlClick:
        """Store one click on the mapping with id *mapping_id* and return it."""
        click = UrlClick(
            mapping_id=mapping_id,
            ip_address=ip_address,
            user_agent=user_agent,
            clicked_at=_now(),
        )
        try:
            with self._sessions.begin() as session:
                session.add(click)
        except SQLAlchemyError as exc:
            logger.error("Error logging click: %s", exc)
            raise
        return click