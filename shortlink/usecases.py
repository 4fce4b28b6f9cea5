"""Business rules for shortening URLs and resolving short codes."""

from __future__ import annotations

import logging
import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Protocol

from shortlink.entities import UrlClick, UrlMapping
from shortlink.errors import ErrorResponse, bad_request, internal_server_error, not_found
from shortlink.repositories import ShortUrlExpired, ShortUrlNotFound

logger = logging.getLogger(__name__)

CHARSET = string.ascii_lowercase + string.ascii_uppercase + string.digits
CODE_LENGTH = 6
DEFAULT_LIFETIME = timedelta(hours=5)


class _MappingStore(Protocol):
    def create_short_url(
        self, long_url: str, short_code: str, expires_at: datetime | None
    ) -> UrlMapping: ...

    def get_by_short_code(self, short_code: str) -> UrlMapping: ...

    def get_by_long_url(self, long_url: str) -> UrlMapping | None: ...

    def get_valid_by_short_code(self, short_code: str) -> UrlMapping: ...


class _ClickStore(Protocol):
    def log_click(self, mapping_id: int, ip_address: str, user_agent: str) -> UrlClick: ...


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _is_expired(expires_at: datetime | None) -> bool:
    if expires_at is None:
        return False
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at < _now()


def generate_random_code(length: int = CODE_LENGTH) -> str:
    """Return a random code of *length* letters and digits."""
    return "".join(secrets.choice(CHARSET) for _ in range(length))


class UrlMappingUsecase:
    """Shortens URLs and resolves short codes against the stores it is given."""

    def __init__(self, mapping_repo: _MappingStore, click_repo: _ClickStore) -> None:
        self.mapping_repo = mapping_repo
        self.click_repo = click_repo

    def _create(self, long_url: str, expires_at: datetime) -> UrlMapping:
        try:
            short_code = generate_random_code(CODE_LENGTH)
        except OSError as exc:
            raise internal_server_error(f"Failed to generate short code: {exc}") from exc
        try:
            return self.mapping_repo.create_short_url(long_url, short_code, expires_at)
        except Exception as exc:
            raise internal_server_error(f"Failed to create short URL: {exc}") from exc

    def shorten_url(self, long_url: str, expires_at: datetime | None = None) -> UrlMapping:
        """Create a mapping for *long_url*, expiring five hours from now by default.

        A URL that already has an unexpired mapping is refused with a 400 error.
        """
        if expires_at is None:
            expires_at = _now() + DEFAULT_LIFETIME
        try:
            existing = self.mapping_repo.get_by_long_url(long_url)
        except Exception as exc:
            raise bad_request("URL already exists") from exc
        if existing is not None and not _is_expired(existing.expires_at):
            raise bad_request("URL already exists and not expired")
        return self._create(long_url, expires_at)

    def _lookup(self, short_code: str) -> UrlMapping:
        if not short_code:
            raise bad_request("Short code cannot be empty")
        try:
            return self.mapping_repo.get_by_short_code(short_code)
        except ShortUrlNotFound as exc:
            raise not_found("Short URL not found") from exc
        except ShortUrlExpired as exc:
            raise bad_request("Short URL has expired") from exc
        except ErrorResponse:
            raise
        except Exception as exc:
            raise internal_server_error(f"Failed to retrieve short URL: {exc}") from exc

    def get_by_short_code(self, short_code: str) -> UrlMapping:
        """Return the unexpired mapping for *short_code*, or raise an ErrorResponse."""
        return self._lookup(short_code)

    def resolve_and_log(self, short_code: str, ip_address: str, user_agent: str) -> UrlMapping:
        """Like get_by_short_code, and also record the visit.

        A failure to record the visit is logged and does not stop the lookup.
        """
        mapping = self._lookup(short_code)
        try:
            self.click_repo.log_click(mapping.id, ip_address, user_agent)
        except Exception as exc:
            logger.error(
                "Error logging click - ShortCode: %s, MappingID: %d, IPAddress: %s, Error: %s",
                short_code,
                mapping.id,
                ip_address,
                exc,
            )
        else:
            logger.info(
                "Successfully logged click - ShortCode: %s, MappingID: %d, IPAddress: %s",
                short_code,
                mapping.id,
                ip_address,
            )
        return mapping