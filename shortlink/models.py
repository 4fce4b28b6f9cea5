"""Request and response bodies of the shortening API."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol

from shortlink.errors import bad_request


class _Mapping(Protocol):
    short_code: str
    long_url: str
    expires_at: datetime | None


def _isoformat(value: datetime) -> str:
    if value.tzinfo is not None and value.utcoffset() == timezone.utc.utcoffset(None):
        return value.replace(tzinfo=None).isoformat() + "Z"
    return value.isoformat()


@dataclass(frozen=True)
class UrlMappingRequest:
    """A request to shorten a URL."""

    long_url: str = ""


@dataclass(frozen=True)
class UrlMappingResponse:
    """The public view of a stored short URL."""

    short_code: str
    long_url: str
    expires_at: datetime | None
    full_url: str

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON body for this mapping."""
        return {
            "short_code": self.short_code,
            "long_url": self.long_url,
            "expires_at": None if self.expires_at is None else _isoformat(self.expires_at),
            "short_url": self.full_url,
        }


def parse_mapping_request(payload: str | bytes) -> UrlMappingRequest:
    """Decode a JSON request body; raise a 400 error when it is not valid."""
    try:
        data = json.loads(payload)
    except (ValueError, TypeError):
        raise bad_request("Invalid request payload") from None
    if data is None:
        return UrlMappingRequest()
    if not isinstance(data, dict):
        raise bad_request("Invalid request payload")
    long_url = data.get("long_url")
    if long_url is None:
        return UrlMappingRequest()
    if not isinstance(long_url, str):
        raise bad_request("Invalid request payload")
    return UrlMappingRequest(long_url=long_url)


def build_mapping_response(mapping: _Mapping, base_url: str) -> UrlMappingResponse:
    """Build the response for *mapping*, its short URL rooted at *base_url*."""
    return UrlMappingResponse(
        short_code=mapping.short_code,
        long_url=mapping.long_url,
        expires_at=mapping.expires_at,
        full_url=base_url + mapping.short_code,
    )