"""JSON HTTP responses in the API's envelope format."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any

from flask import Response

from shortlink.errors import ErrorResponse, internal_server_error

logger = logging.getLogger(__name__)

JSON_MIMETYPE = "application/json"


def _default(value: Any) -> Any:
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _encode(payload: Any) -> str:
    return json.dumps(payload, default=_default) + "\n"


def _json(body: str, status: int) -> Response:
    return Response(body, status=status, mimetype=JSON_MIMETYPE)


def success_response(data: Any, message: str, status: int = 200) -> Response:
    """Wrap *data* in the success envelope with the given status."""
    try:
        body = _encode({"status": status, "message": message, "data": data})
    except (TypeError, ValueError) as exc:
        logger.error("Failed to encode success response: %s", exc)
        return error_response(internal_server_error("Failed to encode response"))
    return _json(body, status)


def error_response(error: ErrorResponse) -> Response:
    """Render *error* as a JSON body carrying its own status."""
    return _json(_encode(error.to_dict()), error.status)


def message_response(message: str, status: int) -> Response:
    """A JSON body holding only a message and a status."""
    return _json(_encode({"message": message, "status": status}), status)