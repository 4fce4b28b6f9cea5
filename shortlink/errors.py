"""Errors that carry an HTTP status alongside their message."""

from __future__ import annotations


class ErrorResponse(Exception):
    """An error reported to clients with an HTTP status and a message."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"ErrorResponse(status={self.status!r}, message={self.message!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ErrorResponse):
            return NotImplemented
        return (self.status, self.message) == (other.status, other.message)

    def __hash__(self) -> int:
        return hash((self.status, self.message))

    def to_dict(self) -> dict[str, object]:
        """Return the JSON body for this error."""
        return {"status": self.status, "message": self.message}


def bad_request(message: str) -> ErrorResponse:
    """An error with status 400."""
    return ErrorResponse(400, message)


def internal_server_error(message: str) -> ErrorResponse:
    """An error with status 500."""
    return ErrorResponse(500, message)


def not_found(message: str) -> ErrorResponse:
    """An error with status 404."""
    return ErrorResponse(404, message)