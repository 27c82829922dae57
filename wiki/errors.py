"""Failures raised by the revision engine and surfaced by the API."""

from __future__ import annotations


class RevisionError(Exception):
    kind = "error"
    status_code = 500
    default_message = "Revision engine failure"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(RevisionError):
    kind = "not_found"
    status_code = 404
    default_message = "Not found"


class Conflict(RevisionError):
    """Slug collision or a rejected version number. Not retried."""

    kind = "conflict"
    status_code = 409
    default_message = "Conflicting change"


class Unauthenticated(RevisionError):
    kind = "unauthenticated"
    status_code = 401
    default_message = "An authenticated actor is required"


class InvalidReference(RevisionError):
    kind = "invalid_reference"
    status_code = 400
    default_message = "Referenced object does not exist"


class Unavailable(RevisionError):
    """Storage could not commit. Nothing was written, safe to retry."""

    kind = "unavailable"
    status_code = 503
    default_message = "Storage unavailable, try again"
