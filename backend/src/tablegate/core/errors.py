"""Error taxonomy for the TableGate core.

The core never produces HTTP responses. The API layer maps each class to a
status code (see ``tablegate.api.errors``). Messages are fixed strings so
that raw request input is never echoed back to the client.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tablegate.query.types import ParseError


class TableGateError(Exception):
    """Base class for all core errors."""

    default_message = "Internal error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class UnknownTable(TableGateError):
    """The requested table has no configuration."""

    default_message = "Table not found"


class RecordNotFound(TableGateError):
    default_message = "Record not found"


class Forbidden(TableGateError):
    """Authorization denied. Never carries the reason."""

    default_message = "Forbidden"

    def __init__(self) -> None:
        super().__init__(self.default_message)


class InvalidRequest(TableGateError):
    """One or more request parameters were rejected."""

    default_message = "Invalid request parameters"

    def __init__(self, errors: list[ParseError], message: str | None = None):
        super().__init__(message)
        self.errors = list(errors)


class PermissionCheckFailed(TableGateError):
    """The permission table could not be read."""

    default_message = "Permission check failed"


class DatabaseError(TableGateError):
    default_message = "Database error"


class RequestCancelled(TableGateError):
    """The request deadline passed or the request was cancelled."""

    default_message = "Request cancelled"
