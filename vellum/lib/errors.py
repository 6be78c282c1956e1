"""Domain errors raised by the page, version and restore services.

Every service reports failures by raising one of these. The HTTP layer maps
them to status codes in :mod:`vellum.lib.exceptions`; library callers can
catch :class:`VellumError` to handle all of them at once.
"""


class VellumError(Exception):
    """Base class for all domain errors."""

    code = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(VellumError):
    """Malformed input: bad version number, slug collision, unknown block id."""

    code = "validation_error"


class NotFoundError(VellumError):
    """A referenced project, page, version or block does not exist."""

    code = "not_found"


class CycleError(VellumError):
    """A move would make a page its own ancestor."""

    code = "cycle"


class InvalidStateError(VellumError):
    """The operation is not allowed in the record's current lifecycle state."""

    code = "invalid_state"


class ConflictError(VellumError):
    """A uniqueness rule was violated, e.g. a duplicate version number."""

    code = "conflict"


__all__ = [
    "ConflictError",
    "CycleError",
    "InvalidStateError",
    "NotFoundError",
    "ValidationError",
    "VellumError",
]
