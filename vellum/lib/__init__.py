from vellum.lib.errors import (
    ConflictError,
    CycleError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
    VellumError,
)
from vellum.lib.hooks import action, filter, hooks

__all__ = [
    "ConflictError",
    "CycleError",
    "InvalidStateError",
    "NotFoundError",
    "ValidationError",
    "VellumError",
    "action",
    "filter",
    "hooks",
]
