from __future__ import annotations

__all__ = [
    "PlanboardError",
    "InvalidFormat",
    "PersistenceFailure",
    "Unauthenticated",
    "ValidationFailed",
    "NotFound",
]


class PlanboardError(Exception):
    """Base class for every error raised by planboard."""


class InvalidFormat(PlanboardError, ValueError):
    """A time or date string could not be parsed."""


class PersistenceFailure(PlanboardError, RuntimeError):
    """The store rejected a read or write, or is not open."""


class Unauthenticated(PlanboardError, PermissionError):
    """No signed-in user, or the user is not allowed to touch the record."""


class ValidationFailed(PlanboardError, ValueError):
    """User input rejected at the action boundary."""

    def __init__(self, message: str, errors: list | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class NotFound(PlanboardError, LookupError):
    pass
