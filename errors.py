from typing import Optional


class LedgerError(Exception):
    """Base class for every error the finance core raises on purpose."""


class ValidationError(LedgerError, ValueError):
    """Input rejected before touching the record store."""

    def __init__(self, message: str, errors: Optional[list[str]] = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class NotFoundError(LedgerError, ValueError):
    """Record does not exist or is not owned by the acting user."""


class InvalidStateError(LedgerError, ValueError):
    """Operation not allowed in the goal's current state."""


class AutoSaveDisabledError(InvalidStateError):
    pass


class AutoSaveNotDueError(InvalidStateError):
    pass


class StoreFailure(LedgerError):
    """The record store failed; callers may retry."""
