"""
Domain-specific exception hierarchy for the salon scheduling engine.
"""

from __future__ import annotations

from typing import Optional


class SchedulingError(Exception):
    """Base class for all application-level errors."""


class ValidationError(SchedulingError, ValueError):
    """Raised when a request is malformed; nothing is persisted."""


class NotFoundError(SchedulingError):
    """Raised when a referenced record does not exist."""

    def __init__(self, entity: str, identifier: Optional[str] = None):
        self.entity = entity
        self.identifier = identifier
        message = f"{entity.capitalize()} not found"
        if identifier:
            message = f"{message}: {identifier}"
        super().__init__(message)


class ConflictError(SchedulingError):
    """
    Raised when a requested interval collides with the occupied timeline.

    ``is_blocked`` tells callers whether the collision is an admin-declared
    block (blocked slot or closure) rather than another customer's booking.
    """

    def __init__(
        self,
        message: str,
        *,
        is_blocked: bool = False,
        reason: Optional[str] = None,
        conflicting_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.is_blocked = is_blocked
        self.reason = reason
        self.conflicting_id = conflicting_id


class AlreadyExistsError(SchedulingError):
    """Raised when creating a record that may only exist once."""


class StorageError(SchedulingError):
    """Raised when the backing store cannot be read or written."""
