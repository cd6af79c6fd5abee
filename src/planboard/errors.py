"""Typed errors raised by the board engine and its services.

Each error carries a stable ``code`` that the HTTP layer maps onto a status
code.  The classes also derive from the closest builtin exception so callers
that only know about ``ValueError`` / ``LookupError`` keep working.
"""

from __future__ import annotations


class BoardError(Exception):
    """Base class for recoverable, caller-facing board errors."""

    code = "board_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class NotFoundError(BoardError, LookupError):
    """A user, project, board, column, task, edge or record is missing."""

    code = "not_found"


class AccessDeniedError(BoardError):
    """The caller is not a member (or lacks the role) for the resource."""

    code = "access_denied"


class ValidationError(BoardError, ValueError):
    """The request is well-formed but violates a business rule."""

    code = "invalid"


class ConflictError(BoardError, ValueError):
    """The record already exists (e.g. email taken, member already added)."""

    code = "conflict"


class SelfReferenceError(ValidationError):
    """A dependency edge whose endpoints are the same task."""

    code = "self"


class DuplicateEdgeError(ConflictError):
    """The exact (task, depends_on) pair is already stored."""

    code = "duplicate"


class CycleError(ValidationError):
    """Adding the dependency edge would close a cycle."""

    code = "cycle"


class ConcurrencyConflictError(BoardError, RuntimeError):
    """The store could not be locked in time; retry the whole operation."""

    code = "concurrency_conflict"


class AuthenticationError(BoardError):
    """Credentials were rejected."""

    code = "unauthenticated"
