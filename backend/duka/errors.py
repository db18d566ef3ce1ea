# Overview: Error taxonomy shared by services and routes.

"""
Every business failure raised by the service layer is a DukaError.

Routes map each class to an HTTP status via `http_status`. Services never
catch these to continue: a raised error aborts the whole operation and the
caller rolls back the session.
"""

from __future__ import annotations


class DukaError(Exception):
    """Base class for service-layer failures."""

    http_status = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ValidationError(DukaError, ValueError):
    """400-level input problem, raised before any write."""


class NotFoundError(DukaError):
    """Referenced row does not exist."""

    http_status = 404


class RecordNotFoundError(NotFoundError):
    """An inventory record needed by a workflow was deleted."""


class InsufficientStockError(DukaError):
    """Not enough stock to complete the operation. Safe to retry after re-reading."""

    http_status = 409


class InvariantViolationError(DukaError):
    """Result would break 0 <= incomplete_pairs <= stock. Never clamped away."""

    http_status = 409


class TerminalStateError(DukaError):
    """Document already reached a terminal state."""

    http_status = 409


class AlreadyReturnedError(TerminalStateError):
    """Sale already has a return recorded."""


class PermissionDeniedError(DukaError):
    """Caller's role or store does not allow the operation."""

    http_status = 403


class TransientIOError(DukaError):
    """Database stayed unavailable or contended after bounded retries."""

    http_status = 503
