# Overview: Domain error taxonomy shared by services, the action boundary, and routes.

"""
Every expected failure in tradedesk is an ActionError subclass.

Services raise them; run_action() turns them into ActionResult data and the
web layer maps `http_status` onto the response. Nothing here is fatal to the
process: every failure is local to one request and can be retried by
resubmitting corrected input.
"""

from __future__ import annotations


class ActionError(Exception):
    """Base class for recoverable business failures."""

    code = "ACTION_FAILED"
    http_status = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class Unauthenticated(ActionError):
    """Missing or wrong credentials."""

    code = "UNAUTHENTICATED"
    http_status = 401


class Unauthorized(ActionError):
    """Actor is not a member of the organisation or lacks the required role."""

    code = "UNAUTHORIZED"
    http_status = 403


class ValidationError(ActionError):
    """Schema-level input problem. `details` maps field path -> [messages]."""

    code = "VALIDATION_ERROR"
    http_status = 400


class NotFound(ActionError):
    code = "NOT_FOUND"
    http_status = 404

    def __init__(self, entity: str, message: str | None = None, details: dict | None = None):
        super().__init__(message or f"{entity.capitalize()} not found.", details)
        self.entity = entity


class Conflict(ActionError):
    """Uniqueness or referential rule violated (duplicate SKU, category in use)."""

    code = "CONFLICT"
    http_status = 409


class PreconditionFailed(ActionError):
    code = "PRECONDITION_FAILED"
    http_status = 422


class InsufficientStock(ActionError):
    code = "INSUFFICIENT_STOCK"
    http_status = 409


class InvalidDiscount(ActionError):
    code = "INVALID_DISCOUNT"
    http_status = 422


class TransactionFailure(ActionError):
    """Opaque database failure; the transaction was rolled back."""

    code = "TRANSACTION_FAILURE"
    http_status = 500
