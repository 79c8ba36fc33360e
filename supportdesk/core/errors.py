"""
Error taxonomy shared by the auth and ticket modules.

Each error carries the HTTP status and a user-facing message; the
application registers a single handler that turns them into responses.
Messages are deliberately generic so they never reveal whether a ticket
exists or who owns it.
"""

from __future__ import annotations


class SupportDeskError(Exception):
    code = "error"
    status_code = 400
    detail = "Request failed."

    def __init__(self, detail: str | None = None) -> None:
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class Unauthenticated(SupportDeskError):
    code = "unauthenticated"
    status_code = 401
    detail = "Please log in."


class Forbidden(SupportDeskError):
    code = "forbidden"
    status_code = 403
    detail = "You do not have permission to perform this action."


class NotFound(SupportDeskError):
    code = "not_found"
    status_code = 404
    detail = "Ticket not found."


class ValidationError(SupportDeskError):
    code = "validation_error"
    status_code = 422
    detail = "Invalid input."

    def __init__(self, detail: str | None = None, *, field: str | None = None) -> None:
        super().__init__(detail)
        self.field = field


class TicketClosed(SupportDeskError):
    code = "ticket_closed"
    status_code = 409
    detail = "This ticket is closed and cannot receive further replies."


class InvalidTransition(SupportDeskError):
    code = "invalid_transition"
    status_code = 409
    detail = "This status change is not allowed."


class StorageError(SupportDeskError):
    code = "storage_error"
    status_code = 503
    detail = "Something went wrong. Please try again."


class StaleTicket(Exception):
    """The ticket changed between load and write; nothing was persisted."""

    def __init__(self, ticket_id: str) -> None:
        super().__init__(f"ticket {ticket_id} was modified concurrently")
        self.ticket_id = ticket_id


__all__ = [
    "SupportDeskError",
    "Unauthenticated",
    "Forbidden",
    "NotFound",
    "ValidationError",
    "TicketClosed",
    "InvalidTransition",
    "StorageError",
    "StaleTicket",
]
