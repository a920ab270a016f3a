"""
Error taxonomy for the ticket lifecycle.

Every error carries the HTTP status the API answers with and a short public
message. Anything more detailed (backend error text, which of the "gone"
reasons applied) is for the operator log only.
"""
from __future__ import annotations


class TicketError(Exception):
    status_code: int = 400
    message: str = "Bad request"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(TicketError):
    status_code = 400
    message = "Invalid request"


class NotFoundError(TicketError):
    # same status as the reference API: an unknown token looks like a bad request
    status_code = 400
    message = "Invalid link"


class GoneError(TicketError):
    status_code = 410
    message = "Link expired"

    def __init__(self, reason: str = "expired") -> None:
        self.reason = reason  # "used" | "expired"
        super().__init__()


class LockedError(TicketError):
    status_code = 423
    message = "Too many attempts"


class UnauthorizedError(TicketError):
    status_code = 401
    message = "Incorrect PIN"


class StorageError(TicketError):
    status_code = 500
    message = "Storage unavailable"
