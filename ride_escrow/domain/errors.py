"""
Business-rule violations raised by the ride state machine.

Every error is categorical and non-retryable: it means the requested
transition is illegal in the ride's current state.  Each subclass carries
a stable ``ErrorCode`` that the API layer exposes to clients.
"""

from __future__ import annotations

from .enums import ErrorCode


class RideError(Exception):
    """Base class for rejected ride transitions."""

    code: ErrorCode

    def __init__(self, message: str | None = None):
        super().__init__(message or self.code.value.replace("_", " ").lower())


class InvalidRide(RideError):
    code = ErrorCode.INVALID_RIDE


class InvalidBid(RideError):
    code = ErrorCode.INVALID_BID


class NotDriver(RideError):
    code = ErrorCode.NOT_DRIVER


class NotRider(RideError):
    code = ErrorCode.NOT_RIDER


class Dispute(RideError):
    code = ErrorCode.DISPUTE


class AlreadyResolved(RideError):
    code = ErrorCode.ALREADY_RESOLVED


class InsufficientFunds(RideError):
    code = ErrorCode.INSUFFICIENT_FUNDS


class InvalidWithdrawal(RideError):
    code = ErrorCode.INVALID_WITHDRAWAL


class InvalidRating(RideError):
    code = ErrorCode.INVALID_RATING


class RideNotFound(LookupError):
    """Raised when no ride exists for the given id."""

    def __init__(self, ride_id: int):
        super().__init__(f"Ride {ride_id} not found")
        self.ride_id = ride_id
