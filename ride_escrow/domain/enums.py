"""Domain enumerations."""

import enum


class RideState(str, enum.Enum):
    """Lifecycle state, derived from the ride's driver / flag fields."""

    REQUESTED = "REQUESTED"
    ACCEPTED = "ACCEPTED"
    COMPLETED = "COMPLETED"
    DISPUTED = "DISPUTED"


class Role(str, enum.Enum):
    RIDER = "rider"
    DRIVER = "driver"


class ErrorCode(str, enum.Enum):
    INVALID_RIDE = "INVALID_RIDE"
    INVALID_BID = "INVALID_BID"
    NOT_DRIVER = "NOT_DRIVER"
    NOT_RIDER = "NOT_RIDER"
    DISPUTE = "DISPUTE"
    ALREADY_RESOLVED = "ALREADY_RESOLVED"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    INVALID_WITHDRAWAL = "INVALID_WITHDRAWAL"
    INVALID_RATING = "INVALID_RATING"


# Rating bounds (inclusive)
MIN_RATING = 0
MAX_RATING = 5
