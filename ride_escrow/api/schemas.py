"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from ride_escrow.config import settings
from ride_escrow.domain.entities import Ride
from ride_escrow.domain.escrow import MAX_AMOUNT

# The escrow may reach price * multiplier, which must still fit a column
MAX_PRICE = MAX_AMOUNT // settings.max_escrow_multiplier


# ── Requests ──────────────────────────────────────────────────────────


class RideCreateRequest(BaseModel):
    destination: str = Field(..., max_length=1024)
    price: int = Field(
        ..., le=MAX_PRICE, description="Fare in the smallest currency unit."
    )


class DestinationUpdateRequest(BaseModel):
    destination: str = Field(..., max_length=1024)


class PriceUpdateRequest(BaseModel):
    price: int = Field(..., le=MAX_PRICE)


class FundsRequest(BaseModel):
    amount: int = Field(..., le=MAX_AMOUNT)


class ResolveRequest(BaseModel):
    resolved: bool = Field(
        ..., description="True pays the driver, False refunds the rider."
    )


class RatingRequest(BaseModel):
    rating: int


class CreditRequest(BaseModel):
    amount: int = Field(..., gt=0, le=MAX_AMOUNT)


# ── Responses ─────────────────────────────────────────────────────────


class RideResponse(BaseModel):
    id: int
    rider: str
    driver: Optional[str] = None
    destination: str
    price: int
    escrow: int
    completed: bool
    disputed: bool
    state: str
    rider_rating: Optional[int] = None
    driver_rating: Optional[int] = None
    dispute_attempts: int = 0

    @classmethod
    def from_entity(cls, ride: Ride) -> "RideResponse":
        return cls(
            id=ride.id,
            rider=ride.rider,
            driver=ride.driver,
            destination=ride.destination.decode("utf-8", errors="replace"),
            price=ride.price,
            escrow=ride.escrow.value,
            completed=ride.completed,
            disputed=ride.disputed,
            state=ride.state.value,
            rider_rating=ride.rider_rating,
            driver_rating=ride.driver_rating,
            dispute_attempts=ride.dispute_attempts,
        )


class DestinationResponse(BaseModel):
    destination: str


class PriceResponse(BaseModel):
    price: int


class AccountResponse(BaseModel):
    identity: str
    balance: int


class AverageRatingResponse(BaseModel):
    identity: str
    role: str
    average: Optional[int] = None


class HealthResponse(BaseModel):
    status: str = "ok"

