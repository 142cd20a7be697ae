"""
Account endpoints
=================

GET /api/v1/accounts/{identity}         -- current balance
GET /api/v1/accounts/{identity}/rating  -- average rating as driver or rider
"""

from fastapi import APIRouter, Depends, Path, Query, Request

from ride_escrow.api.dependencies import get_ride_service
from ride_escrow.api.middleware import limiter
from ride_escrow.api.schemas import AccountResponse, AverageRatingResponse
from ride_escrow.config import settings
from ride_escrow.domain.enums import Role
from ride_escrow.services.rides import RideService

router = APIRouter(prefix="/accounts", tags=["accounts"])


@router.get("/{identity}", response_model=AccountResponse, summary="Get account balance")
@limiter.limit(settings.rate_limit)
async def get_account(
    request: Request,
    identity: str = Path(..., max_length=64),
    service: RideService = Depends(get_ride_service),
):
    return AccountResponse(identity=identity, balance=await service.get_balance(identity))


@router.get(
    "/{identity}/rating",
    response_model=AverageRatingResponse,
    summary="Average rating received",
    description="Integer mean of all ratings; ``average`` is null when unrated.",
)
@limiter.limit(settings.rate_limit)
async def get_average_rating(
    request: Request,
    identity: str = Path(..., max_length=64),
    role: Role = Query(Role.DRIVER),
    service: RideService = Depends(get_ride_service),
):
    average = await service.get_avg_rating(identity, role)
    return AverageRatingResponse(identity=identity, role=role.value, average=average)
