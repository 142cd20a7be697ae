"""
Ride endpoints
==============

POST  /api/v1/rides                        -- request a ride (returns 202 Accepted)
GET   /api/v1/rides/{ride_id}              -- full ride record
GET   /api/v1/rides/{ride_id}/destination  -- destination only
GET   /api/v1/rides/{ride_id}/price        -- price only
POST  /api/v1/rides/{ride_id}/accept       -- driver takes the ride
POST  /api/v1/rides/{ride_id}/complete     -- driver completes the ride
POST  /api/v1/rides/{ride_id}/mark-complete -- complete, requires a funded escrow
POST  /api/v1/rides/{ride_id}/dispute      -- rider opens a dispute
POST  /api/v1/rides/{ride_id}/resolve      -- rider settles the dispute
POST  /api/v1/rides/{ride_id}/release      -- pay the escrow to the driver
POST  /api/v1/rides/{ride_id}/cancel       -- either party cancels
POST  /api/v1/rides/{ride_id}/refund       -- rider takes the escrow back
POST  /api/v1/rides/{ride_id}/funds        -- rider tops up the escrow
PATCH /api/v1/rides/{ride_id}/destination  -- rider changes the destination
PATCH /api/v1/rides/{ride_id}/price        -- rider changes the price
POST  /api/v1/rides/{ride_id}/rate-driver  -- rider rates the driver
POST  /api/v1/rides/{ride_id}/rate-rider   -- driver rates the rider

Every mutating endpoint acts as the identity in the ``X-Caller-Id`` header.
Rejected transitions are turned into error responses by the handlers
registered in ``app.py``.
"""

from fastapi import APIRouter, Depends, Request

from ride_escrow.api.dependencies import get_caller, get_ride_service
from ride_escrow.api.middleware import limiter
from ride_escrow.api.schemas import (
    DestinationResponse,
    DestinationUpdateRequest,
    FundsRequest,
    PriceResponse,
    PriceUpdateRequest,
    RatingRequest,
    ResolveRequest,
    RideCreateRequest,
    RideResponse,
)
from ride_escrow.config import settings
from ride_escrow.services.rides import RideService

router = APIRouter(prefix="/rides", tags=["rides"])

RATE = settings.rate_limit


@router.post(
    "",
    status_code=202,
    response_model=RideResponse,
    summary="Request a ride",
    responses={202: {"description": "Ride created with an empty escrow."}},
)
@limiter.limit(RATE)
async def request_ride(
    request: Request,
    body: RideCreateRequest,
    caller: str = Depends(get_caller),
    service: RideService = Depends(get_ride_service),
):
    ride = await service.request_ride(body.destination.encode("utf-8"), body.price, caller)
    return RideResponse.from_entity(ride)


@router.get("/{ride_id}", response_model=RideResponse, summary="Get a ride")
@limiter.limit(RATE)
async def get_ride(
    request: Request,
    ride_id: int,
    service: RideService = Depends(get_ride_service),
):
    return RideResponse.from_entity(await service.get_ride(ride_id))


@router.get(
    "/{ride_id}/destination",
    response_model=DestinationResponse,
    summary="Get a ride's destination",
)
@limiter.limit(RATE)
async def get_ride_destination(
    request: Request,
    ride_id: int,
    service: RideService = Depends(get_ride_service),
):
    destination = await service.get_ride_destination(ride_id)
    return DestinationResponse(destination=destination.decode("utf-8", errors="replace"))


@router.get("/{ride_id}/price", response_model=PriceResponse, summary="Get a ride's price")
@limiter.limit(RATE)
async def get_ride_price(
    request: Request,
    ride_id: int,
    service: RideService = Depends(get_ride_service),
):
    return PriceResponse(price=await service.get_ride_price(ride_id))


# ── Lifecycle ─────────────────────────────────────────────────────────


@router.post("/{ride_id}/accept", response_model=RideResponse, summary="Accept a ride")
@limiter.limit(RATE)
async def accept_ride(
    request: Request,
    ride_id: int,
    caller: str = Depends(get_caller),
    service: RideService = Depends(get_ride_service),
):
    return RideResponse.from_entity(await service.accept_ride(ride_id, caller))


@router.post("/{ride_id}/complete", response_model=RideResponse, summary="Complete a ride")
@limiter.limit(RATE)
async def complete_ride(
    request: Request,
    ride_id: int,
    caller: str = Depends(get_caller),
    service: RideService = Depends(get_ride_service),
):
    return RideResponse.from_entity(await service.complete_ride(ride_id, caller))


@router.post(
    "/{ride_id}/mark-complete",
    response_model=RideResponse,
    summary="Complete a ride whose escrow covers the price",
)
@limiter.limit(RATE)
async def mark_ride_complete(
    request: Request,
    ride_id: int,
    caller: str = Depends(get_caller),
    service: RideService = Depends(get_ride_service),
):
    return RideResponse.from_entity(await service.mark_ride_complete(ride_id, caller))


@router.post("/{ride_id}/dispute", response_model=RideResponse, summary="Dispute a ride")
@limiter.limit(RATE)
async def dispute_ride(
    request: Request,
    ride_id: int,
    caller: str = Depends(get_caller),
    service: RideService = Depends(get_ride_service),
):
    return RideResponse.from_entity(await service.dispute_ride(ride_id, caller))


@router.post(
    "/{ride_id}/resolve",
    response_model=RideResponse,
    summary="Resolve a dispute",
    description="Pays the whole escrow to the driver (resolved) or the rider.",
)
@limiter.limit(RATE)
async def resolve_dispute(
    request: Request,
    ride_id: int,
    body: ResolveRequest,
    caller: str = Depends(get_caller),
    service: RideService = Depends(get_ride_service),
):
    ride = await service.resolve_dispute(ride_id, body.resolved, caller)
    return RideResponse.from_entity(ride)


@router.post("/{ride_id}/release", response_model=RideResponse, summary="Release payment")
@limiter.limit(RATE)
async def release_payment(
    request: Request,
    ride_id: int,
    caller: str = Depends(get_caller),
    service: RideService = Depends(get_ride_service),
):
    return RideResponse.from_entity(await service.release_payment(ride_id, caller))


@router.post(
    "/{ride_id}/cancel",
    response_model=RideResponse,
    summary="Cancel a ride",
    description=(
        "Clears the driver.  An accepted ride that is neither completed "
        "nor disputed has its escrow refunded to the rider."
    ),
)
@limiter.limit(RATE)
async def cancel_ride(
    request: Request,
    ride_id: int,
    caller: str = Depends(get_caller),
    service: RideService = Depends(get_ride_service),
):
    return RideResponse.from_entity(await service.cancel_ride(ride_id, caller))


@router.post("/{ride_id}/refund", response_model=RideResponse, summary="Refund the escrow")
@limiter.limit(RATE)
async def request_refund(
    request: Request,
    ride_id: int,
    caller: str = Depends(get_caller),
    service: RideService = Depends(get_ride_service),
):
    return RideResponse.from_entity(await service.request_refund(ride_id, caller))


@router.post("/{ride_id}/funds", response_model=RideResponse, summary="Add escrow funds")
@limiter.limit(RATE)
async def add_funds_to_ride(
    request: Request,
    ride_id: int,
    body: FundsRequest,
    caller: str = Depends(get_caller),
    service: RideService = Depends(get_ride_service),
):
    ride = await service.add_funds_to_ride(ride_id, body.amount, caller)
    return RideResponse.from_entity(ride)


# ── Rider edits ───────────────────────────────────────────────────────


@router.patch(
    "/{ride_id}/destination", response_model=RideResponse, summary="Change destination"
)
@limiter.limit(RATE)
async def update_ride_destination(
    request: Request,
    ride_id: int,
    body: DestinationUpdateRequest,
    caller: str = Depends(get_caller),
    service: RideService = Depends(get_ride_service),
):
    ride = await service.update_ride_destination(
        ride_id, body.destination.encode("utf-8"), caller
    )
    return RideResponse.from_entity(ride)


@router.patch("/{ride_id}/price", response_model=RideResponse, summary="Change price")
@limiter.limit(RATE)
async def update_ride_price(
    request: Request,
    ride_id: int,
    body: PriceUpdateRequest,
    caller: str = Depends(get_caller),
    service: RideService = Depends(get_ride_service),
):
    ride = await service.update_ride_price(ride_id, body.price, caller)
    return RideResponse.from_entity(ride)


# ── Ratings ───────────────────────────────────────────────────────────


@router.post("/{ride_id}/rate-driver", response_model=RideResponse, summary="Rate the driver")
@limiter.limit(RATE)
async def rate_driver(
    request: Request,
    ride_id: int,
    body: RatingRequest,
    caller: str = Depends(get_caller),
    service: RideService = Depends(get_ride_service),
):
    return RideResponse.from_entity(await service.rate_driver(ride_id, body.rating, caller))


@router.post("/{ride_id}/rate-rider", response_model=RideResponse, summary="Rate the rider")
@limiter.limit(RATE)
async def rate_rider(
    request: Request,
    ride_id: int,
    body: RatingRequest,
    caller: str = Depends(get_caller),
    service: RideService = Depends(get_ride_service),
):
    return RideResponse.from_entity(await service.rate_rider(ride_id, body.rating, caller))
