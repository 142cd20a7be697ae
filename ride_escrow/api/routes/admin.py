"""
Admin / observability endpoints
===============================

POST /api/v1/admin/accounts/{identity}/credit -- top up an account
GET  /api/v1/admin/health                     -- simple health check

Credits require ``X-Admin-Token`` once ``ADMIN_TOKEN`` is configured.
Without it the credit endpoint is open, which is only suitable for local
development and tests.
"""

from fastapi import APIRouter, Depends, HTTPException, Path, Request

from ride_escrow.api.dependencies import get_ride_service, require_admin
from ride_escrow.api.middleware import limiter
from ride_escrow.api.schemas import AccountResponse, CreditRequest, HealthResponse
from ride_escrow.config import settings
from ride_escrow.services.rides import RideService

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post(
    "/accounts/{identity}/credit",
    response_model=AccountResponse,
    summary="Credit an account from outside the escrow system",
    dependencies=[Depends(require_admin)],
)
@limiter.limit(settings.rate_limit)
async def credit_account(
    request: Request,
    body: CreditRequest,
    identity: str = Path(..., max_length=64),
    service: RideService = Depends(get_ride_service),
):
    try:
        balance = await service.credit(identity, body.amount)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return AccountResponse(identity=identity, balance=balance)


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
