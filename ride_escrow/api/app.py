"""
FastAPI application factory.

* Registers routes for rides, accounts and admin.
* Maps rejected transitions to error responses carrying a stable ``code``.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from ride_escrow.api.middleware import limiter
from ride_escrow.api.routes import accounts, admin, rides
from ride_escrow.domain.enums import ErrorCode
from ride_escrow.domain.errors import RideError, RideNotFound
from ride_escrow.infrastructure.locks import LockNotAcquired

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Anything not listed is a state conflict (409)
ERROR_STATUS: dict[ErrorCode, int] = {
    ErrorCode.NOT_DRIVER: 403,
    ErrorCode.NOT_RIDER: 403,
    ErrorCode.DISPUTE: 403,
    ErrorCode.INVALID_RATING: 422,
}


async def _ride_error_handler(request: Request, exc: RideError) -> JSONResponse:
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.code.value)
    return JSONResponse(
        status_code=ERROR_STATUS.get(exc.code, 409),
        content={"detail": str(exc), "code": exc.code.value},
    )


async def _not_found_handler(request: Request, exc: RideNotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": "Ride not found"})


async def _locked_handler(request: Request, exc: LockNotAcquired) -> JSONResponse:
    return JSONResponse(status_code=423, content={"detail": str(exc)})


def create_app() -> FastAPI:
    app = FastAPI(
        title="Ride Escrow API",
        description=(
            "Coordinates a rider, a driver and an escrowed payment through "
            "request, acceptance, completion, dispute, rating and payout."
        ),
        version="1.0.0",
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Domain errors
    app.add_exception_handler(RideError, _ride_error_handler)
    app.add_exception_handler(RideNotFound, _not_found_handler)
    app.add_exception_handler(LockNotAcquired, _locked_handler)

    # Routers
    app.include_router(rides.router, prefix="/api/v1")
    app.include_router(accounts.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
