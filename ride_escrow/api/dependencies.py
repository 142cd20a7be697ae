"""FastAPI dependency injection helpers."""

import secrets
from typing import Optional

import redis.asyncio as aioredis
from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ride_escrow.config import settings
from ride_escrow.infrastructure.database import async_session_factory
from ride_escrow.infrastructure.redis_client import get_redis
from ride_escrow.services.rides import RideService


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_caller(
    x_caller_id: Optional[str] = Header(None, max_length=64),
) -> str:
    """Authenticated caller identity, as resolved by the gateway."""
    if not x_caller_id:
        raise HTTPException(status_code=401, detail="Missing X-Caller-Id header")
    return x_caller_id


async def require_admin(
    x_admin_token: Optional[str] = Header(None),
) -> None:
    """Gate admin writes behind ``settings.admin_token`` when one is set."""
    if settings.admin_token is None:
        return
    if not x_admin_token or not secrets.compare_digest(x_admin_token, settings.admin_token):
        raise HTTPException(status_code=403, detail="Invalid or missing X-Admin-Token header")


async def get_ride_service(
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> RideService:
    return RideService(db, redis)
