"""
Integration tests for the REST API endpoints.

Uses an in-memory SQLite database and a mocked Redis client; the DB
session and Redis dependencies are overridden on the app.
"""

from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from ride_escrow.api.app import create_app
from ride_escrow.api.dependencies import get_db
from ride_escrow.api.middleware import limiter
from ride_escrow.config import settings
from ride_escrow.domain.escrow import MAX_AMOUNT
from ride_escrow.infrastructure.redis_client import get_redis
from tests.conftest import DRIVER, RIDER, STRANGER


# ── Fixture ───────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def client(session_factory, fake_redis):
    """AsyncClient backed by SQLite + mocked Redis."""

    async def _test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def _test_redis():
        return fake_redis

    app = create_app()
    app.dependency_overrides[get_db] = _test_db
    app.dependency_overrides[get_redis] = _test_redis

    limiter.enabled = False
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    limiter.enabled = True


def as_(identity: str) -> dict:
    return {"X-Caller-Id": identity}


async def _create_ride(client: AsyncClient, price: int = 100) -> int:
    resp = await client.post(
        "/api/v1/rides",
        json={"destination": "Terminal 1", "price": price},
        headers=as_(RIDER),
    )
    assert resp.status_code == 202
    return resp.json()["id"]


async def _fund(client: AsyncClient, ride_id: int, amount: int):
    await client.post(
        f"/api/v1/admin/accounts/{RIDER}/credit", json={"amount": amount}
    )
    return await client.post(
        f"/api/v1/rides/{ride_id}/funds", json={"amount": amount}, headers=as_(RIDER)
    )


# ── Tests ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/api/v1/admin/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_create_ride_returns_202(client: AsyncClient):
    resp = await client.post(
        "/api/v1/rides",
        json={"destination": "Terminal 1", "price": 100},
        headers=as_(RIDER),
    )
    assert resp.status_code == 202
    data = resp.json()
    assert data["state"] == "REQUESTED"
    assert data["rider"] == RIDER
    assert data["escrow"] == 0
    assert data["driver"] is None


@pytest.mark.asyncio
async def test_create_ride_requires_caller(client: AsyncClient):
    resp = await client.post(
        "/api/v1/rides", json={"destination": "Terminal 1", "price": 100}
    )
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_create_ride_invalid_price(client: AsyncClient):
    resp = await client.post(
        "/api/v1/rides",
        json={"destination": "Terminal 1", "price": 0},
        headers=as_(RIDER),
    )
    assert resp.status_code == 409
    assert resp.json()["code"] == "INVALID_RIDE"


@pytest.mark.asyncio
async def test_get_ride_not_found(client: AsyncClient):
    resp = await client.get("/api/v1/rides/9999")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_read_accessors(client: AsyncClient):
    ride_id = await _create_ride(client, price=75)
    resp = await client.get(f"/api/v1/rides/{ride_id}/destination")
    assert resp.json() == {"destination": "Terminal 1"}
    resp = await client.get(f"/api/v1/rides/{ride_id}/price")
    assert resp.json() == {"price": 75}


@pytest.mark.asyncio
async def test_second_accept_is_conflict(client: AsyncClient):
    ride_id = await _create_ride(client)
    resp = await client.post(f"/api/v1/rides/{ride_id}/accept", headers=as_(DRIVER))
    assert resp.status_code == 200
    assert resp.json()["state"] == "ACCEPTED"

    resp = await client.post(f"/api/v1/rides/{ride_id}/accept", headers=as_(STRANGER))
    assert resp.status_code == 409
    assert resp.json()["code"] == "INVALID_BID"


@pytest.mark.asyncio
async def test_escrow_cap(client: AsyncClient):
    ride_id = await _create_ride(client, price=100)
    assert (await _fund(client, ride_id, 150)).status_code == 200

    resp = await _fund(client, ride_id, 60)
    assert resp.status_code == 409
    assert resp.json()["code"] == "INVALID_WITHDRAWAL"

    resp = await _fund(client, ride_id, 50)
    assert resp.status_code == 200
    assert resp.json()["escrow"] == 200


@pytest.mark.asyncio
async def test_full_lifecycle_pays_driver(client: AsyncClient):
    ride_id = await _create_ride(client)
    await _fund(client, ride_id, 100)
    await client.post(f"/api/v1/rides/{ride_id}/accept", headers=as_(DRIVER))

    resp = await client.post(f"/api/v1/rides/{ride_id}/mark-complete", headers=as_(DRIVER))
    assert resp.json()["state"] == "COMPLETED"

    resp = await client.post(
        f"/api/v1/rides/{ride_id}/rate-driver", json={"rating": 5}, headers=as_(RIDER)
    )
    assert resp.json()["driver_rating"] == 5

    resp = await client.post(f"/api/v1/rides/{ride_id}/release", headers=as_(RIDER))
    assert resp.status_code == 200
    assert resp.json()["escrow"] == 0
    assert resp.json()["driver"] is None

    resp = await client.get(f"/api/v1/accounts/{DRIVER}")
    assert resp.json()["balance"] == 100

    resp = await client.post(f"/api/v1/rides/{ride_id}/release", headers=as_(RIDER))
    assert resp.status_code == 409
    resp = await client.get(f"/api/v1/accounts/{DRIVER}")
    assert resp.json()["balance"] == 100

    resp = await client.get(f"/api/v1/accounts/{DRIVER}/rating", params={"role": "driver"})
    assert resp.json()["average"] == 5


@pytest.mark.asyncio
async def test_dispute_resolved_for_rider(client: AsyncClient):
    ride_id = await _create_ride(client)
    await _fund(client, ride_id, 100)
    await client.post(f"/api/v1/rides/{ride_id}/accept", headers=as_(DRIVER))

    resp = await client.post(f"/api/v1/rides/{ride_id}/dispute", headers=as_(DRIVER))
    assert resp.status_code == 403
    assert resp.json()["code"] == "DISPUTE"

    resp = await client.post(f"/api/v1/rides/{ride_id}/dispute", headers=as_(RIDER))
    assert resp.json()["state"] == "DISPUTED"

    resp = await client.post(
        f"/api/v1/rides/{ride_id}/resolve", json={"resolved": False}, headers=as_(RIDER)
    )
    assert resp.status_code == 200
    assert resp.json()["disputed"] is False

    resp = await client.get(f"/api/v1/accounts/{RIDER}")
    assert resp.json()["balance"] == 100


@pytest.mark.asyncio
async def test_rating_out_of_range(client: AsyncClient):
    ride_id = await _create_ride(client)
    await client.post(f"/api/v1/rides/{ride_id}/accept", headers=as_(DRIVER))
    await client.post(f"/api/v1/rides/{ride_id}/complete", headers=as_(DRIVER))

    resp = await client.post(
        f"/api/v1/rides/{ride_id}/rate-driver", json={"rating": 6}, headers=as_(RIDER)
    )
    assert resp.status_code == 422
    assert resp.json()["code"] == "INVALID_RATING"


@pytest.mark.asyncio
async def test_rider_edits(client: AsyncClient):
    ride_id = await _create_ride(client)
    resp = await client.patch(
        f"/api/v1/rides/{ride_id}/destination",
        json={"destination": "Terminal 2"},
        headers=as_(RIDER),
    )
    assert resp.json()["destination"] == "Terminal 2"

    resp = await client.patch(
        f"/api/v1/rides/{ride_id}/price", json={"price": 300}, headers=as_(DRIVER)
    )
    assert resp.status_code == 403
    assert resp.json()["code"] == "NOT_RIDER"


@pytest.mark.asyncio
async def test_cancel_and_refund(client: AsyncClient):
    ride_id = await _create_ride(client)
    await _fund(client, ride_id, 80)

    resp = await client.post(f"/api/v1/rides/{ride_id}/cancel", headers=as_(STRANGER))
    assert resp.status_code == 403

    resp = await client.post(f"/api/v1/rides/{ride_id}/cancel", headers=as_(RIDER))
    assert resp.json()["escrow"] == 80

    resp = await client.post(f"/api/v1/rides/{ride_id}/refund", headers=as_(RIDER))
    assert resp.json()["escrow"] == 0
    resp = await client.get(f"/api/v1/accounts/{RIDER}")
    assert resp.json()["balance"] == 80


@pytest.mark.asyncio
async def test_busy_ride_returns_423(client: AsyncClient, fake_redis):
    ride_id = await _create_ride(client)
    fake_redis.set.return_value = False
    resp = await client.post(f"/api/v1/rides/{ride_id}/accept", headers=as_(DRIVER))
    assert resp.status_code == 423


@pytest.mark.asyncio
@pytest.mark.parametrize("price", [2**63, 2**64, MAX_AMOUNT // 2 + 1])
async def test_create_ride_price_too_large(client: AsyncClient, price: int):
    resp = await client.post(
        "/api/v1/rides",
        json={"destination": "Terminal 1", "price": price},
        headers=as_(RIDER),
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_oversized_amounts_rejected(client: AsyncClient):
    ride_id = await _create_ride(client)

    resp = await client.patch(
        f"/api/v1/rides/{ride_id}/price", json={"price": 2**63}, headers=as_(RIDER)
    )
    assert resp.status_code == 422

    resp = await client.post(
        f"/api/v1/rides/{ride_id}/funds", json={"amount": 2**63}, headers=as_(RIDER)
    )
    assert resp.status_code == 422

    resp = await client.post(
        f"/api/v1/admin/accounts/{RIDER}/credit", json={"amount": 2**63}
    )
    assert resp.status_code == 422

    resp = await client.get(f"/api/v1/rides/{ride_id}")
    assert resp.json()["price"] == 100
    assert resp.json()["escrow"] == 0


@pytest.mark.asyncio
async def test_credit_overflow_returns_422(client: AsyncClient):
    url = f"/api/v1/admin/accounts/{RIDER}/credit"
    resp = await client.post(url, json={"amount": MAX_AMOUNT})
    assert resp.status_code == 200

    resp = await client.post(url, json={"amount": 1})
    assert resp.status_code == 422
    resp = await client.get(f"/api/v1/accounts/{RIDER}")
    assert resp.json()["balance"] == MAX_AMOUNT


@pytest.mark.asyncio
async def test_identity_too_long(client: AsyncClient):
    identity = "x" * 65
    resp = await client.post(
        f"/api/v1/admin/accounts/{identity}/credit", json={"amount": 10}
    )
    assert resp.status_code == 422
    resp = await client.get(f"/api/v1/accounts/{identity}")
    assert resp.status_code == 422
    resp = await client.get(f"/api/v1/accounts/{identity}/rating")
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_credit_requires_admin_token(client: AsyncClient, monkeypatch):
    monkeypatch.setattr(settings, "admin_token", "s3cret")
    url = f"/api/v1/admin/accounts/{RIDER}/credit"

    resp = await client.post(url, json={"amount": 10})
    assert resp.status_code == 403
    resp = await client.post(url, json={"amount": 10}, headers={"X-Admin-Token": "wrong"})
    assert resp.status_code == 403
    resp = await client.get(f"/api/v1/accounts/{RIDER}")
    assert resp.json()["balance"] == 0

    resp = await client.post(url, json={"amount": 10}, headers={"X-Admin-Token": "s3cret"})
    assert resp.status_code == 200
    assert resp.json()["balance"] == 10
