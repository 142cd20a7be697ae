"""
Ride application service
========================

Runs one ``RideStateMachine`` operation per call inside the caller's
unit of work.

Concurrency safety
------------------
* **Redis distributed lock** keyed by ride id ensures only one transition
  runs against a ride at a time across multiple API processes.
* **SELECT … FOR UPDATE** on the ride row and on the involved account rows
  holds them until the surrounding transaction commits.

Per transition
--------------
1. Acquire the ride lock (``LockNotAcquired`` if someone else holds it).
2. Load the ride and the balances of rider, driver and caller.
3. Run the domain operation against an ``InMemoryLedger`` seeded with
   those balances.  A rejected transition raises before anything changes.
4. Write the ride and every changed balance back, then release the lock.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import redis.asyncio as aioredis
from sqlalchemy.ext.asyncio import AsyncSession

from ride_escrow.config import Settings, settings
from ride_escrow.domain.entities import Ride
from ride_escrow.domain.enums import Role
from ride_escrow.domain.errors import RideNotFound
from ride_escrow.domain.escrow import Identity, InMemoryLedger
from ride_escrow.domain.machine import RidePolicy, RideStateMachine
from ride_escrow.domain.rating import get_avg_rating
from ride_escrow.infrastructure.locks import LockNotAcquired, ride_lock
from ride_escrow.infrastructure.repositories import (
    AccountRepository,
    RideRepository,
    apply_entity,
    to_entity,
)

logger = logging.getLogger(__name__)

Operation = Callable[[Ride, InMemoryLedger], Any]


def policy_from_settings(cfg: Settings = settings) -> RidePolicy:
    return RidePolicy(
        max_escrow_multiplier=cfg.max_escrow_multiplier,
        ratings_write_once=cfg.ratings_write_once,
        max_dispute_attempts=cfg.max_dispute_attempts,
    )


class RideService:
    def __init__(
        self,
        session: AsyncSession,
        redis: aioredis.Redis,
        machine: Optional[RideStateMachine] = None,
        lock_ttl_seconds: int = settings.ride_lock_ttl_seconds,
    ):
        self.session = session
        self.redis = redis
        self.rides = RideRepository(session)
        self.accounts = AccountRepository(session)
        self.machine = machine or RideStateMachine(policy_from_settings())
        self.lock_ttl = lock_ttl_seconds

    # ── Creation & reads ──────────────────────────────────────────────

    async def request_ride(self, destination: bytes, price: int, caller: Identity) -> Ride:
        ride = self.machine.request_ride(destination, price, caller)
        model = await self.rides.create(ride)
        ride.id = model.id
        logger.info("Ride %s requested by %s (price=%d)", ride.id, caller, price)
        return ride

    async def get_ride(self, ride_id: int) -> Ride:
        model = await self.rides.get_by_id(ride_id)
        if model is None:
            raise RideNotFound(ride_id)
        return to_entity(model)

    async def get_ride_destination(self, ride_id: int) -> bytes:
        return self.machine.get_ride_destination(await self.get_ride(ride_id))

    async def get_ride_price(self, ride_id: int) -> int:
        return self.machine.get_ride_price(await self.get_ride(ride_id))

    async def get_avg_rating(self, identity: Identity, role: Role) -> Optional[int]:
        if role == Role.DRIVER:
            models = await self.rides.list_rated_driver(identity)
        else:
            models = await self.rides.list_for_rider(identity)
        return get_avg_rating((to_entity(m) for m in models), role)

    async def get_balance(self, identity: Identity) -> int:
        account = await self.accounts.get(identity)
        return account.balance if account else 0

    async def credit(self, identity: Identity, amount: int) -> int:
        if amount <= 0:
            raise ValueError("credit amount must be positive")
        account = await self.accounts.credit(identity, amount)
        logger.info("Credited %d to %s", amount, identity)
        return account.balance

    # ── Transitions ───────────────────────────────────────────────────

    async def accept_ride(self, ride_id: int, caller: Identity) -> Ride:
        return await self._transition(
            ride_id, caller, "accept",
            lambda ride, ledger: self.machine.accept_ride(ride, caller),
        )

    async def complete_ride(self, ride_id: int, caller: Identity) -> Ride:
        return await self._transition(
            ride_id, caller, "complete",
            lambda ride, ledger: self.machine.complete_ride(ride, caller),
        )

    async def mark_ride_complete(self, ride_id: int, caller: Identity) -> Ride:
        return await self._transition(
            ride_id, caller, "mark_complete",
            lambda ride, ledger: self.machine.mark_ride_complete(ride, caller),
        )

    async def dispute_ride(self, ride_id: int, caller: Identity) -> Ride:
        return await self._transition(
            ride_id, caller, "dispute",
            lambda ride, ledger: self.machine.dispute_ride(ride, caller),
        )

    async def resolve_dispute(self, ride_id: int, resolved: bool, caller: Identity) -> Ride:
        return await self._transition(
            ride_id, caller, "resolve",
            lambda ride, ledger: self.machine.resolve_dispute(ride, resolved, caller, ledger),
        )

    async def release_payment(self, ride_id: int, caller: Identity) -> Ride:
        return await self._transition(
            ride_id, caller, "release",
            lambda ride, ledger: self.machine.release_payment(ride, caller, ledger),
        )

    async def cancel_ride(self, ride_id: int, caller: Identity) -> Ride:
        return await self._transition(
            ride_id, caller, "cancel",
            lambda ride, ledger: self.machine.cancel_ride(ride, caller, ledger),
        )

    async def request_refund(self, ride_id: int, caller: Identity) -> Ride:
        return await self._transition(
            ride_id, caller, "refund",
            lambda ride, ledger: self.machine.request_refund(ride, caller, ledger),
        )

    async def update_ride_destination(
        self, ride_id: int, destination: bytes, caller: Identity
    ) -> Ride:
        return await self._transition(
            ride_id, caller, "update_destination",
            lambda ride, ledger: self.machine.update_ride_destination(ride, destination, caller),
        )

    async def update_ride_price(self, ride_id: int, price: int, caller: Identity) -> Ride:
        return await self._transition(
            ride_id, caller, "update_price",
            lambda ride, ledger: self.machine.update_ride_price(ride, price, caller),
        )

    async def add_funds_to_ride(self, ride_id: int, amount: int, caller: Identity) -> Ride:
        return await self._transition(
            ride_id, caller, "add_funds",
            lambda ride, ledger: self.machine.add_funds_to_ride(ride, amount, caller, ledger),
        )

    async def rate_driver(self, ride_id: int, rating: int, caller: Identity) -> Ride:
        return await self._transition(
            ride_id, caller, "rate_driver",
            lambda ride, ledger: self.machine.rate_driver(ride, rating, caller),
        )

    async def rate_rider(self, ride_id: int, rating: int, caller: Identity) -> Ride:
        return await self._transition(
            ride_id, caller, "rate_rider",
            lambda ride, ledger: self.machine.rate_rider(ride, rating, caller),
        )

    # ── Internals ─────────────────────────────────────────────────────

    async def _transition(
        self, ride_id: int, caller: Identity, name: str, operation: Operation
    ) -> Ride:
        lock = ride_lock(self.redis, ride_id, ttl_seconds=self.lock_ttl)
        if not await lock.acquire():
            logger.warning("Ride %s is busy; rejecting %s by %s", ride_id, name, caller)
            raise LockNotAcquired(f"Ride {ride_id} is locked by another transition")

        try:
            model = await self.rides.get_for_update(ride_id)
            if model is None:
                raise RideNotFound(ride_id)
            ride = to_entity(model)

            parties = {ride.rider, caller}
            if ride.driver is not None:
                parties.add(ride.driver)
            before = await self.accounts.balances_for_update(parties)
            ledger = InMemoryLedger(before)

            operation(ride, ledger)

            apply_entity(model, ride)
            for identity, balance in ledger.balances.items():
                if balance != before.get(identity, 0):
                    await self.accounts.set_balance(identity, balance)
            await self.session.flush()
        finally:
            await lock.release()

        logger.info(
            "Ride %s: %s by %s -> %s (escrow=%d)",
            ride_id, name, caller, ride.state.value, ride.escrow.value,
        )
        for payout in ledger.payouts:
            logger.info("Ride %s paid %d to %s", ride_id, payout.amount, payout.recipient)
        return ride
