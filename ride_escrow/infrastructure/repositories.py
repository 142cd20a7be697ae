"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  ``RideRepository`` also maps between the
``RideModel`` row and the ``Ride`` domain entity.
"""

from __future__ import annotations

from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from .models import AccountModel, RideModel
from ride_escrow.domain.entities import Ride
from ride_escrow.domain.escrow import MAX_AMOUNT, Balance

# Dialects supporting INSERT ... ON CONFLICT DO NOTHING
_INSERTS = {"postgresql": pg_insert, "sqlite": sqlite_insert}


def to_entity(model: RideModel) -> Ride:
    return Ride(
        id=model.id,
        rider=model.rider,
        driver=model.driver,
        destination=model.destination,
        price=model.price,
        escrow=Balance(model.escrow),
        completed=model.completed,
        disputed=model.disputed,
        rider_rating=model.rider_rating,
        driver_rating=model.driver_rating,
        rated_driver=model.rated_driver,
        dispute_attempts=model.dispute_attempts,
    )


def apply_entity(model: RideModel, ride: Ride) -> RideModel:
    """Copy the mutable fields of *ride* onto its row."""
    model.driver = ride.driver
    model.destination = ride.destination
    model.price = ride.price
    model.escrow = ride.escrow.value
    model.completed = ride.completed
    model.disputed = ride.disputed
    model.rider_rating = ride.rider_rating
    model.driver_rating = ride.driver_rating
    model.rated_driver = ride.rated_driver
    model.dispute_attempts = ride.dispute_attempts
    return model


class RideRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, ride: Ride) -> RideModel:
        model = RideModel(
            rider=ride.rider,
            destination=ride.destination,
            price=ride.price,
            escrow=ride.escrow.value,
            completed=False,
            disputed=False,
            dispute_attempts=0,
        )
        self.session.add(model)
        await self.session.flush()
        await self.session.refresh(model)
        return model

    async def get_by_id(self, ride_id: int) -> Optional[RideModel]:
        return await self.session.get(RideModel, ride_id)

    async def get_for_update(self, ride_id: int) -> Optional[RideModel]:
        """SELECT ... FOR UPDATE so concurrent transitions serialize."""
        result = await self.session.execute(
            select(RideModel).where(RideModel.id == ride_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def list_for_rider(self, rider: str) -> list[RideModel]:
        result = await self.session.execute(
            select(RideModel).where(RideModel.rider == rider).order_by(RideModel.id)
        )
        return list(result.scalars().all())

    async def list_rated_driver(self, driver: str) -> list[RideModel]:
        result = await self.session.execute(
            select(RideModel)
            .where(RideModel.rated_driver == driver)
            .order_by(RideModel.id)
        )
        return list(result.scalars().all())


class AccountRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, identity: str) -> Optional[AccountModel]:
        return await self.session.get(AccountModel, identity)

    async def ensure(self, identities: Iterable[str]) -> None:
        """Insert a zero-balance row for every identity that has none yet."""
        rows = [{"identity": identity, "balance": 0} for identity in sorted(set(identities))]
        if not rows:
            return
        insert = _INSERTS[self.session.get_bind().dialect.name]
        await self.session.execute(
            insert(AccountModel)
            .values(rows)
            .on_conflict_do_nothing(index_elements=["identity"])
        )

    async def balances_for_update(self, identities: Iterable[str]) -> dict[str, int]:
        """Create missing accounts, then lock them all and return their balances."""
        wanted = sorted(set(identities))
        await self.ensure(wanted)
        result = await self.session.execute(
            select(AccountModel)
            .where(AccountModel.identity.in_(wanted))
            .order_by(AccountModel.identity)
            .with_for_update()
        )
        return {account.identity: account.balance for account in result.scalars().all()}

    async def set_balance(self, identity: str, balance: int) -> AccountModel:
        """Update an existing account; rows are created by ``ensure``."""
        account = await self.session.get(AccountModel, identity)
        if account is None:
            raise LookupError(f"Account {identity} does not exist")
        account.balance = balance
        await self.session.flush()
        return account

    async def credit(self, identity: str, amount: int) -> AccountModel:
        await self.ensure([identity])
        account = await self.session.get(AccountModel, identity, with_for_update=True)
        if account.balance > MAX_AMOUNT - amount:
            raise ValueError(f"credit would overflow the balance of {identity}")
        account.balance += amount
        await self.session.flush()
        return account
