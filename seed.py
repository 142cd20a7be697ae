"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 8 funded accounts (riders and drivers)
  - 6 sample rides walked through the state machine: requested, accepted,
    funded & completed, disputed, paid out and rated
"""

import asyncio

from sqlalchemy import text

from ride_escrow.domain.escrow import InMemoryLedger
from ride_escrow.domain.machine import RideStateMachine
from ride_escrow.infrastructure.database import async_session_factory, engine
from ride_escrow.infrastructure.repositories import (
    AccountRepository,
    RideRepository,
    apply_entity,
)

ACCOUNTS = {
    "rider-aarav": 5_000,
    "rider-priya": 5_000,
    "rider-rohan": 3_000,
    "rider-sneha": 2_000,
    "driver-vikram": 0,
    "driver-ananya": 0,
    "driver-karan": 0,
    "driver-meera": 0,
}


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM accounts"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        machine = RideStateMachine()
        ledger = InMemoryLedger(ACCOUNTS)
        rides = []

        # ── Requested only ────────────────────────────────────────────
        rides.append(machine.request_ride(b"Terminal 2", 450, "rider-aarav"))

        # ── Accepted and funded ───────────────────────────────────────
        r = machine.request_ride(b"Andheri East", 300, "rider-priya")
        machine.add_funds_to_ride(r, 300, "rider-priya", ledger)
        machine.accept_ride(r, "driver-vikram")
        rides.append(r)

        # ── Completed, awaiting payment ───────────────────────────────
        r = machine.request_ride(b"Powai", 600, "rider-rohan")
        machine.add_funds_to_ride(r, 600, "rider-rohan", ledger)
        machine.accept_ride(r, "driver-ananya")
        machine.mark_ride_complete(r, "driver-ananya")
        rides.append(r)

        # ── Disputed ──────────────────────────────────────────────────
        r = machine.request_ride(b"Bandra", 500, "rider-sneha")
        machine.add_funds_to_ride(r, 500, "rider-sneha", ledger)
        machine.accept_ride(r, "driver-karan")
        machine.dispute_ride(r, "rider-sneha")
        rides.append(r)

        # ── Rated and paid out ────────────────────────────────────────
        for rider, driver, price, stars in [
            ("rider-aarav", "driver-meera", 250, 5),
            ("rider-priya", "driver-meera", 350, 4),
        ]:
            r = machine.request_ride(b"Dadar", price, rider)
            machine.add_funds_to_ride(r, price, rider, ledger)
            machine.accept_ride(r, driver)
            machine.complete_ride(r, driver)
            machine.rate_driver(r, stars, rider)
            machine.rate_rider(r, 5, driver)
            machine.release_payment(r, rider, ledger)
            rides.append(r)

        ride_repo = RideRepository(session)
        for ride in rides:
            model = await ride_repo.create(ride)
            apply_entity(model, ride)
        await session.flush()
        print(f"  Created {len(rides)} rides")

        account_repo = AccountRepository(session)
        await account_repo.ensure(ledger.balances)
        for identity, balance in ledger.balances.items():
            await account_repo.set_balance(identity, balance)
        print(f"  Created {len(ledger.balances)} accounts")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
