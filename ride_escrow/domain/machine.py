"""
Ride state machine.

Derived states
--------------
REQUESTED (no driver) -> ACCEPTED (driver set) -> COMPLETED, with a
DISPUTED branch reachable from any of them.  Payout, refund, resolution and
cancellation return the ride to REQUESTED so it can be accepted again.

Rules
-----
* Every operation checks all of its preconditions before touching the ride,
  so a rejected call leaves the record exactly as it was.
* Every fund-moving transition drains the *whole* escrow to exactly one
  recipient and then resets ``driver`` / ``completed`` / ``disputed``.
  After a drain the escrow is zero, so a repeated call has nothing to move.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .entities import Ride
from .enums import MAX_RATING, MIN_RATING
from .errors import (
    AlreadyResolved,
    Dispute,
    InsufficientFunds,
    InvalidBid,
    InvalidRating,
    InvalidRide,
    InvalidWithdrawal,
    NotDriver,
    NotRider,
)
from .escrow import Identity, ValueTransfer, deposit, transfer_to, value_of

MAX_ESCROW_MULTIPLIER = 2


@dataclass(frozen=True)
class RidePolicy:
    max_escrow_multiplier: int = MAX_ESCROW_MULTIPLIER
    ratings_write_once: bool = True
    max_dispute_attempts: Optional[int] = None


class RideStateMachine:
    def __init__(self, policy: Optional[RidePolicy] = None):
        self.policy = policy or RidePolicy()

    # ── Creation & acceptance ─────────────────────────────────────────

    def request_ride(self, destination: bytes, price: int, caller: Identity) -> Ride:
        if price <= 0:
            raise InvalidRide("price must be positive")
        return Ride(rider=caller, destination=destination, price=price)

    def accept_ride(self, ride: Ride, caller: Identity) -> None:
        if ride.driver is not None:
            raise InvalidBid("ride has already been accepted")
        ride.driver = caller

    # ── Completion ────────────────────────────────────────────────────

    def complete_ride(self, ride: Ride, caller: Identity) -> None:
        if ride.driver is None:
            raise InvalidRide("ride has no driver")
        if caller != ride.driver:
            raise NotDriver("only the driver can complete the ride")
        ride.completed = True

    def mark_ride_complete(self, ride: Ride, caller: Identity) -> None:
        """Complete the ride, but only once the escrow covers the price."""
        if ride.driver is None or caller != ride.driver:
            raise NotDriver("only the driver can complete the ride")
        if value_of(ride.escrow) < ride.price:
            raise InsufficientFunds(
                f"escrow holds {value_of(ride.escrow)}, price is {ride.price}"
            )
        ride.completed = True

    # ── Disputes ──────────────────────────────────────────────────────

    def dispute_ride(self, ride: Ride, caller: Identity) -> None:
        if caller != ride.rider:
            raise Dispute("only the rider can dispute the ride")
        limit = self.policy.max_dispute_attempts
        if limit is not None and ride.dispute_attempts >= limit:
            raise Dispute(f"dispute limit of {limit} reached")
        ride.disputed = True
        ride.dispute_attempts += 1

    def resolve_dispute(
        self, ride: Ride, resolved: bool, caller: Identity, ledger: ValueTransfer
    ) -> int:
        """Pay the escrow to the driver if *resolved*, else back to the rider."""
        if caller != ride.rider:
            raise Dispute("only the rider can resolve the dispute")
        if not ride.disputed:
            raise AlreadyResolved("ride is not under dispute")
        if ride.driver is None:
            raise InvalidBid("ride has no driver")
        recipient = ride.driver if resolved else ride.rider
        amount = transfer_to(ride.escrow, recipient, ledger)
        ride.reset()
        return amount

    # ── Payment ───────────────────────────────────────────────────────

    def release_payment(self, ride: Ride, caller: Identity, ledger: ValueTransfer) -> int:
        if caller != ride.rider:
            raise NotRider("only the rider can release payment")
        if ride.driver is None:
            raise InvalidBid("ride has no driver")
        if not ride.completed or ride.disputed:
            raise InvalidRide("ride must be completed and not disputed")
        amount = transfer_to(ride.escrow, ride.driver, ledger)
        ride.reset()
        return amount

    def cancel_ride(self, ride: Ride, caller: Identity, ledger: ValueTransfer) -> int:
        """Either party may cancel.  An accepted, unfinished ride is refunded."""
        if caller != ride.rider and caller != ride.driver:
            raise NotDriver("only the rider or driver can cancel the ride")
        amount = 0
        if ride.driver is not None and not ride.completed and not ride.disputed:
            amount = transfer_to(ride.escrow, ride.rider, ledger)
        ride.reset()
        return amount

    def request_refund(self, ride: Ride, caller: Identity, ledger: ValueTransfer) -> int:
        if caller != ride.rider:
            raise NotRider("only the rider can request a refund")
        if ride.completed:
            raise InvalidWithdrawal("cannot refund a completed ride")
        amount = transfer_to(ride.escrow, ride.rider, ledger)
        ride.reset()
        return amount

    # ── Rider edits ───────────────────────────────────────────────────

    def update_ride_destination(self, ride: Ride, destination: bytes, caller: Identity) -> None:
        if caller != ride.rider:
            raise NotRider("only the rider can change the destination")
        if ride.completed:
            raise InvalidRide("ride is already completed")
        ride.destination = destination

    def update_ride_price(self, ride: Ride, price: int, caller: Identity) -> None:
        if caller != ride.rider:
            raise NotRider("only the rider can change the price")
        if ride.completed:
            raise InvalidRide("ride is already completed")
        if price <= 0:
            raise InvalidRide("price must be positive")
        ride.price = price

    def add_funds_to_ride(
        self, ride: Ride, amount: int, caller: Identity, ledger: ValueTransfer
    ) -> None:
        if caller != ride.rider:
            raise NotRider("only the rider can fund the ride")
        if ride.completed or ride.disputed:
            raise InvalidWithdrawal("ride is completed or disputed")
        if amount <= 0:
            raise InvalidWithdrawal("amount must be positive")
        cap = ride.price * self.policy.max_escrow_multiplier
        if value_of(ride.escrow) + amount > cap:
            raise InvalidWithdrawal(
                f"escrow would hold {value_of(ride.escrow) + amount}, cap is {cap}"
            )
        deposit(ride.escrow, amount, caller, ledger)

    # ── Ratings ───────────────────────────────────────────────────────

    def rate_driver(self, ride: Ride, rating: int, caller: Identity) -> None:
        if caller != ride.rider:
            raise NotRider("only the rider can rate the driver")
        self._check_rateable(ride, rating, ride.driver_rating)
        ride.driver_rating = rating
        ride.rated_driver = ride.driver

    def rate_rider(self, ride: Ride, rating: int, caller: Identity) -> None:
        if ride.driver is None or caller != ride.driver:
            raise NotDriver("only the driver can rate the rider")
        self._check_rateable(ride, rating, ride.rider_rating)
        ride.rider_rating = rating

    def _check_rateable(self, ride: Ride, rating: int, current: Optional[int]) -> None:
        if not ride.completed or ride.disputed:
            raise InvalidRide("ride must be completed and not disputed")
        if not MIN_RATING <= rating <= MAX_RATING:
            raise InvalidRating(f"rating must be between {MIN_RATING} and {MAX_RATING}")
        if self.policy.ratings_write_once and current is not None:
            raise InvalidRating("ride has already been rated")

    # ── Reads ─────────────────────────────────────────────────────────

    @staticmethod
    def get_ride_destination(ride: Ride) -> bytes:
        return ride.destination

    @staticmethod
    def get_ride_price(ride: Ride) -> int:
        return ride.price
