"""
Domain entities.

``Ride`` is the single stateful record of one rider / driver cycle.  Its
lifecycle state is not stored: ``Ride.state`` derives it from ``driver``,
``completed`` and ``disputed``.  All mutation goes through
``RideStateMachine`` (see ``machine.py``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .enums import RideState
from .escrow import Balance, Identity


@dataclass
class Ride:
    rider: Identity
    destination: bytes
    price: int
    id: Optional[int] = None
    driver: Optional[Identity] = None
    escrow: Balance = field(default_factory=Balance)
    completed: bool = False
    disputed: bool = False
    rider_rating: Optional[int] = None
    driver_rating: Optional[int] = None
    # Subject of ``driver_rating``; survives the payout that clears ``driver``
    rated_driver: Optional[Identity] = None
    dispute_attempts: int = 0

    @property
    def state(self) -> RideState:
        if self.disputed:
            return RideState.DISPUTED
        if self.driver is None:
            return RideState.REQUESTED
        if self.completed:
            return RideState.COMPLETED
        return RideState.ACCEPTED

    def reset(self) -> None:
        """Clear the per-cycle fields so the ride can be accepted again."""
        self.driver = None
        self.completed = False
        self.disputed = False
