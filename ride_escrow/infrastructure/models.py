"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``accounts`` -- value held by riders and drivers outside any escrow
* ``rides``    -- one ride record each, including its escrow balance

Indexes
-------
* **B-Tree** on ``rider``, ``driver`` and ``rated_driver`` for the
  per-address look-ups used by the rating endpoints.
"""

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Integer,
    LargeBinary,
    String,
    func,
)

from .database import Base


class AccountModel(Base):
    __tablename__ = "accounts"

    identity = Column(String(64), primary_key=True)
    balance = Column(BigInteger, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_accounts_balance_non_negative"),
    )


class RideModel(Base):
    __tablename__ = "rides"

    id = Column(Integer, primary_key=True, autoincrement=True)
    rider = Column(String(64), nullable=False)
    driver = Column(String(64), nullable=True)
    destination = Column(LargeBinary, nullable=False)
    price = Column(BigInteger, nullable=False)
    escrow = Column(BigInteger, default=0, nullable=False)

    completed = Column(Boolean, default=False, nullable=False)
    disputed = Column(Boolean, default=False, nullable=False)
    dispute_attempts = Column(Integer, default=0, nullable=False)

    rider_rating = Column(Integer, nullable=True)
    driver_rating = Column(Integer, nullable=True)
    rated_driver = Column(String(64), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint("price > 0", name="ck_rides_price_positive"),
        CheckConstraint("escrow >= 0", name="ck_rides_escrow_non_negative"),
        Index("idx_rides_rider", "rider"),
        Index("idx_rides_driver", "driver"),
        Index("idx_rides_rated_driver", "rated_driver"),
    )
