"""Initial schema: accounts and rides.

Revision ID: 001
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── accounts ──────────────────────────────────────────────────────
    op.create_table(
        "accounts",
        sa.Column("identity", sa.String(64), primary_key=True),
        sa.Column("balance", sa.BigInteger, default=0, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "balance >= 0", name="ck_accounts_balance_non_negative"
        ),
    )

    # ── rides ─────────────────────────────────────────────────────────
    op.create_table(
        "rides",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("rider", sa.String(64), nullable=False),
        sa.Column("driver", sa.String(64), nullable=True),
        sa.Column("destination", sa.LargeBinary, nullable=False),
        sa.Column("price", sa.BigInteger, nullable=False),
        sa.Column("escrow", sa.BigInteger, default=0, nullable=False),
        sa.Column("completed", sa.Boolean, default=False, nullable=False),
        sa.Column("disputed", sa.Boolean, default=False, nullable=False),
        sa.Column("dispute_attempts", sa.Integer, default=0, nullable=False),
        sa.Column("rider_rating", sa.Integer, nullable=True),
        sa.Column("driver_rating", sa.Integer, nullable=True),
        sa.Column("rated_driver", sa.String(64), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("price > 0", name="ck_rides_price_positive"),
        sa.CheckConstraint("escrow >= 0", name="ck_rides_escrow_non_negative"),
    )
    op.create_index("idx_rides_rider", "rides", ["rider"])
    op.create_index("idx_rides_driver", "rides", ["driver"])
    op.create_index("idx_rides_rated_driver", "rides", ["rated_driver"])


def downgrade() -> None:
    op.drop_table("rides")
    op.drop_table("accounts")
