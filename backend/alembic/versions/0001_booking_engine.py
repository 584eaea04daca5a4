"""booking_engine

Revision ID: 0001
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "unit_types",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("name", sa.String(50), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("base_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "bookable_units",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("code", sa.String(20), nullable=False, unique=True),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.Column("unit_type_id", sa.UUID(), sa.ForeignKey("unit_types.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("floor", sa.Integer(), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("base_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", sa.String(50), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_bookable_units_unit_type_id", "bookable_units", ["unit_type_id"])

    op.create_table(
        "guests",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("last_name", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("nationality", sa.String(100), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_guests_email", "guests", ["email"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("reference", sa.String(20), nullable=False, unique=True),
        sa.Column("guest_id", sa.UUID(), sa.ForeignKey("guests.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("unit_id", sa.UUID(), sa.ForeignKey("bookable_units.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("check_in", sa.Date(), nullable=False),
        sa.Column("check_out", sa.Date(), nullable=False),
        sa.Column("adults", sa.Integer(), nullable=False),
        sa.Column("children", sa.Integer(), nullable=False),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("nightly_prices", sa.JSON(), nullable=True),
        sa.Column("status", sa.String(50), nullable=False),
        sa.Column("special_requests", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(255), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("check_in < check_out", name="ck_bookings_dates"),
    )
    op.create_index("ix_bookings_guest_id", "bookings", ["guest_id"])
    op.create_index("ix_bookings_unit_id", "bookings", ["unit_id"])
    op.create_index("ix_bookings_status", "bookings", ["status"])
    op.create_index("ix_bookings_check_in", "bookings", ["check_in"])

    op.create_table(
        "unit_intervals",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("unit_id", sa.UUID(), sa.ForeignKey("bookable_units.id", ondelete="CASCADE"), nullable=False),
        sa.Column("booking_id", sa.UUID(), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("start", sa.Date(), nullable=False),
        sa.Column("end", sa.Date(), nullable=False),
        sa.Column("status", sa.String(50), nullable=False),
    )
    op.create_index("ix_unit_intervals_unit_start", "unit_intervals", ["unit_id", "start"])

    op.create_table(
        "pricing_rules",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("unit_type_id", sa.UUID(), sa.ForeignKey("unit_types.id", ondelete="CASCADE"), nullable=False),
        sa.Column("base_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("seasonal_multiplier", sa.Numeric(6, 3), nullable=False),
        sa.Column("weekend_multiplier", sa.Numeric(6, 3), nullable=False),
        sa.Column("holiday_multiplier", sa.Numeric(6, 3), nullable=False),
        sa.Column("demand_multiplier", sa.Numeric(6, 3), nullable=False),
        sa.Column("effective_date", sa.Date(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_pricing_rules_type_effective", "pricing_rules", ["unit_type_id", "effective_date"])

    op.create_table(
        "payments",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("booking_id", sa.UUID(), sa.ForeignKey("bookings.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("method", sa.String(30), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("transaction_ref", sa.String(100), nullable=False, unique=True),
        sa.Column("external_ref", sa.String(255), nullable=True, unique=True),
        sa.Column("refund_of_id", sa.UUID(), sa.ForeignKey("payments.id", ondelete="RESTRICT"), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("gateway_metadata", sa.JSON(), nullable=True),
        sa.Column("settled_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_payments_booking_id", "payments", ["booking_id"])
    op.create_index("ix_payments_status", "payments", ["status"])
    op.create_index("ix_payments_refund_of_id", "payments", ["refund_of_id"])
    op.create_index("ix_payments_booking_status", "payments", ["booking_id", "status"])


def downgrade() -> None:
    op.drop_table("payments")
    op.drop_table("pricing_rules")
    op.drop_table("unit_intervals")
    op.drop_table("bookings")
    op.drop_table("guests")
    op.drop_table("bookable_units")
    op.drop_table("unit_types")
