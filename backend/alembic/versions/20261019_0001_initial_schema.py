"""Create restaurants, reservations, time slots and staff assignments.

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:00:01
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261019_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "restaurants",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column(
            "timezone",
            sa.String(length=64),
            server_default="America/New_York",
            nullable=False,
        ),
        sa.Column("opening_time", sa.Time(), server_default="11:00", nullable=False),
        sa.Column("closing_time", sa.Time(), server_default="23:00", nullable=False),
        sa.Column("slot_minutes", sa.Integer(), server_default="30", nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    )

    op.create_table(
        "reservations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("customer_id", sa.String(length=255), nullable=False),
        sa.Column("restaurant_id", sa.Integer(), nullable=False),
        sa.Column("reservation_time", sa.DateTime(), nullable=False),
        sa.Column("party_size", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("rebooked_from_id", sa.Integer(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["restaurant_id"], ["restaurants.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["rebooked_from_id"], ["reservations.id"], ondelete="SET NULL"),
        sa.CheckConstraint("party_size > 0", name="ck_reservations_party_size_positive"),
    )
    op.create_index("ix_reservations_customer_id", "reservations", ["customer_id"])
    op.create_index("ix_reservations_restaurant_id", "reservations", ["restaurant_id"])
    op.create_index("ix_reservations_status", "reservations", ["status"])

    op.create_table(
        "time_slots",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("restaurant_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("is_reserved", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("reservation_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["restaurant_id"], ["restaurants.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["reservation_id"], ["reservations.id"], ondelete="SET NULL"),
        sa.UniqueConstraint(
            "restaurant_id", "date", "start_time", name="uq_time_slots_restaurant_date_start"
        ),
        sa.UniqueConstraint("reservation_id", name="uq_time_slots_reservation_id"),
    )
    op.create_index("ix_time_slots_restaurant_id", "time_slots", ["restaurant_id"])

    op.create_table(
        "staff_assignments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("staff_id", sa.String(length=255), nullable=False),
        sa.Column("restaurant_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["restaurant_id"], ["restaurants.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "staff_id", "restaurant_id", name="uq_staff_assignments_staff_restaurant"
        ),
    )
    op.create_index("ix_staff_assignments_staff_id", "staff_assignments", ["staff_id"])
    op.create_index("ix_staff_assignments_restaurant_id", "staff_assignments", ["restaurant_id"])


def downgrade() -> None:
    op.drop_index("ix_staff_assignments_restaurant_id", table_name="staff_assignments")
    op.drop_index("ix_staff_assignments_staff_id", table_name="staff_assignments")
    op.drop_table("staff_assignments")

    op.drop_index("ix_time_slots_restaurant_id", table_name="time_slots")
    op.drop_table("time_slots")

    op.drop_index("ix_reservations_status", table_name="reservations")
    op.drop_index("ix_reservations_restaurant_id", table_name="reservations")
    op.drop_index("ix_reservations_customer_id", table_name="reservations")
    op.drop_table("reservations")

    op.drop_table("restaurants")
