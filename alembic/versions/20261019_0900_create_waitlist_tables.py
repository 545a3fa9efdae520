"""create waitlist queue tables

Revision ID: 20261019_0900
Revises: 
Create Date: 2026-10-19 09:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "20261019_0900"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "restaurants",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("current_wait_status", sa.String(length=20), nullable=False, server_default="available"),
        sa.Column("custom_wait_time", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("use_advanced_queue", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("table_capacity", sa.Integer(), nullable=True),
        sa.Column("queue_version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "table_types",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("restaurant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("count", sa.Integer(), nullable=False),
        sa.Column("estimated_turnover_time", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["restaurant_id"], ["restaurants.id"]),
    )
    op.create_index("ix_table_types_restaurant_id", "table_types", ["restaurant_id"])

    op.create_table(
        "waitlist_entries",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("restaurant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("customer_name", sa.String(length=100), nullable=False),
        sa.Column("party_size", sa.Integer(), nullable=False),
        sa.Column("phone_number", sa.String(length=32), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("dietary_requirements", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="waiting"),
        sa.Column("queue_position", sa.Integer(), nullable=False),
        sa.Column("estimated_wait_time", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("table_type_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("is_remote", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("confirmation_code", sa.String(length=12), nullable=True),
        sa.Column("expected_arrival_time", sa.DateTime(), nullable=True),
        sa.Column("arrived_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("notified_at", sa.DateTime(), nullable=True),
        sa.Column("seated_at", sa.DateTime(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["restaurant_id"], ["restaurants.id"]),
        sa.ForeignKeyConstraint(["table_type_id"], ["table_types.id"]),
    )
    op.create_index("ix_waitlist_restaurant_status", "waitlist_entries", ["restaurant_id", "status"])
    op.create_index("ix_waitlist_entries_confirmation_code", "waitlist_entries", ["confirmation_code"])

    op.create_table(
        "daily_analytics",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("restaurant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("service_date", sa.Date(), nullable=False),
        sa.Column("total_customers", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_parties", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("average_party_size", sa.Numeric(4, 2), nullable=False, server_default="0"),
        sa.Column("average_wait_time", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("peak_wait_time", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("cancelled_waitlist", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["restaurant_id"], ["restaurants.id"]),
        sa.UniqueConstraint("restaurant_id", "service_date", name="uq_daily_analytics_day"),
    )

    op.create_table(
        "hourly_analytics",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("restaurant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("service_date", sa.Date(), nullable=False),
        sa.Column("hour", sa.Integer(), nullable=False),
        sa.Column("customers", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("average_wait_time", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("parties_seated", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["restaurant_id"], ["restaurants.id"]),
        sa.UniqueConstraint("restaurant_id", "service_date", "hour", name="uq_hourly_analytics_slot"),
    )

    op.create_table(
        "table_analytics",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("restaurant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("table_type_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("service_date", sa.Date(), nullable=False),
        sa.Column("total_usage", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("average_turnover_time", sa.Integer(), nullable=True),
        sa.Column("turnover_samples", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_seated_at", sa.DateTime(), nullable=True),
        sa.Column("average_wait_before_seating", sa.Integer(), nullable=True),
        sa.Column("wait_samples", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["restaurant_id"], ["restaurants.id"]),
        sa.ForeignKeyConstraint(["table_type_id"], ["table_types.id"]),
        sa.UniqueConstraint(
            "restaurant_id", "table_type_id", "service_date",
            name="uq_table_analytics_day",
        ),
    )


def downgrade() -> None:
    op.drop_table("table_analytics")
    op.drop_table("hourly_analytics")
    op.drop_table("daily_analytics")
    op.drop_index("ix_waitlist_entries_confirmation_code", table_name="waitlist_entries")
    op.drop_index("ix_waitlist_restaurant_status", table_name="waitlist_entries")
    op.drop_table("waitlist_entries")
    op.drop_index("ix_table_types_restaurant_id", table_name="table_types")
    op.drop_table("table_types")
    op.drop_table("restaurants")
