"""Initial schema: slot capacity, holds, rides, credits, subscriptions, reporting

Revision ID: 001
Revises:
Create Date: (run alembic upgrade head)

Table names: shuttle.db.tables.ALL_TABLE_NAMES.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_JSON = sa.JSON().with_variant(JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        "slot_capacity",
        sa.Column("slot_id", sa.String(64), primary_key=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("direction", sa.String(32), nullable=False),
        sa.Column("slot_type", sa.String(16), nullable=False),
        sa.Column("arrival_start", sa.String(5), nullable=False),
        sa.Column("arrival_end", sa.String(5), nullable=False),
        sa.Column("max_riders_premium", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("used_riders_premium", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_riders_non_premium", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("used_riders_non_premium", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_fragile", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.CheckConstraint(
            "used_riders_premium >= 0 AND used_riders_premium <= max_riders_premium",
            name="ck_slot_capacity_premium_bounds",
        ),
        sa.CheckConstraint(
            "used_riders_non_premium >= 0 AND used_riders_non_premium <= max_riders_non_premium",
            name="ck_slot_capacity_non_premium_bounds",
        ),
        sa.CheckConstraint(
            "slot_type <> 'peak' OR max_riders_non_premium = 0",
            name="ck_slot_capacity_peak_premium_only",
        ),
    )
    op.create_index("ix_slot_capacity_date", "slot_capacity", ["date"])

    op.create_table(
        "slot_holds",
        sa.Column("hold_id", sa.String(64), primary_key=True),
        sa.Column("slot_id", sa.String(64), sa.ForeignKey("slot_capacity.slot_id"), nullable=False),
        sa.Column("rider_id", sa.Integer(), nullable=False),
        sa.Column("plan_type", sa.String(16), nullable=False),
        sa.Column("origin_lat", sa.Float(), nullable=True),
        sa.Column("origin_lng", sa.Float(), nullable=True),
        sa.Column("destination_lat", sa.Float(), nullable=True),
        sa.Column("destination_lng", sa.Float(), nullable=True),
        sa.Column("origin_address", sa.String(256), nullable=True),
        sa.Column("destination_address", sa.String(256), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("released_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("confirmed_ride_id", sa.Integer(), nullable=True),
    )
    op.create_index("ix_slot_holds_slot_id", "slot_holds", ["slot_id"])
    op.create_index("ix_slot_holds_rider_id", "slot_holds", ["rider_id"])
    op.create_index("ix_slot_holds_status", "slot_holds", ["status"])
    op.create_index("ix_slot_holds_expires_at", "slot_holds", ["expires_at"])
    op.create_index(
        "uq_slot_holds_active_slot_rider",
        "slot_holds",
        ["slot_id", "rider_id"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
        sqlite_where=sa.text("status = 'active'"),
    )

    op.create_table(
        "rides",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("driver_id", sa.Integer(), nullable=True),
        sa.Column("contact_phone", sa.String(32), nullable=True),
        sa.Column("pickup_address", sa.String(256), nullable=True),
        sa.Column("dropoff_address", sa.String(256), nullable=True),
        sa.Column("pickup_lat", sa.Float(), nullable=True),
        sa.Column("pickup_lng", sa.Float(), nullable=True),
        sa.Column("drop_lat", sa.Float(), nullable=True),
        sa.Column("drop_lng", sa.Float(), nullable=True),
        sa.Column("pickup_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("pickup_window_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("pickup_window_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("arrival_target", sa.DateTime(timezone=True), nullable=True),
        sa.Column("arrival_window_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("arrival_window_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ride_type", sa.String(16), nullable=False, server_default="standard"),
        sa.Column("plan_type", sa.String(16), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="pending"),
        sa.Column("slot_id", sa.String(64), sa.ForeignKey("slot_capacity.slot_id"), nullable=True),
        sa.Column("hold_id", sa.String(64), nullable=True),
        sa.Column("driver_en_route_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("arrived_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("in_progress_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("wait_minutes", sa.Integer(), nullable=True),
        sa.Column("wait_charge_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("late_minutes", sa.Integer(), nullable=True),
        sa.Column("compensation_type", sa.String(16), nullable=False, server_default="none"),
        sa.Column("compensation_applied", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )
    op.create_index("ix_rides_user_id", "rides", ["user_id"])
    op.create_index("ix_rides_pickup_time", "rides", ["pickup_time"])
    op.create_index("ix_rides_status", "rides", ["status"])
    op.create_index("ix_rides_slot_id", "rides", ["slot_id"])

    op.create_table(
        "ride_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("ride_id", sa.Integer(), sa.ForeignKey("rides.id"), nullable=False),
        sa.Column("old_status", sa.String(32), nullable=False),
        sa.Column("new_status", sa.String(32), nullable=False),
        sa.Column("actor_type", sa.String(16), nullable=False, server_default="system"),
        sa.Column("actor_id", sa.Integer(), nullable=True),
        sa.Column("meta", _JSON, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_ride_events_ride_id", "ride_events", ["ride_id"])

    op.create_table(
        "ride_credit_periods",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("period_start", sa.Date(), nullable=False),
        sa.Column("period_end", sa.Date(), nullable=False),
        sa.Column("standard_total", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("standard_used", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("grocery_total", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("grocery_used", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.UniqueConstraint("user_id", "period_start", name="uq_credit_period_user_start"),
    )
    op.create_index("ix_ride_credit_periods_user_id", "ride_credit_periods", ["user_id"])

    op.create_table(
        "schedule_templates",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("direction", sa.String(16), nullable=False),
        sa.Column("arrival_time", sa.String(5), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("user_id", "day_of_week", "direction", name="uq_schedule_template_user_day_direction"),
    )
    op.create_index("ix_schedule_templates_user_id", "schedule_templates", ["user_id"])

    op.create_table(
        "saved_locations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("label", sa.String(32), nullable=False),
        sa.Column("address", sa.String(256), nullable=True),
        sa.Column("lat", sa.Float(), nullable=True),
        sa.Column("lng", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("user_id", "label", name="uq_saved_location_user_label"),
    )
    op.create_index("ix_saved_locations_user_id", "saved_locations", ["user_id"])

    op.create_table(
        "subscription_plans",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("code", sa.String(32), nullable=False, unique=True),
        sa.Column("name", sa.String(64), nullable=False),
        sa.Column("peak_access", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("standard_credits", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("grocery_credits", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("price_cents", sa.Integer(), nullable=False, server_default="0"),
    )

    op.create_table(
        "subscriptions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("plan_id", sa.Integer(), sa.ForeignKey("subscription_plans.id"), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="active"),
        sa.Column("current_period_start", sa.Date(), nullable=False),
        sa.Column("current_period_end", sa.Date(), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_subscriptions_user_id", "subscriptions", ["user_id"])
    op.create_index("ix_subscriptions_status", "subscriptions", ["status"])

    op.create_table(
        "premium_subscriber_count",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("current_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_count", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.CheckConstraint(
            "current_count >= 0 AND current_count <= max_count",
            name="ck_premium_count_bounds",
        ),
    )

    op.create_table(
        "daily_capacity_summary",
        sa.Column("date", sa.Date(), primary_key=True),
        sa.Column("premium_capacity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("premium_booked_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("non_premium_capacity_computed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("non_premium_booked_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("reliability_score", sa.Float(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )

    op.create_table(
        "daily_load_insights",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("generated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("total_rides", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("recommended_start_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("overbooked_slots", _JSON, nullable=False),
        sa.Column("at_risk_rides", _JSON, nullable=False),
    )
    op.create_index("ix_daily_load_insights_day", "daily_load_insights", ["day"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("ride_id", sa.Integer(), nullable=True),
        sa.Column("kind", sa.String(32), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("sms_status", sa.String(16), nullable=False, server_default="skipped"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_ride_id", "notifications", ["ride_id"])


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("daily_load_insights")
    op.drop_table("daily_capacity_summary")
    op.drop_table("premium_subscriber_count")
    op.drop_table("subscriptions")
    op.drop_table("subscription_plans")
    op.drop_table("saved_locations")
    op.drop_table("schedule_templates")
    op.drop_table("ride_credit_periods")
    op.drop_table("ride_events")
    op.drop_table("rides")
    op.drop_index("uq_slot_holds_active_slot_rider", table_name="slot_holds")
    op.drop_table("slot_holds")
    op.drop_table("slot_capacity")
