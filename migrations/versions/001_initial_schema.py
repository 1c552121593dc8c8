"""Initial schema: users, errands and the errand tracking trail.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


USER_ROLES = ("customer", "runner", "admin")
ERRAND_STATUSES = ("pending", "accepted", "in_progress", "completed", "cancelled")


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("first_name", sa.String(80), nullable=False),
        sa.Column("last_name", sa.String(80), nullable=False),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("phone", sa.String(32), unique=True, nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.Enum(*USER_ROLES, name="userrole"), nullable=False),
        sa.Column("is_verified", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column(
            "runner_is_approved", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column(
            "vehicle_type",
            sa.Enum("bicycle", "motorcycle", "car", "walking", name="vehicletype"),
            nullable=True,
        ),
        sa.Column("rating", sa.Float, nullable=False, server_default="0"),
        sa.Column("total_ratings", sa.Integer, nullable=False, server_default="0"),
        sa.Column("earnings", sa.Float, nullable=False, server_default="0"),
        sa.Column("completed_tasks", sa.Integer, nullable=False, server_default="0"),
        sa.Column("wallet_balance", sa.Float, nullable=False, server_default="0"),
        sa.Column("current_lng", sa.Float, nullable=True),
        sa.Column("current_lat", sa.Float, nullable=True),
        sa.Column("h3_cell", sa.String(20), nullable=True),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.Column("password_changed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("idx_users_role", "users", ["role"])
    op.create_index("idx_users_h3_cell", "users", ["h3_cell"])

    # ── errands ───────────────────────────────────────────────────────
    op.create_table(
        "errands",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("customer_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("runner_id", sa.Integer, sa.ForeignKey("users.id"), nullable=True),
        sa.Column(
            "type",
            sa.Enum("delivery", "shopping", "document", "repair", name="errandtype"),
            nullable=False,
        ),
        sa.Column(
            "status",
            sa.Enum(*ERRAND_STATUSES, name="errandstatus"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column(
            "priority",
            sa.Enum("normal", "priority", name="errandpriority"),
            nullable=False,
            server_default="normal",
        ),
        sa.Column("pickup_location", sa.JSON, nullable=False),
        sa.Column("dropoff_location", sa.JSON, nullable=False),
        sa.Column("pickup_h3", sa.String(20), nullable=False),
        sa.Column("items", sa.JSON, nullable=False),
        sa.Column("special_instructions", sa.Text, nullable=True),
        sa.Column("scheduled_for", sa.DateTime(timezone=True), nullable=True),
        sa.Column("estimated_distance", sa.Float, nullable=False),
        sa.Column("estimated_duration", sa.Integer, nullable=False),
        sa.Column("base_price", sa.Float, nullable=False),
        sa.Column("priority_fee", sa.Float, nullable=False, server_default="0"),
        sa.Column("service_fee", sa.Float, nullable=False),
        sa.Column("total_price", sa.Float, nullable=False),
        sa.Column(
            "payment_status",
            sa.Enum("pending", "paid", "refunded", name="paymentstatus"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column(
            "payment_method",
            sa.Enum("wallet", "card", "bank_transfer", name="paymentmethod"),
            nullable=True,
        ),
        sa.Column("payment_reference", sa.String(120), nullable=True),
        sa.Column("rating_stars", sa.Integer, nullable=True),
        sa.Column("rating_comment", sa.Text, nullable=True),
        sa.Column("rated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancellation_reason", sa.Text, nullable=True),
        sa.Column(
            "cancellation_by",
            sa.Enum(*USER_ROLES, name="cancellationby"),
            nullable=True,
        ),
        sa.Column("version", sa.Integer, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.CheckConstraint(
            "rating_stars IS NULL OR (rating_stars BETWEEN 1 AND 5)",
            name="ck_errands_rating_range",
        ),
    )
    op.create_index("idx_errands_status", "errands", ["status"])
    op.create_index("idx_errands_customer", "errands", ["customer_id"])
    op.create_index("idx_errands_runner", "errands", ["runner_id"])
    op.create_index("idx_errands_pickup_h3", "errands", ["pickup_h3"])

    # ── errand_tracking ───────────────────────────────────────────────
    op.create_table(
        "errand_tracking",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "errand_id",
            sa.Integer,
            sa.ForeignKey("errands.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("longitude", sa.Float, nullable=False),
        sa.Column("latitude", sa.Float, nullable=False),
        sa.Column(
            "status",
            sa.Enum(*ERRAND_STATUSES, name="trackingstatus"),
            nullable=False,
        ),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("idx_tracking_errand", "errand_tracking", ["errand_id"])


def downgrade() -> None:
    op.drop_table("errand_tracking")
    op.drop_table("errands")
    op.drop_table("users")
    for enum_name in (
        "trackingstatus",
        "cancellationby",
        "paymentmethod",
        "paymentstatus",
        "errandpriority",
        "errandstatus",
        "errandtype",
        "vehicletype",
        "userrole",
    ):
        op.execute(f"DROP TYPE IF EXISTS {enum_name}")
