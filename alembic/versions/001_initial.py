"""Initial schema: users, payments, issues, staff_assignments.

App startup also runs Base.metadata.create_all, so every table is created
only when missing. Safe to run against a database create_all already built.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _has_table(name: str) -> bool:
    return sa.inspect(op.get_bind()).has_table(name)


def upgrade() -> None:
    # payments first: users and issues reference it
    if not _has_table("payments"):
        op.create_table(
            "payments",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("stripe_session_id", sa.String(), nullable=False),
            sa.Column("transaction_id", sa.String(), nullable=True),
            sa.Column("amount", sa.Numeric(12, 2), nullable=False),
            sa.Column("currency", sa.String(), nullable=False),
            sa.Column("user_email", sa.String(), nullable=False),
            sa.Column("user_name", sa.String(), nullable=True),
            sa.Column("type", sa.String(), nullable=False),
            sa.Column("plan", sa.String(), nullable=True),
            sa.Column("issue_id", sa.Integer(), nullable=True),
            sa.Column("issue_title", sa.String(), nullable=True),
            sa.Column("status", sa.String(), nullable=False, server_default="completed"),
            sa.Column("paid_at", sa.DateTime(), nullable=False),
            sa.Column("customer_details", sa.JSON(), nullable=False),
        )
        # Idempotency key for payment verification
        op.create_index("ix_payments_stripe_session_id", "payments", ["stripe_session_id"], unique=True)
        op.create_index("ix_payments_user_email", "payments", ["user_email"])
        op.create_index("ix_payments_issue_id", "payments", ["issue_id"])

    if not _has_table("users"):
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("email", sa.String(), nullable=False),
            sa.Column("display_name", sa.String(), nullable=True),
            sa.Column("photo_url", sa.String(), nullable=True),
            sa.Column("role", sa.String(), nullable=False, server_default="user"),
            sa.Column("status", sa.String(), nullable=False, server_default="active"),
            sa.Column("is_premium", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("premium_plan", sa.String(), nullable=True),
            sa.Column("premium_expires_at", sa.DateTime(), nullable=True),
            sa.Column(
                "premium_payment_id",
                sa.Integer(),
                sa.ForeignKey("payments.id", ondelete="SET NULL"),
                nullable=True,
            ),
            sa.Column("max_issues", sa.Integer(), nullable=False, server_default="3"),
            sa.Column("assigned_issues_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("resolved_issues_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("rejected_issues_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
        )
        op.create_index("ix_users_email", "users", ["email"], unique=True)
        op.create_index("ix_users_role", "users", ["role"])
        op.create_index("ix_users_is_premium", "users", ["is_premium"])

    if not _has_table("issues"):
        op.create_table(
            "issues",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("title", sa.String(), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("category", sa.String(), nullable=True),
            sa.Column("location", sa.String(), nullable=True),
            sa.Column("district", sa.String(), nullable=True),
            sa.Column("images", sa.JSON(), nullable=False),
            sa.Column("submitted_by", sa.String(), nullable=False),
            sa.Column("submitted_by_role", sa.String(), nullable=False),
            sa.Column("status", sa.String(), nullable=False, server_default="pending"),
            sa.Column("is_boosted", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("boosted_at", sa.DateTime(), nullable=True),
            sa.Column(
                "boost_payment_id",
                sa.Integer(),
                sa.ForeignKey("payments.id", ondelete="SET NULL"),
                nullable=True,
            ),
            sa.Column("upvotes", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("upvoted_by", sa.JSON(), nullable=False),
            sa.Column(
                "assigned_staff_id",
                sa.Integer(),
                sa.ForeignKey("users.id", ondelete="SET NULL"),
                nullable=True,
            ),
            sa.Column("assigned_staff_email", sa.String(), nullable=True),
            sa.Column("assigned_staff_name", sa.String(), nullable=True),
            sa.Column("assigned_at", sa.DateTime(), nullable=True),
            sa.Column("resolved_at", sa.DateTime(), nullable=True),
            sa.Column("rejected_at", sa.DateTime(), nullable=True),
            sa.Column("rejected_by", sa.String(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
        )
        op.create_index("ix_issues_submitted_by", "issues", ["submitted_by"])
        op.create_index("ix_issues_status", "issues", ["status"])
        op.create_index("ix_issues_district", "issues", ["district"])
        op.create_index("ix_issues_is_boosted", "issues", ["is_boosted"])
        op.create_index("ix_issues_assigned_staff_id", "issues", ["assigned_staff_id"])
        op.create_index("ix_issues_created_at", "issues", ["created_at"])

    if not _has_table("staff_assignments"):
        op.create_table(
            "staff_assignments",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(
                "staff_id",
                sa.Integer(),
                sa.ForeignKey("users.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("issue_id", sa.Integer(), nullable=False),
            sa.Column("issue_title", sa.String(), nullable=True),
            sa.Column("assigned_at", sa.DateTime(), nullable=False),
            sa.Column("status", sa.String(), nullable=False, server_default="assigned"),
        )
        op.create_index("ix_staff_assignments_staff_id", "staff_assignments", ["staff_id"])
        op.create_index("ix_staff_assignments_issue_id", "staff_assignments", ["issue_id"])


def downgrade() -> None:
    op.drop_table("staff_assignments")
    op.drop_table("issues")
    op.drop_table("users")
    op.drop_table("payments")
