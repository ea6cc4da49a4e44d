"""create membership schema

Revision ID: a7c1e2d3f4b5
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a7c1e2d3f4b5'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create plans, members, transactions, renewal requests, admins and audit events."""
    op.create_table(
        "membership_plans",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("label", sa.String(128), nullable=False),
        sa.Column("duration", sa.String(64), nullable=False),
        sa.Column("duration_months", sa.Integer(), nullable=False),
        sa.Column("price_in_cents", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "members",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("member_type", sa.String(16), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("avatar_url", sa.String(512), nullable=True),
        sa.Column("ahass_number", sa.String(64), nullable=False),
        sa.Column("dealer_code", sa.String(64), nullable=True),
        sa.Column("dealer_name", sa.String(255), nullable=False),
        sa.Column("dealer_city", sa.String(128), nullable=False),
        sa.Column("pic_phone_number", sa.String(32), nullable=False),
        sa.Column("membership_plan_id", sa.String(32), sa.ForeignKey("membership_plans.id"), nullable=True),
        sa.Column("active_until", sa.Date(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("joined_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("idx_members_status", "members", ["status"])
    op.create_index("idx_members_active_until", "members", ["active_until"])

    op.create_table(
        "transactions",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("member_id", sa.String(32), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("plan_id", sa.String(32), sa.ForeignKey("membership_plans.id"), nullable=False),
        sa.Column("amount_in_cents", sa.Integer(), nullable=False),
        sa.Column("transfer_date", sa.Date(), nullable=False),
        sa.Column("transfer_proof_url", sa.String(512), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("verified_at", sa.DateTime(), nullable=True),
        sa.Column("verified_by", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("idx_transactions_member_id", "transactions", ["member_id"])

    op.create_table(
        "renewal_requests",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("member_id", sa.String(32), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column("requested_plan_id", sa.String(32), sa.ForeignKey("membership_plans.id"), nullable=False),
        sa.Column("transfer_date", sa.Date(), nullable=False),
        sa.Column("transfer_proof_url", sa.String(512), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("processed_by", sa.String(64), nullable=True),
        sa.Column("processed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("idx_renewal_requests_status", "renewal_requests", ["status"])
    op.create_index("idx_renewal_requests_member_id", "renewal_requests", ["member_id"])

    op.create_table(
        "admins",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("pin_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(32), nullable=False, server_default="admin"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("request_id", sa.String(64), nullable=True),
        sa.Column("actor_admin_id", sa.String(32), nullable=True),
        sa.Column("action", sa.String(128), nullable=False),
        sa.Column("entity_type", sa.String(128), nullable=True),
        sa.Column("entity_id", sa.String(128), nullable=True),
        sa.Column("reason", sa.String(512), nullable=True),
        sa.Column("metadata_json", sa.Text(), nullable=True),
        sa.Column("client_ip", sa.String(64), nullable=True),
        sa.UniqueConstraint("request_id", "id", name="uq_audit_request_id_id"),
    )


def downgrade() -> None:
    op.drop_table("audit_events")
    op.drop_table("admins")
    op.drop_index("idx_renewal_requests_member_id", table_name="renewal_requests")
    op.drop_index("idx_renewal_requests_status", table_name="renewal_requests")
    op.drop_table("renewal_requests")
    op.drop_index("idx_transactions_member_id", table_name="transactions")
    op.drop_table("transactions")
    op.drop_index("idx_members_active_until", table_name="members")
    op.drop_index("idx_members_status", table_name="members")
    op.drop_table("members")
    op.drop_table("membership_plans")
