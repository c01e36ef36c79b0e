"""initial

Revision ID: 0001_initial
Revises: 
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "transactions",
        sa.Column("tx_ref", sa.String(64), primary_key=True),
        sa.Column("user_id", sa.String(128), nullable=False, server_default="anonymous"),
        sa.Column("category", sa.String(16), nullable=False),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("details", sa.JSON, nullable=False),
        sa.Column("provider", sa.String(64), nullable=True),
        sa.Column("payment_method", sa.String(32), nullable=False, server_default="card"),
        sa.Column("status", sa.String(24), nullable=False, server_default="UNPAID"),
        sa.Column("paystack_access_code", sa.String(128), nullable=True),
        sa.Column("paystack_reference", sa.String(128), nullable=True),
        sa.Column("paystack_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("paystack_status", sa.String(32), nullable=True),
        sa.Column("verification_method", sa.String(32), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("vended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("token", sa.String(255), nullable=True),
        sa.Column("vendor_response", sa.JSON, nullable=True),
        sa.Column("error", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_transactions_user_status", "transactions", ["user_id", "status"], unique=False)
    op.create_index("ix_transactions_category_status", "transactions", ["category", "status"], unique=False)

    op.create_table(
        "data_plan_cache",
        sa.Column("provider", sa.String(32), primary_key=True),
        sa.Column("plans", sa.JSON, nullable=False),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )


def downgrade():
    op.drop_table("data_plan_cache")
    op.drop_index("ix_transactions_category_status", table_name="transactions")
    op.drop_index("ix_transactions_user_status", table_name="transactions")
    op.drop_table("transactions")
