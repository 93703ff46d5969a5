"""demonstrations and company costs

Revision ID: 8b2e4d1c6a57
Revises: 3f1c2a9d7b10
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "8b2e4d1c6a57"
down_revision = "3f1c2a9d7b10"
branch_labels = None
depends_on = None


def upgrade() -> None:
    # -----------------------------------------------------
    # 1) Demonstrations
    # -----------------------------------------------------
    op.create_table(
        "demonstrations",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("client_id", sa.Uuid(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("seller_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="scheduled"),
        sa.Column("demo_types", sa.JSON(), nullable=False),
        sa.Column("product_ids", sa.JSON(), nullable=False),
        sa.Column("assigned_users", sa.JSON(), nullable=False),
        sa.Column("crop", sa.String(length=120), nullable=True),
        sa.Column("hectares", sa.Numeric(12, 2), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_demonstrations_client_id", "demonstrations", ["client_id"])
    op.create_index("ix_demonstrations_seller_id", "demonstrations", ["seller_id"])

    # -----------------------------------------------------
    # 2) Company costs
    # -----------------------------------------------------
    op.create_table(
        "company_costs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("cost_type", sa.String(length=16), nullable=False),
        sa.Column("category", sa.String(length=120), nullable=True),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("monthly_value", sa.Numeric(14, 2), nullable=False),
        sa.Column("competence_ym", sa.String(length=7), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_company_costs_competence_ym", "company_costs", ["competence_ym"])


def downgrade() -> None:
    op.drop_table("company_costs")
    op.drop_table("demonstrations")
