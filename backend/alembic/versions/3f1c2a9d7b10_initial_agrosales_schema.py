"""initial agrosales schema

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "3f1c2a9d7b10"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(updated: bool = False) -> list[sa.Column]:
    cols = [sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False))
    return cols


def upgrade() -> None:
    # -----------------------------------------------------
    # 1) Users
    # -----------------------------------------------------
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("phone_e164", sa.String(length=20), nullable=True),
        sa.Column("region", sa.String(length=120), nullable=True),
        sa.Column("magic_code", sa.String(length=64), nullable=True),
        sa.Column("magic_code_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("invite_token", sa.String(length=128), nullable=True, unique=True),
        sa.Column("invite_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("invited_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("invited_by", sa.Uuid(), nullable=True),
        *_timestamps(updated=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_status", "users", ["status"])

    # -----------------------------------------------------
    # 2) Catalog + price history
    # -----------------------------------------------------
    op.create_table(
        "products",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("sku", sa.String(length=128), nullable=True),
        sa.Column("category", sa.String(length=120), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image_url", sa.String(length=1024), nullable=True),
        sa.Column("cost", sa.Numeric(12, 2), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("pricing_mode", sa.String(length=16), nullable=False),
        sa.Column("profit_margin_percent", sa.Numeric(6, 2), nullable=False),
        sa.Column("tax_percent", sa.Numeric(6, 2), nullable=False),
        sa.Column("stock", sa.Integer(), nullable=False),
        sa.Column("low_stock_threshold", sa.Integer(), nullable=False),
        sa.Column("max_discount_percent", sa.Numeric(5, 2), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        *_timestamps(updated=True),
    )
    op.create_index("ix_products_sku", "products", ["sku"])
    op.create_index("ix_products_category", "products", ["category"])
    op.create_index("ix_products_status", "products", ["status"])

    op.create_table(
        "product_price_history",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("product_id", sa.Uuid(), sa.ForeignKey("products.id", ondelete="CASCADE"), nullable=False),
        sa.Column("changed_by", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("change_type", sa.String(length=10), nullable=False),
        sa.Column("old_cost", sa.Numeric(12, 2), nullable=True),
        sa.Column("new_cost", sa.Numeric(12, 2), nullable=True),
        sa.Column("old_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("new_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("profit_margin_percent", sa.Numeric(6, 2), nullable=True),
        sa.Column("tax_percent", sa.Numeric(6, 2), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_price_history_product_created", "product_price_history", ["product_id", "created_at"])

    # -----------------------------------------------------
    # 3) CRM
    # -----------------------------------------------------
    op.create_table(
        "clients",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("seller_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("owner_user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("farm_name", sa.String(length=255), nullable=True),
        sa.Column("contact_name", sa.String(length=255), nullable=True),
        sa.Column("legal_name", sa.String(length=255), nullable=True),
        sa.Column("document", sa.String(length=32), nullable=True),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("whatsapp", sa.String(length=32), nullable=True),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("address", sa.String(length=512), nullable=True),
        sa.Column("city", sa.String(length=120), nullable=True),
        sa.Column("state", sa.String(length=2), nullable=True),
        sa.Column("region", sa.String(length=120), nullable=True),
        sa.Column("hectares", sa.Numeric(12, 2), nullable=True),
        sa.Column("crops", sa.JSON(), nullable=False),
        sa.Column("lead_source", sa.String(length=120), nullable=True),
        sa.Column("relationship_status", sa.String(length=20), nullable=False),
        *_timestamps(updated=True),
    )
    op.create_index("ix_clients_seller_id", "clients", ["seller_id"])
    op.create_index("ix_clients_owner_user_id", "clients", ["owner_user_id"])

    op.create_table(
        "opportunities",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("client_id", sa.Uuid(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("seller_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("stage", sa.String(length=16), nullable=False),
        sa.Column("gross_value", sa.Numeric(12, 2), nullable=True),
        sa.Column("estimated_margin", sa.Numeric(6, 2), nullable=True),
        sa.Column("probability", sa.Integer(), nullable=True),
        sa.Column("expected_close_date", sa.Date(), nullable=True),
        sa.Column("product_ids", sa.JSON(), nullable=False),
        sa.Column("loss_reason", sa.Text(), nullable=True),
        sa.Column("history", sa.Text(), nullable=True),
        *_timestamps(updated=True),
    )
    op.create_index("ix_opportunities_client_id", "opportunities", ["client_id"])
    op.create_index("ix_opportunities_seller_id", "opportunities", ["seller_id"])

    op.create_table(
        "visits",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("client_id", sa.Uuid(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("seller_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("objective", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("next_steps", sa.Text(), nullable=True),
        sa.Column("duration_min", sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_visits_client_id", "visits", ["client_id"])
    op.create_index("ix_visits_seller_id", "visits", ["seller_id"])

    op.create_table(
        "services",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("client_id", sa.Uuid(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("owner_user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("service_type", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("hectares", sa.Numeric(12, 2), nullable=True),
        sa.Column("value_per_hectare", sa.Numeric(12, 2), nullable=True),
        sa.Column("fixed_value", sa.Numeric(12, 2), nullable=True),
        sa.Column("total_value", sa.Numeric(12, 2), nullable=True),
        sa.Column("assigned_users", sa.JSON(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(updated=True),
    )
    op.create_index("ix_services_client_id", "services", ["client_id"])
    op.create_index("ix_services_owner_user_id", "services", ["owner_user_id"])

    # -----------------------------------------------------
    # 4) Sales + commissions
    # -----------------------------------------------------
    op.create_table(
        "sales",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("client_id", sa.Uuid(), sa.ForeignKey("clients.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("seller_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("service_id", sa.Uuid(), sa.ForeignKey("services.id", ondelete="SET NULL"), nullable=True),
        sa.Column("gross_value", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_cost", sa.Numeric(12, 2), nullable=False),
        sa.Column("estimated_profit", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("payment_received", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("payment_method_1", sa.String(length=40), nullable=True),
        sa.Column("payment_method_2", sa.String(length=40), nullable=True),
        sa.Column("tax_percent", sa.Numeric(6, 2), nullable=True),
        sa.Column("region", sa.String(length=120), nullable=True),
        sa.Column("sold_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_sales_client_id", "sales", ["client_id"])
    op.create_index("ix_sales_seller_sold_at", "sales", ["seller_id", "sold_at"])
    op.create_index("ix_sales_status", "sales", ["status"])

    op.create_table(
        "sale_items",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("sale_id", sa.Uuid(), sa.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", sa.Uuid(), sa.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("qty", sa.Numeric(12, 3), nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("unit_cost", sa.Numeric(12, 2), nullable=False),
        sa.Column("discount_percent", sa.Numeric(5, 2), nullable=False),
    )
    op.create_index("ix_sale_items_sale_id", "sale_items", ["sale_id"])
    op.create_index("ix_sale_items_product_id", "sale_items", ["product_id"])

    op.create_table(
        "commission_rules",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("base", sa.String(length=20), nullable=False),
        sa.Column("percent", sa.Numeric(6, 2), nullable=False),
        sa.Column("scope", sa.String(length=16), nullable=False),
        sa.Column("category", sa.String(length=120), nullable=True),
        sa.Column("product_id", sa.Uuid(), sa.ForeignKey("products.id", ondelete="CASCADE"), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_commission_rules_product_id", "commission_rules", ["product_id"])
    op.create_index("ix_commission_rules_scope_active", "commission_rules", ["scope", "active"])

    op.create_table(
        "commissions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("sale_id", sa.Uuid(), sa.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False),
        sa.Column("seller_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("rule_id", sa.Uuid(), sa.ForeignKey("commission_rules.id", ondelete="SET NULL"), nullable=True),
        sa.Column("base", sa.String(length=20), nullable=False),
        sa.Column("percent", sa.Numeric(6, 2), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("pay_status", sa.String(length=16), nullable=False),
        sa.Column("pay_status_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("receipt_url", sa.String(length=1024), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("sale_id", name="uq_commissions_sale"),
    )
    op.create_index("ix_commissions_seller_id", "commissions", ["seller_id"])
    op.create_index("ix_commissions_seller_status", "commissions", ["seller_id", "pay_status"])

    # -----------------------------------------------------
    # 5) Goals + notifications
    # -----------------------------------------------------
    op.create_table(
        "goals",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("level", sa.String(length=10), nullable=False),
        sa.Column("seller_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=True),
        sa.Column("period_ym", sa.String(length=7), nullable=False),
        sa.Column("sales_goal", sa.Numeric(12, 2), nullable=True),
        sa.Column("visits_goal", sa.Integer(), nullable=True),
        sa.Column("proposals_goal", sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_goals_seller_id", "goals", ["seller_id"])
    op.create_index("ix_goals_period_ym", "goals", ["period_ym"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("kind", sa.String(length=32), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_timestamps(),
    )
    op.create_index("ix_notifications_user_read", "notifications", ["user_id", "read"])


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("goals")
    op.drop_table("commissions")
    op.drop_table("commission_rules")
    op.drop_table("sale_items")
    op.drop_table("sales")
    op.drop_table("services")
    op.drop_table("visits")
    op.drop_table("opportunities")
    op.drop_table("clients")
    op.drop_table("product_price_history")
    op.drop_table("products")
    op.drop_table("users")
