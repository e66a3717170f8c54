"""Initial schema: businesses, products_master, business_inventory, activities

Revision ID: 20261019_initial_inventory
Revises:
Create Date: 2026-10-19 10:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_initial_inventory"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "businesses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_businesses_name"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "products_master",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("codes_asociados", sa.JSON(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("default_purchase_cents", sa.Integer(), nullable=False),
        sa.Column("margin_bps", sa.Integer(), nullable=False),
        sa.Column("default_selling_cents", sa.Integer(), nullable=False),
        sa.Column("entry_manual", sa.Boolean(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_products_master_name", "products_master", ["name"], unique=False)
    op.create_index("ix_products_master_code", "products_master", ["code"], unique=False)
    op.create_index("ix_products_master_deleted_at", "products_master", ["deleted_at"], unique=False)

    op.create_table(
        "business_inventory",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("business_id", sa.Integer(), nullable=False),
        sa.Column("stock", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.ForeignKeyConstraint(["product_id"], ["products_master.id"]),
        sa.ForeignKeyConstraint(["business_id"], ["businesses.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("product_id", "business_id", name="uq_business_inventory_product_business"),
        sa.CheckConstraint("stock >= 0", name="ck_business_inventory_stock_non_negative"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_business_inventory_product_id", "business_inventory", ["product_id"], unique=False)
    op.create_index("ix_business_inventory_business", "business_inventory", ["business_id"], unique=False)

    op.create_table(
        "activities",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("business_id", sa.Integer(), nullable=True),
        sa.Column("product_id", sa.Integer(), nullable=True),
        sa.Column("details", sa.Text(), nullable=False),
        sa.Column("reason", sa.String(length=16), nullable=False),
        sa.Column("lost_cash_cents", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.ForeignKeyConstraint(["business_id"], ["businesses.id"]),
        sa.ForeignKeyConstraint(["product_id"], ["products_master.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_activities_product_id", "activities", ["product_id"], unique=False)
    op.create_index("ix_activities_business_created", "activities", ["business_id", "created_at"], unique=False)
    op.create_index("ix_activities_reason_created", "activities", ["reason", "created_at"], unique=False)


def downgrade():
    op.drop_index("ix_activities_reason_created", table_name="activities")
    op.drop_index("ix_activities_business_created", table_name="activities")
    op.drop_index("ix_activities_product_id", table_name="activities")
    op.drop_table("activities")

    op.drop_index("ix_business_inventory_business", table_name="business_inventory")
    op.drop_index("ix_business_inventory_product_id", table_name="business_inventory")
    op.drop_table("business_inventory")

    op.drop_index("ix_products_master_deleted_at", table_name="products_master")
    op.drop_index("ix_products_master_code", table_name="products_master")
    op.drop_index("ix_products_master_name", table_name="products_master")
    op.drop_table("products_master")

    op.drop_table("businesses")
