from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "0001_create_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name: str = "created_at") -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def upgrade() -> None:
    op.create_table(
        "restaurants",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("slug", sa.String(140), nullable=False),
        sa.Column("city", sa.String(80)),
        sa.Column("theme_color", sa.String(30)),
        sa.Column("secondary_color", sa.String(30)),
        sa.Column("font", sa.String(40)),
        sa.Column("hero_image_url", sa.Text()),
        sa.Column("hero_title", sa.String(160)),
        sa.Column("hero_subtitle", sa.String(255)),
        sa.Column("about_us", sa.Text()),
        sa.Column("address", sa.Text()),
        sa.Column("phone_number", sa.String(30)),
        sa.Column("whatsapp_number", sa.String(30)),
        sa.Column("opening_hours", sa.String(120)),
        sa.Column("google_maps_url", sa.Text()),
        sa.Column("upi_id", sa.String(80)),
        sa.Column("is_accepting_orders", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("total_tables", sa.Integer(), nullable=False, server_default="0"),
        _timestamp(),
    )
    op.create_index("ix_restaurants_owner_id", "restaurants", ["owner_id"], unique=True)
    op.create_index("ix_restaurants_slug", "restaurants", ["slug"], unique=True)

    op.create_table(
        "menu_items",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("restaurant_id", sa.String(36), sa.ForeignKey("restaurants.id"), nullable=False),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("category", sa.String(80)),
        sa.Column("is_veg", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("image_url", sa.Text()),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp(),
    )
    op.create_index("ix_menu_items_restaurant_id", "menu_items", ["restaurant_id"])
    op.create_index("ix_menu_items_restaurant_category", "menu_items", ["restaurant_id", "category"])

    op.create_table(
        "inventory_items",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("restaurant_id", sa.String(36), sa.ForeignKey("restaurants.id"), nullable=False),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("unit", sa.String(20), nullable=False, server_default="pcs"),
        sa.Column("current_stock", sa.Float(), nullable=False, server_default="0"),
        sa.Column("cost_per_unit", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("min_stock_alert", sa.Float(), nullable=False, server_default="1"),
        _timestamp(),
        _timestamp("updated_at"),
    )
    op.create_index("ix_inventory_items_restaurant_id", "inventory_items", ["restaurant_id"])

    op.create_table(
        "recipe_items",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("restaurant_id", sa.String(36), sa.ForeignKey("restaurants.id"), nullable=False),
        sa.Column("menu_item_id", sa.String(36), sa.ForeignKey("menu_items.id"), nullable=False),
        sa.Column("inventory_item_id", sa.String(36), sa.ForeignKey("inventory_items.id"), nullable=False),
        sa.Column("quantity", sa.Float(), nullable=False),
        _timestamp(),
    )
    op.create_index("ix_recipe_items_restaurant_id", "recipe_items", ["restaurant_id"])
    op.create_index("ix_recipe_items_menu_item_id", "recipe_items", ["menu_item_id"])
    op.create_index("ix_recipe_items_inventory_item_id", "recipe_items", ["inventory_item_id"])

    op.create_table(
        "orders",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("restaurant_id", sa.String(36), sa.ForeignKey("restaurants.id"), nullable=False),
        sa.Column("customer_name", sa.String(120), nullable=False, server_default=""),
        sa.Column("customer_phone", sa.String(30), nullable=False, server_default=""),
        sa.Column("customer_address", sa.Text(), nullable=False, server_default=""),
        sa.Column("latitude", sa.Float()),
        sa.Column("longitude", sa.Float()),
        sa.Column("order_details", postgresql.JSONB().with_variant(sa.JSON(), "sqlite"), nullable=False),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("payment_method", sa.String(10), nullable=False, server_default="COD"),
        sa.Column("order_type", sa.String(20), nullable=False, server_default="DELIVERY"),
        sa.Column("table_number", sa.Integer()),
        _timestamp(),
    )
    op.create_index("ix_orders_restaurant_id", "orders", ["restaurant_id"])
    op.create_index("ix_orders_restaurant_created", "orders", ["restaurant_id", "created_at"])

    op.create_table(
        "reviews",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("restaurant_id", sa.String(36), sa.ForeignKey("restaurants.id"), nullable=False),
        sa.Column("customer_name", sa.String(120), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text()),
        sa.Column("is_visible", sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp(),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating_range"),
    )
    op.create_index("ix_reviews_restaurant_id", "reviews", ["restaurant_id"])


def downgrade() -> None:
    for table in ("reviews", "orders", "recipe_items", "inventory_items", "menu_items", "restaurants"):
        op.drop_table(table)
