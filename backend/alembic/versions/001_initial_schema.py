"""Initial plant inventory schema

Revision ID: 001
Revises: None
Create Date: 2024-03-01 00:00:00.000000+00:00

Tables:
    categories         Category names (unique)
    plants             Botanical record + stock row
    plant_categories   Plant <-> category junction
    inventory_history  Append-only stock ledger
    users              Admin allow-list (role = 'admin')

Length constraints:
    Rich-text columns store HTML, so the database limits are on the raw
    markup and sit well above the visible-character limits the API enforces.
    A violation surfaces as "<field> is too long" (services.error_mapping).

Rollback: downgrade() drops every table (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Raw (markup-inclusive) character limits
RAW_TEXT_LIMITS = {
    "description": 20000,
    "habitat": 8000,
    "care_instructions": 12000,
    "inventory_notes": 4000,
    "plant_parts_used": 2000,
    "uses": 8000,
}


def upgrade() -> None:
    op.create_table(
        "categories",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_categories_name"),
    )

    length_checks = [
        sa.CheckConstraint(f"length({column}) <= {limit}", name=f"chk_{column}_length")
        for column, limit in RAW_TEXT_LIMITS.items()
    ]

    op.create_table(
        "plants",
        sa.Column("id", sa.Uuid(), nullable=False),

        # Catalog
        sa.Column("common_name", sa.String(200), nullable=False),
        sa.Column("scientific_name", sa.String(200), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("habitat", sa.Text(), nullable=True),
        sa.Column("care_instructions", sa.Text(), nullable=True),
        sa.Column("is_featured", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("image_url", sa.String(500), nullable=True),

        # Botanical classification
        sa.Column("family", sa.String(200), nullable=True),
        sa.Column("plant_parts_used", sa.Text(), nullable=True),
        sa.Column("uses", sa.Text(), nullable=True),

        # Deprecated single category; superseded by plant_categories
        sa.Column("category_id", sa.Uuid(), nullable=True),

        # Inventory
        sa.Column("sku", sa.String(100), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("minimum_stock", sa.Integer(), nullable=False, server_default=sa.text("5")),
        sa.Column("unit_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("location", sa.String(200), nullable=True),
        sa.Column("section", sa.String(200), nullable=True),
        sa.Column(
            "status",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'out_of_stock'"),
            comment="Cached derive_stock_status(quantity, minimum_stock)",
        ),
        sa.Column("supplier", sa.String(200), nullable=True),
        sa.Column("supplier_contact", sa.String(200), nullable=True),
        sa.Column("date_acquired", sa.Date(), nullable=True),
        sa.Column("last_restocked", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("inventory_notes", sa.Text(), nullable=True),

        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=True),

        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("common_name", name="uq_plants_common_name"),
        sa.UniqueConstraint("sku", name="uq_plants_sku"),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"], ondelete="SET NULL"),
        sa.CheckConstraint("quantity >= 0", name="chk_quantity_non_negative"),
        sa.CheckConstraint("minimum_stock >= 0", name="chk_minimum_stock_non_negative"),
        *length_checks,
    )
    op.create_index("idx_plants_status", "plants", ["status"])
    op.create_index("idx_plants_family", "plants", ["family"])
    op.create_index("idx_plants_created_at", "plants", [sa.text("created_at DESC")])

    op.create_table(
        "plant_categories",
        sa.Column("plant_id", sa.Uuid(), nullable=False),
        sa.Column("category_id", sa.Uuid(), nullable=False),
        sa.PrimaryKeyConstraint("plant_id", "category_id"),
        sa.ForeignKeyConstraint(["plant_id"], ["plants.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"], ondelete="CASCADE"),
    )

    op.create_table(
        "inventory_history",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("plant_id", sa.Uuid(), nullable=False),
        sa.Column("change_type", sa.String(20), nullable=False),
        sa.Column("quantity_before", sa.Integer(), nullable=False),
        sa.Column("quantity_after", sa.Integer(), nullable=False),
        sa.Column("quantity_change", sa.Integer(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("reference_number", sa.String(100), nullable=True),
        sa.Column("changed_by", sa.String(255), nullable=False),
        sa.Column(
            "changed_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["plant_id"], ["plants.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "change_type IN ('restock', 'sale', 'adjustment', 'loss', 'transfer', 'initial')",
            name="chk_inventory_change_type",
        ),
    )
    op.create_index(
        "idx_inventory_history_plant", "inventory_history", ["plant_id", "changed_at"]
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("role", sa.String(50), nullable=False, server_default=sa.text("'viewer'")),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"])


def downgrade() -> None:
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
    op.drop_index("idx_inventory_history_plant", table_name="inventory_history")
    op.drop_table("inventory_history")
    op.drop_table("plant_categories")
    op.drop_index("idx_plants_created_at", table_name="plants")
    op.drop_index("idx_plants_family", table_name="plants")
    op.drop_index("idx_plants_status", table_name="plants")
    op.drop_table("plants")
    op.drop_table("categories")
