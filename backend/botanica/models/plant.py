"""
Botanica Backend — Plant SQLAlchemy Model
===========================================

What:  ORM model for the `plants` table: botanical record plus inventory row.
Who:   Used by PlantService / InventoryService and by Alembic.

Column groups:
    - Catalog:     common/scientific name, HTML-bearing description, habitat,
                   care_instructions, featured flag, image_url
    - Botanical:   family, plant_parts_used, uses
    - Categories:  many-to-many via plant_categories; legacy category_id
    - Inventory:   sku, quantity, minimum_stock, unit_price, location, section,
                   supplier, supplier_contact, date_acquired, last_restocked,
                   inventory_notes, status

Invariants:
    quantity >= 0, minimum_stock >= 0 (CHECK constraints in the migration).
    status is written only through services.stock.apply_stock_status; it is a
    cache of derive_stock_status(quantity, minimum_stock).
"""

import uuid
from datetime import date, datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from botanica.database import Base
from botanica.models.category import Category, plant_categories


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Plant(Base):
    """
    A botanical record with its stock attributes.

    Query Patterns:
        - Catalog: ORDER BY common_name with ILIKE filters, OFFSET/LIMIT pages
        - Featured: WHERE is_featured LIMIT 3
        - Dashboard: filtered by status / category, sorted by name, date, quantity
    """

    __tablename__ = "plants"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # ── Catalog ───────────────────────────────────────────────────────────
    common_name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    scientific_name: Mapped[Optional[str]] = mapped_column(String(200))
    description: Mapped[Optional[str]] = mapped_column(Text)
    habitat: Mapped[Optional[str]] = mapped_column(Text)
    care_instructions: Mapped[Optional[str]] = mapped_column(Text)
    is_featured: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    image_url: Mapped[Optional[str]] = mapped_column(String(500))

    # ── Botanical classification ──────────────────────────────────────────
    family: Mapped[Optional[str]] = mapped_column(String(200))
    plant_parts_used: Mapped[Optional[str]] = mapped_column(Text)
    uses: Mapped[Optional[str]] = mapped_column(Text)

    # ── Categories ────────────────────────────────────────────────────────
    # Deprecated: mirrors the first entry of `categories` for older readers
    category_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("categories.id", ondelete="SET NULL")
    )
    categories: Mapped[List[Category]] = relationship(
        secondary=plant_categories,
        lazy="selectin",
        order_by=Category.name,
    )

    # ── Inventory ─────────────────────────────────────────────────────────
    sku: Mapped[Optional[str]] = mapped_column(String(100), unique=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    minimum_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    unit_price: Mapped[Optional[float]] = mapped_column(Numeric(10, 2, asdecimal=False))
    location: Mapped[Optional[str]] = mapped_column(String(200))
    section: Mapped[Optional[str]] = mapped_column(String(200))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="out_of_stock")
    supplier: Mapped[Optional[str]] = mapped_column(String(200))
    supplier_contact: Mapped[Optional[str]] = mapped_column(String(200))
    date_acquired: Mapped[Optional[date]] = mapped_column(Date)
    last_restocked: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    inventory_notes: Mapped[Optional[str]] = mapped_column(Text)

    # ── Timestamps ────────────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="chk_quantity_non_negative"),
        CheckConstraint("minimum_stock >= 0", name="chk_minimum_stock_non_negative"),
        Index("idx_plants_status", "status"),
        Index("idx_plants_family", "family"),
        Index("idx_plants_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return (
            f"<Plant(id={self.id}, common_name='{self.common_name}', "
            f"quantity={self.quantity}, status='{self.status}')>"
        )
