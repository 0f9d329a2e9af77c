"""
Botanica Backend — Inventory History Model
============================================

Append-only ledger of stock movements. Every quantity change made through
the API writes one row in the same transaction as the change itself:

    create          → change_type 'initial'
    edit            → change_type 'adjustment' (only when quantity differs)
    adjust endpoint → the caller's change_type

Rows are never updated or deleted by the application.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from botanica.database import Base

CHANGE_TYPES = ("restock", "sale", "adjustment", "loss", "transfer", "initial")


class InventoryHistory(Base):
    __tablename__ = "inventory_history"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    plant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("plants.id", ondelete="CASCADE"), nullable=False
    )
    change_type: Mapped[str] = mapped_column(String(20), nullable=False)
    quantity_before: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_after: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_change: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text)
    reference_number: Mapped[Optional[str]] = mapped_column(String(100))
    changed_by: Mapped[str] = mapped_column(String(255), nullable=False)
    changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    # "metadata" is reserved on declarative classes
    extra: Mapped[Optional[Dict[str, Any]]] = mapped_column("metadata", JSON)

    __table_args__ = (
        Index("idx_inventory_history_plant", "plant_id", "changed_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<InventoryHistory(plant_id={self.plant_id}, type='{self.change_type}', "
            f"{self.quantity_before}->{self.quantity_after})>"
        )
