"""
Botanica Backend — Category Model and Plant/Category Junction Table
=====================================================================

Categories relate to plants many-to-many through `plant_categories`.
The deprecated single-valued `plants.category_id` column still exists for
rows written before the junction table; see PlantService.resolve_categories.
"""

import uuid

from sqlalchemy import Column, ForeignKey, String, Table, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from botanica.database import Base

plant_categories = Table(
    "plant_categories",
    Base.metadata,
    Column("plant_id", Uuid, ForeignKey("plants.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", Uuid, ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
)


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name='{self.name}')>"
