"""
Botanica Backend — Category Service
=====================================

What:  Category listing/creation and plant → category resolution.
Who:   Category routes, PlantService and InventoryService.

Resolution rule (junction first, legacy second):
    plant has plant_categories rows  → those categories
    else plant.category_id is set    → that single legacy category
    else                             → no categories
"""

import logging
import uuid
from typing import Dict, Iterable, List, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from botanica.exceptions import ValidationError
from botanica.models.category import Category
from botanica.models.plant import Plant
from botanica.schemas.category import CategoryCreate, CategoryResponse
from botanica.services.error_mapping import translate_database_error

logger = logging.getLogger(__name__)


class CategoryService:

    async def list_categories(self, db: AsyncSession) -> List[CategoryResponse]:
        result = await db.execute(select(Category).order_by(Category.name))
        return [CategoryResponse.model_validate(c) for c in result.scalars().all()]

    async def create_category(self, db: AsyncSession, payload: CategoryCreate) -> CategoryResponse:
        category = Category(name=payload.name)
        db.add(category)
        try:
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise translate_database_error(e, entity="category")
        logger.info("Category created: %s (%s)", category.name, category.id)
        return CategoryResponse.model_validate(category)

    async def load_selected(self, db: AsyncSession, ids: Sequence[uuid.UUID]) -> List[Category]:
        """
        Fetch the categories a plant form selected, in selection order.

        Raises:
            ValidationError: one or more ids do not exist
        """
        if not ids:
            return []
        result = await db.execute(select(Category).where(Category.id.in_(ids)))
        found = {c.id: c for c in result.scalars().all()}
        missing = [str(i) for i in ids if i not in found]
        if missing:
            raise ValidationError(
                message="One or more selected categories do not exist.",
                field="category_ids",
                context={"missing": missing},
            )
        return [found[i] for i in ids]

    async def resolve_for(self, db: AsyncSession, plant: Plant) -> List[Category]:
        resolved = await self.resolve_many(db, [plant])
        return resolved[plant.id]

    async def resolve_many(
        self, db: AsyncSession, plants: Iterable[Plant]
    ) -> Dict[uuid.UUID, List[Category]]:
        """Categories per plant id, with one extra query for all legacy-only plants."""
        plants = list(plants)
        resolved: Dict[uuid.UUID, List[Category]] = {}
        legacy_ids = set()
        for plant in plants:
            if plant.categories:
                resolved[plant.id] = list(plant.categories)
            else:
                resolved[plant.id] = []
                if plant.category_id:
                    legacy_ids.add(plant.category_id)

        if legacy_ids:
            result = await db.execute(select(Category).where(Category.id.in_(legacy_ids)))
            legacy = {c.id: c for c in result.scalars().all()}
            for plant in plants:
                if not resolved[plant.id] and plant.category_id in legacy:
                    resolved[plant.id] = [legacy[plant.category_id]]
        return resolved


category_service = CategoryService()
