"""
Botanica Backend — Plant Service (Business Logic Orchestrator)
================================================================

What:  Plant CRUD for the admin area plus the public catalog queries.
How:   Composes CategoryService, the stock-status function and the
       inventory ledger around one AsyncSession per call.
Who:   Called by routes/plants.py (public) and routes/admin.py.

Write flow (create / edit):
    ┌────────────┐   ┌────────────┐   ┌─────────────────┐   ┌──────────┐
    │ Text limits│──▶│ Categories │──▶│ plant + junction │──▶│  COMMIT  │
    │ (visible)  │   │ exist?     │   │ + status + ledger│   │          │
    └────────────┘   └────────────┘   └─────────────────┘   └──────────┘

    Everything between the first flush and the commit is one transaction.
    Any database failure rolls it back and is translated by
    translate_database_error() into the exception the client sees.
"""

import logging
import math
import uuid
from datetime import date, datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import Select, asc, desc, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from botanica.config import settings
from botanica.exceptions import NotFoundError, ValidationError
from botanica.models.category import Category
from botanica.models.inventory import InventoryHistory
from botanica.models.plant import Plant
from botanica.schemas.category import CategoryResponse
from botanica.schemas.plant import (
    DashboardPlant,
    DashboardResponse,
    DashboardTotals,
    PlantCreate,
    PlantDetail,
    PlantListResponse,
    PlantSummary,
    PlantUpdate,
    PlantWrite,
    strip_html,
    text_limit_violations,
)
from botanica.services.category_service import category_service
from botanica.services.error_mapping import translate_database_error
from botanica.services.stock import (
    StockStatus,
    apply_stock_status,
    derive_stock_status,
    stock_shortage,
)

logger = logging.getLogger(__name__)

CATALOG_SORTS = {
    "name_asc": (asc(Plant.common_name),),
    "name_desc": (desc(Plant.common_name),),
    "newest": (desc(Plant.created_at), asc(Plant.common_name)),
    "oldest": (asc(Plant.created_at), asc(Plant.common_name)),
}

DASHBOARD_SORTS = {
    "name_asc": (asc(Plant.common_name),),
    "name_desc": (desc(Plant.common_name),),
    "created_desc": (desc(Plant.created_at), asc(Plant.common_name)),
    "created_asc": (asc(Plant.created_at), asc(Plant.common_name)),
    "quantity_desc": (desc(Plant.quantity), asc(Plant.common_name)),
    "quantity_asc": (asc(Plant.quantity), asc(Plant.common_name)),
}

# Columns copied verbatim from the write payload onto the row
_WRITE_FIELDS = (
    "common_name",
    "scientific_name",
    "description",
    "habitat",
    "care_instructions",
    "family",
    "plant_parts_used",
    "uses",
    "is_featured",
    "image_url",
    "sku",
    "quantity",
    "minimum_stock",
    "unit_price",
    "location",
    "section",
    "supplier",
    "supplier_contact",
    "date_acquired",
    "inventory_notes",
)


def _like(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _categories_out(categories: List[Category]) -> List[CategoryResponse]:
    return [CategoryResponse.model_validate(c) for c in categories]


class PlantService:
    """
    Business logic layer for plants.

    Error Handling Strategy:
        Business rule violations raise ValidationError / NotFoundError before
        any write. Database failures during a write roll back the session and
        raise the translated exception (ConflictError for duplicates,
        DatabaseError otherwise).
    """

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get_plant(self, db: AsyncSession, plant_id: uuid.UUID) -> PlantDetail:
        plant = await self._get(db, plant_id)
        categories = await category_service.resolve_for(db, plant)
        return self._to_detail(plant, categories)

    async def list_featured(self, db: AsyncSession) -> List[PlantSummary]:
        stmt = (
            select(Plant)
            .where(Plant.is_featured.is_(True))
            .order_by(desc(Plant.created_at), asc(Plant.common_name))
            .limit(settings.featured_limit)
        )
        plants = list((await db.execute(stmt)).scalars().all())
        return await self._summaries(db, plants)

    async def list_catalog(
        self,
        db: AsyncSession,
        q: Optional[str] = None,
        category: Optional[uuid.UUID] = None,
        family: Optional[str] = None,
        sort: str = "name_asc",
        page: int = 1,
    ) -> PlantListResponse:
        """
        Public, paginated catalog listing.

        Filters:
            q         common OR scientific name, case-insensitive substring
            category  junction rows OR the legacy category_id
            family    case-insensitive equality
        """
        if sort not in CATALOG_SORTS:
            raise ValidationError(
                f"Invalid sort '{sort}'. Must be one of: {', '.join(CATALOG_SORTS)}",
                field="sort",
            )
        page = max(page, 1)
        page_size = settings.catalog_page_size

        stmt = select(Plant)
        if q and q.strip():
            pattern = _like(q.strip())
            stmt = stmt.where(
                or_(
                    Plant.common_name.ilike(pattern, escape="\\"),
                    Plant.scientific_name.ilike(pattern, escape="\\"),
                )
            )
        if category:
            stmt = stmt.where(self._in_category(category))
        if family and family.strip():
            stmt = stmt.where(func.lower(Plant.family) == family.strip().lower())

        total = await self._count(db, stmt)
        stmt = (
            stmt.order_by(*CATALOG_SORTS[sort])
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        plants = list((await db.execute(stmt)).scalars().all())

        return PlantListResponse(
            plants=await self._summaries(db, plants),
            total_count=total,
            page=page,
            page_size=page_size,
            total_pages=math.ceil(total / page_size),
        )

    async def dashboard(
        self,
        db: AsyncSession,
        search: Optional[str] = None,
        category: Optional[uuid.UUID] = None,
        status: Optional[StockStatus] = None,
        sort: str = "created_desc",
    ) -> DashboardResponse:
        """
        Admin table: filtered/sorted rows plus totals over ALL plants.

        Totals are folded from derive_stock_status() over every plant, so the
        low-stock card follows each plant's own minimum_stock.
        """
        if sort not in DASHBOARD_SORTS:
            raise ValidationError(
                f"Invalid sort '{sort}'. Must be one of: {', '.join(DASHBOARD_SORTS)}",
                field="sort",
            )

        stmt = select(Plant)
        if search and search.strip():
            pattern = _like(search.strip())
            stmt = stmt.where(
                or_(
                    Plant.common_name.ilike(pattern, escape="\\"),
                    Plant.scientific_name.ilike(pattern, escape="\\"),
                    Plant.sku.ilike(pattern, escape="\\"),
                )
            )
        if category:
            stmt = stmt.where(self._in_category(category))
        if status:
            stmt = stmt.where(Plant.status == StockStatus(status).value)
        plants = list((await db.execute(stmt.order_by(*DASHBOARD_SORTS[sort]))).scalars().all())

        resolved = await category_service.resolve_many(db, plants)
        rows = []
        for plant in plants:
            derived = derive_stock_status(plant.quantity, plant.minimum_stock)
            rows.append(
                DashboardPlant(
                    id=plant.id,
                    common_name=plant.common_name,
                    scientific_name=plant.scientific_name,
                    sku=plant.sku,
                    categories=_categories_out(resolved[plant.id]),
                    quantity=plant.quantity,
                    minimum_stock=plant.minimum_stock,
                    shortage=stock_shortage(plant.quantity, plant.minimum_stock),
                    status=derived.value,
                    status_label=derived.label,
                    location=plant.location,
                    is_featured=plant.is_featured,
                    image_url=plant.image_url,
                    created_at=plant.created_at,
                )
            )
        return DashboardResponse(plants=rows, totals=await self._totals(db))

    # ── Writes ────────────────────────────────────────────────────────────

    async def create_plant(
        self, db: AsyncSession, payload: PlantCreate, actor: str
    ) -> PlantDetail:
        """
        Insert a plant, its category links and its 'initial' ledger entry atomically.

        Raises:
            ValidationError:  text over its visible limit, unknown category
            ConflictError:    duplicate common name or SKU
            DatabaseError:    any other persistence failure
        """
        self._check_text_limits(payload)
        categories = await category_service.load_selected(db, payload.category_ids)

        plant = Plant(id=uuid.uuid4(), created_at=_utcnow())
        self._assign(plant, payload, categories)
        if plant.date_acquired is None:
            plant.date_acquired = date.today()
        if plant.quantity > 0:
            plant.last_restocked = plant.created_at
        status = apply_stock_status(plant)

        db.add(plant)
        # No ORM relationship orders the ledger insert after the plant insert
        await self._flush(db)
        db.add(
            InventoryHistory(
                plant_id=plant.id,
                change_type="initial",
                quantity_before=0,
                quantity_after=plant.quantity,
                quantity_change=plant.quantity,
                reason="Initial stock",
                changed_by=actor,
            )
        )
        await self._commit(db)
        logger.info(
            "Plant created: %s '%s' qty=%d status=%s by %s",
            plant.id, plant.common_name, plant.quantity, status.value, actor,
        )
        return self._to_detail(plant, categories)

    async def update_plant(
        self, db: AsyncSession, plant_id: uuid.UUID, payload: PlantUpdate, actor: str
    ) -> Tuple[PlantDetail, Optional[str]]:
        """
        Replace a plant's editable fields; recompute status; ledger any quantity change.

        Returns:
            (updated detail, previous image_url if the image was replaced or removed)
        """
        plant = await self._get(db, plant_id)
        self._check_text_limits(payload)
        categories = await category_service.load_selected(db, payload.category_ids)

        quantity_before = plant.quantity
        previous_image = plant.image_url

        self._assign(plant, payload, categories)
        if payload.date_acquired is None:
            plant.date_acquired = plant.date_acquired or date.today()
        plant.updated_at = _utcnow()
        status = apply_stock_status(plant)

        if plant.quantity != quantity_before:
            db.add(
                InventoryHistory(
                    plant_id=plant.id,
                    change_type="adjustment",
                    quantity_before=quantity_before,
                    quantity_after=plant.quantity,
                    quantity_change=plant.quantity - quantity_before,
                    reason=payload.change_reason or "Edited in dashboard",
                    changed_by=actor,
                )
            )
        await self._commit(db)
        logger.info(
            "Plant updated: %s qty %d→%d status=%s by %s",
            plant.id, quantity_before, plant.quantity, status.value, actor,
        )

        replaced = previous_image if previous_image and previous_image != plant.image_url else None
        return self._to_detail(plant, categories), replaced

    async def delete_plant(self, db: AsyncSession, plant_id: uuid.UUID, actor: str) -> Optional[str]:
        """Delete a plant (junction rows and ledger cascade). Returns its image_url."""
        plant = await self._get(db, plant_id)
        image_url = plant.image_url
        name = plant.common_name
        await db.delete(plant)
        await self._commit(db)
        logger.info("Plant deleted: %s '%s' by %s", plant_id, name, actor)
        return image_url

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _get(self, db: AsyncSession, plant_id: uuid.UUID) -> Plant:
        plant = await db.get(Plant, plant_id)
        if plant is None:
            raise NotFoundError(resource="Plant", resource_id=str(plant_id))
        return plant

    async def _flush(self, db: AsyncSession) -> None:
        try:
            await db.flush()
        except SQLAlchemyError as e:
            await db.rollback()
            raise translate_database_error(e)

    async def _commit(self, db: AsyncSession) -> None:
        try:
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise translate_database_error(e)

    @staticmethod
    def _check_text_limits(payload: PlantWrite) -> None:
        violations = text_limit_violations(payload.model_dump(include=set(_WRITE_FIELDS)))
        if violations:
            raise ValidationError(
                message=". ".join(violations) + ". Please shorten the text.",
                context={"violations": violations},
            )

    @staticmethod
    def _assign(plant: Plant, payload: PlantWrite, categories: List[Category]) -> None:
        for field in _WRITE_FIELDS:
            setattr(plant, field, getattr(payload, field))
        plant.categories = list(categories)
        # Legacy column mirrors the first selection
        plant.category_id = categories[0].id if categories else None

    @staticmethod
    def _in_category(category_id: uuid.UUID):
        return or_(
            Plant.categories.any(Category.id == category_id),
            Plant.category_id == category_id,
        )

    @staticmethod
    async def _count(db: AsyncSession, stmt: Select) -> int:
        count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
        return (await db.execute(count_stmt)).scalar_one()

    async def _totals(self, db: AsyncSession) -> DashboardTotals:
        result = await db.execute(select(Plant.quantity, Plant.minimum_stock, Plant.is_featured))
        totals = DashboardTotals()
        for quantity, minimum_stock, is_featured in result.all():
            totals.total_plants += 1
            totals.total_quantity += quantity
            if is_featured:
                totals.featured += 1
            status = derive_stock_status(quantity, minimum_stock)
            if status is StockStatus.LOW_STOCK:
                totals.low_stock += 1
            elif status is StockStatus.OUT_OF_STOCK:
                totals.out_of_stock += 1
        return totals

    async def _summaries(self, db: AsyncSession, plants: List[Plant]) -> List[PlantSummary]:
        resolved = await category_service.resolve_many(db, plants)
        summaries = []
        for plant in plants:
            status = derive_stock_status(plant.quantity, plant.minimum_stock)
            summaries.append(
                PlantSummary(
                    id=plant.id,
                    common_name=plant.common_name,
                    scientific_name=plant.scientific_name,
                    family=plant.family,
                    description_text=strip_html(plant.description).strip(),
                    image_url=plant.image_url,
                    is_featured=plant.is_featured,
                    categories=_categories_out(resolved[plant.id]),
                    status=status.value,
                    status_label=status.label,
                )
            )
        return summaries

    @staticmethod
    def _to_detail(plant: Plant, categories: List[Category]) -> PlantDetail:
        status = derive_stock_status(plant.quantity, plant.minimum_stock)
        return PlantDetail(
            id=plant.id,
            common_name=plant.common_name,
            scientific_name=plant.scientific_name,
            description=plant.description,
            habitat=plant.habitat,
            care_instructions=plant.care_instructions,
            family=plant.family,
            plant_parts_used=plant.plant_parts_used,
            uses=plant.uses,
            categories=_categories_out(categories),
            category_id=plant.category_id,
            is_featured=plant.is_featured,
            image_url=plant.image_url,
            sku=plant.sku,
            quantity=plant.quantity,
            minimum_stock=plant.minimum_stock,
            unit_price=plant.unit_price,
            location=plant.location,
            section=plant.section,
            supplier=plant.supplier,
            supplier_contact=plant.supplier_contact,
            date_acquired=plant.date_acquired,
            last_restocked=plant.last_restocked,
            inventory_notes=plant.inventory_notes,
            status=status.value,
            status_label=status.label,
            shortage=stock_shortage(plant.quantity, plant.minimum_stock),
            created_at=plant.created_at,
            updated_at=plant.updated_at,
        )


plant_service = PlantService()
