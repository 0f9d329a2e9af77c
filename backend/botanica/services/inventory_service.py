"""
Botanica Backend — Inventory Service
======================================

What:  Typed stock movements and the reports built on plant quantities.
Who:   routes/admin.py (inventory endpoints).

Adjustment (one transaction):
    SELECT plant FOR UPDATE → quantity += change → reject if < 0
    → apply_stock_status → ledger row → COMMIT

Reports are computed from live rows with derive_stock_status(), never from
a separately maintained aggregate.
"""

import logging
import uuid
from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, List

from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from botanica.exceptions import NotFoundError, ValidationError
from botanica.models.inventory import InventoryHistory
from botanica.models.plant import Plant
from botanica.schemas.inventory import (
    InventoryAdjustment,
    InventoryAdjustmentResponse,
    InventoryHistoryEntry,
    InventoryReport,
    InventoryStats,
    InventorySummary,
    LowStockPlant,
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

UNCATEGORIZED = "Uncategorized"


class InventoryService:

    async def adjust(
        self,
        db: AsyncSession,
        plant_id: uuid.UUID,
        adjustment: InventoryAdjustment,
        actor: str,
    ) -> InventoryAdjustmentResponse:
        """
        Apply a signed quantity change and record it in the ledger.

        Raises:
            NotFoundError:    no such plant
            ValidationError:  the change would take quantity below zero
        """
        result = await db.execute(select(Plant).where(Plant.id == plant_id).with_for_update())
        plant = result.scalar_one_or_none()
        if plant is None:
            raise NotFoundError(resource="Plant", resource_id=str(plant_id))

        before = plant.quantity
        after = before + adjustment.quantity_change
        if after < 0:
            raise ValidationError(
                message=(
                    f"Cannot remove {-adjustment.quantity_change} units; "
                    f"only {before} in stock."
                ),
                field="quantity_change",
            )

        now = datetime.now(timezone.utc)
        plant.quantity = after
        plant.updated_at = now
        if adjustment.change_type == "restock":
            plant.last_restocked = now
        status = apply_stock_status(plant)

        entry = InventoryHistory(
            plant_id=plant.id,
            change_type=adjustment.change_type,
            quantity_before=before,
            quantity_after=after,
            quantity_change=adjustment.quantity_change,
            reason=adjustment.reason,
            reference_number=adjustment.reference_number,
            changed_by=actor,
            changed_at=now,
            extra=adjustment.metadata,
        )
        db.add(entry)
        try:
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise translate_database_error(e)

        logger.info(
            "Inventory %s on %s: %d→%d (%s) by %s",
            adjustment.change_type, plant.id, before, after, status.value, actor,
        )
        return InventoryAdjustmentResponse(
            message=f"Stock updated: {before} → {after}",
            entry=InventoryHistoryEntry.model_validate(entry),
            status=status.value,
            status_label=status.label,
        )

    async def history(
        self, db: AsyncSession, plant_id: uuid.UUID, limit: int = 50
    ) -> List[InventoryHistoryEntry]:
        if await db.get(Plant, plant_id) is None:
            raise NotFoundError(resource="Plant", resource_id=str(plant_id))
        result = await db.execute(
            select(InventoryHistory)
            .where(InventoryHistory.plant_id == plant_id)
            .order_by(desc(InventoryHistory.changed_at))
            .limit(limit)
        )
        return [InventoryHistoryEntry.model_validate(e) for e in result.scalars().all()]

    async def low_stock(self, db: AsyncSession) -> List[LowStockPlant]:
        """Plants at or below their reorder threshold, largest shortage first."""
        result = await db.execute(select(Plant).where(Plant.quantity <= Plant.minimum_stock))
        plants = list(result.scalars().all())
        resolved = await category_service.resolve_many(db, plants)

        rows = []
        for plant in plants:
            status = derive_stock_status(plant.quantity, plant.minimum_stock)
            if status is StockStatus.AVAILABLE:
                continue
            categories = resolved[plant.id]
            rows.append(
                LowStockPlant(
                    id=plant.id,
                    sku=plant.sku,
                    common_name=plant.common_name,
                    scientific_name=plant.scientific_name,
                    quantity=plant.quantity,
                    minimum_stock=plant.minimum_stock,
                    shortage=stock_shortage(plant.quantity, plant.minimum_stock),
                    location=plant.location,
                    status=status.value,
                    supplier=plant.supplier,
                    last_restocked=plant.last_restocked,
                    category_name=categories[0].name if categories else None,
                )
            )
        rows.sort(key=lambda r: (-r.shortage, r.common_name))
        return rows

    async def stats(self, db: AsyncSession) -> InventoryStats:
        result = await db.execute(
            select(Plant.quantity, Plant.minimum_stock, Plant.unit_price, Plant.location)
        )
        stats = InventoryStats()
        locations = set()
        for quantity, minimum_stock, unit_price, location in result.all():
            stats.total_plants += 1
            stats.total_quantity += quantity
            stats.total_value += quantity * (unit_price or 0.0)
            if location:
                locations.add(location.strip().lower())
            status = derive_stock_status(quantity, minimum_stock)
            if status is StockStatus.AVAILABLE:
                stats.available_count += 1
            elif status is StockStatus.LOW_STOCK:
                stats.low_stock_count += 1
            else:
                stats.out_of_stock_count += 1
        stats.total_value = round(stats.total_value, 2)
        stats.unique_locations = len(locations)
        return stats

    async def summary(self, db: AsyncSession) -> List[InventorySummary]:
        """Per-category totals. A plant in several categories counts in each."""
        plants = list((await db.execute(select(Plant))).scalars().all())
        resolved = await category_service.resolve_many(db, plants)

        buckets: Dict[str, InventorySummary] = defaultdict(lambda: InventorySummary(category_name=""))
        for plant in plants:
            names = [c.name for c in resolved[plant.id]] or [UNCATEGORIZED]
            status = derive_stock_status(plant.quantity, plant.minimum_stock)
            for name in names:
                bucket = buckets[name]
                bucket.category_name = name
                bucket.total_plants += 1
                bucket.total_quantity += plant.quantity
                bucket.total_inventory_value += plant.quantity * (plant.unit_price or 0.0)
                if status is StockStatus.AVAILABLE:
                    bucket.available_quantity += plant.quantity
                elif status is StockStatus.LOW_STOCK:
                    bucket.low_stock_count += 1
                else:
                    bucket.out_of_stock_count += 1

        for bucket in buckets.values():
            bucket.total_inventory_value = round(bucket.total_inventory_value, 2)
        return sorted(buckets.values(), key=lambda s: s.category_name)

    async def report(self, db: AsyncSession) -> InventoryReport:
        return InventoryReport(
            stats=await self.stats(db),
            summary=await self.summary(db),
            low_stock=await self.low_stock(db),
        )


inventory_service = InventoryService()
