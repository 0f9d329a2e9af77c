"""
Botanica Backend — Admin Routes
=================================

What:  Dashboard, plant CRUD, category creation and inventory operations.
Who:   Signed-in administrators only: every route depends on require_admin,
       which re-checks the `users` table per request.

Image cleanup:
    Deleting a plant, or replacing/removing its image, schedules removal of
    the old object as a background task once the database write committed.
"""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from botanica.auth import require_admin
from botanica.database import get_db_session
from botanica.schemas.category import CategoryCreate, CategoryResponse
from botanica.schemas.common import ErrorResponse, MessageResponse
from botanica.schemas.inventory import (
    InventoryAdjustment,
    InventoryAdjustmentResponse,
    InventoryHistoryEntry,
    InventoryReport,
)
from botanica.schemas.plant import (
    DashboardResponse,
    PlantCreate,
    PlantDetail,
    PlantUpdate,
    PlantWriteResponse,
)
from botanica.services.category_service import category_service
from botanica.services.image_service import image_service
from botanica.services.inventory_service import inventory_service
from botanica.services.plant_service import plant_service
from botanica.services.session_context import Session
from botanica.services.stock import StockStatus

logger = logging.getLogger(__name__)

_AUTH_RESPONSES = {
    401: {"description": "Not signed in", "model": ErrorResponse},
    403: {"description": "Not an administrator", "model": ErrorResponse},
}

router = APIRouter(prefix="/api/admin", tags=["Admin"], responses=_AUTH_RESPONSES)


# ══════════════════════════════════════════════════════════════════════════
# Dashboard
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "/dashboard",
    response_model=DashboardResponse,
    summary="Admin plant table with totals",
    description=(
        "Search matches common name, scientific name and SKU. Totals cover all "
        "plants regardless of filters."
    ),
)
async def dashboard(
    search: str | None = Query(default=None, max_length=200),
    category: UUID | None = Query(default=None),
    status: StockStatus | None = Query(default=None),
    sort: str = Query(
        default="created_desc",
        description="name_asc, name_desc, created_desc, created_asc, quantity_desc or quantity_asc",
    ),
    db: AsyncSession = Depends(get_db_session),
    admin: Session = Depends(require_admin),
) -> DashboardResponse:
    return await plant_service.dashboard(
        db, search=search, category=category, status=status, sort=sort
    )


# ══════════════════════════════════════════════════════════════════════════
# Plants
# ══════════════════════════════════════════════════════════════════════════


@router.post(
    "/plants",
    status_code=201,
    response_model=PlantWriteResponse,
    responses={
        400: {"description": "Text too long or unknown category", "model": ErrorResponse},
        409: {"description": "Duplicate name or SKU", "model": ErrorResponse},
    },
    summary="Create a plant",
)
async def create_plant(
    payload: PlantCreate,
    db: AsyncSession = Depends(get_db_session),
    admin: Session = Depends(require_admin),
) -> PlantWriteResponse:
    plant = await plant_service.create_plant(db, payload, actor=admin.email)
    return PlantWriteResponse(message="Plant created successfully.", plant=plant)


@router.get(
    "/plants/{plant_id}",
    response_model=PlantDetail,
    responses={404: {"description": "Plant not found", "model": ErrorResponse}},
    summary="Load a plant for editing",
)
async def get_plant(
    plant_id: UUID,
    db: AsyncSession = Depends(get_db_session),
    admin: Session = Depends(require_admin),
) -> PlantDetail:
    return await plant_service.get_plant(db, plant_id)


@router.put(
    "/plants/{plant_id}",
    response_model=PlantWriteResponse,
    responses={
        400: {"description": "Text too long or unknown category", "model": ErrorResponse},
        404: {"description": "Plant not found", "model": ErrorResponse},
        409: {"description": "Duplicate name or SKU", "model": ErrorResponse},
    },
    summary="Update a plant",
)
async def update_plant(
    plant_id: UUID,
    payload: PlantUpdate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db_session),
    admin: Session = Depends(require_admin),
) -> PlantWriteResponse:
    plant, replaced_image = await plant_service.update_plant(db, plant_id, payload, actor=admin.email)
    if replaced_image:
        background_tasks.add_task(image_service.delete_by_url, replaced_image)
    return PlantWriteResponse(message="Plant updated successfully.", plant=plant)


@router.delete(
    "/plants/{plant_id}",
    response_model=MessageResponse,
    responses={404: {"description": "Plant not found", "model": ErrorResponse}},
    summary="Delete a plant",
)
async def delete_plant(
    plant_id: UUID,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db_session),
    admin: Session = Depends(require_admin),
) -> MessageResponse:
    image_url = await plant_service.delete_plant(db, plant_id, actor=admin.email)
    if image_url:
        background_tasks.add_task(image_service.delete_by_url, image_url)
    return MessageResponse(message="Plant deleted successfully.")


# ══════════════════════════════════════════════════════════════════════════
# Categories
# ══════════════════════════════════════════════════════════════════════════


@router.post(
    "/categories",
    status_code=201,
    response_model=CategoryResponse,
    responses={409: {"description": "Duplicate category", "model": ErrorResponse}},
    summary="Create a category",
)
async def create_category(
    payload: CategoryCreate,
    db: AsyncSession = Depends(get_db_session),
    admin: Session = Depends(require_admin),
) -> CategoryResponse:
    return await category_service.create_category(db, payload)


# ══════════════════════════════════════════════════════════════════════════
# Inventory
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "/inventory",
    response_model=InventoryReport,
    summary="Inventory stats, per-category summary and low-stock report",
)
async def inventory_report(
    db: AsyncSession = Depends(get_db_session),
    admin: Session = Depends(require_admin),
) -> InventoryReport:
    return await inventory_service.report(db)


@router.post(
    "/plants/{plant_id}/inventory",
    status_code=201,
    response_model=InventoryAdjustmentResponse,
    responses={
        400: {"description": "Stock would go below zero", "model": ErrorResponse},
        404: {"description": "Plant not found", "model": ErrorResponse},
    },
    summary="Record a stock movement",
)
async def adjust_inventory(
    plant_id: UUID,
    adjustment: InventoryAdjustment,
    db: AsyncSession = Depends(get_db_session),
    admin: Session = Depends(require_admin),
) -> InventoryAdjustmentResponse:
    return await inventory_service.adjust(db, plant_id, adjustment, actor=admin.email)


@router.get(
    "/plants/{plant_id}/inventory",
    response_model=List[InventoryHistoryEntry],
    responses={404: {"description": "Plant not found", "model": ErrorResponse}},
    summary="Stock movement history, newest first",
)
async def inventory_history(
    plant_id: UUID,
    limit: int = Query(default=50, ge=1, le=500),
    db: AsyncSession = Depends(get_db_session),
    admin: Session = Depends(require_admin),
) -> List[InventoryHistoryEntry]:
    return await inventory_service.history(db, plant_id, limit=limit)
