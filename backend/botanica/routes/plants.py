"""
Botanica Backend — Public Catalog Routes
==========================================

What:  Read-only catalog: featured plants, paginated listing, plant detail,
       category list for the filter controls.
Who:   The public site; no session required.
"""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from botanica.database import get_db_session
from botanica.schemas.category import CategoryResponse
from botanica.schemas.common import ErrorResponse
from botanica.schemas.plant import PlantDetail, PlantListResponse, PlantSummary
from botanica.services.category_service import category_service
from botanica.services.plant_service import plant_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Catalog"])


@router.get(
    "/plants/featured",
    response_model=List[PlantSummary],
    summary="Featured plants for the home page",
    description="Up to three plants flagged as featured, with descriptions as plain text.",
)
async def list_featured(db: AsyncSession = Depends(get_db_session)) -> List[PlantSummary]:
    return await plant_service.list_featured(db)


@router.get(
    "/plants",
    response_model=PlantListResponse,
    responses={400: {"description": "Invalid sort", "model": ErrorResponse}},
    summary="Browse the plant catalog",
    description=(
        "Twelve plants per page. `q` matches common or scientific name, `category` "
        "takes a category id, `family` is matched case-insensitively."
    ),
)
async def list_plants(
    response: Response,
    q: str | None = Query(default=None, max_length=200, description="Name search"),
    category: UUID | None = Query(default=None, description="Category id"),
    family: str | None = Query(default=None, max_length=200, description="Botanical family"),
    sort: str = Query(default="name_asc", description="name_asc, name_desc, newest or oldest"),
    page: int = Query(default=1, ge=1, description="1-based page number"),
    db: AsyncSession = Depends(get_db_session),
) -> PlantListResponse:
    result = await plant_service.list_catalog(
        db, q=q, category=category, family=family, sort=sort, page=page
    )
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.get(
    "/plants/{plant_id}",
    response_model=PlantDetail,
    responses={404: {"description": "Plant not found", "model": ErrorResponse}},
    summary="Plant detail",
)
async def get_plant(plant_id: UUID, db: AsyncSession = Depends(get_db_session)) -> PlantDetail:
    return await plant_service.get_plant(db, plant_id)


@router.get(
    "/categories",
    response_model=List[CategoryResponse],
    summary="All categories, ordered by name",
)
async def list_categories(db: AsyncSession = Depends(get_db_session)) -> List[CategoryResponse]:
    return await category_service.list_categories(db)
