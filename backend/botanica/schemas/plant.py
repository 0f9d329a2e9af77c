"""
Botanica Backend — Plant Request/Response Schemas
===================================================

What:  Pydantic models for the catalog, the admin dashboard and plant writes.
How:   FastAPI validates request bodies against PlantCreate / PlantUpdate and
       serializes the response models below.

Rich text:
    description, habitat, care_instructions, plant_parts_used, uses and
    inventory_notes may carry HTML from the client's editor. Their length
    limits apply to the VISIBLE text, i.e. after stripping tags, so they are
    checked by text_limit_violations() rather than by Field(max_length=...).
"""

import re
import uuid
from datetime import date, datetime
from typing import Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from botanica.schemas.category import CategoryResponse

_TAG = re.compile(r"<[^>]*>")

TEXT_LIMITS: Dict[str, int] = {
    "description": 5000,
    "habitat": 2000,
    "care_instructions": 3000,
    "inventory_notes": 1000,
    "plant_parts_used": 500,
    "uses": 2000,
    "family": 200,
}

_OPTIONAL_TEXT_FIELDS = (
    "scientific_name",
    "description",
    "habitat",
    "care_instructions",
    "family",
    "plant_parts_used",
    "uses",
    "image_url",
    "sku",
    "location",
    "section",
    "supplier",
    "supplier_contact",
    "inventory_notes",
)


def strip_html(value: Optional[str]) -> str:
    """Drop markup, keeping only the text a reader would see."""
    if not value:
        return ""
    return _TAG.sub("", value)


def visible_length(value: Optional[str]) -> int:
    return len(strip_html(value))


# Label and verb used in the "too long" messages
_LIMIT_LABELS: Dict[str, Tuple[str, str]] = {
    "description": ("Description", "is"),
    "habitat": ("Habitat", "is"),
    "care_instructions": ("Care instructions", "are"),
    "inventory_notes": ("Inventory notes", "are"),
    "plant_parts_used": ("Plant parts used", "is"),
    "uses": ("Uses", "is"),
    "family": ("Family", "is"),
}


def text_limit_violations(values: Mapping[str, Optional[str]]) -> List[str]:
    """
    One message per field whose visible text exceeds its limit.

    >>> text_limit_violations({"habitat": "x" * 2003})
    ['Habitat is 3 characters too long']
    """
    messages = []
    for name, limit in TEXT_LIMITS.items():
        over = visible_length(values.get(name)) - limit
        if over > 0:
            label, verb = _LIMIT_LABELS[name]
            messages.append(f"{label} {verb} {over} characters too long")
    return messages


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class PlantWrite(BaseModel):
    """Fields shared by create and edit. Empty strings arrive as None."""

    common_name: str = Field(min_length=1, max_length=200)
    scientific_name: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = None
    habitat: Optional[str] = None
    care_instructions: Optional[str] = None
    family: Optional[str] = None
    plant_parts_used: Optional[str] = None
    uses: Optional[str] = None
    category_ids: List[uuid.UUID] = Field(
        default_factory=list,
        description="Selected categories; the first one is mirrored to the legacy category_id",
    )
    is_featured: bool = False
    image_url: Optional[str] = Field(default=None, max_length=500)

    sku: Optional[str] = Field(default=None, max_length=100)
    quantity: int = Field(default=0, ge=0)
    minimum_stock: int = Field(default=5, ge=0)
    unit_price: Optional[float] = Field(default=None, ge=0)
    location: Optional[str] = Field(default=None, max_length=200)
    section: Optional[str] = Field(default=None, max_length=200)
    supplier: Optional[str] = Field(default=None, max_length=200)
    supplier_contact: Optional[str] = Field(default=None, max_length=200)
    date_acquired: Optional[date] = None
    inventory_notes: Optional[str] = None

    @field_validator("common_name")
    @classmethod
    def strip_common_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Common name is required")
        return v

    @field_validator(*_OPTIONAL_TEXT_FIELDS, mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("date_acquired", "unit_price", mode="before")
    @classmethod
    def blank_scalar_to_none(cls, v):
        if v == "":
            return None
        return v

    @field_validator("category_ids")
    @classmethod
    def dedupe_categories(cls, v: List[uuid.UUID]) -> List[uuid.UUID]:
        return list(dict.fromkeys(v))


class PlantCreate(PlantWrite):
    pass


class PlantUpdate(PlantWrite):
    """Full replacement of a plant's editable fields (PUT semantics)."""

    change_reason: Optional[str] = Field(
        default=None,
        max_length=500,
        description="Recorded in inventory history when the quantity changes",
    )


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class PlantSummary(BaseModel):
    """Catalog card: home page and listing."""
    id: uuid.UUID
    common_name: str
    scientific_name: Optional[str] = None
    family: Optional[str] = None
    description_text: str = Field(default="", description="Description with markup removed")
    image_url: Optional[str] = None
    is_featured: bool = False
    categories: List[CategoryResponse] = Field(default_factory=list)
    status: str
    status_label: str


class PlantDetail(BaseModel):
    id: uuid.UUID
    common_name: str
    scientific_name: Optional[str] = None
    description: Optional[str] = None
    habitat: Optional[str] = None
    care_instructions: Optional[str] = None
    family: Optional[str] = None
    plant_parts_used: Optional[str] = None
    uses: Optional[str] = None
    categories: List[CategoryResponse] = Field(default_factory=list)
    category_id: Optional[uuid.UUID] = None
    is_featured: bool = False
    image_url: Optional[str] = None

    sku: Optional[str] = None
    quantity: int
    minimum_stock: int
    unit_price: Optional[float] = None
    location: Optional[str] = None
    section: Optional[str] = None
    supplier: Optional[str] = None
    supplier_contact: Optional[str] = None
    date_acquired: Optional[date] = None
    last_restocked: Optional[datetime] = None
    inventory_notes: Optional[str] = None

    status: str
    status_label: str
    shortage: int
    created_at: datetime
    updated_at: Optional[datetime] = None


class PlantListResponse(BaseModel):
    plants: List[PlantSummary]
    total_count: int = Field(description="Plants matching the filters")
    page: int
    page_size: int
    total_pages: int


class PlantWriteResponse(BaseModel):
    message: str
    plant: PlantDetail


class DashboardPlant(BaseModel):
    id: uuid.UUID
    common_name: str
    scientific_name: Optional[str] = None
    sku: Optional[str] = None
    categories: List[CategoryResponse] = Field(default_factory=list)
    quantity: int
    minimum_stock: int
    shortage: int
    status: str
    status_label: str
    location: Optional[str] = None
    is_featured: bool
    image_url: Optional[str] = None
    created_at: datetime


class DashboardTotals(BaseModel):
    total_plants: int = 0
    featured: int = 0
    low_stock: int = 0
    out_of_stock: int = 0
    total_quantity: int = 0


class DashboardResponse(BaseModel):
    plants: List[DashboardPlant]
    totals: DashboardTotals
