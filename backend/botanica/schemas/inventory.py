"""
Botanica Backend — Inventory Schemas
======================================

Adjustment requests, ledger entries and the aggregate reports built from them.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

AdjustmentType = Literal["restock", "sale", "adjustment", "loss", "transfer"]

_ADDING = ("restock",)
_REMOVING = ("sale", "loss")


class InventoryAdjustment(BaseModel):
    """
    A typed stock movement. quantity_change is signed: positive adds stock,
    negative removes it. 'initial' is reserved for plant creation.

    restock only adds, sale and loss only remove; adjustment and transfer
    may go either way.
    """
    change_type: AdjustmentType
    quantity_change: int
    reason: Optional[str] = Field(default=None, max_length=500)
    reference_number: Optional[str] = Field(default=None, max_length=100)
    metadata: Optional[Dict[str, Any]] = None

    @field_validator("quantity_change")
    @classmethod
    def non_zero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("quantity_change must not be zero")
        return v

    @model_validator(mode="after")
    def sign_matches_type(self) -> "InventoryAdjustment":
        if self.change_type in _ADDING and self.quantity_change < 0:
            raise ValueError(f"{self.change_type} must add stock (positive quantity_change)")
        if self.change_type in _REMOVING and self.quantity_change > 0:
            raise ValueError(f"{self.change_type} must remove stock (negative quantity_change)")
        return self


class InventoryHistoryEntry(BaseModel):
    id: uuid.UUID
    plant_id: uuid.UUID
    change_type: str
    quantity_before: int
    quantity_after: int
    quantity_change: int
    reason: Optional[str] = None
    reference_number: Optional[str] = None
    changed_by: str
    changed_at: datetime
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="extra")

    model_config = {"from_attributes": True}


class InventoryAdjustmentResponse(BaseModel):
    message: str
    entry: InventoryHistoryEntry
    status: str
    status_label: str


class LowStockPlant(BaseModel):
    id: uuid.UUID
    sku: Optional[str] = None
    common_name: str
    scientific_name: Optional[str] = None
    quantity: int
    minimum_stock: int
    shortage: int
    location: Optional[str] = None
    status: str
    supplier: Optional[str] = None
    last_restocked: Optional[datetime] = None
    category_name: Optional[str] = None


class InventoryStats(BaseModel):
    total_plants: int = 0
    total_quantity: int = 0
    total_value: float = 0.0
    low_stock_count: int = 0
    out_of_stock_count: int = 0
    available_count: int = 0
    unique_locations: int = 0


class InventorySummary(BaseModel):
    category_name: str
    total_plants: int = 0
    total_quantity: int = 0
    available_quantity: int = 0
    low_stock_count: int = 0
    out_of_stock_count: int = 0
    total_inventory_value: float = 0.0


class InventoryReport(BaseModel):
    stats: InventoryStats
    summary: List[InventorySummary]
    low_stock: List[LowStockPlant]
