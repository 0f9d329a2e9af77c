"""
Botanica Backend — Derived Stock Status
=========================================

What:  The one function that turns (quantity, minimum_stock) into a stock status.
Who:   Create, edit and inventory-adjustment writes; detail and dashboard reads.

Rules:
    quantity == 0                   → out_of_stock
    0 < quantity <= minimum_stock   → low_stock
    quantity > minimum_stock        → available

The `plants.status` column is a cache of this value. It is written only by
apply_stock_status(), in the same transaction as the quantity it reflects.
"""

import enum
from typing import Protocol


class StockStatus(str, enum.Enum):
    AVAILABLE = "available"
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]


STATUS_LABELS = {
    StockStatus.AVAILABLE: "Available",
    StockStatus.LOW_STOCK: "Low Stock",
    StockStatus.OUT_OF_STOCK: "Out of Stock",
}


class _Stocked(Protocol):
    quantity: int
    minimum_stock: int
    status: str


def derive_stock_status(quantity: int, minimum_stock: int) -> StockStatus:
    """
    Derive the stock status for a quantity against its reorder threshold.

    Raises:
        ValueError: quantity or minimum_stock is negative
    """
    if quantity < 0:
        raise ValueError(f"quantity must be >= 0, got {quantity}")
    if minimum_stock < 0:
        raise ValueError(f"minimum_stock must be >= 0, got {minimum_stock}")
    if quantity == 0:
        return StockStatus.OUT_OF_STOCK
    if quantity <= minimum_stock:
        return StockStatus.LOW_STOCK
    return StockStatus.AVAILABLE


def stock_shortage(quantity: int, minimum_stock: int) -> int:
    """Units needed to get back to the reorder threshold (never negative)."""
    return max(minimum_stock - quantity, 0)


def apply_stock_status(plant: _Stocked) -> StockStatus:
    """Recompute and store the cached status on a plant row. Returns it."""
    status = derive_stock_status(plant.quantity, plant.minimum_stock)
    plant.status = status.value
    return status
