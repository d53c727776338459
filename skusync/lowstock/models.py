from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class ThresholdRule(BaseModel):
    """Configured low-stock threshold.

    ``location_id`` of None makes the rule the customer/product-wide default;
    a location-specific rule overrides it for that location.
    """
    customer_id: int = Field(description="Customer the rule belongs to")
    product_id: int = Field(description="Product the rule applies to")
    location_id: Optional[int] = Field(default=None, description="Location override, None for product-wide")
    threshold_quantity: int = Field(description="At or below this quantity the item is low stock")
    is_active: bool = Field(default=True, description="Inactive rules are ignored")


class InventoryLevel(BaseModel):
    """Persisted quantity of one product at one location, joined with names."""
    customer_id: int = Field(description="Owning customer")
    product_id: int = Field(description="Product identifier")
    location_id: int = Field(description="Location identifier")
    product_sku: str = Field(description="Product SKU")
    product_name: str = Field(default="", description="Product name")
    location_code: str = Field(description="Location code")
    location_name: Optional[str] = Field(default=None, description="Human-readable location name")
    quantity_on_hand: int = Field(default=0, description="Quantity on hand")
    quantity_available: int = Field(description="Quantity available")
    quantity_allocated: int = Field(default=0, description="Quantity allocated")


class LowStockItem(BaseModel):
    """One under-threshold (product, location) pair from an evaluation pass."""
    product_sku: str = Field(description="Product SKU")
    product_name: str = Field(description="Product name")
    location_name: str = Field(description="Location name, or its code when unnamed")
    current_quantity: int = Field(description="Quantity available at evaluation time")
    threshold_quantity: int = Field(description="Effective threshold applied")
