from __future__ import annotations

from pydantic import Field

from .base import SkuVaultRecord


class ExternalInventoryRecord(SkuVaultRecord):
    """One (sku, location) quantity flattened from inventory/getInventoryByLocation."""
    sku: str = Field(description="Stock keeping unit")
    location_code: str = Field(default="", description="Location code")
    quantity_on_hand: int = Field(default=0, description="Quantity on hand")
    quantity_available: int = Field(default=0, description="Same as on hand; the endpoint does not distinguish")
    quantity_allocated: int = Field(default=0, description="Always 0; not provided by the endpoint")
