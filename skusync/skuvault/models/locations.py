from __future__ import annotations

from pydantic import Field, field_validator

from .base import SkuVaultRecord, none_to_empty


class ExternalLocationRecord(SkuVaultRecord):
    """Warehouse location as returned by inventory/getLocations."""
    location_code: str = Field(default="", description="Location code, natural key within a customer")
    location_name: str = Field(default="", description="Human-readable location name")
    warehouse_name: str = Field(default="", description="Owning warehouse")
    is_active: bool = Field(default=True, description="SkuVault does not always send this; absent means active")

    @field_validator("location_code", "location_name", "warehouse_name", mode="before")
    @classmethod
    def none_as_empty(cls, value):
        return none_to_empty(value)

    @field_validator("is_active", mode="before")
    @classmethod
    def default_active(cls, value):
        return True if value is None else value
