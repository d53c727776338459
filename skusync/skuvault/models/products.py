from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator

from .base import SkuVaultRecord, none_to_empty


class ExternalProductRecord(SkuVaultRecord):
    """Product as returned by products/getProducts."""
    sku: str = Field(default="", description="Stock keeping unit, natural key within a customer")
    description: str = Field(default="", description="Short description, used as the product name")
    long_description: str = Field(default="", description="Long description")
    classification: str = Field(default="", description="Product classification/category")
    cost: Optional[Decimal] = Field(default=None, description="Unit cost")
    retail_price: Optional[Decimal] = Field(default=None, description="Retail price")

    @field_validator("sku", "description", "long_description", "classification", mode="before")
    @classmethod
    def none_as_empty(cls, value):
        return none_to_empty(value)
