from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from .base import SkuVaultRecord


class ExternalMovementRecord(SkuVaultRecord):
    """One historical inventory change from inventory/getTransactions."""
    sku: str = Field(default="", description="Stock keeping unit")
    location: Optional[str] = Field(default=None, description="Compound location string, e.g. 'WH1--A-01'")
    quantity: int = Field(default=0, description="Signed quantity change")
    quantity_before: int = Field(default=0, description="Quantity before the change")
    quantity_after: int = Field(default=0, description="Quantity after the change")
    transaction_reason: Optional[str] = Field(default=None, description="Reason entered by the user")
    transaction_note: Optional[str] = Field(default=None, description="Free-text note")
    user: Optional[str] = Field(default=None, description="Email of the user who performed it")
    transaction_type: Optional[str] = Field(default=None, description="e.g. Add, Remove, Transfer")
    context: Optional[str] = Field(default=None, description="Upstream context string")
    transaction_date: datetime = Field(description="When the change happened (naive UTC)")

    @property
    def location_code(self) -> Optional[str]:
        """Location code part of ``location`` (text after the last '--')."""
        if not self.location:
            return None
        if "--" in self.location:
            return self.location.split("--")[-1]
        return self.location

    @property
    def dedup_key(self) -> str:
        """Natural key used to avoid storing the same transaction twice."""
        stamp = self.transaction_date.strftime("%Y%m%d%H%M%S")
        return f"{self.sku}_{stamp}_{self.user or ''}_{self.context or 'unknown'}_{self.quantity}"
