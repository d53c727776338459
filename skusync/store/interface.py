from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Protocol, Sequence

from pydantic import BaseModel, Field

from skusync.lowstock.models import InventoryLevel, ThresholdRule
from skusync.reports.access import MembershipLevel
from skusync.skuvault.models import (
    AuthTokenPair,
    ExternalInventoryRecord,
    ExternalLocationRecord,
    ExternalMovementRecord,
    ExternalProductRecord,
)


# ---- Types returned to the cycle drivers ----

class CustomerAccount(BaseModel):
    """A customer joined with its tenant's SkuVault credentials."""
    customer_id: int = Field(description="Customer identifier")
    tenant_id: int = Field(description="Owning tenant")
    name: str = Field(description="Display name")
    email: Optional[str] = Field(default=None, description="Notification address")
    membership_level: MembershipLevel = Field(default=MembershipLevel.BASIC, description="Subscription tier")
    tenant_token: Optional[str] = Field(default=None, description="SkuVault tenant token")
    user_token: Optional[str] = Field(default=None, description="SkuVault user token")
    last_synced_at: Optional[datetime] = Field(default=None, description="End of the last successful sync")

    @property
    def tokens(self) -> Optional[AuthTokenPair]:
        """Token pair, or None when either half is missing."""
        if not self.tenant_token or not self.user_token:
            return None
        return AuthTokenPair(tenant_token=self.tenant_token, user_token=self.user_token)


class UpsertResult(BaseModel):
    """Row counts from one reconcile call."""
    added: int = 0
    updated: int = 0
    skipped: int = 0


# ---- Persistence protocol ----

class InventoryStore(Protocol):
    """
    Local store the sync and notification cycles reconcile into and read from.

    Writes are upserts by natural key (SKU, location code, product+location,
    transaction dedup key): ingesting the same upstream record twice must
    never create a second row.
    """

    def list_sync_customers(self) -> List[CustomerAccount]:
        """Customers whose tenant has a SkuVault tenant token."""
        ...

    def list_notification_customers(self) -> List[CustomerAccount]:
        """Customers with an email address."""
        ...

    def get_customer(self, customer_id: int) -> CustomerAccount:
        """Raises KeyError for an unknown customer."""
        ...

    def upsert_products(self, customer_id: int, records: Sequence[ExternalProductRecord]) -> UpsertResult:
        ...

    def upsert_locations(self, customer_id: int, records: Sequence[ExternalLocationRecord]) -> UpsertResult:
        ...

    def upsert_inventory_levels(self, customer_id: int, records: Sequence[ExternalInventoryRecord]) -> UpsertResult:
        """Rows whose SKU or location code is unknown are skipped."""
        ...

    def add_movements(self, customer_id: int, records: Sequence[ExternalMovementRecord]) -> UpsertResult:
        """Insert-only; existing dedup keys are skipped."""
        ...

    def mark_synced(self, customer_id: int, synced_at: datetime) -> None:
        ...

    def list_inventory_levels(self, customer_id: int) -> List[InventoryLevel]:
        ...

    def list_threshold_rules(self, customer_id: int) -> List[ThresholdRule]:
        ...

    def flush(self) -> None:
        """Persist pending writes."""
        ...
