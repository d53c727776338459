from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Iterator, Optional

from pydantic import BaseModel, Field

from skusync.logging import get_logger
from skusync.skuvault.client import SkuVaultClient
from skusync.store.interface import InventoryStore, UpsertResult
from skusync.util import utcnow

from .interface import CycleReport


class CustomerBusy(RuntimeError):
    """Another run for the same customer is still in progress."""


class CustomerSyncResult(BaseModel):
    """Per-endpoint reconcile counts for one customer."""
    customer_id: int
    products: UpsertResult = Field(default_factory=UpsertResult)
    locations: UpsertResult = Field(default_factory=UpsertResult)
    inventory_levels: UpsertResult = Field(default_factory=UpsertResult)
    movements: UpsertResult = Field(default_factory=UpsertResult)
    synced_at: datetime


class CustomerLocks:
    """Non-blocking per-customer locks; runs for different customers never contend."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[int, threading.Lock] = {}

    @contextmanager
    def hold(self, customer_id: int) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(customer_id, threading.Lock())
        if not lock.acquire(blocking=False):
            raise CustomerBusy(f"Customer {customer_id} is already being processed")
        try:
            yield
        finally:
            lock.release()


class SyncService:
    """Fetch-and-reconcile driver behind the scheduled sync cycle.

    Only reads from SkuVault, and every store write is an upsert by natural
    key, so re-running a customer (after a failure or a retry) is safe.
    """

    def __init__(
        self,
        client: SkuVaultClient,
        store: InventoryStore,
        movements_from: Optional[datetime] = None,
        movements_to: Optional[datetime] = None,
        enabled: bool = True,
        logger=None,
    ) -> None:
        self.client = client
        self.store = store
        self.movements_from = movements_from
        self.movements_to = movements_to
        self.enabled = enabled
        self.logger = logger or get_logger(__name__)
        self._locks = CustomerLocks()

    def sync_customer(self, customer_id: int, since: Optional[datetime] = None) -> Optional[CustomerSyncResult]:
        """Pull products, locations, inventory and movements for one customer.

        Args:
            customer_id (int): Customer to sync.
            since (datetime, optional): Start of the movement window. Defaults to
                the configured window start, then the customer's last sync, then
                the client's lookback.
        Returns:
            CustomerSyncResult, or None when the customer has no SkuVault tokens.
        Raises:
            CustomerBusy: If a sync for this customer is already running.
            SkuVaultError: If any endpoint fails; nothing is marked synced.
        """
        with self._locks.hold(customer_id):
            account = self.store.get_customer(customer_id)
            tokens = account.tokens
            if tokens is None:
                self.logger.warning(f"Customer {customer_id} is missing SkuVault tokens (tenant or user)")
                return None

            self.logger.info(f"Starting full sync for customer {customer_id}")
            started = utcnow()

            products = self.client.get_products(tokens)
            if not products:
                self.logger.warning(f"No products returned from SkuVault API for customer {customer_id}")
            product_result = self.store.upsert_products(customer_id, products)

            locations = self.client.get_locations(tokens)
            location_result = self.store.upsert_locations(customer_id, locations)

            inventory = self.client.get_inventory(tokens)
            inventory_result = self.store.upsert_inventory_levels(customer_id, inventory)

            from_date = since or self.movements_from or account.last_synced_at
            to_date = self.movements_to or started
            movements = self.client.get_movements(tokens, from_date=from_date, to_date=to_date)
            movement_result = self.store.add_movements(customer_id, movements)

            self.store.mark_synced(customer_id, started)
            self.store.flush()
            self.logger.info(f"Completed full sync for customer {customer_id}")
            return CustomerSyncResult(
                customer_id=customer_id,
                products=product_result,
                locations=location_result,
                inventory_levels=inventory_result,
                movements=movement_result,
                synced_at=started,
            )

    def run_sync_cycle(self) -> CycleReport:
        """Sync every customer with SkuVault credentials.

        A failing customer is logged and the cycle moves on to the next one.
        """
        report = CycleReport()
        if not self.enabled:
            self.logger.info("SkuVault sync is disabled in configuration")
            return report

        customers = self.store.list_sync_customers()
        self.logger.info(f"Starting sync for {len(customers)} customers")
        for account in customers:
            try:
                result = self.sync_customer(account.customer_id)
            except CustomerBusy as e:
                self.logger.warning(str(e))
                report.skipped.append(account.customer_id)
                continue
            except Exception:
                self.logger.exception(f"Failed to sync customer {account.customer_id}")
                report.failed.append(account.customer_id)
                continue
            if result is None:
                report.skipped.append(account.customer_id)
            else:
                report.succeeded.append(account.customer_id)

        self.logger.info(
            f"Completed sync for all customers: {len(report.succeeded)} succeeded, "
            f"{len(report.failed)} failed, {len(report.skipped)} skipped"
        )
        return report
