from __future__ import annotations

from typing import List

from skusync.logging import get_logger
from skusync.lowstock.evaluator import evaluate
from skusync.lowstock.models import LowStockItem
from skusync.reports.access import can_access_report
from skusync.store.interface import InventoryStore

from .interface import CycleReport, LowStockNotificationSink

LOW_STOCK_REPORT = "low-stock"


class LowStockNotifier:
    """Evaluate-and-notify driver behind the scheduled notification cycle."""

    def __init__(
        self,
        store: InventoryStore,
        sink: LowStockNotificationSink,
        default_threshold: int = 10,
        enabled: bool = True,
        logger=None,
    ) -> None:
        self.store = store
        self.sink = sink
        self.default_threshold = default_threshold
        self.enabled = enabled
        self.logger = logger or get_logger(__name__)

    def check_customer(self, customer_id: int) -> List[LowStockItem]:
        """Ranked low-stock items for one customer from the persisted state."""
        levels = self.store.list_inventory_levels(customer_id)
        rules = self.store.list_threshold_rules(customer_id)
        return evaluate(customer_id, levels, rules, self.default_threshold)

    def run_notification_cycle(self) -> CycleReport:
        """Notify every eligible customer that has low-stock items.

        Customers without the low-stock tier are skipped. A failure for one
        customer is logged and does not stop the others.
        """
        report = CycleReport()
        if not self.enabled:
            self.logger.info("Low stock notifications are disabled in configuration")
            return report

        self.logger.info("Starting low stock notification check")
        customers = self.store.list_notification_customers()
        for account in customers:
            if not can_access_report(account.membership_level, LOW_STOCK_REPORT):
                self.logger.debug(f"Customer {account.name} tier {account.membership_level.name} excludes low stock alerts")
                report.skipped.append(account.customer_id)
                continue
            try:
                items = self.check_customer(account.customer_id)
                if items:
                    self.logger.info(f"Found {len(items)} low stock items for customer {account.name} ({account.email})")
                    self.sink.send_low_stock_notification(account.email, account.name, items)
                    self.logger.info(f"Low stock notification sent to {account.email} for {len(items)} items")
                else:
                    self.logger.debug(f"No low stock items found for customer {account.name}")
            except Exception:
                self.logger.exception(f"Error processing low stock notifications for customer {account.name} ({account.email})")
                report.failed.append(account.customer_id)
                continue
            report.succeeded.append(account.customer_id)

        self.logger.info(f"Low stock notification check completed for {len(customers)} customers")
        return report
