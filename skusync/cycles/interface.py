from __future__ import annotations

from typing import List, Protocol

from pydantic import BaseModel, Field

from skusync.logging import get_logger
from skusync.lowstock.models import LowStockItem


class CycleReport(BaseModel):
    """Outcome of one sync or notification pass over all customers."""
    succeeded: List[int] = Field(default_factory=list, description="Customers processed")
    failed: List[int] = Field(default_factory=list, description="Customers whose processing raised")
    skipped: List[int] = Field(default_factory=list, description="Customers not processed (no tokens, tier, busy)")


class LowStockNotificationSink(Protocol):
    """Delivery side of the notification cycle (email, chat, ...)."""

    def send_low_stock_notification(self, email: str, customer_name: str, items: List[LowStockItem]) -> None:
        """Deliver the ranked low-stock list; raising marks the customer failed."""
        ...


class LoggingNotificationSink(LowStockNotificationSink):
    """Writes notifications to the application log instead of delivering them."""

    def __init__(self, logger=None) -> None:
        self.logger = logger or get_logger(__name__)

    def send_low_stock_notification(self, email: str, customer_name: str, items: List[LowStockItem]) -> None:
        self.logger.info(f"Low stock notification for {customer_name} <{email}>: {len(items)} items")
        for item in items:
            self.logger.info(
                f"  {item.product_sku} ({item.product_name}) @ {item.location_name}: "
                f"{item.current_quantity} <= {item.threshold_quantity}"
            )
