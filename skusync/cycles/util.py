from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, List, Optional

from skusync.config import AppConfig, get_config
from skusync.skuvault.client import SkuVaultClient
from skusync.store.csv_store import CsvInventoryStore
from skusync.store.interface import InventoryStore

from .interface import CycleReport, LoggingNotificationSink, LowStockNotificationSink
from .notifications import LowStockNotifier
from .sync import SyncService


@dataclass(frozen=True)
class CycleSchedule:
    """When and how often the host scheduler should call ``run``."""
    name: str
    run: Callable[[], CycleReport]
    interval: timedelta
    start_delay: timedelta
    enabled: bool


def get_skuvault_client(config: Optional[AppConfig] = None) -> SkuVaultClient:
    config = config or get_config()
    return SkuVaultClient(
        base_url=config.skuvault_base_url,
        timeout=config.request_timeout_seconds,
        preview_chars=config.error_preview_chars,
        lookback_days=config.movements_lookback_days,
    )


def get_store(config: Optional[AppConfig] = None) -> InventoryStore:
    config = config or get_config()
    return CsvInventoryStore(data_dir=config.data_dir)


def get_sync_service(
    config: Optional[AppConfig] = None,
    client: Optional[SkuVaultClient] = None,
    store: Optional[InventoryStore] = None,
) -> SyncService:
    config = config or get_config()
    return SyncService(
        client=client or get_skuvault_client(config),
        store=store or get_store(config),
        movements_from=config.movements_from_date,
        movements_to=config.movements_to_date,
        enabled=config.sync_enabled,
    )


def get_low_stock_notifier(
    config: Optional[AppConfig] = None,
    store: Optional[InventoryStore] = None,
    sink: Optional[LowStockNotificationSink] = None,
) -> LowStockNotifier:
    config = config or get_config()
    return LowStockNotifier(
        store=store or get_store(config),
        sink=sink or LoggingNotificationSink(),
        default_threshold=config.low_stock_default_threshold,
        enabled=config.low_stock_enabled,
    )


def run_sync_cycle() -> CycleReport:
    """Entry point for the scheduler's sync timer."""
    service = get_sync_service()
    with service.client:
        return service.run_sync_cycle()


def run_notification_cycle() -> CycleReport:
    """Entry point for the scheduler's notification timer."""
    return get_low_stock_notifier().run_notification_cycle()


def get_cycle_schedules(config: Optional[AppConfig] = None) -> List[CycleSchedule]:
    """Both timers with their configured interval, startup delay and switch.

    Args:
        config (AppConfig, optional): Defaults to ``get_config()``.
    Returns:
        List[CycleSchedule]: Sync first, then low-stock notifications.
    """
    config = config or get_config()
    return [
        CycleSchedule(
            name="skuvault-sync",
            run=run_sync_cycle,
            interval=timedelta(minutes=config.sync_interval_minutes),
            start_delay=timedelta(minutes=config.sync_delay_start_minutes),
            enabled=config.sync_enabled,
        ),
        CycleSchedule(
            name="low-stock-notifications",
            run=run_notification_cycle,
            interval=timedelta(minutes=config.low_stock_check_interval_minutes),
            start_delay=timedelta(minutes=config.low_stock_startup_delay_minutes),
            enabled=config.low_stock_enabled,
        ),
    ]
