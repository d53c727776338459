import pandas as pd
import pytest

from skusync.cycles.interface import LoggingNotificationSink
from skusync.cycles.notifications import LowStockNotifier
from skusync.cycles.sync import SyncService
from skusync.store.csv_store import CsvInventoryStore


class RecordingSink:
    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.sent = []

    def send_low_stock_notification(self, email, customer_name, items):
        if email in self.fail_for:
            raise RuntimeError("SMTP unavailable")
        self.sent.append((email, customer_name, items))


@pytest.fixture
def synced_dir(data_dir, fake_client):
    store = CsvInventoryStore(data_dir)
    SyncService(client=fake_client, store=store).sync_customer(1)
    # SKU1 @ L2 (location 2) may drop to 3 before it counts as low.
    pd.DataFrame([
        {"customer_id": 1, "product_id": 1, "location_id": 2, "threshold_quantity": 3, "is_active": True},
    ]).to_csv(data_dir / "low_stock_thresholds.csv", index=False)
    return data_dir


def test_check_customer_applies_location_override(synced_dir):
    notifier = LowStockNotifier(store=CsvInventoryStore(synced_dir), sink=RecordingSink(), default_threshold=10)
    items = notifier.check_customer(1)
    assert [(i.product_sku, i.location_name, i.current_quantity, i.threshold_quantity) for i in items] == [
        ("SKU1", "Front", 5, 10),
    ]


def test_cycle_notifies_eligible_customers(synced_dir):
    sink = RecordingSink()
    report = LowStockNotifier(store=CsvInventoryStore(synced_dir), sink=sink, default_threshold=10).run_notification_cycle()
    assert [email for email, _, _ in sink.sent] == ["ops@acme.test"]
    assert sink.sent[0][1] == "Acme Retail"
    # Customer 2 has no inventory; customer 3 is on the basic tier.
    assert report.succeeded == [1, 2]
    assert report.skipped == [3]
    assert report.failed == []


def test_sink_failure_does_not_stop_cycle(synced_dir):
    sink = RecordingSink(fail_for={"ops@acme.test"})
    report = LowStockNotifier(store=CsvInventoryStore(synced_dir), sink=sink).run_notification_cycle()
    assert report.failed == [1]
    assert report.succeeded == [2]


def test_disabled_notifier(synced_dir):
    sink = RecordingSink()
    report = LowStockNotifier(store=CsvInventoryStore(synced_dir), sink=sink, enabled=False).run_notification_cycle()
    assert sink.sent == []
    assert report.succeeded == []


def test_logging_sink_writes_each_item(synced_dir):
    from loguru import logger

    messages = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="INFO")
    try:
        store = CsvInventoryStore(synced_dir)
        LowStockNotifier(store=store, sink=LoggingNotificationSink()).run_notification_cycle()
    finally:
        logger.remove(handler_id)
    assert any("Acme Retail <ops@acme.test>: 1 items" in m for m in messages)
    assert any("SKU1 (Widget) @ Front: 5 <= 10" in m for m in messages)
