from datetime import datetime
from decimal import Decimal

import pandas as pd
import pytest

from skusync.config import set_config_for_test
from skusync.reports.access import MembershipLevel
from skusync.skuvault.models import (
    ExternalInventoryRecord,
    ExternalLocationRecord,
    ExternalMovementRecord,
    ExternalProductRecord,
)
from skusync.store.csv_store import CsvInventoryStore, display_name_from_user


@pytest.fixture(autouse=True)
def test_config():
    set_config_for_test(log_level="WARNING")


@pytest.fixture
def data_dir(tmp_path):
    pd.DataFrame([
        {"tenant_id": 1, "name": "Acme", "tenant_token": "t-1", "user_token": "u-1"},
        {"tenant_id": 2, "name": "NoTokens", "tenant_token": None, "user_token": None},
    ]).to_csv(tmp_path / "tenants.csv", index=False)
    pd.DataFrame([
        {"customer_id": 10, "tenant_id": 1, "name": "Acme Retail", "email": "ops@acme.test", "membership_level": 2, "last_synced_at": None},
        {"customer_id": 20, "tenant_id": 2, "name": "Quiet Co", "email": None, "membership_level": 1, "last_synced_at": None},
    ]).to_csv(tmp_path / "customers.csv", index=False)
    return tmp_path


@pytest.fixture
def store(data_dir):
    return CsvInventoryStore(data_dir)


def seed_catalog(store):
    store.upsert_products(10, [
        ExternalProductRecord(sku="00123", description="Widget", cost=Decimal("1.50")),
        ExternalProductRecord(sku="B-2", description="Gadget"),
    ])
    store.upsert_locations(10, [
        ExternalLocationRecord(location_code="A-01", location_name="Aisle 1"),
        ExternalLocationRecord(location_code="A-02"),
    ])


def test_missing_directory_or_required_files(tmp_path):
    with pytest.raises(FileNotFoundError):
        CsvInventoryStore(tmp_path / "nope")
    with pytest.raises(FileNotFoundError) as exc:
        CsvInventoryStore(tmp_path)
    assert "tenants.csv" in str(exc.value)


def test_customer_queries(store):
    sync = store.list_sync_customers()
    assert [a.customer_id for a in sync] == [10]
    assert sync[0].tokens.tenant_token == "t-1"
    assert sync[0].membership_level == MembershipLevel.STANDARD

    notify = store.list_notification_customers()
    assert [a.email for a in notify] == ["ops@acme.test"]

    quiet = store.get_customer(20)
    assert quiet.tokens is None
    with pytest.raises(KeyError):
        store.get_customer(99)


def test_product_upsert_is_idempotent(store):
    seed_catalog(store)
    result = store.upsert_products(10, [ExternalProductRecord(sku="00123", description="Widget v2")])
    assert (result.added, result.updated) == (0, 1)
    levels_before = len(store._rows("products"))
    store.upsert_products(10, [ExternalProductRecord(sku="00123", description="Widget v2")])
    assert len(store._rows("products")) == levels_before == 2
    names = {r["sku"]: r["name"] for r in store._rows("products")}
    assert names["00123"] == "Widget v2"


def test_inventory_skips_unknown_sku_and_location(store):
    seed_catalog(store)
    result = store.upsert_inventory_levels(10, [
        ExternalInventoryRecord(sku="00123", location_code="A-01", quantity_on_hand=4, quantity_available=4),
        ExternalInventoryRecord(sku="MISSING", location_code="A-01", quantity_on_hand=1, quantity_available=1),
        ExternalInventoryRecord(sku="B-2", location_code="Z-99", quantity_on_hand=1, quantity_available=1),
    ])
    assert (result.added, result.skipped) == (1, 2)

    again = store.upsert_inventory_levels(10, [
        ExternalInventoryRecord(sku="00123", location_code="A-01", quantity_on_hand=9, quantity_available=9),
    ])
    assert (again.added, again.updated) == (0, 1)

    levels = store.list_inventory_levels(10)
    assert len(levels) == 1
    assert levels[0].product_sku == "00123"
    assert levels[0].location_name == "Aisle 1"
    assert levels[0].quantity_available == 9


def test_movements_deduplicate(store):
    seed_catalog(store)
    movement = ExternalMovementRecord(
        sku="B-2",
        quantity=-1,
        location="WH--A-02",
        user="jane.doe@acme.test",
        context="Pick",
        transaction_date=datetime(2025, 11, 3, 9, 15),
    )
    first = store.add_movements(10, [movement, movement])
    assert (first.added, first.skipped) == (1, 1)
    second = store.add_movements(10, [movement])
    assert (second.added, second.skipped) == (0, 1)

    rows = store._rows("transactions")
    assert len(rows) == 1
    assert rows[0]["performed_by"] == "Jane Doe"
    assert rows[0]["location_id"] is not None


def test_flush_and_reload_keep_state(store, data_dir):
    seed_catalog(store)
    store.upsert_inventory_levels(10, [
        ExternalInventoryRecord(sku="00123", location_code="A-02", quantity_on_hand=2, quantity_available=2),
    ])
    store.mark_synced(10, datetime(2025, 11, 1, 12, 0))
    store.flush()

    reloaded = CsvInventoryStore(data_dir)
    assert reloaded.get_customer(10).last_synced_at == datetime(2025, 11, 1, 12, 0)
    levels = reloaded.list_inventory_levels(10)
    assert [(l.product_sku, l.location_code, l.location_name) for l in levels] == [("00123", "A-02", None)]

    result = reloaded.upsert_products(10, [ExternalProductRecord(sku="00123", description="Widget")])
    assert (result.added, result.updated) == (0, 1)


@pytest.mark.parametrize("sku,code", [("NA", "N/A"), ("NULL", "nan"), ("None", "")])
def test_missing_value_lookalike_keys_survive_reload(data_dir, sku, code):
    store = CsvInventoryStore(data_dir)
    store.upsert_products(10, [ExternalProductRecord(sku=sku, description="Odd key")])
    store.upsert_locations(10, [ExternalLocationRecord(location_code=code, location_name="Odd bin")])
    store.flush()

    reloaded = CsvInventoryStore(data_dir)
    products = reloaded.upsert_products(10, [ExternalProductRecord(sku=sku, description="Odd key")])
    locations = reloaded.upsert_locations(10, [ExternalLocationRecord(location_code=code, location_name="Odd bin")])
    assert (products.added, products.updated) == (0, 1)
    assert (locations.added, locations.updated) == (0, 1)
    assert [r["sku"] for r in reloaded._rows("products")] == [sku]

    levels = reloaded.upsert_inventory_levels(10, [
        ExternalInventoryRecord(sku=sku, location_code=code, quantity_on_hand=1, quantity_available=1),
    ])
    assert (levels.added, levels.skipped) == (1, 0)
    assert [(l.product_sku, l.location_code) for l in reloaded.list_inventory_levels(10)] == [(sku, code)]


def test_threshold_rules(data_dir):
    pd.DataFrame([
        {"customer_id": 10, "product_id": 1, "location_id": None, "threshold_quantity": 4, "is_active": True},
        {"customer_id": 10, "product_id": 1, "location_id": 2, "threshold_quantity": 1, "is_active": False},
        {"customer_id": 20, "product_id": 5, "location_id": 1, "threshold_quantity": 7, "is_active": True},
    ]).to_csv(data_dir / "low_stock_thresholds.csv", index=False)
    rules = CsvInventoryStore(data_dir).list_threshold_rules(10)
    assert [(r.location_id, r.threshold_quantity, r.is_active) for r in rules] == [(None, 4, True), (2, 1, False)]


@pytest.mark.parametrize("user,expected", [
    ("jane.doe@acme.test", "Jane Doe"),
    ("bob_smith@acme.test", "Bob Smith"),
    ("warehouse-bot", "warehouse-bot"),
    ("", "Unknown"),
    (None, "Unknown"),
])
def test_display_name_from_user(user, expected):
    assert display_name_from_user(user) == expected
