from datetime import datetime

import pandas as pd
import pytest

from skusync.config import set_config_for_test
from skusync.skuvault.errors import AuthenticationFailed
from skusync.skuvault.models import (
    ExternalInventoryRecord,
    ExternalLocationRecord,
    ExternalMovementRecord,
    ExternalProductRecord,
)
from skusync.store.csv_store import CsvInventoryStore


class FakeSkuVaultClient:
    """Stands in for SkuVaultClient; tenant tokens listed in ``rejected`` get a 401."""

    def __init__(self, rejected=()):
        self.rejected = set(rejected)
        self.calls = []
        self.movement_windows = []

    def _check(self, name, tokens):
        self.calls.append((name, tokens.tenant_token))
        if tokens.tenant_token in self.rejected:
            raise AuthenticationFailed("401: Invalid token", status_code=401)

    def get_products(self, tokens):
        self._check("products", tokens)
        return [ExternalProductRecord(sku="SKU1", description="Widget"), ExternalProductRecord(sku="SKU2", description="Gadget")]

    def get_locations(self, tokens):
        self._check("locations", tokens)
        return [ExternalLocationRecord(location_code="L1", location_name="Front"), ExternalLocationRecord(location_code="L2")]

    def get_inventory(self, tokens):
        self._check("inventory", tokens)
        return [
            ExternalInventoryRecord(sku="SKU1", location_code="L1", quantity_on_hand=5, quantity_available=5),
            ExternalInventoryRecord(sku="SKU1", location_code="L2", quantity_on_hand=5, quantity_available=5),
            ExternalInventoryRecord(sku="SKU2", location_code="L1", quantity_on_hand=50, quantity_available=50),
        ]

    def get_movements(self, tokens, from_date=None, to_date=None):
        self._check("movements", tokens)
        self.movement_windows.append((from_date, to_date))
        return [ExternalMovementRecord(sku="SKU1", quantity=-2, location="WH--L1", transaction_date=datetime(2025, 11, 2, 8, 0))]


@pytest.fixture(autouse=True)
def test_config():
    set_config_for_test(log_level="WARNING")


@pytest.fixture
def data_dir(tmp_path):
    pd.DataFrame([
        {"tenant_id": 1, "name": "Acme", "tenant_token": "good", "user_token": "u"},
        {"tenant_id": 2, "name": "Broken", "tenant_token": "bad", "user_token": "u"},
        {"tenant_id": 3, "name": "Half", "tenant_token": "half", "user_token": None},
    ]).to_csv(tmp_path / "tenants.csv", index=False)
    pd.DataFrame([
        {"customer_id": 1, "tenant_id": 1, "name": "Acme Retail", "email": "ops@acme.test", "membership_level": 2, "last_synced_at": "2025-10-30 00:00:00"},
        {"customer_id": 2, "tenant_id": 2, "name": "Broken Co", "email": "ops@broken.test", "membership_level": 4, "last_synced_at": None},
        {"customer_id": 3, "tenant_id": 3, "name": "Half Co", "email": "ops@half.test", "membership_level": 1, "last_synced_at": None},
    ]).to_csv(tmp_path / "customers.csv", index=False)
    return tmp_path


@pytest.fixture
def store(data_dir):
    return CsvInventoryStore(data_dir)


@pytest.fixture
def fake_client():
    return FakeSkuVaultClient(rejected={"bad"})
