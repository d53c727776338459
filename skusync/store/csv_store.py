from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from skusync.logging import get_logger
from skusync.lowstock.models import InventoryLevel, ThresholdRule
from skusync.reports.access import MembershipLevel
from skusync.skuvault.models import (
    ExternalInventoryRecord,
    ExternalLocationRecord,
    ExternalMovementRecord,
    ExternalProductRecord,
)
from skusync.util import utcnow

from .interface import CustomerAccount, InventoryStore, UpsertResult

COLUMNS: Dict[str, List[str]] = {
    "tenants": ["tenant_id", "name", "tenant_token", "user_token"],
    "customers": ["customer_id", "tenant_id", "name", "email", "membership_level", "last_synced_at"],
    "products": ["product_id", "customer_id", "sku", "name", "description", "category", "cost", "price", "created_at", "updated_at"],
    "locations": ["location_id", "customer_id", "code", "name", "warehouse", "is_active", "created_at", "updated_at"],
    "inventory_levels": ["customer_id", "product_id", "location_id", "quantity_on_hand", "quantity_available", "quantity_allocated", "updated_at"],
    "low_stock_thresholds": ["customer_id", "product_id", "location_id", "threshold_quantity", "is_active"],
    "transactions": [
        "transaction_id", "customer_id", "dedup_key", "product_id", "location_id", "sku", "quantity",
        "quantity_before", "quantity_after", "transaction_type", "transaction_reason", "transaction_note",
        "context", "user", "performed_by", "transaction_date", "synced_at",
    ],
}

REQUIRED_TABLES = ["tenants", "customers"]

# Text columns keep leading zeros ("00123"). Natural keys are never read as
# missing, so a SKU or location code of "NA" or "NULL" survives a round trip.
TEXT_COLUMNS = {"sku": str, "code": str, "tenant_token": str, "user_token": str, "email": str, "dedup_key": str}
KEY_COLUMNS = {"sku", "code", "dedup_key"}
NA_VALUES = ["", "NaN", "nan", "NA", "N/A", "NULL", "null", "None"]
NULLABLE_INT_COLUMNS = {"location_id": "Int64"}
DATE_COLUMNS = {"last_synced_at", "created_at", "updated_at", "transaction_date", "synced_at"}


def _clean(value: Any) -> Any:
    """NaN/NaT/pd.NA -> None; numpy scalars -> Python scalars."""
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        return value
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if hasattr(value, "item"):
        return value.item()
    return value


def _as_bool(value: Any, default: bool = True) -> bool:
    value = _clean(value)
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def _as_datetime(value: Any) -> Optional[datetime]:
    value = _clean(value)
    if value is None:
        return None
    return pd.Timestamp(value).to_pydatetime()


def display_name_from_user(user: Optional[str]) -> str:
    """``jane.doe@example.com`` -> ``Jane Doe``; non-emails are returned as-is."""
    if not user or not user.strip():
        return "Unknown"
    if "@" not in user:
        return user
    local = user.split("@")[0].replace(".", " ").replace("_", " ")
    return " ".join(part[:1].upper() + part[1:].lower() for part in local.split(" ") if part)


class CsvInventoryStore(InventoryStore):
    """
    CSV-backed implementation of the persistence collaborator.
    - Loads CSVs from `data_dir` once at construction.
    - Upserts mutate the in-memory frames; `flush()` writes them back.
    - Not safe for concurrent writes to the same customer; the cycle drivers
      serialize work per customer.
    """

    def __init__(self, data_dir: str | Path, logger=None) -> None:
        self.data_dir = Path(data_dir)
        self.logger = logger or get_logger(__name__)
        self._tables = self._load_tables(self.data_dir)

    # ---------- loading / saving ----------

    @staticmethod
    def _load_tables(data_dir: Path) -> Dict[str, pd.DataFrame]:
        if not data_dir.exists():
            raise FileNotFoundError(
                f"Data directory not found: {data_dir}\n"
                f"Set DATA_DIR (environment or .env) to a directory containing "
                f"{', '.join(t + '.csv' for t in REQUIRED_TABLES)}"
            )

        missing_files = [f"{t}.csv" for t in REQUIRED_TABLES if not (data_dir / f"{t}.csv").exists()]
        if missing_files:
            raise FileNotFoundError(
                f"Required CSV files missing in {data_dir}:\n"
                f"  Missing: {', '.join(missing_files)}"
            )

        tables = {}
        try:
            for name, columns in COLUMNS.items():
                path = data_dir / f"{name}.csv"
                if not path.exists():
                    tables[name] = pd.DataFrame(columns=columns)
                    continue
                header = pd.read_csv(path, nrows=0).columns
                dtypes = {c: t for c, t in {**TEXT_COLUMNS, **NULLABLE_INT_COLUMNS}.items() if c in header}
                dates = [c for c in header if c in DATE_COLUMNS]
                na_values = {c: NA_VALUES for c in header if c not in KEY_COLUMNS}
                df = pd.read_csv(path, dtype=dtypes, parse_dates=dates, keep_default_na=False, na_values=na_values)
                tables[name] = df.reindex(columns=columns)
        except Exception as e:
            raise RuntimeError(
                f"Error reading CSV files from {data_dir}: {e}\n"
                f"Please check that the CSV files are valid and readable."
            ) from e
        return tables

    def flush(self) -> None:
        """Write every table back to `data_dir`."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        for name, df in self._tables.items():
            df.to_csv(self.data_dir / f"{name}.csv", index=False)
        self.logger.info(f"Flushed {len(self._tables)} tables to {self.data_dir}")

    # ---------- row helpers ----------

    def _rows(self, name: str) -> List[Dict[str, Any]]:
        return [{k: _clean(v) for k, v in row.items()} for row in self._tables[name].to_dict("records")]

    def _replace(self, name: str, rows: List[Dict[str, Any]]) -> None:
        df = pd.DataFrame(rows, columns=COLUMNS[name])
        for col, dtype in NULLABLE_INT_COLUMNS.items():
            if col in df.columns:
                df[col] = df[col].astype(dtype)
        self._tables[name] = df

    @staticmethod
    def _next_id(rows: Iterable[Dict[str, Any]], id_col: str) -> int:
        return max((int(r[id_col]) for r in rows if r.get(id_col) is not None), default=0) + 1

    def _upsert(
        self,
        name: str,
        key_cols: Tuple[str, ...],
        incoming: Iterable[Dict[str, Any]],
        id_col: Optional[str] = None,
    ) -> UpsertResult:
        """Update rows matching on ``key_cols``, append the rest."""
        now = utcnow()
        rows = self._rows(name)
        by_key = {tuple(r[c] for c in key_cols): r for r in rows}
        next_id = self._next_id(rows, id_col) if id_col else None
        result = UpsertResult()
        for values in incoming:
            key = tuple(values[c] for c in key_cols)
            existing = by_key.get(key)
            if existing is not None:
                existing.update(values, updated_at=now)
                result.updated += 1
                continue
            row = {**values, "updated_at": now}
            if "created_at" in COLUMNS[name]:
                row["created_at"] = now
            if id_col:
                row[id_col] = next_id
                next_id += 1
            rows.append(row)
            by_key[key] = row
            result.added += 1
        self._replace(name, rows)
        return result

    def _product_ids(self, customer_id: int) -> Dict[str, int]:
        return {r["sku"]: r["product_id"] for r in self._rows("products") if r["customer_id"] == customer_id}

    def _location_ids(self, customer_id: int) -> Dict[str, int]:
        return {r["code"]: r["location_id"] for r in self._rows("locations") if r["customer_id"] == customer_id}

    # ---------- customers ----------

    def _accounts(self) -> List[CustomerAccount]:
        tenants = {r["tenant_id"]: r for r in self._rows("tenants")}
        accounts = []
        for row in self._rows("customers"):
            tenant = tenants.get(row["tenant_id"], {})
            level = row.get("membership_level")
            accounts.append(CustomerAccount(
                customer_id=row["customer_id"],
                tenant_id=row["tenant_id"],
                name=row.get("name") or "",
                email=row.get("email"),
                membership_level=MembershipLevel(int(level)) if level is not None else MembershipLevel.BASIC,
                tenant_token=tenant.get("tenant_token"),
                user_token=tenant.get("user_token"),
                last_synced_at=_as_datetime(row.get("last_synced_at")),
            ))
        return accounts

    def list_sync_customers(self) -> List[CustomerAccount]:
        return [a for a in self._accounts() if a.tenant_token]

    def list_notification_customers(self) -> List[CustomerAccount]:
        return [a for a in self._accounts() if a.email and a.email.strip()]

    def get_customer(self, customer_id: int) -> CustomerAccount:
        for account in self._accounts():
            if account.customer_id == customer_id:
                return account
        raise KeyError(f"Customer {customer_id} not found")

    def mark_synced(self, customer_id: int, synced_at: datetime) -> None:
        rows = self._rows("customers")
        for row in rows:
            if row["customer_id"] == customer_id:
                row["last_synced_at"] = synced_at
        self._replace("customers", rows)

    # ---------- reconcile ----------

    def upsert_products(self, customer_id: int, records: Sequence[ExternalProductRecord]) -> UpsertResult:
        result = self._upsert(
            "products",
            ("customer_id", "sku"),
            (
                {
                    "customer_id": customer_id,
                    "sku": r.sku,
                    "name": r.description,
                    "description": r.long_description,
                    "category": r.classification,
                    "cost": float(r.cost) if r.cost is not None else None,
                    "price": float(r.retail_price) if r.retail_price is not None else None,
                }
                for r in records
            ),
            id_col="product_id",
        )
        self.logger.info(f"Saved {result.added} new and {result.updated} updated products for customer {customer_id}")
        return result

    def upsert_locations(self, customer_id: int, records: Sequence[ExternalLocationRecord]) -> UpsertResult:
        result = self._upsert(
            "locations",
            ("customer_id", "code"),
            (
                {
                    "customer_id": customer_id,
                    "code": r.location_code,
                    "name": r.location_name,
                    "warehouse": r.warehouse_name,
                    "is_active": r.is_active,
                }
                for r in records
            ),
            id_col="location_id",
        )
        self.logger.info(f"Saved {result.added} new and {result.updated} updated locations for customer {customer_id}")
        return result

    def upsert_inventory_levels(self, customer_id: int, records: Sequence[ExternalInventoryRecord]) -> UpsertResult:
        products = self._product_ids(customer_id)
        locations = self._location_ids(customer_id)
        skipped = 0
        incoming = []
        for r in records:
            if r.sku not in products:
                self.logger.warning(f"Product SKU {r.sku} not found for customer {customer_id}")
                skipped += 1
                continue
            if r.location_code not in locations:
                self.logger.warning(f"Location {r.location_code} not found for customer {customer_id} - skipping inventory record")
                skipped += 1
                continue
            incoming.append({
                "customer_id": customer_id,
                "product_id": products[r.sku],
                "location_id": locations[r.location_code],
                "quantity_on_hand": r.quantity_on_hand,
                "quantity_available": r.quantity_available,
                "quantity_allocated": r.quantity_allocated,
            })
        result = self._upsert("inventory_levels", ("customer_id", "product_id", "location_id"), incoming)
        result.skipped = skipped
        return result

    def add_movements(self, customer_id: int, records: Sequence[ExternalMovementRecord]) -> UpsertResult:
        products = self._product_ids(customer_id)
        locations = self._location_ids(customer_id)
        rows = self._rows("transactions")
        seen = {r["dedup_key"] for r in rows if r["customer_id"] == customer_id}
        next_id = self._next_id(rows, "transaction_id")
        now = utcnow()
        result = UpsertResult()
        for r in records:
            if r.sku not in products:
                self.logger.warning(f"Product SKU {r.sku} not found for customer {customer_id}, skipping transaction")
                result.skipped += 1
                continue
            if r.dedup_key in seen:
                self.logger.debug(f"Transaction {r.dedup_key} already exists, skipping")
                result.skipped += 1
                continue
            rows.append({
                "transaction_id": next_id,
                "customer_id": customer_id,
                "dedup_key": r.dedup_key,
                "product_id": products[r.sku],
                "location_id": locations.get(r.location_code) if r.location_code else None,
                "sku": r.sku,
                "quantity": r.quantity,
                "quantity_before": r.quantity_before,
                "quantity_after": r.quantity_after,
                "transaction_type": r.transaction_type,
                "transaction_reason": r.transaction_reason,
                "transaction_note": r.transaction_note,
                "context": r.context,
                "user": r.user,
                "performed_by": display_name_from_user(r.user),
                "transaction_date": r.transaction_date,
                "synced_at": now,
            })
            seen.add(r.dedup_key)
            next_id += 1
            result.added += 1
        self._replace("transactions", rows)
        self.logger.info(f"Synced {result.added} transactions for customer {customer_id} ({result.skipped} skipped)")
        return result

    # ---------- evaluation reads ----------

    def list_inventory_levels(self, customer_id: int) -> List[InventoryLevel]:
        products = {r["product_id"]: r for r in self._rows("products") if r["customer_id"] == customer_id}
        locations = {r["location_id"]: r for r in self._rows("locations") if r["customer_id"] == customer_id}
        levels = []
        for row in self._rows("inventory_levels"):
            if row["customer_id"] != customer_id:
                continue
            product = products.get(row["product_id"])
            location = locations.get(row["location_id"])
            if product is None or location is None:
                continue
            levels.append(InventoryLevel(
                customer_id=customer_id,
                product_id=row["product_id"],
                location_id=row["location_id"],
                product_sku=product["sku"],
                product_name=product.get("name") or "",
                location_code=location["code"],
                location_name=location.get("name") or None,
                quantity_on_hand=row.get("quantity_on_hand") or 0,
                quantity_available=row.get("quantity_available") or 0,
                quantity_allocated=row.get("quantity_allocated") or 0,
            ))
        return levels

    def list_threshold_rules(self, customer_id: int) -> List[ThresholdRule]:
        return [
            ThresholdRule(
                customer_id=r["customer_id"],
                product_id=r["product_id"],
                location_id=r.get("location_id"),
                threshold_quantity=r["threshold_quantity"],
                is_active=_as_bool(r.get("is_active")),
            )
            for r in self._rows("low_stock_thresholds")
            if r["customer_id"] == customer_id
        ]
