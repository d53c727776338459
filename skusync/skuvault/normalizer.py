"""Turn SkuVault response bodies into typed records.

SkuVault is inconsistent about where it puts the records of a list endpoint:
under the documented key (``{"Products": [...]}``), inside a ``Data``
envelope, or as a bare top-level array. ``normalize`` tries those shapes in
that order and returns the first one that decodes.

Inventory and transactions have structurally different payloads and get
dedicated flatteners. Both tolerate individual bad entries (skipped and
logged) but fail the whole response when the expected container is missing.
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Sequence, Type, TypeVar

import pandas as pd
from pydantic import BaseModel, TypeAdapter, ValidationError

from skusync.logging import get_logger
from skusync.util import truncate, utcnow

from .errors import MalformedResponse
from .models import ExternalInventoryRecord, ExternalMovementRecord

T = TypeVar("T", bound=BaseModel)

# An attempt returns the decoded list, or None when the body is not in its shape.
DecodeAttempt = Callable[[Any, str, Type[T]], Optional[List[T]]]


class FieldDecodeError(ValueError):
    """A single field could not be decoded into its target type."""


# ---------- shape helpers ----------

def _parse_json(raw: str, what: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError as e:
        raise MalformedResponse(f"Invalid JSON for '{what}': {e}. Raw: {truncate(raw)}", body_preview=truncate(raw)) from e


def _get_key(obj: dict, key: str) -> Any:
    """Exact key first, then a case-insensitive match."""
    if key in obj:
        return obj[key]
    lowered = key.lower()
    for name, value in obj.items():
        if isinstance(name, str) and name.lower() == lowered:
            return value
    return None


def _decode_list(items: list, model: Type[T]) -> Optional[List[T]]:
    try:
        return TypeAdapter(List[model]).validate_python(items)
    except ValidationError:
        return None


# ---------- generic list normalizer ----------

def _from_named_array(doc: Any, key: str, model: Type[T]) -> Optional[List[T]]:
    if isinstance(doc, dict):
        items = _get_key(doc, key)
        if isinstance(items, list):
            return _decode_list(items, model)
    return None


def _from_data_envelope(doc: Any, key: str, model: Type[T]) -> Optional[List[T]]:
    if isinstance(doc, dict):
        items = _get_key(doc, "Data")
        if isinstance(items, list):
            return _decode_list(items, model)
    return None


def _from_bare_array(doc: Any, key: str, model: Type[T]) -> Optional[List[T]]:
    if isinstance(doc, list):
        return _decode_list(doc, model)
    return None


DECODE_ATTEMPTS: Sequence[DecodeAttempt] = (
    _from_named_array,
    _from_data_envelope,
    _from_bare_array,
)


def normalize(raw: str, expected_array_key: str, model: Type[T], logger=None) -> List[T]:
    """Decode a list endpoint body into ``model`` records.

    Args:
        raw (str): Response body.
        expected_array_key (str): Documented top-level key, e.g. ``"Products"``.
        model (Type[T]): Record type for each element.
        logger: Optional loguru logger; defaults to this module's logger.
    Returns:
        List[T]: Decoded records, empty for an empty body.
    Raises:
        MalformedResponse: If no known shape decodes.
    """
    log = logger or get_logger(__name__)
    if not raw or not raw.strip():
        log.warning(f"Received empty response for {expected_array_key}")
        return []

    try:
        doc = json.loads(raw)
    except ValueError:
        doc = None

    if doc is not None:
        for attempt in DECODE_ATTEMPTS:
            records = attempt(doc, expected_array_key, model)
            if records is not None:
                log.info(f"Decoded {len(records)} {model.__name__} via {attempt.__name__.lstrip('_')}")
                return records

    preview = truncate(raw)
    log.error(f"Unexpected response shape for '{expected_array_key}'. Raw (first 500): {preview}")
    raise MalformedResponse(f"Unexpected response shape for '{expected_array_key}'. Raw: {preview}", body_preview=preview)


# ---------- per-field decoders ----------

def decode_int(value: Any) -> int:
    """JSON number or numeric string; anything else is 0."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise FieldDecodeError(f"{value!r} is not an integer")
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return 0
    return 0


def decode_str(value: Any) -> Optional[str]:
    """String, stringified number/boolean, raw JSON for nested values; None for null."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value)


def decode_datetime(value: Any, default: datetime) -> datetime:
    """Parse a date string to naive UTC; ``default`` when absent or unparseable."""
    if not isinstance(value, str) or not value.strip():
        return default
    parsed = pd.to_datetime(value, errors="coerce")
    if pd.isna(parsed):
        return default
    parsed = parsed.to_pydatetime()
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


# ---------- dedicated flatteners ----------

def flatten_inventory(raw: str, logger=None) -> List[ExternalInventoryRecord]:
    """Flatten ``{"Items": {"SKU": [{"WarehouseCode", "LocationCode", "Quantity"}]}}``.

    One record per (sku, entry). The endpoint reports a single quantity, so
    available mirrors on hand and allocated is 0.
    """
    log = logger or get_logger(__name__)
    if not raw or not raw.strip():
        log.warning("Received empty inventory response")
        return []

    log.info(f"Parsing inventory dictionary. Raw length: {len(raw)}")
    doc = _parse_json(raw, "Items")
    items = doc.get("Items") if isinstance(doc, dict) else None
    if items is None:
        raise MalformedResponse(f"Unexpected inventory response: no 'Items' property. Raw: {truncate(raw)}", body_preview=truncate(raw))
    if not isinstance(items, dict):
        raise MalformedResponse(f"Unexpected inventory response: 'Items' is not an object. Raw: {truncate(raw)}", body_preview=truncate(raw))

    records: List[ExternalInventoryRecord] = []
    for sku, entries in items.items():
        if not isinstance(entries, list):
            log.warning(f"SKU '{sku}' value is not an array, skipping")
            continue
        for entry in entries:
            try:
                if not isinstance(entry, dict):
                    raise FieldDecodeError(f"entry is {type(entry).__name__}, not an object")
                quantity = decode_int(entry.get("Quantity"))
                records.append(ExternalInventoryRecord(
                    sku=sku,
                    location_code=decode_str(entry.get("LocationCode")) or "",
                    quantity_on_hand=quantity,
                    quantity_available=quantity,
                    quantity_allocated=0,
                ))
            except (FieldDecodeError, ValidationError) as e:
                log.warning(f"Failed to parse location data for SKU '{sku}': {e}")

    log.info(f"Parsed {len(records)} inventory entries across {len(items)} SKUs")
    return records


def _decode_transaction(item: Any, now: datetime) -> ExternalMovementRecord:
    if not isinstance(item, dict):
        raise FieldDecodeError(f"transaction is {type(item).__name__}, not an object")
    return ExternalMovementRecord(
        sku=decode_str(item.get("Sku")) or "",
        location=decode_str(item.get("Location")),
        quantity=decode_int(item.get("Quantity")),
        quantity_before=decode_int(item.get("QuantityBefore")),
        quantity_after=decode_int(item.get("QuantityAfter")),
        transaction_reason=decode_str(item.get("TransactionReason")),
        transaction_note=decode_str(item.get("TransactionNote")),
        user=decode_str(item.get("User")),
        transaction_type=decode_str(item.get("TransactionType")),
        context=decode_str(item.get("Context")),
        transaction_date=decode_datetime(item.get("TransactionDate"), now),
    )


def flatten_transactions(raw: str, now: Optional[datetime] = None, logger=None) -> List[ExternalMovementRecord]:
    """Decode ``{"Transactions": [...]}`` field by field.

    A missing or unparseable ``TransactionDate`` becomes ``now`` (current UTC
    time by default) instead of dropping the record.
    """
    log = logger or get_logger(__name__)
    if not raw or not raw.strip():
        log.warning("Received empty transactions response")
        return []

    doc = _parse_json(raw, "Transactions")
    transactions = doc.get("Transactions") if isinstance(doc, dict) else None
    if not isinstance(transactions, list):
        log.warning("'Transactions' property missing or not an array")
        raise MalformedResponse(f"Unexpected response shape for 'Transactions'. Raw: {truncate(raw)}", body_preview=truncate(raw))

    log.info(f"Transactions array contains {len(transactions)} items")
    records: List[ExternalMovementRecord] = []
    for item in transactions:
        try:
            records.append(_decode_transaction(item, now or utcnow()))
        except (FieldDecodeError, ValidationError) as e:
            log.warning(f"Failed to parse a transaction item ({e}). Item JSON: {truncate(json.dumps(item, default=str))}")

    log.info(f"Parsed {len(records)} transaction items successfully")
    return records
