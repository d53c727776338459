from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from .models import InventoryLevel, LowStockItem, ThresholdRule

RuleKey = Tuple[int, int, Optional[int]]


def index_rules(customer_id: int, threshold_rules: Iterable[ThresholdRule]) -> Dict[RuleKey, int]:
    """Active rules of one customer keyed by (customer, product, location).

    If the store violates the one-active-rule-per-key invariant, the first
    rule seen wins.
    """
    index: Dict[RuleKey, int] = {}
    for rule in threshold_rules:
        if not rule.is_active or rule.customer_id != customer_id:
            continue
        index.setdefault((rule.customer_id, rule.product_id, rule.location_id), rule.threshold_quantity)
    return index


def resolve_threshold(
    rules: Dict[RuleKey, int],
    customer_id: int,
    product_id: int,
    location_id: Optional[int],
    default_threshold: int,
) -> int:
    """Location rule, then product-wide rule, then the configured default."""
    specific = rules.get((customer_id, product_id, location_id))
    if specific is not None:
        return specific
    product_wide = rules.get((customer_id, product_id, None))
    if product_wide is not None:
        return product_wide
    return default_threshold


def evaluate(
    customer_id: int,
    inventory_levels: Iterable[InventoryLevel],
    threshold_rules: Iterable[ThresholdRule],
    default_threshold: int,
) -> List[LowStockItem]:
    """Under-threshold (product, location) pairs for one customer.

    A row is flagged when ``quantity_available <= threshold``. The result is
    sorted by product SKU then location name, so unchanged inputs always give
    the same list in the same order.
    """
    rules = index_rules(customer_id, threshold_rules)
    items = []
    for level in inventory_levels:
        if level.customer_id != customer_id:
            continue
        threshold = resolve_threshold(rules, customer_id, level.product_id, level.location_id, default_threshold)
        if level.quantity_available <= threshold:
            items.append(LowStockItem(
                product_sku=level.product_sku,
                product_name=level.product_name,
                location_name=level.location_name or level.location_code,
                current_quantity=level.quantity_available,
                threshold_quantity=threshold,
            ))
    return sorted(items, key=lambda item: (item.product_sku, item.location_name))
