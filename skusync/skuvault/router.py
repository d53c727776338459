"""Fallback routes tried after SkuVault answers 404.

Deployments and docs have drifted over time between ``inventory/getLocations``,
``Inventory/GetLocations`` and friends, and between base URLs with and without
``/api``. The order below is fixed so a failing sync is reproducible.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Tuple

PUBLIC_BASE_URL = "https://app.skuvault.com"

KNOWN_ALTERNATES: Dict[str, Tuple[str, ...]] = {
    "products/getproducts": ("Products/GetProducts",),
    "inventory/getlocations": ("Inventory/GetLocations", "getLocations", "locations/getLocations"),
    "inventory/getinventorybylocation": ("inventory/getInventory", "Inventory/GetInventoryByLocation"),
    "inventory/gettransactions": ("Inventory/GetTransactions",),
}


def _unique(candidates: Iterable[str]) -> List[str]:
    """Drop case-insensitive duplicates, keeping first-seen order."""
    seen = set()
    result = []
    for candidate in candidates:
        key = candidate.lower()
        if key not in seen:
            seen.add(key)
            result.append(candidate)
    return result


def capitalize_segments(path: str) -> str:
    """``inventory/getLocations`` -> ``Inventory/GetLocations``."""
    return "/".join(seg[:1].upper() + seg[1:] for seg in path.split("/"))


def alternate_paths(path: str) -> List[str]:
    """Relative paths to try, in order, after ``path`` returned 404.

    The capitalized variant is only included when it differs from ``path``;
    the primary path itself is never returned.
    """
    path = path.strip("/")
    candidates = []
    capitalized = capitalize_segments(path)
    if capitalized != path:
        candidates.append(capitalized)
    candidates.extend(KNOWN_ALTERNATES.get(path.lower(), ()))
    return _unique(c for c in candidates if c != path)


def alternate_base_urls(base_url: str, path: str) -> List[str]:
    """Absolute URLs to try once every relative alternate has failed.

    Most specific first: the configured base as-is, with ``/api`` and with
    ``/v1``, without a trailing ``/api``; then the public SkuVault base.
    """
    path = path.strip("/")
    urls = []
    trimmed = (base_url or "").rstrip("/")
    if trimmed:
        urls.append(f"{trimmed}/{path}")
        urls.append(f"{trimmed}/api/{path}")
        urls.append(f"{trimmed}/v1/{path}")
        if trimmed.lower().endswith("/api"):
            urls.append(f"{trimmed[:-4]}/{path}")
    urls.append(f"{PUBLIC_BASE_URL}/api/{path}")
    urls.append(f"{PUBLIC_BASE_URL}/{path}")
    return _unique(urls)
