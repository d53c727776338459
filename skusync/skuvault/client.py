from __future__ import annotations

import json
from datetime import datetime, timedelta
from typing import Callable, List, Optional, TypeVar

import httpx

from skusync.logging import get_logger
from skusync.util import format_upstream_date, truncate, utcnow, PREVIEW_CHARS

from .errors import (
    AuthenticationFailed,
    InvalidCredential,
    UpstreamError,
    UpstreamUnavailable,
)
from .models import (
    AuthTokenPair,
    ExternalInventoryRecord,
    ExternalLocationRecord,
    ExternalMovementRecord,
    ExternalProductRecord,
)
from .normalizer import flatten_inventory, flatten_transactions, normalize
from .router import alternate_base_urls, alternate_paths

R = TypeVar("R")

DEFAULT_BASE_URL = "https://app.skuvault.com/api/"


class SkuVaultClient:
    """Read-only client for the SkuVault API.

    Every call is a POST whose JSON body carries the tenant/user token pair.
    The client keeps no per-tenant state, so one instance can serve many
    tenants; it does not refresh tokens (a 401 is final).

    Failures surface as the errors in ``skusync.skuvault.errors``: 401 is
    ``AuthenticationFailed``; 404 walks the fallback routes before giving up
    with ``UpstreamUnavailable``; network errors and timeouts are also
    ``UpstreamUnavailable``; any other status is ``UpstreamError``.
    """

    TOKENS_PATH = "getTokens"
    PRODUCTS_PATH = "products/getProducts"
    LOCATIONS_PATH = "inventory/getLocations"
    INVENTORY_PATH = "inventory/getInventoryByLocation"
    TRANSACTIONS_PATH = "inventory/getTransactions"

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        preview_chars: int = PREVIEW_CHARS,
        lookback_days: int = 7,
        transport: Optional[httpx.BaseTransport] = None,
        logger=None,
    ) -> None:
        self.base_url = base_url
        self.preview_chars = preview_chars
        self.lookback_days = lookback_days
        self.logger = logger or get_logger(__name__)
        self._http = httpx.Client(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    # ---------- lifecycle ----------

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "SkuVaultClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ---------- operations ----------

    def get_tokens(self, email: str, password: str) -> AuthTokenPair:
        """Exchange account credentials for a tenant/user token pair."""
        if not email or not email.strip() or not password or not password.strip():
            raise InvalidCredential("Email and password are required")

        response = self._send(self.TOKENS_PATH, {"Email": email, "Password": password})
        raw = response.text
        if not response.is_success:
            self.logger.error(f"SkuVault getTokens failed {response.status_code}: {self._preview(raw)}")
            if response.status_code == 401:
                raise AuthenticationFailed(
                    f"401: SkuVault rejected the credentials. Raw: {self._preview(raw)}",
                    status_code=401,
                    body_preview=self._preview(raw),
                )
            raise self._upstream_error(response.status_code, raw)

        try:
            doc = json.loads(raw)
        except ValueError as e:
            raise UpstreamError(f"Invalid getTokens response: {e}", status_code=response.status_code, body_preview=self._preview(raw)) from e

        tenant_token = doc.get("TenantToken") if isinstance(doc, dict) else None
        user_token = doc.get("UserToken") if isinstance(doc, dict) else None
        if not isinstance(tenant_token, str) or not isinstance(user_token, str) or not tenant_token.strip() or not user_token.strip():
            raise UpstreamError("SkuVault getTokens returned empty tokens", status_code=response.status_code, body_preview=self._preview(raw))

        self.logger.info("SkuVault tokens acquired successfully")
        return AuthTokenPair(tenant_token=tenant_token, user_token=user_token)

    def get_products(self, tokens: AuthTokenPair) -> List[ExternalProductRecord]:
        self._ensure_tokens(tokens)
        return self._post_with_fallback(
            self.PRODUCTS_PATH,
            tokens.as_request_body(),
            lambda raw: normalize(raw, "Products", ExternalProductRecord, logger=self.logger),
        )

    def get_locations(self, tokens: AuthTokenPair) -> List[ExternalLocationRecord]:
        self._ensure_tokens(tokens)
        return self._post_with_fallback(
            self.LOCATIONS_PATH,
            tokens.as_request_body(),
            lambda raw: normalize(raw, "Items", ExternalLocationRecord, logger=self.logger),
        )

    def get_inventory(self, tokens: AuthTokenPair) -> List[ExternalInventoryRecord]:
        self._ensure_tokens(tokens)
        return self._post_with_fallback(
            self.INVENTORY_PATH,
            tokens.as_request_body(),
            lambda raw: flatten_inventory(raw, logger=self.logger),
        )

    def get_movements(
        self,
        tokens: AuthTokenPair,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
    ) -> List[ExternalMovementRecord]:
        """Inventory transactions between ``from_date`` and ``to_date``.

        Defaults to the trailing ``lookback_days`` ending now (UTC).
        """
        self._ensure_tokens(tokens)
        now = utcnow()
        to_date = to_date or now
        from_date = from_date or (now - timedelta(days=self.lookback_days))
        body = {
            **tokens.as_request_body(),
            "FromDate": format_upstream_date(from_date),
            "ToDate": format_upstream_date(to_date),
        }
        self.logger.info(f"Fetching SkuVault transactions from {body['FromDate']} to {body['ToDate']}")
        return self._post_with_fallback(
            self.TRANSACTIONS_PATH,
            body,
            lambda raw: flatten_transactions(raw, logger=self.logger),
        )

    # ---------- transport helpers ----------

    @staticmethod
    def _ensure_tokens(tokens: Optional[AuthTokenPair]) -> None:
        if tokens is None:
            raise InvalidCredential("SkuVault token pair not provided")
        if not tokens.tenant_token or not tokens.tenant_token.strip():
            raise InvalidCredential("Tenant token is required")
        if not tokens.user_token or not tokens.user_token.strip():
            raise InvalidCredential("SkuVault UserToken not provided")

    def _preview(self, raw: str) -> str:
        return truncate(raw, self.preview_chars)

    def _send(self, url: str, body: dict) -> httpx.Response:
        try:
            return self._http.post(url, json=body)
        except httpx.TimeoutException as e:
            self.logger.warning(f"SkuVault call {url} timed out: {e}")
            raise UpstreamUnavailable(f"Timed out calling SkuVault {url}") from e
        except httpx.TransportError as e:
            self.logger.warning(f"SkuVault call {url} failed: {e}")
            raise UpstreamUnavailable(f"Could not reach SkuVault {url}: {e}") from e

    def _post_with_fallback(self, path: str, body: dict, parse: Callable[[str], R]) -> R:
        self.logger.info(f"SkuVault API call to {path}")
        response = self._send(path, body)
        if response.is_success:
            self.logger.info(f"SkuVault API call to {path} succeeded with {len(response.text)} bytes response")
            return parse(response.text)

        status = response.status_code
        self.logger.warning(f"SkuVault call {path} failed on first attempt with {status}. Body: {self._preview(response.text)}")

        if status == 401:
            self.logger.error("SkuVault 401 Unauthorized - check UserToken and TenantToken configuration")
            raise AuthenticationFailed(
                f"401: {self._error_detail(response.text)}",
                status_code=401,
                body_preview=self._preview(response.text),
            )

        if status != 404:
            raise self._upstream_error(status, response.text)

        primary_url = str(response.request.url)
        last = response
        for candidate in alternate_paths(path) + alternate_base_urls(str(self._http.base_url), path):
            if candidate == primary_url:
                continue
            self.logger.info(f"Trying alternate SkuVault route: {candidate}")
            try:
                last = self._send(candidate, body)
            except UpstreamUnavailable:
                continue
            if last.is_success:
                self.logger.info(f"SkuVault alternate route {candidate} succeeded")
                return parse(last.text)

        preview = self._preview(last.text)
        raise UpstreamUnavailable(
            f"SkuVault {path} not found on any known route; last status {last.status_code}. Raw: {preview}",
            status_code=last.status_code,
            body_preview=preview,
        )

    def _error_detail(self, raw: str) -> str:
        """Joined SkuVault ``Errors`` messages when present, else a raw preview."""
        try:
            doc = json.loads(raw)
        except ValueError:
            return self._preview(raw)
        errors = doc.get("Errors") if isinstance(doc, dict) else None
        if isinstance(errors, list):
            messages = [str(e) for e in errors if e]
            if messages:
                return self._preview("; ".join(messages))
        return self._preview(raw)

    def _upstream_error(self, status: int, raw: str) -> UpstreamError:
        return UpstreamError(
            f"{status}: {self._error_detail(raw)}",
            status_code=status,
            body_preview=self._preview(raw),
        )
