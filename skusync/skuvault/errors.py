from __future__ import annotations

from typing import Optional


class SkuVaultError(Exception):
    """Base class for failures talking to the SkuVault API.

    ``body_preview`` is always a bounded slice of the upstream payload.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, body_preview: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body_preview = body_preview


class InvalidCredential(SkuVaultError):
    """Tenant/user token (or email/password) missing; raised before any request."""


class AuthenticationFailed(SkuVaultError):
    """Upstream answered 401."""


class UpstreamUnavailable(SkuVaultError):
    """Every routing alternate failed, or the network/timeout failed."""


class UpstreamError(SkuVaultError):
    """Any other non-success status, or a malformed token exchange."""


class MalformedResponse(SkuVaultError):
    """A success body whose structure matches none of the known shapes."""
