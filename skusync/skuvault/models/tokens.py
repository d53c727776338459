from __future__ import annotations

from pydantic import ConfigDict, Field

from .base import SkuVaultRecord


class AuthTokenPair(SkuVaultRecord):
    """Bearer credentials for one tenant's SkuVault account."""
    model_config = ConfigDict(frozen=True)

    tenant_token: str = Field(description="SkuVault tenant token")
    user_token: str = Field(description="SkuVault user token")

    def as_request_body(self) -> dict:
        return {"TenantToken": self.tenant_token, "UserToken": self.user_token}
