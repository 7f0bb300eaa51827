"""Resolved credential model."""

from datetime import UTC, datetime, timedelta
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr

CredentialKind = Literal["api_key", "bearer"]


class Credential(BaseModel):
    """Usable authentication artifact: API key header value or bearer token."""

    model_config = ConfigDict(frozen=True)

    kind: CredentialKind = Field(..., description="How the value is attached")
    value: SecretStr = Field(..., description="Secret key or token")
    expires_at: datetime | None = Field(
        default=None, description="Expiry; None means it never expires"
    )
    scope: str = Field(default="", description="Audience the credential is for")
    method: str = Field(default="", description="Auth method that produced it")

    def is_expired(
        self, now: datetime | None = None, leeway: timedelta = timedelta(0)
    ) -> bool:
        """Check expiry; API keys and tokens without expiry never expire."""
        if self.expires_at is None:
            return False
        now = now or datetime.now(UTC)
        return self.expires_at <= now + leeway

    def masked(self) -> str:
        """Value safe for logging."""
        secret = self.value.get_secret_value()
        return f"{secret[:4]}***" if len(secret) > 8 else "***"

    def auth_headers(self, api_key_header: str) -> dict[str, str]:
        """HTTP headers carrying this credential."""
        secret = self.value.get_secret_value()
        if self.kind == "api_key":
            return {api_key_header: secret}
        return {"Authorization": f"Bearer {secret}"}
