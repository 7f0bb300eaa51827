"""Configuration models for authentication methods."""

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator

SingleAuthMethod = Literal[
    "api_key",
    "manual_token",
    "service_principal",
    "device_code",
    "managed_identity",
    "token_exchange",
]
AuthMethod = SingleAuthMethod | Literal["both"]

AZURE_CLI_CLIENT_ID = "04b07795-8ddb-461a-bbee-02f9e1bf7b46"


class AuthConfig(BaseModel):
    """Authentication settings, global or per service."""

    method: AuthMethod = Field(default="api_key", description="Auth method to use")
    primary: SingleAuthMethod | None = Field(
        default=None, description="First method tried when method is 'both'"
    )
    fallback: SingleAuthMethod | None = Field(
        default=None, description="Method tried when the primary one fails"
    )
    api_key: SecretStr | None = Field(
        default=None, description="Cognitive Services resource key"
    )
    bearer_token: SecretStr | None = Field(
        default=None, description="Pre-obtained bearer token"
    )
    token_expires_at: datetime | None = Field(
        default=None, description="Expiry of the manually supplied bearer token"
    )
    tenant_id: str | None = Field(default=None, description="Entra ID tenant")
    client_id: str | None = Field(
        default=None, description="Application (client) id"
    )
    client_secret: SecretStr | None = Field(
        default=None, description="Service principal client secret"
    )
    managed_identity_client_id: str | None = Field(
        default=None, description="Client id of a user-assigned managed identity"
    )
    token_exchange_endpoint: str | None = Field(
        default=None, description="Override for the issueToken endpoint"
    )

    @field_validator("token_expires_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @model_validator(mode="after")
    def _check_required_fields(self) -> "AuthConfig":
        if self.method == "both":
            if self.primary is None or self.fallback is None:
                raise ValueError("method 'both' requires 'primary' and 'fallback'")
            if self.primary == self.fallback:
                raise ValueError("'primary' and 'fallback' must differ")
            methods: list[SingleAuthMethod] = [self.primary, self.fallback]
        else:
            methods = [self.method]

        for method in methods:
            missing = [
                name for name in _REQUIRED_FIELDS[method] if getattr(self, name) is None
            ]
            if missing:
                raise ValueError(
                    f"auth method '{method}' requires: {', '.join(missing)}"
                )
        return self

    def device_client_id(self) -> str:
        """Client id used by the device-code flow."""
        return self.client_id or AZURE_CLI_CLIENT_ID

    def for_method(self, method: SingleAuthMethod) -> "AuthConfig":
        """Copy of this config pinned to a single method."""
        return self.model_copy(
            update={"method": method, "primary": None, "fallback": None}
        )


_REQUIRED_FIELDS: dict[SingleAuthMethod, tuple[str, ...]] = {
    "api_key": ("api_key",),
    "manual_token": ("bearer_token",),
    "service_principal": ("tenant_id", "client_id", "client_secret"),
    "device_code": ("tenant_id",),
    "managed_identity": (),
    "token_exchange": ("api_key",),
}
