"""Static API key provider."""

from aiconnect.endpoint_test.auth.base import CredentialProvider
from aiconnect.endpoint_test.errors import CredentialsRejectedError
from aiconnect.endpoint_test.models.auth_config import AuthConfig
from aiconnect.endpoint_test.models.credential import Credential


class ApiKeyProvider(CredentialProvider):
    """Wraps a resource key; no network call, never expires."""

    method = "api_key"
    cacheable = False

    async def acquire(self, auth: AuthConfig, region: str | None = None) -> Credential:
        """Return the configured key as an API key credential."""
        if auth.api_key is None or not auth.api_key.get_secret_value().strip():
            raise CredentialsRejectedError("No API key configured")

        return Credential(
            kind="api_key",
            value=auth.api_key,
            scope="api_key",
            method=self.method,
        )
