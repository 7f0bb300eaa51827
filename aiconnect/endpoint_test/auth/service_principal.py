"""Service principal (OAuth2 client credentials) provider."""

import logging

from aiconnect.endpoint_test.auth.base import (
    CredentialProvider,
    oauth_error,
    token_from_response,
)
from aiconnect.endpoint_test.errors import CredentialsRejectedError
from aiconnect.endpoint_test.models.auth_config import AuthConfig
from aiconnect.endpoint_test.models.credential import Credential

logger = logging.getLogger(__name__)


class ServicePrincipalProvider(CredentialProvider):
    """Client-credentials exchange against the tenant token endpoint."""

    method = "service_principal"

    def cache_key(self, auth: AuthConfig, region: str | None = None) -> tuple[str, str]:
        """Key tokens by scope and tenant/client pair."""
        return (self.cloud.cognitive_scope, f"{auth.tenant_id}/{auth.client_id}")

    async def acquire(self, auth: AuthConfig, region: str | None = None) -> Credential:
        """Request a token with the configured client secret."""
        if not auth.tenant_id or not auth.client_id or auth.client_secret is None:
            raise CredentialsRejectedError(
                "Service principal requires tenant_id, client_id and client_secret"
            )

        url = self.cloud.token_url(auth.tenant_id)
        logger.info(f"Requesting service principal token for client {auth.client_id}")

        status, data = await self._post_form(
            url,
            {
                "grant_type": "client_credentials",
                "client_id": auth.client_id,
                "client_secret": auth.client_secret.get_secret_value(),
                "scope": self.cloud.cognitive_scope,
            },
        )

        if status != 200:
            raise CredentialsRejectedError(
                f"Token request rejected ({status}): {oauth_error(data)}"
            )

        return token_from_response(data, self.cloud.cognitive_scope, self.method)
