"""Managed identity provider (IMDS and App Service identity endpoint)."""

import logging
import os
from collections.abc import Mapping

import aiohttp

from aiconnect.endpoint_test.auth.base import CredentialProvider, token_from_response
from aiconnect.endpoint_test.cloud import CloudSettings
from aiconnect.endpoint_test.errors import (
    CredentialsRejectedError,
    EnvironmentUnsupportedError,
)
from aiconnect.endpoint_test.models.auth_config import AuthConfig
from aiconnect.endpoint_test.models.credential import Credential

logger = logging.getLogger(__name__)

IMDS_TOKEN_URL = "http://169.254.169.254/metadata/identity/oauth2/token"
IMDS_API_VERSION = "2018-02-01"
APP_SERVICE_API_VERSION = "2019-08-01"


class ManagedIdentityProvider(CredentialProvider):
    """Queries the local platform metadata endpoint for a token."""

    method = "managed_identity"

    def __init__(
        self,
        cloud: CloudSettings,
        timeout: float = 30.0,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize; environ selects App Service vs IMDS."""
        super().__init__(cloud, timeout)
        self.environ = os.environ if environ is None else environ

    def cache_key(self, auth: AuthConfig, region: str | None = None) -> tuple[str, str]:
        """Key tokens by resource and identity (system or user-assigned)."""
        return (
            self.cloud.cognitive_resource,
            auth.managed_identity_client_id or "system",
        )

    async def acquire(self, auth: AuthConfig, region: str | None = None) -> Credential:
        """Fetch a token for the Cognitive Services resource."""
        url, params, headers = self._build_request(auth.managed_identity_client_id)
        identity = auth.managed_identity_client_id or "system-assigned"
        logger.info(f"Requesting managed identity token ({identity}) from {url}")

        try:
            async with aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as session:
                async with session.get(url, params=params, headers=headers) as response:
                    status = response.status
                    try:
                        data = await response.json(content_type=None)
                    except ValueError:
                        data = None
        except (aiohttp.ClientError, TimeoutError) as e:
            raise EnvironmentUnsupportedError(
                f"Managed identity endpoint unreachable ({url}): "
                f"{e or type(e).__name__}"
            ) from e

        if status == 404:
            raise EnvironmentUnsupportedError(
                f"No managed identity endpoint at {url} (404)"
            )

        if status != 200 or not isinstance(data, dict):
            reason = data.get("error_description") if isinstance(data, dict) else None
            raise CredentialsRejectedError(
                f"Managed identity ({identity}) rejected ({status}): "
                f"{reason or 'no token returned'}"
            )

        return token_from_response(data, self.cloud.cognitive_resource, self.method)

    def _build_request(
        self, client_id: str | None
    ) -> tuple[str, dict[str, str], dict[str, str]]:
        params = {"resource": self.cloud.cognitive_resource}
        if client_id:
            params["client_id"] = client_id

        endpoint = self.environ.get("IDENTITY_ENDPOINT")
        secret = self.environ.get("IDENTITY_HEADER")
        if endpoint and secret:
            params["api-version"] = APP_SERVICE_API_VERSION
            return endpoint, params, {"X-IDENTITY-HEADER": secret}

        params["api-version"] = IMDS_API_VERSION
        return IMDS_TOKEN_URL, params, {"Metadata": "true"}
