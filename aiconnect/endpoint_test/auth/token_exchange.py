"""Short-lived token exchange (API key -> bearer token) provider."""

import hashlib
import logging
from datetime import UTC, datetime, timedelta

import aiohttp
from pydantic import SecretStr

from aiconnect.endpoint_test.auth.base import CredentialProvider
from aiconnect.endpoint_test.errors import (
    ConfigError,
    CredentialsRejectedError,
    classify_transport_error,
)
from aiconnect.endpoint_test.models.auth_config import AuthConfig
from aiconnect.endpoint_test.models.credential import Credential

logger = logging.getLogger(__name__)

TOKEN_LIFETIME = timedelta(minutes=10)


class TokenExchangeProvider(CredentialProvider):
    """Exchanges a resource key at the issueToken endpoint."""

    method = "token_exchange"

    def exchange_url(self, auth: AuthConfig, region: str | None) -> str:
        """Exchange endpoint: explicit override or the regional default."""
        if auth.token_exchange_endpoint:
            return auth.token_exchange_endpoint
        if not region:
            raise ConfigError(
                "token_exchange needs token_exchange_endpoint or a service region"
            )
        return self.cloud.sts_url(region)

    def cache_key(self, auth: AuthConfig, region: str | None = None) -> tuple[str, str]:
        """Tokens are only valid for the region and key they were issued for."""
        key = auth.api_key.get_secret_value() if auth.api_key else ""
        fingerprint = hashlib.sha256(key.encode()).hexdigest()[:12]
        return (self.exchange_url(auth, region), fingerprint)

    async def acquire(self, auth: AuthConfig, region: str | None = None) -> Credential:
        """POST the key and wrap the returned JWT."""
        if auth.api_key is None:
            raise CredentialsRejectedError("Token exchange requires an api_key")

        url = self.exchange_url(auth, region)
        logger.info(f"Exchanging API key for a token at {url}")
        issued_at = datetime.now(UTC)

        try:
            async with aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as session:
                headers = {
                    "Ocp-Apim-Subscription-Key": auth.api_key.get_secret_value(),
                    "Content-Length": "0",
                }
                async with session.post(url, headers=headers) as response:
                    status = response.status
                    try:
                        text = await response.text()
                    except ValueError as e:
                        raise CredentialsRejectedError(
                            f"Undecodable token exchange response from {url}: {e}"
                        ) from e
        except (aiohttp.ClientError, TimeoutError) as e:
            raise classify_transport_error(e) from e

        if status != 200:
            raise CredentialsRejectedError(
                f"Token exchange rejected ({status}): {text[:200]}"
            )

        token = text.strip()
        if not token:
            raise CredentialsRejectedError("Token exchange returned an empty token")

        return Credential(
            kind="bearer",
            value=SecretStr(token),
            expires_at=issued_at + TOKEN_LIFETIME,
            scope=url,
            method=self.method,
        )
