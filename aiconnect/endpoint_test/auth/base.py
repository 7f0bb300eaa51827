"""Abstract base class for credential providers."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta

import aiohttp
from pydantic import SecretStr

from aiconnect.endpoint_test.cloud import CloudSettings
from aiconnect.endpoint_test.errors import (
    ConnectionFailedError,
    CredentialsRejectedError,
    classify_transport_error,
)
from aiconnect.endpoint_test.models.auth_config import AuthConfig
from aiconnect.endpoint_test.models.credential import Credential


class CredentialProvider(ABC):
    """Turns an auth configuration into a Credential."""

    method: str = ""
    cacheable: bool = True

    def __init__(self, cloud: CloudSettings, timeout: float = 30.0) -> None:
        """Initialize provider for a cloud with a per-request timeout."""
        self.cloud = cloud
        self.timeout = timeout

    @abstractmethod
    async def acquire(self, auth: AuthConfig, region: str | None = None) -> Credential:
        """Obtain a fresh credential.

        Args:
            auth: Auth settings pinned to this provider's method
            region: Region of the service the credential is for

        Returns:
            Resolved credential

        Raises:
            AuthError: If the identity provider refuses or the flow fails
            NetworkError: If the identity endpoint cannot be reached

        """

    def cache_key(self, auth: AuthConfig, region: str | None = None) -> tuple[str, str]:
        """Scope and principal used to key the token cache."""
        return (self.cloud.cognitive_scope, auth.client_id or "")

    async def _post_form(
        self, url: str, form: Mapping[str, str]
    ) -> tuple[int, Mapping[str, object]]:
        """POST a form to an OAuth2 endpoint and decode the JSON answer."""
        try:
            async with aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as session:
                async with session.post(url, data=dict(form)) as response:
                    status = response.status
                    try:
                        data = await response.json(content_type=None)
                    except ValueError as e:
                        if status >= 500:
                            raise ConnectionFailedError(
                                f"Identity endpoint {url} unavailable ({status})"
                            ) from e
                        raise CredentialsRejectedError(
                            f"Invalid JSON from {url}: {e}"
                        ) from e
        except (aiohttp.ClientError, TimeoutError) as e:
            raise classify_transport_error(e) from e

        if not isinstance(data, dict):
            raise CredentialsRejectedError(f"Unexpected token response from {url}")
        return status, data


def token_from_response(
    data: Mapping[str, object], scope: str, method: str
) -> Credential:
    """Build a bearer credential from an OAuth2 / IMDS token response.

    Accepts either ``expires_in`` (seconds from now) or ``expires_on``
    (epoch seconds), both of which may arrive as strings.

    Raises:
        CredentialsRejectedError: If the response carries no access token

    """
    token = data.get("access_token")
    if not isinstance(token, str) or not token:
        raise CredentialsRejectedError("Token response has no access_token")

    expires_at = None
    try:
        if data.get("expires_on") is not None:
            expires_at = datetime.fromtimestamp(float(str(data["expires_on"])), UTC)
        elif data.get("expires_in") is not None:
            expires_at = datetime.now(UTC) + timedelta(
                seconds=float(str(data["expires_in"]))
            )
    except ValueError as e:
        raise CredentialsRejectedError(f"Invalid token expiry: {e}") from e

    return Credential(
        kind="bearer",
        value=SecretStr(token),
        expires_at=expires_at,
        scope=scope,
        method=method,
    )


def oauth_error(data: Mapping[str, object]) -> str:
    """Extract an OAuth2 error summary from a token endpoint response."""
    error = data.get("error", "unknown_error")
    description = data.get("error_description")
    if isinstance(description, str) and description:
        return f"{error}: {description.splitlines()[0]}"
    return str(error)
