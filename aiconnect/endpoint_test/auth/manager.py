"""Auth manager: selects a provider, consults the cache, applies fallback."""

import logging
from collections.abc import Mapping

from aiconnect.endpoint_test.auth.api_key import ApiKeyProvider
from aiconnect.endpoint_test.auth.base import CredentialProvider
from aiconnect.endpoint_test.auth.device_code import DeviceCodeProvider
from aiconnect.endpoint_test.auth.managed_identity import ManagedIdentityProvider
from aiconnect.endpoint_test.auth.manual_token import ManualTokenProvider
from aiconnect.endpoint_test.auth.service_principal import ServicePrincipalProvider
from aiconnect.endpoint_test.auth.token_cache import TokenCache
from aiconnect.endpoint_test.auth.token_exchange import TokenExchangeProvider
from aiconnect.endpoint_test.cloud import CloudSettings
from aiconnect.endpoint_test.errors import (
    AuthError,
    CompositeAuthError,
    ConfigError,
    NetworkError,
)
from aiconnect.endpoint_test.models.auth_config import AuthConfig, SingleAuthMethod
from aiconnect.endpoint_test.models.credential import Credential

logger = logging.getLogger(__name__)


def default_providers(
    cloud: CloudSettings, timeout: float
) -> dict[SingleAuthMethod, CredentialProvider]:
    """One provider instance per auth method."""
    return {
        "api_key": ApiKeyProvider(cloud, timeout),
        "manual_token": ManualTokenProvider(cloud, timeout),
        "service_principal": ServicePrincipalProvider(cloud, timeout),
        "device_code": DeviceCodeProvider(cloud, timeout),
        "managed_identity": ManagedIdentityProvider(cloud, timeout),
        "token_exchange": TokenExchangeProvider(cloud, timeout),
    }


class AuthManager:
    """Resolves auth configuration into a Credential."""

    def __init__(
        self,
        cloud: CloudSettings,
        cache: TokenCache,
        timeout: float = 30.0,
        providers: Mapping[SingleAuthMethod, CredentialProvider] | None = None,
    ) -> None:
        """Initialize with an explicitly owned token cache."""
        self.cloud = cloud
        self.cache = cache
        self.providers = (
            dict(providers) if providers is not None
            else default_providers(cloud, timeout)
        )

    async def resolve(self, auth: AuthConfig, region: str | None = None) -> Credential:
        """Resolve auth settings to a usable credential.

        Args:
            auth: Global or per-service auth settings
            region: Region of the service the credential is for

        Returns:
            Non-expired credential

        Raises:
            AuthError: If the credential could not be obtained
            NetworkError: If an identity endpoint could not be reached

        """
        if auth.method != "both":
            return await self._resolve_single(auth.method, auth, region)

        if auth.primary is None or auth.fallback is None:
            raise ConfigError("auth method 'both' requires primary and fallback")

        try:
            return await self._resolve_single(auth.primary, auth, region)
        except (AuthError, NetworkError) as primary_error:
            logger.warning(
                f"Primary auth method {auth.primary} failed "
                f"({primary_error.code}: {primary_error}), "
                f"trying fallback {auth.fallback}"
            )
            try:
                return await self._resolve_single(auth.fallback, auth, region)
            except (AuthError, NetworkError) as fallback_error:
                raise CompositeAuthError(primary_error, fallback_error) from (
                    fallback_error
                )

    async def _resolve_single(
        self, method: SingleAuthMethod, auth: AuthConfig, region: str | None
    ) -> Credential:
        provider = self.providers[method]
        pinned = auth.for_method(method)

        if not provider.cacheable:
            return await provider.acquire(pinned, region)

        scope, principal = provider.cache_key(pinned, region)
        key = (method, scope, principal)

        async with self.cache.lock(key):
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug(f"Using cached {method} credential {cached.masked()}")
                return cached

            logger.info(f"Acquiring {method} credential")
            credential = await provider.acquire(pinned, region)
            self.cache.put(key, credential)
            logger.info(f"Acquired {method} credential {credential.masked()}")
            return credential
