"""Manually supplied bearer token provider."""

from datetime import UTC, datetime

from aiconnect.endpoint_test.auth.base import CredentialProvider
from aiconnect.endpoint_test.errors import CredentialsRejectedError, InvalidInputError
from aiconnect.endpoint_test.models.auth_config import AuthConfig
from aiconnect.endpoint_test.models.credential import Credential

# JWTs are far longer; anything shorter is a copy/paste mistake.
MIN_TOKEN_LENGTH = 20


def validate_bearer_token(token: str) -> None:
    """Sanity-check a pre-obtained bearer token.

    Raises:
        InvalidInputError: If the token is empty or implausibly short

    """
    if not token.strip():
        raise InvalidInputError("Bearer token cannot be empty")

    if len(token) < MIN_TOKEN_LENGTH:
        raise InvalidInputError("Bearer token appears to be too short")


class ManualTokenProvider(CredentialProvider):
    """Passes a pre-obtained token through, honouring a supplied expiry."""

    method = "manual_token"
    cacheable = False

    async def acquire(self, auth: AuthConfig, region: str | None = None) -> Credential:
        """Return the configured token as a bearer credential."""
        if auth.bearer_token is None:
            raise CredentialsRejectedError("No bearer token configured")

        try:
            validate_bearer_token(auth.bearer_token.get_secret_value())
        except InvalidInputError as e:
            raise CredentialsRejectedError(str(e)) from e

        credential = Credential(
            kind="bearer",
            value=auth.bearer_token,
            expires_at=auth.token_expires_at,
            scope=self.cloud.cognitive_scope,
            method=self.method,
        )
        if credential.is_expired(now=datetime.now(UTC)):
            raise CredentialsRejectedError(
                f"Bearer token expired at {auth.token_expires_at}"
            )

        return credential
