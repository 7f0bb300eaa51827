"""Device code flow provider.

Displays a code that the operator enters at a Microsoft login page, then polls
the token endpoint until the flow completes, expires, or is declined.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Literal

import typer
from pydantic import BaseModel, Field

from aiconnect.endpoint_test.auth.base import (
    CredentialProvider,
    oauth_error,
    token_from_response,
)
from aiconnect.endpoint_test.cloud import CloudSettings
from aiconnect.endpoint_test.errors import (
    CredentialsRejectedError,
    FlowDeniedError,
    FlowExpiredError,
)
from aiconnect.endpoint_test.models.auth_config import AuthConfig
from aiconnect.endpoint_test.models.credential import Credential

logger = logging.getLogger(__name__)

DEVICE_CODE_GRANT = "urn:ietf:params:oauth:grant-type:device_code"
MAX_FLOW_DURATION = 15 * 60
DEFAULT_INTERVAL = 5

FlowState = Literal["pending", "polling", "completed", "expired", "denied"]


class DeviceCodeChallenge(BaseModel):
    """Device authorization response shown to the operator."""

    device_code: str = Field(..., description="Opaque code used while polling")
    user_code: str = Field(..., description="Code the user types in")
    verification_uri: str = Field(..., description="Where the user signs in")
    expires_in: int = Field(default=900, description="Flow lifetime in seconds")
    interval: int = Field(
        default=DEFAULT_INTERVAL, description="Seconds between polls"
    )
    message: str | None = Field(default=None, description="Server instructions")


def display_instructions(challenge: DeviceCodeChallenge) -> None:
    """Show sign-in instructions on stderr."""
    typer.echo("\n" + "=" * 70, err=True)
    typer.echo("  Azure Authentication Required", err=True)
    typer.echo("=" * 70 + "\n", err=True)
    typer.echo(f"  Please visit:  {challenge.verification_uri}\n", err=True)
    typer.echo(f"  And enter code:  {challenge.user_code}\n", err=True)
    typer.echo("=" * 70 + "\n", err=True)
    typer.echo("Waiting for authentication...\n", err=True)


class DeviceCodeFlow:
    """State machine for one device code authorization."""

    def __init__(
        self,
        challenge: DeviceCodeChallenge,
        clock: Callable[[], float],
    ) -> None:
        """Start in the pending state."""
        self.challenge = challenge
        self.state: FlowState = "pending"
        self.interval = float(challenge.interval or DEFAULT_INTERVAL)
        self.polls = 0
        self._clock = clock
        self._deadline = clock() + min(challenge.expires_in, MAX_FLOW_DURATION)

    def is_expired(self) -> bool:
        """Whether the flow lifetime has run out."""
        return self._clock() >= self._deadline

    def advance(self, status: int, data: Mapping[str, object]) -> bool:
        """Feed one token endpoint answer; return True once completed.

        Raises:
            FlowExpiredError: If the server reports the code expired
            FlowDeniedError: If the user declined
            CredentialsRejectedError: For any other OAuth2 error

        """
        self.state = "polling"
        self.polls += 1

        if status == 200:
            self.state = "completed"
            return True

        error = data.get("error")
        if error == "authorization_pending":
            return False
        if error == "slow_down":
            self.interval += self.challenge.interval or DEFAULT_INTERVAL
            return False
        if error in {"expired_token", "code_expired"}:
            self.state = "expired"
            raise FlowExpiredError("Device code expired. Please try again.")
        if error in {"access_denied", "authorization_declined"}:
            self.state = "denied"
            raise FlowDeniedError("User declined authorization")

        raise CredentialsRejectedError(
            f"Device code token request failed ({status}): {oauth_error(data)}"
        )


class DeviceCodeProvider(CredentialProvider):
    """Interactive device code flow; the one long-running acquisition."""

    method = "device_code"

    def __init__(
        self,
        cloud: CloudSettings,
        timeout: float = 30.0,
        prompt: Callable[[DeviceCodeChallenge], None] = display_instructions,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] | None = None,
    ) -> None:
        """Initialize with injectable prompt, sleep and monotonic clock."""
        super().__init__(cloud, timeout)
        self.prompt = prompt
        self.sleep = sleep
        self.clock = clock or (lambda: asyncio.get_running_loop().time())

    def cache_key(self, auth: AuthConfig, region: str | None = None) -> tuple[str, str]:
        """Key tokens by scope and tenant/client pair."""
        return (
            self.cloud.cognitive_scope,
            f"{auth.tenant_id}/{auth.device_client_id()}",
        )

    async def acquire(self, auth: AuthConfig, region: str | None = None) -> Credential:
        """Run the device code flow to completion."""
        if not auth.tenant_id:
            raise CredentialsRejectedError("Device code flow requires tenant_id")

        client_id = auth.device_client_id()
        challenge = await self._request_challenge(auth.tenant_id, client_id)
        self.prompt(challenge)

        flow = DeviceCodeFlow(challenge, self.clock)
        token_url = self.cloud.token_url(auth.tenant_id)
        form = {
            "grant_type": DEVICE_CODE_GRANT,
            "client_id": client_id,
            "device_code": challenge.device_code,
        }

        while True:
            if flow.is_expired():
                flow.state = "expired"
                raise FlowExpiredError(
                    "Authentication timed out before the code was entered. "
                    "Please try again."
                )

            await self.sleep(flow.interval)

            status, data = await self._post_form(token_url, form)
            if flow.advance(status, data):
                logger.info(f"Device code flow completed after {flow.polls} polls")
                return token_from_response(
                    data, self.cloud.cognitive_scope, self.method
                )

            logger.debug(f"Device code flow still pending (poll {flow.polls})")

    async def _request_challenge(
        self, tenant_id: str, client_id: str
    ) -> DeviceCodeChallenge:
        status, data = await self._post_form(
            self.cloud.device_code_url(tenant_id),
            {"client_id": client_id, "scope": self.cloud.cognitive_scope},
        )
        if status != 200:
            raise CredentialsRejectedError(
                f"Failed to initiate device code flow ({status}): {oauth_error(data)}"
            )

        try:
            return DeviceCodeChallenge.model_validate(data)
        except ValueError as e:
            raise CredentialsRejectedError(
                f"Invalid device code response: {e}"
            ) from e
