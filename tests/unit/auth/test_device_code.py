"""Tests for the device code flow provider."""

from unittest.mock import AsyncMock, MagicMock, call

import pytest
from aioresponses import aioresponses
from yarl import URL

from aiconnect.endpoint_test.auth.device_code import (
    DEVICE_CODE_GRANT,
    DeviceCodeChallenge,
    DeviceCodeFlow,
    DeviceCodeProvider,
)
from aiconnect.endpoint_test.cloud import get_cloud
from aiconnect.endpoint_test.errors import (
    CredentialsRejectedError,
    FlowDeniedError,
    FlowExpiredError,
)
from aiconnect.endpoint_test.models.auth_config import AZURE_CLI_CLIENT_ID, AuthConfig

DEVICE_CODE_URL = "https://login.microsoftonline.com/tenant-1/oauth2/v2.0/devicecode"
TOKEN_URL = "https://login.microsoftonline.com/tenant-1/oauth2/v2.0/token"

CHALLENGE = {
    "device_code": "dev-code",
    "user_code": "ABCD-1234",
    "verification_uri": "https://microsoft.com/devicelogin",
    "expires_in": 900,
    "interval": 5,
    "message": "To sign in, use a web browser...",
}
PENDING = {"error": "authorization_pending"}
TOKEN = {"access_token": "device-token", "expires_in": 3600}


@pytest.fixture
def device_auth() -> AuthConfig:
    """Create device code auth settings."""
    return AuthConfig(method="device_code", tenant_id="tenant-1")


@pytest.fixture
def sleep() -> AsyncMock:
    """Sleep stub so polls happen immediately."""
    return AsyncMock()


@pytest.fixture
def prompt() -> MagicMock:
    """Prompt stub capturing the challenge."""
    return MagicMock()


def _provider(
    sleep: AsyncMock, prompt: MagicMock, clock: MagicMock | None = None
) -> DeviceCodeProvider:
    return DeviceCodeProvider(
        get_cloud("global"),
        prompt=prompt,
        sleep=sleep,
        clock=clock or MagicMock(return_value=0.0),
    )


async def test_acquire_after_pending_polls(
    device_auth: AuthConfig, sleep: AsyncMock, prompt: MagicMock
) -> None:
    """Two pending answers then a token complete the flow."""
    provider = _provider(sleep, prompt)

    with aioresponses() as m:
        m.post(DEVICE_CODE_URL, status=200, payload=CHALLENGE)
        m.post(TOKEN_URL, status=400, payload=PENDING)
        m.post(TOKEN_URL, status=400, payload=PENDING)
        m.post(TOKEN_URL, status=200, payload=TOKEN)

        credential = await provider.acquire(device_auth)

        token_requests = m.requests[("POST", URL(TOKEN_URL))]
        challenge_request = m.requests[("POST", URL(DEVICE_CODE_URL))][0]

    assert credential.value.get_secret_value() == "device-token"
    assert credential.method == "device_code"
    assert len(token_requests) == 3
    assert token_requests[0].kwargs["data"] == {
        "grant_type": DEVICE_CODE_GRANT,
        "client_id": AZURE_CLI_CLIENT_ID,
        "device_code": "dev-code",
    }
    assert challenge_request.kwargs["data"]["scope"] == (
        "https://cognitiveservices.azure.com/.default"
    )
    assert sleep.await_args_list == [call(5.0), call(5.0), call(5.0)]
    prompt.assert_called_once()
    assert prompt.call_args.args[0].user_code == "ABCD-1234"


async def test_acquire_slow_down_increases_interval(
    device_auth: AuthConfig, sleep: AsyncMock, prompt: MagicMock
) -> None:
    """slow_down makes every following poll wait longer."""
    provider = _provider(sleep, prompt)

    with aioresponses() as m:
        m.post(DEVICE_CODE_URL, status=200, payload=CHALLENGE)
        m.post(TOKEN_URL, status=400, payload={"error": "slow_down"})
        m.post(TOKEN_URL, status=400, payload=PENDING)
        m.post(TOKEN_URL, status=200, payload=TOKEN)

        await provider.acquire(device_auth)

    assert sleep.await_args_list == [call(5.0), call(10.0), call(10.0)]


async def test_acquire_declined(
    device_auth: AuthConfig, sleep: AsyncMock, prompt: MagicMock
) -> None:
    """A declined authorization is a FlowDeniedError."""
    provider = _provider(sleep, prompt)

    with aioresponses() as m:
        m.post(DEVICE_CODE_URL, status=200, payload=CHALLENGE)
        m.post(TOKEN_URL, status=400, payload={"error": "authorization_declined"})

        with pytest.raises(FlowDeniedError):
            await provider.acquire(device_auth)


async def test_acquire_server_reports_expired(
    device_auth: AuthConfig, sleep: AsyncMock, prompt: MagicMock
) -> None:
    """expired_token from the server ends the flow."""
    provider = _provider(sleep, prompt)

    with aioresponses() as m:
        m.post(DEVICE_CODE_URL, status=200, payload=CHALLENGE)
        m.post(TOKEN_URL, status=400, payload={"error": "expired_token"})

        with pytest.raises(FlowExpiredError):
            await provider.acquire(device_auth)


async def test_acquire_local_deadline(
    device_auth: AuthConfig, sleep: AsyncMock, prompt: MagicMock
) -> None:
    """The flow stops polling once its lifetime has elapsed."""
    clock = MagicMock(side_effect=[0.0, 1000.0])
    provider = _provider(sleep, prompt, clock)

    with aioresponses() as m:
        m.post(DEVICE_CODE_URL, status=200, payload=CHALLENGE)

        with pytest.raises(FlowExpiredError):
            await provider.acquire(device_auth)

        assert ("POST", URL(TOKEN_URL)) not in m.requests

    sleep.assert_not_awaited()


async def test_acquire_challenge_rejected(
    device_auth: AuthConfig, sleep: AsyncMock, prompt: MagicMock
) -> None:
    """A failing device authorization request is rejected without prompting."""
    provider = _provider(sleep, prompt)

    with aioresponses() as m:
        m.post(
            DEVICE_CODE_URL,
            status=400,
            payload={"error": "invalid_request", "error_description": "bad tenant"},
        )

        with pytest.raises(CredentialsRejectedError) as exc_info:
            await provider.acquire(device_auth)

    assert "bad tenant" in str(exc_info.value)
    prompt.assert_not_called()


def test_flow_unknown_error_is_rejected() -> None:
    """Errors outside the polling protocol reject the credentials."""
    challenge = DeviceCodeChallenge.model_validate(CHALLENGE)
    flow = DeviceCodeFlow(challenge, clock=lambda: 0.0)

    with pytest.raises(CredentialsRejectedError):
        flow.advance(400, {"error": "invalid_grant"})


def test_flow_states() -> None:
    """The flow moves from pending through polling to completed."""
    challenge = DeviceCodeChallenge.model_validate(CHALLENGE)
    flow = DeviceCodeFlow(challenge, clock=lambda: 0.0)
    assert flow.state == "pending"

    assert flow.advance(400, PENDING) is False
    assert flow.state == "polling"

    assert flow.advance(200, TOKEN) is True
    assert flow.state == "completed"
    assert flow.polls == 2


def test_flow_lifetime_is_capped() -> None:
    """Server lifetimes longer than fifteen minutes are capped."""
    challenge = DeviceCodeChallenge.model_validate({**CHALLENGE, "expires_in": 3600})
    now = [0.0]
    flow = DeviceCodeFlow(challenge, clock=lambda: now[0])

    now[0] = 899.0
    assert flow.is_expired() is False
    now[0] = 900.0
    assert flow.is_expired() is True


def test_cache_key_uses_default_client() -> None:
    """Without a client id the well-known public client is used."""
    provider = DeviceCodeProvider(get_cloud("global"))
    auth = AuthConfig(method="device_code", tenant_id="tenant-1")
    assert provider.cache_key(auth) == (
        "https://cognitiveservices.azure.com/.default",
        f"tenant-1/{AZURE_CLI_CLIENT_ID}",
    )
