"""Tests for the credential model."""

from datetime import UTC, datetime, timedelta

import pytest
from pydantic import SecretStr, ValidationError

from aiconnect.endpoint_test.models.credential import Credential


def test_api_key_never_expires() -> None:
    """Credentials without expiry are never expired."""
    credential = Credential(kind="api_key", value=SecretStr("key"))
    assert not credential.is_expired()


def test_bearer_expiry() -> None:
    """is_expired compares against now plus leeway."""
    now = datetime(2030, 1, 1, tzinfo=UTC)
    credential = Credential(
        kind="bearer",
        value=SecretStr("token"),
        expires_at=now + timedelta(seconds=30),
    )
    assert not credential.is_expired(now=now)
    assert credential.is_expired(now=now, leeway=timedelta(seconds=60))
    assert credential.is_expired(now=now + timedelta(minutes=1))


def test_auth_headers_api_key() -> None:
    """API keys go into the service-specific key header."""
    credential = Credential(kind="api_key", value=SecretStr("key123"))
    assert credential.auth_headers("api-key") == {"api-key": "key123"}


def test_auth_headers_bearer() -> None:
    """Bearer tokens go into the Authorization header."""
    credential = Credential(kind="bearer", value=SecretStr("tok"))
    assert credential.auth_headers("api-key") == {"Authorization": "Bearer tok"}


def test_masked_hides_secret() -> None:
    """masked never reveals the full value."""
    credential = Credential(kind="bearer", value=SecretStr("eyJhbGciOiJSUzI1NiJ9"))
    assert credential.masked() == "eyJh***"
    assert Credential(kind="api_key", value=SecretStr("short")).masked() == "***"
    assert "eyJhbGciOiJSUzI1NiJ9" not in repr(credential)


def test_credential_is_immutable() -> None:
    """Credentials are frozen."""
    credential = Credential(kind="api_key", value=SecretStr("key"))
    with pytest.raises(ValidationError):
        credential.scope = "other"  # type: ignore[misc]
