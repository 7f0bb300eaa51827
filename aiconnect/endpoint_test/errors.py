"""Error taxonomy for credential resolution and scenario execution."""

import asyncio
import socket
import ssl

import aiohttp


class ConnectivityTestError(Exception):
    """Base class for every classified failure."""

    code = "error"


class ConfigError(ConnectivityTestError):
    """Configuration is malformed or inconsistent."""

    code = "config_error"


class InvalidInputError(ConnectivityTestError):
    """A user supplied input (token, input file) is unusable."""

    code = "invalid_input"


class AuthError(ConnectivityTestError):
    """Credential acquisition failed."""

    code = "auth_error"


class CredentialsRejectedError(AuthError):
    """The identity provider refused the supplied credentials."""

    code = "credentials_rejected"


class EnvironmentUnsupportedError(AuthError):
    """The auth method cannot work in this environment (e.g. no IMDS)."""

    code = "environment_unsupported"


class FlowExpiredError(AuthError):
    """The device-code flow expired before the user completed it."""

    code = "flow_expired"


class FlowDeniedError(AuthError):
    """The user declined the device-code authorization."""

    code = "flow_denied"


class CompositeAuthError(AuthError):
    """Both the primary and the fallback auth method failed."""

    code = "composite"

    def __init__(
        self,
        primary: ConnectivityTestError,
        fallback: ConnectivityTestError,
    ) -> None:
        """Keep both failure reasons."""
        self.primary = primary
        self.fallback = fallback
        super().__init__(
            f"primary failed ({primary.code}: {primary}); "
            f"fallback failed ({fallback.code}: {fallback})"
        )


class NetworkError(ConnectivityTestError):
    """Transport level failure."""

    code = "network_error"


class DnsFailureError(NetworkError):
    """Host name could not be resolved."""

    code = "dns_failure"


class TlsFailureError(NetworkError):
    """TLS handshake or certificate validation failed."""

    code = "tls_failure"


class ConnectionFailedError(NetworkError):
    """Connection refused or dropped."""

    code = "connection_refused"


class NetworkTimeoutError(NetworkError):
    """Operation did not finish within its timeout."""

    code = "timeout"


class ScenarioError(ConnectivityTestError):
    """Service answered, but not in a usable way."""

    code = "scenario_error"


class ServiceRejectedError(ScenarioError):
    """Service answered with a non-success HTTP status."""

    code = "service_rejected"

    def __init__(self, status: int, message: str = "") -> None:
        """Record the HTTP status."""
        self.status = status
        super().__init__(message or f"service error: {status}")


class MalformedResponseError(ScenarioError):
    """Response body could not be interpreted."""

    code = "malformed_response"


def classify_transport_error(exc: BaseException) -> NetworkError:
    """Map an aiohttp/asyncio failure to a NetworkError subclass.

    Args:
        exc: Exception raised while talking to a remote endpoint

    Returns:
        Classified network error carrying the original message

    """
    if isinstance(exc, NetworkError):
        return exc

    detail = str(exc) or type(exc).__name__

    if isinstance(exc, asyncio.TimeoutError):
        return NetworkTimeoutError(f"timed out: {detail}")

    if isinstance(exc, aiohttp.ClientConnectorDNSError):
        return DnsFailureError(f"dns resolution failed: {detail}")

    if isinstance(exc, aiohttp.ClientSSLError):
        return TlsFailureError(f"tls failure: {detail}")

    if isinstance(exc, aiohttp.ClientConnectorError):
        os_error = exc.os_error
        if isinstance(os_error, socket.gaierror):
            return DnsFailureError(f"dns resolution failed: {detail}")
        if isinstance(os_error, ssl.SSLError):
            return TlsFailureError(f"tls failure: {detail}")
        return ConnectionFailedError(f"connection failed: {detail}")

    return ConnectionFailedError(f"connection failed: {detail}")
