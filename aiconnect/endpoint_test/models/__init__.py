"""Data models for configuration, credentials, and results."""

from aiconnect.endpoint_test.models.auth_config import (
    AuthConfig,
    AuthMethod,
    SingleAuthMethod,
)
from aiconnect.endpoint_test.models.credential import Credential
from aiconnect.endpoint_test.models.service_config import ServiceConfig, TestConfig
from aiconnect.endpoint_test.models.test_result import (
    RawOutcome,
    ScenarioResult,
    TestContext,
    TestReport,
)

__all__ = [
    "AuthConfig",
    "AuthMethod",
    "Credential",
    "RawOutcome",
    "ScenarioResult",
    "ServiceConfig",
    "SingleAuthMethod",
    "TestConfig",
    "TestContext",
    "TestReport",
]
