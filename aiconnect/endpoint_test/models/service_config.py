"""Configuration models for services under test."""

from pathlib import Path

from pydantic import BaseModel, Field

from aiconnect.endpoint_test.cloud import Cloud
from aiconnect.endpoint_test.models.auth_config import AuthConfig


class ServiceConfig(BaseModel):
    """Settings for one AI service."""

    enabled: bool = Field(default=True, description="Whether to test this service")
    region: str | None = Field(default=None, description="Azure region")
    endpoint: str | None = Field(default=None, description="Endpoint override")
    auth: AuthConfig | None = Field(
        default=None, description="Auth override; falls back to the global auth"
    )
    scenarios: list[str] = Field(
        default_factory=list,
        description="Scenarios to run; empty means all known scenarios",
    )
    input_file: Path | None = Field(
        default=None, description="Input artifact for scenarios that need one"
    )
    deployment: str | None = Field(
        default=None, description="Model deployment name (Azure OpenAI)"
    )


class TestConfig(BaseModel):
    """Complete, validated configuration for one test session."""

    __test__ = False

    cloud: Cloud = Field(default="global", description="Azure cloud")
    timeout: float = Field(
        default=30.0, gt=0, description="Per-operation timeout in seconds"
    )
    poll_interval: float = Field(
        default=2.0, gt=0, description="Seconds between status polls"
    )
    poll_timeout: float = Field(
        default=60.0, gt=0, description="Wall-clock budget for submit-then-poll"
    )
    max_parallel_services: int = Field(
        default=1, ge=1, description="Services tested concurrently"
    )
    auth: AuthConfig = Field(..., description="Global auth settings")
    services: dict[str, ServiceConfig] = Field(
        default_factory=dict, description="Services in execution order"
    )

    def enabled_services(self) -> list[tuple[str, ServiceConfig]]:
        """Enabled services in declaration order."""
        return [(name, svc) for name, svc in self.services.items() if svc.enabled]

    def auth_for(self, service: ServiceConfig) -> AuthConfig:
        """Effective auth settings for a service."""
        return service.auth or self.auth
