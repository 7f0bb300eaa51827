"""Models for scenario execution context and results."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from aiconnect.endpoint_test.cloud import Cloud
from aiconnect.endpoint_test.models.credential import Credential

ScenarioStatus = Literal["success", "failure", "timeout", "skipped"]
FailureKind = Literal["auth", "network", "service", "malformed"]

POLL_TIMEOUT_ANNOTATION = "polling timeout, but endpoint responsive"


class TestContext(BaseModel):
    """Everything a scenario needs to talk to one service."""

    __test__ = False

    model_config = ConfigDict(frozen=True)

    service: str = Field(..., description="Service name")
    endpoint: str = Field(..., description="Resolved base endpoint")
    custom_endpoint: bool = Field(
        default=False, description="Endpoint came from configuration"
    )
    credential: Credential = Field(..., description="Resolved credential")
    input_data: bytes | None = Field(default=None, description="Input artifact")
    input_name: str | None = Field(default=None, description="Input file name")
    region: str | None = Field(default=None, description="Azure region")
    cloud: Cloud = Field(default="global", description="Azure cloud")
    deployment: str | None = Field(default=None, description="Model deployment")
    timeout: float = Field(default=30.0, description="Per-request timeout")


class RawOutcome(BaseModel):
    """What a scenario leaf observed, before classification."""

    http_status: int | None = Field(default=None, description="HTTP status code")
    state: Literal["completed", "running", "failed"] = Field(
        default="completed", description="Job state for long-running operations"
    )
    location: str | None = Field(
        default=None, description="Status resource of a submitted job"
    )
    detail: str | None = Field(default=None, description="Body-derived summary")


class ScenarioResult(BaseModel):
    """Result of a single scenario execution."""

    __test__ = False

    model_config = ConfigDict(frozen=True)

    service: str = Field(..., description="Service name")
    scenario: str = Field(..., description="Scenario name")
    status: ScenarioStatus = Field(..., description="Execution status")
    failure_kind: FailureKind | None = Field(
        default=None, description="Classification of a failure"
    )
    error_code: str | None = Field(
        default=None, description="Taxonomy code of the underlying error"
    )
    latency: float = Field(default=0.0, description="Elapsed seconds")
    http_status: int | None = Field(default=None, description="Last HTTP status")
    message: str | None = Field(
        default=None, description="Failure reason or status details"
    )
    inconclusive: bool = Field(
        default=False,
        description="Success without job completion (poll budget exhausted)",
    )


class TestReport(BaseModel):
    """Ordered results of one session."""

    __test__ = False

    results: list[ScenarioResult] = Field(
        default_factory=list, description="Results in declaration order"
    )
    started_at: datetime = Field(..., description="Session start")
    finished_at: datetime | None = Field(default=None, description="Session end")
    cancelled: bool = Field(default=False, description="Session was interrupted")

    def count(self, status: str) -> int:
        """Number of results with the given status."""
        return sum(1 for r in self.results if r.status == status)
