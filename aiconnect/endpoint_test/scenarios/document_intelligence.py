"""Azure AI Document Intelligence scenarios."""

from aiconnect.endpoint_test.cloud import Cloud
from aiconnect.endpoint_test.errors import MalformedResponseError
from aiconnect.endpoint_test.models.test_result import RawOutcome, TestContext
from aiconnect.endpoint_test.scenarios.base import PollingScenario, ServiceScenario

API_VERSION = "2024-11-30"


def default_endpoint(region: str | None, cloud: Cloud) -> str | None:
    """Document Intelligence endpoints are resource specific."""
    return None


class ModelsList(ServiceScenario):
    """List document models."""

    name = "models_list"

    async def perform(self, context: TestContext) -> RawOutcome:
        url = f"{context.endpoint.rstrip('/')}/documentintelligence/documentModels"
        _, status, body = await self.send(
            context, "GET", url, params={"api-version": API_VERSION}
        )

        if 200 <= status < 300 and (
            not isinstance(body, dict) or not isinstance(body.get("value"), list)
        ):
            raise MalformedResponseError("Model list has no 'value' array")

        return RawOutcome(http_status=status)


class AnalyzeLayout(PollingScenario):
    """Submit the input document to prebuilt-layout and poll the result."""

    name = "analyze_layout"
    requires_input = True

    async def perform(self, context: TestContext) -> RawOutcome:
        url = (
            f"{context.endpoint.rstrip('/')}/documentintelligence/documentModels/"
            "prebuilt-layout:analyze"
        )
        headers, status, _ = await self.send(
            context,
            "POST",
            url,
            expect="none",
            params={"api-version": API_VERSION},
            data=context.input_data,
            headers={"Content-Type": "application/octet-stream"},
        )

        if 200 <= status < 300:
            location = headers.get("Operation-Location")
            if not location:
                raise MalformedResponseError("Analyze response has no Operation-Location")
            return RawOutcome(http_status=status, state="running", location=location)

        return RawOutcome(http_status=status)

    async def poll_status(self, context: TestContext, location: str) -> RawOutcome:
        _, status, body = await self.send(context, "GET", location)

        if not 200 <= status < 300:
            return RawOutcome(http_status=status)

        if not isinstance(body, dict) or "status" not in body:
            raise MalformedResponseError("Analyze status has no 'status' field")

        job_status = str(body["status"]).lower()
        if job_status == "succeeded":
            return RawOutcome(http_status=status, state="completed")
        if job_status == "failed":
            error = body.get("error")
            detail = error.get("message") if isinstance(error, dict) else None
            return RawOutcome(
                http_status=status, state="failed", detail=detail or "analysis failed"
            )
        return RawOutcome(http_status=status, state="running", detail=job_status)


SCENARIOS: list[ServiceScenario] = [ModelsList(), AnalyzeLayout()]
