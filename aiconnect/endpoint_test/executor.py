"""Scenario executor: runs one scenario and classifies its outcome."""

import asyncio
import logging

import aiohttp

from aiconnect.endpoint_test.errors import (
    CredentialsRejectedError,
    MalformedResponseError,
    NetworkTimeoutError,
    ServiceRejectedError,
    classify_transport_error,
)
from aiconnect.endpoint_test.models.test_result import (
    POLL_TIMEOUT_ANNOTATION,
    RawOutcome,
    ScenarioResult,
    TestContext,
)
from aiconnect.endpoint_test.scenarios.base import PollingScenario, ServiceScenario
from aiconnect.endpoint_test.scenarios.registry import get_service

logger = logging.getLogger(__name__)

AUTH_STATUSES = {401, 403}


class ScenarioExecutor:
    """Runs scenarios; every failure becomes a ScenarioResult."""

    def __init__(self, poll_interval: float = 2.0, poll_timeout: float = 60.0) -> None:
        """Initialize with the submit-then-poll budget."""
        self.poll_interval = poll_interval
        self.poll_timeout = poll_timeout

    async def run(
        self, service: str, scenario_name: str, context: TestContext
    ) -> ScenarioResult:
        """Run one scenario against one service. Never raises."""
        loop = asyncio.get_running_loop()
        start = loop.time()

        def finish(**fields: object) -> ScenarioResult:
            return ScenarioResult(
                service=service,
                scenario=scenario_name,
                latency=loop.time() - start,
                **fields,  # type: ignore[arg-type]
            )

        try:
            scenario = get_service(service).get_scenario(scenario_name)
        except KeyError as e:
            return finish(status="skipped", message=str(e.args[0]))

        skip_reason = scenario.skip_reason(context)
        if skip_reason:
            logger.info(f"Skipping {service}/{scenario_name}: {skip_reason}")
            return finish(status="skipped", message=skip_reason)

        if context.credential.is_expired():
            return finish(
                status="failure",
                failure_kind="auth",
                error_code=CredentialsRejectedError.code,
                message="authentication rejected: credential expired",
            )

        logger.info(f"Running scenario {service}/{scenario_name}")
        try:
            if isinstance(scenario, PollingScenario):
                fields = await self._run_polling(scenario, context)
            else:
                outcome = await asyncio.wait_for(
                    scenario.perform(context), timeout=context.timeout
                )
                fields = self._classify(outcome)
        except TimeoutError as e:
            logger.warning(f"{service}/{scenario_name} timed out: {e}")
            return finish(
                status="timeout",
                error_code=NetworkTimeoutError.code,
                message=f"no response within {context.timeout:g}s",
            )
        except aiohttp.ClientError as e:
            error = classify_transport_error(e)
            logger.warning(f"{service}/{scenario_name} network error: {error}")
            return finish(
                status="failure",
                failure_kind="network",
                error_code=error.code,
                message=f"network error: {error}",
            )
        except MalformedResponseError as e:
            return finish(
                status="failure",
                failure_kind="malformed",
                error_code=e.code,
                message=f"malformed response: {e}",
            )
        except Exception as e:
            logger.exception(f"Unexpected error in {service}/{scenario_name}")
            return finish(
                status="failure",
                failure_kind="malformed",
                error_code="unexpected",
                message=f"unexpected error: {type(e).__name__}: {e}",
            )

        return finish(**fields)

    def _classify(self, outcome: RawOutcome) -> dict[str, object]:
        """Map a raw outcome to result fields."""
        status = outcome.http_status
        fields: dict[str, object] = {"http_status": status}

        if status is not None and status in AUTH_STATUSES:
            fields.update(
                status="failure",
                failure_kind="auth",
                error_code=CredentialsRejectedError.code,
                message="authentication rejected",
            )
        elif status is not None and not 200 <= status < 300:
            fields.update(
                status="failure",
                failure_kind="service",
                error_code=ServiceRejectedError.code,
                message=str(ServiceRejectedError(status)),
            )
        elif outcome.state == "failed":
            fields.update(
                status="failure",
                failure_kind="service",
                error_code="job_failed",
                message=f"service error: {outcome.detail or 'job failed'}",
            )
        else:
            fields.update(status="success", message=outcome.detail)

        return fields

    async def _run_polling(
        self, scenario: PollingScenario, context: TestContext
    ) -> dict[str, object]:
        """Submit, then poll until completion or the poll budget runs out."""
        submitted = await asyncio.wait_for(
            scenario.perform(context), timeout=context.timeout
        )
        if submitted.state != "running" or not submitted.location:
            return self._classify(submitted)

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.poll_timeout
        polls = 0

        while True:
            polls += 1
            try:
                outcome = await asyncio.wait_for(
                    scenario.poll_status(context, submitted.location),
                    timeout=context.timeout,
                )
            except (TimeoutError, aiohttp.ClientError) as e:
                error = classify_transport_error(e)
                return {
                    "status": "failure",
                    "failure_kind": "network",
                    "error_code": error.code,
                    "message": f"network error: status endpoint not responsive "
                    f"after {polls} polls ({error})",
                }

            if outcome.state != "running":
                return self._classify(outcome)

            if loop.time() >= deadline:
                logger.warning(
                    f"{context.service}/{scenario.name}: {POLL_TIMEOUT_ANNOTATION} "
                    f"({polls} polls)"
                )
                return {
                    "status": "success",
                    "http_status": outcome.http_status,
                    "inconclusive": True,
                    "message": POLL_TIMEOUT_ANNOTATION,
                }

            await asyncio.sleep(self.poll_interval)
