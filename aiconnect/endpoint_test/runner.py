"""Test runner for coordinating scenario execution across services."""

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime

from aiconnect.endpoint_test.auth.manager import AuthManager
from aiconnect.endpoint_test.errors import (
    AuthError,
    ConfigError,
    DnsFailureError,
    NetworkError,
)
from aiconnect.endpoint_test.executor import ScenarioExecutor
from aiconnect.endpoint_test.models.credential import Credential
from aiconnect.endpoint_test.models.service_config import ServiceConfig, TestConfig
from aiconnect.endpoint_test.models.test_result import (
    ScenarioResult,
    TestContext,
    TestReport,
)
from aiconnect.endpoint_test.scenarios.registry import get_service

logger = logging.getLogger(__name__)

AUTH_STEP = "authentication"
CANCELLED = "run cancelled"


def resolve_endpoint(name: str, service: ServiceConfig, config: TestConfig) -> str:
    """Endpoint override or the service's default for region and cloud.

    Raises:
        ConfigError: If the service has no usable endpoint

    """
    if service.endpoint:
        return service.endpoint

    endpoint = get_service(name).default_endpoint(service.region, config.cloud)
    if not endpoint:
        raise ConfigError(f"Service '{name}' requires an endpoint (or region)")
    return endpoint


def scenario_plan(name: str, service: ServiceConfig) -> list[str]:
    """Configured scenarios, or every known scenario when none are listed."""
    return list(service.scenarios) or get_service(name).scenario_names()


class TestRunner:
    """Runs every enabled service's scenarios and builds the report."""

    __test__ = False

    def __init__(self, auth_manager: AuthManager, executor: ScenarioExecutor) -> None:
        """Initialize runner with its collaborators."""
        self.auth_manager = auth_manager
        self.executor = executor
        self.report: TestReport | None = None
        self._cancelled = asyncio.Event()
        self._auth_tasks: set[asyncio.Task[Credential]] = set()

    def cancel(self) -> None:
        """Stop at the next scenario boundary; abort pending credential flows."""
        logger.warning("Cancellation requested, stopping after current scenario")
        self._cancelled.set()
        for task in list(self._auth_tasks):
            task.cancel()

    @property
    def cancelled(self) -> bool:
        """Whether cancel() has been called."""
        return self._cancelled.is_set()

    async def execute(self, config: TestConfig) -> TestReport:
        """Run all enabled services and return the ordered report.

        Raises:
            ConfigError: If no service is enabled

        """
        services = config.enabled_services()
        if not services:
            raise ConfigError("No services enabled")

        self.report = TestReport(started_at=datetime.now(UTC))
        report = self.report
        logger.info(f"Testing {len(services)} services")

        if config.max_parallel_services <= 1:
            for name, service in services:
                await self._run_service(config, name, service, report)
        else:
            semaphore = asyncio.Semaphore(config.max_parallel_services)

            async def bounded(name: str, service: ServiceConfig) -> None:
                async with semaphore:
                    await self._run_service(config, name, service, report)

            await asyncio.gather(*(bounded(name, svc) for name, svc in services))
            report.results.sort(key=self._order_key(services))

        report.finished_at = datetime.now(UTC)
        report.cancelled = self.cancelled
        logger.info(f"Test execution completed with {len(report.results)} results")
        return report

    @staticmethod
    def _order_key(
        services: list[tuple[str, ServiceConfig]],
    ) -> Callable[[ScenarioResult], tuple[int, int]]:
        """Sort key restoring (service, scenario) declaration order."""
        order: dict[tuple[str, str], tuple[int, int]] = {}
        for service_index, (name, service) in enumerate(services):
            order[(name, AUTH_STEP)] = (service_index, -1)
            for scenario_index, scenario in enumerate(scenario_plan(name, service)):
                order[(name, scenario)] = (service_index, scenario_index)

        def key(result: ScenarioResult) -> tuple[int, int]:
            return order[(result.service, result.scenario)]

        return key

    async def _run_service(
        self, config: TestConfig, name: str, service: ServiceConfig, report: TestReport
    ) -> None:
        """Resolve one credential, then run the service's scenarios in order."""
        scenarios = scenario_plan(name, service)

        if self.cancelled:
            self._skip_all(report, name, scenarios, CANCELLED)
            return

        endpoint = resolve_endpoint(name, service, config)
        logger.info(f"Service {name}: {len(scenarios)} scenarios against {endpoint}")

        input_data: bytes | None = None
        if service.input_file:
            try:
                input_data = service.input_file.read_bytes()
            except OSError as e:
                logger.error(f"Service {name}: cannot read {service.input_file}: {e}")
                self._skip_all(report, name, scenarios, f"input file unreadable: {e}")
                return

        auth_task = asyncio.ensure_future(
            self.auth_manager.resolve(config.auth_for(service), region=service.region)
        )
        self._auth_tasks.add(auth_task)
        try:
            credential = await auth_task
        except asyncio.CancelledError:
            if not self.cancelled:
                raise
            self._skip_all(report, name, scenarios, CANCELLED)
            return
        except (AuthError, NetworkError) as e:
            logger.error(f"Service {name}: credential resolution failed: {e}")
            report.results.append(
                ScenarioResult(
                    service=name,
                    scenario=AUTH_STEP,
                    status="failure",
                    failure_kind="auth" if isinstance(e, AuthError) else "network",
                    error_code=e.code,
                    message=f"authentication failed: {e}",
                )
            )
            self._skip_all(report, name, scenarios, "authentication failed")
            return
        except ConfigError:
            raise
        except Exception as e:
            logger.exception(f"Service {name}: unexpected credential failure")
            report.results.append(
                ScenarioResult(
                    service=name,
                    scenario=AUTH_STEP,
                    status="failure",
                    failure_kind="auth",
                    error_code="unexpected",
                    message=f"authentication failed: {type(e).__name__}: {e}",
                )
            )
            self._skip_all(report, name, scenarios, "authentication failed")
            return
        finally:
            self._auth_tasks.discard(auth_task)

        context = TestContext(
            service=name,
            endpoint=endpoint,
            custom_endpoint=service.endpoint is not None,
            credential=credential,
            input_data=input_data,
            input_name=service.input_file.name if service.input_file else None,
            region=service.region,
            cloud=config.cloud,
            deployment=service.deployment,
            timeout=config.timeout,
        )

        unreachable: str | None = None
        for scenario in scenarios:
            if self.cancelled:
                report.results.append(self._skipped(name, scenario, CANCELLED))
                continue
            if unreachable:
                report.results.append(
                    self._skipped(name, scenario, f"endpoint unreachable: {unreachable}")
                )
                continue

            result = await self.executor.run(name, scenario, context)
            logger.info(f"Scenario result: {name}/{scenario} = {result.status}")
            report.results.append(result)

            if result.error_code == DnsFailureError.code:
                unreachable = result.message

    def _skip_all(
        self, report: TestReport, service: str, scenarios: list[str], reason: str
    ) -> None:
        for scenario in scenarios:
            report.results.append(self._skipped(service, scenario, reason))

    @staticmethod
    def _skipped(service: str, scenario: str, reason: str) -> ScenarioResult:
        return ScenarioResult(
            service=service, scenario=scenario, status="skipped", message=reason
        )
