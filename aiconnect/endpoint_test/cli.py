"""CLI entry point for the AI service endpoint test."""

import asyncio
import json
import logging
import signal
import sys
from pathlib import Path

import typer

from aiconnect.endpoint_test.aggregator import Verdict, aggregate
from aiconnect.endpoint_test.auth.manager import AuthManager
from aiconnect.endpoint_test.auth.token_cache import TokenCache
from aiconnect.endpoint_test.cloud import get_cloud
from aiconnect.endpoint_test.config_loader import load_config, with_overrides
from aiconnect.endpoint_test.errors import ConfigError, InvalidInputError
from aiconnect.endpoint_test.executor import ScenarioExecutor
from aiconnect.endpoint_test.models.service_config import TestConfig
from aiconnect.endpoint_test.models.test_result import TestReport
from aiconnect.endpoint_test.runner import TestRunner

# Configure logging - force reconfiguration
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
    force=True,
)
logger = logging.getLogger(__name__)

app = typer.Typer()


def create_runner(config: TestConfig) -> TestRunner:
    """Wire the runner with a fresh session-wide token cache."""
    cloud = get_cloud(config.cloud)
    auth_manager = AuthManager(cloud, TokenCache(), timeout=config.timeout)
    executor = ScenarioExecutor(
        poll_interval=config.poll_interval, poll_timeout=config.poll_timeout
    )
    return TestRunner(auth_manager, executor)


async def run_session(runner: TestRunner, config: TestConfig) -> TestReport:
    """Execute the session, cancelling cleanly on SIGINT."""
    loop = asyncio.get_running_loop()
    installed = False
    try:
        loop.add_signal_handler(signal.SIGINT, runner.cancel)
        installed = True
    except NotImplementedError:  # pragma: no cover
        logger.debug("Signal handlers unsupported on this event loop")

    try:
        return await runner.execute(config)
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


@app.command()
def main(
    config_file: Path = typer.Option(  # noqa: B008
        Path("aiconnect.yaml"), "--config", help="Path to YAML configuration"
    ),
    auth_method: str | None = typer.Option(
        None, help="Override the global auth method"
    ),
    service: list[str] | None = typer.Option(  # noqa: B008
        None, help="Only test these services (repeatable)"
    ),
    timeout: float | None = typer.Option(
        None, help="Per-operation timeout in seconds"
    ),
    parallel: int | None = typer.Option(
        None, help="Number of services tested concurrently"
    ),
    output_format: str = typer.Option(
        "text", "--format", help="Output format (text, json)"
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
) -> None:
    """Verify authentication and connectivity to AI service endpoints."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if output_format not in {"text", "json"}:
        typer.echo(f"Error: Unknown format: {output_format}", err=True)
        raise typer.Exit(code=4)

    logger.info("=" * 80)
    logger.info("AI Service Endpoint Test - Starting")
    logger.info("=" * 80)
    logger.info(f"Config file: {config_file}")

    try:
        config = load_config(config_file)
        config = with_overrides(
            config,
            auth_method=auth_method,
            services=service,
            timeout=timeout,
            parallel=parallel,
        )
    except (ConfigError, InvalidInputError) as e:
        logger.error(f"Invalid configuration: {e}")
        typer.echo(f"Error: {e}", err=True)
        verdict, exit_code = aggregate(None, fatal_error=e)
        _emit_fatal(output_format, verdict, exit_code, str(e))
        raise typer.Exit(code=exit_code)

    logger.info(f"Cloud: {config.cloud}")
    logger.info(f"Services: {', '.join(name for name, _ in config.enabled_services())}")

    runner = create_runner(config)
    try:
        report = asyncio.run(run_session(runner, config))
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        typer.echo(f"Error: {e}", err=True)
        verdict, exit_code = aggregate(runner.report, fatal_error=e)
        _emit_fatal(output_format, verdict, exit_code, str(e))
        raise typer.Exit(code=exit_code)
    except Exception as e:
        logger.exception("Test execution failed")
        typer.echo(f"Error running tests: {e}", err=True)
        verdict, exit_code = aggregate(runner.report, fatal_error=e)
        _emit_fatal(output_format, verdict, exit_code, str(e))
        raise typer.Exit(code=exit_code)

    verdict, exit_code = aggregate(report)
    _log_summary(report, verdict)

    if output_format == "json":
        typer.echo(json.dumps(report_to_dict(report, verdict, exit_code), indent=2))
    else:
        typer.echo(f"Verdict: {verdict} (exit code {exit_code})")

    if exit_code != 0:
        raise typer.Exit(code=exit_code)


def report_to_dict(report: TestReport, verdict: Verdict, exit_code: int) -> dict:
    """JSON-ready representation of a report."""
    return {
        "verdict": verdict,
        "exit_code": exit_code,
        "total": len(report.results),
        "passed": report.count("success"),
        "failed": report.count("failure"),
        "timeouts": report.count("timeout"),
        "skipped": report.count("skipped"),
        "inconclusive": sum(1 for r in report.results if r.inconclusive),
        "started_at": report.started_at.isoformat(),
        "finished_at": report.finished_at.isoformat() if report.finished_at else None,
        "cancelled": report.cancelled,
        "results": [r.model_dump(mode="json") for r in report.results],
    }


def _emit_fatal(output_format: str, verdict: Verdict, exit_code: int, error: str) -> None:
    if output_format == "json":
        typer.echo(
            json.dumps(
                {"verdict": verdict, "exit_code": exit_code, "error": error}, indent=2
            )
        )


def _log_summary(report: TestReport, verdict: Verdict) -> None:
    logger.info("=" * 80)
    logger.info("Test Results Summary:")
    logger.info("=" * 80)
    for result in report.results:
        test_id = f"{result.service}/{result.scenario}"
        if result.status == "success":
            note = " (inconclusive)" if result.inconclusive else ""
            logger.info(f"✓ {test_id}: {result.status}{note} ({result.latency:.2f}s)")
            if result.inconclusive:
                logger.warning(f"  Note: {result.message}")
        elif result.status == "skipped":
            logger.info(f"- {test_id}: skipped ({result.message})")
        else:
            logger.error(f"✗ {test_id}: {result.status}")
            if result.message:
                logger.error(f"  Message: {result.message}")

    if report.cancelled:
        logger.warning("Run was cancelled; report is partial")
    logger.info(f"Verdict: {verdict}")


if __name__ == "__main__":  # pragma: no cover
    app()
