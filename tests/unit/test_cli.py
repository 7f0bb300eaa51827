"""Tests for CLI entry point."""

import json
from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from aiconnect.endpoint_test.cli import app, create_runner
from aiconnect.endpoint_test.errors import ConfigError
from aiconnect.endpoint_test.models.auth_config import AuthConfig
from aiconnect.endpoint_test.models.service_config import ServiceConfig, TestConfig
from aiconnect.endpoint_test.models.test_result import ScenarioResult, TestReport

runner = CliRunner()

CONFIG = """
auth:
  api_key: resource-key
services:
  translator:
    region: westeurope
  speech:
    region: westeurope
"""


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Write a valid configuration file."""
    path = tmp_path / "aiconnect.yaml"
    path.write_text(CONFIG)
    return path


def _mock_runner(*results: ScenarioResult, cancelled: bool = False) -> MagicMock:
    report = TestReport(
        started_at=datetime.now(UTC),
        finished_at=datetime.now(UTC),
        results=list(results),
        cancelled=cancelled,
    )
    mock_runner = MagicMock()
    mock_runner.report = report
    mock_runner.execute = AsyncMock(return_value=report)
    return mock_runner


def test_main_all_passed(config_file: Path) -> None:
    """Main prints a JSON report and exits 0 when everything passes."""
    mock_runner = _mock_runner(
        ScenarioResult(service="translator", scenario="languages", status="success"),
        ScenarioResult(
            service="speech",
            scenario="recognize",
            status="skipped",
            message="no input file configured",
        ),
    )

    with patch(
        "aiconnect.endpoint_test.cli.create_runner", return_value=mock_runner
    ):
        result = runner.invoke(
            app, ["--config", str(config_file), "--format", "json"]
        )

    assert result.exit_code == 0
    output = json.loads(result.stdout)
    assert output["verdict"] == "all_passed"
    assert output["total"] == 2
    assert output["passed"] == 1
    assert output["skipped"] == 1
    assert output["results"][0]["scenario"] == "languages"


def test_main_auth_failure_exit_code(config_file: Path) -> None:
    """Authentication failures exit with code 2."""
    mock_runner = _mock_runner(
        ScenarioResult(
            service="translator",
            scenario="authentication",
            status="failure",
            failure_kind="auth",
        )
    )

    with patch(
        "aiconnect.endpoint_test.cli.create_runner", return_value=mock_runner
    ):
        result = runner.invoke(app, ["--config", str(config_file)])

    assert result.exit_code == 2
    assert "Verdict: auth_failed" in result.stdout


def test_main_network_failure_exit_code(config_file: Path) -> None:
    """Network failures exit with code 3."""
    mock_runner = _mock_runner(
        ScenarioResult(
            service="translator",
            scenario="languages",
            status="failure",
            failure_kind="network",
        )
    )

    with patch(
        "aiconnect.endpoint_test.cli.create_runner", return_value=mock_runner
    ):
        result = runner.invoke(app, ["--config", str(config_file)])

    assert result.exit_code == 3


def test_main_service_selection(config_file: Path) -> None:
    """--service narrows the enabled services."""
    mock_runner = _mock_runner(
        ScenarioResult(service="speech", scenario="voices_list", status="success")
    )

    with patch(
        "aiconnect.endpoint_test.cli.create_runner", return_value=mock_runner
    ) as create:
        result = runner.invoke(
            app,
            ["--config", str(config_file), "--service", "speech", "--timeout", "5"],
        )

    assert result.exit_code == 0
    config = create.call_args.args[0]
    assert [name for name, _ in config.enabled_services()] == ["speech"]
    assert config.timeout == 5


def test_main_missing_config(tmp_path: Path) -> None:
    """A missing configuration file exits with the config error code."""
    result = runner.invoke(app, ["--config", str(tmp_path / "missing.yaml")])
    assert result.exit_code == 4


def test_main_invalid_input(tmp_path: Path) -> None:
    """An unusable bearer token exits with the invalid input code."""
    path = tmp_path / "aiconnect.yaml"
    path.write_text(
        """
auth:
  method: manual_token
  bearer_token: short
services:
  translator: {}
"""
    )

    result = runner.invoke(app, ["--config", str(path)])
    assert result.exit_code == 5


def test_main_unknown_format(config_file: Path) -> None:
    """An unknown output format is a configuration error."""
    result = runner.invoke(app, ["--config", str(config_file), "--format", "xml"])
    assert result.exit_code == 4


def test_main_runner_config_error(config_file: Path) -> None:
    """Configuration errors raised during execution exit with code 4."""
    mock_runner = MagicMock()
    mock_runner.report = None
    mock_runner.execute = AsyncMock(side_effect=ConfigError("No services enabled"))

    with patch(
        "aiconnect.endpoint_test.cli.create_runner", return_value=mock_runner
    ):
        result = runner.invoke(app, ["--config", str(config_file)])

    assert result.exit_code == 4


def test_main_cancelled_run(config_file: Path) -> None:
    """A cancelled session is never reported as passed."""
    mock_runner = _mock_runner(
        ScenarioResult(service="translator", scenario="languages", status="success"),
        ScenarioResult(
            service="translator",
            scenario="translate",
            status="skipped",
            message="run cancelled",
        ),
        cancelled=True,
    )

    with patch(
        "aiconnect.endpoint_test.cli.create_runner", return_value=mock_runner
    ):
        result = runner.invoke(
            app, ["--config", str(config_file), "--format", "json"]
        )

    assert result.exit_code == 1
    output = json.loads(result.stdout)
    assert output["cancelled"] is True
    assert output["verdict"] == "some_failed"


def test_create_runner_uses_config() -> None:
    """create_runner wires poll settings and a fresh token cache."""
    config = TestConfig(
        cloud="china",
        poll_interval=1.0,
        poll_timeout=10.0,
        auth=AuthConfig(api_key="key"),
        services={"translator": ServiceConfig()},
    )

    first = create_runner(config)
    second = create_runner(config)

    assert first.executor.poll_interval == 1.0
    assert first.executor.poll_timeout == 10.0
    assert first.auth_manager.cloud.login_endpoint == "https://login.chinacloudapi.cn"
    assert first.auth_manager.cache is not second.auth_manager.cache


def test_main_unexpected_error(config_file: Path) -> None:
    """Unexpected failures during execution exit with code 1."""
    mock_runner = MagicMock()
    mock_runner.report = None
    mock_runner.execute = AsyncMock(side_effect=RuntimeError("boom"))

    with patch(
        "aiconnect.endpoint_test.cli.create_runner", return_value=mock_runner
    ):
        result = runner.invoke(app, ["--config", str(config_file)])

    assert result.exit_code == 1
    assert "Error running tests: boom" in result.output
