"""Reduce a test report to a single verdict and exit code."""

from typing import Literal

from aiconnect.endpoint_test.errors import (
    AuthError,
    ConfigError,
    InvalidInputError,
    NetworkError,
)
from aiconnect.endpoint_test.models.test_result import TestReport

Verdict = Literal[
    "all_passed",
    "some_failed",
    "auth_failed",
    "network_failed",
    "config_error",
    "invalid_input",
]

EXIT_CODES: dict[Verdict, int] = {
    "all_passed": 0,
    "some_failed": 1,
    "auth_failed": 2,
    "network_failed": 3,
    "config_error": 4,
    "invalid_input": 5,
}


def _fatal_verdict(error: Exception) -> Verdict:
    if isinstance(error, ConfigError):
        return "config_error"
    if isinstance(error, InvalidInputError):
        return "invalid_input"
    if isinstance(error, AuthError):
        return "auth_failed"
    if isinstance(error, NetworkError):
        return "network_failed"
    return "some_failed"


def aggregate(
    report: TestReport | None, fatal_error: Exception | None = None
) -> tuple[Verdict, int]:
    """Compute the verdict and process exit code.

    Authentication failures dominate network failures, which dominate any
    other failure or timeout, which dominate success. A fatal pre-execution
    error decides the verdict regardless of any partial report.

    Args:
        report: Results of the session, possibly partial
        fatal_error: Error that aborted the session before execution

    Returns:
        Tuple of (verdict, exit code)

    """
    if fatal_error is not None:
        fatal = _fatal_verdict(fatal_error)
        return fatal, EXIT_CODES[fatal]

    results = report.results if report is not None else []
    failures = [r for r in results if r.status == "failure"]

    verdict: Verdict
    if any(r.failure_kind == "auth" for r in failures):
        verdict = "auth_failed"
    elif any(r.failure_kind == "network" for r in failures):
        verdict = "network_failed"
    elif failures or any(r.status == "timeout" for r in results):
        verdict = "some_failed"
    elif report is not None and report.cancelled:
        verdict = "some_failed"
    else:
        verdict = "all_passed"

    return verdict, EXIT_CODES[verdict]
