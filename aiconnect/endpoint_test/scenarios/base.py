"""Abstract base classes for per-service scenarios."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Literal

import aiohttp

from aiconnect.endpoint_test.errors import MalformedResponseError
from aiconnect.endpoint_test.models.test_result import RawOutcome, TestContext

ResponseKind = Literal["json", "bytes", "none"]


class ServiceScenario(ABC):
    """One named check against one service.

    Leaves build the request and report what they saw as a RawOutcome; they
    let transport errors propagate so the executor can classify them.
    """

    name: str = ""
    api_key_header: str = "Ocp-Apim-Subscription-Key"
    requires_input: bool = False

    def skip_reason(self, context: TestContext) -> str | None:
        """Reason this scenario cannot run in context, if any."""
        if self.requires_input and context.input_data is None:
            return "no input file configured"
        return None

    def headers(self, context: TestContext) -> dict[str, str]:
        """Credential headers for this service."""
        return context.credential.auth_headers(self.api_key_header)

    @abstractmethod
    async def perform(self, context: TestContext) -> RawOutcome:
        """Issue the request(s) and describe the response.

        Args:
            context: Endpoint, credential and input for the service

        Returns:
            Raw outcome; for polling scenarios the submit outcome carrying
            the status resource location

        Raises:
            aiohttp.ClientError: On transport failure
            TimeoutError: If the request timed out
            MalformedResponseError: If the body cannot be interpreted

        """

    async def send(
        self,
        context: TestContext,
        method: str,
        url: str,
        expect: ResponseKind = "json",
        **kwargs: object,
    ) -> tuple[Mapping[str, str], int, object]:
        """Send one request with credential headers and read the body.

        Returns:
            Tuple of (response headers, status, decoded body). The body is
            only decoded for 2xx responses.

        """
        headers = dict(self.headers(context))
        extra_headers = kwargs.pop("headers", None)
        if isinstance(extra_headers, Mapping):
            headers.update(extra_headers)

        async with aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=context.timeout)
        ) as session:
            async with session.request(
                method, url, headers=headers, **kwargs
            ) as response:
                body: object = None
                if 200 <= response.status < 300 and expect != "none":
                    if expect == "json":
                        try:
                            body = await response.json(content_type=None)
                        except ValueError as e:
                            raise MalformedResponseError(
                                f"Invalid JSON from {url}: {e}"
                            ) from e
                    else:
                        body = await response.read()
                return response.headers, response.status, body


class PollingScenario(ServiceScenario):
    """Submit-then-poll scenario for long-running operations."""

    @abstractmethod
    async def poll_status(self, context: TestContext, location: str) -> RawOutcome:
        """Check the status resource of a submitted job.

        Returns:
            Outcome with state "running", "completed" or "failed"

        """
