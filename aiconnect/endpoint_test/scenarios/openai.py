"""Azure OpenAI scenarios."""

from aiconnect.endpoint_test.cloud import Cloud
from aiconnect.endpoint_test.errors import MalformedResponseError
from aiconnect.endpoint_test.models.test_result import RawOutcome, TestContext
from aiconnect.endpoint_test.scenarios.base import ServiceScenario

API_VERSION = "2024-10-21"


def default_endpoint(region: str | None, cloud: Cloud) -> str | None:
    """Azure OpenAI endpoints are resource specific."""
    return None


class OpenAIScenario(ServiceScenario):
    """Azure OpenAI takes its key in the ``api-key`` header."""

    api_key_header = "api-key"


class ModelsList(OpenAIScenario):
    """List models available to the resource."""

    name = "models_list"

    async def perform(self, context: TestContext) -> RawOutcome:
        url = f"{context.endpoint.rstrip('/')}/openai/models"
        _, status, body = await self.send(
            context, "GET", url, params={"api-version": API_VERSION}
        )

        if 200 <= status < 300:
            if not isinstance(body, dict) or not isinstance(body.get("data"), list):
                raise MalformedResponseError("Model list has no 'data' array")
            return RawOutcome(http_status=status, detail=f"{len(body['data'])} models")

        return RawOutcome(http_status=status)


class ChatCompletion(OpenAIScenario):
    """One-token chat completion against the configured deployment."""

    name = "chat_completion"

    def skip_reason(self, context: TestContext) -> str | None:
        if not context.deployment:
            return "no deployment configured"
        return super().skip_reason(context)

    async def perform(self, context: TestContext) -> RawOutcome:
        url = (
            f"{context.endpoint.rstrip('/')}/openai/deployments/"
            f"{context.deployment}/chat/completions"
        )
        _, status, body = await self.send(
            context,
            "POST",
            url,
            params={"api-version": API_VERSION},
            json={
                "messages": [{"role": "user", "content": "Reply with OK."}],
                "max_tokens": 1,
            },
        )

        if 200 <= status < 300:
            if not isinstance(body, dict) or not body.get("choices"):
                raise MalformedResponseError("Chat completion has no choices")
            return RawOutcome(http_status=status, detail=str(body.get("model", "")))

        return RawOutcome(http_status=status)


SCENARIOS: list[ServiceScenario] = [ModelsList(), ChatCompletion()]
