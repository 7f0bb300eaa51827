"""Azure AI Translator scenarios."""

from aiconnect.endpoint_test.cloud import Cloud, get_cloud
from aiconnect.endpoint_test.errors import MalformedResponseError
from aiconnect.endpoint_test.models.test_result import RawOutcome, TestContext
from aiconnect.endpoint_test.scenarios.base import ServiceScenario

API_VERSION = "3.0"


def default_endpoint(region: str | None, cloud: Cloud) -> str | None:
    """Global Translator endpoint for the cloud."""
    return get_cloud(cloud).translator_endpoint


class TranslatorScenario(ServiceScenario):
    """Adds the resource region header multi-service keys need."""

    def headers(self, context: TestContext) -> dict[str, str]:
        headers = super().headers(context)
        if context.region and context.credential.kind == "api_key":
            headers["Ocp-Apim-Subscription-Region"] = context.region
        return headers


class Languages(TranslatorScenario):
    """List supported languages."""

    name = "languages"

    async def perform(self, context: TestContext) -> RawOutcome:
        url = f"{context.endpoint.rstrip('/')}/languages"
        _, status, body = await self.send(
            context,
            "GET",
            url,
            params={"api-version": API_VERSION, "scope": "translation"},
        )

        if 200 <= status < 300 and (
            not isinstance(body, dict) or "translation" not in body
        ):
            raise MalformedResponseError("Language list has no 'translation'")

        return RawOutcome(http_status=status)


class Translate(TranslatorScenario):
    """Translate one sentence to German."""

    name = "translate"

    async def perform(self, context: TestContext) -> RawOutcome:
        url = f"{context.endpoint.rstrip('/')}/translate"
        _, status, body = await self.send(
            context,
            "POST",
            url,
            params={"api-version": API_VERSION, "to": "de"},
            json=[{"Text": "Hello, world"}],
        )

        if 200 <= status < 300:
            try:
                text = body[0]["translations"][0]["text"]  # type: ignore[index]
            except (TypeError, KeyError, IndexError) as e:
                raise MalformedResponseError(
                    f"Unexpected translation response: {e}"
                ) from e
            return RawOutcome(http_status=status, detail=str(text))

        return RawOutcome(http_status=status)


SCENARIOS: list[ServiceScenario] = [Languages(), Translate()]
