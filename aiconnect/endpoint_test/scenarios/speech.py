"""Azure AI Speech scenarios."""

from typing import Literal

from aiconnect.endpoint_test.cloud import Cloud, get_cloud
from aiconnect.endpoint_test.errors import MalformedResponseError
from aiconnect.endpoint_test.models.test_result import RawOutcome, TestContext
from aiconnect.endpoint_test.scenarios.base import ServiceScenario

SYNTHESIS_SSML = (
    "<speak version='1.0' xml:lang='en-US'>"
    "<voice name='en-US-AvaMultilingualNeural'>Connectivity test.</voice>"
    "</speak>"
)


def default_endpoint(region: str | None, cloud: Cloud) -> str | None:
    """Regional text-to-speech host."""
    if not region:
        return None
    return get_cloud(cloud).speech_host(region, "tts")


def speech_host(context: TestContext, kind: Literal["tts", "stt"]) -> str:
    """Host for synthesis or recognition; a custom endpoint serves both."""
    if context.custom_endpoint or not context.region:
        return context.endpoint.rstrip("/")
    return get_cloud(context.cloud).speech_host(context.region, kind)


class VoicesList(ServiceScenario):
    """List available neural voices."""

    name = "voices_list"

    async def perform(self, context: TestContext) -> RawOutcome:
        url = f"{speech_host(context, 'tts')}/cognitiveservices/voices/list"
        _, status, body = await self.send(context, "GET", url)

        if 200 <= status < 300:
            if not isinstance(body, list):
                raise MalformedResponseError("Voice list is not a JSON array")
            return RawOutcome(http_status=status, detail=f"{len(body)} voices")

        return RawOutcome(http_status=status)


class Synthesize(ServiceScenario):
    """Synthesize a short sentence to audio."""

    name = "synthesize"

    async def perform(self, context: TestContext) -> RawOutcome:
        url = f"{speech_host(context, 'tts')}/cognitiveservices/v1"
        _, status, body = await self.send(
            context,
            "POST",
            url,
            expect="bytes",
            data=SYNTHESIS_SSML.encode(),
            headers={
                "Content-Type": "application/ssml+xml",
                "X-Microsoft-OutputFormat": "riff-16khz-16bit-mono-pcm",
                "User-Agent": "aiconnect-endpoint-test",
            },
        )

        if 200 <= status < 300:
            if not body:
                raise MalformedResponseError("Synthesis returned no audio")
            return RawOutcome(http_status=status, detail=f"{len(body)} bytes audio")

        return RawOutcome(http_status=status)


class Recognize(ServiceScenario):
    """Recognize speech in a short WAV file."""

    name = "recognize"
    requires_input = True

    async def perform(self, context: TestContext) -> RawOutcome:
        url = (
            f"{speech_host(context, 'stt')}/speech/recognition/conversation/"
            "cognitiveservices/v1"
        )
        _, status, body = await self.send(
            context,
            "POST",
            url,
            params={"language": "en-US", "format": "simple"},
            data=context.input_data,
            headers={"Content-Type": "audio/wav; codecs=audio/pcm; samplerate=16000"},
        )

        if 200 <= status < 300:
            if not isinstance(body, dict):
                raise MalformedResponseError("Recognition result is not an object")
            return RawOutcome(
                http_status=status,
                detail=f"RecognitionStatus={body.get('RecognitionStatus')}",
            )

        return RawOutcome(http_status=status)


SCENARIOS: list[ServiceScenario] = [VoicesList(), Synthesize(), Recognize()]
