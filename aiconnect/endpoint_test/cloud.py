"""Per-cloud endpoint settings."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Cloud = Literal["global", "china"]


class CloudSettings(BaseModel):
    """Well-known hosts for one Azure cloud."""

    model_config = ConfigDict(frozen=True)

    login_endpoint: str = Field(..., description="Entra ID authority host")
    cognitive_resource: str = Field(
        ..., description="Resource identifier for Cognitive Services tokens"
    )
    cognitive_suffix: str = Field(
        ..., description="Host suffix for regional api.cognitive endpoints"
    )
    speech_suffix: str = Field(..., description="Host suffix for Speech endpoints")
    translator_endpoint: str = Field(..., description="Global Translator endpoint")

    @property
    def cognitive_scope(self) -> str:
        """OAuth2 v2 scope for Cognitive Services."""
        return f"{self.cognitive_resource}/.default"

    def token_url(self, tenant_id: str) -> str:
        """Tenant token endpoint."""
        return f"{self.login_endpoint}/{tenant_id}/oauth2/v2.0/token"

    def device_code_url(self, tenant_id: str) -> str:
        """Tenant device authorization endpoint."""
        return f"{self.login_endpoint}/{tenant_id}/oauth2/v2.0/devicecode"

    def sts_url(self, region: str) -> str:
        """Regional token-exchange (issueToken) endpoint."""
        return f"https://{region}.{self.cognitive_suffix}/sts/v1.0/issueToken"

    def speech_host(self, region: str, kind: Literal["tts", "stt"]) -> str:
        """Regional Speech host for synthesis or recognition."""
        return f"https://{region}.{kind}.{self.speech_suffix}"


CLOUDS: dict[Cloud, CloudSettings] = {
    "global": CloudSettings(
        login_endpoint="https://login.microsoftonline.com",
        cognitive_resource="https://cognitiveservices.azure.com",
        cognitive_suffix="api.cognitive.microsoft.com",
        speech_suffix="speech.microsoft.com",
        translator_endpoint="https://api.cognitive.microsofttranslator.com",
    ),
    "china": CloudSettings(
        login_endpoint="https://login.chinacloudapi.cn",
        cognitive_resource="https://cognitiveservices.azure.cn",
        cognitive_suffix="api.cognitive.azure.cn",
        speech_suffix="speech.azure.cn",
        translator_endpoint="https://api.translator.azure.cn",
    ),
}


def get_cloud(cloud: Cloud) -> CloudSettings:
    """Return settings for the selected cloud."""
    return CLOUDS[cloud]
