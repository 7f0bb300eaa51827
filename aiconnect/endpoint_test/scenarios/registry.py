"""Catalogue of known services and their scenarios."""

from collections.abc import Callable
from dataclasses import dataclass

from aiconnect.endpoint_test.cloud import Cloud
from aiconnect.endpoint_test.scenarios import (
    document_intelligence,
    openai,
    speech,
    translator,
)
from aiconnect.endpoint_test.scenarios.base import ServiceScenario


@dataclass(frozen=True)
class ServiceDefinition:
    """A service: how to find its endpoint and which scenarios it has."""

    name: str
    default_endpoint: Callable[[str | None, Cloud], str | None]
    scenarios: tuple[ServiceScenario, ...]
    needs_region: bool = False

    def scenario_names(self) -> list[str]:
        """Scenario names in catalogue order."""
        return [scenario.name for scenario in self.scenarios]

    def get_scenario(self, name: str) -> ServiceScenario:
        """Look up a scenario by name.

        Raises:
            KeyError: If the service has no such scenario

        """
        for scenario in self.scenarios:
            if scenario.name == name:
                return scenario
        raise KeyError(f"Unknown scenario '{name}' for service '{self.name}'")


SERVICES: dict[str, ServiceDefinition] = {
    "speech": ServiceDefinition(
        name="speech",
        default_endpoint=speech.default_endpoint,
        scenarios=tuple(speech.SCENARIOS),
        needs_region=True,
    ),
    "translator": ServiceDefinition(
        name="translator",
        default_endpoint=translator.default_endpoint,
        scenarios=tuple(translator.SCENARIOS),
    ),
    "openai": ServiceDefinition(
        name="openai",
        default_endpoint=openai.default_endpoint,
        scenarios=tuple(openai.SCENARIOS),
    ),
    "document_intelligence": ServiceDefinition(
        name="document_intelligence",
        default_endpoint=document_intelligence.default_endpoint,
        scenarios=tuple(document_intelligence.SCENARIOS),
    ),
}


def get_service(name: str) -> ServiceDefinition:
    """Look up a service definition.

    Raises:
        KeyError: If the service is unknown

    """
    try:
        return SERVICES[name]
    except KeyError:
        raise KeyError(
            f"Unknown service '{name}'. Must be one of: {', '.join(SERVICES)}"
        ) from None
