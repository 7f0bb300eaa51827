"""Load and validate test configuration from YAML files."""

import logging
import os
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import ValidationError

from aiconnect.endpoint_test.auth.manual_token import validate_bearer_token
from aiconnect.endpoint_test.errors import ConfigError, InvalidInputError
from aiconnect.endpoint_test.models.auth_config import AuthConfig
from aiconnect.endpoint_test.models.service_config import TestConfig
from aiconnect.endpoint_test.scenarios.registry import get_service

logger = logging.getLogger(__name__)

ENV_OVERRIDES: dict[str, str] = {
    "AZURE_TENANT_ID": "tenant_id",
    "AZURE_CLIENT_ID": "client_id",
    "AZURE_CLIENT_SECRET": "client_secret",
    "AZURE_AI_API_KEY": "api_key",
    "AZURE_AI_BEARER_TOKEN": "bearer_token",
    "AZURE_AI_MANAGED_IDENTITY_CLIENT_ID": "managed_identity_client_id",
}


def load_config(
    config_file: Path, environ: Mapping[str, str] | None = None
) -> TestConfig:
    """Load test configuration from a YAML file.

    Args:
        config_file: Path to the YAML configuration
        environ: Environment used for overrides (defaults to os.environ)

    Returns:
        Parsed and validated configuration

    Raises:
        ConfigError: If the file is missing, invalid YAML, or fails validation
        InvalidInputError: If a bearer token or input file is unusable

    """
    if not config_file.exists():
        raise ConfigError(f"Config file not found: {config_file}")

    try:
        with config_file.open() as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_file}: {e}") from e

    if data is None:
        raise ConfigError(f"Empty config file: {config_file}")

    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a mapping: {config_file}")

    apply_env_overrides(data, os.environ if environ is None else environ)

    try:
        config = TestConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_file}: {e}") from e

    _resolve_input_paths(config, config_file.parent)
    validate_config(config)
    return config


def apply_env_overrides(data: dict[str, object], environ: Mapping[str, str]) -> None:
    """Fill global auth settings from environment variables."""
    auth = data.setdefault("auth", {})
    if not isinstance(auth, dict):
        return

    for variable, field in ENV_OVERRIDES.items():
        value = environ.get(variable)
        if value:
            logger.debug(f"Using {variable} for auth.{field}")
            auth[field] = value


def _resolve_input_paths(config: TestConfig, base_dir: Path) -> None:
    """Interpret relative input paths relative to the config file."""
    for service in config.services.values():
        if service.input_file is not None and not service.input_file.is_absolute():
            service.input_file = base_dir / service.input_file


def validate_config(config: TestConfig) -> None:
    """Check cross-field rules pydantic cannot express.

    Raises:
        ConfigError: For unknown services/scenarios or missing endpoints
        InvalidInputError: For unusable bearer tokens or input files

    """
    enabled = config.enabled_services()
    if not enabled:
        raise ConfigError("No services enabled")

    for name, service in enabled:
        try:
            definition = get_service(name)
            for scenario in service.scenarios:
                definition.get_scenario(scenario)
        except KeyError as e:
            raise ConfigError(str(e.args[0])) from e

        if not service.endpoint:
            if definition.needs_region and not service.region:
                raise ConfigError(f"Service '{name}' requires a region or endpoint")
            if definition.default_endpoint(service.region, config.cloud) is None:
                raise ConfigError(f"Service '{name}' requires an endpoint")

        auth = config.auth_for(service)
        _validate_auth(name, auth, service.region)

        if service.input_file is not None and not service.input_file.is_file():
            raise InvalidInputError(
                f"Input file for service '{name}' not found: {service.input_file}"
            )


def _validate_auth(name: str, auth: AuthConfig, region: str | None) -> None:
    methods = [auth.primary, auth.fallback] if auth.method == "both" else [auth.method]

    if "manual_token" in methods and auth.bearer_token is not None:
        validate_bearer_token(auth.bearer_token.get_secret_value())

    if (
        "token_exchange" in methods
        and not auth.token_exchange_endpoint
        and not region
    ):
        raise ConfigError(
            f"Service '{name}': token_exchange needs a region or "
            "token_exchange_endpoint"
        )


def with_overrides(
    config: TestConfig,
    auth_method: str | None = None,
    services: list[str] | None = None,
    timeout: float | None = None,
    parallel: int | None = None,
) -> TestConfig:
    """Apply command line overrides and re-validate.

    Raises:
        ConfigError: If the result is invalid

    """
    data = config.model_dump()
    # model_dump keeps SecretStr objects, which validate back unchanged.
    if auth_method:
        data["auth"]["method"] = auth_method
    if services:
        unknown = [s for s in services if s not in config.services]
        if unknown:
            raise ConfigError(f"Services not in configuration: {', '.join(unknown)}")
        for name, service in data["services"].items():
            service["enabled"] = service["enabled"] and name in services
    if timeout is not None:
        data["timeout"] = timeout
    if parallel is not None:
        data["max_parallel_services"] = parallel

    try:
        updated = TestConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid command line override: {e}") from e

    validate_config(updated)
    return updated
