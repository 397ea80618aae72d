"""Service configuration: defaults, an optional JSON file, then environment."""

import json
import os
from pathlib import Path
from typing import Literal, Optional, Union

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .auth import build_auth_provider
from .endpoints import validate_template
from .errors import ConfigurationError
from .logging_config import get_logger
from .models import TargetConfig

logger = get_logger("jobrelay.config")

CONFIG_ENV_VAR = "JOBRELAY_CONFIG"
DEFAULT_PORT = 4224


class Settings(BaseSettings):
    """Process-wide settings; immutable once loaded."""

    model_config = SettingsConfigDict(
        env_prefix="JOBRELAY_",
        env_nested_delimiter="__",
        frozen=True,
        extra="ignore",
    )

    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    debug: bool = False
    log_level: str = "INFO"
    log_file: Optional[str] = None
    state_file: str = "pending_jobs.json"
    queue_capacity: int = Field(default=100, gt=0)
    shutdown_grace: float = 5.0
    backoff: Literal["sinus", "exponential"] = "sinus"
    backoff_max_delay: Optional[float] = 3600.0
    target: TargetConfig = Field(default_factory=TargetConfig)

    @classmethod
    def settings_customise_sources(cls, settings_cls, init_settings, env_settings, dotenv_settings, file_secret_settings):
        # Environment overrides values read from the config file
        return env_settings, init_settings, dotenv_settings, file_secret_settings


def validate_settings(settings: Settings) -> None:
    """Checks that need the whole target config; raises ConfigurationError."""
    target = settings.target
    if not target.base_url:
        raise ConfigurationError("target.base_url is not configured")
    if not target.endpoints.check:
        raise ConfigurationError("target.endpoints.check is not configured")
    if target.min_workers < 1 or target.min_workers > target.max_workers:
        raise ConfigurationError(
            f"invalid worker bounds: min_workers={target.min_workers}, max_workers={target.max_workers}"
        )
    for template in (target.endpoints.check, target.endpoints.write, target.endpoints.revision):
        if template:
            validate_template(template)
    # Fails on missing credentials
    build_auth_provider(target.auth)


def load_settings(path: Optional[Union[str, Path]] = None, validate: bool = True) -> Settings:
    """Load settings from a JSON file (if any) and the environment."""
    path = path or os.environ.get(CONFIG_ENV_VAR)
    file_values = {}
    if path:
        config_path = Path(path)
        if config_path.exists():
            try:
                with open(config_path, "r") as f:
                    file_values = json.load(f)
            except (OSError, ValueError) as e:
                raise ConfigurationError(f"cannot read config file {config_path}: {e}") from e
            if not isinstance(file_values, dict):
                raise ConfigurationError(f"config file {config_path} must contain a JSON object")
        else:
            logger.warning("Config file not found, using defaults", path=str(config_path))

    try:
        settings = Settings(**file_values)
    except ValidationError as e:
        raise ConfigurationError(f"invalid configuration: {e}") from e

    if validate:
        validate_settings(settings)
    return settings
