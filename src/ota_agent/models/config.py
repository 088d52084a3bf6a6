"""Agent configuration model."""

import json
import logging
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class ConfigError(RuntimeError):
    """Raised when the configuration file exists but cannot be used."""


def _normalize_level(level: str) -> str:
    name = level.upper()
    if not isinstance(logging.getLevelName(name), int):
        raise ValueError(f"Unknown log level: {level}")
    return name


class AgentConfig(BaseModel):
    """Device identity, download and runtime settings.

    Loaded from a JSON file; every field has a default so a missing file
    yields a working sample configuration.
    """

    model_config = ConfigDict(extra="ignore")

    module: str = Field(default="mcu", min_length=1, description="Locally configured module name")
    initial_version: str = Field(default="v0.0.1", description="Version announced before any upgrade")
    event_id: Optional[str] = Field(
        None, description="Event id attached to unsolicited version reports"
    )
    package_save_path: Path = Field(
        default=Path("./download"), description="Directory packages are downloaded into"
    )
    download_timeout: float = Field(
        default=60.0, gt=0, description="Download timeout in seconds"
    )
    verify_tls: bool = Field(
        default=True,
        description="Validate the package server certificate (disable only for test rigs)",
    )
    min_free_bytes: int = Field(
        default=0, ge=0, description="Free space required before downloading (0 disables)"
    )
    max_workers: int = Field(default=4, ge=1, description="Concurrent upgrade tasks")
    platform_url: str = Field(
        default="http://localhost:9080/api/v1.0/events",
        description="Endpoint outbound events are posted to",
    )
    report_timeout: float = Field(default=5.0, gt=0, description="Outbound report timeout")
    log_file: str = Field(default="./logs/ota_agent.log")
    log_level: str = Field(default="INFO", description="Level of the ota_agent logger")
    log_levels: dict[str, str] = Field(
        default_factory=dict,
        description="Per-component overrides, e.g. {\"download\": \"DEBUG\"}",
    )
    log_max_bytes: int = Field(default=10 * 1024 * 1024, ge=1, description="Rotate log after this size")
    log_backup_count: int = Field(default=3, ge=0, description="Rotated log files kept")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=12316, ge=1, le=65535)

    @field_validator("log_level")
    @classmethod
    def known_level(cls, v: str) -> str:
        return _normalize_level(v)

    @field_validator("log_levels")
    @classmethod
    def known_component_levels(cls, v: dict[str, str]) -> dict[str, str]:
        return {component: _normalize_level(level) for component, level in v.items()}

    @classmethod
    def load(cls, path: Union[str, Path, None]) -> "AgentConfig":
        """Load configuration from a JSON file.

        Args:
            path: Path to the JSON file (None or missing file gives defaults)

        Returns:
            Validated AgentConfig

        Raises:
            ConfigError: If the file cannot be read, parsed or validated
        """
        logger = logging.getLogger("ota_agent.config")
        if path is None:
            return cls()

        config_path = Path(path)
        if not config_path.exists():
            logger.warning(f"Config file {config_path} not found, using defaults")
            return cls()

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Failed to read config file {config_path}: {e}") from e

        try:
            config = cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid config file {config_path}: {e}") from e

        logger.info(f"Loaded config from {config_path}: module={config.module}")
        return config
