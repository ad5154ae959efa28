from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from queuetap.errors import ConfigError
from queuetap.models import BrokerConfig, ReplacementConfig

DEFAULT_SETTINGS_FILE = "appsettings.json"


class QueueTapConfig(BaseSettings):
    """Configuration for queuetap, loaded from appsettings.json and QUEUETAP_* environment variables."""

    # Broker
    rabbitmq: BrokerConfig = Field(default_factory=BrokerConfig)

    # Replacement rules
    json_replacement: ReplacementConfig = Field(default_factory=ReplacementConfig)

    # Event history; disabled keeps events in memory only
    history_enabled: bool = True
    history_dir: str = "~/.cache/queuetap/history"
    history_size: int = 1000

    # JMeter generation
    jmx_template: str = "JMeterTemplate.jmx"
    jmx_step_template: str = "Teststep.jmx"

    model_config = SettingsConfigDict(env_prefix="QUEUETAP_", env_nested_delimiter="__")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment wins over values read from the settings file.
        return env_settings, init_settings, dotenv_settings, file_secret_settings


def _read_settings_file(path: Path) -> dict[str, Any]:
    try:
        with open(path) as f:
            data: Any = json.load(f)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Settings file {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Settings file {path} must contain a JSON object")
    return data


def load_config(path: str | Path | None = None) -> QueueTapConfig:
    """Load settings from an appsettings.json-shaped file, overlaid with the environment.

    The file's "RabbitMq" and "JsonReplacement" sections use PascalCase keys; an
    optional "QueueTap" section carries the remaining fields. A missing file
    yields the defaults.
    """
    settings_path = Path(path) if path is not None else Path(DEFAULT_SETTINGS_FILE)
    if not settings_path.exists():
        if path is not None:
            raise ConfigError(f"Settings file not found: {settings_path}")
        return QueueTapConfig()

    data = _read_settings_file(settings_path)
    values: dict[str, Any] = {}
    try:
        if "RabbitMq" in data:
            values["rabbitmq"] = BrokerConfig.model_validate(data["RabbitMq"]).model_dump()
        if "JsonReplacement" in data:
            values["json_replacement"] = ReplacementConfig.model_validate(data["JsonReplacement"]).model_dump()
        section = data.get("QueueTap") or {}
        for key in ("history_enabled", "history_dir", "history_size", "jmx_template", "jmx_step_template"):
            pascal = "".join(part.title() for part in key.split("_"))
            if pascal in section:
                values[key] = section[pascal]
        return QueueTapConfig(**values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings in {settings_path}: {exc}") from exc
