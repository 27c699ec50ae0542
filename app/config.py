from __future__ import annotations

import os
from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pydantic_settings.sources import PydanticBaseSettingsSource, YamlConfigSettingsSource

from domain.models import DEFAULT_PALETTE, DEFAULT_RESOURCE_COUNT
from domain.services.interaction import DEFAULT_CONFIRM_MESSAGE
from domain.services.project_grid import DEFAULT_LANE_HEIGHT

DEFAULT_CONFIG_PATH = Path("config/calendar/app.yaml")

StorageKind = Literal["filesystem", "memory"]


def _split_string_list_value(raw_value: str) -> list[str]:
    raw = raw_value.strip()
    if not raw:
        return []
    if (
        (raw.startswith('"') and raw.endswith('"')) or (raw.startswith("'") and raw.endswith("'"))
    ) and len(raw) >= 2:
        raw = raw[1:-1].strip()
    if raw.startswith("[") and raw.endswith("]"):
        raw = raw[1:-1].strip()
    if not raw:
        return []
    return [
        token for token in (part.strip().strip("'").strip('"') for part in raw.split(",")) if token
    ]


class CalendarSettings(BaseModel):
    title: str = "Resource Calendar"
    storage: StorageKind = "filesystem"
    data_dir: Path = Path("data/calendar")
    palette: Annotated[list[str], NoDecode] = Field(default_factory=lambda: list(DEFAULT_PALETTE))
    default_resource_count: int = Field(DEFAULT_RESOURCE_COUNT, ge=0)
    lane_height: int = Field(DEFAULT_LANE_HEIGHT, gt=0)
    confirm_message: str = DEFAULT_CONFIRM_MESSAGE

    @field_validator("storage", mode="before")
    @classmethod
    def normalize_storage(cls, value: object) -> str:
        return str(value).strip().lower() if value else "filesystem"

    @field_validator("palette", mode="before")
    @classmethod
    def normalize_palette(cls, value: object) -> list[str]:
        if value is None or value == "":
            return list(DEFAULT_PALETTE)
        if isinstance(value, list | tuple):
            normalized: list[str] = []
            for item in value:
                normalized.extend(_split_string_list_value(str(item)))
            return normalized
        return _split_string_list_value(str(value))

    @field_validator("palette", mode="after")
    @classmethod
    def ensure_palette_not_empty(cls, value: list[str]) -> list[str]:
        if not value:
            msg = "calendar.palette must contain at least one color"
            raise ValueError(msg)
        return value


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="RCAL_", env_nested_delimiter="__")

    calendar: CalendarSettings = CalendarSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Reads model_config["yaml_file"]; contributes nothing when it is unset.
        yaml_settings = YamlConfigSettingsSource(settings_cls)
        return init_settings, env_settings, dotenv_settings, file_secret_settings, yaml_settings


def resolve_config_path(config_path: Path | None = None) -> Path | None:
    if config_path is not None:
        return config_path
    env_path = os.getenv("RCAL_CONFIG_PATH")
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH if DEFAULT_CONFIG_PATH.exists() else None


def load_settings(config_path: Path | None = None) -> AppSettings:
    resolved_path = resolve_config_path(config_path)
    if resolved_path is None:
        return AppSettings()
    if not resolved_path.exists():
        msg = f"Config file not found: {resolved_path}"
        raise FileNotFoundError(msg)

    class FileBackedSettings(AppSettings):
        model_config = SettingsConfigDict(yaml_file=resolved_path)

    return FileBackedSettings()
