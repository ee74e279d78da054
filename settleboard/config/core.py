"""Process settings: environment first, then an optional YAML file.

Environment variables use the ``SETTLEBOARD_`` prefix and ``__`` as the
nested delimiter (``SETTLEBOARD_DATABASE__HOST``). A YAML file named by
``SETTLEBOARD_CONFIG`` (or passed to ``load_settings``) fills in anything
the environment leaves unset.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Tuple, Type

import yaml
from pydantic import BaseModel, Field
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from .settlement_params import SettlementParams

_SECRET_MARKERS = ("password", "secret", "token")
_yaml_path_override: str | None = None


def _project_root() -> Path:
    return Path(__file__).resolve().parent.parent.parent


def _data_dir(test_mode: bool = False) -> Path:
    base = Path(os.getenv("SETTLEBOARD_DATA_DIR") or _project_root() / "data")
    return base / "test" if test_mode else base


def _load_yaml(path: str | None) -> Dict[str, Any]:
    if not path:
        return {}
    file = Path(path)
    if not file.is_file():
        return {}
    with file.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ValueError(f"config file {path} must contain a mapping")
    return data


class _YamlSettingsSource(PydanticBaseSettingsSource):
    def __init__(self, settings_cls: Type[BaseSettings], data: Dict[str, Any]):
        super().__init__(settings_cls)
        self._data = data

    def get_field_value(self, field: FieldInfo, field_name: str) -> Tuple[Any, str, bool]:
        return self._data.get(field_name), field_name, False

    def __call__(self) -> Dict[str, Any]:
        return {k: v for k, v in self._data.items() if k in self.settings_cls.model_fields}


class DatabaseSettings(BaseModel):
    url: str | None = None
    host: str = "127.0.0.1"
    port: int = 5432
    user: str | None = None
    password: str | None = None
    name: str | None = None
    echo: bool = False


class LoggingSettings(BaseModel):
    level: str = "INFO"
    events_dir: str | None = None
    events_retention_bytes: int = 10 * 1024 * 1024


class RuntimeSettings(BaseModel):
    test_mode: bool = False


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SETTLEBOARD_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    runtime: RuntimeSettings = Field(default_factory=RuntimeSettings)
    params: SettlementParams = Field(default_factory=SettlementParams)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        yaml_path = _yaml_path_override or os.getenv("SETTLEBOARD_CONFIG")
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            _YamlSettingsSource(settings_cls, _load_yaml(yaml_path)),
            file_secret_settings,
        )


def load_settings(config_path: str | None = None) -> Settings:
    global _yaml_path_override
    previous = _yaml_path_override
    _yaml_path_override = config_path or previous
    try:
        return Settings()
    finally:
        _yaml_path_override = previous


def sanitize_dict(data: Any) -> Any:
    """Mask secret-looking values so settings can be logged."""
    if isinstance(data, dict):
        out: Dict[str, Any] = {}
        for key, value in data.items():
            if any(marker in str(key).lower() for marker in _SECRET_MARKERS) and value:
                out[key] = "***"
            elif str(key).lower() == "url" and isinstance(value, str) and "@" in value:
                scheme, _, rest = value.partition("://")
                out[key] = f"{scheme}://***@{rest.split('@', 1)[1]}"
            else:
                out[key] = sanitize_dict(value)
        return out
    if isinstance(data, list):
        return [sanitize_dict(v) for v in data]
    return data


__all__ = [
    "DatabaseSettings",
    "LoggingSettings",
    "RuntimeSettings",
    "Settings",
    "load_settings",
    "sanitize_dict",
    "_project_root",
    "_data_dir",
]
