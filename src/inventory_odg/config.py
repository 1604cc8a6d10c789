"""Configuration management for the Inventory ODG extension."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

_config_logger = logging.getLogger(__name__)

CONFIG_FORMAT_VERSION = "v1alpha1"
CONFIG_PATHS_ENV = "INVENTORY_EXTENSION_CONFIG"


class LoggingSettings(BaseModel):
    level: str = Field(default="INFO", description="Python logging level name")
    format: Literal["text", "json"] = Field(default="text")
    file: str | None = Field(default=None, description="Optional log file path")

    @field_validator("level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        return value.strip().upper()


class DatabaseSettings(BaseModel):
    dsn: str = Field(default="", description="SQLAlchemy URL of the Inventory database")
    echo: bool = Field(default=False, description="Log every statement executed")


class GithubAuthSettings(BaseModel):
    url: str = Field(default="", description="Github API URL used by the Delivery Service")
    token: str = Field(default="", description="Github access token")

    def __repr__(self) -> str:
        return f"GithubAuthSettings(url={self.url!r}, token=***)"


class ODGAuthSettings(BaseModel):
    method: Literal["github", "none"] = Field(default="none")
    github: GithubAuthSettings = Field(default_factory=GithubAuthSettings)

    @model_validator(mode="after")
    def _check_github(self) -> "ODGAuthSettings":
        if self.method == "github":
            if not self.github.url:
                raise ValueError("odg: no github api url specified")
            if not self.github.token:
                raise ValueError("odg: no github access token specified")
        return self


class ODGSettings(BaseModel):
    endpoint: str = Field(default="", description="Base URL of the Delivery Service API")
    user_agent: str = Field(default="gardener-inventory-extension-odg/0.1.0")
    timeout_seconds: float = Field(default=30.0, ge=0.1, le=600)
    auth: ODGAuthSettings = Field(default_factory=ODGAuthSettings)


class Settings(BaseModel):
    version: str = Field(default=CONFIG_FORMAT_VERSION)
    debug: bool = Field(default=False)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    odg: ODGSettings = Field(default_factory=ODGSettings)


ENV_KEYS = {
    "log_level": "LOG_LEVEL",
    "log_file": "LOG_FILE",
    "log_format": "LOG_FORMAT",
    "database_dsn": "INVENTORY_DATABASE_DSN",
    "odg_endpoint": "ODG_ENDPOINT",
    "odg_user_agent": "ODG_USER_AGENT",
    "odg_timeout": "ODG_TIMEOUT_SECONDS",
    "odg_auth_method": "ODG_AUTH_METHOD",
    "odg_github_url": "ODG_GITHUB_URL",
    "odg_github_token": "ODG_GITHUB_TOKEN",
}

# Environment key -> path inside the settings document.
_ENV_OVERRIDES: dict[str, tuple[str, ...]] = {
    ENV_KEYS["log_level"]: ("logging", "level"),
    ENV_KEYS["log_file"]: ("logging", "file"),
    ENV_KEYS["log_format"]: ("logging", "format"),
    ENV_KEYS["database_dsn"]: ("database", "dsn"),
    ENV_KEYS["odg_endpoint"]: ("odg", "endpoint"),
    ENV_KEYS["odg_user_agent"]: ("odg", "user_agent"),
    ENV_KEYS["odg_timeout"]: ("odg", "timeout_seconds"),
    ENV_KEYS["odg_auth_method"]: ("odg", "auth", "method"),
    ENV_KEYS["odg_github_url"]: ("odg", "auth", "github", "url"),
    ENV_KEYS["odg_github_token"]: ("odg", "auth", "github", "token"),
}


def _split_csv_preserve_case(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _set_path(data: dict[str, Any], path: tuple[str, ...], value: object) -> None:
    node = data
    for key in path[:-1]:
        child = node.get(key)
        if not isinstance(child, dict):
            child = {}
            node[key] = child
        node = child
    node[path[-1]] = value


def _read_config_file(path: str) -> dict[str, Any]:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    with config_path.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise RuntimeError(f"Invalid configuration: {config_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise RuntimeError(f"Invalid configuration: {config_path} is not a mapping")

    version = data.get("version")
    if not version:
        raise RuntimeError(f"Invalid configuration: no config version specified: {config_path}")
    if version != CONFIG_FORMAT_VERSION:
        raise RuntimeError(
            f"Invalid configuration: unsupported config version: {version} ({config_path})"
        )
    return data


def config_paths_from_env() -> list[str]:
    return _split_csv_preserve_case(os.getenv(CONFIG_PATHS_ENV))


def load_settings(paths: Iterable[str] = ()) -> Settings:
    """Load configuration from YAML files, in order, then apply environment overrides.

    Settings from later files override settings from earlier files. Each file
    must declare ``version: v1alpha1``.
    """

    load_dotenv(dotenv_path=_project_root() / ".env")

    settings_data: dict[str, Any] = {}
    for path in paths:
        settings_data = _deep_merge(settings_data, _read_config_file(path))

    for env_key, target in _ENV_OVERRIDES.items():
        value = os.getenv(env_key)
        if value is None or value.strip() == "":
            continue
        _config_logger.debug("Applying %s from environment", env_key)
        _set_path(settings_data, target, value.strip())

    try:
        settings = Settings.model_validate(settings_data)
    except ValidationError as exc:
        raise RuntimeError(f"Invalid configuration: {exc}") from exc

    if not settings.odg.endpoint:
        raise RuntimeError("Invalid configuration: odg: no api endpoint specified")
    if not settings.database.dsn:
        raise RuntimeError("Invalid configuration: database: no dsn specified")

    if settings.logging.file:
        Path(settings.logging.file).parent.mkdir(parents=True, exist_ok=True)

    return settings
