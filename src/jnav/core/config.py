"""Application configuration management.

Handles loading and validating configuration from multiple sources:
    - TOML/JSON config files
    - Environment variables (JNAV_* prefix)
    - Default values

Key components:
    - AppConfig: Main configuration model
    - load_config(): Safe config loading with fallback
    - ConfigLoadResult: Metadata about config source
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Mapping
from contextlib import nullcontext
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Any
from unittest.mock import patch

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, PydanticBaseSettingsSource, SettingsConfigDict

CONFIG_ENV_VAR = "JNAV_CONFIG"


class ConfigError(RuntimeError):
    """Raised when configuration cannot be loaded or validated."""


def _default_data_path() -> Path:
    # Same location the shell implementation used, so existing databases carry over.
    jsh_dir = os.environ.get("JSH_DIR")
    base = Path(jsh_dir) if jsh_dir else Path.home() / ".jsh"
    return base / "local" / "j.db"


class AppConfig(BaseSettings):
    """Navigation engine configuration."""

    model_config = SettingsConfigDict(
        env_prefix="JNAV_",
        extra="ignore",
    )

    data_path: Path = Field(
        default_factory=_default_data_path, description="Location of the frecency store file."
    )
    exclude_roots: Annotated[list[Path], NoDecode] = Field(
        default_factory=list,
        description="Path prefixes that are never tracked (colon-separated in the environment).",
    )
    exclude_home: bool = Field(
        default=True, description="Never track the home directory itself."
    )
    disable_hook: bool = Field(
        default=False, description="Suppress updates from the post-cd hook."
    )
    min_path_length: int = Field(
        default=4, ge=1, description="Paths shorter than this (/, /tmp) are never tracked."
    )
    decay: float = Field(
        default=0.99, gt=0.0, le=1.0, description="Per-hour multiplicative score decay."
    )
    min_score: float = Field(
        default=0.01, ge=0.0, description="Entries scoring below this are hidden from results."
    )
    interactive_limit: int = Field(
        default=10, ge=1, description="Maximum entries shown by the numbered-list selector."
    )
    fuzzy_finder: str = Field(default="fzf", description="External fuzzy finder executable.")
    use_fuzzy_finder: bool = Field(
        default=True, description="Use the fuzzy finder when it is installed."
    )
    registry_command: str = Field(
        default="gitx path", description="Project registry lookup command; receives one name."
    )
    registry_list_command: str = Field(
        default="gitx list", description="Lists registry projects for the interactive picker."
    )
    launcher_command: str | None = Field(
        default=None, description="Command used by --code; probed for VS Code when unset."
    )
    legacy_marks_path: Path = Field(
        default_factory=lambda: Path.home() / ".marks",
        description="Legacy bookmark file imported once into an empty store.",
    )
    migration_visit_count: int = Field(
        default=10, ge=1, description="Visit count given to imported bookmarks."
    )
    log_level: str = Field(default="WARNING", description="Log level for jnav diagnostics.")

    @field_validator("exclude_roots", mode="before")
    @classmethod
    def split_exclude_roots(cls, value: Any) -> Any:
        """Accept a colon-separated string as well as a list."""
        if value is None:
            return []
        if isinstance(value, str):
            return [item for item in value.split(os.pathsep) if item.strip()]
        return value

    @field_validator("exclude_roots", mode="after")
    @classmethod
    def expand_exclude_roots(cls, value: list[Path]) -> list[Path]:
        return [Path(item).expanduser() for item in value]

    @field_validator("data_path", "legacy_marks_path", mode="after")
    @classmethod
    def expand_paths(cls, value: Path) -> Path:
        return value.expanduser()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
    ]:
        # Ensure environment variables override config file entries.
        return (env_settings, init_settings, dotenv_settings, file_secret_settings)


@dataclass
class ConfigLoadResult:
    path: Path
    file_loaded: bool
    env_overrides: set[str]
    error: str | None = None


def _resolve_config_path(config_path: Path | None, env_vars: Mapping[str, str]) -> Path:
    candidate = config_path or env_vars.get(CONFIG_ENV_VAR) or (Path.home() / ".jnavconfig")
    return Path(candidate).expanduser()


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}

    raw = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    parser = json.loads if suffix == ".json" else tomllib.loads

    try:
        data = parser(raw)
    except (json.JSONDecodeError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Syntax error in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config root in {path} must be a mapping.")

    return data


def _detect_env_overrides(env_vars: Mapping[str, str]) -> set[str]:
    """Detect which fields are overridden by environment variables."""
    prefix = AppConfig.model_config.get("env_prefix", "")
    return {
        field for field in AppConfig.model_fields if f"{prefix}{field}".upper() in env_vars
    }


def load_config(
    config_path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> tuple[AppConfig, ConfigLoadResult]:
    """
    Load configuration with Safe Mode fallback.
    If the file is invalid, returns default config + error message.
    """
    env_vars: Mapping[str, str] = os.environ if env is None else {**os.environ, **env}
    resolved_path = _resolve_config_path(config_path, env_vars)
    env_overrides = _detect_env_overrides(env_vars)

    error: str | None = None
    file_loaded = False
    file_data: dict[str, Any] = {}

    try:
        file_data = _read_config_file(resolved_path)
        file_loaded = resolved_path.exists()
    except (ConfigError, OSError, UnicodeDecodeError) as exc:
        error = str(exc)

    context_manager = (
        patch.dict(os.environ, env_vars, clear=False) if env is not None else nullcontext()
    )

    try:
        with context_manager:
            config = AppConfig(**file_data)
    except ValidationError as exc:
        error = str(exc)
        # Bad values may come from the environment too, so skip every source.
        config = AppConfig.model_construct()

    load_result = ConfigLoadResult(
        path=resolved_path,
        file_loaded=file_loaded,
        env_overrides=env_overrides,
        error=error,
    )

    return config, load_result
