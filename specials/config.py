"""
Specials configuration.

The config file is one YAML document:

    settings:
      data-folder: data
      autosave-interval-seconds: 300
      server-lock-on-requirement-miss: true
      permissions:
        activate: specials.activate
        remove: specials.remove
    specials:
      <special-id>: {trigger: ..., section: ..., reward: ..., ...}
    encounters:
      <rule-id>: {victim: player, max-count: 5, ...}
    activity:
      <hook-id>: {section: housing, ...}

Only `settings` is validated here; the rule sections are handed to
SpecialCatalog.load, which validates entry by entry.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

CONFIG_ENV_VAR = "SPECIALS_CONFIG"
DEFAULT_CONFIG_PATH = "specials.yml"


class SpecialsError(Exception):
    """Base class for specials errors."""


class ConfigError(SpecialsError):
    """The config document could not be read or is structurally invalid."""


def _hyphenate(name: str) -> str:
    return name.replace("_", "-")


class _SettingsModel(BaseModel):
    model_config = ConfigDict(alias_generator=_hyphenate, populate_by_name=True, extra="ignore")


class PermissionSettings(_SettingsModel):
    activate: str = Field(default="specials.activate", description="Permission node for `activate`")
    remove: str = Field(default="specials.remove", description="Permission node for `remove`")


class SpecialsSettings(_SettingsModel):
    """Engine-wide settings (the `settings:` section)."""

    data_folder: str = Field(default="data", description="Folder holding persisted state")
    players_folder: str = Field(default="Players", description="Per-player subfolder name")
    global_data_file: str = Field(
        default="specials-data.yml", description="Server-wide state file name"
    )
    autosave_interval_seconds: float = Field(
        default=300.0, ge=0.0, description="Periodic save interval (0 disables autosave)"
    )
    server_lock_on_requirement_miss: bool = Field(
        default=True,
        description="Consume a once-per-server lock when only the status-effect "
        "requirement failed",
    )
    default_skip_reason_prefix: str = Field(
        default="Special", description="Prefix of the reason sent with timer adjustments"
    )
    permissions: PermissionSettings = Field(default_factory=PermissionSettings)


def parse_settings(document: Mapping[str, Any] | None) -> SpecialsSettings:
    raw = (document or {}).get("settings") or {}
    if not isinstance(raw, Mapping):
        raise ConfigError("settings section must be a mapping")
    try:
        return SpecialsSettings.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings: {exc}") from exc


def load_config_file(path: Path | str) -> dict[str, Any]:
    """
    Read a config document from disk.

    Raises:
        ConfigError: If the file is missing, not valid YAML, or not a mapping
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            document = yaml.safe_load(f)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except OSError as exc:
        raise ConfigError(f"Could not read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level")
    return document


def default_config_path() -> Path:
    return Path(os.getenv(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH))
