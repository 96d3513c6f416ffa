# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/knest/config/loader.py

import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from knest.errors import FileIOError, InvalidInputError
from .models import KnestSettings, ProvisioningParameters

log = logging.getLogger("knest")


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Recursively merge *override* into *base* (mutates base).
    Only overwrites when the override value is not None.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            _deep_merge(base[key], value)
        elif value is not None:
            base[key] = value
    return base


def _find_config_file(path: str | Path | None) -> Path | None:
    """
    Locate the settings file using this priority:

    1. explicit ``--config`` path (must exist)
    2. KNEST_CONFIG environment variable (must exist)
    3. ~/.knest/config.yaml, when present
    """
    if path:
        p = Path(path).expanduser()
        if not p.is_file():
            raise FileIOError(f"config file not found: {p}")
        return p

    env = os.environ.get("KNEST_CONFIG")
    if env:
        p = Path(env).expanduser()
        if not p.is_file():
            raise FileIOError(f"KNEST_CONFIG={env} does not exist")
        return p

    p = Path.home() / ".knest" / "config.yaml"
    if p.is_file():
        return p

    return None


def _load_yaml(path: Path) -> dict:
    """Load a YAML file, expanding ${ENV_VAR} references."""
    try:
        raw = path.read_text(encoding="utf-8")
        data = yaml.safe_load(os.path.expandvars(raw)) or {}
    except (OSError, yaml.YAMLError) as e:
        raise FileIOError(f"read config {path}: {e}") from e
    if not isinstance(data, dict):
        raise FileIOError(f"config {path} must be a mapping")
    return data


def load_settings(path: str | Path | None = None) -> KnestSettings:
    """Load and validate knest settings; defaults when no file is found."""
    cfg_path = _find_config_file(path)
    if cfg_path is None:
        log.debug("No knest config file found, using defaults")
        return KnestSettings()

    log.debug("Loading knest config from %s", cfg_path)
    try:
        return KnestSettings.model_validate(_load_yaml(cfg_path))
    except ValidationError as e:
        raise InvalidInputError(f"invalid config {cfg_path}: {e}") from e


def merge_parameters(
    base: ProvisioningParameters,
    overrides: dict,
) -> ProvisioningParameters:
    """Apply explicit CLI values (None means 'not given') on top of *base*."""
    data = _deep_merge(base.model_dump(), overrides)
    try:
        return ProvisioningParameters.model_validate(data)
    except ValidationError as e:
        raise InvalidInputError(f"invalid create parameters: {e}") from e
