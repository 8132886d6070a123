"""
Configuration loading.

Merges, lowest precedence first:

    config.yaml  →  config.{env}.yaml  →  .env  →  .env.local  →  process environment

YAML files are optional; a deployment can be configured from environment
variables alone.
"""

from __future__ import annotations

import os
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

import yaml
from dotenv import dotenv_values

from gaspredictor.config.resolver import resolve_config
from gaspredictor.exceptions import ConfigurationError

# Environment variable -> dotted config key
ENV_OVERRIDES: dict[str, str] = {
    "HOST": "server.host",
    "PORT": "server.port",
    "DATABASE_URL": "database.url",
    "JWT_SECRET": "auth.jwt_secret",
    "CORS_ORIGIN": "cors.origin",
    "RATE_LIMIT_WINDOW_MS": "rate_limit.window_ms",
    "RATE_LIMIT_MAX": "rate_limit.max",
    "LOG_LEVEL": "logging.level",
    "LOG_FILE": "logging.file",
}

# Checked in order for the environment name
ENV_NAME_VARIABLES = ("APP_ENV", "NODE_ENV")


class Config:
    """Configuration container with dict-like access."""

    def __init__(self, data: dict[str, Any]):
        self.data = data

    @property
    def environment(self) -> str | None:
        return self.data.get("environment")

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation."""
        value: Any = self.data
        for k in key.split("."):
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default
        return value

    def set(self, key: str, value: Any) -> None:
        """Set configuration value using dot notation, creating sections as needed."""
        *parents, leaf = key.split(".")
        section = self.data
        for k in parents:
            child = section.get(k)
            if not isinstance(child, dict):
                child = {}
                section[k] = child
            section = child
        section[leaf] = value

    def __getitem__(self, key: str) -> Any:
        """Dict-like access: config['key'] or config['nested.key']."""
        if "." in key:
            value = self.get(key)
            if value is None:
                raise KeyError(f"Config key '{key}' not found")
            return value
        if key in self.data:
            value = self.data[key]
            if isinstance(value, dict):
                return Config(value)
            return value
        raise KeyError(f"Config key '{key}' not found")

    def __contains__(self, key: str) -> bool:
        """Check if key exists in config."""
        if "." in key:
            value: Any = self.data
            for k in key.split("."):
                if not isinstance(value, dict) or k not in value:
                    return False
                value = value[k]
            return True
        return key in self.data

    def __iter__(self) -> Iterator[str]:
        return iter(self.data)

    def keys(self):
        return self.data.keys()

    def items(self):
        return self.data.items()


def load_environ(project_dir: Path, environ: Mapping[str, str] | None = None) -> dict[str, str]:
    """
    Collect environment variables from dotenv files and the process.

    ``.env.local`` overrides ``.env``; real environment variables override
    both. ``os.environ`` itself is never modified.
    """
    merged: dict[str, str] = {}
    for name in (".env", ".env.local"):
        path = project_dir / name
        if path.is_file():
            merged.update({k: v for k, v in dotenv_values(path).items() if v is not None})
    merged.update(os.environ if environ is None else environ)
    return merged


def load_config(
    project_dir: Path | None = None,
    env: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """
    Load Gas Predictor configuration.

    Args:
        project_dir: Directory holding config.yaml / .env files (default: cwd)
        env: Environment name; falls back to APP_ENV / NODE_ENV
        environ: Environment variables to use instead of ``os.environ``

    Returns:
        Config instance with merged configuration

    Raises:
        ConfigurationError: If a config file cannot be read or parsed
    """
    if project_dir is None:
        project_dir = Path.cwd()

    variables = load_environ(project_dir, environ)

    if env is None:
        env = next((variables[name] for name in ENV_NAME_VARIABLES if variables.get(name)), None)

    config_data = _read_yaml(project_dir / "config.yaml")
    if env:
        _merge_dict(config_data, _read_yaml(project_dir / f"config.{env}.yaml"))

    config_data = resolve_config(config_data, env or "", variables)
    config = Config(config_data)

    for variable, key in ENV_OVERRIDES.items():
        value = variables.get(variable)
        if value not in (None, ""):
            config.set(key, value)

    if env:
        config.set("environment", env)

    return config


def _read_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML mapping; a missing file is an empty mapping."""
    if not path.exists():
        return {}
    if not path.is_file():
        raise ConfigurationError(f"Configuration path is not a file: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        location = f" at line {mark.line + 1}, column {mark.column + 1}" if mark else ""
        raise ConfigurationError(
            f"Error parsing {path.name}{location}:\n  {e}\n  File: {path}",
            details={"file": str(path)},
        ) from e
    except PermissionError as e:
        raise ConfigurationError(f"Permission denied reading {path}", details={"file": str(path)}) from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration must be a mapping, got {type(data).__name__}",
            details={"file": str(path)},
        )
    return data


def _merge_dict(base: dict, override: dict) -> None:
    """Recursively merge override into base."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _merge_dict(base[key], value)
        else:
            base[key] = value
