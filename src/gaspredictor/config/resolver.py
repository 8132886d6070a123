"""
Configuration resolution and environment variable substitution.

Substitutes ``${VAR_NAME}`` and ``{env}`` placeholders in loaded config.
"""

import re
from collections.abc import Mapping
from typing import Any

_VAR_PATTERN = re.compile(r"\${([^}]+)}")


def resolve_config(config_data: dict[str, Any], env: str, environ: Mapping[str, str]) -> dict[str, Any]:
    """
    Resolve configuration placeholders.

    Unknown ``${VAR}`` references are left untouched so that a later
    validation step can report them.

    Args:
        config_data: Configuration dictionary
        env: Current environment name
        environ: Environment variables to substitute from

    Returns:
        Resolved configuration
    """
    return _resolve_value(config_data, env, environ)


def _resolve_value(value: Any, env: str, environ: Mapping[str, str]) -> Any:
    """Recursively resolve values in configuration."""
    if isinstance(value, dict):
        return {k: _resolve_value(v, env, environ) for k, v in value.items()}
    elif isinstance(value, list):
        return [_resolve_value(item, env, environ) for item in value]
    elif isinstance(value, str):
        result = _VAR_PATTERN.sub(lambda m: environ.get(m.group(1), m.group(0)), value)
        return result.replace("{env}", env)
    else:
        return value
