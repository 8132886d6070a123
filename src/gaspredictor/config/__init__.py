"""
Configuration management.

Config file parsing, environment resolution and typed settings.
"""

from gaspredictor.config.loader import Config, load_config
from gaspredictor.config.resolver import resolve_config
from gaspredictor.config.settings import Settings, load_settings

__all__ = [
    "load_config",
    "Config",
    "resolve_config",
    "Settings",
    "load_settings",
]
