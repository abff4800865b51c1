"""
Config package: YAML defaults with environment overrides.
"""

from .app_config import AppConfig, load_defaults

__all__ = [
    "AppConfig",
    "load_defaults",
]
