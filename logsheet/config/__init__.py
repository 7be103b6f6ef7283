"""Layout configuration loading."""

from .loader import ConfigError, load_config

__all__ = [
    "ConfigError",
    "load_config",
]
