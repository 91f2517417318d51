"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository, MissingTokenError, resolve_token
from .models import DEFAULT_FILENAME, PACKAGE_JSON_FIELDS, SweepConfig

__all__ = [
    "ConfigLocator",
    "ConfigRepository",
    "DEFAULT_FILENAME",
    "MissingTokenError",
    "PACKAGE_JSON_FIELDS",
    "SweepConfig",
    "resolve_token",
]
