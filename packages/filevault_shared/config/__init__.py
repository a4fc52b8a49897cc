"""Public API for shared filevault configuration."""

from .loader import load_settings
from .models import (
    DEFAULT_CONFIG_PATH,
    ComponentsSettings,
    FileVaultSettings,
    HttpSettings,
    LoggingSettings,
    PostgresSettings,
    resolve_component_settings,
)

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "ComponentsSettings",
    "FileVaultSettings",
    "HttpSettings",
    "LoggingSettings",
    "PostgresSettings",
    "load_settings",
    "resolve_component_settings",
]
