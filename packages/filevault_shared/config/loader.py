"""Settings loading with deterministic precedence.

The cascade is always:
1) explicit overrides (CLI flags)
2) environment variables
3) YAML config file
4) built-in defaults

Environment variable format:
- Prefix: ``FILEVAULT_``
- Nested keys: ``__`` separator
- Example: ``FILEVAULT_LOGGING__LEVEL=DEBUG`` -> ``logging.level = "DEBUG"``

The YAML file is ``~/.config/filevault/filevault.yaml`` unless
``FILEVAULT_CONFIG_FILE`` or ``config_path`` names another one. A missing file
contributes nothing.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from .models import ACTIVE_CONFIG_PATH, DEFAULT_CONFIG_PATH, FileVaultSettings

CONFIG_FILE_ENV = "FILEVAULT_CONFIG_FILE"


def resolve_config_path(config_path: str | Path | None = None) -> Path:
    """Return the YAML path selected by argument, environment, or default."""
    if config_path is not None:
        return Path(config_path).expanduser()
    from_env = os.environ.get(CONFIG_FILE_ENV, "").strip()
    if from_env:
        return Path(from_env).expanduser()
    return DEFAULT_CONFIG_PATH


def load_settings(
    *, config_path: str | Path | None = None, **overrides: Any
) -> FileVaultSettings:
    """Build ``FileVaultSettings`` from overrides, env, YAML, and defaults."""
    token = ACTIVE_CONFIG_PATH.set(resolve_config_path(config_path))
    try:
        return FileVaultSettings(**overrides)
    finally:
        ACTIVE_CONFIG_PATH.reset(token)
