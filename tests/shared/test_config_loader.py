"""Tests for pydantic-settings-backed shared configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from packages.filevault_shared.config import (
    FileVaultSettings,
    load_settings,
    resolve_component_settings,
)
from packages.filevault_shared.config.loader import CONFIG_FILE_ENV
from resources.substrates.filesystem.config import FilesystemSubstrateSettings
from services.state.file_authority.config import (
    FileAuthoritySettings,
    resolve_file_authority_settings,
)


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        CONFIG_FILE_ENV,
        "FILEVAULT_LOGGING__LEVEL",
        "FILEVAULT_POSTGRES__URL",
        "FILEVAULT_HTTP__PORT",
    ):
        monkeypatch.delenv(name, raising=False)


def _write_yaml(path: Path) -> Path:
    path.write_text(
        "\n".join(
            [
                "logging:",
                "  level: WARNING",
                "http:",
                "  port: 9000",
                "components:",
                "  substrate:",
                "    filesystem:",
                "      root_dir: /srv/filevault",
                "  service:",
                "    file_authority:",
                "      max_upload_size_bytes: 1024",
            ]
        ),
        encoding="utf-8",
    )
    return path


def test_overrides_beat_environment_beat_yaml(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Init values override env, env overrides YAML, YAML overrides defaults."""
    config_file = _write_yaml(tmp_path / "filevault.yaml")
    monkeypatch.setenv("FILEVAULT_LOGGING__LEVEL", "ERROR")
    monkeypatch.setenv("FILEVAULT_HTTP__PORT", "9100")

    settings = load_settings(config_path=config_file, logging={"level": "DEBUG"})

    assert settings.logging.level == "DEBUG"
    assert settings.http.port == 9100
    assert settings.http.host == "127.0.0.1"


def test_component_settings_resolve_from_yaml(tmp_path: Path) -> None:
    settings = load_settings(config_path=_write_yaml(tmp_path / "filevault.yaml"))

    filesystem = resolve_component_settings(
        settings=settings,
        component_id="substrate_filesystem",
        model=FilesystemSubstrateSettings,
    )
    file_authority = resolve_file_authority_settings(settings)

    assert filesystem.root_dir == "/srv/filevault"
    assert filesystem.fsync_writes is True
    assert file_authority.max_upload_size_bytes == 1024
    assert file_authority.count_retry_attempts == 1


def test_missing_yaml_falls_back_to_defaults(tmp_path: Path) -> None:
    settings = load_settings(config_path=tmp_path / "absent.yaml")

    assert settings.logging.level == "INFO"
    assert settings.logging.service == "filevault"
    assert settings.postgres.pool_size == 5
    assert resolve_file_authority_settings(settings) == FileAuthoritySettings()


def test_config_file_environment_variable_selects_yaml(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    config_file = _write_yaml(tmp_path / "elsewhere.yaml")
    monkeypatch.setenv(CONFIG_FILE_ENV, str(config_file))

    settings = load_settings()

    assert settings.http.port == 9000


def test_flat_component_keys_are_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValidationError, match="components.service.file_authority"):
        load_settings(
            config_path=tmp_path / "absent.yaml",
            components={"service_file_authority": {}},
        )


def test_unknown_component_namespace_is_rejected() -> None:
    with pytest.raises(ValueError):
        resolve_component_settings(
            settings=FileVaultSettings(),
            component_id="adapter_thing",
            model=FilesystemSubstrateSettings,
        )


def test_component_settings_forbid_unknown_keys(tmp_path: Path) -> None:
    settings = load_settings(
        config_path=tmp_path / "absent.yaml",
        components={"substrate": {"filesystem": {"root": "/typo"}}},
    )

    with pytest.raises(ValidationError):
        resolve_component_settings(
            settings=settings,
            component_id="substrate_filesystem",
            model=FilesystemSubstrateSettings,
        )


def test_postgres_sslmode_is_validated(tmp_path: Path) -> None:
    with pytest.raises(ValidationError):
        load_settings(
            config_path=tmp_path / "absent.yaml", postgres={"sslmode": "sometimes"}
        )
