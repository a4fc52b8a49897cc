"""Tests for migration discovery and execution against a SQLite catalog."""

from __future__ import annotations

from pathlib import Path

import pytest
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from packages.filevault_core.migrations import (
    MigrationExecutionError,
    discover_service_migration_configs,
    run_migrations,
)
from packages.filevault_shared.component_loader import (
    import_registered_component_modules,
)
from packages.filevault_shared.config import FileVaultSettings, load_settings


def _settings(tmp_path: Path) -> FileVaultSettings:
    return load_settings(
        config_path=tmp_path / "absent.yaml",
        postgres={"url": f"sqlite:///{tmp_path / 'catalog.db'}"},
    )


def _tables(tmp_path: Path) -> set[str]:
    engine = create_engine(f"sqlite:///{tmp_path / 'catalog.db'}")
    try:
        return set(inspect(engine).get_table_names())
    finally:
        engine.dispose()


def test_discovery_returns_file_authority_alembic_config() -> None:
    import_registered_component_modules()

    configs = discover_service_migration_configs()

    assert [path.parts[-4:] for path in configs] == [
        ("state", "file_authority", "migrations", "alembic.ini")
    ]


def test_run_migrations_creates_catalog_tables(tmp_path: Path) -> None:
    result = run_migrations(settings=_settings(tmp_path))

    assert result.provisioned_schemas == ()
    assert len(result.executed_alembic_configs) == 1
    assert "services.state.file_authority.component" in result.imported_components
    assert {"files", "alembic_version"} <= _tables(tmp_path)


def test_run_migrations_is_idempotent(tmp_path: Path) -> None:
    settings = _settings(tmp_path)

    run_migrations(settings=settings)
    second = run_migrations(settings=settings)

    assert len(second.executed_alembic_configs) == 1
    assert "files" in _tables(tmp_path)


def test_runner_hands_settings_to_alembic(tmp_path: Path) -> None:
    settings = _settings(tmp_path)
    calls: list[tuple[Config, str]] = []

    result = run_migrations(
        settings=settings,
        upgrade_fn=lambda config, revision: calls.append((config, revision)),
    )

    assert [revision for _, revision in calls] == ["head"]
    assert calls[0][0].attributes["postgres_settings"] == settings.postgres
    assert result.executed_alembic_configs == (calls[0][0].config_file_name,)


def test_upgrade_failure_is_wrapped(tmp_path: Path) -> None:
    def _explode(config: Config, revision: str) -> None:
        raise RuntimeError("bad revision")

    with pytest.raises(MigrationExecutionError, match="migration failed") as info:
        run_migrations(settings=_settings(tmp_path), upgrade_fn=_explode)

    assert isinstance(info.value.__cause__, RuntimeError)
