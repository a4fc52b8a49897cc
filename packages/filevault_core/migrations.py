"""Migration orchestration for registered services."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import Engine

from packages.filevault_shared.component_loader import (
    DEFAULT_REPO_ROOT,
    import_registered_component_modules,
)
from packages.filevault_shared.config import FileVaultSettings
from packages.filevault_shared.logging import get_logger
from packages.filevault_shared.manifest import get_registry
from resources.substrates.postgres import (
    bootstrap_service_schemas,
    create_postgres_engine,
)

_LOGGER = get_logger(__name__)


class MigrationExecutionError(RuntimeError):
    """Raised when a service migration fails."""


@dataclass(frozen=True, slots=True)
class MigrationRunResult:
    """Summary of one migration pass."""

    imported_components: tuple[str, ...]
    provisioned_schemas: tuple[str, ...]
    executed_alembic_configs: tuple[str, ...]


def discover_service_migration_configs(
    *,
    repo_root: Path | None = None,
) -> tuple[Path, ...]:
    """Return the ``migrations/alembic.ini`` of each registered service."""
    root = (repo_root or DEFAULT_REPO_ROOT).resolve()
    registry = get_registry()
    registry.assert_valid()

    config_paths: list[Path] = []
    for service in registry.list_services():
        for module_root in sorted(service.module_roots):
            candidate = (
                root / Path(*str(module_root).split(".")) / "migrations" / "alembic.ini"
            )
            if candidate.exists():
                config_paths.append(candidate)
                break
    return tuple(config_paths)


def run_migrations(
    *,
    settings: FileVaultSettings,
    engine: Engine | None = None,
    repo_root: Path | None = None,
    upgrade_fn: Callable[[Config, str], None] = command.upgrade,
) -> MigrationRunResult:
    """Provision service schemas and run Alembic upgrades to head."""
    imported = import_registered_component_modules(repo_root=repo_root)
    registry = get_registry()
    registry.assert_valid()

    owns_engine = engine is None
    schema_engine = engine or create_postgres_engine(settings.postgres)
    try:
        provisioned = bootstrap_service_schemas(
            engine=schema_engine, services=registry.list_services()
        )
    finally:
        if owns_engine:
            schema_engine.dispose()

    executed: list[str] = []
    for config_path in discover_service_migration_configs(repo_root=repo_root):
        config = Config(str(config_path))
        config.attributes["postgres_settings"] = settings.postgres
        try:
            upgrade_fn(config, "head")
        except Exception as exc:
            raise MigrationExecutionError(
                f"migration failed for config '{config_path}'"
            ) from exc
        executed.append(str(config_path))
        _LOGGER.info("migrations applied: config=%s", config_path)

    return MigrationRunResult(
        imported_components=imported,
        provisioned_schemas=provisioned,
        executed_alembic_configs=tuple(executed),
    )
