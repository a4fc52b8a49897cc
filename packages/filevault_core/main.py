"""Process entrypoint for the ``filevault`` command."""

from __future__ import annotations

import argparse
import importlib
import importlib.util
import json
import sys
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path

from fastapi import APIRouter, FastAPI

from packages.filevault_core import __version__
from packages.filevault_core.migrations import run_migrations
from packages.filevault_shared.component_loader import (
    import_registered_component_modules,
)
from packages.filevault_shared.config import FileVaultSettings, load_settings
from packages.filevault_shared.envelope import EnvelopeKind, new_meta
from packages.filevault_shared.http import create_app, run_app
from packages.filevault_shared.logging import configure_logging, get_logger
from packages.filevault_shared.manifest import ComponentManifest, get_registry

_LOGGER = get_logger(__name__)

FILE_AUTHORITY_ID = "service_file_authority"


def _resolve_component_builder(manifest: ComponentManifest) -> Callable[..., object]:
    """Load one component module and return its build callable."""
    for module_root in sorted(manifest.module_roots):
        module = importlib.import_module(f"{module_root}.component")
        builder = getattr(module, "build_component", None)
        if callable(builder):
            return builder
    raise RuntimeError(
        f"component '{manifest.id}' does not expose build_component(...) "
        "in its component module"
    )


def _resolve_service_http_registrar(
    manifest: ComponentManifest,
) -> Callable[..., None] | None:
    """Load one optional service-level HTTP registrar from ``api.py``."""
    for module_root in sorted(manifest.module_roots):
        module_name = f"{module_root}.api"
        if importlib.util.find_spec(module_name) is None:
            continue
        registrar = getattr(importlib.import_module(module_name), "register_routes", None)
        if callable(registrar):
            return registrar
    return None


def instantiate_components(settings: FileVaultSettings) -> dict[str, object]:
    """Instantiate every registered resource and service by registry walk."""
    import_registered_component_modules()
    registry = get_registry()
    registry.assert_valid()
    pending: list[ComponentManifest] = [
        *registry.list_resources(),
        *registry.list_services(),
    ]
    built: dict[str, object] = {}

    while pending:
        progressed = False
        next_round: list[ComponentManifest] = []
        for manifest in pending:
            builder = _resolve_component_builder(manifest)
            try:
                built[str(manifest.id)] = builder(settings=settings, components=built)
            except KeyError:
                next_round.append(manifest)
                continue
            progressed = True
            _LOGGER.info("component instantiated: component_id=%s", manifest.id)

        if not progressed:
            unresolved = ", ".join(str(item.id) for item in next_round)
            raise RuntimeError(
                "unable to resolve component dependency graph; unresolved components: "
                f"{unresolved}"
            )
        pending = next_round
    return built


def build_http_app(
    *, settings: FileVaultSettings, components: Mapping[str, object]
) -> FastAPI:
    """Create the HTTP app and register every service transport adapter."""
    app = create_app(
        title="filevault",
        version=__version__,
        cors_allowed_origins=settings.http.cors_allowed_origins,
    )
    router = APIRouter()
    registered: list[str] = []
    for manifest in get_registry().list_services():
        registrar = _resolve_service_http_registrar(manifest)
        if registrar is None:
            continue
        registrar(router=router, service=components[str(manifest.id)])
        registered.append(str(manifest.id))
    app.include_router(router)
    _LOGGER.info("HTTP routes registered: services=%s", ",".join(registered))
    return app


def _serve(settings: FileVaultSettings) -> int:
    from services.state.file_authority.config import resolve_file_authority_settings

    if resolve_file_authority_settings(settings).run_migrations_on_startup:
        run_migrations(settings=settings)
    components = instantiate_components(settings)
    app = build_http_app(settings=settings, components=components)
    _LOGGER.info(
        "filevault listening: host=%s port=%d", settings.http.host, settings.http.port
    )
    run_app(
        app,
        host=settings.http.host,
        port=settings.http.port,
        log_level=settings.logging.level.lower(),
    )
    return 0


def _migrate(settings: FileVaultSettings) -> int:
    result = run_migrations(settings=settings)
    _LOGGER.info(
        "migrations complete: schemas=%s configs=%d",
        ",".join(result.provisioned_schemas),
        len(result.executed_alembic_configs),
    )
    return 0


def _reclaim(settings: FileVaultSettings, *, dry_run: bool) -> int:
    components = instantiate_components(settings)
    service = components[FILE_AUTHORITY_ID]
    result = service.reclaim_orphans(  # type: ignore[attr-defined]
        meta=new_meta(kind=EnvelopeKind.COMMAND, source="cli", principal="operator"),
        dry_run=dry_run,
    )
    if not result.ok or result.payload is None:
        for error in result.errors:
            _LOGGER.error("reclaim failed: code=%s message=%s", error.code, error.message)
        return 1
    sys.stdout.write(json.dumps(result.payload.value.model_dump(mode="json")) + "\n")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Return the ``filevault`` argument parser."""
    parser = argparse.ArgumentParser(
        prog="filevault",
        description="Content-addressed deduplicating file store.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML settings file (default: FILEVAULT_CONFIG_FILE or "
        "~/.config/filevault/filevault.yaml)",
    )
    parser.add_argument("--version", action="version", version=__version__)
    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("serve", help="run the HTTP server")
    commands.add_parser("migrate", help="apply catalog schema migrations")
    reclaim = commands.add_parser(
        "reclaim", help="remove unreferenced objects and stale staged files"
    )
    reclaim.add_argument(
        "--dry-run",
        action="store_true",
        help="report orphaned objects without removing anything",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Parse arguments, configure logging, and dispatch one subcommand."""
    args = build_parser().parse_args(argv)
    settings = load_settings(config_path=args.config)
    configure_logging(
        level=settings.logging.level,
        json_output=settings.logging.json_output,
        service=settings.logging.service,
        environment=settings.logging.environment,
    )

    if args.command == "serve":
        return _serve(settings)
    if args.command == "migrate":
        return _migrate(settings)
    return _reclaim(settings, dry_run=args.dry_run)


if __name__ == "__main__":
    raise SystemExit(main())
