"""Tests for component-module discovery."""

from __future__ import annotations

from pathlib import Path

from packages.filevault_shared.component_loader import (
    DEFAULT_REPO_ROOT,
    discover_component_modules,
    import_registered_component_modules,
)
from packages.filevault_shared.manifest import get_registry

_REGISTRATION = (
    "from packages.filevault_shared.manifest import register_component\n"
    "MANIFEST = register_component(...)\n"
)


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def test_discovery_finds_registrations_and_skips_tests(tmp_path: Path) -> None:
    _write(tmp_path / "resources" / "substrates" / "disk" / "component.py", _REGISTRATION)
    _write(tmp_path / "services" / "state" / "files" / "component.py", _REGISTRATION)
    _write(
        tmp_path / "services" / "state" / "files" / "tests" / "component.py",
        _REGISTRATION,
    )
    _write(tmp_path / "services" / ".cache" / "component.py", _REGISTRATION)
    _write(tmp_path / "services" / "work-tmp" / "component.py", _REGISTRATION)
    _write(tmp_path / "services" / "plain" / "component.py", "VALUE = 1\n")

    modules = discover_component_modules(repo_root=tmp_path)

    assert modules == (
        "resources.substrates.disk.component",
        "services.state.files.component",
    )


def test_discovery_tolerates_missing_roots(tmp_path: Path) -> None:
    assert discover_component_modules(repo_root=tmp_path) == ()


def test_repository_components_register_their_manifests() -> None:
    imported = import_registered_component_modules()

    assert "services.state.file_authority.component" in imported
    assert "resources.substrates.filesystem.component" in imported
    assert "resources.substrates.postgres.component" in imported
    assert DEFAULT_REPO_ROOT.joinpath("services").is_dir()
    registry = get_registry()
    registry.assert_valid()
    assert "service_file_authority" in {str(s.id) for s in registry.list_services()}
