"""Component-registration discovery and import helpers."""

from __future__ import annotations

import importlib
from pathlib import Path

_DISCOVERY_ROOTS = ("resources", "services")

# packages/filevault_shared/component_loader.py -> repository root
DEFAULT_REPO_ROOT = Path(__file__).resolve().parents[2]


def discover_component_modules(repo_root: Path | None = None) -> tuple[str, ...]:
    """Return import paths for explicit component declaration modules."""
    root = (repo_root or DEFAULT_REPO_ROOT).resolve()
    modules: list[str] = []
    for discovery_root in _DISCOVERY_ROOTS:
        package_root = root / discovery_root
        if not package_root.exists():
            continue
        for component_file in sorted(package_root.rglob("component.py")):
            rel_component = component_file.relative_to(root)
            if _should_skip(rel_component):
                continue
            if not _looks_like_component_registration(component_file):
                continue
            modules.append(_module_name(rel_component))
    return tuple(modules)


def import_component_modules(modules: tuple[str, ...]) -> tuple[str, ...]:
    """Import component modules to trigger manifest registration."""
    imported: list[str] = []
    for module in modules:
        importlib.import_module(module)
        imported.append(module)
    return tuple(imported)


def import_registered_component_modules(
    repo_root: Path | None = None,
) -> tuple[str, ...]:
    """Discover and import all component declaration modules."""
    return import_component_modules(discover_component_modules(repo_root=repo_root))


def _looks_like_component_registration(component_file: Path) -> bool:
    source = component_file.read_text(encoding="utf-8")
    return "MANIFEST" in source and "register_component(" in source


def _module_name(rel_path: Path) -> str:
    return ".".join(rel_path.with_suffix("").parts)


def _should_skip(rel_path: Path) -> bool:
    """Exclude test trees and transient paths from discovery."""
    if "tests" in rel_path.parts:
        return True
    return any(part.startswith(("work-", ".")) for part in rel_path.parts)
