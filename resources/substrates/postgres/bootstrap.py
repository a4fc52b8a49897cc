"""Pre-migration provisioning of service-owned schemas."""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import Engine, text

from packages.filevault_shared.manifest import ServiceManifest


def bootstrap_service_schemas(
    *, engine: Engine, services: Iterable[ServiceManifest]
) -> tuple[str, ...]:
    """Create each service schema on PostgreSQL; return the schemas touched.

    Dialects without schemas (SQLite) are left untouched.
    """
    if engine.dialect.name != "postgresql":
        return ()

    provisioned: list[str] = []
    with engine.begin() as connection:
        for service in services:
            connection.execute(
                text(f"CREATE SCHEMA IF NOT EXISTS {service.schema_name}")
            )
            provisioned.append(service.schema_name)
    return tuple(provisioned)
