"""Process bootstrap for filevault: component wiring, migrations, CLI."""

__version__ = "0.1.0"
