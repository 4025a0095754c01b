"""Taxonomy config CLI: inspect, export/import, migrate, snapshot and roll back.

Commands:
    info                  Show size, counts and schema of the live config.
    export [PATH]         Write the live config to a JSON file.
    import PATH           Import a config file and publish it (with backup).
    migrate               Upgrade a stale live config in place.
    snapshot [DESC]       Create a rollback point.
    versions              List version history, newest first.
    rollback VERSION_ID   Restore a version as live.

Environment: see settings.py (TAXONOMY_STORE, TAXONOMY_STORE_DIR, DATABASE_URL, ...).
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, NoReturn, Optional

import typer

from config_file import config_info, create_rollback_point, export_config, import_config, rollback_package_id
from errors import ConfigError
from services.config_service import ConfigService
from settings import get_settings

app = typer.Typer(add_completion=False, no_args_is_help=True, help="Taxonomy configuration CLI")


def _service() -> ConfigService:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    return ConfigService.from_settings(settings)


def _fail(error: Exception) -> NoReturn:
    typer.echo(f"error: {error}", err=True)
    raise typer.Exit(code=1)


@app.command()
def info() -> None:
    """Display current configuration information."""
    data = config_info(_service())
    typer.echo(f"Client:        {data['clientId']}")
    typer.echo(f"Schema:        {data['schemaVersion']} ({data['status']})")
    typer.echo(f"Size:          {data['size']}")
    typer.echo(f"Last modified: {data['updatedAt']}")
    typer.echo(f"Sections:      {data['sectionsCount']}")
    typer.echo(f"Brands:        {data['brandsCount']}")
    typer.echo(f"Global brands: {data['globalBrandsCount']}")
    typer.echo(f"Versions:      {data['versionsCount']}")
    typer.echo(f"Draft:         {'yes' if data['hasDraft'] else 'no'}")


@app.command("export")
def export_cmd(path: Optional[Path] = typer.Argument(None, help="Output file")) -> None:
    """Export the live configuration as JSON."""
    try:
        written = export_config(_service(), path)
    except ConfigError as e:
        _fail(e)
    typer.echo(f"Configuration exported: {written}")


@app.command("import")
def import_cmd(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Config JSON file"),
    backup: bool = typer.Option(True, "--backup/--no-backup", help="Snapshot the current live first"),
) -> None:
    """Import a configuration file and publish it."""
    try:
        config = import_config(_service(), path, backup=backup)
    except ConfigError as e:
        _fail(e)
    typer.echo(f"Imported {path} (schema {config.schema_version}, {len(config.sections)} sections)")


@app.command()
def migrate() -> None:
    """Upgrade the live configuration to the current schema if it is stale."""
    service = _service()
    before = service.read_live().schema_version
    try:
        config = service.get_live()
    except ConfigError as e:
        _fail(e)
    if config.schema_version == before:
        typer.echo(f"Already at schema {before}; nothing to do")
        return
    audit = service.last_audit
    typer.echo(f"Migrated schema {before} -> {config.schema_version}")
    if audit is not None:
        typer.echo(f"   Sections: {audit.sections_count_before} -> {audit.sections_count_after}")
        typer.echo(f"   Global brands: {audit.global_brands_count_before} -> {audit.global_brands_count_after}")


@app.command()
def snapshot(description: Optional[List[str]] = typer.Argument(None)) -> None:
    """Create a rollback point with an optional description."""
    text = " ".join(description or []) or "Manual rollback point"
    version = create_rollback_point(_service(), text)
    typer.echo(f"Rollback point created: {rollback_package_id(version)}")
    typer.echo(f"   Version id: {version.id}")
    typer.echo(f"   Description: {text}")


@app.command()
def versions() -> None:
    """List stored versions, newest first."""
    history = _service().list_versions()
    if not history:
        typer.echo("No versions stored")
        return
    for version in history:
        typer.echo(f"{version.id}  {version.created_at}  {version.description or ''}")


@app.command()
def rollback(version_id: str) -> None:
    """Restore a stored version as the live configuration."""
    try:
        _service().rollback(version_id)
    except ConfigError as e:
        _fail(e)
    typer.echo(f"Rolled back to version {version_id}")


if __name__ == "__main__":
    app()
