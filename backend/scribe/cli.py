"""Typer-based CLI for running the component service."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
import uvicorn

from scribe.core.config import AppSettings, get_settings
from scribe.core.db import create_engine
from scribe.core.errors import ScribeError
from scribe.core.logging import setup_logging
from scribe.main import create_app
from scribe.models.schema import ComponentSchema, load_schema
from scribe.services.engine import ComponentEngine
from scribe.services.sync import ComponentLayout
from scribe.services.types import TypeMapper

app = typer.Typer(help="Versioned component storage service")


def _load_schema_or_exit(schema: Optional[Path], settings: AppSettings) -> ComponentSchema:
    try:
        return load_schema(schema or settings.schema_path)
    except (OSError, ScribeError) as exc:
        typer.secho(f"Unable to load schema: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc


@app.command()
def serve(
    schema: Optional[Path] = typer.Option(None, "--schema", "-s", help="JSON schema file for every component."),
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind."),
    port: int = typer.Option(1337, "--port", "-p", help="Port to listen on."),
):
    """Run the HTTP API."""

    settings = get_settings()
    component_schema = _load_schema_or_exit(schema, settings)

    typer.secho(f"Serving components on http://{host}:{port}", fg=typer.colors.CYAN)
    uvicorn.run(create_app(settings, component_schema), host=host, port=port, log_config=None)


@app.command()
def sync(
    component: str = typer.Argument(..., help="Component (table) name."),
    schema: Optional[Path] = typer.Option(None, "--schema", "-s", help="JSON schema file to apply."),
):
    """Create or migrate a component's tables without touching records."""

    settings = get_settings()
    setup_logging(settings.log_level)
    component_schema = _load_schema_or_exit(schema, settings)

    async def _sync() -> ComponentLayout:
        engine = create_engine(settings)
        try:
            components = ComponentEngine(engine, TypeMapper(settings.naive_timezone))
            return await components.sync(component, component_schema)
        finally:
            await engine.dispose()

    try:
        layout = asyncio.run(_sync())
    except ScribeError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc

    typer.secho(f"{component} synchronized", fg=typer.colors.GREEN)
    for name, mapping in layout.mappings.items():
        typer.echo(f"  {name}: {mapping.kind}")


if __name__ == "__main__":  # pragma: no cover
    app()
