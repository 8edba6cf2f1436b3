"""Model catalogue commands."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from batchscribe.cli.ui import console
from batchscribe.exceptions import JobError, UnknownModelError
from batchscribe.model_config import DEFAULT_MODEL, available_models
from batchscribe.run_config import RunConfig
from batchscribe.services.factory import ServiceFactory

app = typer.Typer(name="models", help="List, inspect and download models")

CacheDirOption = Annotated[Path | None, typer.Option("--cache-dir", help="Model cache directory")]


@app.command("list")
def list_models(cache_dir: CacheDirOption = None) -> None:
    """List catalogue models and whether they are cached."""
    config = RunConfig.from_env(cache_dir=cache_dir)
    cache = ServiceFactory.create_model_cache(config)
    store = ServiceFactory.create_model_store()

    table = Table(title="Available models")
    table.add_column("Name", style="bold")
    table.add_column("Size", justify="right")
    table.add_column("Status")
    table.add_column("Description")
    for name in available_models():
        descriptor = cache.describe(name)
        status = "[green]cached[/green]" if store.is_cached(descriptor) else "[dim]not cached[/dim]"
        label = f"{name} (default)" if name == DEFAULT_MODEL else name
        table.add_row(label, descriptor.size_hint, status, descriptor.description)
    console.print(table)


@app.command()
def info(name: Annotated[str, typer.Argument(help="Model name")], cache_dir: CacheDirOption = None) -> None:
    """Show details for one model."""
    config = RunConfig.from_env(cache_dir=cache_dir)
    cache = ServiceFactory.create_model_cache(config)
    try:
        descriptor = cache.describe(name)
    except UnknownModelError as error:
        console.print(f"[red]Error:[/red] {error}")
        raise typer.Exit(1) from error

    cached = ServiceFactory.create_model_store().is_cached(descriptor)
    console.print(f"[bold]Model:[/bold] {descriptor.name}")
    console.print(f"[bold]Description:[/bold] {descriptor.description}")
    console.print(f"[bold]Size:[/bold] {descriptor.size_hint}")
    console.print(f"[bold]Source:[/bold] https://huggingface.co/{descriptor.source}")
    console.print(f"[bold]Local path:[/bold] {descriptor.local_path}")
    console.print(f"[bold]Status:[/bold] {'cached' if cached else 'not cached'}")


@app.command()
def download(name: Annotated[str, typer.Argument(help="Model name")], cache_dir: CacheDirOption = None) -> None:
    """Download a model into the cache ahead of a run."""
    config = RunConfig.from_env(cache_dir=cache_dir)
    cache = ServiceFactory.create_model_cache(config)
    try:
        path = cache.ensure_cached(name)
    except JobError as error:
        console.print(f"[red]Error:[/red] {error}")
        raise typer.Exit(1) from error
    console.print(f"[green]✓[/green] Model {name} ready at {path}")
