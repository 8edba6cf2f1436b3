"""Unified CLI entrypoint for batchscribe."""

from __future__ import annotations

from typing import NoReturn

import typer

from batchscribe import __version__
from batchscribe.cli import cache_commands, model_commands, transcription_commands
from batchscribe.config import setup_logging

app = typer.Typer(
    name="batchscribe",
    help="Batch audio transcription with resumable, parallel workers",
    add_completion=False,
    no_args_is_help=True,
)

app.command("transcribe")(transcription_commands.transcribe)
app.add_typer(model_commands.app, name="models")
app.add_typer(cache_commands.app, name="cache")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"batchscribe {__version__}")
        raise typer.Exit()


@app.callback()
def root(
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show the version and exit"
    ),
) -> None:
    setup_logging()


def main() -> NoReturn:
    """Main entrypoint for batchscribe CLI."""
    app()
    raise SystemExit(0)


if __name__ == "__main__":
    main()
